"""Point python-vlc at a bundled libvlc before it is imported.

python-vlc resolves the shared library once, at ``import vlc`` time, from
``PYTHON_VLC_LIB_PATH`` and ``PYTHON_VLC_MODULE_PATH``. A bundled runtime is a
directory laid out as ``<root>[/<platform>]/{lib,plugins}``.
"""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Optional

from vlcwrap.backend.common.logging import get_logger
from vlcwrap.config import settings

log = get_logger(__name__)

_PLATFORM_DIRS: dict[str, tuple[str, ...]] = {
    "win": ("win64", "win32"),
    "mac": ("macos-arm64", "macos-x64", "macos"),
    "linux": ("linux-x86_64", "linux"),
}

_SHARED_LIBRARIES: dict[str, tuple[str, ...]] = {
    "win": ("libvlc.dll",),
    "mac": ("libvlc.dylib",),
    "linux": ("libvlc.so", "libvlc.so.5"),
}

_LOADER_PATH_VARS = {"win": "PATH", "mac": "DYLD_LIBRARY_PATH", "linux": "LD_LIBRARY_PATH"}


def _platform() -> str:
    if sys.platform.startswith(("win", "cygwin")):
        return "win"
    if sys.platform == "darwin":
        return "mac"
    return "linux"


@dataclass(frozen=True)
class VLCRuntimePaths:
    root: Path
    lib_dir: Path
    plugin_dir: Path
    library: Optional[Path] = None

    @classmethod
    def probe(cls, root: Path) -> Optional["VLCRuntimePaths"]:
        """The runtime under ``root``, or ``None`` when it is incomplete."""

        if not root.is_dir():
            return None
        base = next(
            (root / name for name in _PLATFORM_DIRS[_platform()] if (root / name).is_dir()),
            root,
        )
        lib_dir, plugin_dir = base / "lib", base / "plugins"
        if not (lib_dir.is_dir() and plugin_dir.is_dir()):
            log.warning(
                "vlc_runtime_incomplete",
                extra={"root": str(base), "lib": lib_dir.is_dir(), "plugins": plugin_dir.is_dir()},
            )
            return None
        library = next(
            (lib_dir / name for name in _SHARED_LIBRARIES[_platform()] if (lib_dir / name).is_file()),
            None,
        )
        return cls(root, lib_dir, plugin_dir, library)

    def as_env(self) -> dict[str, str]:
        env = {"PYTHON_VLC_MODULE_PATH": str(self.plugin_dir)}
        if self.library is not None:
            env["PYTHON_VLC_LIB_PATH"] = str(self.library)
        return env


def _search_roots(explicit_root: Optional[str]) -> Iterator[Path]:
    if explicit_root:
        yield Path(explicit_root)
    configured = settings.get_vlc_runtime_root()
    if configured and configured != explicit_root:
        yield Path(configured)


def resolve_vlc_runtime(explicit_root: Optional[str] = None) -> Optional[VLCRuntimePaths]:
    """Find a bundled runtime and export it for python-vlc.

    A ``PYTHON_VLC_LIB_PATH`` already present in the environment wins and
    nothing is changed.
    """

    preset = os.environ.get("PYTHON_VLC_LIB_PATH")
    if preset:
        log.debug("vlc_runtime_preset", extra={"library": preset})
        return None
    searched = []
    for root in _search_roots(explicit_root):
        searched.append(str(root))
        runtime = VLCRuntimePaths.probe(root)
        if runtime is not None:
            export_runtime(runtime)
            log.info("vlc_runtime_selected", extra={"root": str(runtime.root)})
            return runtime
    log.debug("vlc_runtime_not_found", extra={"searched": searched})
    return None


def export_runtime(runtime: VLCRuntimePaths) -> None:
    os.environ.update(runtime.as_env())
    var = _LOADER_PATH_VARS[_platform()]
    entries = [p for p in os.environ.get(var, "").split(os.pathsep) if p]
    if str(runtime.lib_dir) not in entries:
        os.environ[var] = os.pathsep.join([str(runtime.lib_dir), *entries])


__all__ = ["VLCRuntimePaths", "export_runtime", "resolve_vlc_runtime"]
