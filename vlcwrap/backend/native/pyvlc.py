"""python-vlc, imported once a bundled libvlc runtime has been exported.

python-vlc opens the shared library while it is being imported, so every
module that needs its types or functions imports ``vlc`` from here.
"""

from __future__ import annotations

from typing import Optional

from vlcwrap.backend.common.errors import NativeLibraryError
from vlcwrap.backend.native.vlc_paths import VLCRuntimePaths, resolve_vlc_runtime

RUNTIME: Optional[VLCRuntimePaths] = resolve_vlc_runtime()

try:
    import vlc
except (ImportError, OSError, NotImplementedError, SystemExit) as exc:
    # python-vlc exits when PYTHON_VLC_LIB_PATH cannot be opened.
    raise NativeLibraryError(f"python-vlc import failed: {exc}") from exc


__all__ = ["RUNTIME", "vlc"]
