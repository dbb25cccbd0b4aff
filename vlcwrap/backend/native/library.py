"""libvlc entry points, forwarded through python-vlc under their C names.

The facades track native objects by integer address. python-vlc's functions
take its own handle classes (``vlc.Media``, ``vlc.EventManager`` ...) and hand
back objects, enums and already-freed strings; :class:`NativeLibrary` converts
at that boundary and nothing else.
"""

from __future__ import annotations

import ctypes
import sys
import threading
from ctypes.util import find_library
from pathlib import Path
from typing import Any, Callable, Optional

from vlcwrap.backend.common.errors import FeatureUnavailable, NativeLibraryError
from vlcwrap.backend.common.logging import get_logger
from vlcwrap.backend.native.pyvlc import RUNTIME, vlc
from vlcwrap.backend.native.structures import ExitCallback

log = get_logger(__name__)

# C name -> python-vlc classes of the leading handle arguments.
_FORWARDED: dict[str, tuple[str, ...]] = {
    # core
    "libvlc_new": (),
    "libvlc_release": ("Instance",),
    "libvlc_retain": ("Instance",),
    "libvlc_add_intf": ("Instance",),
    "libvlc_set_user_agent": ("Instance",),
    "libvlc_set_app_id": ("Instance",),
    "libvlc_get_version": (),
    "libvlc_errmsg": (),
    "libvlc_log_set": ("Instance",),
    "libvlc_log_unset": ("Instance",),
    "libvlc_audio_filter_list_get": ("Instance",),
    "libvlc_video_filter_list_get": ("Instance",),
    "libvlc_module_description_list_release": (),
    "libvlc_audio_output_list_get": ("Instance",),
    "libvlc_audio_output_list_release": (),
    "libvlc_audio_output_device_list_get": ("Instance",),
    "libvlc_audio_output_device_list_release": (),
    # events
    "libvlc_event_attach": ("EventManager",),
    "libvlc_event_detach": ("EventManager",),
    # media
    "libvlc_media_new_location": ("Instance",),
    "libvlc_media_new_path": ("Instance",),
    "libvlc_media_new_as_node": ("Instance",),
    "libvlc_media_new_fd": ("Instance",),
    "libvlc_media_retain": ("Media",),
    "libvlc_media_release": ("Media",),
    "libvlc_media_add_option": ("Media",),
    "libvlc_media_add_option_flag": ("Media",),
    "libvlc_media_get_mrl": ("Media",),
    "libvlc_media_duplicate": ("Media",),
    "libvlc_media_get_meta": ("Media",),
    "libvlc_media_set_meta": ("Media",),
    "libvlc_media_save_meta": ("Media",),
    "libvlc_media_get_state": ("Media",),
    "libvlc_media_get_stats": ("Media",),
    "libvlc_media_event_manager": ("Media",),
    "libvlc_media_get_duration": ("Media",),
    "libvlc_media_parse": ("Media",),
    "libvlc_media_parse_async": ("Media",),
    "libvlc_media_is_parsed": ("Media",),
    "libvlc_media_set_user_data": ("Media",),
    "libvlc_media_get_user_data": ("Media",),
    "libvlc_media_tracks_get": ("Media",),
    "libvlc_media_tracks_release": (),
    # media list
    "libvlc_media_list_new": ("Instance",),
    "libvlc_media_list_retain": ("MediaList",),
    "libvlc_media_list_release": ("MediaList",),
    "libvlc_media_list_set_media": ("MediaList", "Media"),
    "libvlc_media_list_media": ("MediaList",),
    "libvlc_media_list_add_media": ("MediaList", "Media"),
    "libvlc_media_list_insert_media": ("MediaList", "Media"),
    "libvlc_media_list_remove_index": ("MediaList",),
    "libvlc_media_list_count": ("MediaList",),
    "libvlc_media_list_item_at_index": ("MediaList",),
    "libvlc_media_list_index_of_item": ("MediaList", "Media"),
    "libvlc_media_list_is_readonly": ("MediaList",),
    "libvlc_media_list_lock": ("MediaList",),
    "libvlc_media_list_unlock": ("MediaList",),
    "libvlc_media_list_event_manager": ("MediaList",),
    # media discoverer
    "libvlc_media_discoverer_new": ("Instance",),
    "libvlc_media_discoverer_start": ("MediaDiscoverer",),
    "libvlc_media_discoverer_stop": ("MediaDiscoverer",),
    "libvlc_media_discoverer_release": ("MediaDiscoverer",),
    "libvlc_media_discoverer_localized_name": ("MediaDiscoverer",),
    "libvlc_media_discoverer_media_list": ("MediaDiscoverer",),
    "libvlc_media_discoverer_event_manager": ("MediaDiscoverer",),
    "libvlc_media_discoverer_is_running": ("MediaDiscoverer",),
}

# Entry points python-vlc does not bind (set_exit_handler, and
# discoverer_new_from_name which only libvlc 2.x exports) or binds with an
# unusable out-parameter declaration (log_get_context).
_PROTOTYPES: dict[str, tuple[Any, tuple[Any, ...]]] = {
    "libvlc_set_exit_handler": (None, (ctypes.c_void_p, ExitCallback, ctypes.c_void_p)),
    "libvlc_log_get_context": (
        None,
        (
            ctypes.c_void_p,
            ctypes.POINTER(ctypes.c_char_p),
            ctypes.POINTER(ctypes.c_char_p),
            ctypes.POINTER(ctypes.c_uint),
        ),
    ),
    "libvlc_media_discoverer_new_from_name": (ctypes.c_void_p, (ctypes.c_void_p, ctypes.c_char_p)),
}

# Symbols that come and go between libvlc 2.x, 3.x and 4.x.
_OPTIONAL = frozenset(
    (
        "libvlc_log_get_context",
        "libvlc_set_exit_handler",
        "libvlc_media_parse",
        "libvlc_media_parse_async",
        "libvlc_media_get_stats",
        "libvlc_media_discoverer_new",
        "libvlc_media_discoverer_new_from_name",
        "libvlc_media_discoverer_start",
        "libvlc_media_discoverer_stop",
        "libvlc_media_discoverer_localized_name",
        "libvlc_media_discoverer_event_manager",
    )
)

_LOG_BUFFER_SIZE = 1024


def plain(result: Any) -> Any:
    """Reduce a python-vlc return value to what the facades track.

    Handle objects become their address, enums their numeric value.
    """

    handle = getattr(result, "_as_parameter_", None)
    if isinstance(handle, ctypes.c_void_p):
        return handle.value
    if isinstance(result, ctypes.c_uint):
        return result.value
    return result


class NativeLibrary:
    """libvlc entry points, exposed under their C names and taking addresses."""

    def __init__(self, dll: Any) -> None:
        self._dll = dll
        self._vsnprintf: Optional[Callable[..., int]] = None
        for name, handles in _FORWARDED.items():
            setattr(self, name, self._forward(name, handles))
        for name, (restype, argtypes) in _PROTOTYPES.items():
            setattr(self, name, self._prototype(name, restype, argtypes))

    def _missing(self, name: str) -> None:
        if name not in _OPTIONAL:
            raise NativeLibraryError(f"libvlc does not export {name}")

    def _forward(self, name: str, handles: tuple[str, ...]) -> Optional[Callable[..., Any]]:
        # python-vlc defines every function; calling one whose symbol the
        # loaded libvlc lacks raises NameError.
        fn = getattr(vlc, name, None)
        if fn is None or not hasattr(self._dll, name):
            return self._missing(name)
        wrappers = tuple(getattr(vlc, cls) for cls in handles)

        def call(*args: Any) -> Any:
            leading = [wrap(arg) if arg else None for wrap, arg in zip(wrappers, args)]
            return plain(fn(*leading, *args[len(wrappers):]))

        call.__name__ = name
        return call

    def _prototype(self, name: str, restype: Any, argtypes: tuple[Any, ...]):
        fn = getattr(self._dll, name, None)
        if fn is None:
            return self._missing(name)
        fn.restype = restype
        fn.argtypes = argtypes
        return fn

    # ------------------------------------------------------------------
    # Helpers shared by the facades
    # ------------------------------------------------------------------
    def has(self, name: str) -> bool:
        return getattr(self, name, None) is not None

    def require(self, name: str):
        fn = getattr(self, name, None)
        if fn is None:
            raise FeatureUnavailable(f"{name} is not available in libvlc {self.version()}")
        return fn

    def version(self) -> str:
        raw = self.libvlc_get_version()
        if isinstance(raw, bytes):
            return raw.decode("utf-8", "replace")
        return raw or "unknown"

    def last_error(self) -> Optional[str]:
        raw = self.libvlc_errmsg()
        if isinstance(raw, bytes):
            return raw.decode("utf-8", "replace")
        return raw or None

    def format_log(self, fmt: Optional[bytes], args: Optional[int]) -> str:
        """Render a libvlc log line (printf format plus ``va_list``)."""

        if not fmt:
            return ""
        if self._vsnprintf is None:
            self._vsnprintf = _load_vsnprintf()
        buf = ctypes.create_string_buffer(_LOG_BUFFER_SIZE)
        self._vsnprintf(buf, _LOG_BUFFER_SIZE, fmt, args)
        return buf.value.decode("utf-8", "replace")

    def log_context(self, ctx: Any) -> dict[str, Any]:
        """``vlc_module``, ``vlc_file`` and ``vlc_line`` of a log message context."""

        if not ctx or self.libvlc_log_get_context is None:
            return {}
        module = ctypes.c_char_p()
        file = ctypes.c_char_p()
        line = ctypes.c_uint()
        self.libvlc_log_get_context(
            ctypes.cast(ctx, ctypes.c_void_p),
            ctypes.byref(module),
            ctypes.byref(file),
            ctypes.byref(line),
        )
        return {
            "vlc_module": module.value.decode("utf-8", "replace") if module.value else None,
            "vlc_file": file.value.decode("utf-8", "replace") if file.value else None,
            "vlc_line": line.value,
        }


def _load_vsnprintf():
    if sys.platform.startswith("win"):
        libc = ctypes.cdll.msvcrt
    else:
        libc = ctypes.CDLL(find_library("c"))
    fn = libc.vsnprintf
    fn.restype = ctypes.c_int
    fn.argtypes = (ctypes.c_char_p, ctypes.c_size_t, ctypes.c_char_p, ctypes.c_void_p)
    return fn


def load_native(vlc_root: Optional[str] = None) -> NativeLibrary:
    """Bind the libvlc python-vlc loaded.

    python-vlc opens the library on import, so ``vlc_root`` can only be
    checked against the runtime exported at that point.
    """

    if RUNTIME is None:
        log.warning("vlc_runtime_not_configured", extra={"hint": "Using system VLC installation"})
    if vlc_root and (RUNTIME is None or Path(vlc_root) != RUNTIME.root):
        log.warning("vlc_runtime_root_ignored", extra={"requested": vlc_root})
    dll = getattr(vlc, "dll", None)
    if dll is None or not hasattr(dll, "libvlc_new"):
        raise NativeLibraryError("python-vlc did not locate a libvlc shared library")
    native = NativeLibrary(dll)
    log.info("libvlc_loaded", extra={"vlc_version": native.version(), "bundled": RUNTIME is not None})
    return native


_NATIVE: Optional[NativeLibrary] = None
_NATIVE_LOCK = threading.Lock()


def get_native() -> NativeLibrary:
    """Return the process-wide :class:`NativeLibrary`."""

    global _NATIVE
    with _NATIVE_LOCK:
        if _NATIVE is None:
            from vlcwrap.config.settings import get_settings

            _NATIVE = load_native(get_settings().vlc_runtime_root)
        return _NATIVE
