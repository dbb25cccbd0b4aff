"""libvlc entry points forwarded through python-vlc."""

from vlcwrap.backend.native.library import NativeLibrary, get_native, load_native
from vlcwrap.backend.native.vlc_paths import VLCRuntimePaths, resolve_vlc_runtime

__all__ = [
    "NativeLibrary",
    "VLCRuntimePaths",
    "get_native",
    "load_native",
    "resolve_vlc_runtime",
]
