"""One facade per libvlc object kind, built on HandleBox and EventManager."""

from vlcwrap.backend.facades.base import NativeResource
from vlcwrap.backend.facades.descriptions import (
    AudioOutputDescription,
    AudioOutputDeviceDescription,
    AudioTrack,
    MediaStats,
    MediaTrack,
    ModuleDescription,
    SubtitleTrack,
    VideoTrack,
)
from vlcwrap.backend.facades.discoverer import MediaDiscoverer
from vlcwrap.backend.facades.instance import Instance, version
from vlcwrap.backend.facades.media import Media
from vlcwrap.backend.facades.media_list import MediaList

__all__ = [
    "AudioOutputDescription",
    "AudioOutputDeviceDescription",
    "AudioTrack",
    "Instance",
    "Media",
    "MediaDiscoverer",
    "MediaList",
    "MediaStats",
    "MediaTrack",
    "ModuleDescription",
    "NativeResource",
    "SubtitleTrack",
    "VideoTrack",
    "version",
]
