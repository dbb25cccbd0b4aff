"""Plain copies of python-vlc's description structures.

libvlc hands these out as linked lists or pointer arrays that the caller must
release; the dataclasses below outlive that release.
"""

from __future__ import annotations

import ctypes
from dataclasses import dataclass
from typing import Any, Iterator, List, Optional, Union

from vlcwrap.backend.events.kinds import TrackType, as_track_type
from vlcwrap.backend.native.pyvlc import vlc


def _text(raw: Optional[bytes]) -> Optional[str]:
    return raw.decode("utf-8", "replace") if raw else None


def _walk(head: Any) -> Iterator[Any]:
    node = head
    while node:
        item = node.contents
        yield item
        node = item.next


@dataclass(frozen=True, slots=True)
class ModuleDescription:
    name: Optional[str]
    shortname: Optional[str]
    longname: Optional[str]
    help: Optional[str]

    @classmethod
    def read_list(cls, head: Any) -> List["ModuleDescription"]:
        return [
            cls(_text(n.name), _text(n.shortname), _text(n.longname), _text(n.help))
            for n in _walk(head)
        ]


@dataclass(frozen=True, slots=True)
class AudioOutputDescription:
    name: Optional[str]
    description: Optional[str]

    @classmethod
    def read_list(cls, head: Any) -> List["AudioOutputDescription"]:
        return [cls(_text(n.name), _text(n.description)) for n in _walk(head)]


@dataclass(frozen=True, slots=True)
class AudioOutputDeviceDescription:
    device: Optional[str]
    description: Optional[str]

    @classmethod
    def read_list(cls, head: Any) -> List["AudioOutputDeviceDescription"]:
        return [cls(_text(n.device), _text(n.description)) for n in _walk(head)]


@dataclass(frozen=True, slots=True)
class MediaStats:
    read_bytes: int
    input_bitrate: float
    demux_read_bytes: int
    demux_bitrate: float
    demux_corrupted: int
    demux_discontinuity: int
    decoded_video: int
    decoded_audio: int
    displayed_pictures: int
    lost_pictures: int
    played_abuffers: int
    lost_abuffers: int
    sent_packets: int
    sent_bytes: int
    send_bitrate: float

    @classmethod
    def from_struct(cls, raw: vlc.MediaStats) -> "MediaStats":
        return cls(
            read_bytes=raw.read_bytes,
            input_bitrate=raw.input_bitrate,
            demux_read_bytes=raw.demux_read_bytes,
            demux_bitrate=raw.demux_bitrate,
            demux_corrupted=raw.demux_corrupted,
            demux_discontinuity=raw.demux_discontinuity,
            decoded_video=raw.decoded_video,
            decoded_audio=raw.decoded_audio,
            displayed_pictures=raw.displayed_pictures,
            lost_pictures=raw.lost_pictures,
            played_abuffers=raw.played_abuffers,
            lost_abuffers=raw.lost_abuffers,
            sent_packets=raw.sent_packets,
            sent_bytes=raw.sent_bytes,
            send_bitrate=raw.send_bitrate,
        )


@dataclass(frozen=True, slots=True)
class AudioTrack:
    channels: int
    rate: int


@dataclass(frozen=True, slots=True)
class VideoTrack:
    height: int
    width: int
    sar_num: int
    sar_den: int
    frame_rate_num: int
    frame_rate_den: int


@dataclass(frozen=True, slots=True)
class SubtitleTrack:
    encoding: Optional[str]


TrackDetails = Union[AudioTrack, VideoTrack, SubtitleTrack, None]


@dataclass(frozen=True, slots=True)
class MediaTrack:
    codec: int
    original_fourcc: int
    id: int
    type: Union[TrackType, int]
    profile: int
    level: int
    bitrate: int
    language: Optional[str]
    description: Optional[str]
    details: TrackDetails = None

    @property
    def codec_fourcc(self) -> str:
        return self.codec.to_bytes(4, "little").decode("latin-1")

    @classmethod
    def from_struct(cls, raw: vlc.MediaTrack) -> "MediaTrack":
        kind = as_track_type(raw.type)
        return cls(
            codec=raw.codec,
            original_fourcc=raw.original_fourcc,
            id=raw.id,
            type=kind,
            profile=raw.profile,
            level=raw.level,
            bitrate=raw.bitrate,
            language=_text(raw.language),
            description=_text(raw.description),
            details=_details(kind, raw),
        )


def _details(kind: Union[TrackType, int], raw: vlc.MediaTrack) -> TrackDetails:
    # The union member is only meaningful for the matching track type.
    if kind == TrackType.Audio and raw.audio:
        audio = raw.audio.contents
        return AudioTrack(audio.channels, audio.rate)
    if kind == TrackType.Video and raw.video:
        video = raw.video.contents
        return VideoTrack(
            video.height,
            video.width,
            video.sar_num,
            video.sar_den,
            video.frame_rate_num,
            video.frame_rate_den,
        )
    if kind == TrackType.Text and raw.subtitle:
        return SubtitleTrack(_text(raw.subtitle.contents.encoding))
    return None


def read_tracks(array: Any, count: int) -> List[MediaTrack]:
    """Copy ``count`` entries out of a ``libvlc_media_track_t **``.

    python-vlc types the out-parameter as ``MediaTrack *``; like its own
    ``Media.tracks_get`` it is re-read as an array of pointers.
    """

    entries = ctypes.cast(array, ctypes.POINTER(ctypes.POINTER(vlc.MediaTrack) * count)).contents
    return [MediaTrack.from_struct(entry.contents) for entry in entries if entry]


__all__ = [
    "AudioOutputDescription",
    "AudioOutputDeviceDescription",
    "AudioTrack",
    "MediaStats",
    "MediaTrack",
    "ModuleDescription",
    "SubtitleTrack",
    "VideoTrack",
    "read_tracks",
]
