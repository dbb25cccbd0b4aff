"""Typed, copy-out views of ``libvlc_event_t``.

Payloads are decoded while the native event is still valid (inside the
trampoline); listeners only ever see these frozen dataclasses.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, Optional

from vlcwrap.backend.events.kinds import (
    EventKind,
    EventKindLike,
    as_meta,
    as_parsed_status,
    as_state,
    coerce_kind,
)
from vlcwrap.backend.native.pyvlc import vlc
from vlcwrap.backend.native.structures import list_item, union_int


@dataclass(frozen=True, slots=True)
class Event:
    kind: EventKindLike
    source: Optional[int]


@dataclass(frozen=True, slots=True)
class MetaChangedEvent(Event):
    meta: int


@dataclass(frozen=True, slots=True)
class MediaRefEvent(Event):
    """An event carrying a ``libvlc_media_t *`` that the listener does not own."""

    media: Optional[int]


@dataclass(frozen=True, slots=True)
class DurationChangedEvent(Event):
    duration_ms: int


@dataclass(frozen=True, slots=True)
class ParsedChangedEvent(Event):
    status: int


@dataclass(frozen=True, slots=True)
class StateChangedEvent(Event):
    state: int


@dataclass(frozen=True, slots=True)
class ListItemEvent(Event):
    media: Optional[int]
    index: int


@dataclass(frozen=True, slots=True)
class TimeEvent(Event):
    value_ms: int


@dataclass(frozen=True, slots=True)
class ProgressEvent(Event):
    value: float


@dataclass(frozen=True, slots=True)
class FlagEvent(Event):
    value: bool


@dataclass(frozen=True, slots=True)
class CountEvent(Event):
    value: int


@dataclass(frozen=True, slots=True)
class SnapshotEvent(Event):
    filename: Optional[str]


def _media_ref(kind, source, native):
    # Every media-carrying member sits at the start of the union.
    return MediaRefEvent(kind, source, native.u.media or None)


def _list_item(kind, source, native):
    item = list_item(native.u)
    return ListItemEvent(kind, source, item.item or None, item.index)


def _snapshot(kind, source, native):
    raw = native.u.filename
    return SnapshotEvent(kind, source, raw.decode("utf-8", "replace") if raw else None)


_DECODERS: Dict[EventKind, Callable[[EventKindLike, Optional[int], vlc.Event], Event]] = {
    EventKind.MediaMetaChanged: lambda k, s, n: MetaChangedEvent(k, s, as_meta(n.u.meta_type)),
    EventKind.MediaSubItemAdded: _media_ref,
    EventKind.MediaDurationChanged: lambda k, s, n: DurationChangedEvent(k, s, n.u.new_duration),
    EventKind.MediaParsedChanged: lambda k, s, n: ParsedChangedEvent(k, s, as_parsed_status(n.u.new_status)),
    EventKind.MediaFreed: _media_ref,
    EventKind.MediaStateChanged: lambda k, s, n: StateChangedEvent(k, s, as_state(n.u.new_state)),
    EventKind.MediaSubItemTreeAdded: _media_ref,
    EventKind.MediaPlayerMediaChanged: _media_ref,
    EventKind.MediaPlayerBuffering: lambda k, s, n: ProgressEvent(k, s, n.u.new_cache),
    EventKind.MediaPlayerTimeChanged: lambda k, s, n: TimeEvent(k, s, n.u.new_time),
    EventKind.MediaPlayerPositionChanged: lambda k, s, n: ProgressEvent(k, s, n.u.new_position),
    EventKind.MediaPlayerSeekableChanged: lambda k, s, n: FlagEvent(k, s, bool(union_int(n.u))),
    EventKind.MediaPlayerPausableChanged: lambda k, s, n: FlagEvent(k, s, bool(union_int(n.u))),
    EventKind.MediaPlayerTitleChanged: lambda k, s, n: CountEvent(k, s, n.u.new_title),
    EventKind.MediaPlayerSnapshotTaken: _snapshot,
    EventKind.MediaPlayerLengthChanged: lambda k, s, n: TimeEvent(k, s, n.u.new_length),
    EventKind.MediaPlayerVout: lambda k, s, n: CountEvent(k, s, union_int(n.u)),
    EventKind.MediaListItemAdded: _list_item,
    EventKind.MediaListWillAddItem: _list_item,
    EventKind.MediaListItemDeleted: _list_item,
    EventKind.MediaListWillDeleteItem: _list_item,
    EventKind.MediaListPlayerNextItemSet: _media_ref,
}


def decode_event(native: vlc.Event) -> Event:
    kind = coerce_kind(native.type)
    source = native.object or None
    decoder = _DECODERS.get(kind) if isinstance(kind, EventKind) else None
    if decoder is None:
        return Event(kind, source)
    return decoder(kind, source, native)


__all__ = [
    "CountEvent",
    "DurationChangedEvent",
    "Event",
    "FlagEvent",
    "ListItemEvent",
    "MediaRefEvent",
    "MetaChangedEvent",
    "ParsedChangedEvent",
    "ProgressEvent",
    "SnapshotEvent",
    "StateChangedEvent",
    "TimeEvent",
    "decode_event",
]
