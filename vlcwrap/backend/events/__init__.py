"""Event kinds, typed payloads and the listener multiplexer."""

from vlcwrap.backend.events.kinds import (
    EventKind,
    FromType,
    Meta,
    ParsedStatus,
    State,
    TrackType,
)
from vlcwrap.backend.events.manager import (
    EventManager,
    ListenerError,
    ListenerToken,
)
from vlcwrap.backend.events.payloads import (
    CountEvent,
    DurationChangedEvent,
    Event,
    FlagEvent,
    ListItemEvent,
    MediaRefEvent,
    MetaChangedEvent,
    ParsedChangedEvent,
    ProgressEvent,
    SnapshotEvent,
    StateChangedEvent,
    TimeEvent,
)
from vlcwrap.backend.events.waiting import EventWaiter

__all__ = [
    "CountEvent",
    "DurationChangedEvent",
    "Event",
    "EventKind",
    "EventManager",
    "EventWaiter",
    "FlagEvent",
    "FromType",
    "ListItemEvent",
    "ListenerError",
    "ListenerToken",
    "MediaRefEvent",
    "Meta",
    "MetaChangedEvent",
    "ParsedChangedEvent",
    "ParsedStatus",
    "ProgressEvent",
    "SnapshotEvent",
    "State",
    "StateChangedEvent",
    "TimeEvent",
    "TrackType",
]
