"""libvlc enumerations as :class:`~enum.IntEnum` views of python-vlc's.

python-vlc's ``_Enum`` classes are ``c_uint`` subclasses keyed by an
``_enum_names_`` table. The mirrors below are built from those tables so the
numeric values always match the python-vlc in use; they add hashing by value,
iteration and ``Enum(value)`` lookup, which the listener tables need.
"""

from __future__ import annotations

from enum import IntEnum
from typing import Any, Callable, Optional, Union

from vlcwrap.backend.native.pyvlc import vlc


def _mirror(name: str, source: Any, rename: Optional[Callable[[str], str]] = None) -> type[IntEnum]:
    members = [
        (rename(label) if rename else label, value)
        for value, label in sorted(source._enum_names_.items())
    ]
    return IntEnum(name, members, module=__name__)


def _capitalized(label: str) -> str:
    # python-vlc spells the text track type "ext".
    if label == "ext":
        label = "text"
    return label[:1].upper() + label[1:]


EventKind = _mirror("EventKind", vlc.EventType)
Meta = _mirror("Meta", vlc.Meta)
State = _mirror("State", vlc.State)
ParsedStatus = _mirror("ParsedStatus", vlc.MediaParsedStatus, _capitalized)
TrackType = _mirror("TrackType", vlc.TrackType, _capitalized)

EventKindLike = Union[EventKind, int]


class FromType(IntEnum):
    """How :class:`~vlcwrap.backend.facades.media.Media` interprets its ``mrl`` argument."""

    FromPath = 0
    FromLocation = 1
    AsNode = 2


def number(value: Any) -> int:
    """The integer behind an int, an IntEnum or a python-vlc enum instance."""

    if isinstance(value, int):
        return int(value)
    return int(value.value)


def coerce_kind(value: Any) -> EventKindLike:
    """Return the :class:`EventKind` for ``value``, or the plain int for kinds python-vlc does not name."""

    return _coerce(EventKind, value)


def _coerce(enum_cls, value: Any):
    raw = number(value)
    try:
        return enum_cls(raw)
    except ValueError:
        return raw


def as_meta(value: Any):
    return _coerce(Meta, value)


def as_state(value: Any):
    return _coerce(State, value)


def as_parsed_status(value: Any):
    return _coerce(ParsedStatus, value)


def as_track_type(value: Any):
    # TrackType is unsigned on the python-vlc side; unknown (-1) reads back as 0xFFFFFFFF.
    raw = number(value)
    if raw >= 2**31:
        raw -= 2**32
    return _coerce(TrackType, raw)
