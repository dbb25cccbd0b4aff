"""Ownership of reference-counted libvlc handles.

A :class:`HandleBox` owns exactly one native reference. The release function
runs exactly once per owned reference: on :meth:`HandleBox.release`, or when
the box is garbage collected while still owning it. Nothing here checks the
handle beyond null-ness; using an empty box is as undefined as passing NULL
to libvlc.
"""

from __future__ import annotations

import ctypes
import weakref
from dataclasses import dataclass
from typing import Callable, Optional, Union

from vlcwrap.backend.common.errors import ConstructionFailure, HandleError
from vlcwrap.backend.common.logging import get_logger

log = get_logger(__name__)

AddressLike = Union[int, ctypes.c_void_p, None]


@dataclass(frozen=True, slots=True)
class HandleKind:
    """The release/retain pair of one native object kind."""

    name: str
    release: Callable[[int], None]
    retain: Optional[Callable[[int], None]] = None

    @property
    def refcounted(self) -> bool:
        return self.retain is not None


def as_address(value: AddressLike) -> int:
    if value is None:
        return 0
    if isinstance(value, ctypes.c_void_p):
        return value.value or 0
    return int(value)


def _release(kind: HandleKind, address: int) -> None:
    log.debug("handle_release", extra={"handle_kind": kind.name, "address": hex(address)})
    kind.release(address)


class HandleBox:
    __slots__ = ("_address", "_kind", "_finalizer", "__weakref__")

    def __init__(self) -> None:
        """Create an empty box."""

        self._address: Optional[int] = None
        self._kind: Optional[HandleKind] = None
        self._finalizer: Optional[weakref.finalize] = None

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------
    @classmethod
    def adopt(cls, address: AddressLike, kind: HandleKind) -> "HandleBox":
        """Take over the reference handed out by a libvlc ``*_new`` call."""

        raw = as_address(address)
        if not raw:
            raise ConstructionFailure(f"libvlc returned a null {kind.name} handle")
        box = cls()
        box._own(raw, kind)
        return box

    @classmethod
    def retain_existing(cls, address: AddressLike, kind: HandleKind) -> "HandleBox":
        """Retain a handle we were lent (event payloads, borrowed pointers)."""

        raw = as_address(address)
        box = cls()
        if not raw:
            return box
        if kind.retain is None:
            raise HandleError(f"{kind.name} handles are not reference counted")
        kind.retain(raw)
        box._own(raw, kind)
        return box

    def _own(self, address: int, kind: HandleKind) -> None:
        self._address = address
        self._kind = kind
        self._finalizer = weakref.finalize(self, _release, kind, address)

    # ------------------------------------------------------------------
    # Value semantics
    # ------------------------------------------------------------------
    def copy(self) -> "HandleBox":
        """Return an independent owner of the same handle (one more retain)."""

        if not self.valid:
            return HandleBox()
        return HandleBox.retain_existing(self._address, self._kind)

    __copy__ = copy

    def __deepcopy__(self, memo) -> "HandleBox":
        return self.copy()

    def move(self) -> "HandleBox":
        """Transfer ownership to a new box; this one becomes empty."""

        target = HandleBox()
        finalizer = self._finalizer
        address, kind = self._address, self._kind
        self._address = self._kind = self._finalizer = None
        if finalizer is None or finalizer.detach() is None:
            return target
        target._own(address, kind)
        return target

    def release(self) -> None:
        """Drop the owned reference, if any. Safe on an empty box."""

        finalizer = self._finalizer
        self._address = self._kind = self._finalizer = None
        if finalizer is not None:
            finalizer()

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    @property
    def address(self) -> Optional[int]:
        return self._address

    @property
    def kind(self) -> Optional[HandleKind]:
        return self._kind

    @property
    def valid(self) -> bool:
        return bool(self._address)

    def __bool__(self) -> bool:
        return self.valid

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, HandleBox):
            return NotImplemented
        return self._address == other._address

    def __hash__(self) -> int:
        return hash(self._address)

    def __repr__(self) -> str:
        if not self._address:
            return "<HandleBox empty>"
        return f"<HandleBox {self._kind.name} 0x{self._address:x}>"


__all__ = ["AddressLike", "HandleBox", "HandleKind", "as_address"]
