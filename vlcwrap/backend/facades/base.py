"""Shared plumbing for the per-object facades."""

from __future__ import annotations

import abc
import threading
import weakref
from typing import Any, Callable, ClassVar, Optional, Type, TypeVar

from vlcwrap.backend.common.errors import ConstructionFailure
from vlcwrap.backend.common.logging import get_logger
from vlcwrap.backend.events.kinds import EventKindLike
from vlcwrap.backend.events.manager import EventManager, Listener, ListenerToken
from vlcwrap.backend.events.registry import (
    acquire_event_manager,
    lookup_event_manager,
    release_event_manager,
)
from vlcwrap.backend.handles import AddressLike, HandleBox, HandleKind, as_address

log = get_logger(__name__)

R = TypeVar("R", bound="NativeResource")


class _Ownership:
    """State shared between a facade and its finalizer."""

    __slots__ = ("lock", "box", "manager", "on_released")

    def __init__(self, box: HandleBox) -> None:
        self.lock = threading.Lock()
        self.box = box
        self.manager: Optional[EventManager] = None
        # Called once the handle has been released.
        self.on_released: Optional[Callable[[], None]] = None


def _dispose(ownership: _Ownership) -> None:
    with ownership.lock:
        manager, ownership.manager = ownership.manager, None
        box = ownership.box
    if manager is not None and manager.in_dispatch():
        # Dropped from inside one of its own listeners: libvlc may not be
        # re-entered from here, so the release happens on the deferred runner.
        log.debug("resource_release_deferred", extra={"address": hex(box.address or 0)})
        manager.defer("deferred_dispose", _release, box, manager, ownership.on_released)
        return
    _release(box, manager, ownership.on_released)


def _release(
    box: HandleBox,
    manager: Optional[EventManager],
    on_released: Optional[Callable[[], None]] = None,
) -> None:
    # Event manager first: it must never outlive the handle it listens on.
    if manager is not None:
        release_event_manager(box.address, manager)
    box.release()
    if on_released is not None:
        on_released()


class NativeResource(abc.ABC):
    """Base facade: one owned libvlc handle plus a lazily created event manager.

    Subclasses implement :meth:`_handle_kind` and name themselves in
    ``handle_kind``. Objects that emit events also set ``event_manager_symbol``
    to the libvlc function returning their ``libvlc_event_manager_t *``.
    """

    handle_kind: ClassVar[str] = "object"
    event_manager_symbol: ClassVar[Optional[str]] = None

    _native: Any
    _ownership: _Ownership

    def _bind(self, box: HandleBox, native: Any) -> None:
        self._native = native
        self._ownership = _Ownership(box)
        self._finalizer = weakref.finalize(self, _dispose, self._ownership)

    @classmethod
    @abc.abstractmethod
    def _handle_kind(cls, native: Any) -> HandleKind:
        """Release/retain pair for this object type, bound to ``native``."""

    @classmethod
    def _adopt(cls, address: AddressLike, native: Any) -> HandleBox:
        if not as_address(address):
            reason = native.last_error() or "no error message"
            raise ConstructionFailure(f"failed to construct a {cls.handle_kind}: {reason}")
        return HandleBox.adopt(address, cls._handle_kind(native))

    @classmethod
    def _from_box(cls: Type[R], box: HandleBox, native: Any) -> R:
        obj = cls.__new__(cls)
        obj._bind(box, native)
        return obj

    @classmethod
    def wrap(cls: Type[R], address: AddressLike, *, native: Any, retain: bool = True) -> R:
        """Wrap a handle obtained elsewhere.

        ``retain=True`` for borrowed pointers (event payloads); ``retain=False``
        when the caller hands over a reference it already owns.
        """

        kind = cls._handle_kind(native)
        if retain:
            box = HandleBox.retain_existing(address, kind)
        elif as_address(address):
            box = HandleBox.adopt(address, kind)
        else:
            box = HandleBox()
        return cls._from_box(box, native)

    # ------------------------------------------------------------------
    # Value semantics
    # ------------------------------------------------------------------
    @property
    def address(self) -> Optional[int]:
        return self._ownership.box.address

    @property
    def native(self) -> Any:
        return self._native

    @property
    def is_valid(self) -> bool:
        return self._ownership.box.valid

    def __bool__(self) -> bool:
        return self.is_valid

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, NativeResource):
            return NotImplemented
        return self._ownership.box == other._ownership.box

    def __hash__(self) -> int:
        return hash(self._ownership.box)

    def __repr__(self) -> str:
        address = self.address
        where = f"0x{address:x}" if address else "empty"
        return f"<{type(self).__name__} {where}>"

    def copy(self: R) -> R:
        """Another owner of the same native object (retains it)."""

        return type(self)._from_box(self._ownership.box.copy(), self._native)

    __copy__ = copy

    def close(self) -> None:
        """Tear down this owner's event manager share and release the handle."""

        self._finalizer()

    def __enter__(self: R) -> R:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------
    def event_manager(self) -> EventManager:
        """The event manager for this object, created on first access."""

        if self.event_manager_symbol is None:
            raise TypeError(f"{type(self).__name__} does not emit events")
        ownership = self._ownership
        with ownership.lock:
            if ownership.manager is None:
                address = ownership.box.address
                native = self._native
                symbol = self.event_manager_symbol
                owner = type(self).__name__

                def _create() -> EventManager:
                    em_address = native.require(symbol)(address)
                    return EventManager(as_address(em_address), native, owner=owner)

                ownership.manager = acquire_event_manager(address, _create)
            return ownership.manager

    def on(self, kind: EventKindLike, callback: Listener) -> ListenerToken:
        return self.event_manager().subscribe(kind, callback)

    def off(self, token: ListenerToken) -> bool:
        """Remove ``token`` from this object's event manager.

        Tokens are accepted from any owner of the same native object (a
        :meth:`copy` or an equal :meth:`wrap`), since they share the manager.
        """

        manager = self._ownership.manager
        if manager is None or manager.id != token.manager_id:
            address = self.address
            manager = lookup_event_manager(address) if address else None
        if manager is None or manager.id != token.manager_id:
            return False
        return manager.unsubscribe(token)

