"""Fan-out of libvlc event callbacks to any number of Python listeners.

libvlc accepts one callback per (event manager, event kind, callback, user
data) and calls it from its own threads. :class:`EventManager` attaches a
single ctypes trampoline per event kind and multiplexes it to every listener
registered for that kind.

Locking rules:

* ``_lock`` serialises bookkeeping and the native attach/detach calls.
* The trampoline never takes ``_lock``. Listener sets are copy-on-write
  tuples, so dispatch reads one immutable snapshot per event.
* Calls made from inside one of this manager's own listeners never reach
  libvlc synchronously; they are queued on the deferred task runner.
"""

from __future__ import annotations

import ctypes
import itertools
import threading
from concurrent.futures import Future, wait
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, FrozenSet, List, Optional, Protocol, Tuple

from vlcwrap.backend.common.errors import AttachFailure, EventManagerError, VlcWrapError
from vlcwrap.backend.common.logging import get_logger
from vlcwrap.backend.common.tasks import TaskRunner, TaskSpec, get_deferred_runner
from vlcwrap.backend.events.kinds import EventKindLike, coerce_kind, number
from vlcwrap.backend.events.payloads import Event, decode_event
from vlcwrap.backend.native.pyvlc import vlc

log = get_logger(__name__)

Listener = Callable[[Event], Any]

_manager_ids = itertools.count(1)
_token_ids = itertools.count(1)
_dispatch_state = threading.local()


class NativeEvents(Protocol):
    def libvlc_event_attach(self, manager: int, kind: int, callback: Any, user_data: Any) -> int: ...

    def libvlc_event_detach(self, manager: int, kind: int, callback: Any, user_data: Any) -> None: ...


@dataclass(eq=False)
class ListenerToken:
    """Handle returned by :meth:`EventManager.subscribe`; pass it back to unsubscribe."""

    kind: EventKindLike
    callback: Listener
    manager_id: int
    token_id: int = field(default_factory=lambda: next(_token_ids))
    active: bool = True

    def __repr__(self) -> str:
        state = "active" if self.active else "inactive"
        return f"<ListenerToken #{self.token_id} {_kind_name(self.kind)} {state}>"


@dataclass(frozen=True, slots=True)
class ListenerError:
    """A failure that happened on the native side of the boundary."""

    kind: EventKindLike
    token: Optional[ListenerToken]
    event: Optional[Event]
    exception: BaseException


ErrorHandler = Callable[[ListenerError], None]


def _kind_name(kind: EventKindLike) -> str:
    return getattr(kind, "name", str(kind))


def _dispatch_stack() -> List["EventManager"]:
    stack = getattr(_dispatch_state, "stack", None)
    if stack is None:
        stack = _dispatch_state.stack = []
    return stack


class EventManager:
    def __init__(
        self,
        address: int,
        native: NativeEvents,
        *,
        owner: str = "resource",
        runner: Optional[TaskRunner] = None,
        on_error: Optional[ErrorHandler] = None,
    ) -> None:
        self._id = next(_manager_ids)
        self._address = address
        self._native = native
        self._owner = owner
        self._runner = runner
        self._on_error = on_error
        self._lock = threading.RLock()
        self._pending_lock = threading.Lock()
        self._pending: List[Future] = []
        self._listeners: Dict[int, Tuple[ListenerToken, ...]] = {}
        self._attached: FrozenSet[int] = frozenset()
        self._closed = False
        # Kept alive for as long as libvlc may call it.
        self._trampoline = vlc.CallbackDecorators.Callback(self._dispatch)

    def __repr__(self) -> str:
        return f"<EventManager {self._owner} 0x{self._address or 0:x} kinds={sorted(self._attached)}>"

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------
    @property
    def address(self) -> int:
        return self._address

    @property
    def id(self) -> int:
        """Process-unique id, carried by every token this manager hands out."""

        return self._id

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def attached_kinds(self) -> FrozenSet[EventKindLike]:
        # No _lock: _register holds it across libvlc_event_attach. _attached is
        # replaced, never mutated.
        return frozenset(coerce_kind(key) for key in self._attached)

    def listener_count(self, kind: EventKindLike) -> int:
        return len(self._listeners.get(int(kind), ()))

    def set_error_handler(self, handler: Optional[ErrorHandler]) -> None:
        self._on_error = handler

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------
    def subscribe(self, kind: EventKindLike, callback: Listener) -> ListenerToken:
        """Register ``callback`` for ``kind``.

        The first listener for a kind attaches the trampoline; later ones only
        extend the listener set. Raises :class:`AttachFailure` when libvlc
        refuses the attachment, in which case nothing is registered.

        Called from inside one of this manager's listeners, the registration
        is queued and becomes visible to later events once the deferred runner
        has processed it; attach failures are then reported through the error
        handler.
        """

        if not callable(callback):
            raise TypeError(f"listener must be callable, got {callback!r}")
        token = ListenerToken(coerce_kind(kind), callback, self._id)
        if self._dispatching_here():
            self.defer("deferred_subscribe", self._register_deferred, token)
            return token
        self._register(token)
        return token

    def unsubscribe(self, token: ListenerToken) -> bool:
        """Remove a registration; the last listener of a kind detaches it.

        Returns ``False`` for tokens that are unknown to this manager or were
        already removed.
        """

        if token.manager_id != self._id or not token.active:
            return False
        token.active = False
        if self._dispatching_here():
            self.defer("deferred_unsubscribe", self._unregister, token)
            return True
        self._unregister(token)
        return True

    def teardown(self) -> None:
        """Detach every attached kind and drop all listeners. Idempotent."""

        if self._dispatching_here():
            raise EventManagerError(
                f"cannot tear down the {self._owner} event manager from one of its own listeners"
            )
        with self._lock:
            if self._closed:
                return
            self._closed = True
            for key in sorted(self._attached):
                self._native.libvlc_event_detach(self._address, key, self._trampoline, None)
            detached = len(self._attached)
            self._attached = frozenset()
            for tokens in self._listeners.values():
                for token in tokens:
                    token.active = False
            self._listeners.clear()
        log.debug("event_manager_torn_down", extra={"owner": self._owner, "detached": detached})

    def drain_deferred(self, timeout: Optional[float] = None) -> bool:
        """Wait for queued subscribe/unsubscribe work. Returns ``False`` on timeout."""

        with self._pending_lock:
            pending = list(self._pending)
        if not pending:
            return True
        _, not_done = wait(pending, timeout=timeout)
        with self._pending_lock:
            self._pending = [f for f in self._pending if not f.done()]
        return not not_done

    # ------------------------------------------------------------------
    # Bookkeeping (always under _lock)
    # ------------------------------------------------------------------
    def _register(self, token: ListenerToken) -> None:
        key = int(token.kind)
        with self._lock:
            if self._closed:
                raise EventManagerError(f"the {self._owner} event manager has been torn down")
            if not token.active:
                return
            if key not in self._attached:
                rc = self._native.libvlc_event_attach(self._address, key, self._trampoline, None)
                if rc != 0:
                    token.active = False
                    log.warning(
                        "event_attach_failed",
                        extra={"owner": self._owner, "kind": _kind_name(token.kind), "rc": rc},
                    )
                    raise AttachFailure(f"libvlc refused to attach {_kind_name(token.kind)} on {self._owner} (rc={rc})")
                self._attached = self._attached | {key}
                log.debug("event_attached", extra={"owner": self._owner, "kind": _kind_name(token.kind)})
            self._listeners[key] = self._listeners.get(key, ()) + (token,)

    def _register_deferred(self, token: ListenerToken) -> None:
        try:
            self._register(token)
        except VlcWrapError as exc:
            token.active = False
            self._report(ListenerError(token.kind, token, None, exc))

    def _unregister(self, token: ListenerToken) -> bool:
        key = int(token.kind)
        with self._lock:
            current = self._listeners.get(key, ())
            if not any(t is token for t in current):
                return False
            remaining = tuple(t for t in current if t is not token)
            if remaining:
                self._listeners[key] = remaining
                return True
            del self._listeners[key]
            if key in self._attached and not self._closed:
                self._native.libvlc_event_detach(self._address, key, self._trampoline, None)
                self._attached = self._attached - {key}
                log.debug("event_detached", extra={"owner": self._owner, "kind": _kind_name(token.kind)})
            return True

    def defer(self, name: str, fn: Callable[..., Any], *args: Any) -> None:
        """Run ``fn`` on the deferred runner, tracked by :meth:`drain_deferred`."""

        runner = self._runner or get_deferred_runner()
        future = runner.submit(TaskSpec(fn=fn, args=args, name=name))
        with self._pending_lock:
            self._pending = [f for f in self._pending if not f.done()]
            self._pending.append(future)

    def in_dispatch(self) -> bool:
        """Whether the calling thread is inside one of this manager's listeners."""

        return self._dispatching_here()

    def _dispatching_here(self) -> bool:
        return any(m is self for m in _dispatch_stack())

    # ------------------------------------------------------------------
    # Native side
    # ------------------------------------------------------------------
    def _dispatch(self, event_ptr, _user_data) -> None:
        # Runs on a libvlc thread. Nothing may unwind into libvlc.
        try:
            native = ctypes.cast(event_ptr, ctypes.POINTER(vlc.Event)).contents
            listeners = self._listeners.get(number(native.type), ())
            if not listeners:
                return
            event = decode_event(native)
            stack = _dispatch_stack()
            stack.append(self)
            try:
                for token in listeners:
                    if not token.active:
                        continue
                    try:
                        token.callback(event)
                    except Exception as exc:  # noqa: BLE001
                        self._report(ListenerError(event.kind, token, event, exc))
            finally:
                stack.pop()
        except BaseException as exc:  # noqa: BLE001
            log.critical("event_dispatch_failed", exc_info=exc, extra={"owner": self._owner})

    def _report(self, failure: ListenerError) -> None:
        log.error(
            "event_listener_failed",
            exc_info=failure.exception,
            extra={
                "owner": self._owner,
                "kind": _kind_name(failure.kind),
                "token": failure.token.token_id if failure.token else None,
            },
        )
        handler = self._on_error
        if handler is None:
            return
        try:
            handler(failure)
        except Exception as exc:  # noqa: BLE001
            log.error("event_error_handler_failed", exc_info=exc, extra={"owner": self._owner})


__all__ = [
    "ErrorHandler",
    "EventManager",
    "Listener",
    "ListenerError",
    "ListenerToken",
    "NativeEvents",
]
