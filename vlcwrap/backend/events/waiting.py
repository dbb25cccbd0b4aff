"""Blocking waits layered on top of event subscriptions."""

from __future__ import annotations

import threading
from typing import Callable, Optional

from vlcwrap.backend.events.kinds import EventKindLike
from vlcwrap.backend.events.manager import EventManager, ListenerToken
from vlcwrap.backend.events.payloads import Event


class EventWaiter:
    """Wait for the first event of ``kind`` that satisfies ``predicate``.

    Use as a context manager so the subscription exists before the action
    that triggers the event::

        with EventWaiter(media.event_manager(), EventKind.MediaParsedChanged) as waiter:
            media.parse_async()
            event = waiter.wait(5.0)
    """

    def __init__(
        self,
        manager: EventManager,
        kind: EventKindLike,
        predicate: Optional[Callable[[Event], bool]] = None,
    ) -> None:
        self._manager = manager
        self._kind = kind
        self._predicate = predicate
        self._done = threading.Event()
        self._event: Optional[Event] = None
        self._token: Optional[ListenerToken] = None

    def __enter__(self) -> "EventWaiter":
        self._token = self._manager.subscribe(self._kind, self._on_event)
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if self._token is not None:
            self._manager.unsubscribe(self._token)
            self._token = None

    @property
    def event(self) -> Optional[Event]:
        return self._event

    def _on_event(self, event: Event) -> None:
        if self._done.is_set():
            return
        if self._predicate is not None and not self._predicate(event):
            return
        self._event = event
        self._done.set()

    def wait(self, timeout: Optional[float] = None) -> Optional[Event]:
        """Return the matching event, or ``None`` if ``timeout`` elapsed first."""

        if not self._done.wait(timeout):
            return None
        return self._event
