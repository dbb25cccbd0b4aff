from __future__ import annotations

import threading

from vlcwrap.backend.events import EventKind, EventManager, EventWaiter, State

from tests.conftest import FakeNative

EM = 0xF000


def test_waiter_returns_matching_event(native: FakeNative) -> None:
    manager = EventManager(EM, native, owner="test")

    with EventWaiter(manager, EventKind.MediaStateChanged, lambda e: e.state is State.Ended) as waiter:
        native.fire_on_manager(EM, EventKind.MediaStateChanged, new_state=int(State.Playing))
        assert waiter.event is None
        threading.Thread(
            target=native.fire_on_manager,
            args=(EM, EventKind.MediaStateChanged),
            kwargs={"new_state": int(State.Ended)},
        ).start()
        event = waiter.wait(5.0)

    assert event is not None
    assert event.state is State.Ended
    assert manager.listener_count(EventKind.MediaStateChanged) == 0
    assert native.count_calls("detach", EM, int(EventKind.MediaStateChanged)) == 1
    manager.teardown()


def test_waiter_times_out(native: FakeNative) -> None:
    manager = EventManager(EM, native, owner="test")

    with EventWaiter(manager, EventKind.MediaFreed) as waiter:
        assert waiter.wait(0.01) is None

    assert manager.attached_kinds == frozenset()
    manager.teardown()


def test_waiter_keeps_first_match(native: FakeNative) -> None:
    manager = EventManager(EM, native, owner="test")

    with EventWaiter(manager, EventKind.MediaDurationChanged) as waiter:
        native.fire_on_manager(EM, EventKind.MediaDurationChanged, new_duration=1000)
        native.fire_on_manager(EM, EventKind.MediaDurationChanged, new_duration=2000)
        event = waiter.wait(0)

    assert event.duration_ms == 1000
    manager.teardown()
