"""Process-wide map from a native object to its one live :class:`EventManager`."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from vlcwrap.backend.common.logging import get_logger
from vlcwrap.backend.events.manager import EventManager

log = get_logger(__name__)


@dataclass
class _Slot:
    manager: EventManager
    owners: int = 0


_SLOTS: Dict[int, _Slot] = {}
_SLOTS_LOCK = threading.Lock()


def acquire_event_manager(address: int, factory: Callable[[], EventManager]) -> EventManager:
    """Return the manager for the object at ``address``, creating it on first use.

    Every call must be balanced by :func:`release_event_manager`.
    """

    with _SLOTS_LOCK:
        slot = _SLOTS.get(address)
        if slot is None:
            slot = _SLOTS[address] = _Slot(factory())
        slot.owners += 1
        return slot.manager


def release_event_manager(address: int, manager: EventManager) -> bool:
    """Drop one owner; the last owner tears the manager down.

    Returns ``True`` when the manager was torn down.
    """

    with _SLOTS_LOCK:
        slot = _SLOTS.get(address)
        if slot is None or slot.manager is not manager:
            return False
        slot.owners -= 1
        if slot.owners > 0:
            return False
        del _SLOTS[address]
    manager.teardown()
    return True


def lookup_event_manager(address: int) -> Optional[EventManager]:
    with _SLOTS_LOCK:
        slot = _SLOTS.get(address)
        return slot.manager if slot else None


def live_event_managers() -> int:
    with _SLOTS_LOCK:
        return len(_SLOTS)
