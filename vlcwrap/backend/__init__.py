"""Backend public interfaces with lazy loading to avoid circular imports."""

from __future__ import annotations

import importlib
from typing import TYPE_CHECKING, Any

__all__ = [
    "Event",
    "EventKind",
    "EventManager",
    "EventWaiter",
    "HandleBox",
    "HandleKind",
    "Instance",
    "ListenerError",
    "ListenerToken",
    "Media",
    "MediaDiscoverer",
    "MediaList",
    "NativeLibrary",
    "get_native",
]

_MODULE_EXPORTS = {
    "events": {
        "Event",
        "EventKind",
        "EventManager",
        "EventWaiter",
        "ListenerError",
        "ListenerToken",
    },
    "handles": {
        "HandleBox",
        "HandleKind",
    },
    "facades": {
        "Instance",
        "Media",
        "MediaDiscoverer",
        "MediaList",
    },
    "native": {
        "NativeLibrary",
        "get_native",
    },
}

if TYPE_CHECKING:  # pragma: no cover - for static analysis only
    from .events import Event, EventKind, EventManager, EventWaiter, ListenerError, ListenerToken
    from .facades import Instance, Media, MediaDiscoverer, MediaList
    from .handles import HandleBox, HandleKind
    from .native import NativeLibrary, get_native


def __getattr__(name: str) -> Any:
    for module_name, symbols in _MODULE_EXPORTS.items():
        if name in symbols:
            module = importlib.import_module(f"{__name__}.{module_name}")
            value = getattr(module, name)
            globals()[name] = value
            return value
    raise AttributeError(f"module '{__name__}' has no attribute '{name}'")


def __dir__() -> list[str]:
    exported = set(__all__)
    for symbols in _MODULE_EXPORTS.values():
        exported.update(symbols)
    exported.update(globals().keys())
    return sorted(exported)
