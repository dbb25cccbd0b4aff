"""The libvlc instance facade and its process-wide exit/log hooks."""

from __future__ import annotations

import logging
import threading
from collections import Counter
from dataclasses import dataclass
from functools import partial
from typing import Any, Callable, Dict, List, Optional, Sequence

from vlcwrap.backend.common.logging import get_logger
from vlcwrap.backend.facades.base import NativeResource
from vlcwrap.backend.facades.descriptions import (
    AudioOutputDescription,
    AudioOutputDeviceDescription,
    ModuleDescription,
)
from vlcwrap.backend.handles import HandleBox, HandleKind
from vlcwrap.backend.native.library import get_native
from vlcwrap.backend.native.pyvlc import vlc
from vlcwrap.backend.native.structures import ExitCallback

log = get_logger(__name__)

LogHandler = Callable[[int, str, Dict[str, Any]], None]

# libvlc_log_level -> logging level
_NATIVE_LEVELS = {
    0: logging.DEBUG,
    2: logging.INFO,
    3: logging.WARNING,
    4: logging.ERROR,
}


# ----------------------------------------------------------------------
# Exit and log hooks
#
# libvlc keeps one exit handler and one log callback per instance. The ctypes
# trampolines live here, keyed by instance address, for as long as libvlc may
# call them. Installing a hook replaces the previous one. The entry is dropped
# when the last Instance owning that address releases it.
# ----------------------------------------------------------------------
@dataclass
class _InstanceHooks:
    exit: Optional[Any] = None
    log: Optional[Any] = None


_HOOKS: Dict[int, _InstanceHooks] = {}
_OWNERS: Counter = Counter()
_HOOKS_LOCK = threading.Lock()


def _swap_hook(address: int, slot: str, trampoline: Optional[Any]) -> Optional[Any]:
    with _HOOKS_LOCK:
        hooks = _HOOKS.setdefault(address, _InstanceHooks())
        previous = getattr(hooks, slot)
        setattr(hooks, slot, trampoline)
        if hooks.exit is None and hooks.log is None:
            del _HOOKS[address]
        return previous


def installed_hooks(address: int) -> Dict[str, bool]:
    with _HOOKS_LOCK:
        hooks = _HOOKS.get(address)
        if hooks is None:
            return {"exit": False, "log": False}
        return {"exit": hooks.exit is not None, "log": hooks.log is not None}


def _owner_added(address: int) -> None:
    with _HOOKS_LOCK:
        _OWNERS[address] += 1


def _owner_released(address: int) -> None:
    with _HOOKS_LOCK:
        _OWNERS[address] -= 1
        if _OWNERS[address] > 0:
            return
        del _OWNERS[address]
        hooks = _HOOKS.pop(address, None)
    if hooks is not None:
        log.debug("instance_hooks_dropped", extra={"address": hex(address)})


class Instance(NativeResource):
    """``libvlc_instance_t``."""

    handle_kind = "instance"

    def __init__(
        self,
        args: Optional[Sequence[str]] = None,
        *,
        native: Any = None,
        forward_native_logs: Optional[bool] = None,
    ) -> None:
        native = native or get_native()
        if args is None or forward_native_logs is None:
            from vlcwrap.config.settings import get_settings

            settings = get_settings()
            if args is None:
                args = settings.instance_args
            if forward_native_logs is None:
                forward_native_logs = settings.forward_native_logs
        encoded = [arg.encode("utf-8") for arg in args]
        self._bind(self._adopt(native.libvlc_new(len(encoded), encoded), native), native)
        log.info("instance_created", extra={"argc": len(encoded)})
        if forward_native_logs:
            self.forward_logs()

    @classmethod
    def _handle_kind(cls, native: Any) -> HandleKind:
        return HandleKind("instance", native.libvlc_release, native.libvlc_retain)

    def _bind(self, box: HandleBox, native: Any) -> None:
        super()._bind(box, native)
        address = box.address
        if address:
            _owner_added(address)
            self._ownership.on_released = partial(_owner_released, address)

    # ------------------------------------------------------------------
    # Core
    # ------------------------------------------------------------------
    def add_intf(self, name: str) -> bool:
        return self._native.libvlc_add_intf(self.address, name.encode("utf-8")) == 0

    def set_user_agent(self, name: str, http: str) -> None:
        self._native.libvlc_set_user_agent(self.address, name.encode("utf-8"), http.encode("utf-8"))

    def set_app_id(self, app_id: str, version: str, icon: str) -> None:
        self._native.libvlc_set_app_id(
            self.address,
            app_id.encode("utf-8"),
            version.encode("utf-8"),
            icon.encode("utf-8"),
        )

    def set_exit_handler(self, callback: Optional[Callable[[], None]]) -> None:
        """Install (or with ``None`` remove) the instance exit handler.

        The handler runs on a libvlc thread when an interface requests exit.
        It must not release the instance.
        """

        address = self.address
        set_exit_handler = self._native.require("libvlc_set_exit_handler")
        if callback is None:
            set_exit_handler(address, ExitCallback(), None)
            _swap_hook(address, "exit", None)
            return

        def _on_exit(_opaque) -> None:
            try:
                callback()
            except Exception as exc:  # noqa: BLE001
                log.error("exit_handler_failed", exc_info=exc)

        trampoline = ExitCallback(_on_exit)
        previous = _swap_hook(address, "exit", trampoline)
        if previous is not None:
            log.warning("exit_handler_replaced", extra={"address": hex(address)})
        set_exit_handler(address, trampoline, None)

    # ------------------------------------------------------------------
    # Logging
    # ------------------------------------------------------------------
    def log_set(self, handler: LogHandler) -> None:
        """Route libvlc log messages to ``handler(level, message, context)``.

        ``context`` carries ``vlc_module``, ``vlc_file`` and ``vlc_line`` when
        the library exposes them.
        """

        native = self._native
        address = self.address

        def _on_log(_data, level, ctx, fmt, args) -> None:
            try:
                message = native.format_log(fmt, args)
                handler(level, message, native.log_context(ctx))
            except Exception as exc:  # noqa: BLE001
                log.error("log_handler_failed", exc_info=exc)

        trampoline = vlc.CallbackDecorators.LogCb(_on_log)
        previous = _swap_hook(address, "log", trampoline)
        if previous is not None:
            log.warning("log_handler_replaced", extra={"address": hex(address)})
        native.libvlc_log_set(address, trampoline, None)

    def log_unset(self) -> None:
        address = self.address
        self._native.libvlc_log_unset(address)
        _swap_hook(address, "log", None)

    def forward_logs(self, logger: Optional[logging.Logger] = None) -> None:
        """Forward libvlc log messages into ``logger`` (``vlcwrap.libvlc`` by default)."""

        target = logger or get_logger("vlcwrap.libvlc")

        def _forward(level: int, message: str, context: Dict[str, Any]) -> None:
            target.log(_NATIVE_LEVELS.get(level, logging.INFO), message, extra=context)

        self.log_set(_forward)

    # ------------------------------------------------------------------
    # Module and output listings
    # ------------------------------------------------------------------
    def audio_filters(self) -> List[ModuleDescription]:
        return self._modules(self._native.libvlc_audio_filter_list_get)

    def video_filters(self) -> List[ModuleDescription]:
        return self._modules(self._native.libvlc_video_filter_list_get)

    def _modules(self, getter: Callable[[int], Any]) -> List[ModuleDescription]:
        head = getter(self.address)
        if not head:
            return []
        try:
            return ModuleDescription.read_list(head)
        finally:
            self._native.libvlc_module_description_list_release(head)

    def audio_outputs(self) -> List[AudioOutputDescription]:
        head = self._native.libvlc_audio_output_list_get(self.address)
        if not head:
            return []
        try:
            return AudioOutputDescription.read_list(head)
        finally:
            self._native.libvlc_audio_output_list_release(head)

    def audio_output_devices(self, aout: str) -> List[AudioOutputDeviceDescription]:
        head = self._native.libvlc_audio_output_device_list_get(self.address, aout.encode("utf-8"))
        if not head:
            return []
        try:
            return AudioOutputDeviceDescription.read_list(head)
        finally:
            self._native.libvlc_audio_output_device_list_release(head)


def version(native: Any = None) -> str:
    return (native or get_native()).version()


__all__ = ["Instance", "LogHandler", "installed_hooks", "version"]
