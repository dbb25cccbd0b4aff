"""``libvlc_media_t`` facade."""

from __future__ import annotations

import ctypes
from typing import TYPE_CHECKING, Any, Callable, List, Optional, Union

from vlcwrap.backend.common.logging import get_logger
from vlcwrap.backend.events.kinds import (
    EventKind,
    FromType,
    Meta,
    ParsedStatus,
    State,
    as_state,
)
from vlcwrap.backend.events.manager import ListenerToken
from vlcwrap.backend.events.payloads import Event
from vlcwrap.backend.events.waiting import EventWaiter
from vlcwrap.backend.facades.base import NativeResource
from vlcwrap.backend.facades.descriptions import MediaStats, MediaTrack, read_tracks
from vlcwrap.backend.handles import HandleKind
from vlcwrap.backend.native.pyvlc import vlc

if TYPE_CHECKING:
    from vlcwrap.backend.facades.instance import Instance

log = get_logger(__name__)

_CONSTRUCTORS = {
    FromType.FromPath: "libvlc_media_new_path",
    FromType.FromLocation: "libvlc_media_new_location",
    FromType.AsNode: "libvlc_media_new_as_node",
}


class Media(NativeResource):
    handle_kind = "media"
    event_manager_symbol = "libvlc_media_event_manager"

    def __init__(
        self,
        instance: "Instance",
        mrl: str,
        from_type: FromType = FromType.FromLocation,
    ) -> None:
        native = instance.native
        create = getattr(native, _CONSTRUCTORS[FromType(from_type)])
        address = create(instance.address, mrl.encode("utf-8"))
        self._bind(self._adopt(address, native), native)
        log.debug("media_created", extra={"mrl": mrl, "from_type": FromType(from_type).name})

    @classmethod
    def from_fd(cls, instance: "Instance", fd: int) -> "Media":
        """Create a media reading from an open file descriptor.

        The descriptor stays owned by the caller and must outlive the media.
        """

        native = instance.native
        box = cls._adopt(native.libvlc_media_new_fd(instance.address, fd), native)
        return cls._from_box(box, native)

    @classmethod
    def _handle_kind(cls, native: Any) -> HandleKind:
        return HandleKind("media", native.libvlc_media_release, native.libvlc_media_retain)

    # ------------------------------------------------------------------
    # Options and metadata
    # ------------------------------------------------------------------
    def add_option(self, option: str) -> None:
        self._native.libvlc_media_add_option(self.address, option.encode("utf-8"))

    def add_option_flag(self, option: str, flags: int) -> None:
        self._native.libvlc_media_add_option_flag(self.address, option.encode("utf-8"), flags)

    def mrl(self) -> Optional[str]:
        return self._native.libvlc_media_get_mrl(self.address)

    def duplicate(self) -> "Media":
        """A new native media with the same MRL and options (not a copy of this handle)."""

        native = self._native
        return self._from_box(self._adopt(native.libvlc_media_duplicate(self.address), native), native)

    def meta(self, meta: Meta) -> Optional[str]:
        return self._native.libvlc_media_get_meta(self.address, int(meta))

    def set_meta(self, meta: Meta, value: str) -> None:
        self._native.libvlc_media_set_meta(self.address, int(meta), value.encode("utf-8"))

    def save_meta(self) -> bool:
        return bool(self._native.libvlc_media_save_meta(self.address))

    def state(self) -> Union[State, int]:
        return as_state(self._native.libvlc_media_get_state(self.address))

    def stats(self) -> Optional[MediaStats]:
        get_stats = self._native.require("libvlc_media_get_stats")
        raw = vlc.MediaStats()
        if not get_stats(self.address, ctypes.pointer(raw)):
            return None
        return MediaStats.from_struct(raw)

    def duration(self) -> int:
        """Duration in milliseconds, ``-1`` while unknown."""

        return int(self._native.libvlc_media_get_duration(self.address))

    def user_data(self) -> Optional[int]:
        return self._native.libvlc_media_get_user_data(self.address) or None

    def set_user_data(self, data: Optional[int]) -> None:
        self._native.libvlc_media_set_user_data(self.address, data)

    def tracks(self) -> List[MediaTrack]:
        native = self._native
        array = ctypes.POINTER(vlc.MediaTrack)()
        count = native.libvlc_media_tracks_get(self.address, ctypes.pointer(array))
        if not count:
            return []
        try:
            return read_tracks(array, count)
        finally:
            native.libvlc_media_tracks_release(array, count)

    # ------------------------------------------------------------------
    # Parsing
    # ------------------------------------------------------------------
    def parse(self) -> None:
        """Parse synchronously on the calling thread."""

        self._native.require("libvlc_media_parse")(self.address)

    def parse_async(self) -> None:
        """Start parsing; completion is signalled by ``MediaParsedChanged``."""

        self._native.require("libvlc_media_parse_async")(self.address)

    def is_parsed(self) -> bool:
        return bool(self._native.libvlc_media_is_parsed(self.address))

    def parse_and_wait(self, timeout: Optional[float] = None) -> bool:
        """Parse asynchronously and block until parsed or ``timeout`` seconds pass.

        ``timeout`` defaults to ``parse_timeout_sec`` from the settings.
        Returns whether a parsed notification arrived in time.
        """

        if self.is_parsed():
            return True
        if timeout is None:
            from vlcwrap.config.settings import get_settings

            timeout = get_settings().parse_timeout_sec
        with EventWaiter(self.event_manager(), EventKind.MediaParsedChanged) as waiter:
            # Parsed between the first check and the subscription.
            if self.is_parsed():
                return True
            self.parse_async()
            event = waiter.wait(timeout)
        if event is None:
            log.info("media_parse_timeout", extra={"timeout": timeout})
            return False
        return True

    # ------------------------------------------------------------------
    # Typed event helpers
    # ------------------------------------------------------------------
    def on_sub_item_added(self, callback: Callable[["Media"], Any]) -> ListenerToken:
        native = self._native

        def _listener(event: Event) -> None:
            callback(Media.wrap(event.media, native=native, retain=True))

        return self.on(EventKind.MediaSubItemAdded, _listener)

    def on_parsed_changed(self, callback: Callable[[Union[ParsedStatus, int]], Any]) -> ListenerToken:
        return self.on(EventKind.MediaParsedChanged, lambda event: callback(event.status))

    def on_state_changed(self, callback: Callable[[Union[State, int]], Any]) -> ListenerToken:
        return self.on(EventKind.MediaStateChanged, lambda event: callback(event.state))


__all__ = ["Media"]
