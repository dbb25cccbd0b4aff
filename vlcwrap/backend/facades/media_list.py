"""``libvlc_media_list_t`` facade."""

from __future__ import annotations

from contextlib import contextmanager
from typing import TYPE_CHECKING, Any, Callable, Iterator, Optional

from vlcwrap.backend.events.kinds import EventKind
from vlcwrap.backend.events.manager import ListenerToken
from vlcwrap.backend.events.payloads import Event
from vlcwrap.backend.facades.base import NativeResource
from vlcwrap.backend.facades.media import Media
from vlcwrap.backend.handles import HandleKind

if TYPE_CHECKING:
    from vlcwrap.backend.facades.instance import Instance


class MediaList(NativeResource):
    """An ordered list of media.

    libvlc expects the list lock to be held around ``add_media``,
    ``insert_media``, ``remove_index``, ``count`` and ``item_at_index``; use
    :meth:`locked`. The lock is not recursive.
    """

    handle_kind = "media_list"
    event_manager_symbol = "libvlc_media_list_event_manager"

    def __init__(self, instance: "Instance") -> None:
        native = instance.native
        self._bind(self._adopt(native.libvlc_media_list_new(instance.address), native), native)

    @classmethod
    def _handle_kind(cls, native: Any) -> HandleKind:
        return HandleKind("media_list", native.libvlc_media_list_release, native.libvlc_media_list_retain)

    def _media(self, address: Optional[int]) -> Optional[Media]:
        # libvlc already retained the media it hands back from a list.
        if not address:
            return None
        return Media.wrap(address, native=self._native, retain=False)

    def set_media(self, media: Media) -> None:
        self._native.libvlc_media_list_set_media(self.address, media.address)

    def media(self) -> Optional[Media]:
        return self._media(self._native.libvlc_media_list_media(self.address))

    def add_media(self, media: Media) -> bool:
        return self._native.libvlc_media_list_add_media(self.address, media.address) == 0

    def insert_media(self, media: Media, index: int) -> bool:
        return self._native.libvlc_media_list_insert_media(self.address, media.address, index) == 0

    def remove_index(self, index: int) -> bool:
        return self._native.libvlc_media_list_remove_index(self.address, index) == 0

    def count(self) -> int:
        return self._native.libvlc_media_list_count(self.address)

    def __len__(self) -> int:
        return self.count()

    def item_at_index(self, index: int) -> Optional[Media]:
        return self._media(self._native.libvlc_media_list_item_at_index(self.address, index))

    def index_of_item(self, media: Media) -> int:
        """Position of ``media`` in the list, ``-1`` when absent."""

        return self._native.libvlc_media_list_index_of_item(self.address, media.address)

    def is_readonly(self) -> bool:
        return bool(self._native.libvlc_media_list_is_readonly(self.address))

    @contextmanager
    def locked(self) -> Iterator["MediaList"]:
        self._native.libvlc_media_list_lock(self.address)
        try:
            yield self
        finally:
            self._native.libvlc_media_list_unlock(self.address)

    def on_item_added(self, callback: Callable[[Media, int], Any]) -> ListenerToken:
        native = self._native

        def _listener(event: Event) -> None:
            callback(Media.wrap(event.media, native=native, retain=True), event.index)

        return self.on(EventKind.MediaListItemAdded, _listener)


__all__ = ["MediaList"]
