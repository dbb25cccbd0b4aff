"""``libvlc_media_discoverer_t`` facade."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Optional

from vlcwrap.backend.common.errors import HandleError
from vlcwrap.backend.common.logging import get_logger
from vlcwrap.backend.facades.base import NativeResource
from vlcwrap.backend.facades.media_list import MediaList
from vlcwrap.backend.handles import HandleKind

if TYPE_CHECKING:
    from vlcwrap.backend.facades.instance import Instance

log = get_logger(__name__)


class MediaDiscoverer(NativeResource):
    """A running discovery service (``upnp``, ``sap``, ...).

    libvlc does not reference count discoverers, so a discoverer has exactly
    one owner and cannot be copied.
    """

    handle_kind = "media_discoverer"
    event_manager_symbol = "libvlc_media_discoverer_event_manager"

    def __init__(self, instance: "Instance", name: str) -> None:
        native = instance.native
        encoded = name.encode("utf-8")
        if native.has("libvlc_media_discoverer_new"):
            address = native.libvlc_media_discoverer_new(instance.address, encoded)
        else:
            # libvlc 2.x: created already started.
            address = native.require("libvlc_media_discoverer_new_from_name")(instance.address, encoded)
        self._bind(self._adopt(address, native), native)
        self._name = name
        log.debug("discoverer_created", extra={"service": name})

    @classmethod
    def _handle_kind(cls, native: Any) -> HandleKind:
        return HandleKind("media_discoverer", native.libvlc_media_discoverer_release)

    def copy(self) -> "MediaDiscoverer":
        raise HandleError("media discoverers are not reference counted and cannot be copied")

    __copy__ = copy

    @property
    def name(self) -> str:
        return self._name

    def start(self) -> bool:
        if not self._native.has("libvlc_media_discoverer_start"):
            return self.is_running()
        return self._native.libvlc_media_discoverer_start(self.address) == 0

    def stop(self) -> None:
        if self._native.has("libvlc_media_discoverer_stop"):
            self._native.libvlc_media_discoverer_stop(self.address)

    def localized_name(self) -> Optional[str]:
        return self._native.require("libvlc_media_discoverer_localized_name")(self.address)

    def is_running(self) -> bool:
        return bool(self._native.libvlc_media_discoverer_is_running(self.address))

    def media_list(self) -> MediaList:
        # The returned list carries a reference for the caller.
        address = self._native.libvlc_media_discoverer_media_list(self.address)
        return MediaList.wrap(address, native=self._native, retain=False)


__all__ = ["MediaDiscoverer"]
