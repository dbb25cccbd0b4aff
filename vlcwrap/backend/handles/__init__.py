"""Reference-counted native handle ownership."""

from vlcwrap.backend.handles.box import AddressLike, HandleBox, HandleKind, as_address

__all__ = ["AddressLike", "HandleBox", "HandleKind", "as_address"]
