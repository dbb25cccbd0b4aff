"""Declarations python-vlc leaves out.

Everything else (``vlc.Event``, the callback types and the description
structures) comes from python-vlc itself.
"""

from __future__ import annotations

import ctypes

# void (*cb)(void *opaque); python-vlc does not bind libvlc_set_exit_handler.
ExitCallback = ctypes.CFUNCTYPE(None, ctypes.c_void_p)


class ListItemPayload(ctypes.Structure):
    """``u.media_list_item_*``: a media pointer and its index.

    python-vlc's ``EventUnion`` has no member for these events; the struct is
    laid over the union.
    """

    _fields_ = [
        ("item", ctypes.c_void_p),
        ("index", ctypes.c_int),
    ]


def list_item(union: ctypes.Union) -> ListItemPayload:
    return ListItemPayload.from_buffer(union)


def union_int(union: ctypes.Union) -> int:
    """The union's first member read as a C ``int``.

    libvlc stores seekable, pausable and vout counts as ``int`` where
    python-vlc declares ``long long``; the upper half is not written.
    """

    return ctypes.c_int.from_buffer(union).value


__all__ = ["ExitCallback", "ListItemPayload", "list_item", "union_int"]
