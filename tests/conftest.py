"""Shared pytest fixtures: an in-memory stand-in for the libvlc binding."""

from __future__ import annotations

import ctypes
import itertools
import threading
from collections import Counter
from typing import Any, Dict, List, Optional, Tuple

import pytest

from vlcwrap.backend.common.errors import FeatureUnavailable
from vlcwrap.backend.common.tasks import TaskSpec, get_deferred_runner
from vlcwrap.backend.events.kinds import EventKind
from vlcwrap.backend.native.pyvlc import vlc
from vlcwrap.backend.native.structures import list_item

# Process-wide so that two fakes never hand out the same address.
_ADDRESSES = itertools.count(0x10000, 0x100)


class FakeNative:
    """Records what the facades ask of libvlc and fires real ``libvlc_event_t``s."""

    def __init__(self, missing: Tuple[str, ...] = ()) -> None:
        self.missing = set(missing)
        self.lock = threading.RLock()
        self.calls: List[Tuple[Any, ...]] = []
        self.kinds: Dict[int, str] = {}
        self.refcounts: Dict[int, int] = {}
        self.retains: Counter = Counter()
        self.releases: Counter = Counter()
        self.errors: List[str] = []
        self.fail_create: set[str] = set()
        self.errmsg: Optional[bytes] = None
        self.attach_rc = 0
        self.attached: Dict[Tuple[int, int], Any] = {}
        self.event_managers: Dict[int, int] = {}
        self.exit_handlers: Dict[int, Any] = {}
        self.log_callbacks: Dict[int, Any] = {}
        self.interfaces = {"dummy"}
        self.mrls: Dict[int, str] = {}
        self.options: Dict[int, List[Tuple[str, int]]] = {}
        self.metas: Dict[Tuple[int, int], str] = {}
        self.durations: Dict[int, int] = {}
        self.parsed: set[int] = set()
        self.parse_fires = True
        self.user_data: Dict[int, Optional[int]] = {}
        self.lists: Dict[int, List[int]] = {}
        self.list_media: Dict[int, int] = {}
        self.discoverers: Dict[int, Dict[str, Any]] = {}
        self._keep: List[Any] = []
        self.track_spec: List[Tuple[int, Any]] = []

    # ------------------------------------------------------------------
    # Binding surface shared with NativeLibrary
    # ------------------------------------------------------------------
    def has(self, name: str) -> bool:
        return name not in self.missing and callable(getattr(self, name, None))

    def require(self, name: str):
        if not self.has(name):
            raise FeatureUnavailable(f"{name} is not available in libvlc fake")
        return getattr(self, name)

    def version(self) -> str:
        return "3.0.20 Vetinari"

    def last_error(self) -> Optional[str]:
        return self.errmsg.decode() if self.errmsg else None

    def format_log(self, fmt: Optional[bytes], args: Any) -> str:
        return fmt.decode() if fmt else ""

    def log_context(self, ctx: Any) -> Dict[str, Any]:
        return {"vlc_module": "fake"} if ctx else {}

    # ------------------------------------------------------------------
    # Bookkeeping helpers
    # ------------------------------------------------------------------
    def _create(self, kind: str) -> Optional[int]:
        with self.lock:
            if kind in self.fail_create:
                self.calls.append(("create_failed", kind))
                return None
            address = next(_ADDRESSES)
            self.kinds[address] = kind
            self.refcounts[address] = 1
            self.calls.append(("create", kind, address))
            return address

    def _retain(self, address: int) -> None:
        with self.lock:
            self.retains[address] += 1
            self.refcounts[address] += 1

    def _release(self, address: int) -> None:
        with self.lock:
            self.releases[address] += 1
            self.refcounts[address] -= 1
            if self.refcounts[address] < 0:
                self.errors.append(f"over-release of 0x{address:x}")

    def live(self, kind: Optional[str] = None) -> List[int]:
        with self.lock:
            return [
                a for a, count in self.refcounts.items() if count > 0 and (kind is None or self.kinds[a] == kind)
            ]

    def created(self, kind: str) -> List[int]:
        return [c[2] for c in self.calls if c[0] == "create" and c[1] == kind]

    def count_calls(self, name: str, *args: Any) -> int:
        return sum(1 for c in self.calls if c[0] == name and c[1 : 1 + len(args)] == args)

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------
    def _event_manager_of(self, address: int) -> int:
        with self.lock:
            em = self.event_managers.get(address)
            if em is None:
                em = self.event_managers[address] = next(_ADDRESSES)
            return em

    def libvlc_event_attach(self, manager: int, kind: int, callback: Any, user_data: Any) -> int:
        with self.lock:
            self.calls.append(("attach", manager, kind))
            if self.attach_rc != 0:
                return self.attach_rc
            if (manager, kind) in self.attached:
                self.errors.append(f"double attach of kind {kind}")
            self.attached[(manager, kind)] = callback
            return 0

    def libvlc_event_detach(self, manager: int, kind: int, callback: Any, user_data: Any) -> None:
        with self.lock:
            self.calls.append(("detach", manager, kind))
            if self.attached.pop((manager, kind), None) is None:
                self.errors.append(f"detach of unattached kind {kind}")

    def fire_on_manager(self, manager: int, kind: int, source: Optional[int] = None, **fields: Any) -> bool:
        """Invoke the trampoline attached for ``kind``; ``False`` when none is."""

        with self.lock:
            callback = self.attached.get((manager, int(kind)))
        if callback is None:
            return False
        event = vlc.Event()
        event.type = int(kind)
        event.object = source
        for name, value in fields.items():
            if name == "list_item":
                payload = list_item(event.u)
                payload.item, payload.index = value
            else:
                setattr(event.u, name, value)
        callback(ctypes.pointer(event), None)
        return True

    def fire(self, address: int, kind: int, **fields: Any) -> bool:
        return self.fire_on_manager(self._event_manager_of(address), kind, source=address, **fields)

    # ------------------------------------------------------------------
    # Core
    # ------------------------------------------------------------------
    def libvlc_new(self, argc: int, argv: List[bytes]) -> Optional[int]:
        args = [arg.decode() for arg in argv[:argc]]
        address = self._create("instance")
        if address is not None:
            self.calls.append(("instance_args", address, tuple(args)))
        return address

    def libvlc_retain(self, address: int) -> None:
        self._retain(address)

    def libvlc_release(self, address: int) -> None:
        self._release(address)

    def libvlc_add_intf(self, address: int, name: bytes) -> int:
        return 0 if name.decode() in self.interfaces else -1

    def libvlc_set_exit_handler(self, address: int, callback: Any, opaque: Any) -> None:
        self.calls.append(("set_exit_handler", address, bool(callback)))
        if callback:
            self.exit_handlers[address] = callback
        else:
            self.exit_handlers.pop(address, None)

    def libvlc_set_user_agent(self, address: int, name: bytes, http: bytes) -> None:
        self.calls.append(("set_user_agent", address, name, http))

    def libvlc_set_app_id(self, address: int, app_id: bytes, version: bytes, icon: bytes) -> None:
        self.calls.append(("set_app_id", address, app_id, version, icon))

    def libvlc_log_set(self, address: int, callback: Any, data: Any) -> None:
        self.calls.append(("log_set", address))
        self.log_callbacks[address] = callback

    def libvlc_log_unset(self, address: int) -> None:
        self.calls.append(("log_unset", address))
        self.log_callbacks.pop(address, None)

    def emit_log(self, address: int, level: int, message: str, ctx: Optional[int] = None) -> None:
        context = ctypes.cast(ctx, vlc.Log_ptr) if ctx else None
        self.log_callbacks[address](None, level, context, message.encode(), None)

    def _module_list(self, names: List[str]):
        head = ctypes.POINTER(vlc.ModuleDescription)()
        for name in reversed(names):
            node = vlc.ModuleDescription(
                name=name.encode(),
                shortname=name.upper().encode(),
                longname=f"{name} filter".encode(),
                help=None,
                next=head,
            )
            self._keep.append(node)
            head = ctypes.pointer(node)
        return head

    def libvlc_audio_filter_list_get(self, address: int):
        return self._module_list(["equalizer", "compressor"])

    def libvlc_video_filter_list_get(self, address: int):
        return self._module_list([])

    def libvlc_module_description_list_release(self, head: Any) -> None:
        self.calls.append(("module_list_release",))

    def libvlc_audio_output_list_get(self, address: int):
        second = vlc.AudioOutput(name=b"pulse", description=b"PulseAudio")
        first = vlc.AudioOutput(name=b"alsa", description=b"ALSA", next=ctypes.pointer(second))
        self._keep.extend([first, second])
        return ctypes.pointer(first)

    def libvlc_audio_output_list_release(self, head: Any) -> None:
        self.calls.append(("audio_output_list_release",))

    def libvlc_audio_output_device_list_get(self, address: int, aout: bytes):
        if aout != b"alsa":
            return ctypes.POINTER(vlc.AudioOutputDevice)()
        device = vlc.AudioOutputDevice(device=b"hw:0,0", description=b"Built-in")
        self._keep.append(device)
        return ctypes.pointer(device)

    def libvlc_audio_output_device_list_release(self, head: Any) -> None:
        self.calls.append(("audio_output_device_list_release",))

    # ------------------------------------------------------------------
    # Media
    # ------------------------------------------------------------------
    def _new_media(self, mrl: str) -> Optional[int]:
        address = self._create("media")
        if address is not None:
            self.mrls[address] = mrl
        return address

    def libvlc_media_new_location(self, instance: int, mrl: bytes) -> Optional[int]:
        return self._new_media(mrl.decode())

    def libvlc_media_new_path(self, instance: int, path: bytes) -> Optional[int]:
        return self._new_media("file://" + path.decode())

    def libvlc_media_new_as_node(self, instance: int, name: bytes) -> Optional[int]:
        return self._new_media("vlc://nop")

    def libvlc_media_new_fd(self, instance: int, fd: int) -> Optional[int]:
        return self._new_media(f"fd://{fd}")

    def libvlc_media_retain(self, address: int) -> None:
        self._retain(address)

    def libvlc_media_release(self, address: int) -> None:
        self._release(address)

    def libvlc_media_add_option(self, address: int, option: bytes) -> None:
        self.options.setdefault(address, []).append((option.decode(), 0))

    def libvlc_media_add_option_flag(self, address: int, option: bytes, flags: int) -> None:
        self.options.setdefault(address, []).append((option.decode(), flags))

    def libvlc_media_get_mrl(self, address: int) -> Optional[str]:
        return self.mrls.get(address)

    def libvlc_media_duplicate(self, address: int) -> Optional[int]:
        return self._new_media(self.mrls[address])

    def libvlc_media_get_meta(self, address: int, meta: int) -> Optional[str]:
        return self.metas.get((address, meta))

    def libvlc_media_set_meta(self, address: int, meta: int, value: bytes) -> None:
        self.metas[(address, meta)] = value.decode()

    def libvlc_media_save_meta(self, address: int) -> int:
        return 1

    def libvlc_media_get_state(self, address: int) -> int:
        return 0

    def libvlc_media_get_stats(self, address: int, stats: Any) -> int:
        stats.contents.read_bytes = 4096
        stats.contents.input_bitrate = 1.5
        return 1

    def libvlc_media_event_manager(self, address: int) -> int:
        return self._event_manager_of(address)

    def libvlc_media_get_duration(self, address: int) -> int:
        return self.durations.get(address, -1)

    def libvlc_media_parse(self, address: int) -> None:
        self.parsed.add(address)

    def libvlc_media_parse_async(self, address: int) -> None:
        self.calls.append(("parse_async", address))
        if not self.parse_fires:
            return

        def _finish() -> None:
            self.parsed.add(address)
            self.fire(address, EventKind.MediaParsedChanged, new_status=4)

        threading.Thread(target=_finish, daemon=True).start()

    def libvlc_media_is_parsed(self, address: int) -> int:
        return int(address in self.parsed)

    def libvlc_media_set_user_data(self, address: int, data: Optional[int]) -> None:
        self.user_data[address] = data

    def libvlc_media_get_user_data(self, address: int) -> Optional[int]:
        return self.user_data.get(address)

    def libvlc_media_tracks_get(self, address: int, out: Any) -> int:
        entries = []
        for track_type, detail in self.track_spec:
            track = vlc.MediaTrack()
            track.codec = int.from_bytes(b"h264" if track_type == 1 else b"mp4a", "little")
            track.id = len(entries)
            track.type = track_type
            track.language = b"en"
            if track_type == 0:
                track.audio = ctypes.pointer(detail)
            elif track_type == 1:
                track.video = ctypes.pointer(detail)
            self._keep.extend([track, detail])
            entries.append(ctypes.pointer(track))
        if not entries:
            return 0
        array = (ctypes.POINTER(vlc.MediaTrack) * len(entries))(*entries)
        self._keep.append(array)
        out[0] = ctypes.cast(array, ctypes.POINTER(vlc.MediaTrack))
        return len(entries)

    def libvlc_media_tracks_release(self, array: Any, count: int) -> None:
        self.calls.append(("tracks_release", count))

    # ------------------------------------------------------------------
    # Media list
    # ------------------------------------------------------------------
    def libvlc_media_list_new(self, instance: int) -> Optional[int]:
        address = self._create("media_list")
        if address is not None:
            self.lists[address] = []
        return address

    def libvlc_media_list_retain(self, address: int) -> None:
        self._retain(address)

    def libvlc_media_list_release(self, address: int) -> None:
        self._release(address)
        if self.refcounts[address] == 0:
            for media in self.lists.pop(address, []):
                self._release(media)
            media = self.list_media.pop(address, None)
            if media:
                self._release(media)

    def libvlc_media_list_set_media(self, address: int, media: int) -> None:
        self._retain(media)
        previous = self.list_media.get(address)
        self.list_media[address] = media
        if previous:
            self._release(previous)

    def libvlc_media_list_media(self, address: int) -> Optional[int]:
        media = self.list_media.get(address)
        if media:
            self._retain(media)
        return media

    def libvlc_media_list_add_media(self, address: int, media: int) -> int:
        return self.libvlc_media_list_insert_media(address, media, len(self.lists[address]))

    def libvlc_media_list_insert_media(self, address: int, media: int, index: int) -> int:
        items = self.lists[address]
        if index < 0 or index > len(items):
            return -1
        self._retain(media)
        items.insert(index, media)
        self.fire(address, EventKind.MediaListItemAdded, list_item=(media, index))
        return 0

    def libvlc_media_list_remove_index(self, address: int, index: int) -> int:
        items = self.lists[address]
        if index < 0 or index >= len(items):
            return -1
        self._release(items.pop(index))
        return 0

    def libvlc_media_list_count(self, address: int) -> int:
        return len(self.lists[address])

    def libvlc_media_list_item_at_index(self, address: int, index: int) -> Optional[int]:
        items = self.lists[address]
        if index < 0 or index >= len(items):
            return None
        self._retain(items[index])
        return items[index]

    def libvlc_media_list_index_of_item(self, address: int, media: int) -> int:
        items = self.lists[address]
        return items.index(media) if media in items else -1

    def libvlc_media_list_is_readonly(self, address: int) -> int:
        return 0

    def libvlc_media_list_lock(self, address: int) -> None:
        self.calls.append(("list_lock", address))

    def libvlc_media_list_unlock(self, address: int) -> None:
        self.calls.append(("list_unlock", address))

    def libvlc_media_list_event_manager(self, address: int) -> int:
        return self._event_manager_of(address)

    # ------------------------------------------------------------------
    # Media discoverer
    # ------------------------------------------------------------------
    def _new_discoverer(self, name: bytes) -> Optional[int]:
        if name == b"nope":
            self.errmsg = b"no such service"
            return None
        address = self._create("media_discoverer")
        if address is not None:
            self.discoverers[address] = {"name": name.decode(), "running": False, "list": None}
        return address

    def libvlc_media_discoverer_new(self, instance: int, name: bytes) -> Optional[int]:
        return self._new_discoverer(name)

    def libvlc_media_discoverer_new_from_name(self, instance: int, name: bytes) -> Optional[int]:
        address = self._new_discoverer(name)
        if address is not None:
            self.discoverers[address]["running"] = True
        return address

    def libvlc_media_discoverer_start(self, address: int) -> int:
        self.discoverers[address]["running"] = True
        return 0

    def libvlc_media_discoverer_stop(self, address: int) -> None:
        self.discoverers[address]["running"] = False

    def libvlc_media_discoverer_release(self, address: int) -> None:
        self._release(address)
        state = self.discoverers.get(address)
        if self.refcounts[address] == 0 and state and state["list"]:
            self.libvlc_media_list_release(state["list"])

    def libvlc_media_discoverer_localized_name(self, address: int) -> Optional[str]:
        return self.discoverers[address]["name"].upper()

    def libvlc_media_discoverer_media_list(self, address: int) -> Optional[int]:
        state = self.discoverers[address]
        if state["list"] is None:
            state["list"] = self.libvlc_media_list_new(0)
        self._retain(state["list"])
        return state["list"]

    def libvlc_media_discoverer_event_manager(self, address: int) -> int:
        return self._event_manager_of(address)

    def libvlc_media_discoverer_is_running(self, address: int) -> int:
        return int(self.discoverers[address]["running"])


def drain_deferred(timeout: float = 5.0) -> None:
    """Block until everything queued on the deferred runner so far has run."""

    get_deferred_runner().submit(TaskSpec(fn=lambda: None, name="test_barrier")).result(timeout)


@pytest.fixture
def native() -> FakeNative:
    return FakeNative()


@pytest.fixture
def instance(native):
    from vlcwrap.backend.facades import Instance

    inst = Instance(["--no-video"], native=native, forward_native_logs=False)
    yield inst
    inst.close()


@pytest.fixture(autouse=True)
def _isolated_settings(monkeypatch, tmp_path):
    from vlcwrap.config.settings import core

    for name in (
        "VLCWRAP_APP_NAME",
        "VLCWRAP_ENV",
        "VLCWRAP_LOG_LEVEL",
        "VLCWRAP_INSTANCE_ARGS",
        "VLCWRAP_FORWARD_NATIVE_LOGS",
        "VLCWRAP_PARSE_TIMEOUT_SEC",
        "VLCWRAP_VLC_ROOT",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("VLCWRAP_USER_SETTINGS", str(tmp_path / "user_settings.json"))
    monkeypatch.setattr(core, "_SETTINGS_SINGLETON", None)
    yield
    drain_deferred()


__all__ = ["FakeNative", "drain_deferred"]
