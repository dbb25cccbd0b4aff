"""``vlcwrap-probe``: inspect the libvlc build and media from the command line."""

from __future__ import annotations

import argparse
import sys
import threading
from typing import Any, Dict, List, Optional, Sequence

from vlcwrap import __version__
from vlcwrap.backend.common.errors import VlcWrapError
from vlcwrap.backend.common.logging import get_logger, init_logging
from vlcwrap.backend.common.types import ProbeReport
from vlcwrap.backend.events.kinds import FromType, Meta
from vlcwrap.backend.facades import Instance, Media, MediaDiscoverer
from vlcwrap.backend.native.library import get_native
from vlcwrap.config.settings import get_settings

from ._utils import build_subparser, exit_with_error, print_json, require_subcommand, to_serializable

log = get_logger(__name__)

_PROBED_META = (Meta.Title, Meta.Artist, Meta.Album, Meta.Genre, Meta.Date, Meta.NowPlaying)

# component -> symbols that must all be present
_FEATURES = {
    "events": ("libvlc_event_attach", "libvlc_event_detach"),
    "parse_async": ("libvlc_media_parse_async",),
    "media_stats": ("libvlc_media_get_stats",),
    "log_context": ("libvlc_log_get_context",),
    "discoverer": ("libvlc_media_discoverer_new",),
}


def quick_self_check(native: Any) -> ProbeReport:
    components = {
        "python": "ok" if sys.version_info >= (3, 10) else "degraded",
        "libvlc": "ok",
    }
    for component, symbols in _FEATURES.items():
        components[component] = "ok" if all(native.has(s) for s in symbols) else "degraded"
    if components["discoverer"] == "degraded" and native.has("libvlc_media_discoverer_new_from_name"):
        components["discoverer"] = "ok"

    status = "ok" if all(v == "ok" for v in components.values()) else "degraded"

    return {"status": status, "components": components}


def _handle_version(args: argparse.Namespace) -> None:
    native = get_native()
    print_json(
        {
            "vlcwrap": __version__,
            "libvlc": native.version(),
            "report": quick_self_check(native),
        }
    )


def _handle_media(args: argparse.Namespace) -> None:
    with Instance(native=get_native()) as instance:
        from_type = FromType.FromPath if args.path else FromType.FromLocation
        with Media(instance, args.mrl, from_type) as media:
            parsed = media.parse_and_wait(args.timeout)
            payload: Dict[str, Any] = {
                "mrl": media.mrl(),
                "parsed": parsed,
                "state": media.state(),
                "duration_ms": media.duration(),
                "meta": {meta.name: media.meta(meta) for meta in _PROBED_META},
                "tracks": media.tracks(),
            }
    print_json(to_serializable(payload))


def _handle_modules(args: argparse.Namespace) -> None:
    with Instance(native=get_native()) as instance:
        if args.kind == "audio":
            modules = instance.audio_filters()
        else:
            modules = instance.video_filters()
    print_json(to_serializable(modules))


def _handle_outputs(args: argparse.Namespace) -> None:
    with Instance(native=get_native()) as instance:
        outputs = []
        for output in instance.audio_outputs():
            devices = instance.audio_output_devices(output.name) if output.name else []
            outputs.append({"output": output, "devices": devices})
    print_json(to_serializable(outputs))


def _handle_discover(args: argparse.Namespace) -> None:
    found: List[Optional[str]] = []
    found_lock = threading.Lock()

    def _on_added(media: Media, index: int) -> None:
        mrl = media.mrl()
        media.close()
        with found_lock:
            found.append(mrl)

    with Instance(native=get_native()) as instance:
        with MediaDiscoverer(instance, args.name) as discoverer:
            with discoverer.media_list() as media_list:
                token = media_list.on_item_added(_on_added)
                started = discoverer.start()
                if started:
                    threading.Event().wait(args.seconds)
                discoverer.stop()
                media_list.off(token)
                native = instance.native
                localized = None
                if native.has("libvlc_media_discoverer_localized_name"):
                    localized = discoverer.localized_name()
    with found_lock:
        items = list(found)
    print_json(
        to_serializable(
            {
                "service": args.name,
                "localized_name": localized,
                "started": started,
                "items": items,
            }
        )
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="vlcwrap-probe", description="Inspect libvlc and media")
    subparsers = parser.add_subparsers(dest="command")
    require_subcommand(subparsers)

    version = build_subparser(subparsers, "version", help="libvlc version and feature report")
    version.set_defaults(handler=_handle_version)

    media = build_subparser(subparsers, "media", help="Parse a media and print its metadata")
    media.add_argument("mrl", help="Media location (URL) or, with --path, a local path")
    media.add_argument("--path", action="store_true", help="Interpret MRL as a filesystem path")
    media.add_argument("--timeout", type=float, default=None, help="Parse timeout in seconds")
    media.set_defaults(handler=_handle_media)

    modules = build_subparser(subparsers, "modules", help="List audio or video filter modules")
    modules.add_argument("kind", choices=("audio", "video"))
    modules.set_defaults(handler=_handle_modules)

    outputs = build_subparser(subparsers, "outputs", help="List audio outputs and their devices")
    outputs.set_defaults(handler=_handle_outputs)

    discover = build_subparser(subparsers, "discover", help="Run a media discoverer for a while")
    discover.add_argument("name", help="Discovery service name, e.g. upnp or sap")
    discover.add_argument("--seconds", type=float, default=3.0)
    discover.set_defaults(handler=_handle_discover)

    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        settings = get_settings()
        init_logging(settings.log_level, stream=sys.stderr)
        args.handler(args)
    except VlcWrapError as exc:
        log.error("probe_failed", extra={"command": args.command, "error": str(exc)})
        exit_with_error(str(exc))
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
