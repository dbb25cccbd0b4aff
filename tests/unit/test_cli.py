from __future__ import annotations

import json

import pytest

from vlcwrap.cli import probe

from tests.conftest import FakeNative


@pytest.fixture
def cli_native(monkeypatch) -> FakeNative:
    fake = FakeNative()
    monkeypatch.setattr(probe, "get_native", lambda: fake)
    monkeypatch.setattr(probe, "init_logging", lambda *args, **kwargs: None)
    return fake


def run(capsys, *argv: str):
    assert probe.main(list(argv)) == 0
    return json.loads(capsys.readouterr().out)


def test_version_reports_features(cli_native: FakeNative, capsys) -> None:
    payload = run(capsys, "version")

    assert payload["libvlc"] == "3.0.20 Vetinari"
    assert payload["report"]["components"]["events"] == "ok"
    assert payload["report"]["components"]["log_context"] == "degraded"
    assert payload["report"]["status"] == "degraded"


def test_media_command(cli_native: FakeNative, capsys) -> None:
    payload = run(capsys, "media", "http://example.invalid/m.mkv", "--timeout", "5")

    assert payload["mrl"] == "http://example.invalid/m.mkv"
    assert payload["parsed"] is True
    assert payload["state"] == "NothingSpecial"
    assert payload["meta"]["Title"] is None
    assert payload["tracks"] == []
    assert cli_native.live() == []


def test_media_command_with_path(cli_native: FakeNative, capsys) -> None:
    payload = run(capsys, "media", "/videos/a.mkv", "--path", "--timeout", "5")

    assert payload["mrl"] == "file:///videos/a.mkv"


def test_modules_and_outputs(cli_native: FakeNative, capsys) -> None:
    modules = run(capsys, "modules", "audio")
    outputs = run(capsys, "outputs")

    assert [m["name"] for m in modules] == ["equalizer", "compressor"]
    assert outputs[0]["output"]["name"] == "alsa"
    assert outputs[0]["devices"] == [{"device": "hw:0,0", "description": "Built-in"}]
    assert outputs[1]["devices"] == []


def test_discover_collects_items(cli_native: FakeNative, capsys) -> None:
    original_start = cli_native.libvlc_media_discoverer_start

    def start_and_find(address: int) -> int:
        rc = original_start(address)
        media_list = cli_native.discoverers[address]["list"]
        media = cli_native.libvlc_media_new_location(0, b"upnp://server/movie.mkv")
        cli_native.libvlc_media_list_add_media(media_list, media)
        cli_native.libvlc_media_release(media)
        return rc

    cli_native.libvlc_media_discoverer_start = start_and_find

    payload = run(capsys, "discover", "upnp", "--seconds", "0")

    assert payload == {
        "service": "upnp",
        "localized_name": "UPNP",
        "started": True,
        "items": ["upnp://server/movie.mkv"],
    }
    assert cli_native.live() == []
    assert cli_native.errors == []


def test_errors_exit_non_zero(cli_native: FakeNative, capsys) -> None:
    with pytest.raises(SystemExit) as excinfo:
        probe.main(["discover", "nope"])

    assert excinfo.value.code == 1
    assert "no such service" in capsys.readouterr().err


def test_subcommand_is_required(capsys) -> None:
    with pytest.raises(SystemExit):
        probe.main([])
