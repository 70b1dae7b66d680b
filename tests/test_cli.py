"""Tests for the command-line entry point."""

from pathlib import Path

import pytest

from transcript_relay import cli
from transcript_relay.config import RelayConfig


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    for var in ("RELAY_CONFIG", "RELAY_PLAYER_ID", "RELAY_SOURCE_TYPE", "RELAY_ENDPOINT"):
        monkeypatch.delenv(var, raising=False)
    return monkeypatch


def test_main_reports_config_error(clean_env, capsys) -> None:
    assert cli.main() == 2
    assert "Configuration error: player_id is required" in capsys.readouterr().err


def test_main_rejects_bad_source_type(clean_env, capsys) -> None:
    clean_env.setenv("RELAY_PLAYER_ID", "p1")
    clean_env.setenv("RELAY_SOURCE_TYPE", "cursor")

    assert cli.main() == 2
    assert "Invalid source type" in capsys.readouterr().err


def test_banner_warns_without_endpoint(tmp_path: Path, capsys) -> None:
    cli.print_banner(RelayConfig(player_id="p1", root_path=str(tmp_path)))

    out = capsys.readouterr().out
    assert "Player ID: p1" in out
    assert f"Watching: {tmp_path.resolve()}/**/*.jsonl" in out
    assert "Messages will not be sent" in out


def test_banner_shows_endpoint(capsys) -> None:
    cli.print_banner(RelayConfig(player_id="p1", endpoint="https://collector.example/ingest"))

    out = capsys.readouterr().out
    assert "Endpoint: https://collector.example/ingest" in out
    assert "WARNING" not in out
