"""Tests for the typer CLI."""

from __future__ import annotations

import json
import logging

import pytest
from typer.testing import CliRunner

from shinkan import cli

runner = CliRunner()


@pytest.fixture(autouse=True)
def _isolated_env(tmp_path, monkeypatch):
    monkeypatch.setattr(cli, "load_dotenv", None)
    for name in ("GOTIFY_SERVER", "GOTIFY_TOKEN", "DISCORD_TOKEN", "DISCORD_CHANNEL_ID", "SHINKAN_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("MANGA_DATA_FILE", str(tmp_path / "mangas.json"))
    monkeypatch.setenv("ANIME_DATA_FILE", str(tmp_path / "anime.json"))
    logger = logging.getLogger("shinkan")
    handlers, propagate = list(logger.handlers), logger.propagate
    yield
    logger.handlers = handlers
    logger.propagate = propagate


def test_add_list_and_export(tmp_path):
    result = runner.invoke(cli.app, ["add", "Berserk", "https://m/berserk", "--category", "Dark"])
    assert result.exit_code == 0, result.output
    assert "Added Berserk (manga)" in result.output

    result = runner.invoke(cli.app, ["categories"])
    assert "Dark" in result.output

    output = tmp_path / "export.json"
    result = runner.invoke(cli.app, ["export", "--output", str(output)])
    assert result.exit_code == 0, result.output
    document = json.loads(output.read_text(encoding="utf-8"))
    assert document["count"] == 1
    assert document["feeds"][0]["rssUrl"] == "https://m/berserk/rss"


def test_import_file(tmp_path):
    source = tmp_path / "import.json"
    source.write_text(
        json.dumps({"feeds": [{"name": "A", "rssUrl": "https://a/rss"}, {"name": "B", "rssUrl": "https://a/rss"}]}),
        encoding="utf-8",
    )

    result = runner.invoke(cli.app, ["import", str(source)])

    assert result.exit_code == 0, result.output
    assert "Imported 1, skipped 1" in result.output


def test_delete_unknown_feed_is_ok():
    result = runner.invoke(cli.app, ["delete", "missing"])

    assert result.exit_code == 0


def test_check_feed_unknown_id_exits_with_error():
    result = runner.invoke(cli.app, ["check-feed", "missing"])

    assert result.exit_code == 2
    assert "feed not found: missing" in result.output


def test_corrupt_data_file_fails_startup(tmp_path):
    (tmp_path / "mangas.json").write_text("{broken", encoding="utf-8")

    result = runner.invoke(cli.app, ["list"])

    assert result.exit_code == 1
    assert "Startup failed" in result.output


def test_partial_credentials_fail_startup(monkeypatch):
    monkeypatch.setenv("GOTIFY_SERVER", "https://gotify.example")

    result = runner.invoke(cli.app, ["stats"])

    assert result.exit_code == 1
    assert "GOTIFY_SERVER and GOTIFY_TOKEN" in result.output


def test_migrate(tmp_path):
    legacy = tmp_path / "legacy.json"
    legacy.write_text(json.dumps({"mangas": [{"id": "1", "name": "A", "rssUrl": "https://a/rss"}]}), encoding="utf-8")
    target = tmp_path / "converted.json"

    result = runner.invoke(cli.app, ["migrate", str(legacy), "--output", str(target)])

    assert result.exit_code == 0, result.output
    assert json.loads(target.read_text(encoding="utf-8"))["feeds"][0]["category"] == "Uncategorized"
