"""Tests for YAML + environment configuration loading and validation."""

from __future__ import annotations

import logging
from pathlib import Path
import tempfile

import pytest

from shinkan.config import AppConfig, load_config, validate_config
from shinkan.errors import ConfigurationError


def test_defaults_without_file():
    cfg = load_config(None, environ={})

    assert cfg.storage.manga_file == "./data/mangas.json"
    assert cfg.storage.anime_file == "./data/anime.json"
    assert cfg.fetch.timeout_seconds == 30.0
    assert cfg.check.attempts == 3
    assert cfg.check.feed_delay_seconds == 0.5
    assert cfg.gotify.server is None


def test_yaml_values_are_merged_over_defaults():
    with tempfile.TemporaryDirectory() as tmpdir:
        path = Path(tmpdir) / "config.yaml"
        path.write_text(
            "fetch:\n  timeout_seconds: 10\ncheck:\n  attempts: 5\nunknown_section:\n  x: 1\n",
            encoding="utf-8",
        )

        cfg = load_config(str(path), environ={})

    assert cfg.fetch.timeout_seconds == 10
    assert cfg.check.attempts == 5
    assert cfg.fetch.trust_env is True


def test_unknown_key_in_known_section_is_rejected():
    with tempfile.TemporaryDirectory() as tmpdir:
        path = Path(tmpdir) / "config.yaml"
        path.write_text("fetch:\n  timeout: 10\n", encoding="utf-8")

        with pytest.raises(ConfigurationError, match="fetch.timeout"):
            load_config(str(path), environ={})


def test_unreadable_yaml_is_rejected():
    with tempfile.TemporaryDirectory() as tmpdir:
        path = Path(tmpdir) / "config.yaml"
        path.write_text("fetch: [unclosed\n", encoding="utf-8")

        with pytest.raises(ConfigurationError):
            load_config(str(path), environ={})


def test_environment_overrides():
    cfg = load_config(
        None,
        environ={
            "GOTIFY_SERVER": "https://gotify.example",
            "GOTIFY_TOKEN": "t",
            "DISCORD_TOKEN": "",
            "MANGA_DATA_FILE": "/var/lib/shinkan/mangas.json",
        },
    )

    assert cfg.gotify.server == "https://gotify.example"
    assert cfg.gotify.token == "t"
    assert cfg.discord.token is None
    assert cfg.storage.manga_file == "/var/lib/shinkan/mangas.json"


def test_partial_credentials_are_rejected():
    cfg = AppConfig()
    cfg.gotify.server = "https://gotify.example"
    with pytest.raises(ConfigurationError, match="GOTIFY"):
        validate_config(cfg)

    cfg = AppConfig()
    cfg.discord.channel_id = "1"
    with pytest.raises(ConfigurationError, match="DISCORD"):
        validate_config(cfg)


def test_no_channels_only_warns(caplog, monkeypatch):
    monkeypatch.setattr(logging.getLogger("shinkan"), "propagate", True)
    with caplog.at_level(logging.WARNING, logger="shinkan.config"):
        validate_config(AppConfig())

    assert "No notification channel configured" in caplog.text


def test_attempts_must_be_positive():
    cfg = AppConfig()
    cfg.check.attempts = 0
    with pytest.raises(ConfigurationError):
        validate_config(cfg)
