"""
Configuration management using YAML files, environment variables and dataclasses.

This module defines all configuration dataclasses and provides loading
from YAML files with defaults, followed by environment overrides.
Configuration sections:
- StorageConfig: Paths of the manga and anime data files
- FetchConfig: HTTP settings for feed fetches and channel posts
- CheckConfig: Retry budget and pacing of check runs
- GotifyConfig: Gotify channel credentials
- DiscordConfig: Discord channel credentials
- LoggingConfig: Logging behavior
- AppConfig: Root configuration container
"""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
import os
from typing import Any, Mapping

import yaml

from .errors import ConfigurationError

logger = logging.getLogger(__name__)


@dataclass
class StorageConfig:
    """Locations of the two partition files.

    Attributes:
        manga_file: JSON document holding manga feeds
        anime_file: JSON document holding anime feeds
    """

    manga_file: str = "./data/mangas.json"
    anime_file: str = "./data/anime.json"


@dataclass
class FetchConfig:
    """Configuration for HTTP requests.

    Attributes:
        timeout_seconds: Per-request timeout for feed fetches and channel posts
        trust_env: Whether to respect system proxy settings
        user_agent: HTTP User-Agent header string
    """

    timeout_seconds: float = 30.0
    trust_env: bool = True
    user_agent: str = "shinkan/0.1 (+https://github.com/shinkan-rebirth)"


@dataclass
class CheckConfig:
    """Configuration for check runs.

    Attributes:
        attempts: Fetch attempts per feed in a batch run
        feed_delay_seconds: Pause between two feeds of a batch
        backoff_unit_seconds: Length of one linear backoff unit
    """

    attempts: int = 3
    feed_delay_seconds: float = 0.5
    backoff_unit_seconds: float = 1.0


@dataclass
class GotifyConfig:
    """Gotify credentials; the channel is active when both are set."""

    server: str | None = None
    token: str | None = None


@dataclass
class DiscordConfig:
    """Discord bot credentials; the channel is active when both are set.

    Attributes:
        token: Bot token
        channel_id: Target text channel id
        api_base: Discord REST API base URL
    """

    token: str | None = None
    channel_id: str | None = None
    api_base: str = "https://discord.com/api/v10"


@dataclass
class LoggingConfig:
    """Configuration for logging behavior.

    Attributes:
        level: Logging level ("DEBUG", "INFO", "WARNING", "ERROR")
        console: Whether to log to console
        file: Whether to log to file
        format: Log file format ("jsonl" or "plain")
        filename: Name of the log file
        directory: Directory of the log file
    """

    level: str = "INFO"
    console: bool = True
    file: bool = False
    format: str = "jsonl"
    filename: str = "shinkan.jsonl"
    directory: str = "./logs"


@dataclass
class AppConfig:
    """Root configuration container aggregating all config sections."""

    storage: StorageConfig = field(default_factory=StorageConfig)
    fetch: FetchConfig = field(default_factory=FetchConfig)
    check: CheckConfig = field(default_factory=CheckConfig)
    gotify: GotifyConfig = field(default_factory=GotifyConfig)
    discord: DiscordConfig = field(default_factory=DiscordConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


# Environment variable -> (section, attribute)
ENV_OVERRIDES: dict[str, tuple[str, str]] = {
    "GOTIFY_SERVER": ("gotify", "server"),
    "GOTIFY_TOKEN": ("gotify", "token"),
    "DISCORD_TOKEN": ("discord", "token"),
    "DISCORD_CHANNEL_ID": ("discord", "channel_id"),
    "MANGA_DATA_FILE": ("storage", "manga_file"),
    "ANIME_DATA_FILE": ("storage", "anime_file"),
    "SHINKAN_LOG_LEVEL": ("logging", "level"),
}

_SECTIONS: dict[str, type] = {
    "storage": StorageConfig,
    "fetch": FetchConfig,
    "check": CheckConfig,
    "gotify": GotifyConfig,
    "discord": DiscordConfig,
    "logging": LoggingConfig,
}


def load_config(path: str | None, environ: Mapping[str, str] | None = None) -> AppConfig:
    """Load configuration from a YAML file with defaults, then apply env overrides."""
    raw: dict[str, Any] = {}
    if path:
        try:
            with open(path, "r", encoding="utf-8") as f:
                raw = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as exc:
            raise ConfigurationError(f"failed to load config {path}: {exc}") from exc
        if not isinstance(raw, dict):
            raise ConfigurationError(f"config {path} must be a mapping")

    cfg = _merge_config(AppConfig(), raw)
    apply_env_overrides(cfg, os.environ if environ is None else environ)
    return cfg


def apply_env_overrides(cfg: AppConfig, environ: Mapping[str, str]) -> AppConfig:
    """Override config values from non-empty environment variables."""
    for env_name, (section, attr) in ENV_OVERRIDES.items():
        value = environ.get(env_name)
        if value:
            setattr(getattr(cfg, section), attr, value)
    return cfg


def validate_config(cfg: AppConfig) -> None:
    """Reject partial channel credentials.

    Raises:
        ConfigurationError: If a channel has only part of its credentials
    """
    if bool(cfg.gotify.server) != bool(cfg.gotify.token):
        raise ConfigurationError("GOTIFY_SERVER and GOTIFY_TOKEN must be set together")
    if bool(cfg.discord.token) != bool(cfg.discord.channel_id):
        raise ConfigurationError("DISCORD_TOKEN and DISCORD_CHANNEL_ID must be set together")
    if cfg.check.attempts < 1:
        raise ConfigurationError("check.attempts must be at least 1")
    if not cfg.gotify.server and not cfg.discord.token:
        logger.warning("No notification channel configured; changes will only be logged")


def _merge_config(base: AppConfig, raw: dict[str, Any]) -> AppConfig:
    """Merge raw YAML config into base AppConfig, ignoring unknown sections."""
    for key, value in raw.items():
        if key not in _SECTIONS or not isinstance(value, dict):
            continue
        section = getattr(base, key)
        for attr, attr_value in value.items():
            if not hasattr(section, attr):
                raise ConfigurationError(f"unknown config key: {key}.{attr}")
            setattr(section, attr, attr_value)
    return base
