"""Channel factory and registry for configured notification backends."""

from __future__ import annotations

from typing import Callable

import httpx

from ..config import AppConfig
from .base import NotificationChannel
from .discord import DiscordChannel
from .gotify import GotifyChannel


ChannelBuilder = Callable[[AppConfig, "httpx.Client | None"], "NotificationChannel | None"]


def _build_gotify(cfg: AppConfig, client: httpx.Client | None) -> NotificationChannel | None:
    if not (cfg.gotify.server and cfg.gotify.token):
        return None
    return GotifyChannel(cfg.gotify.server, cfg.gotify.token, timeout=cfg.fetch.timeout_seconds, client=client)


def _build_discord(cfg: AppConfig, client: httpx.Client | None) -> NotificationChannel | None:
    if not (cfg.discord.token and cfg.discord.channel_id):
        return None
    return DiscordChannel(
        cfg.discord.token,
        cfg.discord.channel_id,
        api_base=cfg.discord.api_base,
        timeout=cfg.fetch.timeout_seconds,
        client=client,
    )


_CHANNEL_REGISTRY: dict[str, ChannelBuilder] = {
    "gotify": _build_gotify,
    "discord": _build_discord,
}


def available_channels() -> list[str]:
    """Return the registered channel names."""
    return sorted(_CHANNEL_REGISTRY.keys())


def create_channels(cfg: AppConfig, client: httpx.Client | None = None) -> list[NotificationChannel]:
    """Build every channel whose full credential set is present.

    Partial credentials are rejected earlier by validate_config; here a
    channel is either fully configured or skipped.
    """
    channels: list[NotificationChannel] = []
    for name in available_channels():
        channel = _CHANNEL_REGISTRY[name](cfg, client)
        if channel is not None:
            channels.append(channel)
    return channels
