"""Tests for the Gotify and Discord HTTP channels and the channel factory."""

from __future__ import annotations

import json

import httpx
import pytest

from shinkan.config import AppConfig
from shinkan.core.types import FeedKind
from shinkan.errors import NotificationError
from shinkan.notify import DiscordChannel, GotifyChannel, available_channels, compose_message, create_channels


def _client(handler) -> httpx.Client:
    return httpx.Client(transport=httpx.MockTransport(handler))


def test_gotify_posts_markdown_message():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"id": 1})

    channel = GotifyChannel("https://gotify.example/", "app-token", client=_client(handler))
    channel.send(compose_message("One Piece", "Chapter 1", "https://m/1", FeedKind.MANGA))

    [request] = seen
    assert request.method == "POST"
    assert request.url.path == "/message"
    assert request.url.params["token"] == "app-token"
    body = json.loads(request.content)
    assert body["title"] == "📖 New Manga Chapter!"
    assert body["priority"] == 5
    assert body["message"].startswith("**One Piece**")
    assert body["extras"] == {"client::display": {"contentType": "text/markdown"}}


def test_gotify_non_2xx_raises():
    channel = GotifyChannel("https://gotify.example", "t", client=_client(lambda request: httpx.Response(401)))

    with pytest.raises(NotificationError, match="returned status 401"):
        channel.send(compose_message("X", "Y", "Z", FeedKind.MANGA))


def test_gotify_network_error_raises():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    channel = GotifyChannel("https://gotify.example", "t", client=_client(handler))

    with pytest.raises(NotificationError, match="ConnectError"):
        channel.send(compose_message("X", "Y", "Z", FeedKind.MANGA))


def test_discord_posts_embed_with_bot_token():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"id": "1"})

    channel = DiscordChannel("bot-token", "12345", client=_client(handler))
    channel.send(
        compose_message(
            "Frieren",
            "Episode 12",
            "https://a/12",
            FeedKind.ANIME,
            external_ref="https://anilist.co/anime/154587",
            cover="https://img/frieren.jpg",
        )
    )

    [request] = seen
    assert request.url.path == "/api/v10/channels/12345/messages"
    assert request.headers["Authorization"] == "Bot bot-token"
    [embed] = json.loads(request.content)["embeds"]
    assert embed["title"] == "🎬 New Anime Episode!"
    assert embed["color"] == 0x89B4FA
    assert embed["url"] == "https://a/12"
    assert embed["description"] == (
        "**Frieren**\nEpisode 12\n\n[📺 View on AniList](https://anilist.co/anime/154587)"
    )
    assert embed["thumbnail"] == {"url": "https://img/frieren.jpg"}


def test_discord_non_2xx_raises():
    channel = DiscordChannel("t", "1", client=_client(lambda request: httpx.Response(403)))

    with pytest.raises(NotificationError, match="discord: returned status 403"):
        channel.send(compose_message("X", "Y", "Z", FeedKind.MANGA))


def test_available_channels():
    assert available_channels() == ["discord", "gotify"]


def test_create_channels_only_builds_complete_credentials():
    cfg = AppConfig()
    assert create_channels(cfg) == []

    cfg.gotify.server = "https://gotify.example"
    cfg.gotify.token = "t"
    channels = create_channels(cfg)
    assert [channel.name for channel in channels] == ["gotify"]
    for channel in channels:
        channel.close()

    cfg.discord.token = "bot"
    cfg.discord.channel_id = "1"
    channels = create_channels(cfg)
    assert sorted(channel.name for channel in channels) == ["discord", "gotify"]
    for channel in channels:
        channel.close()
