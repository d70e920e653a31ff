from __future__ import annotations

from typing import Any

import httpx

from .base import HttpChannel, NotificationMessage


class DiscordChannel(HttpChannel):
    """Posts a rich embed to one Discord text channel using a bot token."""

    name = "discord"

    def __init__(
        self,
        token: str,
        channel_id: str,
        api_base: str = "https://discord.com/api/v10",
        timeout: float = 30.0,
        client: httpx.Client | None = None,
    ):
        if not token or not channel_id:
            raise ValueError("Discord requires both token and channel id")
        super().__init__(timeout=timeout, client=client)
        self.token = token
        self.channel_id = channel_id
        self.api_base = api_base.rstrip("/")

    def send(self, message: NotificationMessage) -> None:
        payload = {"embeds": [build_embed(message)]}
        self._post(
            f"{self.api_base}/channels/{self.channel_id}/messages",
            payload,
            headers={"Authorization": f"Bot {self.token}"},
        )


def build_embed(message: NotificationMessage) -> dict[str, Any]:
    """Build the embed object for message.

    The description carries the feed name and item title; the AniList
    link is rendered as a markdown link and the cover as the thumbnail.
    """
    description = f"**{message.feed_name}**\n{message.item_title}"
    if message.external_ref:
        description += f"\n\n[📺 View on AniList]({message.external_ref})"

    embed: dict[str, Any] = {
        "title": message.title,
        "description": description,
        "color": message.color,
    }
    if message.link:
        embed["url"] = message.link
    if message.cover:
        embed["thumbnail"] = {"url": message.cover}
    return embed
