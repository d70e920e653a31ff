from __future__ import annotations

import httpx

from .base import HttpChannel, NotificationMessage


class GotifyChannel(HttpChannel):
    """Token-authenticated push to a Gotify server."""

    name = "gotify"

    def __init__(self, server: str, token: str, timeout: float = 30.0, client: httpx.Client | None = None):
        if not server or not token:
            raise ValueError("Gotify requires both server and token")
        super().__init__(timeout=timeout, client=client)
        self.server = server.rstrip("/")
        self.token = token

    def send(self, message: NotificationMessage) -> None:
        payload = {
            "title": message.title,
            "message": message.body,
            "priority": message.priority,
            "extras": {
                "client::display": {"contentType": "text/markdown"},
            },
        }
        self._post(f"{self.server}/message", payload, params={"token": self.token})
