"""Abstract interface for notification channels."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

import httpx

from ..errors import NotificationError


@dataclass(frozen=True)
class NotificationMessage:
    """A composed notification, ready for any channel.

    Attributes:
        title: Headline, framed per kind (and marked for tests)
        body: Markdown body with feed name, item title and links
        priority: Gotify priority
        color: Embed accent colour
        feed_name: Name of the feed that changed
        item_title: Title of the new chapter or episode
        link: Primary link to the item
        external_ref: Optional AniList URL
        cover: Optional cover image URL
        is_test: Whether this is a test notification
    """

    title: str
    body: str
    priority: int
    color: int
    feed_name: str
    item_title: str
    link: str
    external_ref: str | None = None
    cover: str | None = None
    is_test: bool = False


class NotificationChannel(ABC):
    """One independently fallible delivery path."""

    name: str = "channel"

    @abstractmethod
    def send(self, message: NotificationMessage) -> None:
        """Deliver message.

        Raises:
            NotificationError: If delivery failed
        """
        raise NotImplementedError

    def close(self) -> None:
        """Release transport resources, if any."""


class HttpChannel(NotificationChannel):
    """Channel delivering one JSON POST per message over httpx.

    Args:
        timeout: Per-request timeout in seconds
        client: Optional shared httpx client, mainly for tests with a MockTransport
    """

    def __init__(self, timeout: float = 30.0, client: httpx.Client | None = None):
        self._owns_client = client is None
        self._client = client or httpx.Client(timeout=timeout)

    def _post(
        self,
        url: str,
        payload: dict[str, Any],
        headers: dict[str, str] | None = None,
        params: dict[str, str] | None = None,
    ) -> httpx.Response:
        try:
            resp = self._client.post(url, json=payload, headers=headers, params=params)
        except httpx.HTTPError as exc:
            raise NotificationError(self.name, f"{type(exc).__name__}: {exc}") from exc
        if not resp.is_success:
            raise NotificationError(self.name, f"returned status {resp.status_code}")
        return resp

    def close(self) -> None:
        if self._owns_client:
            self._client.close()
