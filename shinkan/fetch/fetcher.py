"""
RSS/Atom fetching with httpx and feedparser.

One call fetches one feed and returns its items in source order. The
fetcher does not retry; retry and backoff belong to the checker.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
import time

import feedparser
import httpx

from ..config import FetchConfig
from ..core.types import FeedItem
from ..errors import FetchError
from ..utils.clock import to_rfc3339


@dataclass
class FetchResult:
    """Raw result of an HTTP fetch operation.

    Either content will be populated (success) or error will be populated
    (failure), but never both. status_code may be None for network-level
    failures.

    Attributes:
        url: The URL that was fetched
        status_code: HTTP status code, or None if the request failed before a response
        content: The response body bytes, or None on error
        error: Error message if the fetch failed, None on success
    """

    url: str
    status_code: int | None
    content: bytes | None
    error: str | None


class FeedFetcher:
    """Fetch and parse feeds.

    Args:
        cfg: HTTP settings
        client: Optional shared httpx client, mainly for tests with a MockTransport
    """

    def __init__(self, cfg: FetchConfig | None = None, client: httpx.Client | None = None):
        self.cfg = cfg or FetchConfig()
        self._client = client

    def __call__(self, url: str) -> list[FeedItem]:
        return self.fetch_items(url)

    def fetch_items(self, url: str) -> list[FeedItem]:
        """Fetch url and return its entries as FeedItems.

        Raises:
            FetchError: On network errors, non-2xx statuses or unparsable documents
        """
        result = self.fetch_raw(url)
        if result.error is not None or result.content is None:
            raise FetchError(f"failed to fetch RSS: {result.error}")
        return parse_feed(result.content, url)

    def fetch_raw(self, url: str) -> FetchResult:
        try:
            if self._client is not None:
                resp = self._client.get(url)
            else:
                with httpx.Client(
                    timeout=self.cfg.timeout_seconds,
                    headers={"User-Agent": self.cfg.user_agent},
                    follow_redirects=True,
                    trust_env=self.cfg.trust_env,
                ) as client:
                    resp = client.get(url)
        except Exception as exc:  # noqa: BLE001
            # httpx.InvalidURL is not an HTTPError subclass
            return FetchResult(url=url, status_code=None, content=None, error=f"{type(exc).__name__}: {exc}")

        if not resp.is_success:
            return FetchResult(
                url=url,
                status_code=resp.status_code,
                content=None,
                error=f"HTTP {resp.status_code}",
            )
        return FetchResult(url=url, status_code=resp.status_code, content=resp.content, error=None)


def parse_feed(content: bytes, url: str = "") -> list[FeedItem]:
    """Parse an RSS/Atom document into FeedItems, preserving entry order.

    Raises:
        FetchError: If the document is malformed and yields no entries
    """
    parsed = feedparser.parse(content)
    if parsed.bozo and not parsed.entries:
        reason = getattr(parsed, "bozo_exception", None) or "malformed document"
        raise FetchError(f"failed to parse RSS from {url}: {reason}")

    items: list[FeedItem] = []
    for entry in parsed.entries:
        published = entry.get("published_parsed") or entry.get("updated_parsed")
        items.append(
            FeedItem(
                title=(entry.get("title") or "").strip(),
                link=entry.get("link") or "",
                published_at=_struct_to_rfc3339(published),
            )
        )
    return items


def _struct_to_rfc3339(value: time.struct_time | None) -> str | None:
    if value is None:
        return None
    return to_rfc3339(datetime(*value[:6], tzinfo=timezone.utc))
