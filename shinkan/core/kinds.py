"""
Per-kind behaviour for manga and anime feeds.

Each FeedKind maps to one KindStrategy holding the item-selection rule,
the notification framing and the source URL normalization. Callers look
the strategy up once per operation with strategy_for().
"""

from __future__ import annotations

from dataclasses import dataclass

from ..errors import EmptyFeedError, NoMatchError
from .types import FeedItem, FeedKind, FeedRecord


@dataclass(frozen=True)
class MessageStyle:
    """Notification framing for one kind.

    Attributes:
        title: Title of a new-content notification
        test_title: Title of a test notification
        priority: Gotify priority for new-content notifications
        color: Discord embed accent colour
        noun: "chapter" or "episode", used in log lines
    """

    title: str
    test_title: str
    priority: int
    color: int
    noun: str


TEST_PRIORITY = 3


class KindStrategy:
    """Base strategy: first item wins, URLs are kept as given."""

    kind: FeedKind
    style: MessageStyle

    def select_candidate(self, feed: FeedRecord, items: list[FeedItem]) -> FeedItem:
        """Pick the item compared against the stored marker.

        Raises:
            EmptyFeedError: If items is empty
            NoMatchError: If a search filter is set and nothing matches
        """
        if not items:
            raise EmptyFeedError()
        return items[0]

    def normalize_url(self, url: str) -> str:
        return url.strip()


class MangaStrategy(KindStrategy):
    kind = FeedKind.MANGA
    style = MessageStyle(
        title="📖 New Manga Chapter!",
        test_title="🧪 TEST: Manga Notification",
        priority=5,
        color=0xA6E3A1,
        noun="chapter",
    )

    def normalize_url(self, url: str) -> str:
        # Manga sources expose their feed under /rss
        url = url.strip()
        if not url or url.endswith("/rss"):
            return url
        return url.rstrip("/") + "/rss"


class AnimeStrategy(KindStrategy):
    kind = FeedKind.ANIME
    style = MessageStyle(
        title="🎬 New Anime Episode!",
        test_title="🧪 TEST: Anime Notification",
        priority=7,
        color=0x89B4FA,
        noun="episode",
    )

    def select_candidate(self, feed: FeedRecord, items: list[FeedItem]) -> FeedItem:
        if not items:
            raise EmptyFeedError()
        if not feed.search_filter:
            return items[0]
        needle = feed.search_filter.lower()
        for item in items:
            if needle in item.title.lower():
                return item
        raise NoMatchError(feed.search_filter)


_STRATEGIES: dict[FeedKind, KindStrategy] = {
    FeedKind.MANGA: MangaStrategy(),
    FeedKind.ANIME: AnimeStrategy(),
}


def strategy_for(kind: FeedKind) -> KindStrategy:
    """Return the strategy registered for kind."""
    return _STRATEGIES[FeedKind.parse(kind)]
