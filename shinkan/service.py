"""
Service facade over the store, the checker and the dispatcher.

Outer layers (the CLI, an HTTP API, a bot) talk to FeedService only. The
facade validates input, normalizes URLs per kind and turns store and
checker results into plain data for presentation.

build_service() wires every shared instance once from an AppConfig.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
import logging
import time
from typing import Any, Iterable, Sequence

from .checker import BATCH_ATTEMPTS, Checker, LinearBackoff
from .config import AppConfig
from .core.kinds import strategy_for
from .core.types import (
    DEFAULT_CATEGORY,
    CheckAllSummary,
    CheckResult,
    FeedKind,
    FeedPatch,
    FeedRecord,
    TestFeedResult,
    UNSET,
)
from .errors import ValidationError
from .fetch import FeedFetcher
from .notify import NotificationChannel, NotificationDispatcher, create_channels
from .storage import FeedStore
from .utils.clock import Clock, to_rfc3339, utc_now
from .utils.logging import log_event

logger = logging.getLogger(__name__)

EXPORT_VERSION = "1.0"


@dataclass
class ServiceStats:
    """Checker counters combined with a snapshot of the stored feeds.

    Attributes:
        uptime: Milliseconds since the service was built
    """

    total_checks: int = 0
    successful_checks: int = 0
    failed_checks: int = 0
    notifications_sent: int = 0
    last_check_time: str | None = None
    total_feeds: int = 0
    feeds_with_errors: int = 0
    feeds_never_checked: int = 0
    categories: int = 0
    uptime: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "totalChecks": self.total_checks,
            "successfulChecks": self.successful_checks,
            "failedChecks": self.failed_checks,
            "notificationsSent": self.notifications_sent,
            "lastCheckTime": self.last_check_time,
            "totalFeeds": self.total_feeds,
            "feedsWithErrors": self.feeds_with_errors,
            "feedsNeverChecked": self.feeds_never_checked,
            "categories": self.categories,
            "uptime": self.uptime,
        }


@dataclass
class ImportSummary:
    imported: int = 0
    skipped: int = 0


@dataclass
class CheckFeedResponse:
    """Result of a single on-demand check plus the refreshed record."""

    result: CheckResult
    feed: FeedRecord


class FeedService:
    """Operations exposed to outer layers.

    Args:
        store: Shared feed store
        checker: Shared checker
        dispatcher: Shared dispatcher, closed by close()
        clock: Source of "now" for export timestamps
        monotonic: Monotonic time source used for uptime
    """

    def __init__(
        self,
        store: FeedStore,
        checker: Checker,
        dispatcher: NotificationDispatcher,
        clock: Clock = utc_now,
        monotonic=time.monotonic,
    ):
        self.store = store
        self.checker = checker
        self.dispatcher = dispatcher
        self._clock = clock
        self._monotonic = monotonic
        self._started = monotonic()

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def list_feeds(self, category: str | None = None, search: str | None = None) -> list[FeedRecord]:
        """List feeds, filtered by search (preferred) or category."""
        if search:
            return self.store.search(search)
        feeds = self.store.list()
        if not category or category.lower() == "all":
            return feeds
        return [feed for feed in feeds if (feed.category or DEFAULT_CATEGORY) == category]

    def list_categories(self) -> list[str]:
        return sorted(self.store.list_categories())

    def get_stats(self) -> ServiceStats:
        feeds = self.store.list()
        counters = self.checker.get_stats()
        return ServiceStats(
            total_checks=counters.total_checks,
            successful_checks=counters.successful_checks,
            failed_checks=counters.failed_checks,
            notifications_sent=counters.notifications_sent,
            last_check_time=counters.last_check_time,
            total_feeds=len(feeds),
            feeds_with_errors=sum(1 for feed in feeds if feed.fail_count > 0),
            feeds_never_checked=sum(1 for feed in feeds if feed.last_checked is None),
            categories=len({feed.category or DEFAULT_CATEGORY for feed in feeds}),
            uptime=int((self._monotonic() - self._started) * 1000),
        )

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def add_feed(
        self,
        name: str,
        source_url: str,
        kind: FeedKind | str = FeedKind.MANGA,
        external_ref: str | None = None,
        category: str = "",
        search_filter: str | None = None,
        cover: str | None = None,
    ) -> FeedRecord:
        """Validate and store a new feed.

        Raises:
            ValidationError: If name or source_url is empty, or kind is unknown
        """
        name = (name or "").strip()
        source_url = (source_url or "").strip()
        if not name or not source_url:
            raise ValidationError("name and rssUrl are required")
        feed_kind = FeedKind.parse(kind)
        record = FeedRecord(
            name=name,
            source_url=strategy_for(feed_kind).normalize_url(source_url),
            kind=feed_kind,
            external_ref=external_ref or None,
            category=(category or "").strip(),
            search_filter=search_filter or None,
            cover=cover or None,
        )
        stored = self.store.add(record)
        log_event(
            logger,
            f"Added {stored.kind.value} feed: {stored.name}",
            event="feed_added",
            feed_id=stored.id,
            kind=stored.kind.value,
        )
        return stored

    def update_feed(self, feed_id: str, patch: FeedPatch | dict[str, Any]) -> FeedRecord:
        """Apply a patch to a stored feed.

        Raises:
            NotFoundError: If feed_id is unknown
            ValidationError: If the patch is invalid or empties name/URL
        """
        if not isinstance(patch, FeedPatch):
            patch = FeedPatch.from_dict(patch)
        if patch.name is not UNSET and not patch.name.strip():
            raise ValidationError("name cannot be empty")
        if patch.source_url is not UNSET and not patch.source_url.strip():
            raise ValidationError("rssUrl cannot be empty")

        if patch.source_url is not UNSET or patch.kind is not UNSET:
            current = self.store.get(feed_id)
            kind = current.kind if patch.kind is UNSET else patch.kind
            url = current.source_url if patch.source_url is UNSET else patch.source_url
            patch = replace(patch, source_url=strategy_for(kind).normalize_url(url))

        updated = self.store.update(feed_id, patch)
        log_event(logger, f"Updated feed: {updated.name}", event="feed_updated", feed_id=feed_id)
        return updated

    def delete_feed(self, feed_id: str) -> None:
        self.store.delete(feed_id)
        log_event(logger, f"Deleted feed {feed_id}", event="feed_deleted", feed_id=feed_id)

    def import_feeds(self, entries: Iterable[dict[str, Any] | FeedRecord]) -> ImportSummary:
        """Import feeds, skipping any whose source URL is already stored."""
        records = [entry if isinstance(entry, FeedRecord) else FeedRecord.from_dict(entry) for entry in entries]
        for record in records:
            if not record.name or not record.source_url:
                raise ValidationError("every imported feed needs a name and rssUrl")
        imported, skipped = self.store.import_records(records)
        log_event(
            logger,
            f"Imported {imported} feed(s), skipped {skipped}",
            event="feeds_imported",
            imported=imported,
            skipped=skipped,
        )
        return ImportSummary(imported=imported, skipped=skipped)

    def export_feeds(self) -> dict[str, Any]:
        feeds = self.store.list()
        return {
            "exported": to_rfc3339(self._clock()),
            "version": EXPORT_VERSION,
            "count": len(feeds),
            "feeds": [feed.to_dict() for feed in feeds],
        }

    # ------------------------------------------------------------------
    # Checks
    # ------------------------------------------------------------------

    def test_feed(self, feed_id: str) -> TestFeedResult:
        return self.checker.test_feed(feed_id)

    def check_feed(self, feed_id: str) -> CheckFeedResponse:
        feed = self.store.get(feed_id)
        result = self.checker.check_feed(feed, BATCH_ATTEMPTS)
        return CheckFeedResponse(result=result, feed=self.store.get(feed_id))

    def check_all(self) -> CheckAllSummary:
        return self.checker.check_all()

    def close(self) -> None:
        self.dispatcher.close()


def build_service(
    cfg: AppConfig,
    fetcher=None,
    channels: Sequence[NotificationChannel] | None = None,
    clock: Clock = utc_now,
    sleep=time.sleep,
) -> FeedService:
    """Construct the shared store, dispatcher, checker and service once.

    Args:
        cfg: Application configuration
        fetcher: Callable url -> list[FeedItem]; defaults to a FeedFetcher
        channels: Notification channels; defaults to the configured ones
        clock: Source of "now"
        sleep: Waiting primitive for backoff and feed pacing

    Raises:
        PersistenceError: If a data file exists but cannot be parsed
    """
    store = FeedStore(cfg.storage.manga_file, cfg.storage.anime_file, clock=clock)
    if channels is None:
        channels = create_channels(cfg)
    dispatcher = NotificationDispatcher(channels)
    checker = Checker(
        store,
        dispatcher,
        fetcher or FeedFetcher(cfg.fetch),
        backoff=LinearBackoff(cfg.check.backoff_unit_seconds, sleep=sleep),
        clock=clock,
        sleep=sleep,
        feed_delay_seconds=cfg.check.feed_delay_seconds,
        batch_attempts=cfg.check.attempts,
    )
    log_event(
        logger,
        f"Service ready with channels: {', '.join(dispatcher.channel_names) or 'none'}",
        level=logging.DEBUG,
        event="service_ready",
        channels=dispatcher.channel_names,
    )
    return FeedService(store, checker, dispatcher, clock=clock)
