"""
Change detection for stored feeds.

The checker coordinates one check:
1. Fetch the feed items (retried with linear backoff on FetchError)
2. Select the candidate item for the feed kind
3. Compare its title with the stored marker
4. Notify on change
5. Write the refreshed state back to the store

It also owns the run statistics, guarded by a lock that is never held
during storage or network I/O.
"""

from __future__ import annotations

from dataclasses import replace
import logging
import threading
import time
from typing import Callable

from ..core.kinds import KindStrategy, strategy_for
from ..core.types import (
    CLEAR,
    CheckAllSummary,
    CheckOutcome,
    CheckResult,
    CheckStats,
    FeedItem,
    FeedPatch,
    FeedRecord,
    TestFeedResult,
)
from ..errors import EmptyFeedError, NoMatchError, ShinkanError
from ..notify.dispatcher import NotificationDispatcher
from ..storage.feed_store import FeedStore
from ..utils.clock import Clock, to_rfc3339, utc_now
from ..utils.logging import log_event
from .backoff import LinearBackoff, RetriesExhausted, retry_call

logger = logging.getLogger(__name__)

Fetch = Callable[[str], list[FeedItem]]

BATCH_ATTEMPTS = 3
FEED_DELAY_SECONDS = 0.5


class Checker:
    """Fetch, compare, notify and persist.

    Args:
        store: Shared feed store
        dispatcher: Shared notification dispatcher
        fetch: Callable returning the ordered items of a feed URL
        backoff: Backoff between failed attempts
        clock: Source of "now" for persisted timestamps
        sleep: Used for the pause between feeds of a batch
        feed_delay_seconds: Pause between feeds in check_all
        batch_attempts: Attempt budget used by check_all
    """

    def __init__(
        self,
        store: FeedStore,
        dispatcher: NotificationDispatcher,
        fetch: Fetch,
        backoff: LinearBackoff | None = None,
        clock: Clock = utc_now,
        sleep: Callable[[float], None] = time.sleep,
        feed_delay_seconds: float = FEED_DELAY_SECONDS,
        batch_attempts: int = BATCH_ATTEMPTS,
    ):
        self._store = store
        self._dispatcher = dispatcher
        self._fetch = fetch
        self._backoff = backoff or LinearBackoff(sleep=sleep)
        self._clock = clock
        self._sleep = sleep
        self._feed_delay_seconds = feed_delay_seconds
        self._batch_attempts = batch_attempts
        self._stats = CheckStats()
        self._stats_lock = threading.Lock()

    # ------------------------------------------------------------------
    # Stats
    # ------------------------------------------------------------------

    def get_stats(self) -> CheckStats:
        with self._stats_lock:
            return replace(self._stats)

    def reset_stats(self) -> None:
        with self._stats_lock:
            self._stats = CheckStats()

    def _bump(self, **deltas: int) -> None:
        with self._stats_lock:
            for name, delta in deltas.items():
                setattr(self._stats, name, getattr(self._stats, name) + delta)

    # ------------------------------------------------------------------
    # Checks
    # ------------------------------------------------------------------

    def check_feed(self, feed: FeedRecord, max_attempts: int = BATCH_ATTEMPTS) -> CheckResult:
        """Check one feed, retrying fetch failures up to max_attempts times.

        Counts one total check per call. A failed check persists the last
        error and increments the feed's fail count; it is reported through
        the returned result, not raised. Store errors and unexpected
        exceptions raise after being counted as a failed check.
        """
        self._bump(total_checks=1)
        strategy = strategy_for(feed.kind)

        def _on_error(attempt: int, exc: Exception) -> None:
            log_event(
                logger,
                f"[{feed.name}] Error (attempt {attempt}/{max_attempts}): {exc}",
                level=logging.WARNING,
                event="check_attempt_failed",
                feed_id=feed.id,
                attempt=attempt,
                error=str(exc),
            )

        try:
            candidate, attempts = retry_call(
                lambda: self._fetch_candidate(feed, strategy),
                max_attempts,
                self._backoff,
                on_error=_on_error,
            )
        except RetriesExhausted as exc:
            self._bump(failed_checks=1)
            error = str(exc.last_error)
            self._store.update(
                feed.id,
                FeedPatch(
                    last_checked=self._now(),
                    last_error=error,
                    fail_count=feed.fail_count + 1,
                ),
            )
            log_event(
                logger,
                f"[{feed.name}] Check failed after {exc.attempts} attempt(s): {error}",
                level=logging.ERROR,
                event="check_failed",
                feed_id=feed.id,
                attempts=exc.attempts,
                fail_count=feed.fail_count + 1,
            )
            return CheckResult(feed.id, CheckOutcome.FAILED, attempts=exc.attempts, error=error)
        except Exception:
            self._bump(failed_checks=1)
            raise

        try:
            result = self._apply_candidate(feed, strategy, candidate)
        except Exception:
            self._bump(failed_checks=1)
            raise
        result.attempts = attempts
        self._bump(successful_checks=1)
        return result

    def check_all(self) -> CheckAllSummary:
        """Check every stored feed sequentially with the batch attempt budget.

        A failing feed never aborts the batch.
        """
        feeds = self._store.list()
        started = self._now()
        with self._stats_lock:
            self._stats.last_check_time = started
        log_event(logger, f"Checking {len(feeds)} feed(s) at {started}", event="check_all_start", feeds=len(feeds))

        summary = CheckAllSummary(total=len(feeds))
        for index, feed in enumerate(feeds):
            if index:
                self._sleep(self._feed_delay_seconds)
            try:
                result = self.check_feed(feed, self._batch_attempts)
            except ShinkanError as exc:
                logger.error("[%s] Could not record check result: %s", feed.name, exc)
                result = CheckResult(feed.id, CheckOutcome.FAILED, error=str(exc))
            except Exception as exc:  # noqa: BLE001
                logger.exception("[%s] Unexpected error during check", feed.name)
                result = CheckResult(feed.id, CheckOutcome.FAILED, error=f"{type(exc).__name__}: {exc}")
            summary.results.append(result)
            if result.ok:
                summary.succeeded += 1
            else:
                summary.failed += 1
            if result.notified:
                summary.notifications += 1

        log_event(
            logger,
            f"Check complete - Success: {summary.succeeded}/{summary.total}, "
            f"Notifications: {summary.notifications}",
            event="check_all_complete",
            total=summary.total,
            succeeded=summary.succeeded,
            failed=summary.failed,
            notifications=summary.notifications,
        )
        return summary

    def test_feed(self, feed_id: str) -> TestFeedResult:
        """Send a test notification for the current candidate of a feed.

        Touches neither the store nor the stats. An empty feed or an
        unmatched anime filter is reported in the result instead of raised.

        Raises:
            NotFoundError: If feed_id is unknown
            FetchError: If the source cannot be fetched
        """
        feed = self._store.get(feed_id)
        strategy = strategy_for(feed.kind)
        items = self._fetch(feed.source_url)
        try:
            candidate = strategy.select_candidate(feed, items)
        except EmptyFeedError:
            return TestFeedResult(error="No items found in RSS feed")
        except NoMatchError as exc:
            return TestFeedResult(error=str(exc))

        dispatch = self._dispatcher.send_test(
            feed.name,
            candidate.title,
            candidate.link,
            feed.kind,
            external_ref=feed.external_ref,
            cover=feed.cover,
        )
        log_event(
            logger,
            f"[{feed.name}] Test notification sent: {candidate.title}",
            event="test_notification",
            feed_id=feed.id,
            delivered=dispatch.delivered,
        )
        return TestFeedResult(
            title=candidate.title,
            link=candidate.link,
            sent=True,
            published_at=candidate.published_at,
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _fetch_candidate(self, feed: FeedRecord, strategy: KindStrategy) -> FeedItem | None:
        """One attempt: fetch and select. None means the filter matched nothing."""
        items = self._fetch(feed.source_url)
        try:
            return strategy.select_candidate(feed, items)
        except NoMatchError:
            return None

    def _apply_candidate(
        self,
        feed: FeedRecord,
        strategy: KindStrategy,
        candidate: FeedItem | None,
    ) -> CheckResult:
        if candidate is None:
            log_event(
                logger,
                f"[{feed.name}] No matching anime found for search: {feed.search_filter}",
                event="check_no_match",
                feed_id=feed.id,
            )
            self._store.update(feed.id, FeedPatch(last_checked=self._now(), last_error=CLEAR, fail_count=0))
            return CheckResult(feed.id, CheckOutcome.NO_MATCH)

        noun = strategy.style.noun
        notified = False
        if feed.last_chapter is None:
            outcome = CheckOutcome.FIRST_SEEN
            log_event(
                logger,
                f"[{feed.name}] First check - storing: {candidate.title}",
                event="check_first_seen",
                feed_id=feed.id,
            )
        elif feed.last_chapter != candidate.title:
            outcome = CheckOutcome.NEW_CONTENT
            log_event(
                logger,
                f"[{feed.name}] New {noun} found: {candidate.title} (was: {feed.last_chapter})",
                event="check_new_content",
                feed_id=feed.id,
                old=feed.last_chapter,
                new=candidate.title,
            )
            notified = self._notify(feed, candidate)
        else:
            outcome = CheckOutcome.UNCHANGED
            log_event(
                logger,
                f"[{feed.name}] No new {noun} (still: {candidate.title})",
                level=logging.DEBUG,
                event="check_unchanged",
                feed_id=feed.id,
            )

        patch = FeedPatch(last_checked=self._now(), last_error=CLEAR, fail_count=0)
        if outcome is not CheckOutcome.UNCHANGED:
            patch.last_chapter = candidate.title
        self._store.update(feed.id, patch)
        return CheckResult(
            feed.id,
            outcome,
            title=candidate.title,
            link=candidate.link,
            notified=notified,
        )

    def _notify(self, feed: FeedRecord, candidate: FeedItem) -> bool:
        try:
            result = self._dispatcher.dispatch(
                feed.name,
                candidate.title,
                candidate.link,
                feed.kind,
                external_ref=feed.external_ref,
                cover=feed.cover,
            )
        except Exception:  # noqa: BLE001
            logger.exception("[%s] Failed to send notification", feed.name)
            return False
        if result.failed:
            logger.warning("[%s] Notification failed on: %s", feed.name, ", ".join(result.failed))
        self._bump(notifications_sent=1)
        return True

    def _now(self) -> str:
        return to_rfc3339(self._clock())
