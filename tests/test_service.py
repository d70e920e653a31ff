"""Tests for the service facade and build_service wiring."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
import tempfile

import pytest

from shinkan.config import AppConfig
from shinkan.core.types import CheckOutcome, FeedItem, FeedKind, FeedPatch
from shinkan.errors import NotFoundError, ValidationError
from shinkan.service import build_service

NOW = datetime(2026, 2, 1, 9, 0, tzinfo=timezone.utc)


def _service(tmpdir: str, fetcher=None, channels=()):
    cfg = AppConfig()
    cfg.storage.manga_file = str(Path(tmpdir) / "mangas.json")
    cfg.storage.anime_file = str(Path(tmpdir) / "anime.json")
    return build_service(
        cfg,
        fetcher=fetcher or (lambda url: [FeedItem("Chapter 1", f"{url}#1")]),
        channels=channels,
        clock=lambda: NOW,
        sleep=lambda seconds: None,
    )


def test_add_feed_normalizes_manga_url_and_defaults():
    with tempfile.TemporaryDirectory() as tmpdir:
        service = _service(tmpdir)

        feed = service.add_feed("Berserk", "https://mangadex.example/title/berserk")

        assert feed.source_url == "https://mangadex.example/title/berserk/rss"
        assert feed.kind is FeedKind.MANGA
        assert feed.category == "Uncategorized"
        assert feed.added_at == "2026-02-01T09:00:00+00:00"


def test_add_feed_keeps_anime_url():
    with tempfile.TemporaryDirectory() as tmpdir:
        service = _service(tmpdir)

        feed = service.add_feed("Frieren", "https://nyaa.example/?q=frieren", kind="anime", search_filter="Frieren")

        assert feed.source_url == "https://nyaa.example/?q=frieren"
        assert feed.search_filter == "Frieren"


def test_add_feed_requires_name_and_url():
    with tempfile.TemporaryDirectory() as tmpdir:
        service = _service(tmpdir)

        with pytest.raises(ValidationError):
            service.add_feed("", "https://m")
        with pytest.raises(ValidationError):
            service.add_feed("Name", "  ")
        with pytest.raises(ValidationError):
            service.add_feed("Name", "https://m", kind="novel")


def test_list_feeds_filters_by_category_and_search():
    with tempfile.TemporaryDirectory() as tmpdir:
        service = _service(tmpdir)
        service.add_feed("Berserk", "https://m/berserk", category="Dark")
        service.add_feed("Yotsuba", "https://m/yotsuba")

        assert [f.name for f in service.list_feeds()] == ["Berserk", "Yotsuba"]
        assert [f.name for f in service.list_feeds(category="all")] == ["Berserk", "Yotsuba"]
        assert [f.name for f in service.list_feeds(category="Dark")] == ["Berserk"]
        assert [f.name for f in service.list_feeds(category="Uncategorized")] == ["Yotsuba"]
        assert [f.name for f in service.list_feeds(category="Dark", search="yotsuba")] == ["Yotsuba"]
        assert service.list_categories() == ["Dark", "Uncategorized"]


def test_update_feed_from_dict_and_url_normalization():
    with tempfile.TemporaryDirectory() as tmpdir:
        service = _service(tmpdir)
        feed = service.add_feed("Berserk", "https://m/berserk")
        service.update_feed(feed.id, FeedPatch(last_error="HTTP 500"))

        updated = service.update_feed(feed.id, {"rssUrl": "https://m/berserk-new", "lastError": None})

        assert updated.source_url == "https://m/berserk-new/rss"
        assert updated.last_error is None


def test_update_feed_rejects_empty_name_and_unknown_id():
    with tempfile.TemporaryDirectory() as tmpdir:
        service = _service(tmpdir)
        feed = service.add_feed("Berserk", "https://m/berserk")

        with pytest.raises(ValidationError):
            service.update_feed(feed.id, {"name": ""})
        with pytest.raises(NotFoundError):
            service.update_feed("missing", {"category": "x"})


def test_import_and_export():
    with tempfile.TemporaryDirectory() as tmpdir:
        service = _service(tmpdir)
        service.add_feed("Berserk", "https://m/berserk")

        summary = service.import_feeds(
            [
                {"name": "Dup", "rssUrl": "https://m/berserk/rss"},
                {"name": "Frieren", "rssUrl": "https://a/rss", "type": "anime"},
            ]
        )
        exported = service.export_feeds()

        assert (summary.imported, summary.skipped) == (1, 1)
        assert exported["version"] == "1.0"
        assert exported["count"] == 2
        assert exported["exported"] == "2026-02-01T09:00:00+00:00"
        assert {feed["name"] for feed in exported["feeds"]} == {"Berserk", "Frieren"}


def test_export_then_import_into_empty_store_skips_nothing():
    with tempfile.TemporaryDirectory() as first_dir, tempfile.TemporaryDirectory() as second_dir:
        source = _service(first_dir)
        source.add_feed("Berserk", "https://m/berserk")
        source.add_feed("Frieren", "https://a/rss", kind="anime")

        target = _service(second_dir)
        summary = target.import_feeds(source.export_feeds()["feeds"])

        assert (summary.imported, summary.skipped) == (2, 0)


def test_stats_combine_counters_and_store_snapshot():
    with tempfile.TemporaryDirectory() as tmpdir:
        service = _service(tmpdir)
        checked = service.add_feed("Berserk", "https://m/berserk", category="Dark")
        service.add_feed("Yotsuba", "https://m/yotsuba")
        broken = service.add_feed("Broken", "https://m/broken")
        service.update_feed(broken.id, FeedPatch(fail_count=2))

        service.check_feed(checked.id)
        stats = service.get_stats()

        assert stats.total_feeds == 3
        assert stats.feeds_with_errors == 1
        assert stats.feeds_never_checked == 2
        assert stats.categories == 2
        assert stats.total_checks == 1
        assert stats.uptime >= 0
        assert stats.to_dict()["feedsWithErrors"] == 1


def test_check_feed_returns_refreshed_record():
    with tempfile.TemporaryDirectory() as tmpdir:
        service = _service(tmpdir)
        feed = service.add_feed("Berserk", "https://m/berserk")

        response = service.check_feed(feed.id)

        assert response.result.outcome is CheckOutcome.FIRST_SEEN
        assert response.feed.last_chapter == "Chapter 1"
        assert response.feed.last_checked == "2026-02-01T09:00:00+00:00"


def test_check_feed_unknown_id():
    with tempfile.TemporaryDirectory() as tmpdir:
        service = _service(tmpdir)

        with pytest.raises(NotFoundError):
            service.check_feed("missing")


def test_delete_feed():
    with tempfile.TemporaryDirectory() as tmpdir:
        service = _service(tmpdir)
        feed = service.add_feed("Berserk", "https://m/berserk")

        service.delete_feed(feed.id)

        assert service.list_feeds() == []
