"""Tests for feed records, kinds and the explicit patch type."""

from __future__ import annotations

import pytest

from shinkan.core.types import CLEAR, UNSET, FeedKind, FeedPatch, FeedRecord
from shinkan.errors import ValidationError


def test_feed_kind_parse():
    assert FeedKind.parse("anime") is FeedKind.ANIME
    assert FeedKind.parse(" Manga ") is FeedKind.MANGA
    assert FeedKind.parse("") is FeedKind.MANGA
    assert FeedKind.parse(None) is FeedKind.MANGA
    with pytest.raises(ValidationError):
        FeedKind.parse("novel")


def test_record_from_dict_defaults():
    record = FeedRecord.from_dict({"id": "42", "name": "X", "rssUrl": "https://x/rss"})

    assert record.kind is FeedKind.MANGA
    assert record.last_chapter is None
    assert record.fail_count == 0
    assert record.search_filter is None


def test_record_to_dict_omits_absent_optionals():
    data = FeedRecord(name="X", source_url="https://x/rss", id="1").to_dict()

    assert "anilistUrl" not in data
    assert "searchText" not in data
    assert "cover" not in data
    assert data["lastChecked"] is None
    assert data["lastError"] is None


def test_record_dict_round_trip_keeps_every_field():
    record = FeedRecord(
        name="Dandadan",
        source_url="https://a/rss",
        kind=FeedKind.ANIME,
        id="7",
        external_ref="https://anilist.co/anime/171018",
        category="Action",
        search_filter="Dandadan",
        last_chapter="Ep 3",
        last_checked="2026-01-01T00:00:00+00:00",
        last_error="HTTP 500",
        fail_count=2,
        added_at="2025-12-01T00:00:00+00:00",
        cover="https://img/c.jpg",
    )
    assert FeedRecord.from_dict(record.to_dict()) == record


def test_patch_defaults_to_unset():
    patch = FeedPatch()
    assert patch.present() == {}
    assert patch.last_error is UNSET


def test_patch_clear_versus_absent():
    record = FeedRecord(name="X", source_url="u", last_error="boom", last_chapter="Ch 1")

    FeedPatch(last_checked="now").apply(record)
    assert record.last_error == "boom"

    FeedPatch(last_error=CLEAR).apply(record)
    assert record.last_error is None
    assert record.last_chapter == "Ch 1"


def test_patch_from_dict_null_means_clear():
    patch = FeedPatch.from_dict({"lastError": None, "name": "New name", "type": "anime"})

    assert patch.last_error is CLEAR
    assert patch.name == "New name"
    assert patch.kind is FeedKind.ANIME


def test_patch_from_dict_rejects_unknown_fields():
    with pytest.raises(ValidationError, match="unknown patch fields: bogus"):
        FeedPatch.from_dict({"bogus": 1})


def test_patch_rejects_clearing_required_fields():
    with pytest.raises(ValidationError):
        FeedPatch.from_dict({"name": None})
    with pytest.raises(ValidationError):
        FeedPatch(source_url=CLEAR)


def test_patch_rejects_wrong_types():
    with pytest.raises(ValidationError):
        FeedPatch.from_dict({"failCount": "3"})
    with pytest.raises(ValidationError):
        FeedPatch.from_dict({"failCount": -1})
    with pytest.raises(ValidationError):
        FeedPatch.from_dict({"category": 5})
