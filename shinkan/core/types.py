"""
Core data types for the feed tracker.

This module defines the structures shared by the store, the checker and
the service facade:
- FeedKind: manga or anime
- FeedRecord: one monitored feed and its comparison state
- FeedPatch: explicit optional-field update with a CLEAR marker
- FeedItem: one entry returned by a feed source
- CheckStats, CheckResult, TestFeedResult: checker outputs
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any

from ..errors import ValidationError

DEFAULT_CATEGORY = "Uncategorized"


class FeedKind(str, Enum):
    MANGA = "manga"
    ANIME = "anime"

    @classmethod
    def parse(cls, value: Any) -> "FeedKind":
        """Parse a kind from its wire value, defaulting empty input to manga."""
        if isinstance(value, FeedKind):
            return value
        if value is None or value == "":
            return cls.MANGA
        try:
            return cls(str(value).strip().lower())
        except ValueError as exc:
            raise ValidationError(f"unknown feed type: {value!r}") from exc


class _Marker:
    """Sentinel type for patch fields."""

    def __init__(self, name: str):
        self._name = name

    def __repr__(self) -> str:
        return self._name

    def __bool__(self) -> bool:
        return False


UNSET: Any = _Marker("UNSET")
CLEAR: Any = _Marker("CLEAR")


@dataclass
class FeedRecord:
    """A monitored manga or anime feed.

    Attributes:
        id: Unique id assigned by the store, empty until added
        name: Display name
        source_url: RSS/Atom URL polled by the checker
        kind: FeedKind.MANGA or FeedKind.ANIME
        external_ref: Optional AniList URL appended to notifications
        category: Free-form grouping label
        search_filter: Anime only; substring a title must contain
        last_chapter: Last observed chapter/episode title (the marker)
        last_checked: RFC 3339 timestamp of the last check attempt
        last_error: Message of the last exhausted check, if any
        fail_count: Consecutive failed checks since the last success
        added_at: RFC 3339 creation timestamp
        cover: Optional cover image URL
    """

    name: str
    source_url: str
    kind: FeedKind = FeedKind.MANGA
    id: str = ""
    external_ref: str | None = None
    category: str = ""
    search_filter: str | None = None
    last_chapter: str | None = None
    last_checked: str | None = None
    last_error: str | None = None
    fail_count: int = 0
    added_at: str = ""
    cover: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the persisted JSON shape.

        Optional reference fields are omitted when absent; the comparison
        state fields are always written, null included.
        """
        data: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "rssUrl": self.source_url,
            "type": self.kind.value,
        }
        if self.external_ref is not None:
            data["anilistUrl"] = self.external_ref
        data["category"] = self.category
        data["lastChecked"] = self.last_checked
        data["lastChapter"] = self.last_chapter
        data["lastError"] = self.last_error
        data["failCount"] = self.fail_count
        data["addedAt"] = self.added_at
        if self.search_filter is not None:
            data["searchText"] = self.search_filter
        if self.cover is not None:
            data["cover"] = self.cover
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "FeedRecord":
        """Build a record from its JSON shape."""
        if not isinstance(data, dict):
            raise ValidationError(f"feed entry must be an object, got {type(data).__name__}")
        try:
            fail_count = int(data.get("failCount") or 0)
        except (TypeError, ValueError) as exc:
            raise ValidationError(f"invalid failCount: {data.get('failCount')!r}") from exc
        return cls(
            id=str(data.get("id") or ""),
            name=str(data.get("name") or ""),
            source_url=str(data.get("rssUrl") or ""),
            kind=FeedKind.parse(data.get("type")),
            external_ref=_optional_str(data.get("anilistUrl")),
            category=str(data.get("category") or ""),
            search_filter=_optional_str(data.get("searchText")),
            last_chapter=_optional_str(data.get("lastChapter")),
            last_checked=_optional_str(data.get("lastChecked")),
            last_error=_optional_str(data.get("lastError")),
            fail_count=max(0, fail_count),
            added_at=str(data.get("addedAt") or ""),
            cover=_optional_str(data.get("cover")),
        )


def _optional_str(value: Any) -> str | None:
    if value is None:
        return None
    return str(value)


# Wire name -> (attribute, nullable)
_PATCH_SCHEMA: dict[str, tuple[str, bool]] = {
    "name": ("name", False),
    "rssUrl": ("source_url", False),
    "type": ("kind", False),
    "anilistUrl": ("external_ref", True),
    "category": ("category", False),
    "searchText": ("search_filter", True),
    "lastChapter": ("last_chapter", True),
    "lastChecked": ("last_checked", True),
    "lastError": ("last_error", True),
    "failCount": ("fail_count", False),
    "cover": ("cover", True),
}

_NULLABLE = {attr for attr, nullable in _PATCH_SCHEMA.values() if nullable}


@dataclass
class FeedPatch:
    """Partial update for a FeedRecord.

    Every field defaults to UNSET (leave untouched). Nullable fields also
    accept CLEAR, which sets the stored value to null. "Absent" and
    "clear" are distinct: the checker clears last_error on success but
    leaves it alone when only refreshing other fields.
    """

    name: Any = UNSET
    source_url: Any = UNSET
    kind: Any = UNSET
    external_ref: Any = UNSET
    category: Any = UNSET
    search_filter: Any = UNSET
    last_chapter: Any = UNSET
    last_checked: Any = UNSET
    last_error: Any = UNSET
    fail_count: Any = UNSET
    cover: Any = UNSET

    def __post_init__(self) -> None:
        for f in fields(self):
            value = getattr(self, f.name)
            if value is UNSET:
                continue
            if value is CLEAR:
                if f.name not in _NULLABLE:
                    raise ValidationError(f"field {f.name} cannot be cleared")
                continue
            if f.name == "kind":
                setattr(self, f.name, FeedKind.parse(value))
            elif f.name == "fail_count":
                if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                    raise ValidationError(f"failCount must be a non-negative integer, got {value!r}")
            elif not isinstance(value, str):
                raise ValidationError(f"field {f.name} must be a string, got {type(value).__name__}")

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "FeedPatch":
        """Validate an outer-layer payload against the fixed patch schema.

        JSON null on a nullable field means CLEAR. Unknown keys are
        rejected rather than silently ignored.
        """
        if not isinstance(payload, dict):
            raise ValidationError("patch payload must be an object")
        unknown = sorted(set(payload) - set(_PATCH_SCHEMA))
        if unknown:
            raise ValidationError(f"unknown patch fields: {', '.join(unknown)}")
        kwargs: dict[str, Any] = {}
        for key, value in payload.items():
            attr, nullable = _PATCH_SCHEMA[key]
            if value is None:
                if not nullable:
                    raise ValidationError(f"field {key} cannot be null")
                kwargs[attr] = CLEAR
            else:
                kwargs[attr] = value
        return cls(**kwargs)

    def present(self) -> dict[str, Any]:
        """Return the fields that are set or cleared."""
        return {f.name: getattr(self, f.name) for f in fields(self) if getattr(self, f.name) is not UNSET}

    def apply(self, record: FeedRecord) -> None:
        """Mutate record in place with the present fields."""
        for name, value in self.present().items():
            setattr(record, name, None if value is CLEAR else value)


@dataclass
class FeedItem:
    """One entry of a fetched feed, in source order."""

    title: str
    link: str = ""
    published_at: str | None = None


@dataclass
class CheckStats:
    """Run-level counters owned by the checker."""

    total_checks: int = 0
    successful_checks: int = 0
    failed_checks: int = 0
    notifications_sent: int = 0
    last_check_time: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "totalChecks": self.total_checks,
            "successfulChecks": self.successful_checks,
            "failedChecks": self.failed_checks,
            "notificationsSent": self.notifications_sent,
            "lastCheckTime": self.last_check_time,
        }


class CheckOutcome(str, Enum):
    FIRST_SEEN = "first_seen"
    NEW_CONTENT = "new_content"
    UNCHANGED = "unchanged"
    NO_MATCH = "no_match"
    FAILED = "failed"


@dataclass
class CheckResult:
    """Result of one check_feed call.

    Attributes:
        feed_id: Id of the checked feed
        outcome: What the check concluded
        attempts: Number of fetch attempts made
        title: Candidate title, when one was selected
        link: Candidate link, when one was selected
        notified: Whether a notification was counted
        error: Final error message for failed checks
    """

    feed_id: str
    outcome: CheckOutcome
    attempts: int = 1
    title: str | None = None
    link: str | None = None
    notified: bool = False
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.outcome is not CheckOutcome.FAILED


@dataclass
class CheckAllSummary:
    """Aggregate of one check_all batch."""

    total: int = 0
    succeeded: int = 0
    failed: int = 0
    notifications: int = 0
    results: list[CheckResult] = field(default_factory=list)


@dataclass
class TestFeedResult:
    """Outcome of a one-shot test notification.

    Either title/link are populated and sent is True, or error describes
    why no candidate could be selected.
    """

    __test__ = False

    title: str | None = None
    link: str | None = None
    sent: bool = False
    published_at: str | None = None
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        if self.error is not None:
            return {"error": self.error, "sent": self.sent}
        data: dict[str, Any] = {"title": self.title, "link": self.link, "sent": self.sent}
        if self.published_at is not None:
            data["date"] = self.published_at
        return data
