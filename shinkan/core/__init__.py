"""
Core domain models and per-kind rules.

This package contains data types and behaviour that are independent of
storage, fetching and notification delivery.
"""

from .kinds import KindStrategy, MessageStyle, strategy_for
from .types import (
    CLEAR,
    DEFAULT_CATEGORY,
    UNSET,
    CheckAllSummary,
    CheckOutcome,
    CheckResult,
    CheckStats,
    FeedItem,
    FeedKind,
    FeedPatch,
    FeedRecord,
    TestFeedResult,
)

__all__ = [
    "CLEAR",
    "DEFAULT_CATEGORY",
    "UNSET",
    "CheckAllSummary",
    "CheckOutcome",
    "CheckResult",
    "CheckStats",
    "FeedItem",
    "FeedKind",
    "FeedPatch",
    "FeedRecord",
    "KindStrategy",
    "MessageStyle",
    "TestFeedResult",
    "strategy_for",
]
