"""
Error taxonomy for the change-detection pipeline.

Only FetchError is retried by the checker. NoMatchError is benign: an
anime filter that matches nothing is a successful check, not a failure.
"""

from __future__ import annotations


class ShinkanError(Exception):
    """Base class for every error raised by this package."""


class FetchError(ShinkanError):
    """Network or parse failure while reaching a feed source."""


class EmptyFeedError(ShinkanError):
    """The feed source returned zero items."""

    def __init__(self, message: str = "no items found in RSS feed"):
        super().__init__(message)


class NoMatchError(ShinkanError):
    """An anime search filter matched none of the fetched items."""

    def __init__(self, search_filter: str):
        super().__init__(f"No matching items found for search: {search_filter}")
        self.search_filter = search_filter


class NotFoundError(ShinkanError):
    """Unknown feed id."""

    def __init__(self, feed_id: str):
        super().__init__(f"feed not found: {feed_id}")
        self.feed_id = feed_id


class ValidationError(ShinkanError):
    """Missing or invalid fields on add, update or patch payloads."""


class PersistenceError(ShinkanError):
    """Store read, write or parse failure."""


class ConfigurationError(ShinkanError):
    """Invalid configuration, such as a partial channel credential set."""


class NotificationError(ShinkanError):
    """A single channel failed to deliver a message."""

    def __init__(self, channel: str, message: str):
        super().__init__(f"{channel}: {message}")
        self.channel = channel
