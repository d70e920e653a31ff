"""
Feed persistence.

This package holds the two-partition JSON store and the lock that
serializes access to each partition.
"""

from .feed_store import FeedStore
from .locks import ReadWriteLock
from .migrate import migrate_legacy_document

__all__ = ["FeedStore", "ReadWriteLock", "migrate_legacy_document"]
