"""
Shinkan - manga and anime release tracker.

This package polls manga and anime RSS feeds, detects new chapters and
episodes by comparing the newest item title with the stored marker, and
notifies through Gotify and Discord. Per-feed state is kept in two JSON
documents, one per kind.

Main entry point is the CLI via the `shinkan` command.

Example:
    $ shinkan add "One Piece" https://mangadex.example/title/one-piece
    $ shinkan check
"""

__all__ = ["__version__", "FeedService", "build_service", "FeedKind", "FeedPatch", "FeedRecord"]
__version__ = "0.1.0"

from .core.types import FeedKind, FeedPatch, FeedRecord
from .service import FeedService, build_service
