"""
Feed fetching.

This package turns a feed URL into ordered FeedItems using httpx for
transport and feedparser for RSS/Atom parsing.
"""

from .fetcher import FeedFetcher, FetchResult, parse_feed

__all__ = ["FeedFetcher", "FetchResult", "parse_feed"]
