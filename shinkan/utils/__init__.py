"""
Shared utility functions.

This package contains logging and timestamp helpers used across the
store, checker and notification layers.
"""

from .clock import to_rfc3339, utc_now
from .logging import JsonlFormatter, log_event, setup_logging

__all__ = [
    "setup_logging",
    "log_event",
    "JsonlFormatter",
    "to_rfc3339",
    "utc_now",
]
