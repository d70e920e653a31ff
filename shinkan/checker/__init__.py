"""Feed checking: retry, change detection and run statistics."""

from .backoff import LinearBackoff, RetriesExhausted, retry_call
from .checker import BATCH_ATTEMPTS, Checker

__all__ = [
    "BATCH_ATTEMPTS",
    "Checker",
    "LinearBackoff",
    "RetriesExhausted",
    "retry_call",
]
