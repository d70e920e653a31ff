"""
Notification delivery.

This package composes kind-framed messages and fans them out to the
configured Gotify and Discord channels.
"""

from .base import HttpChannel, NotificationChannel, NotificationMessage
from .discord import DiscordChannel
from .dispatcher import DispatchResult, NotificationDispatcher, compose_message
from .factory import available_channels, create_channels
from .gotify import GotifyChannel

__all__ = [
    "DiscordChannel",
    "DispatchResult",
    "GotifyChannel",
    "HttpChannel",
    "NotificationChannel",
    "NotificationDispatcher",
    "NotificationMessage",
    "available_channels",
    "compose_message",
    "create_channels",
]
