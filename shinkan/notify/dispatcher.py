"""
Multi-channel notification fan-out.

The dispatcher composes one message per event and hands it to every
active channel. A channel failure is logged and recorded in the result;
it never stops the remaining channels and never raises to the caller, so
a notification outage cannot block freshness tracking.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
from typing import Sequence

from ..core.kinds import TEST_PRIORITY, strategy_for
from ..core.types import FeedKind
from ..errors import NotificationError
from ..utils.logging import log_event
from .base import NotificationChannel, NotificationMessage

logger = logging.getLogger(__name__)


@dataclass
class DispatchResult:
    """Per-channel outcome of one fan-out.

    Attributes:
        delivered: Names of channels that accepted the message
        failed: Channel name -> error message for channels that did not
    """

    delivered: list[str] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)

    @property
    def attempted(self) -> int:
        return len(self.delivered) + len(self.failed)


def compose_message(
    feed_name: str,
    item_title: str,
    link: str,
    kind: FeedKind,
    external_ref: str | None = None,
    cover: str | None = None,
    test: bool = False,
) -> NotificationMessage:
    """Build the message for a new item, framed by the feed kind."""
    style = strategy_for(kind).style
    body = f"**{feed_name}**\n{item_title}"
    if external_ref:
        body += f"\n\n📺 AniList: {external_ref}"
    body += f"\n\n🔗 Link: {link}"
    return NotificationMessage(
        title=style.test_title if test else style.title,
        body=body,
        priority=TEST_PRIORITY if test else style.priority,
        color=style.color,
        feed_name=feed_name,
        item_title=item_title,
        link=link,
        external_ref=external_ref or None,
        cover=cover or None,
        is_test=test,
    )


class NotificationDispatcher:
    """Stateless fan-out over the configured channels."""

    def __init__(self, channels: Sequence[NotificationChannel] = ()):
        self._channels = list(channels)

    @property
    def channel_names(self) -> list[str]:
        return [channel.name for channel in self._channels]

    def dispatch(
        self,
        feed_name: str,
        item_title: str,
        link: str,
        kind: FeedKind,
        external_ref: str | None = None,
        cover: str | None = None,
    ) -> DispatchResult:
        message = compose_message(feed_name, item_title, link, kind, external_ref, cover)
        return self._fan_out(message)

    def send_test(
        self,
        feed_name: str,
        item_title: str,
        link: str,
        kind: FeedKind,
        external_ref: str | None = None,
        cover: str | None = None,
    ) -> DispatchResult:
        message = compose_message(feed_name, item_title, link, kind, external_ref, cover, test=True)
        return self._fan_out(message)

    def close(self) -> None:
        for channel in self._channels:
            channel.close()

    def _fan_out(self, message: NotificationMessage) -> DispatchResult:
        result = DispatchResult()
        for channel in self._channels:
            try:
                channel.send(message)
            except NotificationError as exc:
                result.failed[channel.name] = str(exc)
                log_event(
                    logger,
                    f"{channel.name} notification failed: {exc}",
                    level=logging.WARNING,
                    event="notification_failed",
                    channel=channel.name,
                    feed=message.feed_name,
                    test=message.is_test,
                )
            except Exception as exc:  # noqa: BLE001
                result.failed[channel.name] = f"{type(exc).__name__}: {exc}"
                logger.exception("Unexpected error from %s channel", channel.name)
            else:
                result.delivered.append(channel.name)
        return result
