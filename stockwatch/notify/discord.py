"""Discord webhook notifier.

Posts stock-update announcements to a Discord channel via webhook. Long
announcements are split into several messages to stay under Discord's
content limit.
"""

import logging
from typing import Optional, Sequence

import requests

from ..diff.stock_diff import ChangeEntry
from ..formatting import DISCORD_MESSAGE_LIMIT, format_change_message, split_message
from .base import HttpNotifier

logger = logging.getLogger(__name__)


class DiscordWebhookNotifier(HttpNotifier):
    """Send change announcements to a Discord webhook."""

    name = "discord"

    def __init__(
        self,
        webhook_url: str,
        mention: str = "@everyone",
        session: Optional[requests.Session] = None,
        timeout: float = 10
    ):
        if not webhook_url:
            raise ValueError("Discord webhook URL is required")
        super().__init__(session=session, timeout=timeout)
        self.webhook_url = webhook_url
        self.mention = mention

    def send(self, entries: Sequence[ChangeEntry]) -> None:
        if not entries:
            return

        message = format_change_message(entries, mention=self.mention)
        chunks = split_message(message, DISCORD_MESSAGE_LIMIT)
        logger.info(f"Sending {len(entries)} stock changes to Discord ({len(chunks)} message(s))")
        for chunk in chunks:
            self._post_json(self.webhook_url, {"content": chunk})
