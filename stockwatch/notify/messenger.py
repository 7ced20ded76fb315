"""Facebook Messenger notifier.

Pushes stock-update announcements to subscribed Messenger users through the
Graph API Send API, using a page access token, and answers inbound messages
(stock, category, help) by keyword.
"""

import logging
from datetime import datetime
from typing import Iterable, Optional, Sequence, Tuple

import requests

from ..diff.stock_diff import ChangeEntry
from ..formatting import format_category_stock, format_change_message, format_stock_summary, split_message
from ..schema import CATEGORY_ORDER
from ..snapshot import Snapshot
from .base import HttpNotifier

logger = logging.getLogger(__name__)

GRAPH_API_URL = "https://graph.facebook.com/v18.0/me/messages"
MESSENGER_MESSAGE_LIMIT = 2000

HELP_MESSAGE = """🤖 **Garden Stock Bot Help** 🤖

Here are the commands you can use:

📊 **'stock'** or **'inventory'** - Get full stock summary
🌱 **'seeds'** - View available seeds
⚙️ **'gear'** - View available gear
🥚 **'eggs'** - View available eggs
💄 **'cosmetics'** - View available cosmetics
❓ **'help'** - Show this help message

Just type any of these keywords and I'll get you the latest stock information!

🌿 Happy gardening! 🌿"""

WELCOME_MESSAGE = """🌻 Welcome to Garden Stock Bot! 🌻

I can help you check our current inventory. Here's what you can ask me:

• Type **'stock'** for a complete inventory summary
• Type **'seeds'**, **'gear'**, **'eggs'**, or **'cosmetics'** for specific categories
• Type **'help'** for all available commands

What would you like to check today? 🌱"""

# Reply actions
SUMMARY = "summary"
CATEGORY = "category"
HELP = "help"
WELCOME = "welcome"


def route_message(text: Optional[str]) -> Tuple[str, Optional[str]]:
    """
    Map an inbound message to a reply action by keyword.

    Keywords are matched as substrings, case-insensitively, in this order:
    stock/inventory, then each category identifier, then help/commands.
    Anything else gets the welcome message.

    Returns:
        (action, category); category is set only for CATEGORY
    """
    lowered = (text or "").lower()
    if "stock" in lowered or "inventory" in lowered:
        return SUMMARY, None
    for category in CATEGORY_ORDER:
        if category in lowered:
            return CATEGORY, category
    if "help" in lowered or "commands" in lowered:
        return HELP, None
    return WELCOME, None


class MessengerNotifier(HttpNotifier):
    """Send change announcements to a fixed list of Messenger recipients."""

    name = "messenger"

    def __init__(
        self,
        page_access_token: str,
        recipient_ids: Iterable[str],
        api_url: str = GRAPH_API_URL,
        session: Optional[requests.Session] = None,
        timeout: float = 10
    ):
        if not page_access_token:
            raise ValueError("Messenger page access token is required")
        super().__init__(session=session, timeout=timeout)
        self.page_access_token = page_access_token
        self.recipient_ids = list(recipient_ids)
        self.api_url = api_url

    def send_text(self, recipient_id: str, text: str) -> None:
        """Send one text message (split if longer than the Send API allows)."""
        for chunk in split_message(text, MESSENGER_MESSAGE_LIMIT):
            payload = {
                "recipient": {"id": recipient_id},
                "message": {"text": chunk},
                "messaging_type": "UPDATE",
            }
            self._post_json(
                self.api_url,
                payload,
                params={"access_token": self.page_access_token},
            )

    def send_stock_summary(
        self,
        recipient_id: str,
        snapshot: Snapshot,
        now: datetime,
        category: Optional[str] = None
    ) -> None:
        """Send the whole-shop summary, or one category's listing."""
        if category is None:
            text = format_stock_summary(snapshot, now)
        else:
            text = format_category_stock(snapshot, category, now)
        self.send_text(recipient_id, text)

    def reply(
        self,
        recipient_id: str,
        text: Optional[str],
        snapshot: Optional[Snapshot],
        now: datetime
    ) -> str:
        """
        Answer an inbound message from a user.

        Args:
            recipient_id: Sender to reply to
            text: Message text as received
            snapshot: Current stock, or None if it could not be fetched
            now: Timestamp shown as "Last Updated"

        Returns:
            The action taken (see route_message)
        """
        action, category = route_message(text)
        logger.info(f"Messenger request from {recipient_id}: {action} {category or ''}".rstrip())

        if action == HELP:
            self.send_text(recipient_id, HELP_MESSAGE)
        elif action == WELCOME:
            self.send_text(recipient_id, WELCOME_MESSAGE)
        elif snapshot is None:
            subject = f"the {category}" if category else "the current"
            self.send_text(
                recipient_id,
                f"Sorry, I couldn't fetch {subject} stock data. Please try again later."
            )
        else:
            self.send_stock_summary(recipient_id, snapshot, now, category=category)
        return action

    def send(self, entries: Sequence[ChangeEntry]) -> None:
        if not entries or not self.recipient_ids:
            return

        # Messenger has no channel-wide mentions
        message = format_change_message(entries, mention="")
        logger.info(f"Sending {len(entries)} stock changes to {len(self.recipient_ids)} Messenger recipient(s)")
        for recipient_id in self.recipient_ids:
            self.send_text(recipient_id, message)
