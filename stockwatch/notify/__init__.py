"""Outbound notification channels for stock changes."""

from .base import Notifier, HttpNotifier, NotificationError
from .discord import DiscordWebhookNotifier
from .messenger import MessengerNotifier, route_message

__all__ = [
    "Notifier",
    "HttpNotifier",
    "NotificationError",
    "DiscordWebhookNotifier",
    "MessengerNotifier",
    "route_message",
]
