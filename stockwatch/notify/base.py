"""Notification channel interface."""

from typing import Optional, Sequence

import requests

from ..diff.stock_diff import ChangeEntry


class NotificationError(RuntimeError):
    """Raised when a channel fails to deliver a message."""


class Notifier:
    """
    Base class for notification channels.

    Subclasses implement `send()`; they receive the entries that passed the
    notification policy and never see empty sequences from the monitor.
    """

    name = "notifier"

    def send(self, entries: Sequence[ChangeEntry]) -> None:
        raise NotImplementedError

    def close(self) -> None:
        """Release any resources held by the channel."""


class HttpNotifier(Notifier):
    """Notifier that posts JSON with a `requests` session."""

    def __init__(self, session: Optional[requests.Session] = None, timeout: float = 10):
        self.timeout = timeout
        self._owns_session = session is None
        self.session = session or requests.Session()

    def _post_json(self, url: str, payload: dict, **kwargs) -> requests.Response:
        try:
            response = self.session.post(url, json=payload, timeout=self.timeout, **kwargs)
            response.raise_for_status()
        except requests.RequestException as e:
            raise NotificationError(f"{self.name} delivery failed: {e}") from e
        return response

    def close(self) -> None:
        if self._owns_session:
            self.session.close()
