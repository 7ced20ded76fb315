"""
HTTP client for the stock API.

Fetches the raw stock payload and hands it to `normalize()`. Retrying is the
scheduler's business: a failed fetch raises StockFetchError and the cycle is
simply attempted again later.
"""

import logging
from typing import Any, Dict, Optional

import requests

from .snapshot import Snapshot, normalize

logger = logging.getLogger(__name__)

DEFAULT_API_BASE_URL = "https://grow-a-garden-api-4ses.onrender.com/api"
STOCK_ENDPOINT = "/stock/GetStock"


class StockFetchError(RuntimeError):
    """Raised when the stock API cannot be reached or returns bad data."""


def get_http_session() -> requests.Session:
    """Return a new HTTP session with JSON-friendly default headers."""
    session = requests.Session()
    session.headers.update(
        {
            "User-Agent": "stockwatch/1.0",
            "Accept": "application/json",
        }
    )
    return session


class StockApiClient:
    """
    Client for the stock API.

    Connection can be configured via constructor parameters; an existing
    `requests.Session` may be supplied (and is then not closed by `close()`).
    """

    def __init__(
        self,
        base_url: str = DEFAULT_API_BASE_URL,
        timeout: float = 30,
        session: Optional[requests.Session] = None
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._owns_session = session is None
        self.session = session or get_http_session()

    @property
    def stock_url(self) -> str:
        return f"{self.base_url}{STOCK_ENDPOINT}"

    def fetch_raw(self) -> Dict[str, Any]:
        """
        Fetch the raw stock payload.

        Raises:
            StockFetchError: On network errors, non-2xx status, or a body
                that is not a JSON object
        """
        url = self.stock_url
        try:
            response = self.session.get(url, timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            raise StockFetchError(f"Stock API request failed: {e}") from e

        try:
            payload = response.json()
        except ValueError as e:
            raise StockFetchError(f"Stock API returned invalid JSON: {e}") from e

        if not isinstance(payload, dict):
            raise StockFetchError(
                f"Stock API returned {type(payload).__name__}, expected a JSON object"
            )

        logger.debug(f"Fetched stock payload from {url}")
        return payload

    def fetch_snapshot(self) -> Snapshot:
        """Fetch and normalize the current stock."""
        return normalize(self.fetch_raw())

    def close(self) -> None:
        if self._owns_session:
            self.session.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
