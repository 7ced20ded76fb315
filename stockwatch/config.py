"""Configuration loader.

Reads environment variables (and a `.env` file in the working directory, if
present) to configure the monitor.
"""

import logging
import os
from dataclasses import dataclass, field
from typing import FrozenSet, List, Mapping, Optional

from dotenv import load_dotenv

from .diff.classify import NotificationPolicy
from .diff.stock_diff import BaselinePolicy, ChangeKind
from .fetch import DEFAULT_API_BASE_URL
from .schema import CATEGORY_ORDER

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def _parse_int(value: Optional[str], default: int) -> int:
    try:
        return int(value) if value is not None else default
    except ValueError:
        return default


def _parse_retention_days(value: Optional[str]) -> Optional[int]:
    # Zero or negative disables cleanup rather than expiring everything
    days = _parse_int(value, 1)
    return days if days > 0 else None


def _parse_list(value: Optional[str]) -> List[str]:
    return [s.strip() for s in (value or "").split(",") if s.strip()]


def _parse_kinds(value: Optional[str]) -> FrozenSet[ChangeKind]:
    names = _parse_list(value)
    if not names:
        return frozenset(ChangeKind)
    try:
        return frozenset(ChangeKind(name.lower()) for name in names)
    except ValueError:
        valid = ", ".join(k.value for k in ChangeKind)
        raise ValueError(f"NOTIFY_KINDS must be a comma-separated subset of: {valid}") from None


def _parse_categories(value: Optional[str]) -> Optional[FrozenSet[str]]:
    names = [name.lower() for name in _parse_list(value)]
    if not names:
        return None
    unknown = [name for name in names if name not in CATEGORY_ORDER]
    if unknown:
        raise ValueError(
            f"Unknown NOTIFY_CATEGORIES: {', '.join(unknown)} "
            f"(expected any of: {', '.join(CATEGORY_ORDER)})"
        )
    return frozenset(names)


def _parse_baseline_policy(value: Optional[str]) -> BaselinePolicy:
    try:
        return BaselinePolicy((value or BaselinePolicy.SILENT.value).strip().lower())
    except ValueError:
        valid = ", ".join(p.value for p in BaselinePolicy)
        raise ValueError(f"BASELINE_POLICY must be one of: {valid}") from None


@dataclass
class Settings:
    """Monitor settings; see `load_settings()` for the environment variables."""
    api_base_url: str = DEFAULT_API_BASE_URL
    request_timeout: int = 30
    discord_webhook_url: Optional[str] = None
    discord_mention: str = "@everyone"
    messenger_page_token: Optional[str] = None
    messenger_recipient_ids: List[str] = field(default_factory=list)
    db_url: Optional[str] = None
    db_host: Optional[str] = None
    db_port: int = 5432
    db_name: Optional[str] = None
    db_user: Optional[str] = None
    db_password: Optional[str] = None
    log_level: str = "INFO"
    baseline_policy: BaselinePolicy = BaselinePolicy.SILENT
    notify_kinds: FrozenSet[ChangeKind] = frozenset(ChangeKind)
    notify_categories: Optional[FrozenSet[str]] = None
    notify_min_changes: int = 1
    retention_days: Optional[int] = 1
    unchanged_retry_seconds: int = 30

    @property
    def notification_policy(self) -> NotificationPolicy:
        return NotificationPolicy(
            notify_kinds=self.notify_kinds,
            categories=self.notify_categories,
            min_changes=self.notify_min_changes,
        )

    @property
    def has_database(self) -> bool:
        """A database URL, or every STOCKWATCH_DB_* part but the port, is set."""
        if self.db_url:
            return True
        return all([self.db_host, self.db_name, self.db_user, self.db_password])


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """
    Build Settings from environment variables.

    When `environ` is None, `.env` is loaded into os.environ first (existing
    variables win) and os.environ is read.

    Raises:
        ValueError: For unrecognized policy, kind, or category names
    """
    if environ is None:
        load_dotenv()
        environ = os.environ

    def get(name: str, default: Optional[str] = None) -> Optional[str]:
        value = environ.get(name)
        return value if value not in (None, "") else default

    return Settings(
        api_base_url=get("STOCK_API_BASE_URL", DEFAULT_API_BASE_URL),
        request_timeout=_parse_int(get("STOCK_API_TIMEOUT"), 30),
        discord_webhook_url=get("DISCORD_WEBHOOK_URL"),
        discord_mention=environ.get("DISCORD_MENTION", "@everyone"),
        messenger_page_token=get("MESSENGER_PAGE_ACCESS_TOKEN"),
        messenger_recipient_ids=_parse_list(get("MESSENGER_RECIPIENT_IDS")),
        db_url=get("STOCKWATCH_DB_URL"),
        db_host=get("STOCKWATCH_DB_HOST"),
        db_port=_parse_int(get("STOCKWATCH_DB_PORT"), 5432),
        db_name=get("STOCKWATCH_DB_NAME"),
        db_user=get("STOCKWATCH_DB_USER"),
        db_password=get("STOCKWATCH_DB_PASSWORD"),
        log_level=get("LOG_LEVEL", "INFO").upper(),
        baseline_policy=_parse_baseline_policy(get("BASELINE_POLICY")),
        notify_kinds=_parse_kinds(get("NOTIFY_KINDS")),
        notify_categories=_parse_categories(get("NOTIFY_CATEGORIES")),
        notify_min_changes=max(1, _parse_int(get("NOTIFY_MIN_CHANGES"), 1)),
        retention_days=_parse_retention_days(get("RETENTION_DAYS")),
        unchanged_retry_seconds=_parse_int(get("UNCHANGED_RETRY_SECONDS"), 30),
    )


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging for command-line runs."""
    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO), format=LOG_FORMAT)
