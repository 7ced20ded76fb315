"""
Stock monitoring cycle.

One cycle: fetch current stock -> read the previous snapshot from the store
-> diff -> save the new snapshot -> log and broadcast material changes.

The previous snapshot is always read from the store, never cached here, so
the store stays the single source of truth. A monitor instance runs at most
one cycle at a time; overlapping triggers are skipped rather than queued.
"""

import logging
import threading
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Sequence

from .config import Settings
from .diff.classify import DEFAULT_POLICY, ChangeDecision, NotificationPolicy, classify_change_set, summarize_change_set
from .diff.stock_diff import EMPTY_CHANGE_SET, BaselinePolicy, ChangeSet, diff
from .fetch import StockApiClient, StockFetchError
from .notify import DiscordWebhookNotifier, MessengerNotifier, NotificationError, Notifier
from .restock import next_restock_times
from .snapshot import Snapshot
from .store import InMemoryStockStore, PostgresStockStore, StockStore

logger = logging.getLogger(__name__)

CLEANUP_INTERVAL_SECONDS = 24 * 60 * 60


@dataclass
class CycleResult:
    """Outcome of one monitoring cycle."""
    snapshot: Optional[Snapshot] = None
    change_set: ChangeSet = EMPTY_CHANGE_SET
    decision: Optional[ChangeDecision] = None
    snapshot_id: Any = None
    change_log_id: Any = None
    notified: List[str] = field(default_factory=list)
    failed_notifiers: List[str] = field(default_factory=list)
    skipped: bool = False

    @property
    def has_changes(self) -> bool:
        return self.change_set.has_changes

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to dictionary for JSON output."""
        return {
            "skipped": self.skipped,
            "snapshot_id": self.snapshot_id,
            "change_log_id": self.change_log_id,
            "notified": list(self.notified),
            "failed_notifiers": list(self.failed_notifiers),
            **summarize_change_set(self.change_set),
        }


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class StockMonitor:
    """
    Runs fetch-compare-persist-notify cycles.

    Args:
        client: Stock API client (anything with `fetch_snapshot()`)
        store: StockStore holding history and change log
        notifiers: Channels to broadcast material changes to
        policy: Notification policy
        baseline_policy: What to report on the very first observation
        unchanged_retry_seconds: Delay before re-polling when nothing changed
        settle_seconds: Extra delay after a restock before polling
        retention_days: Age at which records are expired (None disables cleanup)
    """

    def __init__(
        self,
        client: Any,
        store: StockStore,
        notifiers: Sequence[Notifier] = (),
        policy: NotificationPolicy = DEFAULT_POLICY,
        baseline_policy: BaselinePolicy = BaselinePolicy.SILENT,
        unchanged_retry_seconds: int = 30,
        settle_seconds: int = 5,
        retention_days: Optional[int] = None,
        clock: Callable[[], datetime] = _utcnow
    ):
        self.client = client
        self.store = store
        self.notifiers = list(notifiers)
        self.policy = policy
        self.baseline_policy = baseline_policy
        self.unchanged_retry_seconds = unchanged_retry_seconds
        self.settle_seconds = settle_seconds
        self.retention_days = retention_days
        self.clock = clock
        self._cycle_lock = threading.Lock()

    def run_cycle(self) -> CycleResult:
        """
        Run one monitoring cycle.

        Returns:
            CycleResult; `skipped=True` if another cycle was already running

        Raises:
            StockFetchError: If the stock API fails
            Exception: Store errors propagate unchanged
        """
        if not self._cycle_lock.acquire(blocking=False):
            logger.warning("Previous stock cycle still running; skipping")
            return CycleResult(skipped=True)

        try:
            return self._run_cycle()
        finally:
            self._cycle_lock.release()

    def _run_cycle(self) -> CycleResult:
        current = self.client.fetch_snapshot()
        previous = self.store.get_latest_snapshot()
        if previous is None:
            logger.info("No previous stock snapshot found")

        change_set = diff(previous, current, self.baseline_policy)
        decision = classify_change_set(change_set, self.policy)

        result = CycleResult(snapshot=current, change_set=change_set, decision=decision)

        # The new baseline must not outlive a failed change-log write
        with self.store.transaction():
            result.snapshot_id = self.store.save_snapshot(current)
            if decision.should_persist:
                result.change_log_id = self.store.save_change_set(change_set)

        if decision.should_persist:
            logger.info(f"Stock updated - {len(change_set)} changes detected")
        else:
            logger.info("No stock changes detected")

        if decision.should_notify:
            self._broadcast(decision, result)

        return result

    def _broadcast(self, decision: ChangeDecision, result: CycleResult) -> None:
        for notifier in self.notifiers:
            try:
                notifier.send(decision.notify_entries)
                result.notified.append(notifier.name)
            except NotificationError:
                logger.error(f"Notification via {notifier.name} failed", exc_info=True)
                result.failed_notifiers.append(notifier.name)

    def next_delay(self, result: Optional[CycleResult]) -> float:
        """
        Seconds to wait before the next cycle.

        After a change the next change can only come with a restock, so wait
        for the earliest one (plus a settle delay). Otherwise poll again soon.
        """
        if result is None or result.skipped or not result.has_changes:
            return float(self.unchanged_retry_seconds)

        now = self.clock()
        earliest = min(next_restock_times(now).values())
        return max(0.0, (earliest - now).total_seconds()) + self.settle_seconds

    def answer_message(self, recipient_id: str, text: Optional[str]) -> Optional[str]:
        """
        Reply to an inbound Messenger message from the latest stored stock.

        Returns:
            The reply action, or None if no Messenger channel is configured
        """
        notifier = next((n for n in self.notifiers if isinstance(n, MessengerNotifier)), None)
        if notifier is None:
            logger.warning("Messenger not configured; ignoring inbound message")
            return None
        return notifier.reply(recipient_id, text, self.store.get_latest_snapshot(), self.clock())

    def run_cleanup(self) -> Dict[str, int]:
        """Expire old history and change-log records."""
        if self.retention_days is None:
            return {}
        return self.store.delete_older_than(self.retention_days)

    def run_forever(
        self,
        max_cycles: Optional[int] = None,
        sleep: Callable[[float], None] = time.sleep,
        monotonic: Callable[[], float] = time.monotonic
    ) -> None:
        """
        Run cycles until interrupted (or `max_cycles` have run).

        Fetch errors are logged and retried after `unchanged_retry_seconds`.
        """
        cycles = 0
        last_cleanup: Optional[float] = None

        while max_cycles is None or cycles < max_cycles:
            if self.retention_days is not None and (
                last_cleanup is None or monotonic() - last_cleanup >= CLEANUP_INTERVAL_SECONDS
            ):
                self.run_cleanup()
                last_cleanup = monotonic()

            result = None
            try:
                result = self.run_cycle()
            except StockFetchError as e:
                logger.warning(f"Stock fetch failed: {e}")
            cycles += 1

            if max_cycles is not None and cycles >= max_cycles:
                break

            delay = self.next_delay(result)
            logger.debug(f"Next stock check in {delay:.0f}s")
            sleep(delay)

    def close(self) -> None:
        for notifier in self.notifiers:
            notifier.close()
        close = getattr(self.client, "close", None)
        if close is not None:
            close()
        close = getattr(self.store, "close", None)
        if close is not None:
            close()


def build_notifiers(settings: Settings) -> List[Notifier]:
    """Create the notification channels the settings enable."""
    notifiers: List[Notifier] = []
    if settings.discord_webhook_url:
        notifiers.append(DiscordWebhookNotifier(
            settings.discord_webhook_url,
            mention=settings.discord_mention,
        ))
    if settings.messenger_page_token and settings.messenger_recipient_ids:
        notifiers.append(MessengerNotifier(
            settings.messenger_page_token,
            settings.messenger_recipient_ids,
        ))
    return notifiers


def build_store(settings: Settings) -> StockStore:
    """PostgreSQL when a database is configured, in-memory otherwise."""
    if not settings.has_database:
        logger.warning("No database configured; stock history is kept in memory only")
        return InMemoryStockStore()

    if settings.db_url:
        store = PostgresStockStore(db_url=settings.db_url)
    else:
        store = PostgresStockStore(
            host=settings.db_host,
            port=settings.db_port,
            database=settings.db_name,
            user=settings.db_user,
            password=settings.db_password,
        )
    store.init_schema()
    return store


def build_monitor(settings: Settings) -> StockMonitor:
    """Wire a StockMonitor from settings."""
    return StockMonitor(
        client=StockApiClient(settings.api_base_url, timeout=settings.request_timeout),
        store=build_store(settings),
        notifiers=build_notifiers(settings),
        policy=settings.notification_policy,
        baseline_policy=settings.baseline_policy,
        unchanged_retry_seconds=settings.unchanged_retry_seconds,
        retention_days=settings.retention_days,
    )
