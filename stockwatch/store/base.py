"""
Persistence interface for stock snapshots and change logs.

Two append-only collections:
- stock_history: every observed snapshot, stored verbatim
- stock_changes: every non-empty ChangeSet

Key principles:
- The store is the only source of truth for "the previous snapshot"
- Timestamps are assigned by the store, never by the diff engine
- Past records are never mutated, only expired by retention cleanup
"""

from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Iterator, List, Optional, Tuple

from ..diff.stock_diff import ChangeEntry, ChangeSet
from ..snapshot import Snapshot

STOCK_HISTORY = "stock_history"
STOCK_CHANGES = "stock_changes"


@dataclass(frozen=True)
class ChangeLogRecord:
    """One stored ChangeSet with its store-assigned id and timestamp."""
    id: Any
    timestamp: datetime
    changes: Tuple[ChangeEntry, ...]
    change_count: int

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to dictionary for JSON output."""
        return {
            "id": self.id,
            "timestamp": self.timestamp.isoformat(),
            "changes": [c.to_dict() for c in self.changes],
            "changeCount": self.change_count,
        }


def require_changes(change_set: ChangeSet) -> None:
    """Stores only log ChangeSets that actually contain changes."""
    if not change_set.has_changes:
        raise ValueError("Refusing to store an empty change set")


class StockStore:
    """
    Abstract stock store interface.

    Implement this interface with an actual backend (see InMemoryStockStore
    and PostgresStockStore).
    """

    @contextmanager
    def transaction(self) -> Iterator["StockStore"]:
        """
        Group several writes so they are kept together or not at all.

        The default runs calls as they come; backends that can roll back
        override it.
        """
        yield self

    def get_latest_snapshot(self) -> Optional[Snapshot]:
        """
        Return the most recently saved snapshot.

        Returns:
            Snapshot, or None if nothing has been saved yet
        """
        raise NotImplementedError

    def save_snapshot(self, snapshot: Snapshot) -> Any:
        """
        Append a snapshot to the stock history.

        Returns:
            Store-assigned record id
        """
        raise NotImplementedError

    def save_change_set(self, change_set: ChangeSet) -> Any:
        """
        Append a non-empty ChangeSet to the change log.

        Returns:
            Store-assigned record id

        Raises:
            ValueError: If the change set is empty
        """
        raise NotImplementedError

    def get_recent_changes(self, limit: int = 20) -> List[ChangeLogRecord]:
        """Most recent change-log records, newest first."""
        raise NotImplementedError

    def get_changes_between(self, start: datetime, end: datetime) -> List[ChangeLogRecord]:
        """Change-log records with start <= timestamp < end, newest first."""
        raise NotImplementedError

    def delete_older_than(self, days: int) -> Dict[str, int]:
        """
        Expire records older than `days` days from both collections.

        Returns:
            Number of deleted records per collection name
        """
        raise NotImplementedError

    def get_summary(self) -> Dict[str, Any]:
        """
        Aggregate statistics over the stored history.

        Returns:
            Dictionary with:
            - total_snapshots, latest_update, earliest_record
            - avg_<category>, max_<category> item counts
            - recent_change_records, total_changes_24h
        """
        raise NotImplementedError
