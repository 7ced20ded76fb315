"""
In-memory stock store.

Keeps documents as plain dicts, shaped like the documents a document
database would hold. Useful for tests, local runs, and deployments without a
database.
"""

import threading
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Iterator, List, Optional

from ..diff.stock_diff import ChangeEntry, ChangeSet
from ..schema import CATEGORY_ORDER
from ..snapshot import Snapshot, normalize
from .base import STOCK_CHANGES, STOCK_HISTORY, ChangeLogRecord, StockStore, require_changes


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class InMemoryStockStore(StockStore):
    """
    List-backed StockStore.

    Args:
        clock: Callable returning the current timezone-aware time; records
            are timestamped with it
    """

    def __init__(self, clock: Optional[Callable[[], datetime]] = None):
        self._clock = clock or _utcnow
        self._lock = threading.RLock()
        self._history: List[Dict[str, Any]] = []
        self._changes: List[Dict[str, Any]] = []
        self._next_id = 1

    def _allocate_id(self) -> int:
        record_id = self._next_id
        self._next_id += 1
        return record_id

    @contextmanager
    def transaction(self) -> Iterator["InMemoryStockStore"]:
        """Hold the store lock for several calls; restore its state on error."""
        with self._lock:
            history, changes, next_id = list(self._history), list(self._changes), self._next_id
            try:
                yield self
            except Exception:
                self._history, self._changes, self._next_id = history, changes, next_id
                raise

    def get_latest_snapshot(self) -> Optional[Snapshot]:
        with self._lock:
            if not self._history:
                return None
            document = self._history[-1]
        return normalize(document["stockData"])

    def save_snapshot(self, snapshot: Snapshot) -> int:
        with self._lock:
            record_id = self._allocate_id()
            self._history.append({
                "id": record_id,
                "timestamp": self._clock(),
                "stockData": snapshot.to_dict(),
                "counts": snapshot.counts(),
            })
        return record_id

    def save_change_set(self, change_set: ChangeSet) -> int:
        require_changes(change_set)
        with self._lock:
            record_id = self._allocate_id()
            self._changes.append({
                "id": record_id,
                "timestamp": self._clock(),
                "changeType": "stock_change",
                "changes": [e.to_dict() for e in change_set.entries],
                "changeCount": len(change_set.entries),
            })
        return record_id

    @staticmethod
    def _to_record(document: Dict[str, Any]) -> ChangeLogRecord:
        return ChangeLogRecord(
            id=document["id"],
            timestamp=document["timestamp"],
            changes=tuple(ChangeEntry.from_dict(c) for c in document["changes"]),
            change_count=document["changeCount"],
        )

    def _changes_newest_first(self) -> List[Dict[str, Any]]:
        # Equal timestamps fall back to id, i.e. insertion order
        with self._lock:
            documents = list(self._changes)
        return sorted(documents, key=lambda d: (d["timestamp"], d["id"]), reverse=True)

    def get_recent_changes(self, limit: int = 20) -> List[ChangeLogRecord]:
        if limit < 1:
            return []
        return [self._to_record(d) for d in self._changes_newest_first()[:limit]]

    def get_changes_between(self, start: datetime, end: datetime) -> List[ChangeLogRecord]:
        return [
            self._to_record(d)
            for d in self._changes_newest_first()
            if start <= d["timestamp"] < end
        ]

    def delete_older_than(self, days: int) -> Dict[str, int]:
        cutoff = self._clock() - timedelta(days=days)
        with self._lock:
            kept_history = [d for d in self._history if d["timestamp"] >= cutoff]
            kept_changes = [d for d in self._changes if d["timestamp"] >= cutoff]
            deleted = {
                STOCK_HISTORY: len(self._history) - len(kept_history),
                STOCK_CHANGES: len(self._changes) - len(kept_changes),
            }
            self._history = kept_history
            self._changes = kept_changes
        return deleted

    def get_summary(self) -> Dict[str, Any]:
        now = self._clock()
        with self._lock:
            history = list(self._history)
            changes = list(self._changes)

        summary: Dict[str, Any] = {
            "total_snapshots": len(history),
            "latest_update": max((d["timestamp"] for d in history), default=None),
            "earliest_record": min((d["timestamp"] for d in history), default=None),
        }
        for category in CATEGORY_ORDER:
            counts = [d["counts"][category] for d in history]
            summary[f"avg_{category}"] = sum(counts) / len(counts) if counts else None
            summary[f"max_{category}"] = max(counts) if counts else None

        recent = [d for d in changes if d["timestamp"] >= now - timedelta(hours=24)]
        summary["recent_change_records"] = len(recent)
        summary["total_changes_24h"] = sum(d["changeCount"] for d in recent)
        return summary
