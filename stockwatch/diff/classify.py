"""
Materiality classification for stock ChangeSets.

ARCHITECTURE:
- stock_diff.py answers "What changed?"
- This module answers "Is it worth storing and telling anyone about?"

Every non-empty ChangeSet is persisted (the change log is complete); the
notification decision goes through a NotificationPolicy, so channels can be
limited to, say, restocks of seeds and gear only.

Like the diff engine, this layer is deterministic and performs no I/O.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Iterable, List, Optional, Tuple

from ..schema import CATEGORY_ORDER
from .stock_diff import ChangeEntry, ChangeKind, ChangeSet


@dataclass(frozen=True)
class NotificationPolicy:
    """
    Rules deciding which changes are material enough to broadcast.

    Attributes:
        notify_kinds: Change kinds that count toward a notification
        categories: Category identifiers that count (None = all)
        min_changes: Minimum number of counting entries to notify
    """
    notify_kinds: FrozenSet[ChangeKind] = frozenset(ChangeKind)
    categories: Optional[FrozenSet[str]] = None
    min_changes: int = 1

    def __post_init__(self):
        object.__setattr__(self, "notify_kinds", frozenset(self.notify_kinds))
        if self.categories is not None:
            unknown = set(self.categories) - set(CATEGORY_ORDER)
            if unknown:
                raise ValueError(f"Unknown categories in notification policy: {', '.join(sorted(unknown))}")
            object.__setattr__(self, "categories", frozenset(self.categories))
        if self.min_changes < 1:
            raise ValueError("min_changes must be at least 1")

    def matches(self, entry: ChangeEntry) -> bool:
        """True if the entry counts toward a notification."""
        if entry.kind not in self.notify_kinds:
            return False
        if self.categories is not None and entry.category not in self.categories:
            return False
        return True


DEFAULT_POLICY = NotificationPolicy()


@dataclass(frozen=True)
class ChangeDecision:
    """
    What the caller should do with a ChangeSet.

    `notify_entries` is the policy-filtered subset, in ChangeSet order.
    """
    should_persist: bool
    should_notify: bool
    notify_entries: Tuple[ChangeEntry, ...] = field(default_factory=tuple)


def classify_change_set(
    change_set: ChangeSet,
    policy: NotificationPolicy = DEFAULT_POLICY
) -> ChangeDecision:
    """
    Decide whether a ChangeSet should be persisted and broadcast.

    Args:
        change_set: Result of `diff()`
        policy: Notification rules

    Returns:
        ChangeDecision
    """
    if not change_set.has_changes:
        return ChangeDecision(should_persist=False, should_notify=False)

    notify_entries = tuple(e for e in change_set.entries if policy.matches(e))
    return ChangeDecision(
        should_persist=True,
        should_notify=len(notify_entries) >= policy.min_changes,
        notify_entries=notify_entries,
    )


def entries_by_kind(entries: Iterable[ChangeEntry], kind: ChangeKind) -> List[ChangeEntry]:
    """Filter entries by change kind."""
    return [e for e in entries if e.kind is kind]


def entries_by_category(entries: Iterable[ChangeEntry], category: str) -> List[ChangeEntry]:
    """Filter entries by category identifier."""
    return [e for e in entries if e.category == category]


def summarize_change_set(change_set: ChangeSet) -> Dict[str, Any]:
    """
    Produce a summary dictionary for logging and API responses.

    Args:
        change_set: Result of `diff()`

    Returns:
        Dictionary with totals, counts by kind and by category, and entries
    """
    by_kind = {kind.value: 0 for kind in ChangeKind}
    by_category = {category: 0 for category in CATEGORY_ORDER}
    for entry in change_set.entries:
        by_kind[entry.kind.value] += 1
        by_category[entry.category] += 1

    return {
        "has_changes": change_set.has_changes,
        "total_changes": len(change_set.entries),
        "by_kind": by_kind,
        "by_category": by_category,
        "changes": [e.to_dict() for e in change_set.entries],
    }
