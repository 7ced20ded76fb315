"""
Stock diff engine for comparing inventory snapshots.

This module implements a name-keyed diff over categorized snapshots:
- Uses the item name as identity within a category (not list position)
- Compares quantities by strict equality (no numeric coercion)
- Walks categories in the fixed schema order
- Produces an ordered, immutable ChangeSet

CORE PRINCIPLES:
1. Pure: no I/O, no clock, no global state
2. Deterministic: same inputs always give the same entries in the same order
3. No baseline, no diff: a missing previous snapshot yields nothing by default
4. The caller owns the previous snapshot and threads it in explicitly
"""

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Tuple

from ..schema import CATEGORY_ORDER, CategoryConfigError, get_category_metadata
from ..snapshot import Item, Snapshot


class ChangeKind(Enum):
    """
    The three ways an item can differ between two snapshots.

    Values are the wire names used in stored change logs.
    """
    ADDED = "added"                    # Name in current only
    REMOVED = "removed"                # Name in previous only
    QUANTITY_CHANGED = "changed"       # Name in both, quantities differ


class BaselinePolicy(Enum):
    """
    What to report when there is no previous snapshot to compare against.

    SILENT keeps the long-standing behavior (first observation notifies
    nobody). REPORT_ALL treats every current item as newly added.
    """
    SILENT = "silent"
    REPORT_ALL = "report_all"


@dataclass(frozen=True)
class ChangeEntry:
    """
    One detected difference for a single item within a category.

    `value` is set for ADDED/REMOVED; `old_value`/`new_value` for
    QUANTITY_CHANGED. Category name and emoji are presentation metadata.
    """
    category: str
    category_name: str
    emoji: str
    item: Any
    kind: ChangeKind
    value: Any = None
    old_value: Any = None
    new_value: Any = None

    def to_dict(self) -> Dict[str, Any]:
        """Serialize in the change-log record shape."""
        record = {
            "type": self.kind.value,
            "category": self.category_name,
            "emoji": self.emoji,
            "item": self.item,
        }
        if self.kind is ChangeKind.QUANTITY_CHANGED:
            record["oldValue"] = self.old_value
            record["newValue"] = self.new_value
        else:
            record["value"] = self.value
        return record

    @classmethod
    def from_dict(cls, record: Dict[str, Any]) -> "ChangeEntry":
        """
        Rebuild an entry from a stored change-log record.

        Records carry the display name ("Seeds"), so the identifier is looked
        up from it; a record may also carry the identifier directly.
        """
        kind = ChangeKind(record["type"])
        category = _category_from_record(record.get("category"))
        metadata = get_category_metadata(category)
        return cls(
            category=category,
            category_name=metadata["name"],
            emoji=record.get("emoji") or metadata["emoji"],
            item=record.get("item"),
            kind=kind,
            value=record.get("value"),
            old_value=record.get("oldValue"),
            new_value=record.get("newValue"),
        )


def _category_from_record(label: Any) -> str:
    for category in CATEGORY_ORDER:
        if label == category or label == get_category_metadata(category)["name"]:
            return category
    raise CategoryConfigError(f"Unknown stock category in change record: {label!r}")


@dataclass(frozen=True)
class ChangeSet:
    """
    Complete result of one snapshot comparison.

    Entries are ordered by category, then additions/changes in current
    order, then removals in previous order.
    """
    entries: Tuple[ChangeEntry, ...] = field(default_factory=tuple)

    @property
    def has_changes(self) -> bool:
        return len(self.entries) > 0

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self):
        return iter(self.entries)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to dictionary for JSON output."""
        return {
            "hasChanges": self.has_changes,
            "changeCount": len(self.entries),
            "changes": [entry.to_dict() for entry in self.entries],
        }


EMPTY_CHANGE_SET = ChangeSet()


_NAN_KEY = object()


def _value_kind(value: Any) -> Any:
    # JSON has one number type: 1 and 1.0 are the same value, True is not
    if isinstance(value, bool):
        return bool
    if isinstance(value, (int, float)):
        return float
    return type(value)


def item_key(name: Any) -> Tuple[Any, Any]:
    """
    Type-aware lookup key for an item name.

    Keeps apart names that Python hashing would merge (1 and True), and lets
    every NaN name share one key.
    """
    if isinstance(name, float) and math.isnan(name):
        return (float, _NAN_KEY)
    return (_value_kind(name), name)


def quantities_equal(old: Any, new: Any) -> bool:
    """
    Strict quantity equality with no coercion between strings, numbers and
    booleans ("5" != 5, 1 != True). Numbers compare by value, so 1 equals
    1.0, and NaN equals NaN so a snapshot never differs from itself. Lists
    and objects compare element by element under the same rules.
    """
    if _value_kind(old) is not _value_kind(new):
        return False
    if isinstance(old, float) or isinstance(new, float):
        if math.isnan(old) or math.isnan(new):
            return math.isnan(old) and math.isnan(new)
        return old == new
    if isinstance(old, (list, tuple)):
        return len(old) == len(new) and all(quantities_equal(a, b) for a, b in zip(old, new))
    if isinstance(old, dict):
        return old.keys() == new.keys() and all(quantities_equal(old[k], new[k]) for k in old)
    return old == new


def build_lookup(items: Iterable[Item]) -> Dict[Tuple[Any, Any], Item]:
    """
    Build an item_key(name) -> Item lookup for one category.

    Duplicate names: last write wins, but the name keeps the position of its
    first occurrence (plain dict insertion semantics).
    """
    lookup: Dict[Tuple[Any, Any], Item] = {}
    for item in items:
        lookup[item_key(item.name)] = item
    return lookup


def _entry(category: str, name: Any, kind: ChangeKind, **values: Any) -> ChangeEntry:
    metadata = get_category_metadata(category)
    return ChangeEntry(
        category=category,
        category_name=metadata["name"],
        emoji=metadata["emoji"],
        item=name,
        kind=kind,
        **values
    )


def diff_category(
    category: str,
    previous_items: Iterable[Item],
    current_items: Iterable[Item]
) -> List[ChangeEntry]:
    """
    Diff a single category.

    Args:
        category: Category identifier (must be in the schema table)
        previous_items: Items from the older snapshot
        current_items: Items from the newer snapshot

    Returns:
        Entries for this category in discovery order
    """
    previous = build_lookup(previous_items)
    current = build_lookup(current_items)
    entries = []

    for key, item in current.items():
        old = previous.get(key)
        if old is None:
            entries.append(_entry(category, item.name, ChangeKind.ADDED, value=item.quantity))
        elif not quantities_equal(old.quantity, item.quantity):
            entries.append(_entry(
                category, item.name, ChangeKind.QUANTITY_CHANGED,
                old_value=old.quantity, new_value=item.quantity
            ))

    for key, item in previous.items():
        if key not in current:
            entries.append(_entry(category, item.name, ChangeKind.REMOVED, value=item.quantity))

    return entries


def diff(
    previous: Optional[Snapshot],
    current: Snapshot,
    baseline_policy: BaselinePolicy = BaselinePolicy.SILENT
) -> ChangeSet:
    """
    Compare two stock snapshots and produce a ChangeSet.

    Per category, in schema order:
    1. Build type-aware name lookups for both sides (last write wins)
    2. Names only in current are ADDED; names in both with unequal
       quantities (see quantities_equal) are QUANTITY_CHANGED
    3. Names only in previous are REMOVED

    Args:
        previous: Last observed snapshot, or None on the very first run
        current: Newly observed snapshot
        baseline_policy: What to report when `previous` is None

    Returns:
        ChangeSet (empty when nothing differs)

    Example:
        >>> from stockwatch.snapshot import snapshot_from_items
        >>> a = snapshot_from_items(seeds=[("Carrot", "5")])
        >>> b = snapshot_from_items(seeds=[("Carrot", "8")])
        >>> [e.kind.name for e in diff(a, b)]
        ['QUANTITY_CHANGED']
    """
    if previous is None:
        if baseline_policy is BaselinePolicy.REPORT_ALL:
            previous = Snapshot()
        else:
            return EMPTY_CHANGE_SET

    entries: List[ChangeEntry] = []
    for category in CATEGORY_ORDER:
        entries.extend(diff_category(category, previous.items(category), current.items(category)))

    return ChangeSet(entries=tuple(entries))
