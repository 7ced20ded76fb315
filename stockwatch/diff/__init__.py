"""Stock snapshot diff and change classification."""

from .stock_diff import (
    diff,
    diff_category,
    build_lookup,
    item_key,
    quantities_equal,
    ChangeKind,
    ChangeEntry,
    ChangeSet,
    BaselinePolicy,
    EMPTY_CHANGE_SET,
)

from .classify import (
    classify_change_set,
    summarize_change_set,
    entries_by_kind,
    entries_by_category,
    NotificationPolicy,
    ChangeDecision,
    DEFAULT_POLICY,
)

__all__ = [
    # Diff engine
    "diff",
    "diff_category",
    "build_lookup",
    "item_key",
    "quantities_equal",
    "ChangeKind",
    "ChangeEntry",
    "ChangeSet",
    "BaselinePolicy",
    "EMPTY_CHANGE_SET",
    # Classification
    "classify_change_set",
    "summarize_change_set",
    "entries_by_kind",
    "entries_by_category",
    "NotificationPolicy",
    "ChangeDecision",
    "DEFAULT_POLICY",
]
