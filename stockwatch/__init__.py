from .snapshot import Item, Snapshot, normalize
from .diff import diff, classify_change_set, ChangeKind, ChangeEntry, ChangeSet, BaselinePolicy, NotificationPolicy
from .schema import CATEGORY_ORDER, CATEGORY_METADATA

__all__ = [
    "Item", "Snapshot", "normalize",
    "diff", "classify_change_set", "ChangeKind", "ChangeEntry", "ChangeSet", "BaselinePolicy", "NotificationPolicy",
    "CATEGORY_ORDER", "CATEGORY_METADATA",
]
