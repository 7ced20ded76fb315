"""
Snapshot model for stock observations.

A Snapshot is one point-in-time observation of the shop inventory, organized
by the fixed category set in `stockwatch.schema`. Raw API payloads are loosely
typed (categories may be missing, items may lack fields), so everything goes
through `normalize()` once at the boundary. After that the diff engine can
assume a total mapping over the fixed categories.

Key principles:
- A missing category is empty, never "unknown"
- Normalization never raises on data-shape issues
- Snapshots are immutable once built
"""

import logging
from collections.abc import Hashable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Optional, Tuple

from .schema import CATEGORY_ORDER, CATEGORY_METADATA

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Item:
    """
    One inventory entry within a category.

    `name` is the join key across snapshots. `quantity` is opaque: it is
    compared by equality only, never coerced to a number ("5" and "5.0" are
    different quantities).
    """
    name: Optional[Any]
    quantity: Any = None

    def to_dict(self) -> Dict[str, Any]:
        """Serialize in the stock API's record shape."""
        return {"name": self.name, "value": self.quantity}


@dataclass(frozen=True)
class Snapshot:
    """
    Normalized inventory observation.

    `categories` always holds every identifier in CATEGORY_ORDER, each mapped
    to a tuple of Items in the order they were observed.
    """
    categories: Mapping = field(default_factory=dict)

    def __post_init__(self):
        unknown = [c for c in self.categories if c not in CATEGORY_METADATA]
        if unknown:
            raise ValueError(f"Unknown stock categories: {', '.join(map(str, unknown))}")

        complete = {
            category: tuple(self.categories.get(category, ()))
            for category in CATEGORY_ORDER
        }
        object.__setattr__(self, "categories", MappingProxyType(complete))

    def items(self, category: str) -> Tuple[Item, ...]:
        """Items for one category (empty tuple if none were observed)."""
        return self.categories[category]

    def __getitem__(self, category: str) -> Tuple[Item, ...]:
        return self.categories[category]

    def counts(self) -> Dict[str, int]:
        """Number of entries per category."""
        return {category: len(items) for category, items in self.categories.items()}

    def total_items(self) -> int:
        return sum(self.counts().values())

    def is_empty(self) -> bool:
        return self.total_items() == 0

    def to_dict(self) -> Dict[str, List[Dict[str, Any]]]:
        """
        Render the snapshot in the raw API shape (seedsStock, gearStock, ...).

        `normalize(snapshot.to_dict())` gives back an equal snapshot, so stores
        can keep this verbatim.
        """
        return {
            CATEGORY_METADATA[category]["raw_key"]: [item.to_dict() for item in items]
            for category, items in self.categories.items()
        }


def _normalize_item(record: Any, category: str) -> Optional[Item]:
    """Convert one raw item record; returns None for records that cannot be keyed."""
    if not isinstance(record, Mapping):
        logger.debug(f"Dropping non-mapping {category} record: {record!r}")
        return None

    name = record.get("name")
    if not isinstance(name, Hashable):
        logger.debug(f"Dropping {category} record with unhashable name: {record!r}")
        return None

    # The API calls the quantity "value"; stored documents may use "quantity"
    if "value" in record:
        quantity = record.get("value")
    else:
        quantity = record.get("quantity")

    return Item(name=name, quantity=quantity)


def _normalize_items(records: Any, category: str) -> Tuple[Item, ...]:
    if records is None:
        return ()
    if isinstance(records, (str, bytes, Mapping)) or not isinstance(records, Iterable):
        logger.debug(f"Ignoring malformed {category} collection of type {type(records).__name__}")
        return ()

    items = []
    for record in records:
        item = _normalize_item(record, category)
        if item is not None:
            items.append(item)
    return tuple(items)


def normalize(raw: Any) -> Snapshot:
    """
    Normalize a raw stock payload into a Snapshot.

    Each category is read from its raw API field (e.g. "seedsStock"); the bare
    identifier ("seeds") is accepted as well, which is the shape stored
    documents use. Missing, null, or non-list categories become empty.

    Args:
        raw: Decoded JSON payload, a stored document, or an existing Snapshot

    Returns:
        Snapshot covering every category in CATEGORY_ORDER
    """
    if isinstance(raw, Snapshot):
        return raw
    if not isinstance(raw, Mapping):
        if raw is not None:
            logger.debug(f"Stock payload is not a mapping ({type(raw).__name__}); treating as empty")
        return Snapshot()

    categories = {}
    for category in CATEGORY_ORDER:
        raw_key = CATEGORY_METADATA[category]["raw_key"]
        if raw_key in raw:
            records = raw[raw_key]
        else:
            records = raw.get(category)
        categories[category] = _normalize_items(records, category)

    return Snapshot(categories=categories)


def snapshot_from_items(**categories: Iterable[Tuple[Any, Any]]) -> Snapshot:
    """
    Build a Snapshot from (name, quantity) pairs per category.

    Example:
        >>> snapshot_from_items(seeds=[("Carrot", "5")], gear=[("Trowel", "2")])
    """
    return Snapshot(categories={
        category: tuple(Item(name=name, quantity=quantity) for name, quantity in pairs)
        for category, pairs in categories.items()
    })
