"""Stock category definitions: identifiers, raw API fields, and display metadata."""

from typing import Dict, Any, Tuple


class CategoryConfigError(ValueError):
    """Raised when the static category table is inconsistent."""


# Fixed category identifiers in comparison/display order
CATEGORY_ORDER: Tuple[str, ...] = (
    "seeds",
    "gear",
    "eggs",
    "cosmetics",
)

# Static metadata per category.
# - raw_key: field name in the stock API payload
# - name/emoji: presentation only, never used for comparison
# - restock_minutes: how often the shop restocks this category
CATEGORY_METADATA: Dict[str, Dict[str, Any]] = {
    "seeds": {
        "raw_key": "seedsStock",
        "name": "Seeds",
        "emoji": "🌱",
        "restock_minutes": 5,
    },
    "gear": {
        "raw_key": "gearStock",
        "name": "Gear",
        "emoji": "⚙️",
        "restock_minutes": 5,
    },
    "eggs": {
        "raw_key": "eggStock",
        "name": "Eggs",
        "emoji": "🥚",
        "restock_minutes": 30,
    },
    "cosmetics": {
        "raw_key": "cosmeticsStock",
        "name": "Cosmetics",
        "emoji": "💄",
        "restock_minutes": 180,
    },
}

REQUIRED_METADATA_FIELDS = ("raw_key", "name", "emoji", "restock_minutes")


def validate_category_table(
    order: Tuple[str, ...] = CATEGORY_ORDER,
    metadata: Dict[str, Dict[str, Any]] = CATEGORY_METADATA
) -> None:
    """
    Check that every ordered category has a complete metadata entry.

    Raises:
        CategoryConfigError: If a category is missing from the table, a
            required field is absent, or a category is listed twice.
    """
    if len(set(order)) != len(order):
        raise CategoryConfigError(f"Duplicate category identifiers in {order!r}")

    for category in order:
        entry = metadata.get(category)
        if entry is None:
            raise CategoryConfigError(
                f"Category '{category}' has no entry in the category metadata table"
            )
        missing = [f for f in REQUIRED_METADATA_FIELDS if entry.get(f) in (None, "")]
        if missing:
            raise CategoryConfigError(
                f"Category '{category}' metadata is missing: {', '.join(missing)}"
            )


def get_category_metadata(category: str) -> Dict[str, Any]:
    """Return the metadata entry for a category identifier."""
    try:
        return CATEGORY_METADATA[category]
    except KeyError:
        raise CategoryConfigError(f"Unknown stock category: {category!r}") from None


# Broken tables fail at import, not mid-cycle
validate_category_table()

# raw API field -> category identifier
RAW_KEY_TO_CATEGORY: Dict[str, str] = {
    CATEGORY_METADATA[c]["raw_key"]: c for c in CATEGORY_ORDER
}


__all__ = [
    "CATEGORY_ORDER",
    "CATEGORY_METADATA",
    "RAW_KEY_TO_CATEGORY",
    "CategoryConfigError",
    "validate_category_table",
    "get_category_metadata",
]
