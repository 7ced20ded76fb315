"""Human-readable rendering of stock changes and snapshots for chat channels."""

from datetime import datetime
from typing import Any, Iterable, List, Optional

from .diff.stock_diff import ChangeEntry, ChangeKind
from .schema import CATEGORY_ORDER, get_category_metadata
from .snapshot import Snapshot

# Discord rejects message content longer than this
DISCORD_MESSAGE_LIMIT = 2000


def _text(value: Any) -> str:
    return "" if value is None else str(value)


def format_change_line(entry: ChangeEntry) -> str:
    """Render one entry, e.g. "🌱 **Seeds** → Carrot (5 → 8)"."""
    line = f"{entry.emoji} **{entry.category_name}** → {_text(entry.item)}"
    if entry.kind is ChangeKind.QUANTITY_CHANGED:
        return f"{line} ({_text(entry.old_value)} → {_text(entry.new_value)})"
    return f"{line} x{_text(entry.value)}"


def format_change_message(entries: Iterable[ChangeEntry], mention: str = "@everyone") -> str:
    """
    Render a stock-update announcement.

    Args:
        entries: Change entries to list, one per line
        mention: Leading mention (e.g. "@everyone"); omitted when empty
    """
    header = f"📢 {mention}\n" if mention else ""
    lines = "\n".join(format_change_line(e) for e in entries)
    return f"{header}📦 **Stock Updated!**\n\n{lines}"


def split_message(text: str, limit: int = DISCORD_MESSAGE_LIMIT) -> List[str]:
    """
    Split text into chunks of at most `limit` characters.

    Splits on line boundaries; a single line longer than `limit` is cut.
    """
    if limit < 1:
        raise ValueError("limit must be positive")
    if len(text) <= limit:
        return [text]

    chunks = []
    # None until the chunk has a first line, which may itself be empty
    current: Optional[str] = None
    for line in text.split("\n"):
        while len(line) > limit:
            if current is not None:
                chunks.append(current)
                current = None
            chunks.append(line[:limit])
            line = line[limit:]

        candidate = line if current is None else f"{current}\n{line}"
        if len(candidate) > limit:
            chunks.append(current)
            current = line
        else:
            current = candidate

    if current is not None:
        chunks.append(current)
    return chunks


def _format_updated(now: datetime) -> str:
    return now.strftime("%Y-%m-%d %H:%M:%S %Z").strip()


def format_stock_summary(snapshot: Snapshot, now: datetime, per_category: int = 5) -> str:
    """
    Render a whole-shop summary for the chat bot.

    Lists the first `per_category` items of each category.
    """
    sections = []
    for category in CATEGORY_ORDER:
        metadata = get_category_metadata(category)
        items = snapshot.items(category)[:per_category]
        lines = [
            f"{i}. {_text(item.name) or 'Unknown'} - 📦 Qty: {_text(item.quantity) or '?'}"
            for i, item in enumerate(items, 1)
        ]
        body = "\n".join(lines) if lines else "No items in stock"
        sections.append(f"{metadata['emoji']} *{metadata['name']}*:\n{body}")

    return (
        "🌱 *Current Stock Summary* 🌱\n\n"
        f"📊 *Total Items*: {snapshot.total_items()}\n\n"
        + "\n\n".join(sections)
        + f"\n\n🔄 *Last Updated*: {_format_updated(now)}"
    )


def format_category_stock(snapshot: Snapshot, category: str, now: datetime, limit: int = 10) -> str:
    """Render one category's stock listing, truncated to `limit` items."""
    metadata = get_category_metadata(category)
    items = snapshot.items(category)
    title = metadata["name"].upper()

    if not items:
        return f"{metadata['emoji']} **{title}** - No items in stock"

    message = f"{metadata['emoji']} **{title} STOCK** ({len(items)} items)\n\n"
    for i, item in enumerate(items[:limit], 1):
        message += f"{i}. {_text(item.name) or 'Unknown Item'}\n"
        message += f"   📦 Qty: {_text(item.quantity) or 'N/A'}\n\n"

    if len(items) > limit:
        message += f"... and {len(items) - limit} more items.\n\n"

    message += f"🔄 Last Updated: {_format_updated(now)}"
    return message
