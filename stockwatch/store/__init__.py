"""Stock snapshot and change-log persistence."""

from .base import (
    StockStore,
    ChangeLogRecord,
    STOCK_HISTORY,
    STOCK_CHANGES,
)
from .memory import InMemoryStockStore
from .postgres_client import PostgresStockStore

__all__ = [
    "StockStore",
    "ChangeLogRecord",
    "STOCK_HISTORY",
    "STOCK_CHANGES",
    "InMemoryStockStore",
    "PostgresStockStore",
]
