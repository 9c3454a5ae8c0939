"""
Persistent Storage Module.

Provides SQLite-backed persistence for:
- Auction records
- Ledger balances
- Lifecycle events
- Engine metadata
"""

from aucengine.core.storage.sqlite_adapter import SQLiteAdapter
from aucengine.core.storage.storage_manager import StorageManager

__all__ = ["SQLiteAdapter", "StorageManager"]
