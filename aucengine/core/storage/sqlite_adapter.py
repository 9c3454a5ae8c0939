import sqlite3
import threading
from pathlib import Path
from typing import Optional, List, Tuple

from aucengine.utils.logger import get_logger

logger = get_logger("storage.sqlite")


class SQLiteAdapter:
    """
    SQLite backend for persistent storage.

    Provides:
    1. Auction records (append-only rows, settlement columns updated once).
    2. Account balances for the ledger.
    3. Lifecycle event log.
    4. Engine metadata (key/value).

    Amounts are stored as decimal TEXT because they can exceed SQLite's
    64-bit INTEGER range.
    """

    def __init__(self, db_path: Path):
        self.db_path = db_path
        self._conn_local = threading.local()

        if not db_path.parent.exists():
            db_path.parent.mkdir(parents=True, exist_ok=True)

        self._init_schema()

    def _get_conn(self) -> sqlite3.Connection:
        """Get or create connection for current thread."""
        if not hasattr(self._conn_local, "conn"):
            self._conn_local.conn = sqlite3.connect(
                self.db_path,
                timeout=30.0,
                check_same_thread=False
            )
            self._conn_local.conn.row_factory = sqlite3.Row
            self._conn_local.conn.execute("PRAGMA journal_mode=WAL;")
            self._conn_local.conn.execute("PRAGMA synchronous=NORMAL;")
        return self._conn_local.conn

    def _init_schema(self):
        """Initialize database schema."""
        conn = self._get_conn()
        with conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS auctions (
                    auction_id INTEGER PRIMARY KEY,
                    seller BLOB NOT NULL,
                    item TEXT NOT NULL,
                    starting_price TEXT NOT NULL,
                    discount_rate TEXT NOT NULL,
                    start_at INTEGER NOT NULL,
                    end_at INTEGER NOT NULL,
                    final_price TEXT NOT NULL DEFAULT '0',
                    stopped INTEGER NOT NULL DEFAULT 0,
                    buyer BLOB
                )
            """)

            conn.execute("""
                CREATE TABLE IF NOT EXISTS balances (
                    address BLOB PRIMARY KEY,
                    balance TEXT NOT NULL
                )
            """)

            conn.execute("""
                CREATE TABLE IF NOT EXISTS events (
                    seq INTEGER PRIMARY KEY AUTOINCREMENT,
                    name TEXT NOT NULL,
                    auction_id INTEGER NOT NULL,
                    payload TEXT NOT NULL
                )
            """)
            conn.execute("CREATE INDEX IF NOT EXISTS idx_events_auction ON events(auction_id);")

            conn.execute("""
                CREATE TABLE IF NOT EXISTS engine_state (
                    key TEXT PRIMARY KEY,
                    value TEXT
                )
            """)

    # =========================================================================
    # Auction Operations
    # =========================================================================

    def insert_auction(
        self,
        auction_id: int,
        seller: bytes,
        item: str,
        starting_price: int,
        discount_rate: int,
        start_at: int,
        end_at: int,
    ):
        conn = self._get_conn()
        with conn:
            conn.execute(
                "INSERT INTO auctions (auction_id, seller, item, starting_price, discount_rate, start_at, end_at) "
                "VALUES (?, ?, ?, ?, ?, ?, ?)",
                (auction_id, seller, item, str(starting_price), str(discount_rate), start_at, end_at)
            )

    def update_settlement(
        self,
        auction_id: int,
        final_price: int,
        stopped: bool,
        buyer: Optional[bytes],
    ):
        """Write the settlement columns of one auction."""
        conn = self._get_conn()
        with conn:
            conn.execute(
                "UPDATE auctions SET final_price = ?, stopped = ?, buyer = ? WHERE auction_id = ?",
                (str(final_price), int(stopped), buyer, auction_id)
            )

    def settle_auction(
        self,
        auction_id: int,
        final_price: int,
        buyer: bytes,
        balances: List[Tuple[bytes, int]],
    ):
        """Mark an auction settled and write the balances it moved, in one transaction."""
        conn = self._get_conn()
        with conn:
            conn.execute(
                "UPDATE auctions SET final_price = ?, stopped = 1, buyer = ? WHERE auction_id = ?",
                (str(final_price), buyer, auction_id)
            )
            conn.executemany(
                "INSERT OR REPLACE INTO balances (address, balance) VALUES (?, ?)",
                [(address, str(balance)) for address, balance in balances]
            )

    def get_all_auctions(self) -> List[sqlite3.Row]:
        """Get all auction rows ordered by id."""
        conn = self._get_conn()
        cursor = conn.execute("SELECT * FROM auctions ORDER BY auction_id ASC")
        return list(cursor)

    # =========================================================================
    # Balance Operations
    # =========================================================================

    def save_balances(self, balances: List[Tuple[bytes, int]]):
        """Atomically write a set of account balances."""
        conn = self._get_conn()
        with conn:
            conn.executemany(
                "INSERT OR REPLACE INTO balances (address, balance) VALUES (?, ?)",
                [(address, str(balance)) for address, balance in balances]
            )

    def get_all_balances(self) -> List[Tuple[bytes, int]]:
        conn = self._get_conn()
        cursor = conn.execute("SELECT address, balance FROM balances")
        return [(row['address'], int(row['balance'])) for row in cursor]

    # =========================================================================
    # Event Operations
    # =========================================================================

    def append_event(self, name: str, auction_id: int, payload: str):
        conn = self._get_conn()
        with conn:
            conn.execute(
                "INSERT INTO events (name, auction_id, payload) VALUES (?, ?, ?)",
                (name, auction_id, payload)
            )

    def get_events(self, auction_id: Optional[int] = None) -> List[Tuple[str, str]]:
        """Get (name, payload) pairs in emission order."""
        conn = self._get_conn()
        if auction_id is None:
            cursor = conn.execute("SELECT name, payload FROM events ORDER BY seq ASC")
        else:
            cursor = conn.execute(
                "SELECT name, payload FROM events WHERE auction_id = ? ORDER BY seq ASC",
                (auction_id,)
            )
        return [(row['name'], row['payload']) for row in cursor]

    # =========================================================================
    # Engine State Operations
    # =========================================================================

    def set_meta(self, key: str, value: str):
        conn = self._get_conn()
        with conn:
            conn.execute("INSERT OR REPLACE INTO engine_state (key, value) VALUES (?, ?)", (key, value))

    def get_meta(self, key: str) -> Optional[str]:
        conn = self._get_conn()
        cursor = conn.execute("SELECT value FROM engine_state WHERE key = ?", (key,))
        row = cursor.fetchone()
        return row['value'] if row else None

    def close(self):
        """Close the connection owned by the calling thread."""
        conn = getattr(self._conn_local, "conn", None)
        if conn is not None:
            conn.close()
            del self._conn_local.conn
