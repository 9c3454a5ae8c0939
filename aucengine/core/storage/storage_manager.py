from pathlib import Path
from typing import Optional, List, Tuple, Dict, Any

from aucengine.core.storage.sqlite_adapter import SQLiteAdapter
from aucengine.utils.logger import get_logger

logger = get_logger("storage.manager")


class StorageManager:
    """
    Manages persistent storage for the engine.

    Coordinates data persistence using SQLite adapter.
    Handles:
    - Auction records and their one-shot settlement columns
    - Ledger balances
    - Lifecycle events
    - Metadata (engine owner)
    """

    def __init__(self, data_dir: Path, db_name: str = "aucengine.db"):
        self.data_dir = Path(data_dir)
        self.db_path = self.data_dir / db_name
        self.adapter = SQLiteAdapter(self.db_path)

        logger.info(f"StorageManager initialized at {self.db_path}")

    # =========================================================================
    # Auctions
    # =========================================================================

    def persist_auction(self, auction) -> None:
        """Persist a newly created auction."""
        self.adapter.insert_auction(
            auction.auction_id,
            auction.seller,
            auction.item,
            auction.starting_price,
            auction.discount_rate,
            auction.start_at,
            auction.end_at,
        )

    def persist_settlement(self, auction) -> None:
        """Persist the settlement fields of an auction."""
        self.adapter.update_settlement(
            auction.auction_id,
            auction.final_price,
            auction.stopped,
            auction.buyer,
        )

    def persist_settlement_with_balances(self, auction, balances: List[Tuple[bytes, int]]) -> None:
        """
        Persist a settlement together with the balances its transfers produced.

        Both land in one SQLite transaction, so a crash never leaves a
        stopped auction whose payment was not written.
        """
        self.adapter.settle_auction(
            auction.auction_id,
            auction.final_price,
            auction.buyer,
            balances,
        )

    def load_auctions(self) -> List[Dict[str, Any]]:
        """
        Load all auctions.

        Returns:
            List of field dicts ordered by auction_id, amounts as int
        """
        records = []
        for row in self.adapter.get_all_auctions():
            records.append({
                "auction_id": row["auction_id"],
                "seller": bytes(row["seller"]),
                "item": row["item"],
                "starting_price": int(row["starting_price"]),
                "discount_rate": int(row["discount_rate"]),
                "start_at": row["start_at"],
                "end_at": row["end_at"],
                "final_price": int(row["final_price"]),
                "stopped": bool(row["stopped"]),
                "buyer": bytes(row["buyer"]) if row["buyer"] is not None else None,
            })
        return records

    # =========================================================================
    # Ledger
    # =========================================================================

    def persist_balances(self, balances: List[Tuple[bytes, int]]) -> None:
        """Atomically persist updated balances."""
        self.adapter.save_balances(balances)

    def load_balances(self) -> List[Tuple[bytes, int]]:
        return self.adapter.get_all_balances()

    # =========================================================================
    # Events
    # =========================================================================

    def persist_event(self, name: str, auction_id: int, payload: str) -> None:
        self.adapter.append_event(name, auction_id, payload)

    def load_events(self, auction_id: Optional[int] = None) -> List[Tuple[str, str]]:
        return self.adapter.get_events(auction_id)

    # =========================================================================
    # Metadata
    # =========================================================================

    def save_owner(self, owner: bytes) -> None:
        self.adapter.set_meta("owner", owner.hex())

    def get_owner(self) -> Optional[bytes]:
        value = self.adapter.get_meta("owner")
        return bytes.fromhex(value) if value else None

    def close(self) -> None:
        self.adapter.close()
