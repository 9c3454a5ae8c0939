"""
AuctionStore - Owner of all auction records.

Responsibilities:
- Assign sequential ids (0-based, never reused) under the counter lock
- Hand out copies so no caller mutates a record directly
- Prepare and commit the one-shot settlement
- Provide one exclusive lock per auction id for settlement

Records are append-only; there is no deletion.
"""

import threading
from dataclasses import replace
from typing import Dict, List, Optional

from aucengine.core.auction.auction import Auction
from aucengine.core.auction.errors import AuctionNotFound, InvalidState
from aucengine.core.storage.storage_manager import StorageManager
from aucengine.utils.logger import get_logger

logger = get_logger("store")


class AuctionStore:
    """
    Append-only auction collection.

    Attributes:
        storage_manager: Optional persistence backend
    """

    def __init__(self, storage_manager: Optional[StorageManager] = None):
        """
        Args:
            storage_manager: Persistence manager. None = in-memory only.
        """
        self._auctions: List[Auction] = []
        self._next_id = 0

        self._counter_lock = threading.Lock()
        self._registry_lock = threading.Lock()
        self._settle_locks: Dict[int, threading.Lock] = {}

        self.storage_manager = storage_manager
        if storage_manager:
            self._load_from_storage()

    # =========================================================================
    # Creation
    # =========================================================================

    def append(
        self,
        seller: bytes,
        item: str,
        starting_price: int,
        discount_rate: int,
        start_at: int,
        end_at: int,
    ) -> int:
        """
        Store a new active auction.

        Returns:
            The assigned auction id
        """
        with self._counter_lock:
            auction = Auction(
                auction_id=self._next_id,
                seller=seller,
                item=item,
                starting_price=starting_price,
                discount_rate=discount_rate,
                start_at=start_at,
                end_at=end_at,
            )
            if self.storage_manager:
                self.storage_manager.persist_auction(auction)

            self._auctions.append(auction)
            self._next_id += 1

        logger.debug(f"Stored {auction!r}")
        return auction.auction_id

    # =========================================================================
    # Access
    # =========================================================================

    def _get_record(self, auction_id: int) -> Auction:
        # Ids are dense, so the list index is the id
        if not isinstance(auction_id, int) or isinstance(auction_id, bool):
            raise AuctionNotFound()
        if auction_id < 0 or auction_id >= len(self._auctions):
            raise AuctionNotFound()
        return self._auctions[auction_id]

    def get(self, auction_id: int) -> Auction:
        """
        Get a copy of an auction.

        Raises:
            AuctionNotFound: unknown id
        """
        return self._get_record(auction_id).copy()

    def exists(self, auction_id: int) -> bool:
        try:
            self._get_record(auction_id)
        except AuctionNotFound:
            return False
        return True

    def count(self) -> int:
        return len(self._auctions)

    def list_auctions(self, include_stopped: bool = True) -> List[Auction]:
        return [
            a.copy()
            for a in list(self._auctions)
            if include_stopped or not a.stopped
        ]

    # =========================================================================
    # Settlement
    # =========================================================================

    def lock_for(self, auction_id: int) -> threading.Lock:
        """
        Exclusive settlement lock for one auction.

        Raises:
            AuctionNotFound: unknown id
        """
        self._get_record(auction_id)
        with self._registry_lock:
            lock = self._settle_locks.get(auction_id)
            if lock is None:
                lock = threading.Lock()
                self._settle_locks[auction_id] = lock
            return lock

    def prepare_settlement(self, auction_id: int, final_price: int, buyer: bytes) -> Auction:
        """
        Build the settled form of an auction without storing it.

        Callers must hold lock_for(auction_id) until commit_settlement.

        Raises:
            AuctionNotFound: unknown id
            InvalidState: already settled
        """
        auction = self._get_record(auction_id)
        if auction.stopped:
            raise InvalidState()
        return replace(auction, final_price=final_price, buyer=buyer, stopped=True)

    def commit_settlement(self, settled: Auction) -> None:
        """
        Swap a prepared settlement into memory.

        The settlement must already be persisted (see
        StorageManager.persist_settlement_with_balances).

        Raises:
            InvalidState: the stored record is already settled
        """
        if self._get_record(settled.auction_id).stopped:
            raise InvalidState()

        # Swap the whole record so lock-free readers never see a partial update
        self._auctions[settled.auction_id] = settled
        logger.debug(f"Settled {settled!r}")

    # =========================================================================
    # Persistence
    # =========================================================================

    def _load_from_storage(self) -> None:
        """Load records from storage manager."""
        for record in self.storage_manager.load_auctions():
            auction = Auction(**record)
            if auction.auction_id != len(self._auctions):
                raise RuntimeError(
                    f"Auction ids not contiguous: expected {len(self._auctions)}, got {auction.auction_id}"
                )
            self._auctions.append(auction)

        self._next_id = len(self._auctions)
        logger.info(f"Loaded {self._next_id} auctions")

    # =========================================================================
    # Utility
    # =========================================================================

    def __repr__(self) -> str:
        return f"AuctionStore(auctions={self.count()})"

    def stats(self) -> dict:
        settled = sum(1 for a in list(self._auctions) if a.stopped)
        return {
            "auction_count": self.count(),
            "settled": settled,
            "active": self.count() - settled,
        }
