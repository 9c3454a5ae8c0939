"""
AuctionEngine - Creation and settlement of Dutch auctions.

Composes the pricing function, the auction store, the fee schedule and the
ledger, and emits lifecycle events.

Settlement Flow (buy):
---------------------
Under the auction's exclusive lock:
1. Fetch the auction                          -> AuctionNotFound
2. Already settled                             -> AuctionStopped  "stopped!"
3. now > end_at                                -> AuctionExpired  "ended!"
4. price = current_price(auction, now)
5. payment < price                             -> InsufficientFunds "not enough funds!"
6. fee = price * 1000 // 10000, proceeds = price - fee
7. refund = payment - price
8. Prepare the settled record, then one atomic ledger batch:
       buyer -> owner   payment
       owner -> seller  proceeds
       owner -> buyer   refund
   The fee stays with the owner (the engine's operating account).
   The ledger validates the whole batch first; only then are the settled
   record and the new balances written, in one SQLite transaction when the
   store and ledger share storage. Memory is updated last, so a rejected
   batch (SettlementFailed) or an interruption leaves nothing to undo.
9. Emit AuctionEnded

The check order is fixed: an auction that is both settled and past its end
reports "stopped!".
"""

from typing import List, Optional, Tuple

from aucengine.core.auction.auction import Auction
from aucengine.core.auction.errors import (
    AuctionExpired,
    AuctionStopped,
    InsufficientFunds,
    InvalidArgument,
    InvalidPrice,
    SettlementFailed,
)
from aucengine.core.auction.events import AuctionCreated, AuctionEnded, EventBus
from aucengine.core.auction.pricing import current_price
from aucengine.core.auction.store import AuctionStore
from aucengine.core.clock import Clock, SystemClock
from aucengine.core.fees import FeeSchedule
from aucengine.core.ledger import Ledger, LedgerError, Transfer
from aucengine.crypto import bytes_to_hex
from aucengine.utils.logger import get_logger
from aucengine.utils.validation import (
    MAX_ITEM_LENGTH,
    validate_address,
    validate_amount,
    validate_duration,
    validate_string,
)

logger = get_logger("engine")


class AuctionEngine:
    """
    Dutch auction engine.

    Attributes:
        owner: Operating account that receives payments and keeps fees
        ledger: Value-transfer backend
        clock: Time source
        store: Auction records
        fees: Fee schedule and totals
        events: Event bus for AuctionCreated / AuctionEnded
    """

    def __init__(
        self,
        owner: bytes,
        ledger: Ledger,
        clock: Optional[Clock] = None,
        store: Optional[AuctionStore] = None,
        fees: Optional[FeeSchedule] = None,
        events: Optional[EventBus] = None,
        max_item_length: int = MAX_ITEM_LENGTH,
    ):
        valid, err = validate_address(owner, "owner")
        if not valid:
            raise ValueError(err)

        self.owner = owner
        self.ledger = ledger
        self.clock = clock or SystemClock()
        self.store = store or AuctionStore()
        self.fees = fees or FeeSchedule()
        self.events = events or EventBus()
        self.max_item_length = max_item_length

        logger.info(f"Engine ready: owner={bytes_to_hex(owner)[:10]}..., auctions={self.store.count()}")

    # =========================================================================
    # Creation
    # =========================================================================

    def _validate_creation(
        self,
        seller: bytes,
        starting_price: int,
        discount_rate: int,
        item: str,
        duration: int,
    ) -> None:
        checks = (
            validate_address(seller, "seller"),
            validate_amount(starting_price, "starting_price"),
            validate_amount(discount_rate, "discount_rate"),
            validate_string(item, "item", max_length=self.max_item_length),
            validate_duration(duration),
        )
        for valid, err in checks:
            if not valid:
                raise InvalidArgument(err)

        if duration == 0:
            raise InvalidArgument("incorrect duration")
        if discount_rate == 0:
            raise InvalidArgument("incorrect discount rate")

        # Keeps the price positive through end_at
        if starting_price <= discount_rate * duration:
            raise InvalidPrice()

    def create_auction(
        self,
        seller: bytes,
        starting_price: int,
        discount_rate: int,
        item: str,
        duration: int,
    ) -> int:
        """
        List a new auction.

        Args:
            seller: Seller's address, receives the proceeds
            starting_price: Price at creation
            discount_rate: Price decrease per second
            item: Item label
            duration: Buying window in seconds

        Returns:
            New auction id

        Raises:
            InvalidArgument: malformed input, zero duration or zero rate
            InvalidPrice: starting_price <= discount_rate * duration
        """
        self._validate_creation(seller, starting_price, discount_rate, item, duration)

        start_at = self.clock.now()
        auction_id = self.store.append(
            seller=seller,
            item=item,
            starting_price=starting_price,
            discount_rate=discount_rate,
            start_at=start_at,
            end_at=start_at + duration,
        )

        self.events.emit(AuctionCreated(
            auction_id=auction_id,
            seller=bytes_to_hex(seller),
            item=item,
            starting_price=starting_price,
            duration=duration,
        ))
        return auction_id

    # =========================================================================
    # Queries
    # =========================================================================

    def get_auction(self, auction_id: int) -> Auction:
        """Snapshot of every stored field of an auction."""
        return self.store.get(auction_id)

    def get_price_for(self, auction_id: int) -> int:
        """
        Current price of an active auction.

        The end of the window is not checked here, so a stale price can
        still be shown after the auction lapses.

        Raises:
            AuctionNotFound: unknown id
            AuctionStopped: already settled
        """
        auction = self.store.get(auction_id)
        if auction.stopped:
            raise AuctionStopped()

        price = current_price(auction, self.clock.now())
        logger.debug(f"Price of auction {auction_id}: {price}")
        return price

    def auction_count(self) -> int:
        return self.store.count()

    def list_auctions(self, active_only: bool = False) -> List[Auction]:
        return self.store.list_auctions(include_stopped=not active_only)

    # =========================================================================
    # Settlement
    # =========================================================================

    def buy(self, auction_id: int, buyer: bytes, payment: int) -> Tuple[int, int]:
        """
        Settle an auction at its current price.

        Args:
            auction_id: Auction to buy
            buyer: Buyer's address, pays and receives the refund
            payment: Value attached by the buyer

        Returns:
            (final_price, refund)

        Raises:
            AuctionNotFound, AuctionStopped, AuctionExpired, InsufficientFunds,
            InvalidArgument, SettlementFailed
        """
        for valid, err in (validate_address(buyer, "buyer"), validate_amount(payment, "payment")):
            if not valid:
                raise InvalidArgument(err)

        with self.store.lock_for(auction_id):
            auction = self.store.get(auction_id)
            now = self.clock.now()

            if auction.stopped:
                raise AuctionStopped()
            if auction.is_expired(now):
                raise AuctionExpired()

            price = current_price(auction, now)
            if payment < price:
                raise InsufficientFunds()

            breakdown = self.fees.split(price)
            refund = payment - price

            transfers = [Transfer(buyer, self.owner, payment)]
            if breakdown.seller_proceeds:
                transfers.append(Transfer(self.owner, auction.seller, breakdown.seller_proceeds))
            if refund:
                transfers.append(Transfer(self.owner, buyer, refund))

            settled = self.store.prepare_settlement(auction_id, price, buyer)
            try:
                self.ledger.apply_transfers(
                    transfers,
                    persist=lambda balances: self._persist_settlement(settled, balances),
                )
            except LedgerError as e:
                logger.warning(f"Settlement of auction {auction_id} rejected: {e}")
                raise SettlementFailed(str(e)) from e

            self.store.commit_settlement(settled)
            self.fees.record(breakdown)

        logger.info(
            f"Auction {auction_id} sold for {price} "
            f"(fee={breakdown.fee}, refund={refund}) to {bytes_to_hex(buyer)[:10]}..."
        )
        self.events.emit(AuctionEnded(
            auction_id=auction_id,
            final_price=price,
            buyer=bytes_to_hex(buyer),
        ))
        return price, refund

    def _persist_settlement(self, settled: Auction, balances: List[Tuple[bytes, int]]) -> None:
        """Write a settlement and its balances; called by the ledger before memory changes."""
        store_storage = self.store.storage_manager
        ledger_storage = self.ledger.storage_manager

        if store_storage is not None and store_storage is ledger_storage:
            store_storage.persist_settlement_with_balances(settled, balances)
            return

        # Separate backends cannot share a transaction
        if ledger_storage:
            ledger_storage.persist_balances(balances)
        if store_storage:
            store_storage.persist_settlement(settled)

    # =========================================================================
    # Utility
    # =========================================================================

    def __repr__(self) -> str:
        return f"AuctionEngine(owner={bytes_to_hex(self.owner)[:10]}..., auctions={self.store.count()})"

    def stats(self) -> dict:
        """Get engine statistics."""
        return {
            **self.store.stats(),
            **self.fees.stats(),
            "owner_balance": self.ledger.get_balance(self.owner),
        }
