"""
Auction record.

An auction is created Active and becomes Settled exactly once. Only the
settlement fields (final_price, stopped, buyer) ever change after creation.
"""

from dataclasses import dataclass, replace
from typing import Optional

from aucengine.crypto import bytes_to_hex


@dataclass
class Auction:
    """
    A Dutch auction listing.

    Attributes:
        auction_id: Sequential index assigned by the store (0-based)
        seller: 20-byte address receiving the proceeds
        item: Opaque label, not interpreted by the engine
        starting_price: Price at start_at
        discount_rate: Price decrease per second
        start_at: Creation timestamp (seconds)
        end_at: start_at + duration
        final_price: Settlement price, 0 until settled
        stopped: True once settled
        buyer: Settling buyer, None until settled
    """
    auction_id: int
    seller: bytes
    item: str
    starting_price: int
    discount_rate: int
    start_at: int
    end_at: int
    final_price: int = 0
    stopped: bool = False
    buyer: Optional[bytes] = None

    @property
    def duration(self) -> int:
        return self.end_at - self.start_at

    def is_expired(self, now: int) -> bool:
        """Past the buying window (end_at itself is still open)."""
        return now > self.end_at

    def copy(self) -> "Auction":
        return replace(self)

    def to_dict(self) -> dict:
        """JSON-friendly view with hex addresses."""
        return {
            "auction_id": self.auction_id,
            "seller": bytes_to_hex(self.seller),
            "item": self.item,
            "starting_price": self.starting_price,
            "discount_rate": self.discount_rate,
            "start_at": self.start_at,
            "end_at": self.end_at,
            "final_price": self.final_price,
            "stopped": self.stopped,
            "buyer": bytes_to_hex(self.buyer) if self.buyer else None,
        }

    def __repr__(self) -> str:
        state = "settled" if self.stopped else "active"
        return (
            f"Auction(id={self.auction_id}, item={self.item!r}, "
            f"start={self.starting_price}, rate={self.discount_rate}, {state})"
        )
