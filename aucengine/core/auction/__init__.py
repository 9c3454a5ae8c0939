"""
AucEngine Auction Module.

This module provides the Dutch auction system:
- Auction records and the append-only store
- Linear time-decay pricing
- Creation and settlement engine
- Lifecycle events and errors
"""

from aucengine.core.auction.auction import Auction
from aucengine.core.auction.pricing import current_price
from aucengine.core.auction.store import AuctionStore
from aucengine.core.auction.events import (
    AuctionEvent,
    AuctionCreated,
    AuctionEnded,
    EventBus,
    decode_event,
)
from aucengine.core.auction.errors import (
    ErrorKind,
    AuctionError,
    InvalidPrice,
    InvalidArgument,
    AuctionNotFound,
    AuctionStopped,
    AuctionExpired,
    InsufficientFunds,
    InvalidState,
    SettlementFailed,
)
from aucengine.core.auction.engine import AuctionEngine

__all__ = [
    # Records
    "Auction",
    "AuctionStore",
    "current_price",
    # Engine
    "AuctionEngine",
    # Events
    "AuctionEvent",
    "AuctionCreated",
    "AuctionEnded",
    "EventBus",
    "decode_event",
    # Errors
    "ErrorKind",
    "AuctionError",
    "InvalidPrice",
    "InvalidArgument",
    "AuctionNotFound",
    "AuctionStopped",
    "AuctionExpired",
    "InsufficientFunds",
    "InvalidState",
    "SettlementFailed",
]
