"""
Auction errors.

Every failure the engine reports carries a stable kind and message so that
clients can branch on either. The messages are part of the public contract.
"""

from enum import IntEnum


class ErrorKind(IntEnum):
    """Stable error identifiers."""
    INVALID_PRICE = 0
    INVALID_ARGUMENT = 1
    NOT_FOUND = 2
    STOPPED = 3
    EXPIRED = 4
    INSUFFICIENT_FUNDS = 5
    INVALID_STATE = 6
    SETTLEMENT_FAILED = 7


class AuctionError(Exception):
    """Base class for all engine errors."""
    kind: ErrorKind = ErrorKind.INVALID_ARGUMENT
    default_message: str = "auction error"

    def __init__(self, message: str = ""):
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidPrice(AuctionError):
    kind = ErrorKind.INVALID_PRICE
    default_message = "incorrect starting price"


class InvalidArgument(AuctionError):
    kind = ErrorKind.INVALID_ARGUMENT
    default_message = "invalid argument"


class AuctionNotFound(AuctionError):
    kind = ErrorKind.NOT_FOUND
    default_message = "auction not found"


class AuctionStopped(AuctionError):
    kind = ErrorKind.STOPPED
    default_message = "stopped!"


class AuctionExpired(AuctionError):
    kind = ErrorKind.EXPIRED
    default_message = "ended!"


class InsufficientFunds(AuctionError):
    kind = ErrorKind.INSUFFICIENT_FUNDS
    default_message = "not enough funds!"


class InvalidState(AuctionError):
    kind = ErrorKind.INVALID_STATE
    default_message = "already settled"


class SettlementFailed(AuctionError):
    """Transfers were rejected; the settlement was rolled back."""
    kind = ErrorKind.SETTLEMENT_FAILED
    default_message = "settlement failed"
