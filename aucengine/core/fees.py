"""
Fees - Protocol fee on auction settlement.

Every settled auction pays a fixed 10% fee (1000 basis points) out of the
final price. The fee is computed with integer floor division, so the seller
receives the rounding remainder:

    fee = final_price * FEE_RATE_BPS // BPS_DENOMINATOR
    seller_proceeds = final_price - fee
"""

import threading
from dataclasses import dataclass

from aucengine.utils.logger import get_logger

logger = get_logger("fees")


FEE_RATE_BPS = 1000         # 10%
BPS_DENOMINATOR = 10_000


@dataclass(frozen=True)
class FeeBreakdown:
    """How a final price is split at settlement."""
    final_price: int
    fee: int
    seller_proceeds: int


def compute_fee(final_price: int, fee_rate_bps: int = FEE_RATE_BPS) -> int:
    """Fee owed on a final price, rounded down."""
    if final_price < 0:
        raise ValueError(f"final_price must be >= 0, got {final_price}")
    return final_price * fee_rate_bps // BPS_DENOMINATOR


def split_price(final_price: int) -> FeeBreakdown:
    """Split a final price into protocol fee and seller proceeds."""
    fee = compute_fee(final_price)
    return FeeBreakdown(
        final_price=final_price,
        fee=fee,
        seller_proceeds=final_price - fee,
    )


class FeeSchedule:
    """
    Applies the protocol fee and tracks running totals.
    """

    def __init__(self):
        self.fee_rate_bps = FEE_RATE_BPS

        self.total_fees_collected: int = 0
        self.total_seller_proceeds: int = 0
        self.settlement_count: int = 0

        self._lock = threading.Lock()

    def split(self, final_price: int) -> FeeBreakdown:
        return split_price(final_price)

    def record(self, breakdown: FeeBreakdown) -> None:
        """Add a completed settlement to the running totals."""
        with self._lock:
            self.total_fees_collected += breakdown.fee
            self.total_seller_proceeds += breakdown.seller_proceeds
            self.settlement_count += 1

        logger.debug(f"Fee recorded: {breakdown.fee} of {breakdown.final_price}")

    def stats(self) -> dict:
        """Get fee statistics."""
        return {
            "fee_rate_bps": self.fee_rate_bps,
            "settlements": self.settlement_count,
            "total_fees": self.total_fees_collected,
            "total_seller_proceeds": self.total_seller_proceeds,
        }
