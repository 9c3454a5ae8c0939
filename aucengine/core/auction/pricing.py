"""
Pricing - Linear time decay.

    price(now) = starting_price - discount_rate * (now - start_at)

No clamping is applied. Creation guarantees
starting_price > discount_rate * duration, so the price stays positive up to
and including end_at; callers must not settle past end_at.
"""

from aucengine.core.auction.auction import Auction


def current_price(auction: Auction, now: int) -> int:
    """
    Price of an auction at time `now`.

    Args:
        auction: The auction record
        now: Current timestamp, must be >= auction.start_at

    Returns:
        Decayed price
    """
    elapsed = now - auction.start_at
    if elapsed < 0:
        raise ValueError(f"now ({now}) is before auction start ({auction.start_at})")

    discount = auction.discount_rate * elapsed
    return auction.starting_price - discount
