"""
AucEngine - Dutch auction settlement engine.

Provides:
- Linear time-decay pricing
- Auction lifecycle storage with one-shot settlement
- Atomic fee deduction and overpayment refund against a balance ledger
- Lifecycle notifications (AuctionCreated, AuctionEnded)
"""

__version__ = "0.1.0"
