"""
Ledger - Account balance management for AucEngine.

Conceptual Background:
---------------------
The Ledger is the value-transfer substrate the auction engine settles
against. The engine never edits balances itself; it hands the ledger a
batch of transfer instructions and the ledger applies all of them or none.

Batch Processing:
----------------
1. Validate every leg's structure (20-byte addresses, non-negative amount)
2. Replay the legs in order against a working copy of the touched balances,
   so a leg may spend value credited by an earlier leg of the same batch
3. Persist the working copy (if storage is enabled)
4. Commit the working copy to memory

Any failure before step 4 leaves the ledger untouched.
"""

import threading
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple

from aucengine.core.storage.storage_manager import StorageManager
from aucengine.crypto import bytes_to_hex
from aucengine.utils.logger import get_logger
from aucengine.utils.validation import validate_address, validate_amount

logger = get_logger("ledger")


# =============================================================================
# Errors
# =============================================================================


class LedgerError(Exception):
    """A transfer or batch was rejected by the ledger."""


class InsufficientBalance(LedgerError):
    """An account cannot cover a transfer leg."""


# =============================================================================
# Transfers
# =============================================================================


@dataclass(frozen=True)
class Transfer:
    """A single value movement between two accounts."""
    sender: bytes       # 20 bytes
    recipient: bytes    # 20 bytes
    amount: int

    def validate_structure(self) -> Tuple[bool, str]:
        for name, address in (("sender", self.sender), ("recipient", self.recipient)):
            valid, err = validate_address(address, name)
            if not valid:
                return False, err
        return validate_amount(self.amount)

    def __repr__(self) -> str:
        return (
            f"Transfer({bytes_to_hex(self.sender)[:10]}... -> "
            f"{bytes_to_hex(self.recipient)[:10]}..., {self.amount})"
        )


# =============================================================================
# Ledger
# =============================================================================


class Ledger:
    """
    Account-model ledger with atomic batch transfers.

    Attributes:
        balances: Mapping of address to balance
        storage_manager: Optional persistence backend
    """

    def __init__(self, storage_manager: Optional[StorageManager] = None):
        """
        Initialize the ledger.

        Args:
            storage_manager: Persistence manager. None = in-memory only.
        """
        self.balances: Dict[bytes, int] = {}
        self.storage_manager = storage_manager
        self._lock = threading.RLock()

        if storage_manager:
            self._load_from_storage()

    # =========================================================================
    # State Access
    # =========================================================================

    def get_balance(self, address: bytes) -> int:
        """Get balance for an address (0 if never seen)."""
        with self._lock:
            return self.balances.get(address, 0)

    def total_supply(self) -> int:
        with self._lock:
            return sum(self.balances.values())

    # =========================================================================
    # Validation
    # =========================================================================

    def _simulate(self, transfers: List[Transfer]) -> Dict[bytes, int]:
        """
        Replay transfers against a working copy. Caller holds the lock.

        Returns:
            New balances of every touched account
        """
        working: Dict[bytes, int] = {}

        for i, t in enumerate(transfers):
            is_valid, error = t.validate_structure()
            if not is_valid:
                raise LedgerError(f"Transfer {i}: {error}")

            sender_balance = working.get(t.sender, self.balances.get(t.sender, 0))
            if sender_balance < t.amount:
                raise InsufficientBalance(
                    f"Transfer {i}: insufficient balance: have {sender_balance}, need {t.amount}"
                )

            working[t.sender] = sender_balance - t.amount
            working[t.recipient] = working.get(t.recipient, self.balances.get(t.recipient, 0)) + t.amount

        return working

    def validate_transfers(self, transfers: List[Transfer]) -> Tuple[bool, str]:
        """
        Validate a batch against current balances without applying it.

        Returns:
            (is_valid, error_message)
        """
        with self._lock:
            try:
                self._simulate(transfers)
            except LedgerError as e:
                return False, str(e)
        return True, ""

    # =========================================================================
    # Application
    # =========================================================================

    def apply_transfers(
        self,
        transfers: List[Transfer],
        persist: Optional[Callable[[List[Tuple[bytes, int]]], None]] = None,
    ) -> None:
        """
        Apply a batch of transfers atomically.

        Args:
            transfers: Ordered transfer legs
            persist: Replaces the ledger's own balance write. Called under the
                ledger lock with the new balances of every touched account,
                after validation and before memory is updated.

        Raises:
            InsufficientBalance: a sender cannot cover its leg
            LedgerError: a leg is malformed
        """
        with self._lock:
            working = self._simulate(transfers)
            new_balances = list(working.items())

            if persist is not None:
                persist(new_balances)
            elif self.storage_manager:
                self.storage_manager.persist_balances(new_balances)

            self.balances.update(working)

        for t in transfers:
            logger.debug(f"Applied {t!r}")

    def transfer(self, sender: bytes, recipient: bytes, amount: int) -> None:
        """Move `amount` from sender to recipient."""
        self.apply_transfers([Transfer(sender, recipient, amount)])

    def mint(self, address: bytes, amount: int) -> None:
        """
        Credit new value to an account.

        The host uses this to fund accounts; the engine never mints.
        """
        valid, err = validate_address(address)
        if not valid:
            raise LedgerError(err)
        valid, err = validate_amount(amount)
        if not valid:
            raise LedgerError(err)

        with self._lock:
            new_balance = self.balances.get(address, 0) + amount
            if self.storage_manager:
                self.storage_manager.persist_balances([(address, new_balance)])
            self.balances[address] = new_balance

        logger.info(f"Minted {amount} to {bytes_to_hex(address)[:10]}...")

    # =========================================================================
    # Persistence
    # =========================================================================

    def _load_from_storage(self) -> None:
        """Load balances from storage manager."""
        for address, balance in self.storage_manager.load_balances():
            self.balances[address] = balance

        logger.info(f"Loaded ledger: {len(self.balances)} accounts")

    # =========================================================================
    # Utility
    # =========================================================================

    def __repr__(self) -> str:
        return f"Ledger(accounts={len(self.balances)}, supply={self.total_supply()})"

    def stats(self) -> dict:
        """Get ledger statistics."""
        return {
            "account_count": len(self.balances),
            "total_supply": self.total_supply(),
        }
