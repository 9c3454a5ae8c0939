"""
Input Validation - Sanitization of caller-supplied auction parameters.

Provides validation for all external inputs to prevent:
- Integer overflows (amounts are bounded like uint256)
- Invalid account identifiers
- Oversized item labels
"""

from typing import Tuple, Any, Optional

from aucengine.crypto import ADDRESS_SIZE

# =============================================================================
# Constants
# =============================================================================

MAX_ITEM_LENGTH = 1024

# Field bounds
MIN_AMOUNT = 0
MAX_AMOUNT = 2**256 - 1
MAX_DURATION = 2**64 - 1


# =============================================================================
# Validation Functions
# =============================================================================


def validate_bytes(
    data: Any,
    name: str,
    expected_length: Optional[int] = None,
) -> Tuple[bool, str]:
    """
    Validate bytes input.

    Args:
        data: Data to validate
        name: Field name for error messages
        expected_length: Exact expected length

    Returns:
        (is_valid, error_message)
    """
    if not isinstance(data, (bytes, bytearray)):
        return False, f"{name} must be bytes, got {type(data).__name__}"

    if expected_length is not None and len(data) != expected_length:
        return False, f"{name} must be {expected_length} bytes, got {len(data)}"

    return True, ""


def validate_address(address: Any, name: str = "address") -> Tuple[bool, str]:
    """Validate a 20-byte account address."""
    return validate_bytes(address, name, expected_length=ADDRESS_SIZE)


def validate_integer(
    value: Any,
    name: str,
    min_val: int = MIN_AMOUNT,
    max_val: int = MAX_AMOUNT,
) -> Tuple[bool, str]:
    """
    Validate integer within bounds.

    Args:
        value: Value to validate
        name: Field name for errors
        min_val: Minimum allowed value
        max_val: Maximum allowed value

    Returns:
        (is_valid, error_message)
    """
    # bool is an int subclass but never a meaningful amount
    if not isinstance(value, int) or isinstance(value, bool):
        return False, f"{name} must be int, got {type(value).__name__}"

    if value < min_val:
        return False, f"{name} must be >= {min_val}, got {value}"

    if value > max_val:
        return False, f"{name} must be <= {max_val}, got {value}"

    return True, ""


def validate_amount(amount: Any, name: str = "amount") -> Tuple[bool, str]:
    """Validate a token amount."""
    return validate_integer(amount, name, MIN_AMOUNT, MAX_AMOUNT)


def validate_duration(duration: Any) -> Tuple[bool, str]:
    """Validate an auction duration in seconds."""
    return validate_integer(duration, "duration", 0, MAX_DURATION)


def validate_string(
    value: Any,
    name: str,
    max_length: int = MAX_ITEM_LENGTH,
) -> Tuple[bool, str]:
    """
    Validate string input.

    Args:
        value: Value to validate
        name: Field name for errors
        max_length: Maximum string length

    Returns:
        (is_valid, error_message)
    """
    if not isinstance(value, str):
        return False, f"{name} must be str, got {type(value).__name__}"

    if len(value) > max_length:
        return False, f"{name} exceeds max length {max_length}"

    return True, ""


# =============================================================================
# Module Exports
# =============================================================================

__all__ = [
    "validate_bytes",
    "validate_address",
    "validate_integer",
    "validate_amount",
    "validate_duration",
    "validate_string",
    "MAX_ITEM_LENGTH",
    "MAX_AMOUNT",
    "MAX_DURATION",
]
