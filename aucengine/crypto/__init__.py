"""
Cryptographic primitives for AucEngine.

This module provides:
- Keccak-256 hashing
- Key generation on secp256k1
- Ethereum-style account addresses

Design Notes:
-------------
Accounts are 20-byte addresses derived the Ethereum way:
    address = keccak256(public_key)[-20:]

The engine treats addresses as opaque identifiers. Keys exist only so that
the host binding (CLI, demos, tests) can mint realistic account ids.
"""

import secrets
from dataclasses import dataclass

from Crypto.Hash import keccak
from py_ecc.secp256k1 import secp256k1


# =============================================================================
# Constants
# =============================================================================

# secp256k1 curve order (number of points on the curve)
SECP256K1_ORDER = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141

ADDRESS_SIZE = 20


# =============================================================================
# Hashing
# =============================================================================


def keccak256(data: bytes) -> bytes:
    """
    Compute Keccak-256 hash (Ethereum-style).

    Used for: address derivation.
    """
    k = keccak.new(digest_bits=256)
    k.update(data)
    return k.digest()


# =============================================================================
# Key Generation
# =============================================================================


@dataclass
class KeyPair:
    """
    An ECDSA keypair on secp256k1.

    Attributes:
        private_key: 32-byte secret key (integer in [1, order-1])
        public_key: 64-byte uncompressed public key (x || y coordinates)
    """
    private_key: bytes  # 32 bytes
    public_key: bytes   # 64 bytes (uncompressed, no 0x04 prefix)

    @property
    def address(self) -> bytes:
        """20-byte account address for this keypair."""
        return address_from_public_key(self.public_key)

    @property
    def address_hex(self) -> str:
        """Address hex-encoded with 0x prefix."""
        return bytes_to_hex(self.address)


def generate_keypair() -> KeyPair:
    """
    Generate a new random keypair.

    Uses cryptographically secure random number generator.
    """
    private_key_int = secrets.randbelow(SECP256K1_ORDER - 1) + 1
    private_key = private_key_int.to_bytes(32, byteorder="big")

    # P = k * G, returned as (x, y) integers
    public_key_point = secp256k1.privtopub(private_key)
    x_bytes = public_key_point[0].to_bytes(32, byteorder="big")
    y_bytes = public_key_point[1].to_bytes(32, byteorder="big")

    return KeyPair(private_key=private_key, public_key=x_bytes + y_bytes)


def address_from_public_key(public_key: bytes) -> bytes:
    """
    Derive a 20-byte address from a 64-byte public key.

    Args:
        public_key: 64-byte uncompressed public key

    Returns:
        Last 20 bytes of keccak256(public_key)
    """
    if len(public_key) != 64:
        raise ValueError(f"public_key must be 64 bytes, got {len(public_key)}")
    return keccak256(public_key)[-ADDRESS_SIZE:]


def generate_address() -> bytes:
    """Generate a fresh random account address."""
    return generate_keypair().address


# =============================================================================
# Utility Functions
# =============================================================================


def bytes_to_hex(data: bytes) -> str:
    """Convert bytes to hex string with 0x prefix."""
    return "0x" + data.hex()


def hex_to_bytes(hex_str: str) -> bytes:
    """Convert hex string (with or without 0x prefix) to bytes."""
    if hex_str.startswith("0x") or hex_str.startswith("0X"):
        hex_str = hex_str[2:]
    return bytes.fromhex(hex_str)


def is_valid_address(address: str) -> bool:
    """Check if string is a valid address format."""
    if not address.startswith("0x"):
        return False
    if len(address) != 42:  # 0x + 40 hex chars
        return False
    try:
        int(address, 16)
        return True
    except ValueError:
        return False
