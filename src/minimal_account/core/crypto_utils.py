"""Utility helpers for addresses, hashing and secp256k1 signature recovery."""

from __future__ import annotations

from typing import Optional, Tuple

from eth_keys import keys
from eth_keys.exceptions import BadSignature, ValidationError
from eth_utils import is_address, keccak, to_checksum_address

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"

_CURVE_ORDER = int("FFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141", 16)

ETH_SIGNED_MESSAGE_PREFIX = b"\x19Ethereum Signed Message:\n32"

SIGNATURE_LENGTH = 65


def keccak256(data: bytes) -> bytes:
    return keccak(primitive=bytes(data))


def normalize_address(address: str) -> str:
    """
    Return the EIP-55 checksummed form of an address.

    Raises:
        ValueError: If the value is not a 20-byte hex address.
    """
    if not isinstance(address, str) or not is_address(address.lower()):
        raise ValueError(f"Invalid address: {address!r}")
    return to_checksum_address(address.lower())


def same_address(left: str, right: str) -> bool:
    return left.lower() == right.lower()


def address_to_uint(address: str) -> int:
    return int(normalize_address(address), 16)


def uint_to_address(value: int) -> str:
    if not 0 <= value < 2**160:
        raise ValueError(f"Value does not fit in an address: {value}")
    return to_checksum_address(value.to_bytes(20, "big"))


def to_eth_signed_message_hash(digest: bytes) -> bytes:
    """Wrap a 32-byte digest the way ``eth_sign`` / EIP-191 version 0x45 does."""
    if len(digest) != 32:
        raise ValueError(f"Digest must be 32 bytes, got {len(digest)}")
    return keccak256(ETH_SIGNED_MESSAGE_PREFIX + bytes(digest))


def _validate_signature_range(r: int, s: int) -> None:
    """
    Ensure signature components fall within the curve order.

    Raises:
        ValueError: If either component is out of range.
    """
    if not (1 <= r < _CURVE_ORDER):
        raise ValueError("Signature r component out of range.")
    if not (1 <= s < _CURVE_ORDER):
        raise ValueError("Signature s component out of range.")


def is_canonical_signature(r: int, s: int) -> bool:
    """
    Check whether signature components are already canonical.

    Args:
        r: Signature r component
        s: Signature s component

    Returns:
        True if components fall within range and have low-S form.
    """
    try:
        _validate_signature_range(r, s)
    except ValueError:
        return False
    return s <= _CURVE_ORDER // 2


def split_signature(signature: bytes) -> Tuple[int, int, int]:
    """
    Split a packed ``r || s || v`` signature.

    Raises:
        ValueError: If the signature is not 65 bytes.
    """
    if len(signature) != SIGNATURE_LENGTH:
        raise ValueError(
            f"Signature must be {SIGNATURE_LENGTH} bytes, got {len(signature)} bytes"
        )
    r = int.from_bytes(signature[:32], "big")
    s = int.from_bytes(signature[32:64], "big")
    v = signature[64]
    return r, s, v


def recover_signer(digest: bytes, signature: bytes) -> Optional[str]:
    """
    Recover the address that produced ``signature`` over ``digest``.

    Mirrors ``ECDSA.tryRecover``: a wrong length, a ``v`` other than
    27/28, a high-S or out-of-range component, or an unrecoverable point
    all yield ``None`` instead of raising.
    """
    try:
        r, s, v = split_signature(bytes(signature))
    except ValueError:
        return None
    if v not in (27, 28) or not is_canonical_signature(r, s):
        return None
    try:
        public_key = keys.Signature(vrs=(v - 27, r, s)).recover_public_key_from_msg_hash(
            bytes(digest)
        )
    except (BadSignature, ValidationError):
        return None
    return public_key.to_checksum_address()
