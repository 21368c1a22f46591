"""
Off-system helpers for building and signing account operations.

User operations are signed as eth-signed messages over the userOpHash.
Native transactions are signed over their EIP-712 hash directly, the way
wallets sign typed data. Both match what ``SignatureValidator`` recovers
for the respective account.
"""

from __future__ import annotations

from typing import Union

from eth_account import Account
from eth_account.messages import encode_defunct

from ..vm.abi import encode_call
from .generic_account import EXECUTE_SIGNATURE
from .operations import PackedUserOperation, Transaction

PrivateKey = Union[str, bytes]


def build_execute_call_data(dest: str, value: int, data: bytes) -> bytes:
    """Call data for ``execute(dest, value, data)`` on the generic account."""
    return encode_call(EXECUTE_SIGNATURE, [dest, value, bytes(data)])


def sign_digest(digest: bytes, private_key: PrivateKey) -> bytes:
    """Sign a 32-byte digest as an eth-signed message; returns ``r || s || v``."""
    signed = Account.sign_message(encode_defunct(primitive=bytes(digest)), private_key)
    return bytes(signed.signature)


def sign_typed_data_hash(digest: bytes, private_key: PrivateKey) -> bytes:
    """Sign an EIP-712 hash without further wrapping; returns ``r || s || v``."""
    signed = Account.unsafe_sign_hash(bytes(digest), private_key)
    return bytes(signed.signature)


def sign_user_operation(
    op: PackedUserOperation,
    entry_point: str,
    chain_id: int,
    private_key: PrivateKey,
) -> PackedUserOperation:
    """Return a copy of ``op`` carrying the owner's signature over its hash."""
    return op.with_signature(sign_digest(op.hash(entry_point, chain_id), private_key))


def sign_transaction(tx: Transaction, chain_id: int, private_key: PrivateKey) -> Transaction:
    """Return a copy of ``tx`` carrying the owner's signature over its EIP-712 hash."""
    return tx.with_signature(sign_typed_data_hash(tx.encode_hash(chain_id), private_key))
