"""
Single-owner smart accounts.

- MinimalAccount: generic account driven by an EntryPoint
- ZkMinimalAccount: native account driven by the platform bootloader

Both are thin adapters over shared components: authorization gate,
signature validator, ownership and execution dispatcher.
"""

from .authorization import AuthorizationGate, coordinator_gate, platform_gate
from .dispatcher import CallDispatcher, FailurePolicy, platform_dispatcher, propagating_dispatcher
from .errors import (
    CallFailed,
    ExecutionFailed,
    FailedToPay,
    InvalidSignature,
    NotEnoughBalance,
    NotFromCoordinator,
    NotFromCoordinatorOrOwner,
    NotFromPlatform,
    NotFromPlatformOrOwner,
    OwnableInvalidOwner,
    OwnableUnauthorizedAccount,
    ValueOverflow,
)
from .generic_account import MinimalAccount
from .native_account import ACCOUNT_VALIDATION_SUCCESS_MAGIC, ZkMinimalAccount
from .operations import PackedUserOperation, Transaction, pack_uints, unpack_uints
from .ownership import Ownership
from .signature import DigestScheme, SignatureValidator
from .signing import (
    build_execute_call_data,
    sign_digest,
    sign_transaction,
    sign_typed_data_hash,
    sign_user_operation,
)

__all__ = [
    "ACCOUNT_VALIDATION_SUCCESS_MAGIC",
    "AuthorizationGate",
    "CallDispatcher",
    "CallFailed",
    "DigestScheme",
    "ExecutionFailed",
    "FailedToPay",
    "FailurePolicy",
    "InvalidSignature",
    "MinimalAccount",
    "NotEnoughBalance",
    "NotFromCoordinator",
    "NotFromCoordinatorOrOwner",
    "NotFromPlatform",
    "NotFromPlatformOrOwner",
    "OwnableInvalidOwner",
    "OwnableUnauthorizedAccount",
    "Ownership",
    "PackedUserOperation",
    "SignatureValidator",
    "Transaction",
    "ValueOverflow",
    "ZkMinimalAccount",
    "build_execute_call_data",
    "coordinator_gate",
    "pack_uints",
    "platform_dispatcher",
    "platform_gate",
    "propagating_dispatcher",
    "sign_digest",
    "sign_transaction",
    "sign_typed_data_hash",
    "sign_user_operation",
    "unpack_uints",
]
