"""
Native account for platforms with built-in account abstraction.

The platform bootloader drives a staged sequence against the account:

1. ``validateTransaction``: consume the nonce, check the balance covers
   the transaction, check the owner's signature
2. ``payForTransaction``: pay the bootloader its fee
3. ``executeTransaction``: perform the call

``executeTransactionFromOutside`` lets anyone submit an owner-signed
transaction that is validated and executed in one call.
"""

from __future__ import annotations

import logging
from typing import Tuple

from ..constants import (
    BOOTLOADER_FORMAL_ADDRESS,
    DEPLOYER_SYSTEM_CONTRACT,
    NONCE_HOLDER_SYSTEM_CONTRACT,
    TRANSACTION_TYPE,
    UINT128_MAX,
)
from ..vm.abi import encode_call, function_selector
from ..vm.contract import CallContext, Contract, external
from ..vm.exceptions import VMExecutionError
from .authorization import AuthorizationGate, platform_gate
from .dispatcher import CallDispatcher, platform_dispatcher
from .errors import FailedToPay, InvalidSignature, NotEnoughBalance, ValueOverflow
from .operations import Transaction
from .ownership import Ownership
from .signature import SignatureValidator, typed_data_validator

logger = logging.getLogger(__name__)

VALIDATE_TRANSACTION_SIGNATURE = f"validateTransaction(bytes32,bytes32,{TRANSACTION_TYPE})"
EXECUTE_TRANSACTION_SIGNATURE = f"executeTransaction(bytes32,bytes32,{TRANSACTION_TYPE})"
EXECUTE_FROM_OUTSIDE_SIGNATURE = f"executeTransactionFromOutside({TRANSACTION_TYPE})"
PAY_FOR_TRANSACTION_SIGNATURE = f"payForTransaction(bytes32,bytes32,{TRANSACTION_TYPE})"
PREPARE_FOR_PAYMASTER_SIGNATURE = f"prepareForPaymaster(bytes32,bytes32,{TRANSACTION_TYPE})"

# validateTransaction returns its own selector on success
ACCOUNT_VALIDATION_SUCCESS_MAGIC = function_selector(VALIDATE_TRANSACTION_SIGNATURE)
ACCOUNT_VALIDATION_FAILED = b"\x00\x00\x00\x00"

INCREMENT_NONCE_SIGNATURE = "incrementMinNonceIfEquals(uint256)"


def decode_transaction(values: Tuple) -> Transaction:
    try:
        return Transaction.from_abi(values)
    except ValueError as exc:
        raise VMExecutionError(f"Malformed transaction: {exc}") from exc


class ZkMinimalAccount(Contract):
    """
    Single-owner account for the platform-native protocol.

    Authorization is platform-enforced: only the reserved bootloader
    address may validate and pay, so no coordinator address is stored.
    """

    accepts_plain_transfers = True

    def __init__(self, owner: str, address: str = "") -> None:
        self.ownership = Ownership(owner)
        self.address = address

    @property
    def gate(self) -> AuthorizationGate:
        return platform_gate()

    @property
    def dispatcher(self) -> CallDispatcher:
        return platform_dispatcher(DEPLOYER_SYSTEM_CONTRACT)

    @property
    def validator(self) -> SignatureValidator:
        return typed_data_validator()

    # ==================== IAccount Interface ====================

    @external(VALIDATE_TRANSACTION_SIGNATURE, returns=("bytes4",), payable=True)
    def validate_transaction(
        self,
        ctx: CallContext,
        tx_hash: bytes,
        suggested_signed_hash: bytes,
        transaction: Tuple,
    ) -> bytes:
        self.gate.require_trusted(ctx)
        return self._validate_transaction(ctx, decode_transaction(transaction))

    @external(EXECUTE_TRANSACTION_SIGNATURE, payable=True)
    def execute_transaction(
        self,
        ctx: CallContext,
        tx_hash: bytes,
        suggested_signed_hash: bytes,
        transaction: Tuple,
    ) -> None:
        self.gate.require_trusted_or_owner(ctx, self.ownership.owner)
        self._execute_transaction(ctx, decode_transaction(transaction))

    @external(EXECUTE_FROM_OUTSIDE_SIGNATURE, payable=True)
    def execute_transaction_from_outside(self, ctx: CallContext, transaction: Tuple) -> None:
        """
        Validate and execute in one call, for any caller.

        No coordinator has checked the validation result on this path,
        so anything but the success magic aborts with ``InvalidSignature``.
        """
        tx = decode_transaction(transaction)
        magic = self._validate_transaction(ctx, tx)
        if magic != ACCOUNT_VALIDATION_SUCCESS_MAGIC:
            raise InvalidSignature()
        self._execute_transaction(ctx, tx)

    @external(PAY_FOR_TRANSACTION_SIGNATURE, payable=True)
    def pay_for_transaction(
        self,
        ctx: CallContext,
        tx_hash: bytes,
        suggested_signed_hash: bytes,
        transaction: Tuple,
    ) -> None:
        self.gate.require_trusted(ctx)
        tx = decode_transaction(transaction)
        fee = tx.fee()
        result = ctx.vm.call(ctx.this, BOOTLOADER_FORMAL_ADDRESS, fee, b"")
        if not result.success:
            logger.warning(
                "Fee payment to bootloader failed",
                extra={"event": "account.fee_payment_failed", "account": ctx.this, "fee": fee},
            )
            raise FailedToPay()

    @external(PREPARE_FOR_PAYMASTER_SIGNATURE, payable=True)
    def prepare_for_paymaster(
        self,
        ctx: CallContext,
        tx_hash: bytes,
        possible_signed_hash: bytes,
        transaction: Tuple,
    ) -> None:
        """Paymaster flows are not supported; intentionally a no-op."""

    # ==================== Views & Ownership ====================

    @external("owner()", returns=("address",))
    def owner(self, ctx: CallContext) -> str:
        return self.ownership.owner

    @external("transferOwnership(address)")
    def transfer_ownership(self, ctx: CallContext, new_owner: str) -> None:
        self.ownership.transfer(ctx, new_owner)

    def receive(self, ctx: CallContext) -> None:
        logger.debug(
            "Account received funds",
            extra={"event": "account.received", "account": ctx.this, "from": ctx.sender, "value": ctx.value},
        )

    # ==================== Internal ====================

    def _validate_transaction(self, ctx: CallContext, tx: Transaction) -> bytes:
        # Nonce first: a stale or replayed nonce fails before any other work
        nonce_result = ctx.vm.system_call(
            ctx.this,
            NONCE_HOLDER_SYSTEM_CONTRACT,
            0,
            encode_call(INCREMENT_NONCE_SIGNATURE, [tx.nonce]),
        )
        if not nonce_result.success:
            raise nonce_result.error  # type: ignore[misc]

        required = tx.total_required_balance()
        balance = ctx.vm.balance_of(ctx.this)
        if required > balance:
            logger.warning(
                "Transaction rejected: balance below required",
                extra={
                    "event": "account.not_enough_balance",
                    "account": ctx.this,
                    "required": required,
                    "balance": balance,
                },
            )
            raise NotEnoughBalance()

        tx_hash = tx.encode_hash(ctx.vm.chain_id)
        if self.validator.is_valid(self.ownership.owner, tx_hash, tx.signature):
            return ACCOUNT_VALIDATION_SUCCESS_MAGIC
        return ACCOUNT_VALIDATION_FAILED

    def _execute_transaction(self, ctx: CallContext, tx: Transaction) -> None:
        if tx.value > UINT128_MAX:
            raise ValueOverflow(tx.value)
        self.dispatcher.dispatch(ctx, tx.to, tx.value, tx.data)
