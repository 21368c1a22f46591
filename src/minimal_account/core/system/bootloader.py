"""
Bootloader: the platform-native coordinator.

Processes one account-abstraction transaction through the staged
validate, pay, execute sequence, all inside a single top-level frame.
A validation or payment failure aborts the whole transaction. An
execution failure only rolls back the execution frame: the consumed
nonce and the collected fee stand and the receipt reports the failure.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Tuple

from ..accounts.native_account import (
    ACCOUNT_VALIDATION_SUCCESS_MAGIC,
    EXECUTE_TRANSACTION_SIGNATURE,
    PAY_FOR_TRANSACTION_SIGNATURE,
    VALIDATE_TRANSACTION_SIGNATURE,
    decode_transaction,
)
from ..accounts.operations import Transaction
from ..constants import BOOTLOADER_FORMAL_ADDRESS, NONCE_HOLDER_SYSTEM_CONTRACT, TRANSACTION_TYPE
from ..vm.abi import decode_outputs, encode_call
from ..vm.contract import CallContext, Contract, external
from ..vm.exceptions import CustomError, VMExecutionError
from ..vm.executor import VirtualMachine

logger = logging.getLogger(__name__)

PROCESS_TRANSACTION_SIGNATURE = f"processTransaction({TRANSACTION_TYPE})"


class AccountValidationFailed(CustomError):
    SIGNATURE = "AccountValidationFailed(bytes4)"


class NonceNotConsumed(CustomError):
    SIGNATURE = "NonceNotConsumed(address,uint256)"


class FailedToChargeFee(CustomError):
    SIGNATURE = "FailedToChargeFee(uint256,uint256)"


@dataclass
class TransactionReceipt:
    tx_hash: bytes
    success: bool
    return_data: bytes = b""
    fee: int = 0


class Bootloader(Contract):
    """Platform coordinator living at the reserved bootloader address."""

    accepts_plain_transfers = True

    def __init__(self) -> None:
        self.address = BOOTLOADER_FORMAL_ADDRESS
        self.processed = 0

    @external(PROCESS_TRANSACTION_SIGNATURE, returns=("bool", "bytes"))
    def process_transaction(self, ctx: CallContext, transaction: Tuple) -> Tuple[bool, bytes]:
        tx = decode_transaction(transaction)
        tx_hash = tx.encode_hash(ctx.vm.chain_id)
        abi_tx = tx.to_abi()

        # 1. Validate
        validation = ctx.vm.call(
            ctx.this,
            tx.from_,
            0,
            encode_call(VALIDATE_TRANSACTION_SIGNATURE, [tx_hash, tx_hash, abi_tx]),
        )
        if not validation.success:
            raise validation.error  # type: ignore[misc]
        magic = decode_outputs(("bytes4",), validation.return_data)
        if magic != ACCOUNT_VALIDATION_SUCCESS_MAGIC:
            logger.warning(
                "Account validation failed",
                extra={"event": "bootloader.validation_failed", "account": tx.from_, "magic": magic.hex()},
            )
            raise AccountValidationFailed(magic)

        nonce_used = ctx.vm.call(
            ctx.this,
            NONCE_HOLDER_SYSTEM_CONTRACT,
            0,
            encode_call("isNonceUsed(address,uint256)", [tx.from_, tx.nonce]),
        )
        if not nonce_used.success or not decode_outputs(("bool",), nonce_used.return_data):
            raise NonceNotConsumed(tx.from_, tx.nonce)

        # 2. Pay
        fee = tx.fee()
        balance_before = ctx.vm.balance_of(ctx.this)
        payment = ctx.vm.call(
            ctx.this,
            tx.from_,
            0,
            encode_call(PAY_FOR_TRANSACTION_SIGNATURE, [tx_hash, tx_hash, abi_tx]),
        )
        if not payment.success:
            raise payment.error  # type: ignore[misc]
        received = ctx.vm.balance_of(ctx.this) - balance_before
        if received < fee:
            raise FailedToChargeFee(fee, received)

        # 3. Execute
        execution = ctx.vm.call(
            ctx.this,
            tx.from_,
            0,
            encode_call(EXECUTE_TRANSACTION_SIGNATURE, [tx_hash, tx_hash, abi_tx]),
        )
        self.processed += 1
        ctx.vm.emit(
            ctx.this,
            "TransactionProcessed",
            tx_hash=tx_hash,
            account=tx.from_,
            nonce=tx.nonce,
            success=execution.success,
            fee=fee,
        )
        logger.info(
            "Transaction processed",
            extra={
                "event": "bootloader.transaction_processed",
                "account": tx.from_,
                "nonce": tx.nonce,
                "success": execution.success,
                "fee": fee,
            },
        )
        return execution.success, execution.return_data


def process_transaction(vm: VirtualMachine, tx: Transaction, operator: str) -> TransactionReceipt:
    """
    Submit ``tx`` to the bootloader on behalf of ``operator``.

    Raises:
        VMExecutionError: If validation or fee payment failed
    """
    bootloader = vm.get_contract(BOOTLOADER_FORMAL_ADDRESS)
    if not isinstance(bootloader, Bootloader):
        raise VMExecutionError("Bootloader is not installed")
    success, return_data = vm.transact(operator, BOOTLOADER_FORMAL_ADDRESS, PROCESS_TRANSACTION_SIGNATURE, tx.to_abi())
    return TransactionReceipt(
        tx_hash=tx.encode_hash(vm.chain_id),
        success=success,
        return_data=return_data,
        fee=tx.fee(),
    )
