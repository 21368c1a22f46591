"""
ERC-4337 EntryPoint (v0.7 semantics, simplified gas accounting).

The singleton contract that:
- Receives batches of user operations from bundlers
- Has each account validate its operation and prefund its gas
- Enforces per-account 2D nonces
- Executes the operations and pays the bundler's beneficiary
- Manages account deposits

Gas is not metered: each operation is charged its full required
prefund.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Sequence, Tuple

from ..accounts.generic_account import VALIDATE_USER_OP_SIGNATURE
from ..accounts.operations import PackedUserOperation
from ..constants import NONCE_SEQUENCE_BITS, PACKED_USER_OPERATION_TYPE
from ..crypto_utils import ZERO_ADDRESS, normalize_address
from ..vm.abi import decode_outputs, encode_call
from ..vm.contract import CallContext, Contract, external
from ..vm.exceptions import CustomError, VMExecutionError
from ..vm.executor import VirtualMachine

logger = logging.getLogger(__name__)

HANDLE_OPS_SIGNATURE = f"handleOps({PACKED_USER_OPERATION_TYPE}[],address)"

_SEQUENCE_MASK = (1 << NONCE_SEQUENCE_BITS) - 1
_AGGREGATOR_MASK = (1 << 160) - 1


class FailedOp(CustomError):
    SIGNATURE = "FailedOp(uint256,string)"


class FailedOpWithRevert(CustomError):
    SIGNATURE = "FailedOpWithRevert(uint256,string,bytes)"


@dataclass
class UserOpInfo:
    """Per-operation bookkeeping carried from validation to execution."""

    op: PackedUserOperation
    op_hash: bytes
    prefund: int


class EntryPoint(Contract):
    """Generic coordinator for smart accounts."""

    accepts_plain_transfers = True

    def __init__(self, address: str = "") -> None:
        self.address = address
        self.deposits: Dict[str, int] = {}
        # "sender:key" -> next sequence number
        self.nonce_sequence_numbers: Dict[str, int] = {}
        self.total_ops_processed = 0

    # ==================== Main Entry Point ====================

    @external(HANDLE_OPS_SIGNATURE)
    def handle_ops(self, ctx: CallContext, ops: Sequence[Tuple], beneficiary: str) -> None:
        """
        Handle a batch of user operations.

        Every operation is validated before any is executed. A validation
        failure reverts the whole batch with ``FailedOp``; an execution
        failure is recorded and the batch continues.
        """
        infos: List[UserOpInfo] = []
        for index, raw_op in enumerate(ops):
            infos.append(self._validate_prepayment(ctx, index, PackedUserOperation.from_abi(raw_op)))

        collected = 0
        for info in infos:
            collected += self._execute_user_op(ctx, info)

        self._compensate(ctx, beneficiary, collected)
        self.total_ops_processed += len(infos)

    @external(f"getUserOpHash({PACKED_USER_OPERATION_TYPE})", returns=("bytes32",))
    def get_user_op_hash(self, ctx: CallContext, user_op: Tuple) -> bytes:
        return PackedUserOperation.from_abi(user_op).hash(ctx.this, ctx.vm.chain_id)

    # ==================== Nonce Management ====================

    @external("getNonce(address,uint192)", returns=("uint256",))
    def get_nonce(self, ctx: CallContext, sender: str, key: int) -> int:
        """
        Full nonce for ``sender`` under ``key``: ``key << 64 | sequence``.

        Supports 2D nonces (key, sequence) for parallel execution.
        """
        sequence = self.nonce_sequence_numbers.get(self._nonce_slot(sender, key), 0)
        return (key << NONCE_SEQUENCE_BITS) | sequence

    def _validate_and_update_nonce(self, sender: str, nonce: int) -> bool:
        key = nonce >> NONCE_SEQUENCE_BITS
        sequence = nonce & _SEQUENCE_MASK
        slot = self._nonce_slot(sender, key)
        current = self.nonce_sequence_numbers.get(slot, 0)
        self.nonce_sequence_numbers[slot] = current + 1
        return sequence == current

    @staticmethod
    def _nonce_slot(sender: str, key: int) -> str:
        return f"{normalize_address(sender)}:{key}"

    # ==================== Deposit Management ====================

    @external("depositTo(address)", payable=True)
    def deposit_to(self, ctx: CallContext, account: str) -> None:
        self._credit(ctx, normalize_address(account), ctx.value)

    @external("balanceOf(address)", returns=("uint256",))
    def balance_of(self, ctx: CallContext, account: str) -> int:
        return self.deposits.get(normalize_address(account), 0)

    @external("withdrawTo(address,uint256)")
    def withdraw_to(self, ctx: CallContext, withdraw_address: str, amount: int) -> None:
        current = self.deposits.get(ctx.sender, 0)
        if amount > current:
            raise VMExecutionError("Withdraw amount too large")
        self.deposits[ctx.sender] = current - amount

        result = ctx.vm.call(ctx.this, withdraw_address, amount, b"")
        if not result.success:
            raise VMExecutionError("failed to withdraw")
        ctx.vm.emit(ctx.this, "Withdrawn", account=ctx.sender, withdraw_address=withdraw_address, amount=amount)

    def receive(self, ctx: CallContext) -> None:
        self._credit(ctx, ctx.sender, ctx.value)

    def _credit(self, ctx: CallContext, account: str, amount: int) -> None:
        total = self.deposits.get(account, 0) + amount
        self.deposits[account] = total
        ctx.vm.emit(ctx.this, "Deposited", account=account, total_deposit=total)

    # ==================== Internal ====================

    def _validate_prepayment(self, ctx: CallContext, index: int, op: PackedUserOperation) -> UserOpInfo:
        if ctx.vm.get_contract(op.sender) is None:
            raise FailedOp(index, "AA20 account not deployed")

        op_hash = op.hash(ctx.this, ctx.vm.chain_id)
        required_prefund = op.required_prefund()
        deposit = self.deposits.get(op.sender, 0)
        missing_account_funds = required_prefund - deposit if required_prefund > deposit else 0

        result = ctx.vm.call(
            ctx.this,
            op.sender,
            0,
            encode_call(VALIDATE_USER_OP_SIGNATURE, [op.to_abi(), op_hash, missing_account_funds]),
        )
        if not result.success:
            logger.warning(
                "User operation validation reverted",
                extra={"event": "entrypoint.validation_reverted", "sender": op.sender, "index": index},
            )
            raise FailedOpWithRevert(index, "AA23 reverted", result.return_data)
        validation_data = decode_outputs(("uint256",), result.return_data)

        deposit = self.deposits.get(op.sender, 0)
        if deposit < required_prefund:
            raise FailedOp(index, "AA21 didn't pay prefund")
        self.deposits[op.sender] = deposit - required_prefund

        if not self._validate_and_update_nonce(op.sender, op.nonce):
            raise FailedOp(index, "AA25 invalid account nonce")

        if validation_data & _AGGREGATOR_MASK != 0:
            logger.warning(
                "User operation signature rejected",
                extra={"event": "entrypoint.signature_failed", "sender": op.sender, "index": index},
            )
            raise FailedOp(index, "AA24 signature error")

        return UserOpInfo(op=op, op_hash=op_hash, prefund=required_prefund)

    def _execute_user_op(self, ctx: CallContext, info: UserOpInfo) -> int:
        op = info.op
        success = True
        if op.call_data:
            result = ctx.vm.call(ctx.this, op.sender, 0, op.call_data)
            success = result.success
            if not success:
                ctx.vm.emit(
                    ctx.this,
                    "UserOperationRevertReason",
                    user_op_hash=info.op_hash,
                    sender=op.sender,
                    nonce=op.nonce,
                    revert_reason=result.return_data,
                )

        actual_gas_cost = info.prefund
        ctx.vm.emit(
            ctx.this,
            "UserOperationEvent",
            user_op_hash=info.op_hash,
            sender=op.sender,
            paymaster=ZERO_ADDRESS,
            nonce=op.nonce,
            success=success,
            actual_gas_cost=actual_gas_cost,
        )
        logger.info(
            "UserOp processed",
            extra={
                "event": "entrypoint.op_processed",
                "sender": op.sender,
                "nonce": op.nonce,
                "success": success,
                "gas_cost": actual_gas_cost,
            },
        )
        return actual_gas_cost

    def _compensate(self, ctx: CallContext, beneficiary: str, amount: int) -> None:
        beneficiary = normalize_address(beneficiary)
        if beneficiary == ZERO_ADDRESS:
            raise FailedOp(0, "AA90 invalid beneficiary")
        result = ctx.vm.call(ctx.this, beneficiary, amount, b"")
        if not result.success:
            raise FailedOp(0, "AA91 failed send to beneficiary")


def handle_ops(
    vm: VirtualMachine,
    entry_point: str,
    ops: Sequence[PackedUserOperation],
    beneficiary: str,
    bundler: str,
) -> None:
    """Submit a batch of user operations as ``bundler``."""
    vm.transact(bundler, entry_point, HANDLE_OPS_SIGNATURE, [op.to_abi() for op in ops], beneficiary)
