"""
Generic account for the chain-agnostic EntryPoint protocol (ERC-4337).

The EntryPoint calls ``validateUserOp`` with the operation, the hash it
computed for it and the funds the account still owes; on success it
calls back into ``execute`` with the operation's call data. The owner may
also call ``execute`` directly. Nonce ordering is enforced entirely by
the EntryPoint.
"""

from __future__ import annotations

import logging
from typing import Tuple

from ..constants import PACKED_USER_OPERATION_TYPE, SIG_VALIDATION_FAILED, SIG_VALIDATION_SUCCESS
from ..crypto_utils import normalize_address
from ..vm.contract import CallContext, Contract, external
from .authorization import AuthorizationGate, coordinator_gate
from .dispatcher import CallDispatcher, propagating_dispatcher
from .errors import FailedToPay
from .operations import PackedUserOperation
from .ownership import Ownership
from .signature import SignatureValidator, eth_signed_message_validator

logger = logging.getLogger(__name__)

VALIDATE_USER_OP_SIGNATURE = f"validateUserOp({PACKED_USER_OPERATION_TYPE},bytes32,uint256)"
EXECUTE_SIGNATURE = "execute(address,uint256,bytes)"


class MinimalAccount(Contract):
    """
    Single-owner smart account driven by an EntryPoint.

    Args:
        entry_point: Address of the trusted coordinator (immutable)
        owner: Initial owner
    """

    accepts_plain_transfers = True

    def __init__(self, entry_point: str, owner: str, address: str = "") -> None:
        self.entry_point = normalize_address(entry_point)
        self.ownership = Ownership(owner)
        self.address = address

    @property
    def gate(self) -> AuthorizationGate:
        return coordinator_gate(self.entry_point)

    @property
    def dispatcher(self) -> CallDispatcher:
        return propagating_dispatcher()

    @property
    def validator(self) -> SignatureValidator:
        return eth_signed_message_validator()

    @property
    def owner_address(self) -> str:
        return self.ownership.owner

    # ==================== IAccount Interface ====================

    @external(VALIDATE_USER_OP_SIGNATURE, returns=("uint256",))
    def validate_user_op(
        self,
        ctx: CallContext,
        user_op: Tuple,
        user_op_hash: bytes,
        missing_account_funds: int,
    ) -> int:
        """
        Validate the owner's signature and pay the coordinator what it is owed.

        Returns:
            SIG_VALIDATION_SUCCESS or SIG_VALIDATION_FAILED; a bad
            signature is reported, never raised
        """
        self.gate.require_trusted(ctx)
        op = PackedUserOperation.from_abi(user_op)

        validation_data = self._validate_signature(op, user_op_hash)
        self._pay_prefund(ctx, missing_account_funds)

        logger.info(
            "User operation validated",
            extra={
                "event": "account.user_op_validated",
                "account": ctx.this,
                "nonce": op.nonce,
                "sig_failed": validation_data == SIG_VALIDATION_FAILED,
                "prefund": missing_account_funds,
            },
        )
        return validation_data

    @external(EXECUTE_SIGNATURE)
    def execute(self, ctx: CallContext, dest: str, value: int, func_data: bytes) -> None:
        """
        Execute a call from this account.

        Raises:
            NotFromCoordinatorOrOwner: Caller is neither the EntryPoint nor the owner
            CallFailed: The inner call reverted; carries its revert data
        """
        self.gate.require_trusted_or_owner(ctx, self.ownership.owner)
        self.dispatcher.dispatch(ctx, dest, value, func_data)

    # ==================== Views & Ownership ====================

    @external("getEntryPoint()", returns=("address",))
    def get_entry_point(self, ctx: CallContext) -> str:
        return self.entry_point

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

    def _validate_signature(self, op: PackedUserOperation, user_op_hash: bytes) -> int:
        if self.validator.is_valid(self.ownership.owner, user_op_hash, op.signature):
            return SIG_VALIDATION_SUCCESS
        return SIG_VALIDATION_FAILED

    def _pay_prefund(self, ctx: CallContext, missing_account_funds: int) -> None:
        """
        Send the coordinator the funds it reports missing.

        A rejected transfer aborts validation.
        """
        if missing_account_funds == 0:
            return
        result = ctx.vm.call(ctx.this, ctx.sender, missing_account_funds, b"")
        if not result.success:
            logger.warning(
                "Prefund payment failed",
                extra={
                    "event": "account.prefund_failed",
                    "account": ctx.this,
                    "amount": missing_account_funds,
                    "balance": ctx.vm.balance_of(ctx.this),
                },
            )
            raise FailedToPay()
