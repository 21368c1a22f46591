"""
NonceHolder system contract.

Keeps the canonical minimal nonce of every account. Accounts consume a
nonce by system-calling ``incrementMinNonceIfEquals`` with the nonce the
transaction carries; any other value aborts the caller's validation.
"""

from __future__ import annotations

import logging
from typing import Dict

from ..crypto_utils import normalize_address
from ..vm.contract import CallContext, Contract, external
from ..vm.exceptions import CustomError

logger = logging.getLogger(__name__)


class NonceMismatch(CustomError):
    SIGNATURE = "NonceMismatch(uint256,uint256)"


class NotSystemCall(CustomError):
    SIGNATURE = "NotSystemCall()"


class NonceHolder(Contract):
    def __init__(self) -> None:
        self.min_nonces: Dict[str, int] = {}

    @external("incrementMinNonceIfEquals(uint256)")
    def increment_min_nonce_if_equals(self, ctx: CallContext, expected_nonce: int) -> None:
        if not ctx.is_system:
            raise NotSystemCall()

        current = self.min_nonces.get(ctx.sender, 0)
        if current != expected_nonce:
            logger.warning(
                "Nonce mismatch",
                extra={
                    "event": "nonce_holder.mismatch",
                    "account": ctx.sender,
                    "expected": expected_nonce,
                    "current": current,
                },
            )
            raise NonceMismatch(expected_nonce, current)

        self.min_nonces[ctx.sender] = current + 1

    @external("getMinNonce(address)", returns=("uint256",))
    def get_min_nonce(self, ctx: CallContext, address: str) -> int:
        return self.min_nonces.get(normalize_address(address), 0)

    @external("isNonceUsed(address,uint256)", returns=("bool",))
    def is_nonce_used(self, ctx: CallContext, address: str, nonce: int) -> bool:
        return nonce < self.min_nonces.get(normalize_address(address), 0)
