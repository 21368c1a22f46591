"""
Account error taxonomy.

Each error is a Solidity-style custom error: raising it aborts the
current call frame and its ABI encoding becomes the frame's revert data.
"""

from __future__ import annotations

from ..vm.exceptions import CustomError


# ==================== Authorization Errors ====================


class AuthorizationError(CustomError):
    """Caller identity does not match what the entry point requires."""


class NotFromCoordinator(AuthorizationError):
    SIGNATURE = "NotFromCoordinator()"


class NotFromCoordinatorOrOwner(AuthorizationError):
    SIGNATURE = "NotFromCoordinatorOrOwner()"


class NotFromPlatform(AuthorizationError):
    SIGNATURE = "NotFromPlatform()"


class NotFromPlatformOrOwner(AuthorizationError):
    SIGNATURE = "NotFromPlatformOrOwner()"


class OwnableUnauthorizedAccount(AuthorizationError):
    SIGNATURE = "OwnableUnauthorizedAccount(address)"


class OwnableInvalidOwner(CustomError):
    SIGNATURE = "OwnableInvalidOwner(address)"


# ==================== Signature Errors ====================


class SignatureError(CustomError):
    """Base exception for signature verification failures."""


class InvalidSignature(SignatureError):
    """Raised on the outside-execution path when validation does not succeed."""

    SIGNATURE = "InvalidSignature()"


# ==================== Funds Errors ====================


class FundsError(CustomError):
    """Balance or transfer shortfall."""


class NotEnoughBalance(FundsError):
    SIGNATURE = "NotEnoughBalance()"


class FailedToPay(FundsError):
    SIGNATURE = "FailedToPay()"


# ==================== Execution Errors ====================


class ExecutionError(CustomError):
    """Inner call failure."""


class CallFailed(ExecutionError):
    """Inner call failed; carries the callee's raw revert data."""

    SIGNATURE = "CallFailed(bytes)"

    @property
    def return_data(self) -> bytes:
        return self.args_values[0]


class ExecutionFailed(ExecutionError):
    SIGNATURE = "ExecutionFailed()"


class ValueOverflow(ExecutionError):
    SIGNATURE = "ValueOverflow(uint256)"
