"""
Execution dispatcher: performs the account's outbound call.

Two failure policies exist because the two coordinator protocols surface
different diagnostics:

- PROPAGATE_RETURN_DATA: the callee's raw revert data is wrapped in
  ``CallFailed(returnData)`` (generic account).
- OPAQUE_FAILURE: the failure becomes ``ExecutionFailed()`` with no
  payload (native account, ordinary destinations).

Destinations listed in ``system_targets`` (the deployer system contract)
are reached through a system call whose revert is re-raised unchanged.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import FrozenSet

from ..crypto_utils import normalize_address
from ..vm.contract import CallContext
from ..vm.exceptions import Revert
from ..vm.executor import CallResult
from .errors import CallFailed, ExecutionFailed

logger = logging.getLogger(__name__)


class FailurePolicy(Enum):
    PROPAGATE_RETURN_DATA = "propagate_return_data"
    OPAQUE_FAILURE = "opaque_failure"


@dataclass(frozen=True)
class CallDispatcher:
    failure_policy: FailurePolicy
    system_targets: FrozenSet[str] = frozenset()

    def dispatch(self, ctx: CallContext, destination: str, value: int, data: bytes) -> bytes:
        """
        Call ``destination`` from the account with ``value`` and ``data``.

        Returns:
            The callee's return data

        Raises:
            CallFailed / ExecutionFailed: Per the failure policy
            VMExecutionError: The system contract's own revert, propagated
        """
        destination = normalize_address(destination)

        if destination in self.system_targets:
            result = ctx.vm.system_call(ctx.this, destination, value, data)
            if not result.success:
                self._log_failure(ctx, destination, value, result)
                raise result.error if result.error is not None else Revert(result.return_data)
            return result.return_data

        result = ctx.vm.call(ctx.this, destination, value, data)
        if result.success:
            logger.debug(
                "Account call succeeded",
                extra={
                    "event": "account.execute",
                    "account": ctx.this,
                    "dest": destination,
                    "value": value,
                },
            )
            return result.return_data

        self._log_failure(ctx, destination, value, result)
        if self.failure_policy is FailurePolicy.PROPAGATE_RETURN_DATA:
            raise CallFailed(result.return_data)
        raise ExecutionFailed()

    def _log_failure(self, ctx: CallContext, destination: str, value: int, result: CallResult) -> None:
        logger.info(
            "Account call failed",
            extra={
                "event": "account.execute_failed",
                "account": ctx.this,
                "dest": destination,
                "value": value,
                "revert_data": "0x" + result.return_data.hex(),
            },
        )


def propagating_dispatcher() -> CallDispatcher:
    return CallDispatcher(failure_policy=FailurePolicy.PROPAGATE_RETURN_DATA)


def platform_dispatcher(deployer: str) -> CallDispatcher:
    return CallDispatcher(
        failure_policy=FailurePolicy.OPAQUE_FAILURE,
        system_targets=frozenset({normalize_address(deployer)}),
    )
