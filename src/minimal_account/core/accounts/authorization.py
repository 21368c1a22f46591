"""
Caller authorization guards.

Validation may only be triggered by the trusted dispatcher (the
coordinator, or the platform bootloader for native accounts); execution
may additionally be triggered by the owner directly. The guards have no
side effects beyond aborting the call.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Type

from ..constants import BOOTLOADER_FORMAL_ADDRESS
from ..crypto_utils import normalize_address, same_address
from ..vm.contract import CallContext
from .errors import (
    AuthorizationError,
    NotFromCoordinator,
    NotFromCoordinatorOrOwner,
    NotFromPlatform,
    NotFromPlatformOrOwner,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuthorizationGate:
    """
    Guard predicates bound to one trusted dispatcher address.

    Attributes:
        trusted: Address of the dispatcher allowed to validate
        not_trusted: Error raised by ``require_trusted``
        not_trusted_or_owner: Error raised by ``require_trusted_or_owner``
    """

    trusted: str
    not_trusted: Type[AuthorizationError]
    not_trusted_or_owner: Type[AuthorizationError]

    def require_trusted(self, ctx: CallContext) -> None:
        if same_address(ctx.sender, self.trusted):
            return
        self._reject(ctx, self.not_trusted)

    def require_trusted_or_owner(self, ctx: CallContext, owner: str) -> None:
        if same_address(ctx.sender, self.trusted) or same_address(ctx.sender, owner):
            return
        self._reject(ctx, self.not_trusted_or_owner)

    def _reject(self, ctx: CallContext, error: Type[AuthorizationError]) -> None:
        logger.warning(
            "Unauthorized caller rejected",
            extra={
                "event": "account.unauthorized_caller",
                "account": ctx.this,
                "caller": ctx.sender,
                "error": error.__name__,
            },
        )
        raise error()


def coordinator_gate(entry_point: str) -> AuthorizationGate:
    """Gate for the generic (EntryPoint) protocol."""
    return AuthorizationGate(
        trusted=normalize_address(entry_point),
        not_trusted=NotFromCoordinator,
        not_trusted_or_owner=NotFromCoordinatorOrOwner,
    )


def platform_gate() -> AuthorizationGate:
    """Gate for the native protocol, bound to the reserved bootloader address."""
    return AuthorizationGate(
        trusted=normalize_address(BOOTLOADER_FORMAL_ADDRESS),
        not_trusted=NotFromPlatform,
        not_trusted_or_owner=NotFromPlatformOrOwner,
    )
