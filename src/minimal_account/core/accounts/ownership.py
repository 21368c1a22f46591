"""Single-owner record with an owner-only, atomic transfer."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from ..crypto_utils import ZERO_ADDRESS, normalize_address, same_address
from ..vm.contract import CallContext
from .errors import OwnableInvalidOwner, OwnableUnauthorizedAccount

logger = logging.getLogger(__name__)


@dataclass
class Ownership:
    """
    Exactly one owner at all times.

    There is no renounce operation and the zero address is rejected, so
    the account can never become ownerless.
    """

    owner: str

    def __post_init__(self) -> None:
        owner = normalize_address(self.owner)
        if owner == ZERO_ADDRESS:
            raise OwnableInvalidOwner(ZERO_ADDRESS)
        self.owner = owner

    def require_owner(self, ctx: CallContext) -> None:
        if not same_address(ctx.sender, self.owner):
            raise OwnableUnauthorizedAccount(ctx.sender)

    def transfer(self, ctx: CallContext, new_owner: str) -> None:
        self.require_owner(ctx)
        new_owner = normalize_address(new_owner)
        if new_owner == ZERO_ADDRESS:
            raise OwnableInvalidOwner(ZERO_ADDRESS)

        previous_owner, self.owner = self.owner, new_owner
        ctx.vm.emit(ctx.this, "OwnershipTransferred", previous_owner=previous_owner, new_owner=new_owner)
        logger.info(
            "Ownership transferred",
            extra={
                "event": "account.ownership_transferred",
                "account": ctx.this,
                "previous_owner": previous_owner,
                "new_owner": new_owner,
            },
        )
