"""
ERC20 token used as a call target for account operations.

Balances, allowances and supply follow EIP-20. ``mint`` is open to any
caller so tests and local deployments can drive state changes through
the accounts without extra setup.
"""

from __future__ import annotations

import logging
from typing import Dict

from ..crypto_utils import ZERO_ADDRESS, normalize_address
from ..vm.contract import CallContext, Contract, external
from ..vm.exceptions import CustomError

logger = logging.getLogger(__name__)

UINT256_MAX = 2**256 - 1


class ERC20InsufficientBalance(CustomError):
    SIGNATURE = "ERC20InsufficientBalance(address,uint256,uint256)"


class ERC20InsufficientAllowance(CustomError):
    SIGNATURE = "ERC20InsufficientAllowance(address,uint256,uint256)"


class ERC20InvalidReceiver(CustomError):
    SIGNATURE = "ERC20InvalidReceiver(address)"


class ERC20InvalidSpender(CustomError):
    SIGNATURE = "ERC20InvalidSpender(address)"


class ERC20Token(Contract):
    """
    Minimal ERC20 token.

    Args:
        name: Token name
        symbol: Token symbol
        decimals: Display decimals
    """

    def __init__(self, name: str, symbol: str, decimals: int = 18, address: str = "") -> None:
        self.name = name
        self.symbol = symbol
        self.decimals = decimals
        self.address = address
        self.total_supply = 0
        self.balances: Dict[str, int] = {}
        self.allowances: Dict[str, Dict[str, int]] = {}

    # ==================== View Functions ====================

    @external("totalSupply()", returns=("uint256",))
    def get_total_supply(self, ctx: CallContext) -> int:
        return self.total_supply

    @external("balanceOf(address)", returns=("uint256",))
    def balance_of(self, ctx: CallContext, account: str) -> int:
        return self.balances.get(normalize_address(account), 0)

    @external("allowance(address,address)", returns=("uint256",))
    def allowance(self, ctx: CallContext, owner: str, spender: str) -> int:
        return self.allowances.get(normalize_address(owner), {}).get(normalize_address(spender), 0)

    # ==================== State-Changing Functions ====================

    @external("mint(address,uint256)")
    def mint(self, ctx: CallContext, to: str, amount: int) -> None:
        """
        Create ``amount`` new tokens for ``to``.

        Raises:
            ERC20InvalidReceiver: If ``to`` is the zero address
        """
        to = normalize_address(to)
        if to == ZERO_ADDRESS:
            raise ERC20InvalidReceiver(to)
        self._update(ctx, ZERO_ADDRESS, to, amount)

        logger.info(
            "Tokens minted",
            extra={"event": "erc20.mint", "token": self.symbol, "to": to, "amount": amount},
        )

    @external("transfer(address,uint256)", returns=("bool",))
    def transfer(self, ctx: CallContext, recipient: str, amount: int) -> bool:
        recipient = normalize_address(recipient)
        if recipient == ZERO_ADDRESS:
            raise ERC20InvalidReceiver(recipient)
        self._update(ctx, ctx.sender, recipient, amount)
        return True

    @external("approve(address,uint256)", returns=("bool",))
    def approve(self, ctx: CallContext, spender: str, amount: int) -> bool:
        spender = normalize_address(spender)
        if spender == ZERO_ADDRESS:
            raise ERC20InvalidSpender(spender)
        self.allowances.setdefault(ctx.sender, {})[spender] = amount
        ctx.vm.emit(ctx.this, "Approval", owner=ctx.sender, spender=spender, value=amount)
        return True

    @external("transferFrom(address,address,uint256)", returns=("bool",))
    def transfer_from(self, ctx: CallContext, owner: str, recipient: str, amount: int) -> bool:
        owner = normalize_address(owner)
        recipient = normalize_address(recipient)
        if recipient == ZERO_ADDRESS:
            raise ERC20InvalidReceiver(recipient)

        current = self.allowances.get(owner, {}).get(ctx.sender, 0)
        # Infinite approval is never decremented
        if current != UINT256_MAX:
            if current < amount:
                raise ERC20InsufficientAllowance(ctx.sender, current, amount)
            self.allowances[owner][ctx.sender] = current - amount

        self._update(ctx, owner, recipient, amount)
        return True

    # ==================== Internal ====================

    def _update(self, ctx: CallContext, sender: str, recipient: str, amount: int) -> None:
        if sender == ZERO_ADDRESS:
            self.total_supply += amount
        else:
            balance = self.balances.get(sender, 0)
            if balance < amount:
                raise ERC20InsufficientBalance(sender, balance, amount)
            self.balances[sender] = balance - amount

        self.balances[recipient] = self.balances.get(recipient, 0) + amount
        ctx.vm.emit(ctx.this, "Transfer", sender=sender, recipient=recipient, value=amount)
