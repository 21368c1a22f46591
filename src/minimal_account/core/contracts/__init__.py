"""
Contracts the accounts interact with.

- EntryPoint: ERC-4337 coordinator for generic accounts
- ERC20Token: token used as an execution target
"""

from .entry_point import EntryPoint, FailedOp, FailedOpWithRevert, HANDLE_OPS_SIGNATURE, handle_ops
from .erc20 import ERC20InsufficientBalance, ERC20InvalidReceiver, ERC20Token

__all__ = [
    "ERC20InsufficientBalance",
    "ERC20InvalidReceiver",
    "ERC20Token",
    "EntryPoint",
    "FailedOp",
    "FailedOpWithRevert",
    "HANDLE_OPS_SIGNATURE",
    "handle_ops",
]
