"""
Execution environment hosting the account contracts.

- VirtualMachine: call frames with snapshot/rollback semantics
- Contract / external: ABI-dispatched contract base class
- WorldState: balances, contracts and the event log
"""

from .abi import encode_call, function_selector
from .contract import CallContext, Contract, external
from .exceptions import CustomError, InsufficientFundsError, Revert, VMExecutionError
from .executor import CallResult, VirtualMachine
from .state import LogEntry, WorldState

__all__ = [
    "CallContext",
    "CallResult",
    "Contract",
    "CustomError",
    "InsufficientFundsError",
    "LogEntry",
    "Revert",
    "VMExecutionError",
    "VirtualMachine",
    "WorldState",
    "encode_call",
    "external",
    "function_selector",
]
