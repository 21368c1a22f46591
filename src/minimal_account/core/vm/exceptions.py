"""
Execution errors raised inside contract calls.

Every contract failure is a ``VMExecutionError``. The error carries the
ABI-encoded revert payload a Solidity caller would observe, so a failed
inner call can surface its original reason to the outer frame.
"""

from __future__ import annotations

from typing import Any, ClassVar, Tuple

from eth_abi import encode

from ..blockchain_exceptions import VMError
from .abi import function_selector, parse_signature

ERROR_STRING_SIGNATURE = "Error(string)"


class VMExecutionError(VMError):
    """Raised when a contract call reverts.

    Plain messages are encoded the way Solidity encodes ``revert("...")``.
    """

    @property
    def revert_data(self) -> bytes:
        return function_selector(ERROR_STRING_SIGNATURE) + encode(["string"], [self.message])


class Revert(VMExecutionError):
    """Revert with a raw, already-encoded payload."""

    def __init__(self, data: bytes = b"", message: str = "") -> None:
        super().__init__(message or f"execution reverted (0x{bytes(data).hex()})")
        self.data = bytes(data)

    @property
    def revert_data(self) -> bytes:
        return self.data


class InsufficientFundsError(VMExecutionError):
    """Raised when a frame moves more native value than the sender holds.

    Like the EVM, a balance shortfall reverts with empty return data.
    """

    @property
    def revert_data(self) -> bytes:
        return b""


class CustomError(VMExecutionError):
    """
    Solidity custom error.

    Subclasses set ``SIGNATURE`` (e.g. ``"CallFailed(bytes)"``) and are
    constructed with the error arguments in declaration order.
    """

    SIGNATURE: ClassVar[str] = "CustomError()"

    def __init__(self, *args: Any) -> None:
        name, types = parse_signature(self.SIGNATURE)
        if len(args) != len(types):
            raise TypeError(
                f"{name} expects {len(types)} arguments, got {len(args)}"
            )
        self.args_values: Tuple[Any, ...] = args
        rendered = ", ".join(
            f"0x{arg.hex()}" if isinstance(arg, (bytes, bytearray)) else str(arg)
            for arg in args
        )
        super().__init__(f"{name}({rendered})")

    @classmethod
    def selector(cls) -> bytes:
        return function_selector(cls.SIGNATURE)

    @property
    def revert_data(self) -> bytes:
        _, types = parse_signature(self.SIGNATURE)
        return self.selector() + encode(list(types), list(self.args_values))
