"""
Contract base class and ABI function registration.

A contract exposes functions to the VM by decorating methods with
``@external``. Every external method receives a ``CallContext`` followed
by the decoded ABI arguments::

    class Counter(Contract):
        @external("increment(uint256)", returns=("uint256",))
        def increment(self, ctx, amount):
            ...
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Any, Callable, ClassVar, Dict, Tuple

from eth_abi.exceptions import DecodingError

from .abi import decode_call_args, encode_outputs, function_selector, parse_signature
from .exceptions import VMExecutionError

if TYPE_CHECKING:
    from .executor import VirtualMachine


@dataclass(frozen=True)
class CallContext:
    """Per-frame execution context (msg.sender, msg.value, address(this))."""

    vm: "VirtualMachine"
    sender: str
    this: str
    value: int = 0
    is_system: bool = False


@dataclass(frozen=True)
class AbiFunction:
    """An externally callable contract function."""

    name: str
    signature: str
    selector: bytes
    inputs: Tuple[str, ...]
    outputs: Tuple[str, ...]
    payable: bool
    attribute: str = ""


def external(
    signature: str,
    returns: Tuple[str, ...] = (),
    payable: bool = False,
) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """
    Mark a contract method as an ABI function.

    Args:
        signature: Canonical Solidity signature, e.g. ``"transfer(address,uint256)"``
        returns: ABI output types
        payable: Whether the function accepts native value
    """
    name, inputs = parse_signature(signature)

    def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
        func.__abi_function__ = AbiFunction(  # type: ignore[attr-defined]
            name=name,
            signature=signature,
            selector=function_selector(signature),
            inputs=inputs,
            outputs=tuple(returns),
            payable=payable,
        )
        return func

    return decorator


class Contract:
    """
    Base class for contracts deployed into the VM.

    Contract state lives in instance attributes; the VM snapshots and
    restores ``__dict__`` around every call frame, so contracts must not
    hold references to the VM itself.
    """

    abi_functions: ClassVar[Dict[bytes, AbiFunction]] = {}
    accepts_plain_transfers: ClassVar[bool] = False

    address: str = ""

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        functions: Dict[bytes, AbiFunction] = {}
        for klass in reversed(cls.__mro__):
            for attribute, value in vars(klass).items():
                abi = getattr(value, "__abi_function__", None)
                if abi is not None:
                    functions[abi.selector] = replace(abi, attribute=attribute)
        cls.abi_functions = functions

    def dispatch(self, ctx: CallContext, data: bytes) -> bytes:
        """Route calldata to the matching external function."""
        if not data:
            if not self.accepts_plain_transfers:
                raise VMExecutionError(f"{type(self).__name__} does not accept plain transfers")
            self.receive(ctx)
            return b""

        function = self.abi_functions.get(bytes(data[:4]))
        if function is None:
            raise VMExecutionError(
                f"{type(self).__name__}: unknown function selector 0x{bytes(data[:4]).hex()}"
            )
        if ctx.value and not function.payable:
            raise VMExecutionError(f"{function.name} is not payable")

        try:
            args = decode_call_args(function.inputs, bytes(data[4:]))
        except DecodingError as exc:
            raise VMExecutionError(f"{function.name}: malformed calldata ({exc})") from exc

        result = getattr(self, function.attribute)(ctx, *args)
        return encode_outputs(function.outputs, result)

    def receive(self, ctx: CallContext) -> None:
        """Hook for plain value transfers; enabled by ``accepts_plain_transfers``."""
