"""
In-process execution environment.

The ``VirtualMachine`` moves native value between addresses and routes
calldata to deployed contracts. Each call is a frame: state is
snapshotted first and restored if the callee reverts, so no partial
effects of a failed call survive.
"""

from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from ..crypto_utils import ZERO_ADDRESS, keccak256, normalize_address
from .abi import decode_outputs, encode_call, function_selector
from .contract import CallContext, Contract
from .exceptions import InsufficientFundsError, VMExecutionError
from .state import LogEntry, WorldState

logger = logging.getLogger(__name__)

MAX_CALL_DEPTH = 1024

CodeFactory = Callable[[bytes], Contract]


@dataclass
class CallResult:
    """Outcome of a low-level call (Solidity's ``(bool success, bytes data)``)."""

    success: bool
    return_data: bytes = b""
    error: Optional[VMExecutionError] = None


class CallDepthExceeded(VMExecutionError):
    """Raised when nested calls exceed ``MAX_CALL_DEPTH``."""


class VirtualMachine:
    """
    Minimal EVM-style host for contracts.

    Args:
        chain_id: Value contracts observe as ``block.chainid``
    """

    def __init__(self, chain_id: int = 31337) -> None:
        self.chain_id = chain_id
        self.state = WorldState()
        self.known_code: Dict[bytes, CodeFactory] = {}
        self.depth = 0
        self._deploy_counter = itertools.count(1)

    # ==================== State Access ====================

    @property
    def logs(self) -> List[LogEntry]:
        return self.state.logs

    def balance_of(self, address: str) -> int:
        return self.state.balance_of(normalize_address(address))

    def set_balance(self, address: str, amount: int) -> None:
        if amount < 0:
            raise ValueError("Balance cannot be negative")
        self.state.balances[normalize_address(address)] = amount

    def get_contract(self, address: str) -> Optional[Contract]:
        return self.state.contracts.get(normalize_address(address))

    def emit(self, address: str, event: str, **fields: Any) -> None:
        self.state.logs.append(LogEntry(address=address, event=event, fields=fields))

    def events(self, event: str, address: Optional[str] = None) -> List[LogEntry]:
        return [
            entry
            for entry in self.state.logs
            if entry.event == event and (address is None or entry.address == normalize_address(address))
        ]

    # ==================== Deployment ====================

    def deploy(self, contract: Contract, address: Optional[str] = None) -> Contract:
        """
        Register a contract instance at ``address`` (or a fresh address).

        Raises:
            VMExecutionError: If the address already holds a contract
        """
        if address is None:
            address = contract.address or self._next_address()
        address = normalize_address(address)
        if address in self.state.contracts:
            raise VMExecutionError(f"Contract already deployed at {address}")
        contract.address = address
        self.state.contracts[address] = contract

        logger.debug(
            "Contract deployed",
            extra={
                "event": "vm.contract_deployed",
                "contract": type(contract).__name__,
                "address": address,
            },
        )
        return contract

    def register_code(self, factory: CodeFactory, name: Optional[str] = None) -> bytes:
        """
        Make a contract factory deployable through the deployer system contract.

        Returns:
            The bytecode hash identifying this code
        """
        label = name or f"{factory.__module__}.{getattr(factory, '__qualname__', repr(factory))}"
        bytecode_hash = keccak256(label.encode())
        self.known_code[bytecode_hash] = factory
        return bytecode_hash

    def _next_address(self) -> str:
        seed = f"deployment:{next(self._deploy_counter)}".encode()
        return normalize_address("0x" + keccak256(seed)[-20:].hex())

    # ==================== Calls ====================

    def call(
        self,
        sender: str,
        to: str,
        value: int = 0,
        data: bytes = b"",
        is_system: bool = False,
    ) -> CallResult:
        """
        Execute one call frame.

        Never raises for a reverting callee; the failure is reported in
        the returned ``CallResult`` and the frame's effects are undone.
        Errors that are not ``VMExecutionError`` are programming errors and
        propagate after the state is restored.
        """
        sender = normalize_address(sender)
        to = normalize_address(to)
        snapshot = self.state.snapshot()
        self.depth += 1
        try:
            if self.depth > MAX_CALL_DEPTH:
                raise CallDepthExceeded("Max call depth exceeded")
            self.move_value(sender, to, value)
            contract = self.state.contracts.get(to)
            return_data = b""
            if contract is not None:
                ctx = CallContext(vm=self, sender=sender, this=to, value=value, is_system=is_system)
                return_data = contract.dispatch(ctx, bytes(data))
        except VMExecutionError as exc:
            self.state.restore(snapshot)
            logger.debug(
                "Call reverted",
                extra={
                    "event": "vm.call_reverted",
                    "sender": sender,
                    "to": to,
                    "value": value,
                    **exc.log_fields(),
                },
            )
            return CallResult(success=False, return_data=exc.revert_data, error=exc)
        except BaseException:
            self.state.restore(snapshot)
            raise
        finally:
            self.depth -= 1
        return CallResult(success=True, return_data=return_data)

    def system_call(self, sender: str, to: str, value: int = 0, data: bytes = b"") -> CallResult:
        """Call with the system flag set, as required by privileged system contracts."""
        return self.call(sender, to, value, data, is_system=True)

    def transfer(self, sender: str, to: str, value: int) -> CallResult:
        return self.call(sender, to, value, b"")

    def transact(self, sender: str, to: str, signature: str, *args: Any, value: int = 0) -> Any:
        """
        Encode and execute a top-level call.

        Returns:
            Decoded return value(s)

        Raises:
            VMExecutionError: The callee's own error if the call reverted
        """
        data = encode_call(signature, args)
        result = self.call(sender, to, value, data)
        if not result.success:
            raise result.error  # type: ignore[misc]
        return self._decode_result(to, signature, result.return_data)

    def view(self, to: str, signature: str, *args: Any) -> Any:
        """Read-only call; any state change is discarded."""
        snapshot = self.state.snapshot()
        try:
            return self.transact(ZERO_ADDRESS, to, signature, *args)
        finally:
            self.state.restore(snapshot)

    def _decode_result(self, to: str, signature: str, return_data: bytes) -> Any:
        contract = self.get_contract(to)
        if contract is None:
            return None
        function = contract.abi_functions.get(function_selector(signature))
        if function is None:
            return None
        return decode_outputs(function.outputs, return_data)

    def move_value(self, sender: str, to: str, value: int) -> None:
        """Move native value between addresses within the current frame."""
        if value < 0:
            raise VMExecutionError("Negative value transfer")
        if value == 0:
            return
        available = self.state.balance_of(sender)
        if available < value:
            raise InsufficientFundsError(
                f"Insufficient balance: {sender} has {available}, needs {value}"
            )
        self.state.balances[sender] = available - value
        self.state.balances[to] = self.state.balance_of(to) + value
