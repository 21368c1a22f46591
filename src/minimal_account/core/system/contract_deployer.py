"""
ContractDeployer system contract.

New contracts on the native platform are created by calling this
contract with the hash of code registered on the VM. It only accepts
system calls, which is why accounts dispatch to it through a separate
path.
"""

from __future__ import annotations

import logging

from eth_abi import encode

from ..crypto_utils import keccak256, normalize_address
from ..vm.contract import CallContext, Contract, external
from ..vm.exceptions import CustomError
from .nonce_holder import NotSystemCall

logger = logging.getLogger(__name__)

CREATE2_PREFIX = keccak256(b"zksyncCreate2")


class UnknownCodeHash(CustomError):
    SIGNATURE = "UnknownCodeHash(bytes32)"


class ContractAlreadyExists(CustomError):
    SIGNATURE = "ContractAlreadyExists(address)"


def compute_create2_address(sender: str, bytecode_hash: bytes, salt: bytes, constructor_input: bytes) -> str:
    """Deterministic address of a contract created by ``sender``."""
    digest = keccak256(
        CREATE2_PREFIX
        + encode(["address"], [normalize_address(sender)])
        + bytes(salt).rjust(32, b"\x00")
        + bytes(bytecode_hash).rjust(32, b"\x00")
        + keccak256(constructor_input)
    )
    return normalize_address("0x" + digest[12:].hex())


class ContractDeployer(Contract):
    @external("create2(bytes32,bytes32,bytes)", returns=("address",), payable=True)
    def create2(self, ctx: CallContext, salt: bytes, bytecode_hash: bytes, constructor_input: bytes) -> str:
        """
        Deploy registered code at its create2 address.

        The deployed contract receives any value sent along.
        """
        if not ctx.is_system:
            raise NotSystemCall()

        factory = ctx.vm.known_code.get(bytes(bytecode_hash))
        if factory is None:
            raise UnknownCodeHash(bytes(bytecode_hash))

        address = compute_create2_address(ctx.sender, bytecode_hash, salt, constructor_input)
        if ctx.vm.get_contract(address) is not None:
            raise ContractAlreadyExists(address)

        ctx.vm.deploy(factory(bytes(constructor_input)), address)
        if ctx.value:
            ctx.vm.move_value(ctx.this, address, ctx.value)

        ctx.vm.emit(
            ctx.this,
            "ContractDeployed",
            deployer=ctx.sender,
            bytecode_hash=bytes(bytecode_hash),
            contract_address=address,
        )
        logger.info(
            "Contract deployed via system deployer",
            extra={"event": "deployer.contract_deployed", "deployer": ctx.sender, "address": address},
        )
        return address

    @external("getNewAddressCreate2(address,bytes32,bytes32,bytes)", returns=("address",))
    def get_new_address_create2(
        self,
        ctx: CallContext,
        sender: str,
        bytecode_hash: bytes,
        salt: bytes,
        constructor_input: bytes,
    ) -> str:
        return compute_create2_address(sender, bytecode_hash, salt, constructor_input)
