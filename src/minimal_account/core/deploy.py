"""
Deployment helpers for both account variants.

Generic: the coordinator and token are installed at the configured
addresses (when not already present) and a ``MinimalAccount`` is
deployed for the configured owner.

Native: the system contracts are installed at their reserved addresses
and a ``ZkMinimalAccount`` is created through the deployer system
contract, the way the platform creates every contract.
"""

from __future__ import annotations

import logging
from typing import Optional

from eth_abi import encode

from .accounts.generic_account import MinimalAccount
from .accounts.native_account import ZkMinimalAccount
from .config import ConfigurationError, NetworkConfig
from .constants import BOOTLOADER_FORMAL_ADDRESS, DEPLOYER_SYSTEM_CONTRACT
from .contracts.entry_point import EntryPoint
from .contracts.erc20 import ERC20Token
from .crypto_utils import ZERO_ADDRESS, normalize_address
from .system import install_system_contracts
from .vm.abi import decode_call_args, decode_outputs, encode_call
from .vm.exceptions import VMExecutionError
from .vm.executor import VirtualMachine

logger = logging.getLogger(__name__)

ZK_MINIMAL_ACCOUNT_CODE = "ZkMinimalAccount"
CREATE2_SIGNATURE = "create2(bytes32,bytes32,bytes)"


def install_coordinator(vm: VirtualMachine, config: NetworkConfig) -> None:
    """Deploy the EntryPoint and token at the configured addresses if missing."""
    if config.entry_point != ZERO_ADDRESS and vm.get_contract(config.entry_point) is None:
        vm.deploy(EntryPoint(), config.entry_point)
    if config.usdc != ZERO_ADDRESS and vm.get_contract(config.usdc) is None:
        vm.deploy(ERC20Token("USD Coin", "USDC", decimals=6), config.usdc)


def deploy_minimal_account(vm: VirtualMachine, config: NetworkConfig) -> MinimalAccount:
    """
    Deploy a generic account owned by ``config.account``.

    Raises:
        ConfigurationError: If the network has no EntryPoint
    """
    if config.has_native_account_abstraction:
        raise ConfigurationError(
            f"Chain {config.chain_id} uses native account abstraction; "
            "deploy a ZkMinimalAccount instead"
        )
    install_coordinator(vm, config)
    account = MinimalAccount(entry_point=config.entry_point, owner=config.account)
    vm.deploy(account)

    logger.info(
        "MinimalAccount deployed",
        extra={
            "event": "deploy.minimal_account",
            "address": account.address,
            "owner": config.account,
            "entry_point": config.entry_point,
            "chain_id": config.chain_id,
        },
    )
    return account


def _zk_account_factory(constructor_input: bytes) -> ZkMinimalAccount:
    (owner,) = decode_call_args(("address",), constructor_input)
    return ZkMinimalAccount(owner=owner)


def register_zk_account_code(vm: VirtualMachine) -> bytes:
    """Make the native account deployable; returns its bytecode hash."""
    return vm.register_code(_zk_account_factory, name=ZK_MINIMAL_ACCOUNT_CODE)


def deploy_zk_minimal_account(
    vm: VirtualMachine,
    owner: str,
    salt: bytes = b"\x00" * 32,
    value: int = 0,
    deployer: Optional[str] = None,
) -> ZkMinimalAccount:
    """
    Create a native account for ``owner`` through the deployer system contract.

    Args:
        vm: Target VM; system contracts are installed if missing
        owner: Account owner
        salt: create2 salt
        value: Native value forwarded to the new account
        deployer: Address submitting the deployment (defaults to ``owner``)

    Raises:
        VMExecutionError: If the deployer rejected the creation or the
            registered code did not produce a ZkMinimalAccount
    """
    owner = normalize_address(owner)
    if vm.get_contract(BOOTLOADER_FORMAL_ADDRESS) is None:
        install_system_contracts(vm)
    bytecode_hash = register_zk_account_code(vm)

    result = vm.system_call(
        deployer or owner,
        DEPLOYER_SYSTEM_CONTRACT,
        value,
        encode_call(CREATE2_SIGNATURE, [salt, bytecode_hash, encode(["address"], [owner])]),
    )
    if not result.success:
        raise result.error  # type: ignore[misc]

    address = decode_outputs(("address",), result.return_data)
    account = vm.get_contract(address)
    if not isinstance(account, ZkMinimalAccount):
        raise VMExecutionError(
            f"Code registered as {ZK_MINIMAL_ACCOUNT_CODE} did not produce an account at {address}"
        )

    logger.info(
        "ZkMinimalAccount deployed",
        extra={"event": "deploy.zk_minimal_account", "address": account.address, "owner": owner},
    )
    return account
