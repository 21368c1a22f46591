"""
Test configuration and fixtures
"""
import sys
from pathlib import Path
from types import SimpleNamespace

# Add project root and src to Python path
project_root = Path(__file__).parent.parent
src_path = project_root / "src"

sys.path.insert(0, str(project_root))
sys.path.insert(0, str(src_path))

import pytest
from eth_account import Account

from minimal_account.core.config import LOCAL_CHAIN_ID, get_config_by_chain_id
from minimal_account.core.contracts.erc20 import ERC20Token
from minimal_account.core.deploy import deploy_minimal_account, deploy_zk_minimal_account
from minimal_account.core.vm.executor import VirtualMachine

# Well-known development keys; never hold real funds
OWNER_PRIVATE_KEY = "0xac0974bec39a17e36ba4a6b4d238ff944bacb478cbed5efcae784d7bf4f2ff80"
OTHER_PRIVATE_KEY = "0x59c6995e998f97a5a0044966f0945389dc9e86dae88c7a8412f4603b6b78690d"

ONE_ETHER = 10**18
ZERO_HASH = b"\x00" * 32


@pytest.fixture
def vm():
    """Fresh VM on the local chain."""
    return VirtualMachine(chain_id=LOCAL_CHAIN_ID)


@pytest.fixture
def owner():
    return Account.from_key(OWNER_PRIVATE_KEY)


@pytest.fixture
def other():
    return Account.from_key(OTHER_PRIVATE_KEY)


@pytest.fixture
def generic_env(vm, owner):
    """Generic account deployed against a local EntryPoint and token."""
    config = get_config_by_chain_id(LOCAL_CHAIN_ID, owner=owner.address)
    account = deploy_minimal_account(vm, config)
    return SimpleNamespace(
        vm=vm,
        config=config,
        account=account,
        entry_point=config.entry_point,
        usdc=config.usdc,
    )


@pytest.fixture
def zk_env(vm, owner):
    """Native account created through the deployer system contract."""
    account = deploy_zk_minimal_account(vm, owner.address)
    token = vm.deploy(ERC20Token("USD Coin", "USDC", decimals=6))
    return SimpleNamespace(vm=vm, account=account, usdc=token.address)
