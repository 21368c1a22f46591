"""
Tests for the deployment helpers.
"""

import pytest

from minimal_account.core.accounts.generic_account import MinimalAccount
from minimal_account.core.accounts.native_account import ZkMinimalAccount
from minimal_account.core.config import (
    LOCAL_CHAIN_ID,
    ZKSYNC_SEPOLIA_CHAIN_ID,
    ConfigurationError,
    get_config_by_chain_id,
)
from minimal_account.core.constants import BOOTLOADER_FORMAL_ADDRESS
from minimal_account.core.contracts.entry_point import EntryPoint
from minimal_account.core.contracts.erc20 import ERC20Token
from minimal_account.core.deploy import (
    deploy_minimal_account,
    deploy_zk_minimal_account,
    install_coordinator,
)
from minimal_account.core import deploy
from minimal_account.core.system import ContractAlreadyExists
from minimal_account.core.vm.exceptions import VMExecutionError


class TestDeployMinimalAccount:
    def test_installs_coordinator_and_token(self, vm, owner):
        config = get_config_by_chain_id(LOCAL_CHAIN_ID, owner=owner.address)
        account = deploy_minimal_account(vm, config)

        assert isinstance(account, MinimalAccount)
        assert isinstance(vm.get_contract(config.entry_point), EntryPoint)
        token = vm.get_contract(config.usdc)
        assert isinstance(token, ERC20Token)
        assert token.decimals == 6
        assert vm.view(account.address, "owner()") == owner.address

    def test_reuses_existing_coordinator(self, vm, owner):
        config = get_config_by_chain_id(LOCAL_CHAIN_ID, owner=owner.address)
        install_coordinator(vm, config)
        entry_point = vm.get_contract(config.entry_point)

        first = deploy_minimal_account(vm, config)
        second = deploy_minimal_account(vm, config)

        assert vm.get_contract(config.entry_point) is entry_point
        assert first.address != second.address

    def test_native_chain_rejected(self, vm, owner):
        config = get_config_by_chain_id(ZKSYNC_SEPOLIA_CHAIN_ID, owner=owner.address)
        with pytest.raises(ConfigurationError):
            deploy_minimal_account(vm, config)


class TestDeployZkMinimalAccount:
    def test_installs_system_contracts(self, vm, owner):
        account = deploy_zk_minimal_account(vm, owner.address)

        assert isinstance(account, ZkMinimalAccount)
        assert vm.get_contract(BOOTLOADER_FORMAL_ADDRESS) is not None
        assert vm.view(account.address, "owner()") == owner.address

    def test_forwards_value(self, vm, owner):
        vm.set_balance(owner.address, 1_000)
        account = deploy_zk_minimal_account(vm, owner.address, value=1_000)
        assert vm.balance_of(account.address) == 1_000

    def test_salt_determines_address(self, vm, owner):
        first = deploy_zk_minimal_account(vm, owner.address, salt=b"\x01" * 32)
        second = deploy_zk_minimal_account(vm, owner.address, salt=b"\x02" * 32)
        assert first.address != second.address

        with pytest.raises(ContractAlreadyExists):
            deploy_zk_minimal_account(vm, owner.address, salt=b"\x01" * 32)

    def test_wrong_registered_code_rejected(self, vm, owner, monkeypatch):
        monkeypatch.setattr(deploy, "_zk_account_factory", lambda _input: ERC20Token("Not", "ACCT"))
        with pytest.raises(VMExecutionError, match="did not produce an account"):
            deploy_zk_minimal_account(vm, owner.address)
