"""
Tests for the native (bootloader-driven) account.

Covers:
1. Only the bootloader may validate and pay; owner may also execute
2. Validation consumes the nonce, checks the balance and the signature
3. Outside execution rejects anything but a valid signature
4. The deployer system contract is reached through a system call
5. Execution failures are opaque; value must fit in uint128
"""

import pytest
from eth_abi import encode

from minimal_account.core.accounts.errors import (
    ExecutionFailed,
    FailedToPay,
    InvalidSignature,
    NotEnoughBalance,
    NotFromPlatform,
    NotFromPlatformOrOwner,
    OwnableUnauthorizedAccount,
    ValueOverflow,
)
from minimal_account.core.accounts.native_account import (
    ACCOUNT_VALIDATION_FAILED,
    ACCOUNT_VALIDATION_SUCCESS_MAGIC,
    EXECUTE_FROM_OUTSIDE_SIGNATURE,
    EXECUTE_TRANSACTION_SIGNATURE,
    PAY_FOR_TRANSACTION_SIGNATURE,
    PREPARE_FOR_PAYMASTER_SIGNATURE,
    VALIDATE_TRANSACTION_SIGNATURE,
    ZkMinimalAccount,
)
from minimal_account.core.accounts.operations import Transaction
from minimal_account.core.accounts.signing import sign_digest, sign_transaction
from minimal_account.core.constants import (
    BOOTLOADER_FORMAL_ADDRESS,
    DEPLOYER_SYSTEM_CONTRACT,
    NONCE_HOLDER_SYSTEM_CONTRACT,
    UINT128_MAX,
)
from minimal_account.core.deploy import register_zk_account_code
from minimal_account.core.system.contract_deployer import UnknownCodeHash, compute_create2_address
from minimal_account.core.system.nonce_holder import NonceMismatch
from minimal_account.core.vm.abi import encode_call, function_selector

ONE_ETHER = 10**18
ZERO_HASH = b"\x00" * 32
AMOUNT = 10**18


def mint_tx(env, nonce=0, **overrides):
    return Transaction(
        from_=env.account.address,
        to=env.usdc,
        nonce=nonce,
        data=encode_call("mint(address,uint256)", [env.account.address, AMOUNT]),
        **overrides,
    )


def call_account(env, caller, signature, tx):
    return env.vm.transact(caller, env.account.address, signature, ZERO_HASH, ZERO_HASH, tx.to_abi())


def min_nonce(env):
    return env.vm.view(NONCE_HOLDER_SYSTEM_CONTRACT, "getMinNonce(address)", env.account.address)


def token_balance(env, holder):
    return env.vm.view(env.usdc, "balanceOf(address)", holder)


def test_success_magic_is_validate_selector():
    assert ACCOUNT_VALIDATION_SUCCESS_MAGIC == function_selector(VALIDATE_TRANSACTION_SIGNATURE)
    assert ACCOUNT_VALIDATION_FAILED == b"\x00\x00\x00\x00"


class TestExecuteTransaction:
    def test_owner_can_execute(self, zk_env, owner):
        call_account(zk_env, owner.address, EXECUTE_TRANSACTION_SIGNATURE, mint_tx(zk_env))
        assert token_balance(zk_env, zk_env.account.address) == AMOUNT

    def test_bootloader_can_execute(self, zk_env):
        call_account(zk_env, BOOTLOADER_FORMAL_ADDRESS, EXECUTE_TRANSACTION_SIGNATURE, mint_tx(zk_env))
        assert token_balance(zk_env, zk_env.account.address) == AMOUNT

    def test_non_owner_cannot_execute(self, zk_env, other):
        with pytest.raises(NotFromPlatformOrOwner):
            call_account(zk_env, other.address, EXECUTE_TRANSACTION_SIGNATURE, mint_tx(zk_env))

    def test_failure_is_opaque(self, zk_env, owner, other):
        tx = Transaction(
            from_=zk_env.account.address,
            to=zk_env.usdc,
            data=encode_call("transfer(address,uint256)", [other.address, 1]),
        )
        with pytest.raises(ExecutionFailed) as exc_info:
            call_account(zk_env, owner.address, EXECUTE_TRANSACTION_SIGNATURE, tx)
        assert exc_info.value.revert_data == ExecutionFailed.selector()

    def test_failed_call_keeps_forwarded_value(self, zk_env, owner):
        zk_env.vm.set_balance(zk_env.account.address, 1_000)
        # mint is not payable, so the call carrying value reverts
        tx = mint_tx(zk_env, value=5)
        with pytest.raises(ExecutionFailed):
            call_account(zk_env, owner.address, EXECUTE_TRANSACTION_SIGNATURE, tx)

        assert zk_env.vm.balance_of(zk_env.account.address) == 1_000
        assert zk_env.vm.balance_of(zk_env.usdc) == 0
        assert token_balance(zk_env, zk_env.account.address) == 0

    def test_value_must_fit_uint128(self, zk_env, owner, other):
        tx = Transaction(from_=zk_env.account.address, to=other.address, value=UINT128_MAX + 1)
        with pytest.raises(ValueOverflow):
            call_account(zk_env, owner.address, EXECUTE_TRANSACTION_SIGNATURE, tx)

    def test_sends_value(self, zk_env, owner, other):
        zk_env.vm.set_balance(zk_env.account.address, 1_000)
        tx = Transaction(from_=zk_env.account.address, to=other.address, value=250)
        call_account(zk_env, owner.address, EXECUTE_TRANSACTION_SIGNATURE, tx)
        assert zk_env.vm.balance_of(other.address) == 250


class TestSystemCallDispatch:
    """Deployment through the deployer system contract."""

    def test_deploys_through_system_call(self, zk_env, owner, other):
        vm = zk_env.vm
        bytecode_hash = register_zk_account_code(vm)
        salt = b"\x01" * 32
        constructor_input = encode(["address"], [other.address])
        tx = Transaction(
            from_=zk_env.account.address,
            to=DEPLOYER_SYSTEM_CONTRACT,
            data=encode_call("create2(bytes32,bytes32,bytes)", [salt, bytecode_hash, constructor_input]),
        )

        call_account(zk_env, owner.address, EXECUTE_TRANSACTION_SIGNATURE, tx)

        expected = compute_create2_address(zk_env.account.address, bytecode_hash, salt, constructor_input)
        deployed = vm.get_contract(expected)
        assert isinstance(deployed, ZkMinimalAccount)
        assert vm.view(expected, "owner()") == other.address

    def test_deployer_failure_propagates_unchanged(self, zk_env, owner):
        unknown = b"\xab" * 32
        tx = Transaction(
            from_=zk_env.account.address,
            to=DEPLOYER_SYSTEM_CONTRACT,
            data=encode_call("create2(bytes32,bytes32,bytes)", [ZERO_HASH, unknown, b""]),
        )
        with pytest.raises(UnknownCodeHash) as exc_info:
            call_account(zk_env, owner.address, EXECUTE_TRANSACTION_SIGNATURE, tx)
        assert exc_info.value.args_values == (unknown,)


class TestValidateTransaction:
    """Staged validation as driven by the bootloader."""

    @pytest.fixture
    def funded(self, zk_env):
        zk_env.vm.set_balance(zk_env.account.address, ONE_ETHER)
        return zk_env

    def test_valid_signature_returns_magic(self, funded, owner):
        signed = sign_transaction(mint_tx(funded), funded.vm.chain_id, owner.key)
        magic = call_account(funded, BOOTLOADER_FORMAL_ADDRESS, VALIDATE_TRANSACTION_SIGNATURE, signed)

        assert magic == ACCOUNT_VALIDATION_SUCCESS_MAGIC
        assert min_nonce(funded) == 1
        # Validation never executes
        assert token_balance(funded, funded.account.address) == 0

    def test_other_signer_returns_failure_and_consumes_nonce(self, funded, other):
        signed = sign_transaction(mint_tx(funded), funded.vm.chain_id, other.key)
        magic = call_account(funded, BOOTLOADER_FORMAL_ADDRESS, VALIDATE_TRANSACTION_SIGNATURE, signed)

        assert magic == ACCOUNT_VALIDATION_FAILED
        assert min_nonce(funded) == 1

    def test_eth_signed_message_signature_rejected(self, funded, owner):
        tx = mint_tx(funded)
        wrapped = tx.with_signature(sign_digest(tx.encode_hash(funded.vm.chain_id), owner.key))
        magic = call_account(funded, BOOTLOADER_FORMAL_ADDRESS, VALIDATE_TRANSACTION_SIGNATURE, wrapped)
        assert magic == ACCOUNT_VALIDATION_FAILED

    def test_malformed_signature_returns_failure(self, funded):
        tx = mint_tx(funded).with_signature(b"\x00" * 10)
        assert call_account(funded, BOOTLOADER_FORMAL_ADDRESS, VALIDATE_TRANSACTION_SIGNATURE, tx) == ACCOUNT_VALIDATION_FAILED

    def test_signature_for_other_chain_fails(self, funded, owner):
        signed = sign_transaction(mint_tx(funded), 324, owner.key)
        assert call_account(funded, BOOTLOADER_FORMAL_ADDRESS, VALIDATE_TRANSACTION_SIGNATURE, signed) == ACCOUNT_VALIDATION_FAILED

    def test_only_bootloader(self, funded, owner):
        signed = sign_transaction(mint_tx(funded), funded.vm.chain_id, owner.key)
        with pytest.raises(NotFromPlatform):
            call_account(funded, owner.address, VALIDATE_TRANSACTION_SIGNATURE, signed)
        assert min_nonce(funded) == 0

    def test_wrong_nonce(self, funded, owner):
        signed = sign_transaction(mint_tx(funded, nonce=1), funded.vm.chain_id, owner.key)
        with pytest.raises(NonceMismatch) as exc_info:
            call_account(funded, BOOTLOADER_FORMAL_ADDRESS, VALIDATE_TRANSACTION_SIGNATURE, signed)
        assert exc_info.value.args_values == (1, 0)

    def test_replay_rejected(self, funded, owner):
        signed = sign_transaction(mint_tx(funded), funded.vm.chain_id, owner.key)
        call_account(funded, BOOTLOADER_FORMAL_ADDRESS, VALIDATE_TRANSACTION_SIGNATURE, signed)
        with pytest.raises(NonceMismatch):
            call_account(funded, BOOTLOADER_FORMAL_ADDRESS, VALIDATE_TRANSACTION_SIGNATURE, signed)

    def test_not_enough_balance_rolls_back_nonce(self, zk_env, owner):
        signed = sign_transaction(mint_tx(zk_env), zk_env.vm.chain_id, owner.key)
        with pytest.raises(NotEnoughBalance):
            call_account(zk_env, BOOTLOADER_FORMAL_ADDRESS, VALIDATE_TRANSACTION_SIGNATURE, signed)
        assert min_nonce(zk_env) == 0

    def test_balance_checked_before_signature(self, zk_env, other):
        """A low balance fails validation even when the signature is also wrong."""
        forged = sign_transaction(mint_tx(zk_env), zk_env.vm.chain_id, other.key)
        with pytest.raises(NotEnoughBalance):
            call_account(zk_env, BOOTLOADER_FORMAL_ADDRESS, VALIDATE_TRANSACTION_SIGNATURE, forged)
        assert min_nonce(zk_env) == 0

    def test_paymaster_only_requires_value(self, zk_env, owner, other):
        tx = mint_tx(zk_env, paymaster=other.address, value=10)
        zk_env.vm.set_balance(zk_env.account.address, 10)
        signed = sign_transaction(tx, zk_env.vm.chain_id, owner.key)
        magic = call_account(zk_env, BOOTLOADER_FORMAL_ADDRESS, VALIDATE_TRANSACTION_SIGNATURE, signed)
        assert magic == ACCOUNT_VALIDATION_SUCCESS_MAGIC


class TestPayForTransaction:
    def test_pays_fee_to_bootloader(self, zk_env):
        tx = mint_tx(zk_env)
        zk_env.vm.set_balance(zk_env.account.address, ONE_ETHER)

        call_account(zk_env, BOOTLOADER_FORMAL_ADDRESS, PAY_FOR_TRANSACTION_SIGNATURE, tx)

        assert zk_env.vm.balance_of(BOOTLOADER_FORMAL_ADDRESS) == tx.fee()
        assert zk_env.vm.balance_of(zk_env.account.address) == ONE_ETHER - tx.fee()

    def test_unfunded_account_fails_to_pay(self, zk_env):
        tx = mint_tx(zk_env)
        zk_env.vm.set_balance(zk_env.account.address, tx.fee() - 1)

        with pytest.raises(FailedToPay):
            call_account(zk_env, BOOTLOADER_FORMAL_ADDRESS, PAY_FOR_TRANSACTION_SIGNATURE, tx)

        assert zk_env.vm.balance_of(BOOTLOADER_FORMAL_ADDRESS) == 0
        assert zk_env.vm.balance_of(zk_env.account.address) == tx.fee() - 1

    def test_only_bootloader(self, zk_env, owner):
        zk_env.vm.set_balance(zk_env.account.address, ONE_ETHER)
        with pytest.raises(NotFromPlatform):
            call_account(zk_env, owner.address, PAY_FOR_TRANSACTION_SIGNATURE, mint_tx(zk_env))

    def test_prepare_for_paymaster_is_noop(self, zk_env, other):
        logs_before = len(zk_env.vm.logs)
        call_account(zk_env, other.address, PREPARE_FOR_PAYMASTER_SIGNATURE, mint_tx(zk_env))
        assert len(zk_env.vm.logs) == logs_before


class TestExecuteFromOutside:
    def test_anyone_may_submit_owner_signed(self, zk_env, owner, other):
        zk_env.vm.set_balance(zk_env.account.address, ONE_ETHER)
        signed = sign_transaction(mint_tx(zk_env), zk_env.vm.chain_id, owner.key)

        zk_env.vm.transact(other.address, zk_env.account.address, EXECUTE_FROM_OUTSIDE_SIGNATURE, signed.to_abi())

        assert token_balance(zk_env, zk_env.account.address) == AMOUNT
        assert min_nonce(zk_env) == 1

    def test_bad_signature_aborts(self, zk_env, other):
        zk_env.vm.set_balance(zk_env.account.address, ONE_ETHER)
        forged = sign_transaction(mint_tx(zk_env), zk_env.vm.chain_id, other.key)

        with pytest.raises(InvalidSignature):
            zk_env.vm.transact(other.address, zk_env.account.address, EXECUTE_FROM_OUTSIDE_SIGNATURE, forged.to_abi())

        assert token_balance(zk_env, zk_env.account.address) == 0
        assert min_nonce(zk_env) == 0


class TestOwnership:
    def test_transfer_ownership(self, zk_env, owner, other):
        zk_env.vm.transact(owner.address, zk_env.account.address, "transferOwnership(address)", other.address)
        assert zk_env.vm.view(zk_env.account.address, "owner()") == other.address

    def test_stranger_cannot_transfer(self, zk_env, other):
        with pytest.raises(OwnableUnauthorizedAccount):
            zk_env.vm.transact(other.address, zk_env.account.address, "transferOwnership(address)", other.address)

    def test_receives_plain_transfers(self, zk_env, other):
        zk_env.vm.set_balance(other.address, 5)
        assert zk_env.vm.transfer(other.address, zk_env.account.address, 5).success
