"""
Tests for VM call frames: dispatch, value transfer and rollback.
"""

import pytest

from minimal_account.core.vm.abi import encode_call
from minimal_account.core.vm.contract import Contract, external
from minimal_account.core.vm.exceptions import CustomError, InsufficientFundsError, VMExecutionError
from minimal_account.core.vm.executor import VirtualMachine

ALICE = "0x00000000000000000000000000000000000A11CE"
BOB = "0x0000000000000000000000000000000000000B0B"


class CounterLimit(CustomError):
    SIGNATURE = "CounterLimit(uint256)"


class Counter(Contract):
    accepts_plain_transfers = True

    def __init__(self, limit=10):
        self.count = 0
        self.limit = limit
        self.history = []

    @external("increment(uint256)", returns=("uint256",))
    def increment(self, ctx, amount):
        self.count += amount
        self.history.append(amount)
        ctx.vm.emit(ctx.this, "Incremented", amount=amount)
        if self.count > self.limit:
            raise CounterLimit(self.count)
        return self.count

    @external("count()", returns=("uint256",))
    def get_count(self, ctx):
        return self.count

    @external("deposit()", payable=True)
    def deposit(self, ctx):
        ctx.vm.emit(ctx.this, "Deposit", value=ctx.value)


class Relay(Contract):
    """Calls a counter and swallows its failure."""

    @external("relay(address,uint256)", returns=("bool",))
    def relay(self, ctx, counter, amount):
        self.attempts = getattr(self, "attempts", 0) + 1
        result = ctx.vm.call(ctx.this, counter, 0, encode_call("increment(uint256)", [amount]))
        return result.success


@pytest.fixture
def counter(vm):
    return vm.deploy(Counter())


class TestDispatch:
    def test_transact_decodes_return(self, vm, counter):
        assert vm.transact(ALICE, counter.address, "increment(uint256)", 3) == 3
        assert vm.view(counter.address, "count()") == 3

    def test_unknown_selector_reverts(self, vm, counter):
        result = vm.call(ALICE, counter.address, 0, b"\xde\xad\xbe\xef")
        assert not result.success
        assert "unknown function selector" in str(result.error)

    def test_malformed_calldata_reverts(self, vm, counter):
        result = vm.call(ALICE, counter.address, 0, encode_call("increment(uint256)", [1])[:10])
        assert not result.success
        assert isinstance(result.error, VMExecutionError)

    def test_value_to_non_payable_function_reverts(self, vm, counter):
        vm.set_balance(ALICE, 100)
        result = vm.call(ALICE, counter.address, 5, encode_call("increment(uint256)", [1]))
        assert not result.success
        assert vm.balance_of(ALICE) == 100

    def test_payable_function_receives_value(self, vm, counter):
        vm.set_balance(ALICE, 100)
        vm.transact(ALICE, counter.address, "deposit()", value=40)
        assert vm.balance_of(ALICE) == 60
        assert vm.balance_of(counter.address) == 40

    def test_plain_transfer_to_eoa(self, vm):
        vm.set_balance(ALICE, 10)
        assert vm.transfer(ALICE, BOB, 10).success
        assert vm.balance_of(BOB) == 10

    def test_plain_transfer_rejected_by_contract(self, vm):
        relay = vm.deploy(Relay())
        vm.set_balance(ALICE, 10)
        assert not vm.transfer(ALICE, relay.address, 1).success
        assert vm.balance_of(ALICE) == 10

    def test_insufficient_funds_has_empty_revert_data(self, vm):
        result = vm.transfer(ALICE, BOB, 1)
        assert not result.success
        assert isinstance(result.error, InsufficientFundsError)
        assert result.return_data == b""

    def test_deploy_twice_at_same_address(self, vm, counter):
        with pytest.raises(VMExecutionError):
            vm.deploy(Counter(), counter.address)


class TestRollback:
    """A reverting frame leaves no partial effects."""

    def test_failed_call_restores_storage_and_logs(self, vm, counter):
        vm.transact(ALICE, counter.address, "increment(uint256)", 4)
        logs_before = len(vm.logs)

        with pytest.raises(CounterLimit) as exc_info:
            vm.transact(ALICE, counter.address, "increment(uint256)", 20)

        assert exc_info.value.args_values == (24,)
        assert counter.count == 4
        assert counter.history == [4]
        assert len(vm.logs) == logs_before

    def test_custom_error_revert_data(self, vm, counter):
        result = vm.call(ALICE, counter.address, 0, encode_call("increment(uint256)", [11]))
        assert result.return_data == CounterLimit(11).revert_data
        assert result.return_data[:4] == CounterLimit.selector()

    def test_inner_failure_only_rolls_back_inner_frame(self, vm, counter):
        relay = vm.deploy(Relay())

        assert vm.transact(ALICE, relay.address, "relay(address,uint256)", counter.address, 50) is False

        assert relay.attempts == 1
        assert counter.count == 0
        assert vm.events("Incremented") == []

    def test_view_discards_changes(self, vm, counter):
        vm.view(counter.address, "increment(uint256)", 2)
        assert counter.count == 0

    def test_non_vm_errors_propagate_after_restore(self, vm, counter):
        class Broken(Contract):
            @external("boom()")
            def boom(self, ctx):
                ctx.vm.set_balance(BOB, 99)
                raise RuntimeError("bug")

        broken = vm.deploy(Broken())
        with pytest.raises(RuntimeError):
            vm.transact(ALICE, broken.address, "boom()")
        assert vm.balance_of(BOB) == 0


def test_chain_id_default():
    assert VirtualMachine().chain_id == 31337


def test_error_log_fields():
    error = CounterLimit(3)
    assert error.log_fields() == {"error_type": "CounterLimit", "error": "CounterLimit(3)"}
