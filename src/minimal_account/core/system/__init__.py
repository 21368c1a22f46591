"""
Platform system contracts for native account abstraction.

- Bootloader: staged validate/pay/execute coordinator
- NonceHolder: canonical per-account nonces
- ContractDeployer: privileged contract creation (system calls only)
"""

from ..constants import BOOTLOADER_FORMAL_ADDRESS, DEPLOYER_SYSTEM_CONTRACT, NONCE_HOLDER_SYSTEM_CONTRACT
from ..vm.executor import VirtualMachine
from .bootloader import (
    AccountValidationFailed,
    Bootloader,
    FailedToChargeFee,
    NonceNotConsumed,
    TransactionReceipt,
    process_transaction,
)
from .contract_deployer import ContractAlreadyExists, ContractDeployer, UnknownCodeHash, compute_create2_address
from .nonce_holder import NonceHolder, NonceMismatch, NotSystemCall


def install_system_contracts(vm: VirtualMachine) -> None:
    """Deploy the bootloader, nonce holder and deployer at their reserved addresses."""
    vm.deploy(Bootloader(), BOOTLOADER_FORMAL_ADDRESS)
    vm.deploy(NonceHolder(), NONCE_HOLDER_SYSTEM_CONTRACT)
    vm.deploy(ContractDeployer(), DEPLOYER_SYSTEM_CONTRACT)


__all__ = [
    "AccountValidationFailed",
    "Bootloader",
    "ContractAlreadyExists",
    "ContractDeployer",
    "FailedToChargeFee",
    "NonceHolder",
    "NonceMismatch",
    "NonceNotConsumed",
    "NotSystemCall",
    "TransactionReceipt",
    "UnknownCodeHash",
    "compute_create2_address",
    "install_system_contracts",
    "process_transaction",
]
