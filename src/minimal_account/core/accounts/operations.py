"""
Operation and transaction value objects submitted to accounts.

PackedUserOperation: the ERC-4337 (EntryPoint v0.7) user operation.
Transaction: the platform-native account-abstraction transaction
(EIP-712 type 113).

Both are transient: built and signed off-system, validated once and, on
success, executed once.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import List, Tuple

from eth_abi import encode

from ..constants import EIP_712_TX_TYPE
from ..crypto_utils import ZERO_ADDRESS, address_to_uint, keccak256, normalize_address, uint_to_address
from ..vm.exceptions import CustomError

_UINT128_MASK = (1 << 128) - 1


def pack_uints(high: int, low: int) -> bytes:
    """Pack two uint128 values into one bytes32 (``high << 128 | low``)."""
    if not (0 <= high <= _UINT128_MASK and 0 <= low <= _UINT128_MASK):
        raise ValueError("Packed values must fit in uint128")
    return ((high << 128) | low).to_bytes(32, "big")


def unpack_uints(packed: bytes) -> Tuple[int, int]:
    value = int.from_bytes(bytes(packed).rjust(32, b"\x00"), "big")
    return value >> 128, value & _UINT128_MASK


@dataclass
class PackedUserOperation:
    """
    ERC-4337 user operation.

    ``account_gas_limits`` packs verificationGasLimit (high) and
    callGasLimit (low); ``gas_fees`` packs maxPriorityFeePerGas (high) and
    maxFeePerGas (low). The gas fields are opaque to the account and only
    consumed by the coordinator.
    """

    sender: str
    nonce: int
    init_code: bytes = b""
    call_data: bytes = b""
    account_gas_limits: bytes = field(default_factory=lambda: pack_uints(16_777_216, 16_777_216))
    pre_verification_gas: int = 16_777_216
    gas_fees: bytes = field(default_factory=lambda: pack_uints(256, 256))
    paymaster_and_data: bytes = b""
    signature: bytes = b""

    def __post_init__(self) -> None:
        self.sender = normalize_address(self.sender)

    @property
    def verification_gas_limit(self) -> int:
        return unpack_uints(self.account_gas_limits)[0]

    @property
    def call_gas_limit(self) -> int:
        return unpack_uints(self.account_gas_limits)[1]

    @property
    def max_priority_fee_per_gas(self) -> int:
        return unpack_uints(self.gas_fees)[0]

    @property
    def max_fee_per_gas(self) -> int:
        return unpack_uints(self.gas_fees)[1]

    def required_prefund(self) -> int:
        """Maximum cost the coordinator may charge for this operation."""
        gas = self.verification_gas_limit + self.call_gas_limit + self.pre_verification_gas
        return gas * self.max_fee_per_gas

    def packed_hash(self) -> bytes:
        """Hash of every field except the signature."""
        return keccak256(
            encode(
                ["address", "uint256", "bytes32", "bytes32", "bytes32", "uint256", "bytes32", "bytes32"],
                [
                    self.sender,
                    self.nonce,
                    keccak256(self.init_code),
                    keccak256(self.call_data),
                    bytes(self.account_gas_limits),
                    self.pre_verification_gas,
                    bytes(self.gas_fees),
                    keccak256(self.paymaster_and_data),
                ],
            )
        )

    def hash(self, entry_point: str, chain_id: int) -> bytes:
        """
        Get the user operation hash the owner signs.

        Binds the operation to one coordinator and one chain so it
        cannot be replayed elsewhere.
        """
        return keccak256(
            encode(
                ["bytes32", "address", "uint256"],
                [self.packed_hash(), normalize_address(entry_point), chain_id],
            )
        )

    def with_signature(self, signature: bytes) -> "PackedUserOperation":
        return replace(self, signature=bytes(signature))

    def to_abi(self) -> tuple:
        return (
            self.sender,
            self.nonce,
            bytes(self.init_code),
            bytes(self.call_data),
            bytes(self.account_gas_limits),
            self.pre_verification_gas,
            bytes(self.gas_fees),
            bytes(self.paymaster_and_data),
            bytes(self.signature),
        )

    @classmethod
    def from_abi(cls, values: tuple) -> "PackedUserOperation":
        (
            sender,
            nonce,
            init_code,
            call_data,
            account_gas_limits,
            pre_verification_gas,
            gas_fees,
            paymaster_and_data,
            signature,
        ) = values
        return cls(
            sender=sender,
            nonce=nonce,
            init_code=init_code,
            call_data=call_data,
            account_gas_limits=account_gas_limits,
            pre_verification_gas=pre_verification_gas,
            gas_fees=gas_fees,
            paymaster_and_data=paymaster_and_data,
            signature=signature,
        )


class UnsupportedTransactionType(CustomError):
    SIGNATURE = "UnsupportedTransactionType(uint256)"


# EIP-712 type strings for native transactions
EIP712_DOMAIN_TYPEHASH = keccak256(b"EIP712Domain(string name,string version,uint256 chainId)")
EIP712_TRANSACTION_TYPEHASH = keccak256(
    b"Transaction(uint256 txType,uint256 from,uint256 to,uint256 gasLimit,"
    b"uint256 gasPerPubdataByteLimit,uint256 maxFeePerGas,uint256 maxPriorityFeePerGas,"
    b"uint256 paymaster,uint256 nonce,uint256 value,bytes data,bytes32[] factoryDeps,"
    b"bytes paymasterInput)"
)
EIP712_DOMAIN_NAME = b"zkSync"
EIP712_DOMAIN_VERSION = b"2"


@dataclass
class Transaction:
    """
    Native account-abstraction transaction.

    Addresses are carried as checksummed strings and widened to uint256
    only on the wire, matching the platform's struct layout.
    """

    from_: str
    to: str
    nonce: int = 0
    value: int = 0
    data: bytes = b""
    gas_limit: int = 16_777_216
    gas_per_pubdata_byte_limit: int = 800
    max_fee_per_gas: int = 250_000_000
    max_priority_fee_per_gas: int = 250_000_000
    paymaster: str = ZERO_ADDRESS
    tx_type: int = EIP_712_TX_TYPE
    reserved: Tuple[int, int, int, int] = (0, 0, 0, 0)
    signature: bytes = b""
    factory_deps: List[bytes] = field(default_factory=list)
    paymaster_input: bytes = b""
    reserved_dynamic: bytes = b""

    def __post_init__(self) -> None:
        self.from_ = normalize_address(self.from_)
        self.to = normalize_address(self.to)
        self.paymaster = normalize_address(self.paymaster)
        self.reserved = tuple(self.reserved)  # type: ignore[assignment]

    def fee(self) -> int:
        """Amount paid to the platform for execution resources."""
        return self.max_fee_per_gas * self.gas_limit

    def total_required_balance(self) -> int:
        """
        Balance the account must hold before validation can succeed.

        With a paymaster only the transferred value is the account's
        responsibility.
        """
        if self.paymaster != ZERO_ADDRESS:
            return self.value
        return self.fee() + self.value

    def encode_hash(self, chain_id: int) -> bytes:
        """
        EIP-712 hash of the transaction.

        Raises:
            UnsupportedTransactionType: For anything but type 113
        """
        if self.tx_type != EIP_712_TX_TYPE:
            raise UnsupportedTransactionType(self.tx_type)

        struct_hash = keccak256(
            encode(
                [
                    "bytes32", "uint256", "uint256", "uint256", "uint256", "uint256",
                    "uint256", "uint256", "uint256", "uint256", "uint256",
                    "bytes32", "bytes32", "bytes32",
                ],
                [
                    EIP712_TRANSACTION_TYPEHASH,
                    self.tx_type,
                    address_to_uint(self.from_),
                    address_to_uint(self.to),
                    self.gas_limit,
                    self.gas_per_pubdata_byte_limit,
                    self.max_fee_per_gas,
                    self.max_priority_fee_per_gas,
                    address_to_uint(self.paymaster),
                    self.nonce,
                    self.value,
                    keccak256(self.data),
                    keccak256(b"".join(bytes(dep) for dep in self.factory_deps)),
                    keccak256(self.paymaster_input),
                ],
            )
        )
        domain_separator = keccak256(
            encode(
                ["bytes32", "bytes32", "bytes32", "uint256"],
                [
                    EIP712_DOMAIN_TYPEHASH,
                    keccak256(EIP712_DOMAIN_NAME),
                    keccak256(EIP712_DOMAIN_VERSION),
                    chain_id,
                ],
            )
        )
        return keccak256(b"\x19\x01" + domain_separator + struct_hash)

    def with_signature(self, signature: bytes) -> "Transaction":
        return replace(self, signature=bytes(signature))

    def to_abi(self) -> tuple:
        return (
            self.tx_type,
            address_to_uint(self.from_),
            address_to_uint(self.to),
            self.gas_limit,
            self.gas_per_pubdata_byte_limit,
            self.max_fee_per_gas,
            self.max_priority_fee_per_gas,
            address_to_uint(self.paymaster),
            self.nonce,
            self.value,
            list(self.reserved),
            bytes(self.data),
            bytes(self.signature),
            [bytes(dep) for dep in self.factory_deps],
            bytes(self.paymaster_input),
            bytes(self.reserved_dynamic),
        )

    @classmethod
    def from_abi(cls, values: tuple) -> "Transaction":
        (
            tx_type,
            from_,
            to,
            gas_limit,
            gas_per_pubdata_byte_limit,
            max_fee_per_gas,
            max_priority_fee_per_gas,
            paymaster,
            nonce,
            value,
            reserved,
            data,
            signature,
            factory_deps,
            paymaster_input,
            reserved_dynamic,
        ) = values
        return cls(
            tx_type=tx_type,
            from_=uint_to_address(from_),
            to=uint_to_address(to),
            gas_limit=gas_limit,
            gas_per_pubdata_byte_limit=gas_per_pubdata_byte_limit,
            max_fee_per_gas=max_fee_per_gas,
            max_priority_fee_per_gas=max_priority_fee_per_gas,
            paymaster=uint_to_address(paymaster),
            nonce=nonce,
            value=value,
            reserved=tuple(reserved),
            data=data,
            signature=signature,
            factory_deps=list(factory_deps),
            paymaster_input=paymaster_input,
            reserved_dynamic=reserved_dynamic,
        )
