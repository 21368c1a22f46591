"""
Protocol constants shared by the accounts and their coordinators.
"""

from __future__ import annotations

# ==================== Platform System Contracts ====================

BOOTLOADER_FORMAL_ADDRESS = "0x0000000000000000000000000000000000008001"
NONCE_HOLDER_SYSTEM_CONTRACT = "0x0000000000000000000000000000000000008003"
DEPLOYER_SYSTEM_CONTRACT = "0x0000000000000000000000000000000000008006"

# EIP-712 transaction type used for native account-abstraction transactions
EIP_712_TX_TYPE = 0x71

# ==================== Generic Coordinator ====================

# ERC-4337 canonical EntryPoint v0.7 deployment address
DEFAULT_ENTRY_POINT_ADDRESS = "0x0000000071727De22E5E9d8BAf0edAc6f37da032"

# Validation data returned by validateUserOp
SIG_VALIDATION_SUCCESS = 0
SIG_VALIDATION_FAILED = 1

# Low 64 bits of an ERC-4337 nonce are the sequence, the high 192 bits the key
NONCE_SEQUENCE_BITS = 64

# ==================== ABI Tuple Types ====================

PACKED_USER_OPERATION_TYPE = "(address,uint256,bytes,bytes,bytes32,uint256,bytes32,bytes,bytes)"

TRANSACTION_TYPE = (
    "(uint256,uint256,uint256,uint256,uint256,uint256,uint256,uint256,uint256,uint256,"
    "uint256[4],bytes,bytes,bytes32[],bytes,bytes)"
)

UINT128_MAX = 2**128 - 1
