"""
Minimal Account network configuration.

Per-chain addresses of the coordinator and the token used as a call
target, plus the account owner used by the deployment helpers.

Environment overrides:
- MINIMAL_ACCOUNT_NETWORK: "testnet" (default), "mainnet" or "local"
- MINIMAL_ACCOUNT_OWNER: account owner for deployments
- MINIMAL_ACCOUNT_ENTRY_POINT: coordinator address override
- MINIMAL_ACCOUNT_LOG_LEVEL: logging level (default INFO)
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, replace
from enum import Enum
from typing import Dict, Optional

from .constants import DEFAULT_ENTRY_POINT_ADDRESS
from .crypto_utils import ZERO_ADDRESS, normalize_address

logger = logging.getLogger(__name__)


class NetworkType(Enum):
    TESTNET = "testnet"
    MAINNET = "mainnet"
    LOCAL = "local"


class ConfigurationError(Exception):
    """Raised when required configuration is missing or invalid."""
    pass


ETH_SEPOLIA_CHAIN_ID = 11155111
ZKSYNC_SEPOLIA_CHAIN_ID = 300
ARBITRUM_MAINNET_CHAIN_ID = 42161
LOCAL_CHAIN_ID = 31337

# First default account of a local development node
DEFAULT_LOCAL_OWNER = "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266"
LOCAL_USDC_ADDRESS = "0x5FbDB2315678afecb367f032d93F642f64180aa3"


def _get_address(env_var: str, default: str) -> str:
    """Read an address from the environment, falling back to ``default``."""
    value = os.getenv(env_var, "").strip()
    if not value:
        return normalize_address(default)
    try:
        return normalize_address(value)
    except ValueError as exc:
        raise ConfigurationError(f"{env_var} is not a valid address: {value!r}") from exc


NETWORK = os.getenv("MINIMAL_ACCOUNT_NETWORK", "testnet")
LOG_LEVEL = os.getenv("MINIMAL_ACCOUNT_LOG_LEVEL", "INFO").upper()
OWNER = _get_address("MINIMAL_ACCOUNT_OWNER", DEFAULT_LOCAL_OWNER)
ENTRY_POINT = _get_address("MINIMAL_ACCOUNT_ENTRY_POINT", DEFAULT_ENTRY_POINT_ADDRESS)


@dataclass(frozen=True)
class NetworkConfig:
    """
    Addresses a deployment needs on one chain.

    ``entry_point`` is the zero address on platforms with native account
    abstraction, where the bootloader plays the coordinator role.
    """

    chain_id: int
    network_type: NetworkType
    entry_point: str
    usdc: str
    account: str

    @property
    def has_native_account_abstraction(self) -> bool:
        return self.entry_point == ZERO_ADDRESS


def _network_configs(owner: str, entry_point: str) -> Dict[int, NetworkConfig]:
    return {
        ETH_SEPOLIA_CHAIN_ID: NetworkConfig(
            chain_id=ETH_SEPOLIA_CHAIN_ID,
            network_type=NetworkType.TESTNET,
            entry_point=entry_point,
            usdc="0x1c7D4B196Cb0C7B01d743Fbc6116a902379C7238",
            account=owner,
        ),
        ZKSYNC_SEPOLIA_CHAIN_ID: NetworkConfig(
            chain_id=ZKSYNC_SEPOLIA_CHAIN_ID,
            network_type=NetworkType.TESTNET,
            entry_point=ZERO_ADDRESS,
            usdc=ZERO_ADDRESS,
            account=owner,
        ),
        ARBITRUM_MAINNET_CHAIN_ID: NetworkConfig(
            chain_id=ARBITRUM_MAINNET_CHAIN_ID,
            network_type=NetworkType.MAINNET,
            entry_point=entry_point,
            usdc="0xaf88d065e77c8cC2239327C5EDb3A432268e5831",
            account=owner,
        ),
        LOCAL_CHAIN_ID: NetworkConfig(
            chain_id=LOCAL_CHAIN_ID,
            network_type=NetworkType.LOCAL,
            entry_point=entry_point,
            usdc=LOCAL_USDC_ADDRESS,
            account=owner,
        ),
    }


def get_config_by_chain_id(chain_id: int, owner: Optional[str] = None) -> NetworkConfig:
    """
    Look up the deployment configuration for a chain.

    Args:
        chain_id: EIP-155 chain id
        owner: Account owner overriding ``MINIMAL_ACCOUNT_OWNER``

    Raises:
        ConfigurationError: If the chain is not supported or the owner is invalid
    """
    configs = _network_configs(OWNER, ENTRY_POINT)
    config = configs.get(chain_id)
    if config is None:
        logger.error(
            "Unsupported chain requested",
            extra={"event": "config.unsupported_chain", "chain_id": chain_id},
        )
        raise ConfigurationError(
            f"Unsupported chain id {chain_id}; supported: {sorted(configs)}"
        )

    if owner is not None:
        try:
            config = replace(config, account=normalize_address(owner))
        except ValueError as exc:
            raise ConfigurationError(f"Invalid owner address: {owner!r}") from exc

    if config.network_type is NetworkType.MAINNET and config.account == DEFAULT_LOCAL_OWNER:
        logger.warning(
            "Using the local development owner on mainnet. Set MINIMAL_ACCOUNT_OWNER for production.",
            extra={"event": "config.default_owner_on_mainnet", "chain_id": chain_id},
        )
    return config
