"""
Minimal Account Core Module

- vm: execution environment with all-or-nothing call frames
- accounts: the two account variants and their shared components
- contracts: EntryPoint coordinator and ERC20 call target
- system: bootloader, nonce holder and deployer system contracts
- config / logging_config / deploy: configuration, logging and deployment
"""

__all__ = []
