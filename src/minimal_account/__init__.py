"""
Minimal Account - single-owner smart accounts for account abstraction

Two variants share one set of components:
- MinimalAccount: validated and executed through an ERC-4337 EntryPoint
- ZkMinimalAccount: validated, paid for and executed by the platform bootloader

Both run inside an in-process VM with EVM-style call frames.
"""

__version__ = "0.1.0"
__author__ = "Minimal Account Development Team"

__all__ = []
