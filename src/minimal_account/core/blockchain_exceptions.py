"""
Base exceptions for chain execution failures.

``VMError`` is the root of everything a contract call can raise; the
concrete revert types live in ``vm.exceptions``.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class BlockchainError(Exception):
    """
    Base for chain-level failures.

    Attributes:
        message: Human-readable description
        details: Structured context, merged into log records
    """

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def log_fields(self) -> Dict[str, Any]:
        """Fields describing this error for ``extra=`` in log calls."""
        return {"error_type": type(self).__name__, "error": self.message, **self.details}


class VMError(BlockchainError):
    """Raised when contract execution fails."""
