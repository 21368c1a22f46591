"""
Owner signature validation.

The coordinator hands the account a 32-byte digest and a packed
``r || s || v`` signature. What the owner actually signed depends on the
protocol:

- ETH_SIGNED_MESSAGE: the "\\x19Ethereum Signed Message:\\n32" wrapping
  of the digest (generic account, userOpHash).
- TYPED_DATA: the digest itself, already an EIP-712 domain-separated
  hash (native account, type-113 transactions).

Recovery never raises: any malformed or unrecoverable signature resolves
to "does not match owner" so the caller always gets a defined
accept/reject decision.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from ..crypto_utils import recover_signer, same_address, to_eth_signed_message_hash

logger = logging.getLogger(__name__)


class DigestScheme(Enum):
    ETH_SIGNED_MESSAGE = "eth_signed_message"
    TYPED_DATA = "typed_data"


@dataclass(frozen=True)
class SignatureValidator:
    """Stateless ECDSA (secp256k1) recovery against a single owner."""

    scheme: DigestScheme = DigestScheme.ETH_SIGNED_MESSAGE

    def signed_hash(self, digest: bytes) -> bytes:
        """The hash the owner's key actually signed for ``digest``."""
        if self.scheme is DigestScheme.ETH_SIGNED_MESSAGE:
            return to_eth_signed_message_hash(bytes(digest))
        return bytes(digest)

    def recover(self, digest: bytes, signature: bytes) -> Optional[str]:
        """
        Recover the signer of ``digest``.

        Args:
            digest: Coordinator/platform supplied hash (32 bytes)
            signature: Packed ``r || s || v`` signature (65 bytes)

        Returns:
            Checksummed signer address, or None if recovery fails
        """
        if len(digest) != 32:
            return None
        return recover_signer(self.signed_hash(digest), bytes(signature))

    def is_valid(self, owner: str, digest: bytes, signature: bytes) -> bool:
        signer = self.recover(digest, signature)
        if signer is None:
            logger.warning(
                "Signature validation failed: unrecoverable signature",
                extra={
                    "event": "account.signature_validation_failed",
                    "reason": "unrecoverable",
                    "scheme": self.scheme.value,
                    "signature_length": len(signature),
                },
            )
            return False

        if not same_address(signer, owner):
            logger.warning(
                "Signature validation failed: signer is not owner",
                extra={
                    "event": "account.signature_validation_failed",
                    "reason": "signer_mismatch",
                    "scheme": self.scheme.value,
                    "signer": signer,
                },
            )
            return False

        logger.debug(
            "Signature validation succeeded",
            extra={"event": "account.signature_validation_success", "signer": signer},
        )
        return True


def eth_signed_message_validator() -> SignatureValidator:
    return SignatureValidator(scheme=DigestScheme.ETH_SIGNED_MESSAGE)


def typed_data_validator() -> SignatureValidator:
    return SignatureValidator(scheme=DigestScheme.TYPED_DATA)
