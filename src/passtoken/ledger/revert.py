"""Revert reason handling.

Maps custom-error selectors to readable names and classifies revert
reasons into LedgerError or NotReadyError.
"""

import logging
from functools import lru_cache
from typing import Optional

from passtoken.errors import LedgerError, NotReadyError

logger = logging.getLogger(__name__)

# Custom errors the token, vault and oracle contracts are known to raise
KNOWN_ERRORS = [
    "CallerNotVault(address)",
    "Unauthorized(address)",
    "InvalidCaller(address)",
    "InvalidSender(address)",
    "SignerMismatch(address)",
    "AccessDenied(address)",
    "InvalidSigner(address)",
    "AddressMismatch(address)",
    "SenderMismatch(address)",
    "WrongCaller(address)",
    "NotVault(address)",
    "OnlyVault(address)",
    "Forbidden(address)",
    "InvalidInput(address)",
    "VerifyFailed(address)",
    "VerificationFailed(address)",
    "InvalidSignature(address)",
    "SecurityZoneOutOfBounds(int32)",
    "InvalidEncryptedInput(uint8,uint8)",
    "SenderNotAuthorized(address)",
    "CallerNotAuthorized(address)",
]

NOT_READY_MARKERS = ("not ready", "decryption pending")


def error_selector(signature: str) -> str:
    """4-byte selector of a custom error signature, 0x-prefixed."""
    from web3 import Web3

    return "0x" + bytes(Web3.keccak(text=signature))[:4].hex()


@lru_cache(maxsize=1)
def _selector_table() -> dict[str, str]:
    return {error_selector(sig): sig for sig in KNOWN_ERRORS}


def decode_revert_selector(data: Optional[str]) -> Optional[str]:
    """Name the custom error encoded in revert data.

    Args:
        data: Revert data, at least the 4-byte selector (hex)

    Returns:
        Error signature, or None if unknown
    """
    if not data or not isinstance(data, str):
        return None
    text = data.lower()
    if not text.startswith("0x"):
        text = "0x" + text
    if len(text) < 10:
        return None
    return _selector_table().get(text[:10])


def is_not_ready(reason: Optional[str]) -> bool:
    """Whether a revert reason means the oracle has not decrypted yet."""
    if not reason:
        return False
    lowered = reason.lower()
    return any(marker in lowered for marker in NOT_READY_MARKERS)


def classify_revert(
    reason: Optional[str],
    tx_hash: Optional[str] = None,
    request_id: Optional[int] = None,
    retry_after: float = 30.0,
) -> LedgerError:
    """Build the exception for a revert reason."""
    if is_not_ready(reason):
        return NotReadyError(reason, retry_after=retry_after, request_id=request_id)
    return LedgerError(reason, tx_hash=tx_hash)
