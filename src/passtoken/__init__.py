"""Client-side orchestration for password-gated confidential tokens.

Pre-validates operations locally, drives the encryption oracle with
retries, and runs the two-phase withdrawal protocol.
"""

from passtoken.client import ConfidentialClient
from passtoken.errors import (
    EncryptionError,
    LedgerError,
    NotReadyError,
    PassTokenError,
    PreflightError,
    ValidationError,
)
from passtoken.models import RetryPolicy, WithdrawalState

__version__ = "0.1.0"

__all__ = [
    "ConfidentialClient",
    "EncryptionError",
    "LedgerError",
    "NotReadyError",
    "PassTokenError",
    "PreflightError",
    "RetryPolicy",
    "ValidationError",
    "WithdrawalState",
]
