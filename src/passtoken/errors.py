"""Error taxonomy surfaced to callers.

Every failure that crosses the orchestration boundary is one of:

- ValidationError: bad input, raised before any network call
- PreflightError: local checks failed, raised before any mutating call
- EncryptionError: the oracle could not encrypt
- LedgerError: a mutating call reverted or never confirmed
- NotReadyError: finalize attempted before the oracle decrypted the amount
"""

from typing import Optional

from passtoken.models import OracleErrorKind


class PassTokenError(Exception):
    """Base class for all errors raised by this package."""
    pass


class ValidationError(PassTokenError):
    """Missing or malformed input."""

    def __init__(self, field: str, message: str):
        self.field = field
        self.message = message
        super().__init__(f"{field}: {message}")


class PreflightError(PassTokenError):
    """A local pre-submission check failed. No ledger state was touched."""
    pass


class WrongPassword(PreflightError):
    """Supplied password does not match the stored one."""

    def __init__(self, message: str = "Wrong password! Please check and try again."):
        super().__init__(message)


class PasswordCheckUnavailable(PreflightError):
    """Stored password could not be decrypted."""

    def __init__(self, reason: str = "FHE error"):
        self.reason = reason
        super().__init__(f"Password check failed: {reason}")


class InsufficientBalance(PreflightError):
    """Requested amount exceeds the decrypted private balance."""

    def __init__(self, requested: int, available: int):
        self.requested = requested
        self.available = available
        super().__init__(
            f"Insufficient private balance: have {available}, tried to use {requested}"
        )


class BalanceCheckUnavailable(PreflightError):
    """Private balance could not be decrypted. Blocks submission."""

    def __init__(self, reason: str = "FHE error"):
        self.reason = reason
        super().__init__(
            f"Could not verify your private balance ({reason}). Please refresh and try again."
        )


class EncryptionError(PassTokenError):
    """Oracle capability not ready or encryption request failed."""

    def __init__(self, message: str, kind: Optional[OracleErrorKind] = None):
        self.kind = kind or OracleErrorKind.REQUEST_FAILED
        super().__init__(message)


class LedgerError(PassTokenError):
    """A mutating ledger call reverted or failed to confirm."""

    def __init__(self, reason: Optional[str] = None, tx_hash: Optional[str] = None):
        self.reason = reason
        self.tx_hash = tx_hash
        super().__init__(reason or "Transaction failed")


class NotReadyError(LedgerError):
    """Finalize attempted before the oracle completed decryption.

    Expected and temporary: wait ``retry_after`` seconds and try again.
    """

    def __init__(
        self,
        reason: Optional[str] = None,
        retry_after: float = 30.0,
        request_id: Optional[int] = None,
    ):
        self.retry_after = retry_after
        self.request_id = request_id
        super().__init__(reason or "Decryption not ready")

    @property
    def guidance(self) -> str:
        return f"Decryption not ready yet. Please wait another {retry_after_text(self.retry_after)}."


class InvalidStateError(PassTokenError):
    """Withdrawal state machine operation not allowed in the current state."""
    pass


class OracleError(PassTokenError):
    """Raised by oracle backends. Classified by the encryption gateway."""

    kind = OracleErrorKind.REQUEST_FAILED


class OracleUnavailableError(OracleError):
    """Oracle could not be reached."""

    kind = OracleErrorKind.ORACLE_UNREACHABLE


class MalformedCiphertextError(OracleError):
    """Oracle rejected a ciphertext or handle."""

    kind = OracleErrorKind.MALFORMED_CIPHERTEXT


class OracleNotInitializedError(OracleError):
    """No oracle session for the account yet."""

    kind = OracleErrorKind.NOT_INITIALIZED


def retry_after_text(seconds: float) -> str:
    """Format a wait duration like '30s'."""
    if seconds == int(seconds):
        return f"{int(seconds)}s"
    return f"{seconds}s"
