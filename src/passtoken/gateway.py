"""Encryption gateway over the oracle backend.

Turns backend exceptions into EncryptResult/UnsealResult values so that no
raw transport error escapes to the orchestration layer. The gateway owns
the oracle capability: one per connected account, rebuilt on account
change.
"""

import logging
from typing import Optional, Sequence

from passtoken.errors import EncryptionError, OracleError
from passtoken.models import (
    UINT32,
    EncryptedHandle,
    EncryptResult,
    OracleCapability,
    OracleErrorKind,
    UnsealResult,
)
from passtoken.oracle.base import OracleBackend

logger = logging.getLogger(__name__)


class EncryptionGateway:
    """Typed encrypt/unseal capability for one account at a time."""

    def __init__(self, backend: OracleBackend):
        self.backend = backend
        self._capability: Optional[OracleCapability] = None

    @property
    def capability(self) -> Optional[OracleCapability]:
        return self._capability

    @property
    def is_ready(self) -> bool:
        return self._capability is not None

    def is_bound_to(self, account: str) -> bool:
        """Check the capability belongs to ``account``."""
        return (
            self._capability is not None
            and self._capability.account.lower() == account.lower()
        )

    async def initialize(self, account: str) -> OracleCapability:
        """Create (or reuse) the oracle capability for an account.

        A capability bound to another account is disposed first.

        Raises:
            EncryptionError: If the oracle session could not be opened
        """
        if self._capability is not None:
            if self.is_bound_to(account):
                return self._capability
            logger.info(
                f"Active account changed {self._capability.account} -> {account}, "
                "re-initializing oracle session"
            )
            await self.dispose()

        try:
            self._capability = await self.backend.initialize(account)
        except OracleError as e:
            logger.error(f"Oracle init failed for {account}: {e}")
            raise EncryptionError(str(e), e.kind) from e
        except Exception as e:
            logger.error(f"Unexpected oracle error during init for {account}: {e}")
            raise EncryptionError(str(e), OracleErrorKind.REQUEST_FAILED) from e

        return self._capability

    async def dispose(self) -> None:
        """Drop the current capability."""
        self._capability = None
        await self.backend.dispose()

    def _check_capability(self, account: Optional[str]) -> Optional[str]:
        if self._capability is None:
            return "Oracle session not initialized"
        if account is not None and not self.is_bound_to(account):
            return (
                f"Oracle session is bound to {self._capability.account}, "
                f"not {account}"
            )
        return None

    async def encrypt(
        self,
        values: Sequence[int],
        security_zone: int = 0,
        utype: int = UINT32,
        account: Optional[str] = None,
    ) -> EncryptResult:
        """Encrypt values in one batch.

        Values must already fit ``utype``; no range check happens here.

        Args:
            values: Plaintext values in submission order
            security_zone: Oracle security zone
            utype: Oracle type code
            account: Account the caller is acting for, checked against the capability

        Returns:
            EncryptResult with inputs in the same order as values
        """
        problem = self._check_capability(account)
        if problem:
            return EncryptResult(
                success=False, error=problem, kind=OracleErrorKind.NOT_INITIALIZED
            )

        try:
            inputs = await self.backend.encrypt(
                self._capability, list(values), utype=utype, security_zone=security_zone
            )
        except OracleError as e:
            logger.warning(f"Encryption failed ({e.kind.value}): {e}")
            return EncryptResult(success=False, error=str(e), kind=e.kind)
        except Exception as e:
            logger.error(f"Unexpected oracle error during encrypt: {e}")
            return EncryptResult(
                success=False, error=str(e), kind=OracleErrorKind.REQUEST_FAILED
            )

        return EncryptResult(success=True, inputs=inputs)

    async def request_unseal(
        self,
        handle: EncryptedHandle,
        bit_width: int = UINT32,
        account: Optional[str] = None,
    ) -> UnsealResult:
        """Request decryption of one ledger handle.

        Args:
            handle: Non-zero ciphertext handle
            bit_width: Oracle type code of the ciphertext
            account: Account the caller is acting for

        Returns:
            UnsealResult with the plaintext or a classified error
        """
        problem = self._check_capability(account)
        if problem:
            return UnsealResult.fail(problem, OracleErrorKind.NOT_INITIALIZED)

        try:
            value = await self.backend.unseal(self._capability, handle, utype=bit_width)
        except OracleError as e:
            logger.debug(f"Unseal of {handle} failed ({e.kind.value}): {e}")
            return UnsealResult.fail(str(e), e.kind)
        except Exception as e:
            logger.error(f"Unexpected oracle error during unseal: {e}")
            return UnsealResult.fail(str(e), OracleErrorKind.REQUEST_FAILED)

        return UnsealResult.ok(value)
