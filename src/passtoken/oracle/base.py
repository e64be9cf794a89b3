"""Base interface for encryption oracle backends.

Oracle session flow:
1. initialize(account) creates a permit-backed capability for the account
2. encrypt() turns plaintext values into ledger-acceptable encrypted inputs
3. unseal() asks the oracle to decrypt a ledger handle for the capability holder
4. dispose() drops the session (required before switching accounts)
"""

import logging
from abc import ABC, abstractmethod
from typing import Sequence

from passtoken.models import UINT32, EncryptedHandle, EncryptedInput, OracleCapability

logger = logging.getLogger(__name__)


class OracleBackend(ABC):
    """Abstract base class for oracle backends.

    Implementations raise OracleError subclasses on failure. They never
    cache results: every call is a fresh request.
    """

    name = "oracle"

    @abstractmethod
    async def initialize(self, account: str) -> OracleCapability:
        """Create an oracle session for an account.

        Args:
            account: Address the capability is bound to

        Returns:
            OracleCapability carrying the permit hash
        """
        pass

    @abstractmethod
    async def encrypt(
        self,
        capability: OracleCapability,
        values: Sequence[int],
        utype: int = UINT32,
        security_zone: int = 0,
    ) -> list[EncryptedInput]:
        """Encrypt values in one batch, preserving order.

        Args:
            capability: Session created by initialize()
            values: Plaintext values already in range for utype
            utype: Oracle type code
            security_zone: Oracle security zone

        Returns:
            One EncryptedInput per value, same order
        """
        pass

    @abstractmethod
    async def unseal(
        self,
        capability: OracleCapability,
        handle: EncryptedHandle,
        utype: int = UINT32,
    ) -> int:
        """Decrypt a ledger handle.

        Args:
            capability: Session created by initialize()
            handle: Non-zero ciphertext handle
            utype: Expected oracle type code

        Returns:
            Plaintext integer
        """
        pass

    async def dispose(self) -> None:
        """Release resources held by the backend."""
        return None

    async def health_check(self) -> bool:
        """Check if the oracle is reachable.

        Returns:
            True if the oracle answers
        """
        return True

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name={self.name})"
