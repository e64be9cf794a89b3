"""In-memory oracle for tests and mock mode.

Ciphertexts live in a dict keyed by sequential handles. Handle 0 is never
issued. An optional indexing lag makes each new handle fail to unseal a
fixed number of times, mimicking an oracle whose view of the chain trails
settlement.
"""

import logging
import secrets
from typing import Sequence

from passtoken.errors import (
    MalformedCiphertextError,
    OracleError,
    OracleNotInitializedError,
)
from passtoken.models import UINT32, EncryptedHandle, EncryptedInput, OracleCapability
from passtoken.oracle.base import OracleBackend

logger = logging.getLogger(__name__)


class MockOracle(OracleBackend):
    """Simulated oracle that stores plaintexts behind handles."""

    name = "mock"

    def __init__(self, index_lag: int = 0, environment: str = "MOCK"):
        """Initialize the mock.

        Args:
            index_lag: Failed unseal attempts per new handle before it decrypts
            environment: Reported environment name
        """
        self.index_lag = index_lag
        self.environment = environment
        self._plaintexts: dict[int, int] = {}
        self._utypes: dict[int, int] = {}
        self._pending_lag: dict[int, int] = {}
        self._sessions: set[str] = set()
        self._next_handle = 1
        self.encrypt_calls = 0
        self.unseal_calls = 0

    def store(self, value: int, utype: int = UINT32) -> EncryptedHandle:
        """Register a plaintext and return its new handle.

        Used by the in-memory ledger when it computes new ciphertexts.
        """
        handle = self._next_handle
        self._next_handle += 1
        self._plaintexts[handle] = value
        self._utypes[handle] = utype
        if self.index_lag:
            self._pending_lag[handle] = self.index_lag
        return handle

    def reveal(self, handle: EncryptedHandle) -> int:
        """Read a plaintext directly, bypassing sessions and lag."""
        if handle not in self._plaintexts:
            raise MalformedCiphertextError(f"Unknown ciphertext handle {handle}")
        return self._plaintexts[handle]

    async def initialize(self, account: str) -> OracleCapability:
        """Open a session for the account."""
        self._sessions.add(account.lower())
        permit_hash = f"0x{secrets.token_hex(32)}"
        logger.debug(f"[MOCK] Oracle session opened for {account}")
        return OracleCapability(
            account=account,
            permit_hash=permit_hash,
            environment=self.environment,
        )

    def _require_session(self, capability: OracleCapability) -> None:
        if capability is None or capability.account.lower() not in self._sessions:
            raise OracleNotInitializedError("Oracle session not initialized")

    async def encrypt(
        self,
        capability: OracleCapability,
        values: Sequence[int],
        utype: int = UINT32,
        security_zone: int = 0,
    ) -> list[EncryptedInput]:
        """Store each value and return inputs in order."""
        self.encrypt_calls += 1
        self._require_session(capability)

        inputs = []
        for value in values:
            handle = self._next_handle
            self._next_handle += 1
            # Encrypted inputs are indexed on creation; only ledger-derived
            # ciphertexts are subject to lag.
            self._plaintexts[handle] = int(value)
            self._utypes[handle] = utype
            inputs.append(
                EncryptedInput(
                    handle=handle,
                    security_zone=security_zone,
                    utype=utype,
                    signature=b"\x00" * 65,
                )
            )
        return inputs

    async def unseal(
        self,
        capability: OracleCapability,
        handle: EncryptedHandle,
        utype: int = UINT32,
    ) -> int:
        """Return the stored plaintext once the handle is indexed."""
        self.unseal_calls += 1
        self._require_session(capability)

        if handle not in self._plaintexts:
            raise MalformedCiphertextError(f"Unknown ciphertext handle {handle}")
        if self._utypes[handle] != utype:
            raise MalformedCiphertextError(
                f"Handle {handle} has utype {self._utypes[handle]}, expected {utype}"
            )

        remaining = self._pending_lag.get(handle, 0)
        if remaining > 0:
            self._pending_lag[handle] = remaining - 1
            raise OracleError(f"Ciphertext {handle} not indexed yet")

        return self._plaintexts[handle]

    async def dispose(self) -> None:
        self._sessions.clear()
