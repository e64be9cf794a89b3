"""HTTP client for the encryption oracle gateway.

Endpoints (JSON over HTTPS):
- POST /v1/permits     open a session, optionally with a signed permit
- POST /v1/encrypt     batch-encrypt plaintext values
- POST /v1/sealoutput  decrypt a ledger ciphertext handle
- GET  /v1/health      liveness
"""

import logging
import time
from typing import Any, Optional, Sequence

import httpx

from passtoken.errors import (
    MalformedCiphertextError,
    OracleError,
    OracleNotInitializedError,
    OracleUnavailableError,
)
from passtoken.models import UINT32, EncryptedHandle, EncryptedInput, OracleCapability
from passtoken.oracle.base import OracleBackend

logger = logging.getLogger(__name__)

# Permits are valid for one week
PERMIT_TTL_SECONDS = 7 * 24 * 3600


def _to_int(value: Any) -> int:
    """Parse an integer that may be hex-encoded."""
    if isinstance(value, int):
        return value
    text = str(value).strip()
    if text.lower().startswith("0x"):
        return int(text, 16)
    return int(text)


def _to_bytes(value: Any) -> bytes:
    if not value:
        return b""
    text = str(value)
    if text.lower().startswith("0x"):
        text = text[2:]
    return bytes.fromhex(text)


class HttpOracle(OracleBackend):
    """Oracle backend talking to a remote gateway over httpx."""

    name = "http"

    def __init__(
        self,
        base_url: str,
        private_key: Optional[str] = None,
        environment: str = "TESTNET",
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize client.

        Args:
            base_url: Oracle gateway URL
            private_key: Key used to sign session permits (optional)
            environment: Oracle environment name
            timeout: Request timeout in seconds
            transport: Custom httpx transport (tests)
        """
        self.base_url = base_url.rstrip("/")
        self.private_key = private_key
        self.environment = environment
        self.timeout = timeout
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            transport=self._transport,
        )

    async def _post(self, path: str, payload: dict) -> dict:
        try:
            async with self._client() as client:
                response = await client.post(path, json=payload)
        except httpx.TransportError as e:
            raise OracleUnavailableError(f"Oracle unreachable: {e}") from e

        if response.status_code == 200:
            try:
                data = response.json()
            except ValueError as e:
                raise OracleError(f"Invalid oracle response: {e}") from e
            if not isinstance(data, dict):
                raise OracleError(
                    f"Invalid oracle response: expected an object, got {type(data).__name__}"
                )
            return data

        message = self._error_message(response)
        if response.status_code in (401, 403):
            raise OracleNotInitializedError(f"Permit rejected: {message}")
        if response.status_code in (400, 422):
            raise MalformedCiphertextError(message)
        if response.status_code >= 500:
            raise OracleUnavailableError(f"Oracle error {response.status_code}: {message}")
        # 404/425: ciphertext not indexed yet, and anything else
        raise OracleError(f"Oracle request failed ({response.status_code}): {message}")

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            data = response.json()
        except ValueError:
            return response.text or "no details"
        if isinstance(data, dict):
            return str(data.get("error") or data.get("message") or data)
        return str(data)

    def _sign_permit(self, account: str, expiration: int) -> Optional[str]:
        if not self.private_key:
            return None

        from eth_account import Account
        from eth_account.messages import encode_defunct

        message = encode_defunct(
            text=f"Oracle permit for {account.lower()} until {expiration}"
        )
        signed = Account.sign_message(message, private_key=self.private_key)
        return "0x" + bytes(signed.signature).hex()

    async def initialize(self, account: str) -> OracleCapability:
        """Open a permit-backed session for the account."""
        expiration = int(time.time()) + PERMIT_TTL_SECONDS
        payload = {
            "issuer": account,
            "environment": self.environment,
            "expiration": expiration,
        }
        signature = self._sign_permit(account, expiration)
        if signature:
            payload["signature"] = signature

        data = await self._post("/v1/permits", payload)
        permit_hash = data.get("permit_hash")
        if not permit_hash:
            raise OracleNotInitializedError("Oracle did not return a permit hash")

        logger.info(f"Oracle session initialized for {account}")
        return OracleCapability(
            account=account,
            permit_hash=permit_hash,
            environment=self.environment,
        )

    @staticmethod
    def _require_capability(capability: Optional[OracleCapability]) -> OracleCapability:
        if capability is None or not capability.permit_hash:
            raise OracleNotInitializedError("Oracle session not initialized")
        return capability

    async def encrypt(
        self,
        capability: OracleCapability,
        values: Sequence[int],
        utype: int = UINT32,
        security_zone: int = 0,
    ) -> list[EncryptedInput]:
        """Encrypt values through the gateway."""
        capability = self._require_capability(capability)
        payload = {
            "account": capability.account,
            "permit_hash": capability.permit_hash,
            "security_zone": security_zone,
            "items": [{"value": str(v), "utype": utype} for v in values],
        }
        data = await self._post("/v1/encrypt", payload)

        try:
            items = data["items"]
            inputs = [
                EncryptedInput(
                    handle=_to_int(item["ct_hash"]),
                    security_zone=int(item.get("security_zone", security_zone)),
                    utype=int(item.get("utype", utype)),
                    signature=_to_bytes(item.get("signature")),
                )
                for item in items
            ]
        except (KeyError, TypeError, ValueError) as e:
            raise OracleError(f"Invalid encrypt response: {e}") from e

        if len(inputs) != len(values):
            raise OracleError(
                f"Oracle returned {len(inputs)} ciphertexts for {len(values)} values"
            )
        return inputs

    async def unseal(
        self,
        capability: OracleCapability,
        handle: EncryptedHandle,
        utype: int = UINT32,
    ) -> int:
        """Request decryption of a handle."""
        capability = self._require_capability(capability)
        payload = {
            "account": capability.account,
            "permit_hash": capability.permit_hash,
            "ct_hash": hex(handle),
            "utype": utype,
        }
        data = await self._post("/v1/sealoutput", payload)

        try:
            return _to_int(data["plaintext"])
        except (KeyError, TypeError, ValueError) as e:
            raise OracleError(f"Invalid sealoutput response: {e}") from e

    async def health_check(self) -> bool:
        """Check oracle liveness."""
        try:
            async with self._client() as client:
                response = await client.get("/v1/health")
                return response.status_code == 200
        except httpx.HTTPError as e:
            logger.warning(f"Oracle health check failed: {e}")
            return False
