"""Bounded retry around single decryption requests.

The oracle indexes new ledger ciphertexts a few seconds after the block that
produced them, so a fresh handle often fails to unseal on the first try.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional

from passtoken.gateway import EncryptionGateway
from passtoken.models import (
    UINT32,
    ZERO_HANDLE,
    EncryptedHandle,
    OracleErrorKind,
    RetryPolicy,
    UnsealResult,
)

logger = logging.getLogger(__name__)

Sleeper = Callable[[float], Awaitable[None]]


class RetryingUnsealer:
    """Unseal with a fixed-delay retry policy."""

    def __init__(
        self,
        gateway: EncryptionGateway,
        policy: Optional[RetryPolicy] = None,
        sleep: Sleeper = asyncio.sleep,
    ):
        self.gateway = gateway
        self.policy = policy or RetryPolicy()
        self._sleep = sleep

    async def unseal(
        self,
        handle: EncryptedHandle,
        bit_width: int = UINT32,
        account: Optional[str] = None,
    ) -> UnsealResult:
        """Decrypt a handle, retrying on failure.

        Handle 0 means no ciphertext exists and resolves to 0 without
        contacting the oracle.

        Returns:
            First successful result, or the last failure
        """
        if int(handle) == ZERO_HANDLE:
            return UnsealResult.ok(0)

        result = UnsealResult.fail("no attempt made", OracleErrorKind.REQUEST_FAILED)
        for attempt in range(1, self.policy.max_attempts + 1):
            result = await self.gateway.request_unseal(handle, bit_width, account=account)
            if result.success:
                if attempt > 1:
                    logger.info(f"Unsealed handle {handle} on attempt {attempt}")
                return result

            if attempt < self.policy.max_attempts:
                logger.warning(
                    f"Unseal attempt {attempt}/{self.policy.max_attempts} for handle "
                    f"{handle} failed: {result.error}. Retrying in {self.policy.delay}s"
                )
                await self._sleep(self.policy.delay)

        logger.error(
            f"Unseal failed after {self.policy.max_attempts} attempts: {result.error}"
        )
        return result
