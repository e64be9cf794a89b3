"""Balance overview for an account.

Reads the public ERC20 balance, decrypts the private balance and reports
whether password protection is on. Unlike the pre-flight checks this never
raises: anything that cannot be read is left as None with a note in
``errors``.
"""

import logging

from passtoken.errors import LedgerError
from passtoken.ledger.base import LedgerClient
from passtoken.models import UINT32, BalanceSnapshot
from passtoken.unsealer import RetryingUnsealer

logger = logging.getLogger(__name__)


class BalanceReader:
    """Builds BalanceSnapshot values."""

    def __init__(self, ledger: LedgerClient, unsealer: RetryingUnsealer):
        self.ledger = ledger
        self.unsealer = unsealer

    async def snapshot(self, account: str) -> BalanceSnapshot:
        """Collect balances for ``account``."""
        snapshot = BalanceSnapshot(account=account)

        try:
            snapshot.public_balance = await self.ledger.underlying_balance(account)
        except LedgerError as e:
            logger.error(f"Failed to fetch public balance: {e}")
            snapshot.errors.append(f"public balance: {e}")

        snapshot.private_balance = await self._private_balance(account, snapshot)

        try:
            snapshot.password_enabled = await self.ledger.is_password_required(account)
        except LedgerError as e:
            logger.error(f"Failed to fetch password status: {e}")
            snapshot.errors.append(f"password status: {e}")

        return snapshot

    async def _private_balance(self, account: str, snapshot: BalanceSnapshot):
        try:
            handle = await self.ledger.balance_handle(account)
        except LedgerError as e:
            logger.error(f"Failed to fetch balance handle: {e}")
            snapshot.errors.append(f"private balance: {e}")
            return None

        # Handle 0 resolves to 0 inside the unsealer
        result = await self.unsealer.unseal(handle, UINT32, account=account)
        if not result.success:
            logger.error(f"Unseal failed after retries: {result.error}")
            snapshot.errors.append(f"private balance: {result.error}")
            return None
        return result.value
