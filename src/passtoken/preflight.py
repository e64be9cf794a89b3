"""Local pre-flight checks run before any gas is spent.

Encrypted contracts cannot revert on a hidden condition: a transfer with a
wrong password or insufficient balance succeeds on chain and simply moves
nothing. Decrypting the stored values locally is the only way to tell the
user before they pay for a no-op transaction.
"""

import logging

from passtoken.errors import (
    BalanceCheckUnavailable,
    InsufficientBalance,
    LedgerError,
    PasswordCheckUnavailable,
    WrongPassword,
)
from passtoken.ledger.base import LedgerClient
from passtoken.models import UINT32, ZERO_HANDLE
from passtoken.unsealer import RetryingUnsealer

logger = logging.getLogger(__name__)


class PreflightValidator:
    """Password and balance checks using read calls and local decryption."""

    def __init__(self, ledger: LedgerClient, unsealer: RetryingUnsealer):
        self.ledger = ledger
        self.unsealer = unsealer

    async def check_password(self, account: str, supplied_password: int) -> None:
        """Verify the supplied password against the stored one.

        Succeeds without decrypting anything when protection is disabled.

        Raises:
            WrongPassword: Decrypted password differs
            PasswordCheckUnavailable: Stored password could not be read or decrypted
        """
        try:
            required = await self.ledger.is_password_required(account)
            if not required:
                logger.debug(f"Password protection disabled for {account}, skipping check")
                return
            handle = await self.ledger.get_password_handle(account)
        except LedgerError as e:
            raise PasswordCheckUnavailable(str(e)) from e

        if int(handle) == ZERO_HANDLE:
            raise PasswordCheckUnavailable("No password stored for this account")

        result = await self.unsealer.unseal(handle, UINT32, account=account)
        if not result.success:
            logger.error(f"Local password unseal failed: {result.error}")
            raise PasswordCheckUnavailable(result.error or "FHE error")

        if result.value != supplied_password:
            logger.info(f"Password mismatch for {account}")
            raise WrongPassword()

    async def check_balance(self, account: str, requested_amount: int) -> None:
        """Verify the private balance covers ``requested_amount``.

        Fails closed: a balance that cannot be decrypted blocks submission.

        Raises:
            InsufficientBalance: Balance is lower than requested (or absent)
            BalanceCheckUnavailable: Balance could not be read or decrypted
        """
        try:
            handle = await self.ledger.balance_handle(account)
        except LedgerError as e:
            raise BalanceCheckUnavailable(str(e)) from e

        if int(handle) == ZERO_HANDLE:
            if requested_amount > 0:
                raise InsufficientBalance(requested_amount, 0)
            return

        result = await self.unsealer.unseal(handle, UINT32, account=account)
        if not result.success:
            logger.error(f"Local balance unseal failed: {result.error}")
            raise BalanceCheckUnavailable(result.error or "FHE error")

        if requested_amount > result.value:
            raise InsufficientBalance(requested_amount, result.value)

    async def check(self, account: str, password: int, amount: int) -> None:
        """Run the password check, then the balance check."""
        await self.check_password(account, password)
        await self.check_balance(account, amount)
