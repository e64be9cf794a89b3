"""Service assembly for one connected account.

Everything is constructed explicitly and bound to a single account:
oracle capability, ledger client, validator, orchestrators. Switching
accounts disposes the capability and builds a new client.

Example:
    async with await ConfidentialClient.connect(account) as client:
        await client.orchestrator.transfer(recipient, 50, 1234)
"""

import asyncio
import logging
from typing import Optional

from passtoken.balances import BalanceReader
from passtoken.config import Settings, get_settings
from passtoken.gateway import EncryptionGateway
from passtoken.ledger.base import LedgerClient
from passtoken.ledger.factory import get_ledger
from passtoken.models import BalanceSnapshot, RetryPolicy
from passtoken.oracle.base import OracleBackend
from passtoken.oracle.factory import get_oracle_backend
from passtoken.orchestrator import TransferOrchestrator
from passtoken.preflight import PreflightValidator
from passtoken.unsealer import RetryingUnsealer, Sleeper
from passtoken.withdrawal import WithdrawalStateMachine

logger = logging.getLogger(__name__)


def account_from_key(private_key: str) -> str:
    """Address controlled by a private key."""
    from eth_account import Account
    return Account.from_key(private_key).address


class ConfidentialClient:
    """All services for one account, wired together."""

    def __init__(
        self,
        account: str,
        ledger: LedgerClient,
        gateway: EncryptionGateway,
        settings: Optional[Settings] = None,
        policy: Optional[RetryPolicy] = None,
        sleep: Sleeper = asyncio.sleep,
    ):
        self.settings = settings or get_settings()
        self.account = account
        self.ledger = ledger
        self.gateway = gateway
        self.policy = policy or self.settings.retry_policy

        self.unsealer = RetryingUnsealer(gateway, self.policy, sleep=sleep)
        self.validator = PreflightValidator(ledger, self.unsealer)
        self.orchestrator = TransferOrchestrator(
            account,
            ledger,
            gateway,
            self.validator,
            security_zone=self.settings.security_zone,
            underlying_decimals=self.settings.underlying_decimals,
        )
        self.withdrawals = WithdrawalStateMachine(
            self.orchestrator,
            finalize_retry_after=self.settings.finalize_retry_after,
            sleep=sleep,
        )
        self.balances = BalanceReader(ledger, self.unsealer)
        self._sleep = sleep

    @classmethod
    async def connect(
        cls,
        account: str,
        settings: Optional[Settings] = None,
        oracle: Optional[OracleBackend] = None,
        ledger: Optional[LedgerClient] = None,
        policy: Optional[RetryPolicy] = None,
        sleep: Sleeper = asyncio.sleep,
    ) -> "ConfidentialClient":
        """Build services for ``account`` and open its oracle session.

        Raises:
            EncryptionError: If the oracle session could not be opened
        """
        settings = settings or get_settings()
        oracle = oracle or get_oracle_backend(settings)
        ledger = ledger or get_ledger(account, oracle=oracle, settings=settings)

        gateway = EncryptionGateway(oracle)
        await gateway.initialize(account)
        logger.info(f"Connected {account} (oracle: {oracle.name})")
        return cls(account, ledger, gateway, settings=settings, policy=policy, sleep=sleep)

    async def switch_account(self, account: str) -> "ConfidentialClient":
        """Dispose this client and return one bound to ``account``."""
        from passtoken.ledger.memory import InMemoryLedger

        oracle = self.gateway.backend
        await self.close()

        if isinstance(self.ledger, InMemoryLedger):
            ledger = self.ledger.for_account(account)
        else:
            ledger = get_ledger(account, oracle=oracle, settings=self.settings)

        return await ConfidentialClient.connect(
            account,
            settings=self.settings,
            oracle=oracle,
            ledger=ledger,
            policy=self.policy,
            sleep=self._sleep,
        )

    async def balance(self) -> BalanceSnapshot:
        """Balance overview for the connected account."""
        return await self.balances.snapshot(self.account)

    async def close(self) -> None:
        """Release the oracle capability."""
        await self.gateway.dispose()

    async def __aenter__(self) -> "ConfidentialClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
        return False
