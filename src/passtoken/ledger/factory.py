"""Ledger client factory."""

import logging
from typing import Optional

from passtoken.config import Settings, get_settings
from passtoken.ledger.base import LedgerClient
from passtoken.oracle.base import OracleBackend

logger = logging.getLogger(__name__)


def get_ledger(
    account: str,
    oracle: Optional[OracleBackend] = None,
    settings: Optional[Settings] = None,
) -> LedgerClient:
    """Build the configured ledger client for a sender account.

    Args:
        account: Sender of mutating calls
        oracle: Oracle backend; mock mode needs the MockOracle it simulates against
        settings: Settings to use (defaults to cached settings)

    Returns:
        LedgerClient instance
    """
    settings = settings or get_settings()

    if settings.mock_mode:
        from passtoken.ledger.memory import InMemoryLedger
        from passtoken.oracle.mock import MockOracle

        if oracle is not None and not isinstance(oracle, MockOracle):
            raise ValueError("Mock ledger requires the mock oracle")
        logger.info("Using in-memory ledger")
        return InMemoryLedger(
            account,
            oracle=oracle,
            underlying_decimals=settings.underlying_decimals,
            finalize_retry_after=settings.finalize_retry_after,
        )

    from passtoken.ledger.web3_ledger import Web3Ledger

    logger.info(f"Using web3 ledger at {settings.rpc_url} (chain {settings.chain_id})")
    return Web3Ledger(
        account,
        rpc_url=settings.rpc_url,
        pass_token_address=settings.pass_token_address,
        vault_address=settings.vault_address,
        underlying_token_address=settings.underlying_token_address,
        private_key=settings.private_key,
        chain_id=settings.chain_id,
        receipt_timeout=settings.receipt_timeout,
        finalize_retry_after=settings.finalize_retry_after,
    )
