"""Pytest configuration and fixtures."""

import os

import pytest
import pytest_asyncio

# Set test environment
os.environ["ENVIRONMENT"] = "test"
os.environ["MOCK_MODE"] = "true"
os.environ.pop("PRIVATE_KEY", None)

from passtoken.config import get_settings
from passtoken.gateway import EncryptionGateway
from passtoken.ledger.memory import InMemoryLedger
from passtoken.models import RetryPolicy
from passtoken.oracle.mock import MockOracle
from passtoken.orchestrator import TransferOrchestrator
from passtoken.preflight import PreflightValidator
from passtoken.unsealer import RetryingUnsealer
from passtoken.withdrawal import WithdrawalStateMachine

ALICE = "0xA11ce00000000000000000000000000000000001"
BOB = "0xB0b0000000000000000000000000000000000002"


class RecordingSleep:
    """Async sleep replacement that records requested delays."""

    def __init__(self):
        self.calls: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.calls.append(delay)


def protect(ledger: InMemoryLedger, account: str, password: int) -> None:
    """Store a password for account and enable protection."""
    ledger.state.password_handles[account.lower()] = ledger.oracle.store(password)
    ledger.state.protection[account.lower()] = True


@pytest.fixture(autouse=True)
def clear_settings_cache():
    """Settings are re-read for every test."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def sleeper() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def policy() -> RetryPolicy:
    return RetryPolicy(max_attempts=3, delay=2.5)


@pytest.fixture
def oracle() -> MockOracle:
    return MockOracle()


@pytest.fixture
def ledger(oracle) -> InMemoryLedger:
    return InMemoryLedger(ALICE, oracle=oracle)


@pytest_asyncio.fixture
async def gateway(oracle) -> EncryptionGateway:
    gw = EncryptionGateway(oracle)
    await gw.initialize(ALICE)
    return gw


@pytest.fixture
def unsealer(gateway, policy, sleeper) -> RetryingUnsealer:
    return RetryingUnsealer(gateway, policy, sleep=sleeper)


@pytest.fixture
def validator(ledger, unsealer) -> PreflightValidator:
    return PreflightValidator(ledger, unsealer)


@pytest.fixture
def orchestrator(ledger, gateway, validator) -> TransferOrchestrator:
    return TransferOrchestrator(ALICE, ledger, gateway, validator)


@pytest.fixture
def withdrawals(orchestrator, sleeper) -> WithdrawalStateMachine:
    return WithdrawalStateMachine(orchestrator, finalize_retry_after=30.0, sleep=sleeper)
