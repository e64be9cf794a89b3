"""Tests for local pre-flight checks."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from conftest import ALICE, RecordingSleep, protect
from passtoken.errors import (
    BalanceCheckUnavailable,
    InsufficientBalance,
    LedgerError,
    PasswordCheckUnavailable,
    PreflightError,
    WrongPassword,
)
from passtoken.gateway import EncryptionGateway
from passtoken.ledger.base import LedgerClient
from passtoken.ledger.memory import InMemoryLedger
from passtoken.models import UINT32_MAX, RetryPolicy
from passtoken.oracle.mock import MockOracle
from passtoken.preflight import PreflightValidator
from passtoken.unsealer import RetryingUnsealer


async def _lagging_validator(index_lag: int):
    """Validator whose oracle never catches up within the retry limit."""
    oracle = MockOracle(index_lag=index_lag)
    ledger = InMemoryLedger(ALICE, oracle=oracle)
    gateway = EncryptionGateway(oracle)
    await gateway.initialize(ALICE)
    unsealer = RetryingUnsealer(gateway, RetryPolicy(3, 2.5), sleep=RecordingSleep())
    return ledger, PreflightValidator(ledger, unsealer)


class TestPasswordCheck:
    """Tests for check_password."""

    @pytest.mark.asyncio
    async def test_protection_disabled_skips_decryption(self, validator, oracle):
        await validator.check_password(ALICE, 1)
        assert oracle.unseal_calls == 0

    @pytest.mark.asyncio
    async def test_matching_password(self, validator, ledger):
        protect(ledger, ALICE, 1234)
        await validator.check_password(ALICE, 1234)

    @pytest.mark.asyncio
    async def test_wrong_password(self, validator, ledger):
        protect(ledger, ALICE, 9999)

        with pytest.raises(WrongPassword) as exc_info:
            await validator.check_password(ALICE, 1234)

        assert "Wrong password" in str(exc_info.value)
        assert isinstance(exc_info.value, PreflightError)

    @pytest.mark.asyncio
    async def test_unseal_failure_fails_closed(self):
        ledger, validator = await _lagging_validator(index_lag=5)
        protect(ledger, ALICE, 1234)

        with pytest.raises(PasswordCheckUnavailable):
            await validator.check_password(ALICE, 1234)

    @pytest.mark.asyncio
    async def test_protected_without_stored_password(self, validator, ledger):
        ledger.state.protection[ALICE.lower()] = True

        with pytest.raises(PasswordCheckUnavailable):
            await validator.check_password(ALICE, 1)

    @pytest.mark.asyncio
    async def test_ledger_read_failure(self, unsealer):
        ledger = MagicMock(spec=LedgerClient)
        ledger.is_password_required = AsyncMock(side_effect=LedgerError("rpc down"))
        validator = PreflightValidator(ledger, unsealer)

        with pytest.raises(PasswordCheckUnavailable) as exc_info:
            await validator.check_password(ALICE, 1)

        assert "rpc down" in str(exc_info.value)


class TestBalanceCheck:
    """Tests for check_balance."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("amount", [1, 50, 100])
    async def test_covered_amounts_pass(self, validator, ledger, amount):
        ledger.set_private_balance(ALICE, 100)
        await validator.check_balance(ALICE, amount)

    @pytest.mark.asyncio
    async def test_insufficient(self, validator, ledger):
        ledger.set_private_balance(ALICE, 100)

        with pytest.raises(InsufficientBalance) as exc_info:
            await validator.check_balance(ALICE, 101)

        assert exc_info.value.requested == 101
        assert exc_info.value.available == 100

    @pytest.mark.asyncio
    async def test_zero_handle_is_insufficient_without_oracle(self, validator, oracle):
        with pytest.raises(InsufficientBalance) as exc_info:
            await validator.check_balance(ALICE, 1)

        assert exc_info.value.available == 0
        assert oracle.unseal_calls == 0

    @pytest.mark.asyncio
    async def test_zero_handle_zero_amount_passes(self, validator):
        await validator.check_balance(ALICE, 0)

    @pytest.mark.asyncio
    async def test_full_uint32_balance(self, validator, ledger):
        ledger.set_private_balance(ALICE, UINT32_MAX)
        await validator.check_balance(ALICE, UINT32_MAX)

    @pytest.mark.asyncio
    async def test_unseal_failure_fails_closed(self):
        ledger, validator = await _lagging_validator(index_lag=5)
        ledger.set_private_balance(ALICE, 100)

        with pytest.raises(BalanceCheckUnavailable) as exc_info:
            await validator.check_balance(ALICE, 10)

        assert "refresh" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_ledger_read_failure(self, unsealer):
        ledger = MagicMock(spec=LedgerClient)
        ledger.balance_handle = AsyncMock(side_effect=LedgerError("rpc down"))

        with pytest.raises(BalanceCheckUnavailable):
            await PreflightValidator(ledger, unsealer).check_balance(ALICE, 1)


class TestCombinedCheck:
    """Password is checked before balance."""

    @pytest.mark.asyncio
    async def test_wrong_password_reported_before_balance(self, validator, ledger):
        protect(ledger, ALICE, 9999)

        with pytest.raises(WrongPassword):
            await validator.check(ALICE, 1234, 500)

    @pytest.mark.asyncio
    async def test_both_pass(self, validator, ledger):
        protect(ledger, ALICE, 1234)
        ledger.set_private_balance(ALICE, 10)
        await validator.check(ALICE, 1234, 10)
