"""End-to-end tests for the transfer orchestrator over the in-memory ledger."""

from unittest.mock import AsyncMock

import pytest

from conftest import ALICE, BOB, protect
from passtoken.errors import (
    EncryptionError,
    InsufficientBalance,
    LedgerError,
    ValidationError,
    WrongPassword,
)
from passtoken.models import UINT32_MAX, OracleErrorKind, TransferIntent


class TestTransfer:
    """Encrypted transfers."""

    @pytest.mark.asyncio
    async def test_transfer_without_protection(self, orchestrator, ledger, oracle):
        """Protection off, balance 100, amount 50: one batched encryption, one call."""
        ledger.set_private_balance(ALICE, 100)

        result = await orchestrator.transfer(BOB, "50", "0")

        assert result.message == "Transfer Successful!"
        assert result.tx_hash.startswith("0x")
        assert oracle.encrypt_calls == 1
        assert len(ledger.mutating_calls) == 1

        sender, method, args = ledger.mutating_calls[0]
        assert (sender, method) == (ALICE, "transferEncrypted")
        recipient, amount_handle, password_handle = args
        assert recipient == BOB
        assert oracle.reveal(amount_handle) == 50
        assert oracle.reveal(password_handle) == 0

        assert ledger.private_balance(ALICE) == 50
        assert ledger.private_balance(BOB) == 50

    @pytest.mark.asyncio
    async def test_transfer_with_correct_password(self, orchestrator, ledger):
        protect(ledger, ALICE, 1234)
        ledger.set_private_balance(ALICE, 100)

        await orchestrator.transfer(BOB, 30, 1234)

        assert ledger.private_balance(BOB) == 30

    @pytest.mark.asyncio
    async def test_wrong_password_makes_no_mutating_call(self, orchestrator, ledger, oracle):
        protect(ledger, ALICE, 9999)
        ledger.set_private_balance(ALICE, 100)

        with pytest.raises(WrongPassword):
            await orchestrator.transfer(BOB, 10, "1234")

        assert ledger.mutating_calls == []
        assert oracle.encrypt_calls == 0
        assert orchestrator.active_intent is None

    @pytest.mark.asyncio
    async def test_insufficient_balance_makes_no_mutating_call(self, orchestrator, ledger, oracle):
        ledger.set_private_balance(ALICE, 100)

        with pytest.raises(InsufficientBalance):
            await orchestrator.transfer(BOB, 101, 0)

        assert ledger.mutating_calls == []
        assert oracle.encrypt_calls == 0

    @pytest.mark.asyncio
    async def test_amount_equal_to_balance(self, orchestrator, ledger):
        ledger.set_private_balance(ALICE, 100)

        await orchestrator.transfer(BOB, 100, 0)

        assert ledger.private_balance(ALICE) == 0

    @pytest.mark.asyncio
    async def test_maximum_amount(self, orchestrator, ledger):
        ledger.set_private_balance(ALICE, UINT32_MAX)

        await orchestrator.transfer(BOB, str(UINT32_MAX), 0)

        assert ledger.private_balance(BOB) == UINT32_MAX

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "recipient,amount,password,field",
        [
            ("", "10", "1", "recipient"),
            ("0x123", "10", "1", "recipient"),
            (BOB, "", "1", "amount"),
            (BOB, "abc", "1", "amount"),
            (BOB, "0", "1", "amount"),
            (BOB, "-5", "1", "amount"),
            (BOB, "1.5", "1", "amount"),
            (BOB, "5²", "1", "amount"),
            (BOB, str(UINT32_MAX + 1), "1", "amount"),
            (BOB, "10", "", "password"),
            (BOB, "10", "12ab", "password"),
            (BOB, "10", "¹²", "password"),
            (BOB, "10", str(UINT32_MAX + 1), "password"),
        ],
    )
    async def test_validation_precedes_network(
        self, orchestrator, ledger, oracle, recipient, amount, password, field
    ):
        with pytest.raises(ValidationError) as exc_info:
            await orchestrator.transfer(recipient, amount, password)

        assert exc_info.value.field == field
        assert oracle.unseal_calls == 0
        assert oracle.encrypt_calls == 0
        assert ledger.mutating_calls == []

    @pytest.mark.asyncio
    async def test_encryption_failure_stops_before_ledger(self, orchestrator, ledger, gateway):
        ledger.set_private_balance(ALICE, 100)
        await gateway.dispose()

        with pytest.raises(EncryptionError) as exc_info:
            await orchestrator.transfer(BOB, 10, 0)

        assert exc_info.value.kind == OracleErrorKind.NOT_INITIALIZED
        assert ledger.mutating_calls == []

    @pytest.mark.asyncio
    async def test_intent_held_only_while_in_flight(self, orchestrator, ledger):
        ledger.set_private_balance(ALICE, 100)
        seen = []
        original = ledger.transfer_encrypted

        async def spy(*args):
            seen.append(orchestrator.active_intent)
            return await original(*args)

        ledger.transfer_encrypted = spy

        await orchestrator.transfer(BOB, 10, 0)

        assert seen == [TransferIntent(recipient=BOB, amount=10, password=0)]
        assert orchestrator.active_intent is None

    @pytest.mark.asyncio
    async def test_ledger_error_propagates_and_clears_intent(self, orchestrator, ledger):
        ledger.set_private_balance(ALICE, 100)
        ledger.transfer_encrypted = AsyncMock(side_effect=LedgerError("execution reverted"))

        with pytest.raises(LedgerError):
            await orchestrator.transfer(BOB, 10, 0)

        assert orchestrator.active_intent is None


class TestPasswordManagement:
    """setPassword and setPasswordProtection."""

    @pytest.mark.asyncio
    async def test_set_password_enables_protection(self, orchestrator, ledger, validator):
        result = await orchestrator.set_password("4321")

        assert result.operation == "set_password"
        assert await ledger.is_password_required(ALICE)
        await validator.check_password(ALICE, 4321)
        with pytest.raises(WrongPassword):
            await validator.check_password(ALICE, 1)

    @pytest.mark.asyncio
    async def test_set_password_validates(self, orchestrator, ledger):
        with pytest.raises(ValidationError):
            await orchestrator.set_password("secret")
        assert ledger.mutating_calls == []

    @pytest.mark.asyncio
    async def test_toggle_protection(self, orchestrator, ledger):
        await orchestrator.set_password(1)

        result = await orchestrator.set_password_protection(False)

        assert result.message == "Password protection disabled."
        assert not await ledger.is_password_required(ALICE)

    @pytest.mark.asyncio
    async def test_enable_protection_without_password_reverts(self, orchestrator):
        with pytest.raises(LedgerError) as exc_info:
            await orchestrator.set_password_protection(True)
        assert "Password not set" in str(exc_info.value)


class TestDeposit:
    """Public to confidential conversion."""

    @pytest.mark.asyncio
    async def test_approve_then_deposit(self, orchestrator, ledger):
        ledger.mint_underlying(ALICE, 1000 * 10**18)

        approval = await orchestrator.approve_deposit("100")
        result = await orchestrator.deposit("100")

        assert approval.operation == "approve"
        assert result.operation == "deposit"
        assert [call[1] for call in ledger.mutating_calls] == ["approve", "deposit"]
        assert ledger.mutating_calls[0][2] == (100 * 10**18,)
        assert ledger.private_balance(ALICE) == 100
        assert await ledger.underlying_balance(ALICE) == 900 * 10**18

    @pytest.mark.asyncio
    async def test_deposit_without_allowance_reverts(self, orchestrator, ledger):
        ledger.mint_underlying(ALICE, 10 * 10**18)

        with pytest.raises(LedgerError) as exc_info:
            await orchestrator.deposit(5)

        assert "allowance" in str(exc_info.value)
        assert ledger.private_balance(ALICE) == 0

    @pytest.mark.asyncio
    async def test_deposit_validates_amount(self, orchestrator, ledger):
        with pytest.raises(ValidationError):
            await orchestrator.deposit("0")
        assert ledger.mutating_calls == []
