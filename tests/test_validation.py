"""Tests for input validation and error messages."""

import pytest

from passtoken.errors import (
    InsufficientBalance,
    NotReadyError,
    ValidationError,
    retry_after_text,
)
from passtoken.models import UINT32_MAX
from passtoken.validation import (
    build_withdraw_intent,
    parse_amount,
    parse_password,
    validate_address,
)


class TestParsing:
    """Numeric field parsing."""

    @pytest.mark.parametrize("raw,expected", [("1", 1), (" 42 ", 42), (7, 7), (str(UINT32_MAX), UINT32_MAX)])
    def test_amounts(self, raw, expected):
        assert parse_amount(raw) == expected

    @pytest.mark.parametrize(
        "raw", [None, "", "0", 0, -1, True, "1e3", "²", "1²", str(UINT32_MAX + 1)]
    )
    def test_bad_amounts(self, raw):
        with pytest.raises(ValidationError) as exc_info:
            parse_amount(raw)
        assert exc_info.value.field == "amount"

    def test_missing_amount_message(self):
        with pytest.raises(ValidationError, match="Input amount"):
            parse_amount("  ")

    def test_superscript_password_rejected(self):
        with pytest.raises(ValidationError, match="whole number"):
            parse_password("¹²")

    def test_password_zero_allowed(self):
        assert parse_password("0") == 0

    def test_missing_password_message(self):
        with pytest.raises(ValidationError, match="Input password"):
            parse_password(None)

    def test_withdraw_intent(self):
        intent = build_withdraw_intent("25", "1234")
        assert (intent.amount, intent.password) == (25, 1234)


class TestAddress:
    """Recipient address checks."""

    def test_strips_whitespace(self):
        address = "0x" + "ab" * 20
        assert validate_address(f"  {address} ") == address

    @pytest.mark.parametrize("raw", ["", "   ", None, "ab" * 21, "0x" + "zz" * 20])
    def test_rejects(self, raw):
        with pytest.raises(ValidationError) as exc_info:
            validate_address(raw)
        assert exc_info.value.field == "recipient"


class TestErrorMessages:
    """User-facing error text."""

    def test_insufficient_balance_message(self):
        error = InsufficientBalance(requested=60, available=50)
        assert str(error) == "Insufficient private balance: have 50, tried to use 60"

    def test_not_ready_guidance(self):
        assert NotReadyError(retry_after=45).guidance == (
            "Decryption not ready yet. Please wait another 45s."
        )

    @pytest.mark.parametrize("seconds,text", [(30, "30s"), (30.0, "30s"), (2.5, "2.5s")])
    def test_retry_after_text(self, seconds, text):
        assert retry_after_text(seconds) == text
