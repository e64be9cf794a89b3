"""Structural validation of user-supplied intent fields.

All checks here are local and run before any network call.
"""

import re
from typing import Union

from passtoken.errors import ValidationError
from passtoken.models import UINT32_MAX, TransferIntent, WithdrawIntent

EVM_ADDRESS_RE = re.compile(r"^0x[a-fA-F0-9]{40}$")

RawNumber = Union[int, str, None]


def is_whole_number(text: str) -> bool:
    """Check text is made of ASCII digits only.

    str.isdigit() alone also accepts superscripts such as "²", which int()
    rejects.
    """
    return text.isascii() and text.isdigit()


def _parse_uint(field: str, raw: RawNumber, missing: str) -> int:
    if raw is None:
        raise ValidationError(field, missing)
    if isinstance(raw, bool):
        raise ValidationError(field, "must be a whole number")
    if isinstance(raw, int):
        return raw

    text = str(raw).strip()
    if not text:
        raise ValidationError(field, missing)
    if not is_whole_number(text):
        raise ValidationError(field, "must be a whole number")
    return int(text)


def parse_amount(raw: RawNumber) -> int:
    """Parse an amount into the ledger's 32-bit encrypted integer domain.

    Args:
        raw: Amount as entered (string or int)

    Returns:
        Amount in [1, 4294967295]

    Raises:
        ValidationError: If missing, not a whole number or out of range
    """
    amount = _parse_uint("amount", raw, "Input amount")
    if amount <= 0 or amount > UINT32_MAX:
        raise ValidationError(
            "amount", "Amount must be a whole number between 1 and ~4.2 billion"
        )
    return amount


def parse_password(raw: RawNumber) -> int:
    """Parse a numeric password that fits a uint32."""
    password = _parse_uint("password", raw, "Input password")
    if password < 0 or password > UINT32_MAX:
        raise ValidationError("password", "Password must be numeric and fit in 32 bits")
    return password


def validate_address(address: str) -> str:
    """Check EVM address format and return it stripped."""
    if not address or not isinstance(address, str) or not address.strip():
        raise ValidationError("recipient", "Input recipient address")

    address = address.strip()
    if not EVM_ADDRESS_RE.match(address):
        raise ValidationError("recipient", "Invalid EVM address format")
    return address


def build_transfer_intent(recipient: str, amount: RawNumber, password: RawNumber) -> TransferIntent:
    """Validate raw transfer input in field order: recipient, amount, password."""
    return TransferIntent(
        recipient=validate_address(recipient),
        amount=parse_amount(amount),
        password=parse_password(password),
    )


def build_withdraw_intent(amount: RawNumber, password: RawNumber) -> WithdrawIntent:
    """Validate raw withdrawal input."""
    return WithdrawIntent(
        amount=parse_amount(amount),
        password=parse_password(password),
    )
