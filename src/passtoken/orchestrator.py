"""Orchestration of single-transaction confidential operations.

Every operation follows the same order:
1. Structural validation of the input fields
2. Pre-flight checks (transfers only): password, then balance
3. One batched encryption of the fields the ledger takes encrypted
4. One mutating ledger call
5. Wait for confirmation, then drop the cached plaintext

A failure at any step stops the flow before the next one, so a failed
operation never leaves a partial mutating call behind.
"""

import logging
from contextlib import contextmanager
from typing import Any, Optional, Sequence

from passtoken.errors import EncryptionError
from passtoken.gateway import EncryptionGateway
from passtoken.ledger.base import LedgerClient
from passtoken.models import UINT32, EncryptedInput, OperationResult
from passtoken.preflight import PreflightValidator
from passtoken.validation import (
    RawNumber,
    build_transfer_intent,
    parse_amount,
    parse_password,
)

logger = logging.getLogger(__name__)


class TransferOrchestrator:
    """Runs password, protection, transfer and deposit operations for one account."""

    def __init__(
        self,
        account: str,
        ledger: LedgerClient,
        gateway: EncryptionGateway,
        validator: PreflightValidator,
        security_zone: int = 0,
        underlying_decimals: int = 18,
    ):
        self.account = account
        self.ledger = ledger
        self.gateway = gateway
        self.validator = validator
        self.security_zone = security_zone
        self.underlying_decimals = underlying_decimals
        self._active_intent: Optional[Any] = None

    @property
    def active_intent(self) -> Optional[Any]:
        """Plaintext intent of the operation in flight, if any."""
        return self._active_intent

    @contextmanager
    def holding(self, intent: Any):
        """Keep ``intent`` as the in-flight plaintext for the block's duration."""
        self._active_intent = intent
        try:
            yield intent
        finally:
            self._active_intent = None

    async def encrypt_fields(self, values: Sequence[int]) -> list[EncryptedInput]:
        """Encrypt plaintext fields in one request, preserving order.

        Raises:
            EncryptionError: If the oracle is not ready or the request failed
        """
        result = await self.gateway.encrypt(
            values,
            security_zone=self.security_zone,
            utype=UINT32,
            account=self.account,
        )
        if not result.success:
            raise EncryptionError(f"Encryption failed: {result.error}", result.kind)
        return result.inputs

    async def set_password(self, password: RawNumber) -> OperationResult:
        """Store a new encrypted password. Enables protection."""
        value = parse_password(password)

        with self.holding(value):
            encrypted_password, = await self.encrypt_fields([value])
            receipt = await self.ledger.set_password(encrypted_password)

        logger.info(f"Password set for {self.account}: {receipt.tx_hash}")
        return OperationResult(
            operation="set_password",
            tx_hash=receipt.tx_hash,
            message="Password set. Protection enabled.",
            receipt=receipt,
        )

    async def set_password_protection(self, enabled: bool) -> OperationResult:
        """Turn password protection on or off."""
        receipt = await self.ledger.set_password_protection(bool(enabled))

        state = "enabled" if enabled else "disabled"
        logger.info(f"Password protection {state} for {self.account}: {receipt.tx_hash}")
        return OperationResult(
            operation="set_password_protection",
            tx_hash=receipt.tx_hash,
            message=f"Password protection {state}.",
            receipt=receipt,
        )

    async def transfer(
        self, recipient: str, amount: RawNumber, password: RawNumber
    ) -> OperationResult:
        """Send an encrypted amount to ``recipient``.

        Raises:
            ValidationError: Bad recipient, amount or password
            PreflightError: Password or balance check failed
            EncryptionError: Oracle could not encrypt the fields
            LedgerError: Transaction reverted or did not confirm
        """
        intent = build_transfer_intent(recipient, amount, password)

        with self.holding(intent):
            await self.validator.check_password(self.account, intent.password)
            await self.validator.check_balance(self.account, intent.amount)

            encrypted_amount, encrypted_password = await self.encrypt_fields(
                [intent.amount, intent.password]
            )
            receipt = await self.ledger.transfer_encrypted(
                intent.recipient, encrypted_amount, encrypted_password
            )

        logger.info(
            f"Encrypted transfer of {intent.amount} to {intent.recipient} confirmed: "
            f"{receipt.tx_hash}"
        )
        return OperationResult(
            operation="transfer",
            tx_hash=receipt.tx_hash,
            message="Transfer Successful!",
            receipt=receipt,
        )

    async def approve_deposit(self, amount: RawNumber) -> OperationResult:
        """Allow the vault to pull ``amount`` whole tokens of the public ERC20."""
        value = parse_amount(amount)
        units = value * (10 ** self.underlying_decimals)

        receipt = await self.ledger.approve_underlying(units)
        logger.info(f"Approved {value} tokens for deposit: {receipt.tx_hash}")
        return OperationResult(
            operation="approve",
            tx_hash=receipt.tx_hash,
            message=f"Approved {value} tokens for the vault.",
            receipt=receipt,
        )

    async def deposit(self, amount: RawNumber) -> OperationResult:
        """Convert public tokens into confidential ones.

        The amount is sent in plaintext; the vault encrypts it on chain.
        """
        value = parse_amount(amount)

        with self.holding(value):
            receipt = await self.ledger.deposit(value)

        logger.info(f"Deposit of {value} confirmed: {receipt.tx_hash}")
        return OperationResult(
            operation="deposit",
            tx_hash=receipt.tx_hash,
            message="Conversion successful! You now have encrypted tokens.",
            receipt=receipt,
        )
