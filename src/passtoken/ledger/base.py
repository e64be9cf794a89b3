"""Base interface for the encrypted ledger.

The ledger is three contracts seen through one client bound to a sender:
- password-gated confidential token (password registry + encrypted balances)
- vault converting the public ERC20 into confidential tokens and back
- the public ERC20 itself (approval and balance only)

Mutating calls return a confirmed TxReceipt or raise LedgerError.
"""

import logging
from abc import ABC, abstractmethod
from typing import Optional

from passtoken.models import EncryptedHandle, EncryptedInput, LedgerEvent, TxReceipt

logger = logging.getLogger(__name__)

WITHDRAWAL_REQUESTED = "WithdrawalRequested"


class LedgerClient(ABC):
    """Abstract base class for ledger clients."""

    def __init__(self, account: str):
        """Initialize client.

        Args:
            account: Sender of every mutating call
        """
        self.account = account

    # ---------------------------------------------------------------
    # Read calls
    # ---------------------------------------------------------------

    @abstractmethod
    async def is_password_required(self, account: str) -> bool:
        """Whether password protection is enabled for account."""
        pass

    @abstractmethod
    async def get_password_handle(self, account: str) -> EncryptedHandle:
        """Handle of the account's encrypted password (0 if unset)."""
        pass

    @abstractmethod
    async def balance_handle(self, account: str) -> EncryptedHandle:
        """Handle of the account's encrypted balance (0 if none)."""
        pass

    @abstractmethod
    async def underlying_balance(self, account: str) -> int:
        """Public ERC20 balance in token base units."""
        pass

    # ---------------------------------------------------------------
    # Mutating calls
    # ---------------------------------------------------------------

    @abstractmethod
    async def set_password(self, encrypted_password: EncryptedInput) -> TxReceipt:
        pass

    @abstractmethod
    async def set_password_protection(self, enabled: bool) -> TxReceipt:
        pass

    @abstractmethod
    async def transfer_encrypted(
        self,
        recipient: str,
        encrypted_amount: EncryptedInput,
        encrypted_password: EncryptedInput,
    ) -> TxReceipt:
        pass

    @abstractmethod
    async def approve_underlying(self, amount_units: int) -> TxReceipt:
        """Approve the vault to pull ``amount_units`` of the public ERC20."""
        pass

    @abstractmethod
    async def deposit(self, amount: int) -> TxReceipt:
        pass

    @abstractmethod
    async def request_withdraw(
        self, amount: int, encrypted_password: EncryptedInput
    ) -> TxReceipt:
        pass

    @abstractmethod
    async def finalize_withdraw(self, request_id: int) -> TxReceipt:
        """Claim a withdrawal.

        Raises:
            NotReadyError: The oracle has not decrypted the amount yet
            LedgerError: Any other revert
        """
        pass

    async def health_check(self) -> bool:
        """Check the ledger answers read calls."""
        return True


def find_event(receipt: TxReceipt, name: str) -> Optional[LedgerEvent]:
    """Return the first event called ``name`` in a receipt."""
    for event in receipt.events:
        if event.name == name:
            return event
    return None


def extract_request_id(receipt: TxReceipt) -> Optional[int]:
    """Read the request id from a WithdrawalRequested event.

    The id is the event's first argument. Returns None when the event is
    missing or its first argument is not an integer.
    """
    event = find_event(receipt, WITHDRAWAL_REQUESTED)
    if event is None:
        logger.warning(f"No {WITHDRAWAL_REQUESTED} event in tx {receipt.tx_hash}")
        return None

    try:
        return int(event.args[0])
    except (IndexError, TypeError, ValueError) as e:
        logger.warning(f"Could not parse request id from tx {receipt.tx_hash}: {e}")
        return None
