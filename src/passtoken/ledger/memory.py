"""In-memory simulation of the confidential token deployment.

Behaves like the FHE contracts: encrypted arithmetic cannot revert on a
hidden condition, so a wrong password or an insufficient balance moves 0
tokens instead of failing. Withdrawal amounts stay undecrypted until
mark_decrypted() is called (or auto_decrypt is set), and finalizing earlier
reverts with "Decryption not ready".
"""

import logging
import secrets
from dataclasses import dataclass, field
from typing import Optional

from passtoken.errors import LedgerError, MalformedCiphertextError
from passtoken.ledger.base import WITHDRAWAL_REQUESTED, LedgerClient
from passtoken.ledger.revert import classify_revert
from passtoken.models import (
    ZERO_HANDLE,
    EncryptedHandle,
    EncryptedInput,
    LedgerEvent,
    TxReceipt,
)
from passtoken.oracle.mock import MockOracle

logger = logging.getLogger(__name__)


@dataclass
class PendingWithdrawal:
    """Vault-side record of a withdrawal request."""
    request_id: int
    owner: str
    amount_handle: EncryptedHandle
    decrypted: bool = False
    finalized: bool = False


@dataclass
class LedgerState:
    """Shared contract storage for all in-memory ledger views."""
    oracle: MockOracle
    underlying_decimals: int = 18
    auto_decrypt: bool = False
    password_handles: dict[str, EncryptedHandle] = field(default_factory=dict)
    protection: dict[str, bool] = field(default_factory=dict)
    balances: dict[str, EncryptedHandle] = field(default_factory=dict)
    underlying: dict[str, int] = field(default_factory=dict)
    allowances: dict[str, int] = field(default_factory=dict)
    vault_reserve: int = 0
    withdrawals: dict[int, PendingWithdrawal] = field(default_factory=dict)
    next_request_id: int = 1
    block_number: int = 0
    mutating_calls: list[tuple[str, str, tuple]] = field(default_factory=list)


class InMemoryLedger(LedgerClient):
    """Ledger client backed by a shared in-memory state."""

    def __init__(
        self,
        account: str,
        oracle: Optional[MockOracle] = None,
        state: Optional[LedgerState] = None,
        underlying_decimals: int = 18,
        auto_decrypt: bool = False,
        finalize_retry_after: float = 30.0,
    ):
        super().__init__(account)
        if state is None:
            state = LedgerState(
                oracle=oracle or MockOracle(),
                underlying_decimals=underlying_decimals,
                auto_decrypt=auto_decrypt,
            )
        self.state = state
        self.finalize_retry_after = finalize_retry_after

    @property
    def oracle(self) -> MockOracle:
        return self.state.oracle

    @property
    def mutating_calls(self) -> list[tuple[str, str, tuple]]:
        """(sender, method, args) of every mutating call issued."""
        return self.state.mutating_calls

    def for_account(self, account: str) -> "InMemoryLedger":
        """Return a client for another sender over the same state."""
        return InMemoryLedger(
            account,
            state=self.state,
            finalize_retry_after=self.finalize_retry_after,
        )

    # ---------------------------------------------------------------
    # Simulation helpers
    # ---------------------------------------------------------------

    def mint_underlying(self, account: str, units: int) -> None:
        """Credit public ERC20 units (test faucet)."""
        key = account.lower()
        self.state.underlying[key] = self.state.underlying.get(key, 0) + units

    def set_private_balance(self, account: str, amount: int) -> EncryptedHandle:
        """Overwrite an encrypted balance with a fresh ciphertext."""
        handle = self.oracle.store(amount)
        self.state.balances[account.lower()] = handle
        return handle

    def private_balance(self, account: str) -> int:
        """Plaintext balance, read directly from the mock oracle."""
        handle = self.state.balances.get(account.lower(), ZERO_HANDLE)
        if handle == ZERO_HANDLE:
            return 0
        return self.oracle.reveal(handle)

    def mark_decrypted(self, request_id: int) -> None:
        """Simulate the oracle finishing decryption of a withdrawal amount."""
        self.state.withdrawals[request_id].decrypted = True

    # ---------------------------------------------------------------
    # Internals
    # ---------------------------------------------------------------

    def _record(self, method: str, *args) -> None:
        self.state.mutating_calls.append((self.account, method, args))

    def _receipt(self, events: Optional[list[LedgerEvent]] = None) -> TxReceipt:
        self.state.block_number += 1
        return TxReceipt(
            tx_hash=f"0x{secrets.token_hex(32)}",
            status=1,
            block_number=self.state.block_number,
            events=events or [],
        )

    def _revert(self, reason: str, request_id: Optional[int] = None) -> LedgerError:
        logger.info(f"[SIMULATED] Revert: {reason}")
        return classify_revert(
            reason, request_id=request_id, retry_after=self.finalize_retry_after
        )

    def _plaintext(self, encrypted: EncryptedInput) -> int:
        try:
            return self.oracle.reveal(encrypted.handle)
        except MalformedCiphertextError:
            raise self._revert("InvalidEncryptedInput")

    def _password_ok(self, owner: str, encrypted_password: EncryptedInput) -> bool:
        supplied = self._plaintext(encrypted_password)
        if not self.state.protection.get(owner, False):
            return True
        stored_handle = self.state.password_handles.get(owner, ZERO_HANDLE)
        if stored_handle == ZERO_HANDLE:
            return False
        return self.oracle.reveal(stored_handle) == supplied

    def _balance_of(self, owner: str) -> int:
        handle = self.state.balances.get(owner, ZERO_HANDLE)
        return 0 if handle == ZERO_HANDLE else self.oracle.reveal(handle)

    def _units(self, amount: int) -> int:
        return amount * (10 ** self.state.underlying_decimals)

    # ---------------------------------------------------------------
    # Read calls
    # ---------------------------------------------------------------

    async def is_password_required(self, account: str) -> bool:
        return self.state.protection.get(account.lower(), False)

    async def get_password_handle(self, account: str) -> EncryptedHandle:
        return self.state.password_handles.get(account.lower(), ZERO_HANDLE)

    async def balance_handle(self, account: str) -> EncryptedHandle:
        return self.state.balances.get(account.lower(), ZERO_HANDLE)

    async def underlying_balance(self, account: str) -> int:
        return self.state.underlying.get(account.lower(), 0)

    # ---------------------------------------------------------------
    # Mutating calls
    # ---------------------------------------------------------------

    async def set_password(self, encrypted_password: EncryptedInput) -> TxReceipt:
        self._record("setPassword", encrypted_password.handle)
        self._plaintext(encrypted_password)

        sender = self.account.lower()
        self.state.password_handles[sender] = encrypted_password.handle
        self.state.protection[sender] = True
        return self._receipt([LedgerEvent("PasswordSet", (self.account,))])

    async def set_password_protection(self, enabled: bool) -> TxReceipt:
        self._record("setPasswordProtection", enabled)

        sender = self.account.lower()
        if enabled and sender not in self.state.password_handles:
            raise self._revert("Password not set")
        self.state.protection[sender] = enabled
        return self._receipt([LedgerEvent("PasswordProtectionChanged", (self.account, enabled))])

    async def transfer_encrypted(
        self,
        recipient: str,
        encrypted_amount: EncryptedInput,
        encrypted_password: EncryptedInput,
    ) -> TxReceipt:
        self._record(
            "transferEncrypted", recipient, encrypted_amount.handle, encrypted_password.handle
        )
        sender = self.account.lower()
        receiver = recipient.lower()

        amount = self._plaintext(encrypted_amount)
        balance = self._balance_of(sender)
        ok = self._password_ok(sender, encrypted_password) and amount <= balance
        moved = amount if ok else 0

        self.state.balances[sender] = self.oracle.store(balance - moved)
        self.state.balances[receiver] = self.oracle.store(self._balance_of(receiver) + moved)
        return self._receipt([LedgerEvent("Transfer", (self.account, recipient))])

    async def approve_underlying(self, amount_units: int) -> TxReceipt:
        self._record("approve", amount_units)
        self.state.allowances[self.account.lower()] = amount_units
        return self._receipt([LedgerEvent("Approval", (self.account, amount_units))])

    async def deposit(self, amount: int) -> TxReceipt:
        self._record("deposit", amount)
        sender = self.account.lower()
        units = self._units(amount)

        if self.state.allowances.get(sender, 0) < units:
            raise self._revert("ERC20: insufficient allowance")
        if self.state.underlying.get(sender, 0) < units:
            raise self._revert("ERC20: transfer amount exceeds balance")

        self.state.allowances[sender] -= units
        self.state.underlying[sender] -= units
        self.state.vault_reserve += units
        self.state.balances[sender] = self.oracle.store(self._balance_of(sender) + amount)
        return self._receipt([LedgerEvent("Deposited", (self.account, amount))])

    async def request_withdraw(
        self, amount: int, encrypted_password: EncryptedInput
    ) -> TxReceipt:
        self._record("requestWithdraw", amount, encrypted_password.handle)
        sender = self.account.lower()

        balance = self._balance_of(sender)
        ok = self._password_ok(sender, encrypted_password) and amount <= balance
        effective = amount if ok else 0
        self.state.balances[sender] = self.oracle.store(balance - effective)

        request_id = self.state.next_request_id
        self.state.next_request_id += 1
        self.state.withdrawals[request_id] = PendingWithdrawal(
            request_id=request_id,
            owner=sender,
            amount_handle=self.oracle.store(effective),
            decrypted=self.state.auto_decrypt,
        )
        logger.info(f"[SIMULATED] Withdrawal request #{request_id} for {amount}")
        return self._receipt(
            [
                LedgerEvent(
                    WITHDRAWAL_REQUESTED,
                    (request_id, self.account, amount),
                    {"requestId": request_id, "user": self.account, "amount": amount},
                )
            ]
        )

    async def finalize_withdraw(self, request_id: int) -> TxReceipt:
        self._record("finalizeWithdraw", request_id)

        pending = self.state.withdrawals.get(request_id)
        if pending is None:
            raise self._revert("Invalid request", request_id)
        if pending.owner != self.account.lower():
            raise self._revert("Not request owner", request_id)
        if pending.finalized:
            raise self._revert("Already finalized", request_id)
        if not pending.decrypted:
            raise self._revert("Decryption not ready", request_id)

        amount = self.oracle.reveal(pending.amount_handle)
        units = self._units(amount)
        pending.finalized = True
        self.state.vault_reserve -= units
        self.state.underlying[pending.owner] = self.state.underlying.get(pending.owner, 0) + units
        return self._receipt(
            [LedgerEvent("WithdrawalFinalized", (request_id, self.account, amount))]
        )
