"""web3.py ledger client for the deployed contracts.

Transactions are signed locally with eth_account when a private key is
configured, otherwise sent with eth_sendTransaction for a node-managed
account. Every mutating call waits for its receipt.
"""

import logging
from typing import Any, Optional

from passtoken.errors import LedgerError, ValidationError
from passtoken.ledger.abi import (
    ERC20_ABI,
    PASS_TOKEN_ABI,
    VAULT_ABI,
    WITHDRAWAL_REQUESTED_ARGS,
)
from passtoken.ledger.base import WITHDRAWAL_REQUESTED, LedgerClient
from passtoken.ledger.revert import classify_revert, decode_revert_selector
from passtoken.models import EncryptedHandle, EncryptedInput, LedgerEvent, TxReceipt

logger = logging.getLogger(__name__)


class Web3Ledger(LedgerClient):
    """Ledger client over JSON-RPC using AsyncWeb3."""

    def __init__(
        self,
        account: str,
        rpc_url: str,
        pass_token_address: str,
        vault_address: str,
        underlying_token_address: str,
        private_key: Optional[str] = None,
        chain_id: Optional[int] = None,
        receipt_timeout: int = 120,
        finalize_retry_after: float = 30.0,
    ):
        from web3 import AsyncHTTPProvider, AsyncWeb3

        super().__init__(account)
        self.rpc_url = rpc_url
        self.chain_id = chain_id
        self.receipt_timeout = receipt_timeout
        self.finalize_retry_after = finalize_retry_after
        self.web3 = AsyncWeb3(AsyncHTTPProvider(rpc_url))

        self._signer = None
        if private_key:
            from eth_account import Account
            self._signer = Account.from_key(private_key)
            if self._signer.address.lower() != account.lower():
                raise ValidationError(
                    "account", f"Private key controls {self._signer.address}, not {account}"
                )

        self.account = AsyncWeb3.to_checksum_address(account)
        self.pass_token = self.web3.eth.contract(
            address=AsyncWeb3.to_checksum_address(pass_token_address), abi=PASS_TOKEN_ABI
        )
        self.vault = self.web3.eth.contract(
            address=AsyncWeb3.to_checksum_address(vault_address), abi=VAULT_ABI
        )
        self.underlying = self.web3.eth.contract(
            address=AsyncWeb3.to_checksum_address(underlying_token_address), abi=ERC20_ABI
        )

    @staticmethod
    def _checksum(address: str) -> str:
        from web3 import AsyncWeb3
        return AsyncWeb3.to_checksum_address(address)

    # ---------------------------------------------------------------
    # Read calls
    # ---------------------------------------------------------------

    async def _call(self, fn) -> Any:
        try:
            return await fn.call()
        except Exception as e:
            logger.error(f"Ledger read failed: {e}")
            raise LedgerError(f"Ledger read failed: {e}") from e

    async def is_password_required(self, account: str) -> bool:
        fn = self.pass_token.functions.isPasswordRequired(self._checksum(account))
        return bool(await self._call(fn))

    async def get_password_handle(self, account: str) -> EncryptedHandle:
        fn = self.pass_token.functions.getPasswordHandle(self._checksum(account))
        return int(await self._call(fn))

    async def balance_handle(self, account: str) -> EncryptedHandle:
        fn = self.pass_token.functions.balanceHandle(self._checksum(account))
        return int(await self._call(fn))

    async def underlying_balance(self, account: str) -> int:
        fn = self.underlying.functions.balanceOf(self._checksum(account))
        return int(await self._call(fn))

    async def linked_addresses(self) -> dict:
        """Addresses the contracts point at each other with."""
        return {
            "vault.pToken": await self._call(self.vault.functions.pToken()),
            "vault.uToken": await self._call(self.vault.functions.uToken()),
            "pass_token.vault": await self._call(self.pass_token.functions.vault()),
        }

    async def health_check(self) -> bool:
        try:
            return await self.web3.is_connected()
        except Exception as e:
            logger.warning(f"Ledger health check failed: {e}")
            return False

    # ---------------------------------------------------------------
    # Transactions
    # ---------------------------------------------------------------

    def _revert_error(self, exc: Exception, request_id: Optional[int] = None) -> LedgerError:
        from web3.exceptions import ContractCustomError

        reason = getattr(exc, "message", None) or str(exc)
        if isinstance(exc, ContractCustomError):
            data = getattr(exc, "data", None) or (exc.args[0] if exc.args else None)
            decoded = decode_revert_selector(data if isinstance(data, str) else None)
            if decoded:
                reason = f"{decoded} ({reason})"
        return classify_revert(
            reason, request_id=request_id, retry_after=self.finalize_retry_after
        )

    async def _send(self, name: str, fn, request_id: Optional[int] = None) -> dict:
        """Build, sign, send and confirm a contract call.

        Returns:
            Raw receipt
        """
        from web3.exceptions import ContractLogicError, TimeExhausted

        try:
            if self._signer is not None:
                params = {
                    "from": self.account,
                    "nonce": await self.web3.eth.get_transaction_count(self.account, "pending"),
                }
                if self.chain_id:
                    params["chainId"] = self.chain_id
                tx = await fn.build_transaction(params)
                signed = self._signer.sign_transaction(tx)
                # eth_account renamed rawTransaction to raw_transaction
                raw_tx = getattr(signed, "raw_transaction", None) or signed.rawTransaction
                tx_hash = await self.web3.eth.send_raw_transaction(raw_tx)
            else:
                tx_hash = await fn.transact({"from": self.account})
        except ContractLogicError as e:
            logger.warning(f"{name} reverted during submission: {e}")
            raise self._revert_error(e, request_id) from e
        except Exception as e:
            logger.error(f"{name} submission failed: {e}")
            raise LedgerError(str(e)) from e

        tx_hash_hex = self._hex(tx_hash)
        logger.info(f"{name} submitted: {tx_hash_hex}")

        try:
            receipt = await self.web3.eth.wait_for_transaction_receipt(
                tx_hash, timeout=self.receipt_timeout
            )
        except TimeExhausted as e:
            raise LedgerError(
                f"Transaction {tx_hash_hex} not confirmed after {self.receipt_timeout}s",
                tx_hash=tx_hash_hex,
            ) from e

        if receipt["status"] == 0:
            raise LedgerError(f"Transaction {tx_hash_hex} reverted", tx_hash=tx_hash_hex)

        logger.info(f"{name} confirmed in block {receipt['blockNumber']}")
        return receipt

    @staticmethod
    def _hex(value: Any) -> str:
        if isinstance(value, str):
            return value if value.startswith("0x") else f"0x{value}"
        return "0x" + bytes(value).hex()

    def _to_receipt(self, raw: dict, events: Optional[list[LedgerEvent]] = None) -> TxReceipt:
        return TxReceipt(
            tx_hash=self._hex(raw["transactionHash"]),
            status=int(raw["status"]),
            block_number=raw.get("blockNumber"),
            events=events or [],
        )

    def decode_withdrawal_events(self, raw: dict) -> list[LedgerEvent]:
        """Decode WithdrawalRequested logs, skipping anything unparseable."""
        from web3.logs import DISCARD

        events = []
        for entry in self.vault.events.WithdrawalRequested().process_receipt(raw, errors=DISCARD):
            named = dict(entry["args"])
            args = tuple(named.get(key) for key in WITHDRAWAL_REQUESTED_ARGS)
            events.append(LedgerEvent(WITHDRAWAL_REQUESTED, args, named))
        return events

    async def set_password(self, encrypted_password: EncryptedInput) -> TxReceipt:
        fn = self.pass_token.functions.setPassword(encrypted_password.as_tuple())
        return self._to_receipt(await self._send("setPassword", fn))

    async def set_password_protection(self, enabled: bool) -> TxReceipt:
        fn = self.pass_token.functions.setPasswordProtection(enabled)
        return self._to_receipt(await self._send("setPasswordProtection", fn))

    async def transfer_encrypted(
        self,
        recipient: str,
        encrypted_amount: EncryptedInput,
        encrypted_password: EncryptedInput,
    ) -> TxReceipt:
        fn = self.pass_token.functions.transferEncrypted(
            self._checksum(recipient),
            encrypted_amount.as_tuple(),
            encrypted_password.as_tuple(),
        )
        return self._to_receipt(await self._send("transferEncrypted", fn))

    async def approve_underlying(self, amount_units: int) -> TxReceipt:
        fn = self.underlying.functions.approve(self.vault.address, amount_units)
        return self._to_receipt(await self._send("approve", fn))

    async def deposit(self, amount: int) -> TxReceipt:
        fn = self.vault.functions.deposit(amount)
        return self._to_receipt(await self._send("deposit", fn))

    async def request_withdraw(
        self, amount: int, encrypted_password: EncryptedInput
    ) -> TxReceipt:
        fn = self.vault.functions.requestWithdraw(amount, encrypted_password.as_tuple())
        raw = await self._send("requestWithdraw", fn)
        try:
            events = self.decode_withdrawal_events(raw)
        except Exception as e:
            logger.warning(f"Could not decode withdrawal events: {e}")
            events = []
        return self._to_receipt(raw, events)

    async def finalize_withdraw(self, request_id: int) -> TxReceipt:
        fn = self.vault.functions.finalizeWithdraw(request_id)
        return self._to_receipt(await self._send("finalizeWithdraw", fn, request_id))
