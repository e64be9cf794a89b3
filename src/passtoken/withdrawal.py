"""Two-phase asynchronous withdrawal.

Phase one submits requestWithdraw(amount, encryptedPassword). The vault asks
the oracle to decrypt the withdrawn amount, which completes some time later
with no notification to the client. Phase two submits
finalizeWithdraw(requestId); until the oracle is done the vault reverts with
"not ready", which is surfaced as NotReadyError.

    IDLE --request--> REQUESTED          (request id not found in receipt)
    IDLE --request--> READY_TO_FINALIZE  (request id captured)
    REQUESTED --provide_request_id--> READY_TO_FINALIZE
    READY_TO_FINALIZE --finalize--> FINALIZED
    READY_TO_FINALIZE --finalize (not ready)--> READY_TO_FINALIZE
    REQUESTED / READY_TO_FINALIZE --abandon--> IDLE
"""

import asyncio
import logging
from typing import Optional

from passtoken.errors import InvalidStateError, NotReadyError, ValidationError
from passtoken.ledger.base import extract_request_id
from passtoken.models import (
    OperationResult,
    RetryPolicy,
    WithdrawalOutcome,
    WithdrawalRequest,
    WithdrawalState,
)
from passtoken.orchestrator import TransferOrchestrator
from passtoken.unsealer import Sleeper
from passtoken.validation import RawNumber, build_withdraw_intent, is_whole_number

logger = logging.getLogger(__name__)

IN_FLIGHT = (WithdrawalState.REQUESTED, WithdrawalState.READY_TO_FINALIZE)


class WithdrawalStateMachine:
    """Drives request and finalize for one account."""

    def __init__(
        self,
        orchestrator: TransferOrchestrator,
        finalize_retry_after: float = 30.0,
        sleep: Sleeper = asyncio.sleep,
    ):
        self.orchestrator = orchestrator
        self.finalize_retry_after = finalize_retry_after
        self._sleep = sleep
        self.state = WithdrawalState.IDLE
        self.request: Optional[WithdrawalRequest] = None

    @property
    def account(self) -> str:
        return self.orchestrator.account

    @property
    def request_id(self) -> Optional[int]:
        return self.request.request_id if self.request else None

    def _transition(self, new_state: WithdrawalState) -> None:
        logger.debug(f"Withdrawal state {self.state.value} -> {new_state.value}")
        self.state = new_state

    async def request_withdraw(
        self, amount: RawNumber, password: RawNumber
    ) -> WithdrawalOutcome:
        """Submit phase one.

        Only the password is pre-checked: the amount travels in plaintext and
        the vault enforces the balance itself.

        Raises:
            InvalidStateError: Another withdrawal is in flight
            ValidationError: Bad amount or password
            PreflightError: Password check failed
            EncryptionError: Password could not be encrypted
            LedgerError: Request transaction failed
        """
        if self.state in IN_FLIGHT:
            raise InvalidStateError(
                "A withdrawal is already in flight. Finalize or abandon it first."
            )

        intent = build_withdraw_intent(amount, password)

        with self.orchestrator.holding(intent):
            await self.orchestrator.validator.check_password(self.account, intent.password)
            encrypted_password, = await self.orchestrator.encrypt_fields([intent.password])
            receipt = await self.orchestrator.ledger.request_withdraw(
                intent.amount, encrypted_password
            )

        request_id = extract_request_id(receipt)
        self.request = WithdrawalRequest(
            request_id=request_id,
            amount=intent.amount,
            encrypted_password=encrypted_password.handle,
            tx_hash=receipt.tx_hash,
        )

        if request_id is None:
            self._transition(WithdrawalState.REQUESTED)
            message = "Request submitted! Enter the request ID to finalize."
            logger.warning(f"Withdrawal {receipt.tx_hash} submitted without a readable request id")
        else:
            self._transition(WithdrawalState.READY_TO_FINALIZE)
            message = f"Request #{request_id} submitted! Wait ~1 min for decryption."
            logger.info(f"Withdrawal request #{request_id} captured from {receipt.tx_hash}")

        return WithdrawalOutcome(request=self.request, state=self.state, message=message)

    def provide_request_id(self, request_id: RawNumber) -> None:
        """Set the request id by hand.

        Completes a request whose id could not be parsed, or resumes a
        request made in an earlier session.
        """
        if request_id is None or str(request_id).strip() == "":
            raise ValidationError("request_id", "Enter a Request ID")
        text = str(request_id).strip()
        if not is_whole_number(text):
            raise ValidationError("request_id", "Request ID must be a whole number")

        value = int(text)
        if self.state in IN_FLIGHT and self.request is not None:
            self.request.request_id = value
        else:
            self.request = WithdrawalRequest(request_id=value)
        self._transition(WithdrawalState.READY_TO_FINALIZE)

    async def finalize_withdraw(self, request_id: Optional[RawNumber] = None) -> OperationResult:
        """Submit phase two once.

        Args:
            request_id: Id to finalize; defaults to the captured one

        Raises:
            NotReadyError: Oracle still decrypting; state is unchanged
            InvalidStateError: No request id known
            LedgerError: Finalize transaction failed
        """
        if request_id is not None:
            self.provide_request_id(request_id)

        if self.state == WithdrawalState.REQUESTED:
            raise InvalidStateError("Request ID unknown. Enter it to finalize.")
        if self.state != WithdrawalState.READY_TO_FINALIZE:
            raise InvalidStateError(f"Nothing to finalize (state: {self.state.value})")

        current_id = self.request.request_id
        try:
            receipt = await self.orchestrator.ledger.finalize_withdraw(current_id)
        except NotReadyError as e:
            if e.request_id is None:
                e.request_id = current_id
            logger.info(f"Withdrawal #{current_id} not ready: {e.guidance}")
            raise

        self._transition(WithdrawalState.FINALIZED)
        logger.info(f"Withdrawal #{current_id} finalized: {receipt.tx_hash}")
        return OperationResult(
            operation="finalize_withdraw",
            tx_hash=receipt.tx_hash,
            message="Withdrawal finalized! Tokens sent to your wallet.",
            receipt=receipt,
        )

    async def finalize_with_polling(
        self,
        policy: Optional[RetryPolicy] = None,
        request_id: Optional[RawNumber] = None,
    ) -> OperationResult:
        """Finalize, retrying while the vault reports not ready.

        Bounded by ``policy``; defaults to 10 attempts spaced by the
        finalize wait. Any other error stops immediately.
        """
        policy = policy or RetryPolicy(max_attempts=10, delay=self.finalize_retry_after)

        for attempt in range(1, policy.max_attempts + 1):
            try:
                return await self.finalize_withdraw(request_id if attempt == 1 else None)
            except NotReadyError:
                if attempt >= policy.max_attempts:
                    raise
                logger.info(
                    f"Finalize attempt {attempt}/{policy.max_attempts} not ready, "
                    f"waiting {policy.delay}s"
                )
                await self._sleep(policy.delay)

        raise InvalidStateError("Finalize polling exhausted")

    def abandon(self) -> None:
        """Forget the in-flight request and return to IDLE."""
        if self.state == WithdrawalState.FINALIZED:
            raise InvalidStateError("Withdrawal already finalized")
        if self.state in IN_FLIGHT:
            logger.info(f"Abandoning withdrawal request {self.request_id}")
        self.request = None
        self._transition(WithdrawalState.IDLE)
