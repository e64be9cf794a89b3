"""Core data model for confidential token operations.

Encrypted values never leave the ledger in plaintext form. The client only
ever sees opaque handles (ciphertext locations) and asks the oracle to
decrypt them on its behalf.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

# Oracle type code for a 32-bit unsigned integer ciphertext
UINT32 = 4

UINT32_MAX = 4294967295

# Handle value meaning "no ciphertext exists yet"
ZERO_HANDLE = 0

# Type alias for ledger ciphertext references
EncryptedHandle = int


class OracleErrorKind(str, Enum):
    """Classification of oracle failures."""

    ORACLE_UNREACHABLE = "oracle_unreachable"
    MALFORMED_CIPHERTEXT = "malformed_ciphertext"
    NOT_INITIALIZED = "not_initialized"
    REQUEST_FAILED = "request_failed"


class WithdrawalState(str, Enum):
    """States of the two-phase withdrawal protocol."""

    IDLE = "idle"                          # Nothing in flight
    REQUESTED = "requested"                # Request mined, request id unknown
    READY_TO_FINALIZE = "ready_to_finalize"  # Request id known, finalize may be attempted
    FINALIZED = "finalized"                # Tokens released


@dataclass(frozen=True)
class RetryPolicy:
    """Fixed-delay retry policy.

    Attributes:
        max_attempts: Total number of attempts (first try included)
        delay: Seconds to wait between attempts, never after the last one
    """
    max_attempts: int = 3
    delay: float = 2.5

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        if self.delay < 0:
            raise ValueError("delay must be >= 0")

    @property
    def max_total_delay(self) -> float:
        """Upper bound on time spent sleeping across all attempts."""
        return (self.max_attempts - 1) * self.delay


@dataclass(frozen=True)
class OracleCapability:
    """An initialized oracle session bound to one account."""
    account: str
    permit_hash: str
    environment: str = "TESTNET"


@dataclass(frozen=True)
class EncryptedInput:
    """Client-side encrypted value in the form the ledger accepts.

    Attributes:
        handle: Ciphertext hash, usable as an EncryptedHandle once stored
        security_zone: Oracle security zone the value was encrypted in
        utype: Oracle type code (4 = uint32)
        signature: Oracle signature over the input
    """
    handle: EncryptedHandle
    security_zone: int = 0
    utype: int = UINT32
    signature: bytes = b""

    def as_tuple(self) -> tuple:
        """Render as the ABI tuple (ctHash, securityZone, utype, signature)."""
        return (self.handle, self.security_zone, self.utype, self.signature)


@dataclass
class EncryptResult:
    """Outcome of a batched encryption request."""
    success: bool
    inputs: list[EncryptedInput] = field(default_factory=list)
    error: Optional[str] = None
    kind: Optional[OracleErrorKind] = None


@dataclass
class UnsealResult:
    """Outcome of a single decryption attempt."""
    success: bool
    value: Optional[int] = None
    error: Optional[str] = None
    kind: Optional[OracleErrorKind] = None

    @classmethod
    def ok(cls, value: int) -> "UnsealResult":
        return cls(success=True, value=value)

    @classmethod
    def fail(cls, error: str, kind: OracleErrorKind) -> "UnsealResult":
        return cls(success=False, error=error, kind=kind)


@dataclass
class TransferIntent:
    """Validated encrypted transfer. Consumed once by a submission."""
    recipient: str
    amount: int
    password: int


@dataclass
class WithdrawIntent:
    """Validated withdrawal request. Amount travels in plaintext."""
    amount: int
    password: int


@dataclass
class WithdrawalRequest:
    """A submitted withdrawal awaiting finalization.

    Amount and password handle are unknown for requests resumed from a
    manually entered id.
    """
    request_id: Optional[int] = None
    amount: Optional[int] = None
    encrypted_password: Optional[EncryptedHandle] = None
    tx_hash: Optional[str] = None


@dataclass
class LedgerEvent:
    """Decoded event emitted by a ledger transaction."""
    name: str
    args: tuple = ()
    named: dict = field(default_factory=dict)


@dataclass
class TxReceipt:
    """Confirmed ledger transaction."""
    tx_hash: str
    status: int = 1
    block_number: Optional[int] = None
    events: list[LedgerEvent] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.status == 1


@dataclass
class OperationResult:
    """Result of a completed orchestrated operation."""
    operation: str
    tx_hash: str
    message: str = ""
    receipt: Optional[TxReceipt] = None


@dataclass
class WithdrawalOutcome:
    """Result of a withdrawal request submission.

    When the request id could not be recovered from the receipt,
    ``needs_manual_id`` is set and the caller must supply the id before
    finalizing.
    """
    request: WithdrawalRequest
    state: WithdrawalState
    message: str = ""

    @property
    def needs_manual_id(self) -> bool:
        return self.request.request_id is None


@dataclass
class BalanceSnapshot:
    """Public and private balances of one account."""
    account: str
    public_balance: Optional[int] = None
    private_balance: Optional[int] = None
    password_enabled: Optional[bool] = None
    errors: list[str] = field(default_factory=list)
