"""Encrypted ledger clients.

- Web3Ledger: deployed contracts over JSON-RPC
- InMemoryLedger: simulation backed by the mock oracle
"""

from passtoken.ledger.base import LedgerClient, extract_request_id
from passtoken.ledger.factory import get_ledger
from passtoken.ledger.memory import InMemoryLedger

__all__ = [
    "LedgerClient",
    "InMemoryLedger",
    "extract_request_id",
    "get_ledger",
]
