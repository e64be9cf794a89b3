"""Encryption oracle backends.

- HttpOracle: remote oracle gateway
- MockOracle: in-memory ciphertext store for tests and mock mode
"""

from passtoken.oracle.base import OracleBackend
from passtoken.oracle.factory import get_oracle_backend
from passtoken.oracle.mock import MockOracle

__all__ = [
    "OracleBackend",
    "MockOracle",
    "get_oracle_backend",
]
