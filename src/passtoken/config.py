"""Application configuration using pydantic-settings.

Points the client at the confidential token deployment (password registry
token, vault, underlying ERC20) and the encryption oracle.
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from passtoken.models import RetryPolicy


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ======================
    # Environment
    # ======================
    environment: str = Field(default="development", description="Runtime environment")
    debug: bool = Field(default=False, description="Enable debug logging")
    mock_mode: bool = Field(
        default=False, description="Use the in-memory oracle and ledger (no network)"
    )

    # ======================
    # Chain
    # ======================
    rpc_url: str = Field(
        default="https://ethereum-sepolia-rpc.publicnode.com",
        description="JSON-RPC endpoint of the ledger chain",
    )
    chain_id: int = Field(default=11155111, description="Chain ID (Sepolia)")
    private_key: Optional[str] = Field(
        default=None, description="Hex private key of the operating account"
    )
    receipt_timeout: int = Field(
        default=120, description="Seconds to wait for a transaction receipt"
    )

    # ======================
    # Contracts
    # ======================
    pass_token_address: str = Field(
        default="0x444FF26156e68D7A04fA1930e0faB5f648f300Ef",
        description="Password-gated confidential token",
    )
    vault_address: str = Field(
        default="0x1dA665014bC4c66bAE44585f22709Cf2DBa3eE69",
        description="Deposit/withdraw vault",
    )
    underlying_token_address: str = Field(
        default="0x24c04a7dEAbBE94708548F234456b84C6AB726AF",
        description="Public ERC20 backing the confidential token",
    )
    underlying_decimals: int = Field(default=18, description="Underlying ERC20 decimals")

    # ======================
    # Encryption oracle
    # ======================
    oracle_url: str = Field(
        default="https://testnet-cofhe.fhenix.zone",
        description="Encryption/decryption oracle base URL",
    )
    oracle_environment: str = Field(default="TESTNET", description="Oracle environment")
    oracle_timeout: float = Field(default=30.0, description="Oracle HTTP timeout in seconds")
    security_zone: int = Field(default=0, description="Oracle security zone")

    # ======================
    # Retry behaviour
    # ======================
    unseal_max_attempts: int = Field(
        default=3, description="Decryption attempts before giving up"
    )
    unseal_retry_delay: float = Field(
        default=2.5, description="Seconds between decryption attempts"
    )
    finalize_retry_after: float = Field(
        default=30.0, description="Suggested wait before retrying finalize"
    )

    @property
    def retry_policy(self) -> RetryPolicy:
        """Decryption retry policy built from settings."""
        return RetryPolicy(
            max_attempts=self.unseal_max_attempts,
            delay=self.unseal_retry_delay,
        )

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment.lower() == "production"

    @property
    def has_signer(self) -> bool:
        """Check if a private key is configured."""
        return bool(self.private_key)

    def get_safe_dict(self) -> dict:
        """Return settings dict with secrets redacted."""
        return {
            "environment": self.environment,
            "debug": self.debug,
            "mock_mode": self.mock_mode,
            "chain": {
                "rpc": self.rpc_url,
                "chain_id": self.chain_id,
                "private_key": "***" if self.private_key else "(not set)",
            },
            "contracts": {
                "pass_token": self.pass_token_address,
                "vault": self.vault_address,
                "underlying": self.underlying_token_address,
            },
            "oracle": {
                "url": self.oracle_url,
                "environment": self.oracle_environment,
                "security_zone": self.security_zone,
            },
            "retry": {
                "unseal_max_attempts": self.unseal_max_attempts,
                "unseal_retry_delay": self.unseal_retry_delay,
                "finalize_retry_after": self.finalize_retry_after,
            },
        }


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
