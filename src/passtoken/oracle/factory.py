"""Oracle backend factory.

Creates the oracle backend matching configuration.
"""

import logging
from typing import Optional

from passtoken.config import Settings, get_settings
from passtoken.oracle.base import OracleBackend

logger = logging.getLogger(__name__)


def get_oracle_backend(settings: Optional[Settings] = None) -> OracleBackend:
    """Build the configured oracle backend.

    Mock mode returns a fresh in-memory oracle; otherwise an HTTP client
    for the configured gateway.

    Args:
        settings: Settings to use (defaults to cached settings)

    Returns:
        OracleBackend instance
    """
    settings = settings or get_settings()

    if settings.mock_mode:
        from passtoken.oracle.mock import MockOracle
        logger.info("Using mock oracle")
        return MockOracle()

    from passtoken.oracle.http import HttpOracle
    logger.info(f"Using oracle gateway at {settings.oracle_url}")
    return HttpOracle(
        base_url=settings.oracle_url,
        private_key=settings.private_key,
        environment=settings.oracle_environment,
        timeout=settings.oracle_timeout,
    )
