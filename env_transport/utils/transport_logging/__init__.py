"""
Logging utilities for env_transport.

Usage:
    >>> from env_transport.utils.transport_logging import get_logger, configure_logging
    >>> configure_logging(level="DEBUG")
    >>> logger = get_logger(__name__)
    >>> logger.info("Starting advection run...")
"""

from __future__ import annotations

from .logger import (
    TransportFormatter,
    TransportLogger,
    configure_logging,
    get_logger,
    log_mass_balance,
    log_operator_configuration,
)

__all__ = [
    "TransportFormatter",
    "TransportLogger",
    "configure_logging",
    "get_logger",
    "log_mass_balance",
    "log_operator_configuration",
]
