"""Shared utilities: structured exceptions and logging."""

from __future__ import annotations

from .exceptions import (
    BoundaryConditionError,
    ConfigurationError,
    IntegrationError,
    ShapeMismatchError,
    StencilError,
    TransportError,
)
from .transport_logging import configure_logging, get_logger

__all__ = [
    "BoundaryConditionError",
    "ConfigurationError",
    "IntegrationError",
    "ShapeMismatchError",
    "StencilError",
    "TransportError",
    "configure_logging",
    "get_logger",
]
