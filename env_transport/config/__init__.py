"""
Configuration for advection runs: pydantic models and YAML I/O.

Usage:
    >>> from env_transport.config import TransportConfig, load_transport_config
    >>> config = load_transport_config("run.yaml")
    >>> config.advection.stencil
    'ppm'
"""

from __future__ import annotations

from .core import AdvectionConfig, LoggingConfig, SplittingConfig, TransportConfig
from .io import load_transport_config, save_transport_config

__all__ = [
    "AdvectionConfig",
    "LoggingConfig",
    "SplittingConfig",
    "TransportConfig",
    "load_transport_config",
    "save_transport_config",
]
