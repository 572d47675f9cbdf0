"""
YAML I/O for transport configurations.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import yaml
from pydantic import ValidationError

from env_transport.utils.exceptions import ConfigurationError

if TYPE_CHECKING:
    from .core import TransportConfig


def load_transport_config(path: str | Path) -> TransportConfig:
    """
    Load a transport configuration from a YAML file.

    Parameters
    ----------
    path : str | Path
        Path to YAML configuration file

    Returns
    -------
    TransportConfig
        Validated configuration

    Raises
    ------
    FileNotFoundError
        If the file doesn't exist
    yaml.YAMLError
        If the YAML syntax is invalid
    ConfigurationError
        If the configuration fails validation

    YAML Format
    -----------
    advection:
      stencil: ppm
      boundary: periodic
      dt: 300.0
      num_threads: 4
    splitting:
      interval: 600.0
      scheme: strang
      integrator: ssprk22
    logging:
      level: INFO
    """
    from .core import TransportConfig

    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {path}")

    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise yaml.YAMLError(f"Invalid YAML syntax in {path}: {e}") from e

    if data is None:
        data = {}

    try:
        return TransportConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigurationError(
            str(path),
            data,
            component="config",
            hint=f"Fix the configuration file:\n{e}",
        ) from e


def save_transport_config(config: TransportConfig, path: str | Path) -> None:
    """
    Save a transport configuration to a YAML file.

    Parameters
    ----------
    config : TransportConfig
        Configuration to save
    path : str | Path
        Output file path (parent directories are created)
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    config_dict = config.model_dump(exclude_none=True, mode="json")

    with open(path, "w") as f:
        yaml.dump(config_dict, f, default_flow_style=False, sort_keys=False, indent=2, allow_unicode=True)
