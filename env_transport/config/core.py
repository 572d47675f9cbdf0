"""
Configuration models for advection runs.

Configurations specify HOW to transport a field (stencil, boundary
treatment, time stepping, splitting), not WHAT is transported: fields,
winds and grid accessors stay in Python code.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Literal

from pydantic import BaseModel, Field, field_validator, model_validator

from env_transport.operators.stencils import available_stencils

if TYPE_CHECKING:
    from pathlib import Path


class AdvectionConfig(BaseModel):
    """
    Configuration for the advection operator.

    Attributes
    ----------
    stencil : str
        Stencil name: "upwind1", "upwind2", "l94" or "ppm" (default: l94)
    boundary : Literal["zero_gradient", "periodic", "dirichlet"]
        Ghost-cell rule (default: zero_gradient)
    boundary_value : float
        Ghost value for Dirichlet boundaries (default: 0.0)
    dt : float | None
        Advection time step; None means it is passed per call (default: None)
    num_threads : int
        Worker threads per axis sweep (default: 1)
    stencil_params : dict
        Stencil parameters, e.g. {"monotonic": False} (default: {})
    """

    stencil: str = "l94"
    boundary: Literal["zero_gradient", "periodic", "dirichlet"] = "zero_gradient"
    boundary_value: float = 0.0
    dt: float | None = Field(default=None, gt=0)
    num_threads: int = Field(default=1, ge=1)
    stencil_params: dict[str, Any] = Field(default_factory=dict)

    @field_validator("stencil")
    @classmethod
    def validate_stencil(cls, value: str) -> str:
        """Normalize the stencil name and check it is registered."""
        key = value.lower().removesuffix("_stencil")
        if key not in available_stencils():
            raise ValueError(f"Unknown stencil '{value}'. Available: {', '.join(available_stencils())}")
        return key


class SplittingConfig(BaseModel):
    """
    Configuration for operator splitting of advection and local processes.

    Attributes
    ----------
    interval : float
        Splitting interval (default: 600.0)
    scheme : Literal["strang", "lie"]
        Splitting scheme (default: strang)
    integrator : Literal["euler", "ssprk22", "ssprk33"]
        Explicit integrator for advection sub-steps (default: ssprk22)
    reaction_method : str
        scipy.integrate.solve_ivp method for the reaction system (default: RK45)
    rtol : float
        Relative tolerance of the reaction solve (default: 1e-6)
    atol : float
        Absolute tolerance of the reaction solve (default: 1e-8)
    """

    interval: float = Field(default=600.0, gt=0)
    scheme: Literal["strang", "lie"] = "strang"
    integrator: Literal["euler", "ssprk22", "ssprk33"] = "ssprk22"
    reaction_method: Literal["RK45", "RK23", "DOP853", "Radau", "BDF", "LSODA"] = "RK45"
    rtol: float = Field(default=1e-6, gt=0)
    atol: float = Field(default=1e-8, gt=0)


class LoggingConfig(BaseModel):
    """
    Configuration for logging.

    Attributes
    ----------
    level : Literal["DEBUG", "INFO", "WARNING", "ERROR"]
        Logging level (default: INFO)
    log_to_file : bool
        Also write logs to a file (default: False)
    log_file_path : str | None
        Log file path; a timestamped file under ./logs when None (default: None)
    use_colors : bool
        Colored console output (default: True)
    """

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_to_file: bool = False
    log_file_path: str | None = None
    use_colors: bool = True

    @model_validator(mode="after")
    def validate_log_file(self) -> LoggingConfig:
        """A log file path only makes sense when logging to file."""
        if self.log_file_path is not None and not self.log_to_file:
            raise ValueError("log_file_path is set but log_to_file is False")
        return self


class TransportConfig(BaseModel):
    """
    Complete configuration of a transport run.

    Examples
    --------
    >>> config = TransportConfig(advection=AdvectionConfig(stencil="ppm", dt=300.0))
    >>> config.to_yaml("runs/ppm.yaml")
    >>> config = TransportConfig.from_yaml("runs/ppm.yaml")
    """

    advection: AdvectionConfig = Field(default_factory=AdvectionConfig)
    splitting: SplittingConfig = Field(default_factory=SplittingConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @model_validator(mode="after")
    def validate_interval(self) -> TransportConfig:
        """The advection step must fit into one splitting interval."""
        dt = self.advection.dt
        if dt is not None and dt > self.splitting.interval:
            raise ValueError(f"advection.dt ({dt}) exceeds splitting.interval ({self.splitting.interval})")
        return self

    def to_yaml(self, path: str | Path) -> None:
        """Save configuration to a YAML file."""
        from .io import save_transport_config

        save_transport_config(self, path)

    @classmethod
    def from_yaml(cls, path: str | Path) -> TransportConfig:
        """Load configuration from a YAML file."""
        from .io import load_transport_config

        return load_transport_config(path)
