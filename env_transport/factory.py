"""
Factories building runtime transport objects from configuration.

Functions:
    create_advection_operator: AdvectionOperator from an AdvectionConfig
    create_simulator:          SplittingSimulator from a TransportConfig
    apply_logging_config:      Configure package logging from a LoggingConfig
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from env_transport.config import AdvectionConfig, LoggingConfig, TransportConfig
from env_transport.geometry.boundary import create_bc
from env_transport.operators.advection import AdvectionOperator
from env_transport.simulation.splitting import SplittingSimulator
from env_transport.utils.transport_logging import configure_logging

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping, Sequence

    from numpy.typing import NDArray


def create_advection_operator(
    config: AdvectionConfig | TransportConfig | None = None, **overrides: Any
) -> AdvectionOperator:
    """
    Create an advection operator from configuration.

    Args:
        config: Advection (or complete transport) configuration; defaults when None
        **overrides: AdvectionConfig fields replacing the configured values

    Example:
        >>> op = create_advection_operator(stencil="ppm", boundary="periodic", dt=300.0)
    """
    if isinstance(config, TransportConfig):
        config = config.advection
    if config is None:
        config = AdvectionConfig()
    if overrides:
        config = AdvectionConfig.model_validate({**config.model_dump(), **overrides})

    return AdvectionOperator(
        stencil=config.stencil,
        bc=create_bc(config.boundary, value=config.boundary_value),
        dt=config.dt,
        p=config.stencil_params,
        num_threads=config.num_threads,
    )


def create_simulator(
    config: TransportConfig | None,
    velocity_fns: Mapping[int, Any] | Sequence[Any],
    spacing_fns: Mapping[int, Any] | Sequence[Any],
    reaction: Callable[[float, NDArray], NDArray] | None = None,
) -> SplittingSimulator:
    """
    Create a splitting simulator (advection + optional reaction) from configuration.

    Args:
        config: Transport configuration; defaults when None
        velocity_fns: Velocity accessors keyed by axis
        spacing_fns: Spacing accessors for the same axes
        reaction: Optional local system f(t, u) -> du/dt
    """
    config = config or TransportConfig()
    splitting = config.splitting
    return SplittingSimulator(
        create_advection_operator(config.advection),
        velocity_fns,
        spacing_fns,
        reaction=reaction,
        interval=splitting.interval,
        scheme=splitting.scheme,
        integrator=splitting.integrator,
        reaction_method=splitting.reaction_method,
        rtol=splitting.rtol,
        atol=splitting.atol,
    )


def apply_logging_config(config: LoggingConfig | TransportConfig) -> None:
    """Configure package logging from a LoggingConfig."""
    if isinstance(config, TransportConfig):
        config = config.logging
    configure_logging(
        level=config.level,
        log_to_file=config.log_to_file,
        log_file_path=config.log_file_path,
        use_colors=config.use_colors,
    )
