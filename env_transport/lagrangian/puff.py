"""
Lagrangian puff transport.

A puff is a single air parcel carried by the wind:

    dx/dt = u(t, x, y, z),  dy/dt = v(t, x, y, z),  dz/dt = w(t, x, y, z)

On a sphere (spherical=True) the horizontal coordinates are longitude and
latitude in radians and the horizontal winds are in m/s:

    dlon/dt = u / (R cos(lat)),  dlat/dt = v / R

The vertical coordinate stays inside its bounds: at a bound, a vertical
velocity pointing out of the domain is set to zero. Crossing a horizontal
bound ends the integration (a terminal event for solve_ivp).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

import numpy as np
from scipy.integrate import solve_ivp

from env_transport.geometry.accessors import EARTH_RADIUS
from env_transport.utils.exceptions import ConfigurationError, IntegrationError, ShapeMismatchError
from env_transport.utils.transport_logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from numpy.typing import ArrayLike, NDArray

logger = get_logger(__name__)


@dataclass
class PuffTrajectory:
    """
    Result of a puff simulation.

    Attributes:
        t: Output times, shape (n_t,)
        positions: Puff position at each output time, shape (n_t, ndim)
        left_domain: Whether the puff crossed a horizontal bound
        exit_time: Time of the crossing, or None
    """

    t: NDArray
    positions: NDArray
    left_domain: bool = False
    exit_time: float | None = None

    @property
    def final_position(self) -> NDArray:
        return self.positions[-1]


class Puff:
    """
    Lagrangian transport of a single parcel through a velocity field.

    Args:
        velocity_fns: One callable f(t, *position) -> velocity per coordinate
            (2 for horizontal only, 3 with a vertical coordinate)
        bounds: (lower, upper) per coordinate
        spherical: Treat the first two coordinates as lon/lat in radians
        radius: Sphere radius in metres when spherical
    """

    def __init__(
        self,
        velocity_fns: Sequence[Callable[..., float]],
        bounds: Sequence[tuple[float, float]],
        spherical: bool = False,
        radius: float = EARTH_RADIUS,
    ):
        if len(velocity_fns) not in (2, 3):
            raise ConfigurationError(
                "velocity_fns", len(velocity_fns), valid_range=(2, 3), component="Puff", hint="Give 2 or 3 components"
            )
        if len(bounds) != len(velocity_fns):
            raise ShapeMismatchError("bounds", len(bounds), len(velocity_fns), component="Puff")

        self.velocity_fns = list(velocity_fns)
        self.bounds = np.array([(float(lo), float(hi)) for lo, hi in bounds])
        if np.any(self.bounds[:, 0] >= self.bounds[:, 1]):
            raise ConfigurationError(
                "bounds", bounds, component="Puff", hint="Each lower bound must be below its upper bound"
            )
        self.spherical = spherical
        self.radius = float(radius)

    @property
    def ndim(self) -> int:
        return len(self.velocity_fns)

    @property
    def has_vertical(self) -> bool:
        return self.ndim == 3

    def _clamp_vertical(self, state: NDArray) -> NDArray:
        if not self.has_vertical:
            return state
        state = np.array(state, dtype=float)
        state[2] = np.clip(state[2], self.bounds[2, 0], self.bounds[2, 1])
        return state

    def rhs(self, t: float, state: NDArray) -> NDArray:
        """Time derivative of the puff position."""
        position = self._clamp_vertical(state)
        velocity = np.array([float(f(t, *position)) for f in self.velocity_fns])

        if self.has_vertical:
            lower, upper = self.bounds[2]
            if (position[2] <= lower and velocity[2] < 0) or (position[2] >= upper and velocity[2] > 0):
                velocity[2] = 0.0

        if self.spherical:
            velocity[0] /= self.radius * np.cos(position[1])
            velocity[1] /= self.radius
        return velocity

    def _exit_event(self) -> Callable[[float, NDArray], float]:
        lower = self.bounds[:2, 0]
        upper = self.bounds[:2, 1]

        def horizontal_margin(t: float, state: NDArray) -> float:
            return float(np.min(np.minimum(state[:2] - lower, upper - state[:2])))

        horizontal_margin.terminal = True
        horizontal_margin.direction = -1
        return horizontal_margin

    def simulate(
        self,
        x0: ArrayLike,
        t_span: tuple[float, float],
        t_eval: ArrayLike | None = None,
        method: str = "RK45",
        rtol: float = 1e-6,
        atol: float = 1e-9,
        max_step: float = np.inf,
    ) -> PuffTrajectory:
        """
        Integrate the puff trajectory with scipy.integrate.solve_ivp.

        Raises:
            ShapeMismatchError: If x0 has the wrong length
            ConfigurationError: If x0 lies outside the bounds
            IntegrationError: If solve_ivp fails
        """
        x0 = np.asarray(x0, dtype=float)
        if x0.shape != (self.ndim,):
            raise ShapeMismatchError("x0", x0.shape, (self.ndim,), component="Puff")
        if np.any(x0 < self.bounds[:, 0]) or np.any(x0 > self.bounds[:, 1]):
            raise ConfigurationError("x0", x0.tolist(), component="Puff", hint="Start the puff inside its bounds")

        sol = solve_ivp(
            self.rhs,
            t_span=t_span,
            y0=x0,
            method=method,
            t_eval=t_eval,
            events=self._exit_event(),
            rtol=rtol,
            atol=atol,
            max_step=max_step,
        )
        if sol.status == -1:
            raise IntegrationError("puff", float(t_span[0]), sol.message, component="Puff")

        positions = np.array([self._clamp_vertical(y) for y in sol.y.T]).reshape(-1, self.ndim)
        left_domain = sol.status == 1
        exit_time = float(sol.t_events[0][0]) if left_domain else None
        if left_domain:
            logger.debug(f"Puff left the horizontal domain at t={exit_time:g}")

        return PuffTrajectory(t=sol.t, positions=positions, left_domain=left_domain, exit_time=exit_time)
