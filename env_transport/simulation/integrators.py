"""
Explicit time integrators for advection sub-steps.

Every integrator advances u by one step of size dt for the system
du/dt = f(u, t) and returns a new array; the input is never modified.

Available integrators:
    - euler:   Forward Euler, 1st order
    - ssprk22: Strong-stability-preserving RK, 2 stages, 2nd order (Heun)
    - ssprk33: Strong-stability-preserving RK, 3 stages, 3rd order

The SSP schemes are convex combinations of forward Euler steps, so they
keep the positivity and monotonicity of the L94 and PPM fluxes under the
same Courant restriction as forward Euler.

References:
    - Shu & Osher (1988): Efficient implementation of essentially
      non-oscillatory shock-capturing schemes, J. Comput. Phys.
    - Gottlieb, Shu & Tadmor (2001): Strong stability-preserving high-order
      time discretization methods, SIAM Review
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from env_transport.utils.exceptions import ConfigurationError

if TYPE_CHECKING:
    from collections.abc import Callable

    from numpy.typing import NDArray

    RHS = Callable[[NDArray, float], NDArray]
    StepFunction = Callable[[RHS, NDArray, float, float], NDArray]


def euler_step(f: RHS, u: NDArray, t: float, dt: float) -> NDArray:
    """Forward Euler: u + dt f(u, t)."""
    return u + dt * f(u, t)


def ssprk22_step(f: RHS, u: NDArray, t: float, dt: float) -> NDArray:
    """SSPRK(2,2), i.e. Heun's method written as an average of Euler steps."""
    u1 = u + dt * f(u, t)
    return 0.5 * u + 0.5 * (u1 + dt * f(u1, t + dt))


def ssprk33_step(f: RHS, u: NDArray, t: float, dt: float) -> NDArray:
    """SSPRK(3,3), the Shu-Osher third-order scheme."""
    u1 = u + dt * f(u, t)
    u2 = 0.75 * u + 0.25 * (u1 + dt * f(u1, t + dt))
    return u / 3.0 + 2.0 / 3.0 * (u2 + dt * f(u2, t + 0.5 * dt))


_INTEGRATORS: dict[str, StepFunction] = {
    "euler": euler_step,
    "ssprk22": ssprk22_step,
    "ssprk33": ssprk33_step,
}


def available_integrators() -> list[str]:
    return sorted(_INTEGRATORS)


def get_integrator(name: str | StepFunction) -> StepFunction:
    """
    Resolve an integrator by name, or pass a step function through.

    Raises:
        ConfigurationError: If the name is unknown
    """
    if callable(name):
        return name
    key = str(name).lower().replace("-", "").replace("_", "")
    if key == "forwardeuler":
        key = "euler"
    if key not in _INTEGRATORS:
        raise ConfigurationError(
            "integrator",
            name,
            component="simulation",
            hint=f"Use one of: {', '.join(available_integrators())}",
        )
    return _INTEGRATORS[key]
