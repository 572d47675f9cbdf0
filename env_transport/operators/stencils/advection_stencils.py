"""
Finite-volume advection stencils for 1-D transport.

Each stencil maps a local window of cell averages around a center cell to the
time derivative of that cell:

    dphi/dt = -(F_right - F_left) / dz

where F_left and F_right are fluxes through the cell edges at i-1/2 and i+1/2.

Stencil Types:
    - upwind1: donor-cell upwind, 1st order, window (1, 1)
    - upwind2: linear-upwind differencing (LUD), 2nd order, window (2, 2)
    - l94:     Lin et al. (1994) monotonic piecewise-linear, window (2, 2)
    - ppm:     Colella & Woodward (1984) piecewise-parabolic, window (3, 4)

Flux Form:
    The flux through an edge depends only on the cells around that edge, so the
    right-edge flux of cell i and the left-edge flux of cell i+1 are the same
    number. Summed over a closed or periodic domain the derivatives cancel,
    which makes every stencil here mass conserving.

Direction:
    The donor cell is chosen from the sign of the Courant number
    c = U * dt / dz, i.e. the direction of transport in index space. Grids whose
    coordinate decreases with index (dz < 0) are therefore handled without
    special cases, and advect(phi, U, dt, dz) == advect(phi, -U, dt, -dz).

Spacing:
    dz is either the spacing of the center cell or a window of spacings with
    the same shape as phi. With a window, the Courant number of each edge is
    taken from its donor cell, so neighbouring cells compute the same edge
    flux on non-uniform grids. The divergence always uses the center spacing.

Vectorization:
    phi has the window on its leading axis and U has the two edge velocities on
    its leading axis. Any trailing axes are broadcast, so a whole column (or a
    whole matrix of columns) is evaluated in one call.

References:
    - Lin, Chao, Rood (1994): Multidimensional flux-form semi-Lagrangian
      transport schemes, Mon. Wea. Rev.
    - Colella & Woodward (1984): The Piecewise Parabolic Method (PPM) for
      gas-dynamical simulations, J. Comput. Phys.
    - LeVeque (2002): Finite Volume Methods for Hyperbolic Problems
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import numpy as np

from env_transport.utils.exceptions import StencilError

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

    from numpy.typing import ArrayLike, NDArray


# =============================================================================
# Helpers
# =============================================================================


def _toward_increasing_index(U: NDArray, dz: ArrayLike) -> NDArray:
    """True where transport through an edge goes from cell i to cell i+1."""
    return np.asarray(U) * np.asarray(dz) >= 0


def _split_spacing(dz: ArrayLike, phi: NDArray, center: int) -> tuple[NDArray, NDArray | None]:
    """Center spacing and, when dz is a window shaped like phi, the window itself."""
    dz = np.asarray(dz)
    if dz.ndim == phi.ndim:
        return dz[center], dz
    return dz, None


def _edge_spacings(window: NDArray | None, center_dz: NDArray, left: int) -> tuple[NDArray, NDArray]:
    """Spacings of the cells left and right of an edge (window indices left, left + 1)."""
    if window is None:
        return center_dz, center_dz
    return window[left], window[left + 1]


def _donor_courant(U: NDArray, dt: float, dz: NDArray, dz_left: NDArray, dz_right: NDArray) -> NDArray:
    """|U dt / dz| with dz of the donor cell."""
    donor_dz = np.where(_toward_increasing_index(U, dz), dz_left, dz_right)
    return np.abs(U * dt / donor_dz)


def _option(p: Mapping[str, Any] | None, key: str, default: Any) -> Any:
    if p is None:
        return default
    return p.get(key, default)


# =============================================================================
# First-order upwind
# =============================================================================


def _upwind1_flux(U: NDArray, dz: ArrayLike, left: NDArray, right: NDArray) -> NDArray:
    return U * np.where(_toward_increasing_index(U, dz), left, right)


def upwind1_stencil(
    phi: ArrayLike,
    U: ArrayLike,
    dt: float,
    dz: ArrayLike,
    p: Mapping[str, Any] | None = None,
) -> NDArray:
    """
    First-order upwind advection in 1-D.

    Args:
        phi: Cell values, window of length 3 (1 left, center, 1 right)
        U: Velocities at the left and right edges of the center cell
        dt: Time step (unused; kept for a uniform stencil signature)
        dz: Grid spacing of the center cell, or a spacing window shaped like phi
        p: Stencil parameters (unused)

    Returns:
        dphi/dt of the center cell
    """
    phi = np.asarray(phi)
    U = np.asarray(U)
    dz, _ = _split_spacing(dz, phi, 1)

    flux_left = _upwind1_flux(U[0], dz, phi[0], phi[1])
    flux_right = _upwind1_flux(U[1], dz, phi[1], phi[2])
    return -(flux_right - flux_left) / dz


# =============================================================================
# Second-order (linear) upwind
# =============================================================================


def _upwind2_flux(
    U: NDArray,
    dz: ArrayLike,
    ll: NDArray,
    l: NDArray,  # noqa: E741
    r: NDArray,
    rr: NDArray,
) -> NDArray:
    face = np.where(
        _toward_increasing_index(U, dz),
        1.5 * l - 0.5 * ll,
        1.5 * r - 0.5 * rr,
    )
    return U * face


def upwind2_stencil(
    phi: ArrayLike,
    U: ArrayLike,
    dt: float,
    dz: ArrayLike,
    p: Mapping[str, Any] | None = None,
) -> NDArray:
    """
    Second-order upwind advection in 1-D (linear-upwind differencing, LUD).

    The face value is extrapolated linearly from the two upwind cells:
        phi_face = 1.5 * phi_donor - 0.5 * phi_upstream

    Args:
        phi: Cell values, window of length 5 (2 left, center, 2 right)
        U: Velocities at the left and right edges of the center cell
        dt: Time step (unused; kept for a uniform stencil signature)
        dz: Grid spacing of the center cell, or a spacing window shaped like phi
        p: Stencil parameters (unused)

    Returns:
        dphi/dt of the center cell
    """
    phi = np.asarray(phi)
    U = np.asarray(U)
    dz, _ = _split_spacing(dz, phi, 2)

    flux_left = _upwind2_flux(U[0], dz, phi[0], phi[1], phi[2], phi[3])
    flux_right = _upwind2_flux(U[1], dz, phi[1], phi[2], phi[3], phi[4])
    return -(flux_right - flux_left) / dz


# =============================================================================
# Lin et al. (1994) piecewise linear
# =============================================================================


def _l94_slope(left: NDArray, center: NDArray, right: NDArray, monotonic: bool) -> NDArray:
    """
    Cell slope (change across the cell) with the Lin et al. (1994) constraint.

    The limited slope keeps the linear sub-grid profile inside
    [min(neighbours), max(neighbours)], so no swept flux can carry more tracer
    than the donor cell holds.
    """
    slope = 0.5 * (right - left)
    if not monotonic:
        return slope
    lower = np.minimum(np.minimum(left, center), right)
    upper = np.maximum(np.maximum(left, center), right)
    bound = np.minimum(np.abs(slope), np.minimum(2.0 * (center - lower), 2.0 * (upper - center)))
    return np.sign(slope) * bound


def _l94_flux(
    U: NDArray,
    dt: float,
    dz: ArrayLike,
    edge_dz: tuple[NDArray, NDArray],
    ll: NDArray,
    l: NDArray,  # noqa: E741
    r: NDArray,
    rr: NDArray,
    monotonic: bool,
) -> NDArray:
    courant = _donor_courant(U, dt, dz, *edge_dz)
    slope_left = _l94_slope(ll, l, r, monotonic)
    slope_right = _l94_slope(l, r, rr, monotonic)
    # Mean of the linear profile over the swept part of the donor cell
    face = np.where(
        _toward_increasing_index(U, dz),
        l + 0.5 * (1.0 - courant) * slope_left,
        r - 0.5 * (1.0 - courant) * slope_right,
    )
    return U * face


def l94_stencil(
    phi: ArrayLike,
    U: ArrayLike,
    dt: float,
    dz: ArrayLike,
    p: Mapping[str, Any] | None = None,
) -> NDArray:
    """
    L94 advection in 1-D (Lin et al., 1994).

    Reconstructs a monotonic piecewise-linear profile in each donor cell and
    integrates it exactly over the part of the cell swept during dt. The output
    depends on the Courant number, which is why dt is an input.

    Args:
        phi: Cell values, window of length 5 (2 left, center, 2 right)
        U: Velocities at the left and right edges of the center cell
        dt: Time step
        dz: Grid spacing of the center cell, or a spacing window shaped like phi
        p: Stencil parameters. ``{"monotonic": False}`` disables the slope limiter.

    Returns:
        dphi/dt of the center cell (window index 2)
    """
    phi = np.asarray(phi)
    U = np.asarray(U)
    monotonic = bool(_option(p, "monotonic", True))
    dz, window = _split_spacing(dz, phi, 2)

    flux_left = _l94_flux(U[0], dt, dz, _edge_spacings(window, dz, 1), phi[0], phi[1], phi[2], phi[3], monotonic)
    flux_right = _l94_flux(U[1], dt, dz, _edge_spacings(window, dz, 2), phi[1], phi[2], phi[3], phi[4], monotonic)
    return -(flux_right - flux_left) / dz


# =============================================================================
# Piecewise Parabolic Method (Colella & Woodward, 1984)
# =============================================================================


def _ppm_slope(left: NDArray, center: NDArray, right: NDArray) -> NDArray:
    """Monotonized average slope (CW84 eq. 1.8); zero at local extrema."""
    slope = 0.5 * (right - left)
    limited = np.minimum(np.abs(slope), np.minimum(2.0 * np.abs(center - left), 2.0 * np.abs(right - center)))
    return np.where((right - center) * (center - left) > 0, np.sign(slope) * limited, 0.0)


def _ppm_edge(m1: NDArray, c: NDArray, p1: NDArray, p2: NDArray) -> NDArray:
    """Interpolated value at the edge between c and p1, from cells m1..p2."""
    return 0.5 * (c + p1) - (_ppm_slope(c, p1, p2) - _ppm_slope(m1, c, p1)) / 6.0


def _ppm_parabola(
    m2: NDArray,
    m1: NDArray,
    c: NDArray,
    p1: NDArray,
    p2: NDArray,
    monotonic: bool,
) -> tuple[NDArray, NDArray, NDArray]:
    """
    Parabola coefficients (a_left, a_right, a6) for the cell c.

    With monotonic=True, local extrema are flattened to constants and edge
    values are reset where the parabola would overshoot inside the cell.
    """
    a_left = _ppm_edge(m2, m1, c, p1)
    a_right = _ppm_edge(m1, c, p1, p2)

    if monotonic:
        extremum = (a_right - c) * (c - a_left) <= 0
        a_left = np.where(extremum, c, a_left)
        a_right = np.where(extremum, c, a_right)

        da = a_right - a_left
        a6 = 6.0 * (c - 0.5 * (a_left + a_right))
        overshoot_left = da * a6 > da * da
        overshoot_right = -(da * da) > da * a6
        a_left, a_right = (
            np.where(overshoot_left, 3.0 * c - 2.0 * a_right, a_left),
            np.where(overshoot_right, 3.0 * c - 2.0 * a_left, a_right),
        )

    a6 = 6.0 * (c - 0.5 * (a_left + a_right))
    return a_left, a_right, a6


def _ppm_flux(
    U: NDArray,
    dt: float,
    dz: ArrayLike,
    edge_dz: tuple[NDArray, NDArray],
    cells: tuple[NDArray, ...],
    monotonic: bool,
) -> NDArray:
    """Flux through the edge between cells[2] and cells[3] (cells span -2..+3)."""
    m2, m1, l, r, p1, p2 = cells  # noqa: E741
    courant = _donor_courant(U, dt, dz, *edge_dz)
    taper = 1.0 - 2.0 * courant / 3.0

    # Donor on the left: average over the right-most fraction of the cell
    aL_l, aR_l, a6_l = _ppm_parabola(m2, m1, l, r, p1, monotonic)
    face_from_left = aR_l - 0.5 * courant * ((aR_l - aL_l) - taper * a6_l)

    # Donor on the right: average over the left-most fraction of the cell
    aL_r, aR_r, a6_r = _ppm_parabola(m1, l, r, p1, p2, monotonic)
    face_from_right = aL_r + 0.5 * courant * ((aR_r - aL_r) + taper * a6_r)

    face = np.where(_toward_increasing_index(U, dz), face_from_left, face_from_right)
    return U * face


def ppm_stencil(
    phi: ArrayLike,
    U: ArrayLike,
    dt: float,
    dz: ArrayLike,
    p: Mapping[str, Any] | None = None,
) -> NDArray:
    """
    PPM advection in 1-D (Colella and Woodward, 1984).

    Builds a parabolic profile in each donor cell from fourth-order edge
    interpolation, applies the monotonicity constraints and integrates the
    parabola over the swept Courant fraction of the donor cell.

    Args:
        phi: Cell values, window of length 8 (3 left, center, 4 right).
            The reconstruction reads cells -3..+3 around the center.
        U: Velocities at the left and right edges of the center cell
        dt: Time step
        dz: Grid spacing of the center cell, or a spacing window shaped like phi
        p: Stencil parameters. ``{"monotonic": False}`` skips the constraints.

    Returns:
        dphi/dt of the center cell (window index 3)
    """
    phi = np.asarray(phi)
    U = np.asarray(U)
    monotonic = bool(_option(p, "monotonic", True))
    dz, window = _split_spacing(dz, phi, 3)
    left_dz = _edge_spacings(window, dz, 2)
    right_dz = _edge_spacings(window, dz, 3)

    flux_left = _ppm_flux(U[0], dt, dz, left_dz, (phi[0], phi[1], phi[2], phi[3], phi[4], phi[5]), monotonic)
    flux_right = _ppm_flux(U[1], dt, dz, right_dz, (phi[1], phi[2], phi[3], phi[4], phi[5], phi[6]), monotonic)
    return -(flux_right - flux_left) / dz


# =============================================================================
# Registry
# =============================================================================

_STENCIL_SIZES: dict[Callable[..., Any], tuple[int, int]] = {
    upwind1_stencil: (1, 1),
    upwind2_stencil: (2, 2),
    l94_stencil: (2, 2),
    ppm_stencil: (3, 4),
}

_STENCILS_BY_NAME: dict[str, Callable[..., Any]] = {
    "upwind1": upwind1_stencil,
    "upwind2": upwind2_stencil,
    "l94": l94_stencil,
    "ppm": ppm_stencil,
}

# Stencils that accept a spacing window in place of the center spacing
_SPACING_WINDOW_STENCILS: set[Callable[..., Any]] = {upwind1_stencil, upwind2_stencil, l94_stencil, ppm_stencil}


def stencil_size(stencil: Callable[..., Any]) -> tuple[int, int]:
    """
    Return the (left, right) half widths of a registered stencil.

    Raises:
        StencilError: If the stencil is not registered
    """
    try:
        return _STENCIL_SIZES[stencil]
    except (KeyError, TypeError):
        raise StencilError(
            stencil, "Stencil is not registered", available=sorted(_STENCILS_BY_NAME)
        ) from None


def get_stencil(stencil: str | Callable[..., Any]) -> Callable[..., Any]:
    """
    Resolve a stencil by name ("upwind1", "upwind2", "l94", "ppm") or check a callable.

    Raises:
        StencilError: If the name is unknown or the callable is not registered
    """
    if isinstance(stencil, str):
        key = stencil.lower().removesuffix("_stencil")
        if key not in _STENCILS_BY_NAME:
            raise StencilError(stencil, f"Unknown stencil '{stencil}'", available=sorted(_STENCILS_BY_NAME))
        return _STENCILS_BY_NAME[key]

    stencil_size(stencil)
    return stencil


def register_stencil(
    name: str,
    stencil: Callable[..., Any],
    size: tuple[int, int],
    spacing_window: bool = False,
) -> None:
    """
    Register a user-defined stencil.

    The stencil must follow the ``(phi, U, dt, dz, p=None)`` signature and
    compute edge fluxes from the cells around each edge only.

    Args:
        name: Lookup name for get_stencil()
        stencil: Stencil function
        size: (left, right) half widths, both >= 1
        spacing_window: The stencil accepts dz as a window of spacings shaped
            like phi. Otherwise it receives the center spacing only.

    Raises:
        StencilError: If size is malformed or the stencil is not callable
    """
    if not callable(stencil):
        raise StencilError(stencil, "Stencil must be callable")
    if len(size) != 2 or any(int(s) != s or s < 1 for s in size):
        raise StencilError(stencil, f"Stencil size must be two integers >= 1, got {size}")

    _STENCIL_SIZES[stencil] = (int(size[0]), int(size[1]))
    _STENCILS_BY_NAME[name.lower()] = stencil
    if spacing_window:
        _SPACING_WINDOW_STENCILS.add(stencil)
    else:
        _SPACING_WINDOW_STENCILS.discard(stencil)


def uses_spacing_window(stencil: Callable[..., Any]) -> bool:
    """Whether the stencil takes a window of spacings rather than the center spacing."""
    return stencil in _SPACING_WINDOW_STENCILS


def available_stencils() -> list[str]:
    """Names accepted by get_stencil()."""
    return sorted(_STENCILS_BY_NAME)
