"""
Velocity and grid-spacing accessors for advection sweeps.

Advection operators sample the wind at cell edges and the grid spacing at
cell centers through accessor callables:

    velocity_fn(edge, transverse, t) -> float     edge in 0..n
    spacing_fn(index, transverse, t) -> float     index in 0..n-1

`transverse` holds the indices of the other axes, in axis order. The adapters
here build such callables from constants, staggered arrays, coordinate
vectors and gridded (or analytic) wind data. All returned callables are pure,
so they can be called from column worker threads.

Functions:
    constant_velocity:        Same velocity at every edge
    constant_spacing:         Same spacing at every cell
    staggered_array_velocity: Read velocities from an edge-staggered array
    coordinate_spacing:       Signed spacing from cell-center coordinates
    lonlat_spacing:           Metre spacing on a sphere from lon/lat centers
    edge_velocity:            Sample data_f(t, *coords) at cell edges
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import numpy as np

from env_transport.utils.exceptions import ConfigurationError, ShapeMismatchError

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from numpy.typing import ArrayLike, NDArray

    Accessor = Callable[[int, tuple[int, ...], float], float]

EARTH_RADIUS = 6.371e6  # metres


def _full_index(index: int, transverse: tuple[int, ...], axis: int) -> tuple[int, ...]:
    return transverse[:axis] + (index,) + transverse[axis:]


def _edges_from_centers(centers: NDArray) -> NDArray:
    """Cell edges halfway between centers; outermost edges mirror the first/last half cell."""
    if centers.ndim != 1 or centers.size < 2:
        raise ShapeMismatchError("centers", centers.shape, "(n,) with n >= 2", component="accessors")
    mid = 0.5 * (centers[:-1] + centers[1:])
    first = centers[0] - 0.5 * (centers[1] - centers[0])
    last = centers[-1] + 0.5 * (centers[-1] - centers[-2])
    return np.concatenate(([first], mid, [last]))


def constant_velocity(value: float) -> Accessor:
    """Velocity accessor returning `value` at every edge and time."""
    value = float(value)

    def velocity(edge: int, transverse: tuple[int, ...], t: float) -> float:
        return value

    return velocity


def constant_spacing(dx: float) -> Accessor:
    """Spacing accessor returning `dx` at every cell and time (dx may be negative)."""
    dx = float(dx)
    if dx == 0.0:
        raise ConfigurationError("dx", dx, component="accessors", hint="Grid spacing must be non-zero")

    def spacing(index: int, transverse: tuple[int, ...], t: float) -> float:
        return dx

    return spacing


def staggered_array_velocity(array: ArrayLike | Callable[[float], ArrayLike], axis: int) -> Accessor:
    """
    Velocity accessor reading an array staggered along `axis`.

    Args:
        array: Array whose extent along `axis` is n + 1 (one value per edge)
            and which matches the field along every other axis. A callable
            t -> array gives a time-dependent wind field.
        axis: Axis along which the array is staggered

    Returns:
        velocity_fn(edge, transverse, t)
    """
    if callable(array):
        data_at = array
    else:
        data = np.asarray(array, dtype=float)
        if not -data.ndim <= axis < data.ndim:
            raise ShapeMismatchError("axis", axis, f"[{-data.ndim}, {data.ndim - 1}]", component="accessors")

        def data_at(t: float) -> NDArray:
            return data

    def velocity(edge: int, transverse: tuple[int, ...], t: float) -> float:
        values = np.asarray(data_at(t))
        return float(values[_full_index(edge, transverse, axis % values.ndim)])

    return velocity


def coordinate_spacing(centers: ArrayLike) -> Accessor:
    """
    Spacing accessor from 1-D cell-center coordinates.

    Spacing is the distance between the edges bounding each cell (edges sit
    halfway between centers). It is negative for decreasing coordinates.
    """
    dz = np.diff(_edges_from_centers(np.asarray(centers, dtype=float)))

    def spacing(index: int, transverse: tuple[int, ...], t: float) -> float:
        return float(dz[index])

    return spacing


def lonlat_spacing(
    lon: ArrayLike,
    lat: ArrayLike,
    axis: int,
    lon_axis: int = 0,
    lat_axis: int = 1,
    radius: float = EARTH_RADIUS,
    degrees: bool = False,
) -> Accessor:
    """
    Spacing in metres on a sphere for a longitude/latitude grid.

    dx = radius * cos(lat) * dlon along the longitude axis and
    dy = radius * dlat along the latitude axis.

    Args:
        lon: Longitude cell centers
        lat: Latitude cell centers
        axis: Field axis the accessor is for (lon_axis or lat_axis)
        lon_axis: Field axis holding longitude
        lat_axis: Field axis holding latitude
        radius: Sphere radius in metres
        degrees: Whether lon/lat are in degrees (radians otherwise)

    Raises:
        ConfigurationError: If `axis` is neither the longitude nor the latitude axis
    """
    lon = np.asarray(lon, dtype=float)
    lat = np.asarray(lat, dtype=float)
    if degrees:
        lon = np.deg2rad(lon)
        lat = np.deg2rad(lat)

    if axis == lon_axis:
        dlon = np.diff(_edges_from_centers(lon))
        cos_lat = np.cos(lat)

        def spacing(index: int, transverse: tuple[int, ...], t: float) -> float:
            full = _full_index(index, transverse, axis)
            return float(radius * cos_lat[full[lat_axis]] * dlon[index])

        return spacing

    if axis == lat_axis:
        dlat = radius * np.diff(_edges_from_centers(lat))

        def spacing(index: int, transverse: tuple[int, ...], t: float) -> float:
            return float(dlat[index])

        return spacing

    raise ConfigurationError(
        "axis",
        axis,
        component="accessors",
        hint=f"lonlat_spacing covers the longitude axis ({lon_axis}) and latitude axis ({lat_axis}) only",
    )


def edge_velocity(
    data_f: Callable[..., float],
    coords: Sequence[ArrayLike],
    axis: int,
) -> Accessor:
    """
    Velocity accessor sampling `data_f(t, *position)` at cell edges.

    Args:
        data_f: Wind component along `axis` as a function of time and one
            coordinate per field axis (e.g. an interpolator over reanalysis data)
        coords: Cell-center coordinates, one 1-D array per field axis
        axis: Axis the velocity is sampled along

    Edge coordinates along `axis` lie halfway between centers; the outermost
    edges are extrapolated by half a cell. Other coordinates are taken at the
    cell centers of the column.
    """
    centers = [np.asarray(c, dtype=float) for c in coords]
    if not 0 <= axis < len(centers):
        raise ShapeMismatchError("axis", axis, f"[0, {len(centers) - 1}]", component="accessors")
    edges = _edges_from_centers(centers[axis])

    def velocity(edge: int, transverse: tuple[int, ...], t: float) -> float:
        full = _full_index(edge, transverse, axis)
        position = [edges[edge] if d == axis else centers[d][i] for d, i in enumerate(full)]
        return float(data_f(t, *position))

    return velocity
