"""
Flux-form advection operator for fields of arbitrary rank.

An advection sweep along one axis is a 1-D problem repeated for every
transect along that axis. The sweep reorders the field into columns
(AxisReorder), pads every column with ghost cells (BoundaryCondition), samples
edge velocities and cell spacings from caller-supplied accessors, and
evaluates a stencil for all cells at once.

Two-Phase Construction:
    1. orderby_op(shape, axis) creates the reorder mapping and its index
       function, so accessors can be written against physical indices.
    2. AdvectionOperator.bind(shape, axis, velocity_fn, spacing_fn) returns an
       AxisAdvection bound to those accessors.

Usage Modes:
    - Simultaneous: derivative() sums the per-axis derivatives, and rhs()
      wraps that sum as f(t, y) for scipy.integrate.solve_ivp.
    - Sequential splitting: step() advances the field by a full time step
      along each axis in turn.

Accessors:
    velocity_fn(edge, transverse, t) -> float, with edge in 0..n. Edge k lies
    between cells k-1 and k.
    spacing_fn(index, transverse, t) -> float, with index in 0..n-1.
    `transverse` is the tuple of indices along the other axes. A number, a
    1-D profile along the axis, or a full tensor (staggered along the axis for
    velocities) is accepted in place of a callable.

Threading:
    With num_threads > 1 the columns are split into contiguous chunks and
    evaluated on a ThreadPoolExecutor. Every chunk reads the padded copy of
    the pre-sweep field and writes its own slice of the output, so no column
    observes a partial update. Accessors must be safe to call concurrently.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor, as_completed
from functools import cached_property
from typing import TYPE_CHECKING, Any

import numpy as np
from numpy.lib.stride_tricks import sliding_window_view

from env_transport.geometry.boundary import BoundaryCondition, PeriodicBC, ZeroGradBC, create_bc
from env_transport.operators.reorder import AxisReorder
from env_transport.operators.stencils import get_stencil, stencil_size, uses_spacing_window
from env_transport.utils.exceptions import (
    ConfigurationError,
    ShapeMismatchError,
    validate_axis,
    validate_positive,
)
from env_transport.utils.transport_logging import get_logger, log_mass_balance, log_operator_configuration

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping, Sequence

    from numpy.typing import ArrayLike, NDArray

logger = get_logger(__name__)

Accessor = Any  # callable (index, transverse, t) -> float, number, or array


def _resolve_dt(dt: float | None, default: float | None, component: str) -> float:
    if dt is None:
        dt = default
    if dt is None:
        raise ConfigurationError(
            "dt",
            None,
            expected_type=float,
            component=component,
            hint="Pass dt to the call or set it when constructing the AdvectionOperator",
        )
    return validate_positive(dt, "dt", component=component)


class AxisAdvection:
    """
    Advection derivative along one axis, bound to velocity and spacing accessors.

    Calling the operator returns dphi/dt for the swept axis with the same
    shape as the field. Instances are created by AdvectionOperator.bind().

    Attributes:
        reorder: Column mapping for the swept axis
        stencil: Stencil function
        left, right: Stencil half widths (ghost cells per side)
        bc: Boundary condition for the ghost cells
        p: Stencil parameters
        num_threads: Worker threads for the column sweep
        last_courant: Largest |U dt / dz| seen by the most recent call
    """

    def __init__(
        self,
        reorder: AxisReorder,
        stencil: str | Callable[..., Any],
        velocity_fn: Accessor,
        spacing_fn: Accessor,
        bc: BoundaryCondition | None = None,
        p: Mapping[str, Any] | None = None,
        num_threads: int = 1,
        dt: float | None = None,
    ):
        self.reorder = reorder
        self.stencil = get_stencil(stencil)
        self.left, self.right = stencil_size(self.stencil)
        self.bc = bc if bc is not None else ZeroGradBC()
        self.bc.validate(reorder.axis_length, self.left, self.right)
        self.p = dict(p) if p else {}
        self.num_threads = max(1, int(num_threads))
        self.dt = dt
        self.velocity_fn = velocity_fn
        self.spacing_fn = spacing_fn
        self.last_courant = 0.0
        self._spacing_window = uses_spacing_window(self.stencil)
        # Ghost spacings follow the grid, never the field values
        self._spacing_bc = self.bc if isinstance(self.bc, PeriodicBC) else ZeroGradBC()

        # Array providers are converted to (points, columns) matrices once
        self._velocity_matrix = self._provider_matrix(velocity_fn, staggered=True)
        self._spacing_matrix = self._provider_matrix(spacing_fn, staggered=False)

    @property
    def axis(self) -> int:
        return self.reorder.axis

    @property
    def shape(self) -> tuple[int, ...]:
        return self.reorder.shape

    @cached_property
    def _transverse(self) -> list[tuple[int, ...]]:
        return [self.reorder.transverse_index(c) for c in range(self.reorder.n_columns)]

    def _provider_matrix(self, provider: Accessor, staggered: bool) -> NDArray | None:
        """Convert a non-callable provider to a (points, columns) matrix; None for callables."""
        if callable(provider):
            return None

        name = "velocity" if staggered else "spacing"
        n_points = self.reorder.axis_length + (1 if staggered else 0)
        values = np.asarray(provider, dtype=float)
        matrix_shape = (n_points, self.reorder.n_columns)

        if values.ndim == 0:
            return np.full(matrix_shape, float(values))
        if values.ndim == 1 and values.shape[0] == n_points:
            return np.broadcast_to(values[:, None], matrix_shape)

        tensor_shape = list(self.shape)
        tensor_shape[self.axis] = n_points
        if values.shape == tuple(tensor_shape):
            return np.moveaxis(values, self.axis, 0).reshape(matrix_shape)

        raise ShapeMismatchError(
            name,
            values.shape,
            tuple(tensor_shape),
            component="AxisAdvection",
            context=f"{name} arrays must be scalar, 1-D of length {n_points}, or tensor-shaped",
        )

    def _sample(self, provider: Accessor, matrix: NDArray | None, n_points: int, t: float, columns: slice) -> NDArray:
        if matrix is not None:
            return matrix[:, columns]

        indices = range(self.reorder.n_columns)[columns]
        values = np.empty((n_points, len(indices)))
        for j, c in enumerate(indices):
            transverse = self._transverse[c]
            for k in range(n_points):
                values[k, j] = provider(k, transverse, t)
        return values

    def sample_velocity(self, t: float, columns: slice = slice(None)) -> NDArray:
        """Edge velocities as a (n + 1, n_columns) matrix."""
        return self._sample(self.velocity_fn, self._velocity_matrix, self.reorder.axis_length + 1, t, columns)

    def sample_spacing(self, t: float, columns: slice = slice(None)) -> NDArray:
        """Cell spacings as a (n, n_columns) matrix."""
        return self._sample(self.spacing_fn, self._spacing_matrix, self.reorder.axis_length, t, columns)

    def _sweep_chunk(self, padded: NDArray, out: NDArray, columns: slice, t: float, dt: float) -> float:
        """Evaluate the stencil for a chunk of columns; returns the chunk's largest Courant number."""
        velocity = self.sample_velocity(t, columns)
        spacing = self.sample_spacing(t, columns)

        width = self.left + self.right + 1
        windows = np.moveaxis(sliding_window_view(padded[:, columns], width, axis=0), -1, 0)
        edges = np.stack([velocity[:-1], velocity[1:]])

        dz = spacing
        if self._spacing_window:
            padded_dz = self._spacing_bc.pad(spacing, self.left, self.right, axis=0)
            dz = np.moveaxis(sliding_window_view(padded_dz, width, axis=0), -1, 0)

        out[:, columns] = self.stencil(windows, edges, dt, dz, self.p)

        with np.errstate(divide="ignore", invalid="ignore"):
            courant = np.abs(edges * dt / spacing)
        return float(np.nanmax(courant)) if courant.size else 0.0

    def _chunks(self) -> list[slice]:
        n_columns = self.reorder.n_columns
        n_chunks = min(self.num_threads, n_columns)
        bounds = np.linspace(0, n_columns, n_chunks + 1).astype(int)
        return [slice(int(a), int(b)) for a, b in zip(bounds[:-1], bounds[1:], strict=True)]

    def __call__(self, u: ArrayLike, t: float = 0.0, dt: float | None = None, out: NDArray | None = None) -> NDArray:
        """
        Compute dphi/dt along the bound axis.

        Args:
            u: Field with the bound shape (or its C-order flattening)
            t: Time passed to the accessors
            dt: Time step; defaults to the operator's dt
            out: Optional field-shaped buffer for the derivative

        Returns:
            Derivative with the field's shape
        """
        dt = _resolve_dt(dt, self.dt, "AxisAdvection")
        u = np.asarray(u)
        columns = self.reorder.forward(u)
        dtype = u.dtype if np.issubdtype(u.dtype, np.floating) else np.float64

        padded = self.bc.pad(columns, self.left, self.right, axis=0)
        result = np.empty(self.reorder.matrix_shape, dtype=dtype)

        chunks = self._chunks()
        if len(chunks) == 1:
            courant = self._sweep_chunk(padded, result, chunks[0], t, dt)
        else:
            courant = 0.0
            with ThreadPoolExecutor(max_workers=len(chunks)) as executor:
                futures = [executor.submit(self._sweep_chunk, padded, result, chunk, t, dt) for chunk in chunks]
                for future in as_completed(futures):
                    courant = max(courant, future.result())

        self.last_courant = courant
        return self.reorder.inverse(result, out=out)

    def courant_number(self, t: float = 0.0, dt: float | None = None) -> float:
        """Largest |U dt / dz| over all edges of the bound axis."""
        dt = _resolve_dt(dt, self.dt, "AxisAdvection")
        velocity = self.sample_velocity(t)
        spacing = self.sample_spacing(t)
        with np.errstate(divide="ignore", invalid="ignore"):
            courant = np.maximum(np.abs(velocity[:-1]), np.abs(velocity[1:])) * dt / np.abs(spacing)
        return float(np.nanmax(courant))

    def __repr__(self) -> str:
        return (
            f"AxisAdvection(shape={self.shape}, axis={self.axis}, stencil={self.stencil.__name__}, "
            f"bc={self.bc!r}, num_threads={self.num_threads})"
        )


class AdvectionOperator:
    """
    Reusable advection operator: stencil + boundary condition + optional time step.

    The operator holds no field state; every call is a function of the field,
    the accessors and the time.

    Attributes:
        stencil: Stencil function (resolved from a name if needed)
        bc: Boundary condition for ghost cells
        dt: Default time step (None requires dt at every call)
        p: Stencil parameters, e.g. {"monotonic": False}
        num_threads: Worker threads per axis sweep

    Example:
        >>> op = AdvectionOperator("upwind1", dt=0.1)
        >>> phi = np.zeros(10)
        >>> phi[5] = 1.0
        >>> dphi = op.apply(phi, axis=0, velocity_fn=1.0, spacing_fn=1.0)
        >>> phi + 0.1 * dphi   # 0.1 of the mass moves from cell 5 to cell 6
    """

    def __init__(
        self,
        stencil: str | Callable[..., Any] = "l94",
        bc: BoundaryCondition | str | None = None,
        dt: float | None = None,
        p: Mapping[str, Any] | None = None,
        num_threads: int = 1,
    ):
        self.stencil = get_stencil(stencil)
        self.bc = create_bc(bc) if bc is not None else ZeroGradBC()
        self.dt = None if dt is None else validate_positive(dt, "dt", component="AdvectionOperator")
        self.p = dict(p) if p else {}
        if isinstance(num_threads, bool) or not isinstance(num_threads, int) or num_threads < 1:
            raise ConfigurationError(
                "num_threads", num_threads, expected_type=int, valid_range=(1, "inf"), component="AdvectionOperator"
            )
        self.num_threads = num_threads

        log_operator_configuration(
            logger,
            "AdvectionOperator",
            {
                "stencil": self.stencil.__name__,
                "bc": self.bc,
                "dt": self.dt,
                "p": self.p,
                "num_threads": self.num_threads,
            },
        )

    @property
    def stencil_size(self) -> tuple[int, int]:
        return stencil_size(self.stencil)

    def bind(
        self,
        shape: Sequence[int] | int | AxisReorder,
        axis: int,
        velocity_fn: Accessor,
        spacing_fn: Accessor,
    ) -> AxisAdvection:
        """
        Bind the operator to one axis of a field shape and to its accessors.

        Args:
            shape: Field shape, or an AxisReorder from orderby_op()
            axis: Swept axis (0-based, negative values allowed)
            velocity_fn: Edge velocity accessor
            spacing_fn: Cell spacing accessor

        Raises:
            ShapeMismatchError: If the axis is out of range
            BoundaryConditionError: If the boundary condition cannot pad the axis
        """
        if isinstance(shape, AxisReorder):
            reorder = shape
            if validate_axis(axis, reorder.ndim, component="AdvectionOperator") != reorder.axis:
                raise ShapeMismatchError(
                    "axis",
                    axis,
                    reorder.axis,
                    component="AdvectionOperator",
                    context="reorder is bound to another axis",
                )
        else:
            reorder = AxisReorder(shape, axis)

        return AxisAdvection(
            reorder,
            self.stencil,
            velocity_fn,
            spacing_fn,
            bc=self.bc,
            p=self.p,
            num_threads=self.num_threads,
            dt=self.dt,
        )

    def _bind_axes(
        self,
        shape: tuple[int, ...],
        velocity_fns: Mapping[int, Accessor] | Sequence[Accessor],
        spacing_fns: Mapping[int, Accessor] | Sequence[Accessor],
    ) -> list[AxisAdvection]:
        velocities = _axis_mapping(velocity_fns, len(shape), "velocity_fns")
        spacings = _axis_mapping(spacing_fns, len(shape), "spacing_fns")
        if set(velocities) != set(spacings):
            raise ConfigurationError(
                "spacing_fns",
                sorted(spacings),
                component="AdvectionOperator",
                hint=f"Provide spacing accessors for exactly the advected axes {sorted(velocities)}",
            )
        return [self.bind(shape, axis, velocities[axis], spacings[axis]) for axis in velocities]

    def _warn_cfl(self, operators: Sequence[AxisAdvection], t: float) -> None:
        for op in operators:
            if op.last_courant > 1.0:
                logger.warning(
                    f"Courant number {op.last_courant:.3f} exceeds 1 along axis {op.axis} at t={t:g}; "
                    "the explicit update may be unstable"
                )

    def apply(
        self,
        field: ArrayLike,
        axis: int,
        velocity_fn: Accessor,
        spacing_fn: Accessor,
        t: float = 0.0,
        dt: float | None = None,
        out: NDArray | None = None,
    ) -> NDArray:
        """
        Derivative dphi/dt of `field` from advection along a single axis.

        Raises:
            ConfigurationError: If no dt is available
            ShapeMismatchError: If the axis is out of range
        """
        field = np.asarray(field)
        op = self.bind(field.shape, axis, velocity_fn, spacing_fn)
        result = op(field, t, dt, out=out)
        self._warn_cfl([op], t)
        return result

    def derivative(
        self,
        field: ArrayLike,
        velocity_fns: Mapping[int, Accessor] | Sequence[Accessor],
        spacing_fns: Mapping[int, Accessor] | Sequence[Accessor],
        t: float = 0.0,
        dt: float | None = None,
        out: NDArray | None = None,
    ) -> NDArray:
        """
        Combined derivative of all advected axes (simultaneous mode).

        Logs a warning when the Courant number along any axis exceeds 1.

        Args:
            field: Field tensor
            velocity_fns: Velocity accessors keyed by axis (or a sequence, one per axis)
            spacing_fns: Spacing accessors for the same axes
            t: Time passed to the accessors
            dt: Time step; defaults to the operator's dt
            out: Optional buffer for the result
        """
        field = np.asarray(field)
        operators = self._bind_axes(field.shape, velocity_fns, spacing_fns)
        result = _sum_derivatives(operators, field, t, dt, out)
        self._warn_cfl(operators, t)
        return result

    def rhs(
        self,
        shape: Sequence[int],
        velocity_fns: Mapping[int, Accessor] | Sequence[Accessor],
        spacing_fns: Mapping[int, Accessor] | Sequence[Accessor],
        dt: float | None = None,
    ) -> Callable[[float, NDArray], NDArray]:
        """
        Right-hand side f(t, y) of the semi-discrete system for scipy.integrate.solve_ivp.

        The state y is the C-order flattening of a field with `shape`.
        L94 and PPM fluxes depend on the Courant number, so `dt` should be
        the step the caller's integrator is expected to take.
        The right-hand side is evaluated many times per solver step and does not
        log Courant warnings; check courant_number() before integrating.
        """
        shape = tuple(int(s) for s in shape)
        operators = self._bind_axes(shape, velocity_fns, spacing_fns)
        dt = _resolve_dt(dt, self.dt, "AdvectionOperator.rhs")

        def f(t: float, y: NDArray) -> NDArray:
            return _sum_derivatives(operators, np.reshape(y, shape), t, dt, None).ravel()

        return f

    def step(
        self,
        field: ArrayLike,
        velocity_fns: Mapping[int, Accessor] | Sequence[Accessor],
        spacing_fns: Mapping[int, Accessor] | Sequence[Accessor],
        t: float = 0.0,
        dt: float | None = None,
        integrator: str | Callable[..., NDArray] = "euler",
        out: NDArray | None = None,
    ) -> NDArray:
        """
        Advance `field` by dt with sequential splitting across the advected axes.

        Each axis advances the result of the previous axis by a full step of
        the chosen explicit integrator. The input field is not modified unless
        it is passed as `out`.

        Args:
            field: Field tensor at time t
            velocity_fns: Velocity accessors keyed by axis, swept in key order
            spacing_fns: Spacing accessors for the same axes
            t: Time at the start of the step
            dt: Time step; defaults to the operator's dt
            integrator: "euler", "ssprk22", "ssprk33" or a step function
            out: Optional buffer for the advanced field

        Returns:
            Field at t + dt
        """
        from env_transport.simulation.integrators import get_integrator

        dt = _resolve_dt(dt, self.dt, "AdvectionOperator.step")
        advance = get_integrator(integrator)
        field = np.asarray(field)
        operators = self._bind_axes(field.shape, velocity_fns, spacing_fns)

        current = np.array(field, dtype=field.dtype if np.issubdtype(field.dtype, np.floating) else np.float64)
        mass_before = float(current.sum())
        for op in operators:

            def f(v: NDArray, s: float, op: AxisAdvection = op) -> NDArray:
                return op(v, s, dt)

            current = advance(f, current, t, dt)
        self._warn_cfl(operators, t)
        log_mass_balance(logger, f"advection step t={t:g}", mass_before, float(current.sum()))

        if out is None:
            return current
        if out.shape != current.shape:
            raise ShapeMismatchError("out", out.shape, current.shape, component="AdvectionOperator.step")
        out[...] = current
        return out

    def courant_number(
        self,
        shape: Sequence[int],
        velocity_fns: Mapping[int, Accessor] | Sequence[Accessor],
        spacing_fns: Mapping[int, Accessor] | Sequence[Accessor],
        t: float = 0.0,
        dt: float | None = None,
    ) -> float:
        """Largest |U dt / dz| over all advected axes."""
        operators = self._bind_axes(tuple(shape), velocity_fns, spacing_fns)
        return max(op.courant_number(t, dt) for op in operators)

    def __repr__(self) -> str:
        return (
            f"AdvectionOperator(stencil={self.stencil.__name__}, bc={self.bc!r}, dt={self.dt}, "
            f"p={self.p}, num_threads={self.num_threads})"
        )


def _axis_mapping(
    accessors: Mapping[int, Accessor] | Sequence[Accessor], ndim: int, name: str
) -> dict[int, Accessor]:
    """Normalize per-axis accessors to {axis: accessor}, preserving order."""
    if hasattr(accessors, "items"):
        items = list(accessors.items())
    elif isinstance(accessors, (list, tuple)):
        items = list(enumerate(accessors))
    else:
        raise ConfigurationError(
            name, accessors, component="AdvectionOperator", hint=f"Pass {name} as a mapping from axis to accessor"
        )

    mapping: dict[int, Accessor] = {}
    for axis, accessor in items:
        key = validate_axis(axis, ndim, component="AdvectionOperator")
        if key in mapping:
            raise ConfigurationError(name, axis, component="AdvectionOperator", hint=f"Axis {key} is given twice")
        mapping[key] = accessor
    if not mapping:
        raise ConfigurationError(name, accessors, component="AdvectionOperator", hint="Provide at least one axis")
    return mapping


def _sum_derivatives(
    operators: Sequence[AxisAdvection], field: NDArray, t: float, dt: float | None, out: NDArray | None
) -> NDArray:
    # Summed in a scratch buffer: `out` may alias `field`
    total = operators[0](field, t, dt)
    for op in operators[1:]:
        total += op(field, t, dt)
    if out is None:
        return total
    if out.shape != total.shape:
        raise ShapeMismatchError("out", out.shape, total.shape, component="AdvectionOperator")
    out[...] = total
    return out
