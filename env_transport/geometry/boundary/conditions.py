"""
Ghost-cell boundary conditions for 1-D stencil sweeps.

A stencil with half widths (left, right) reads `left` cells before and `right`
cells after the cell it updates. Boundary conditions extend an array of n
interior cells with that many ghost cells on each side, so a fixed-width
window never reads out of bounds.

Classes:
    BoundaryCondition: Abstract ghost-cell rule
    ZeroGradBC:        Ghost = nearest interior value (any width)
    PeriodicBC:        Ghosts wrap around (width <= n)
    DirichletBC:       Ghosts hold a constant value
    BCArray:           Read-only view with external indexing, no copy

Index Convention:
    External index i runs over [-left, n + right). Indices 0..n-1 address the
    interior; negative indices and indices >= n address ghost cells.

Usage:
    >>> bc = ZeroGradBC()
    >>> bc.pad(np.array([1.0, 2.0, 3.0]), left=2, right=2)
    array([1., 1., 1., 2., 3., 3., 3.])
    >>> view = BCArray(np.array([1.0, 2.0, 3.0]), bc, left=2, right=2)
    >>> float(view[-2]), float(view[4])
    (1.0, 3.0)
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, ClassVar

import numpy as np
import scipy.sparse as sparse

from env_transport.utils.exceptions import BoundaryConditionError, ConfigurationError

from .types import BCType

if TYPE_CHECKING:
    from numpy.typing import ArrayLike, NDArray


class BoundaryCondition(ABC):
    """
    Abstract ghost-cell rule.

    Subclasses map every external index to either an interior index or a fixed
    value (`_source_index`), and may override `pad` with a faster bulk
    implementation. Stencils never see the boundary condition; they only read
    the padded array.
    """

    bc_type: ClassVar[BCType]

    def validate(self, n: int, left: int, right: int) -> None:
        """
        Check that ghost cells of the requested widths can be produced.

        Raises:
            BoundaryConditionError: If the request is unsupported
        """
        if n < 1:
            raise BoundaryConditionError(type(self).__name__, n, left, right, "array is empty")
        if left < 0 or right < 0:
            raise BoundaryConditionError(type(self).__name__, n, left, right, "ghost widths must be non-negative")

    @abstractmethod
    def _source_index(self, i: int, n: int) -> int | None:
        """Interior index supplying external index i, or None for a fixed value."""

    def _fixed_value(self) -> float:
        return 0.0

    def ghost_value(self, data: ArrayLike, i: int, axis: int = 0) -> NDArray | float:
        """Value at external index i of `data` along `axis` (interior or ghost)."""
        data = np.asarray(data)
        n = data.shape[axis]
        source = self._source_index(i, n)
        if source is None:
            if data.ndim == 1:
                return self._fixed_value()
            shape = data.shape[:axis] + data.shape[axis + 1 :]
            return np.full(shape, self._fixed_value(), dtype=data.dtype)
        return np.take(data, source, axis=axis)

    def pad(self, data: ArrayLike, left: int, right: int, axis: int = 0) -> NDArray:
        """
        Return a copy of `data` extended by ghost cells along `axis`.

        Args:
            data: Interior values
            left: Number of ghost cells before index 0
            right: Number of ghost cells after index n-1
            axis: Axis to pad

        Returns:
            Array with shape[axis] == n + left + right
        """
        data = np.asarray(data)
        n = data.shape[axis]
        self.validate(n, left, right)
        rows = [self.ghost_value(data, i, axis) for i in range(-left, n + right)]
        return np.stack(rows, axis=axis).astype(data.dtype, copy=False)

    def as_sparse(self, n: int, left: int, right: int) -> sparse.csr_matrix:
        """
        Linear part of the padding as a sparse (n + left + right, n) matrix.

        For linear rules (zero gradient, periodic) `M @ x == pad(x, left, right)`.
        Ghost rows of fixed-value rules are empty; add `offset(...)` for those.
        """
        self.validate(n, left, right)
        rows, cols = [], []
        for row, i in enumerate(range(-left, n + right)):
            source = self._source_index(i, n)
            if source is not None:
                rows.append(row)
                cols.append(source)
        values = np.ones(len(rows))
        return sparse.csr_matrix((values, (rows, cols)), shape=(n + left + right, n))

    def offset(self, n: int, left: int, right: int) -> NDArray:
        """Affine part of the padding: fixed ghost values, zero elsewhere."""
        result = np.zeros(n + left + right)
        for row, i in enumerate(range(-left, n + right)):
            if self._source_index(i, n) is None:
                result[row] = self._fixed_value()
        return result

    def wrap(self, data: ArrayLike, left: int, right: int, axis: int = 0) -> BCArray:
        """Return a BCArray view of `data` with this boundary condition."""
        return BCArray(data, self, left, right, axis=axis)

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"

    def __eq__(self, other: object) -> bool:
        return type(self) is type(other) and self.__dict__ == other.__dict__

    def __hash__(self) -> int:
        return hash((type(self), tuple(sorted(self.__dict__.items()))))


class ZeroGradBC(BoundaryCondition):
    """Zero gradient (Neumann) boundary conditions: ghost = nearest interior value."""

    bc_type = BCType.ZERO_GRADIENT

    def _source_index(self, i: int, n: int) -> int:
        return min(max(i, 0), n - 1)

    def pad(self, data: ArrayLike, left: int, right: int, axis: int = 0) -> NDArray:
        data = np.asarray(data)
        self.validate(data.shape[axis], left, right)
        widths = [(0, 0)] * data.ndim
        widths[axis] = (left, right)
        return np.pad(data, widths, mode="edge")


class PeriodicBC(BoundaryCondition):
    """Periodic boundary conditions: ghosts wrap around the domain."""

    bc_type = BCType.PERIODIC

    def validate(self, n: int, left: int, right: int) -> None:
        super().validate(n, left, right)
        if left > n or right > n:
            raise BoundaryConditionError(
                type(self).__name__, n, left, right, "periodic ghost width cannot exceed the array length"
            )

    def _source_index(self, i: int, n: int) -> int:
        return i % n

    def pad(self, data: ArrayLike, left: int, right: int, axis: int = 0) -> NDArray:
        data = np.asarray(data)
        self.validate(data.shape[axis], left, right)
        widths = [(0, 0)] * data.ndim
        widths[axis] = (left, right)
        return np.pad(data, widths, mode="wrap")


class DirichletBC(BoundaryCondition):
    """Dirichlet boundary conditions: every ghost cell holds `value`."""

    bc_type = BCType.DIRICHLET

    def __init__(self, value: float = 0.0):
        self.value = float(value)

    def _source_index(self, i: int, n: int) -> int | None:
        if 0 <= i < n:
            return i
        return None

    def _fixed_value(self) -> float:
        return self.value

    def pad(self, data: ArrayLike, left: int, right: int, axis: int = 0) -> NDArray:
        data = np.asarray(data)
        self.validate(data.shape[axis], left, right)
        widths = [(0, 0)] * data.ndim
        widths[axis] = (left, right)
        return np.pad(data, widths, mode="constant", constant_values=self.value)

    def __repr__(self) -> str:
        return f"DirichletBC(value={self.value})"


class BCArray:
    """
    An array with external indexing implemented for boundary conditions.

    Wraps interior data without copying it; indices outside [0, n) along `axis`
    are answered by the boundary condition. `to_array()` materializes the
    padded array.

    Attributes:
        data: Interior values (not copied)
        bc: Boundary condition supplying ghost values
        left, right: Ghost widths
        axis: Padded axis
    """

    def __init__(self, data: ArrayLike, bc: BoundaryCondition, left: int, right: int, axis: int = 0):
        self.data = np.asarray(data)
        self.bc = bc
        self.left = int(left)
        self.right = int(right)
        self.axis = axis % self.data.ndim
        bc.validate(self.data.shape[self.axis], self.left, self.right)

    @property
    def interior_length(self) -> int:
        return self.data.shape[self.axis]

    @property
    def shape(self) -> tuple[int, ...]:
        shape = list(self.data.shape)
        shape[self.axis] = self.interior_length + self.left + self.right
        return tuple(shape)

    @property
    def dtype(self):
        return self.data.dtype

    def __len__(self) -> int:
        return self.shape[self.axis]

    def _check_index(self, i: int) -> int:
        i = int(i)
        if not -self.left <= i < self.interior_length + self.right:
            raise IndexError(
                f"index {i} outside [{-self.left}, {self.interior_length + self.right}) for {type(self.bc).__name__}"
            )
        return i

    def __getitem__(self, index: int | slice) -> NDArray | float:
        if isinstance(index, slice):
            start = -self.left if index.start is None else index.start
            stop = self.interior_length + self.right if index.stop is None else index.stop
            items = [self[i] for i in range(start, stop, index.step or 1)]
            if not items:
                raise IndexError(f"empty slice {index}")
            return np.stack(items, axis=self.axis)
        return self.bc.ghost_value(self.data, self._check_index(index), self.axis)

    def __iter__(self):
        for i in range(-self.left, self.interior_length + self.right):
            yield self[i]

    def to_array(self) -> NDArray:
        """Materialize the padded array (interior plus ghost cells)."""
        return self.bc.pad(self.data, self.left, self.right, axis=self.axis)

    def __array__(self, dtype=None, copy=None):
        result = self.to_array()
        return result if dtype is None else result.astype(dtype)

    def __repr__(self) -> str:
        return f"BCArray(shape={self.shape}, bc={self.bc!r}, left={self.left}, right={self.right})"


class ZeroGradBCArray(BCArray):
    """An array with zero gradient boundary conditions."""

    def __init__(self, data: ArrayLike, left: int, right: int, axis: int = 0):
        super().__init__(data, ZeroGradBC(), left, right, axis=axis)


def create_bc(kind: str | BCType | BoundaryCondition, value: float = 0.0) -> BoundaryCondition:
    """
    Create a boundary condition from a type name.

    Args:
        kind: "zero_gradient" (alias "neumann"), "periodic", "dirichlet", a BCType,
            or an existing BoundaryCondition (returned unchanged)
        value: Ghost value for Dirichlet conditions

    Raises:
        ConfigurationError: If the kind is unknown
    """
    if isinstance(kind, BoundaryCondition):
        return kind
    try:
        bc_type = BCType.from_string(kind)
    except (ValueError, AttributeError):
        raise ConfigurationError(
            "boundary",
            kind,
            component="boundary",
            hint=f"Use one of: {', '.join(t.value for t in BCType)}",
        ) from None

    if bc_type is BCType.ZERO_GRADIENT:
        return ZeroGradBC()
    if bc_type is BCType.PERIODIC:
        return PeriodicBC()
    return DirichletBC(value)
