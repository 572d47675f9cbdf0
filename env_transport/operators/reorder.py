"""
Axis reorder operator: present one tensor axis as matrix columns.

A 1-D stencil sweep along axis k of an arbitrary-rank field is the same
computation for every transect along k. AxisReorder moves axis k to the front
and flattens the remaining axes, so the field becomes an (n_k, n_columns)
matrix whose columns are those transects. The inverse puts the matrix back
into the original shape.

Column Ordering:
    Columns enumerate the remaining axes in C (row-major) order. The ordering
    depends only on (shape, axis), so column c always refers to the same
    physical transect; velocity and spacing accessors rely on this.

Usage:
    >>> reorder = AxisReorder((4, 5, 6), axis=1)
    >>> x = reorder.forward(u)          # shape (5, 24)
    >>> u_back = reorder.inverse(x)     # shape (4, 5, 6), identical to u
    >>> reorder.transverse_index(7)     # (1, 1): fixed indices of axes 0 and 2
    >>> reorder.index(7)[:2]            # [(1, 0, 1), (1, 1, 1)]
"""

from __future__ import annotations

from functools import cached_property
from typing import TYPE_CHECKING

import numpy as np
import scipy.sparse as sparse

from env_transport.utils.exceptions import ShapeMismatchError, validate_axis

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from numpy.typing import ArrayLike, NDArray


class AxisReorder:
    """
    Reorder a tensor into a matrix whose columns run along one axis.

    Attributes:
        shape: Tensor shape
        axis: Swept axis (normalized, 0-based)
        axis_length: Number of cells along the axis (matrix rows)
        n_columns: Number of transects (matrix columns)
        transverse_shape: Shape of the remaining axes, in order
    """

    def __init__(self, shape: Sequence[int] | int, axis: int):
        if isinstance(shape, int):
            shape = (shape,)
        self.shape = tuple(int(s) for s in shape)
        if len(self.shape) == 0 or any(s < 1 for s in self.shape):
            raise ShapeMismatchError("shape", self.shape, "rank >= 1 with positive extents", component="AxisReorder")

        self.axis = validate_axis(axis, len(self.shape), component="AxisReorder")
        self.axis_length = self.shape[self.axis]
        self.transverse_shape = self.shape[: self.axis] + self.shape[self.axis + 1 :]
        self.n_columns = int(np.prod(self.transverse_shape, dtype=np.int64))
        self._moved_shape = (self.axis_length, *self.transverse_shape)

    @property
    def ndim(self) -> int:
        return len(self.shape)

    @property
    def size(self) -> int:
        return self.axis_length * self.n_columns

    @property
    def matrix_shape(self) -> tuple[int, int]:
        return (self.axis_length, self.n_columns)

    def forward(self, u: ArrayLike) -> NDArray:
        """
        Reorder a tensor (or its C-order flattening) into a (n_axis, n_columns) matrix.

        Raises:
            ShapeMismatchError: If u has neither the tensor shape nor its size
        """
        u = np.asarray(u)
        if u.shape != self.shape:
            if u.ndim == 1 and u.size == self.size:
                u = u.reshape(self.shape)
            else:
                raise ShapeMismatchError("field", u.shape, self.shape, component="AxisReorder.forward")
        return np.moveaxis(u, self.axis, 0).reshape(self.matrix_shape)

    def inverse(self, x: ArrayLike, out: NDArray | None = None) -> NDArray:
        """
        Put a (n_axis, n_columns) matrix back into the tensor shape.

        Args:
            x: Reordered matrix (or its C-order flattening)
            out: Optional tensor-shaped buffer to write into

        Raises:
            ShapeMismatchError: If x or out have the wrong shape
        """
        x = np.asarray(x)
        if x.shape != self.matrix_shape:
            if x.size == self.size and x.ndim == 1:
                x = x.reshape(self.matrix_shape)
            else:
                raise ShapeMismatchError("matrix", x.shape, self.matrix_shape, component="AxisReorder.inverse")

        u = np.moveaxis(x.reshape(self._moved_shape), 0, self.axis)
        if out is None:
            return np.ascontiguousarray(u)
        if out.shape != self.shape:
            raise ShapeMismatchError("out", out.shape, self.shape, component="AxisReorder.inverse")
        out[...] = u
        return out

    def transverse_index(self, column: int) -> tuple[int, ...]:
        """Indices of the non-swept axes identifying a column, in axis order."""
        self._check_column(column)
        if not self.transverse_shape:
            return ()
        return tuple(int(i) for i in np.unravel_index(column, self.transverse_shape))

    def index(self, column: int) -> list[tuple[int, ...]]:
        """Multi-indices of the original tensor composing a column, in row order."""
        transverse = self.transverse_index(column)
        return [transverse[: self.axis] + (row,) + transverse[self.axis :] for row in range(self.axis_length)]

    def _check_column(self, column: int) -> None:
        if not 0 <= column < self.n_columns:
            raise IndexError(f"column {column} outside [0, {self.n_columns})")

    @cached_property
    def permutation(self) -> NDArray[np.intp]:
        """Flat tensor index feeding each flat matrix entry: forward(u).ravel() == u.ravel()[permutation]."""
        flat = np.arange(self.size).reshape(self.shape)
        return np.moveaxis(flat, self.axis, 0).reshape(-1)

    def as_sparse(self) -> sparse.csr_matrix:
        """
        Sparse permutation matrix P with P @ u.ravel() == forward(u).ravel().

        P is orthogonal, so P.T applies the inverse reordering.
        """
        n = self.size
        values = np.ones(n)
        return sparse.csr_matrix((values, (np.arange(n), self.permutation)), shape=(n, n))

    def __repr__(self) -> str:
        return f"AxisReorder(shape={self.shape}, axis={self.axis})"


def orderby_op(shape: Sequence[int] | int, axis: int) -> tuple[AxisReorder, Callable[[int], list[tuple[int, ...]]]]:
    """
    Create the reorder operator for `axis` and its column index function.

    This is the first phase of building an axis advection operator: the index
    function exists before any velocity or spacing accessor that needs it, so
    accessors can close over it and then be passed to AdvectionOperator.bind().

    Returns:
        (reorder, idx_f) where idx_f(column) lists the tensor multi-indices of
        that column in row order.
    """
    reorder = AxisReorder(shape, axis)
    return reorder, reorder.index
