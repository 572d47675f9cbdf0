"""
Advection operators for structured grids.

Modules:
    stencils:  1-D finite-volume advection stencils (upwind1, upwind2, l94, ppm)
    reorder:   Axis reorder operator exposing one axis as matrix columns
    advection: Per-axis and multi-axis advection operators

Usage:
    >>> from env_transport.operators import AdvectionOperator, orderby_op
    >>> reorder, idx_f = orderby_op(phi.shape, axis=0)
    >>> op = AdvectionOperator("ppm", dt=60.0)
    >>> x_sweep = op.bind(reorder, 0, velocity_fn, spacing_fn)
    >>> dphi = x_sweep(phi, t=0.0)
"""

from __future__ import annotations

from .advection import AdvectionOperator, AxisAdvection
from .reorder import AxisReorder, orderby_op
from .stencils import (
    available_stencils,
    get_stencil,
    l94_stencil,
    ppm_stencil,
    register_stencil,
    stencil_size,
    upwind1_stencil,
    upwind2_stencil,
)

__all__ = [
    "AdvectionOperator",
    "AxisAdvection",
    "AxisReorder",
    "available_stencils",
    "get_stencil",
    "l94_stencil",
    "orderby_op",
    "ppm_stencil",
    "register_stencil",
    "stencil_size",
    "upwind1_stencil",
    "upwind2_stencil",
]
