"""
Boundary conditions for ghost-cell padding of 1-D stencil sweeps.

Usage:
    >>> from env_transport.geometry.boundary import ZeroGradBC, create_bc
    >>> bc = create_bc("periodic")
    >>> padded = bc.pad(column, left=3, right=4)
"""

from __future__ import annotations

from .conditions import (
    BCArray,
    BoundaryCondition,
    DirichletBC,
    PeriodicBC,
    ZeroGradBC,
    ZeroGradBCArray,
    create_bc,
)
from .types import BCType

__all__ = [
    "BCArray",
    "BCType",
    "BoundaryCondition",
    "DirichletBC",
    "PeriodicBC",
    "ZeroGradBC",
    "ZeroGradBCArray",
    "create_bc",
]
