"""
Grid geometry for advection: boundary conditions and grid accessors.
"""

from __future__ import annotations

from .accessors import (
    EARTH_RADIUS,
    constant_spacing,
    constant_velocity,
    coordinate_spacing,
    edge_velocity,
    lonlat_spacing,
    staggered_array_velocity,
)
from .boundary import (
    BCArray,
    BCType,
    BoundaryCondition,
    DirichletBC,
    PeriodicBC,
    ZeroGradBC,
    ZeroGradBCArray,
    create_bc,
)

__all__ = [
    "EARTH_RADIUS",
    "BCArray",
    "BCType",
    "BoundaryCondition",
    "DirichletBC",
    "PeriodicBC",
    "ZeroGradBC",
    "ZeroGradBCArray",
    "constant_spacing",
    "constant_velocity",
    "coordinate_spacing",
    "create_bc",
    "edge_velocity",
    "lonlat_spacing",
    "staggered_array_velocity",
]
