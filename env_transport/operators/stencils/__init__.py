"""
Finite-volume advection stencils.

Usage:
    >>> from env_transport.operators.stencils import get_stencil, stencil_size
    >>> ppm = get_stencil("ppm")
    >>> stencil_size(ppm)
    (3, 4)
"""

from __future__ import annotations

from .advection_stencils import (
    available_stencils,
    get_stencil,
    l94_stencil,
    ppm_stencil,
    register_stencil,
    stencil_size,
    upwind1_stencil,
    upwind2_stencil,
    uses_spacing_window,
)

__all__ = [
    "available_stencils",
    "get_stencil",
    "l94_stencil",
    "ppm_stencil",
    "register_stencil",
    "stencil_size",
    "upwind1_stencil",
    "upwind2_stencil",
    "uses_spacing_window",
]
