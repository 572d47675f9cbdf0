"""
Time integration for advection: explicit steppers and operator splitting.
"""

from __future__ import annotations

from .integrators import available_integrators, euler_step, get_integrator, ssprk22_step, ssprk33_step
from .splitting import SplittingSimulator

__all__ = [
    "SplittingSimulator",
    "available_integrators",
    "euler_step",
    "get_integrator",
    "ssprk22_step",
    "ssprk33_step",
]
