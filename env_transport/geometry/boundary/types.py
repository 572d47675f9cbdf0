"""
Boundary condition types for ghost-cell padding.

BCType names the rule used to synthesize ghost cells beyond the domain edge:

    ZERO_GRADIENT - ghost equals the nearest interior value (Neumann, dphi/dx = 0)
    PERIODIC      - ghosts wrap around to the opposite end of the domain
    DIRICHLET     - ghosts hold a fixed value
"""

from __future__ import annotations

from enum import Enum


class BCType(Enum):
    """Boundary condition types for 1-D ghost-cell padding."""

    ZERO_GRADIENT = "zero_gradient"
    PERIODIC = "periodic"
    DIRICHLET = "dirichlet"

    @classmethod
    def from_string(cls, name: str | BCType) -> BCType:
        """Parse a BC type, accepting enum members, values and common aliases."""
        if isinstance(name, BCType):
            return name
        key = name.strip().lower().replace("-", "_").replace(" ", "_")
        aliases = {
            "neumann": cls.ZERO_GRADIENT,
            "zerograd": cls.ZERO_GRADIENT,
            "constant": cls.DIRICHLET,
            "wrap": cls.PERIODIC,
        }
        if key in aliases:
            return aliases[key]
        return cls(key)
