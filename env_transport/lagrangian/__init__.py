"""Lagrangian (puff) transport."""

from __future__ import annotations

from .puff import Puff, PuffTrajectory

__all__ = ["Puff", "PuffTrajectory"]
