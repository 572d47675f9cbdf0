"""
Exception classes for env_transport with structured, actionable messages.

Every exception carries the component that raised it, an optional suggested
action and a dictionary of diagnostic data, all folded into the message so
that callers (and their logs) see the full context.

Taxonomy:
    TransportError           - base class
    ShapeMismatchError       - array/axis shape inconsistencies (also ValueError)
    BoundaryConditionError   - ghost request the boundary condition cannot satisfy
    StencilError             - unknown or malformed stencil
    ConfigurationError       - invalid parameter value
    IntegrationError         - time integration failure (also RuntimeError)
"""

from __future__ import annotations

import numbers
from typing import Any


class TransportError(Exception):
    """
    Base exception for env_transport with context and suggestions.

    Provides structured error information:
    - Clear error description
    - Component that raised the error
    - Suggested action for resolution
    - Optional diagnostic data
    """

    def __init__(
        self,
        message: str,
        component: str | None = None,
        suggested_action: str | None = None,
        error_code: str | None = None,
        diagnostic_data: dict[str, Any] | None = None,
    ):
        self.component = component or "env_transport"
        self.suggested_action = suggested_action
        self.error_code = error_code
        self.diagnostic_data = diagnostic_data or {}

        full_message = f"[{self.component}] {message}"

        if self.suggested_action:
            full_message += f"\nSuggestion: {self.suggested_action}"

        if self.error_code:
            full_message += f"\nError Code: {self.error_code}"

        if self.diagnostic_data:
            full_message += "\nDiagnostic Information:"
            for key, value in self.diagnostic_data.items():
                full_message += f"\n   - {key}: {value}"

        super().__init__(full_message)


class ShapeMismatchError(TransportError, ValueError):
    """Exception raised when array shapes or axes are inconsistent."""

    def __init__(
        self,
        array_name: str,
        provided_shape: tuple | int,
        expected_shape: tuple | int | str,
        component: str | None = None,
        context: str | None = None,
    ):
        diagnostic_data = {
            "array_name": array_name,
            "provided_shape": str(provided_shape),
            "expected_shape": str(expected_shape),
        }
        if context:
            diagnostic_data["context"] = context

        super().__init__(
            message=f"Shape mismatch for {array_name}",
            component=component,
            suggested_action=f"Reshape '{array_name}' to {expected_shape} before calling",
            error_code="SHAPE_MISMATCH",
            diagnostic_data=diagnostic_data,
        )


class BoundaryConditionError(TransportError, ValueError):
    """Exception raised when a boundary condition cannot provide the requested ghost cells."""

    def __init__(
        self,
        bc_name: str,
        length: int,
        left: int,
        right: int,
        reason: str,
        component: str | None = None,
    ):
        super().__init__(
            message=f"{bc_name} cannot pad an array of length {length} with ({left}, {right}) ghost cells: {reason}",
            component=component or bc_name,
            suggested_action="Use a larger domain or a stencil with a narrower window",
            error_code="UNSUPPORTED_BOUNDARY",
            diagnostic_data={"length": length, "left": left, "right": right},
        )


class StencilError(TransportError, ValueError):
    """Exception raised for unknown or malformed stencils."""

    def __init__(self, stencil: Any, reason: str, available: list[str] | None = None):
        diagnostic_data = {"stencil": getattr(stencil, "__name__", repr(stencil))}
        suggested_action = None
        if available:
            suggested_action = f"Use one of: {', '.join(available)}"

        super().__init__(
            message=reason,
            component="stencils",
            suggested_action=suggested_action,
            error_code="INVALID_STENCIL",
            diagnostic_data=diagnostic_data,
        )


class ConfigurationError(TransportError, ValueError):
    """Exception raised when an operator or simulator parameter is invalid."""

    def __init__(
        self,
        parameter_name: str,
        provided_value: Any,
        expected_type: type | None = None,
        valid_range: tuple | None = None,
        component: str | None = None,
        hint: str | None = None,
    ):
        diagnostic_data = {
            "parameter": parameter_name,
            "provided_value": str(provided_value),
            "provided_type": type(provided_value).__name__,
        }

        if expected_type:
            diagnostic_data["expected_type"] = expected_type.__name__

        if valid_range:
            diagnostic_data["valid_range"] = f"[{valid_range[0]}, {valid_range[1]}]"

        super().__init__(
            message=f"Invalid configuration for parameter '{parameter_name}'",
            component=component,
            suggested_action=hint or _generate_configuration_suggestions(parameter_name, expected_type, valid_range),
            error_code="INVALID_CONFIGURATION",
            diagnostic_data=diagnostic_data,
        )


class IntegrationError(TransportError, RuntimeError):
    """Exception raised when a time integration sub-step fails."""

    def __init__(self, stage: str, t: float, detail: str, component: str | None = None):
        super().__init__(
            message=f"Integration failed during {stage} at t={t:g}: {detail}",
            component=component or "simulation",
            suggested_action="Reduce the splitting interval or loosen solver tolerances",
            error_code="INTEGRATION_FAILURE",
            diagnostic_data={"stage": stage, "time": t},
        )


def _generate_configuration_suggestions(
    parameter_name: str,
    expected_type: type | None,
    valid_range: tuple | None,
) -> str:
    if valid_range:
        return f"Set '{parameter_name}' within [{valid_range[0]}, {valid_range[1]}]"
    if expected_type:
        return f"Provide '{parameter_name}' as {expected_type.__name__}"
    return f"Check the value of '{parameter_name}'"


def validate_positive(value: Any, parameter_name: str, component: str | None = None) -> float:
    """Validate that a parameter is a finite positive number and return it as float."""
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        raise ConfigurationError(parameter_name, value, expected_type=float, component=component)
    if not value > 0 or value == float("inf"):
        raise ConfigurationError(parameter_name, value, valid_range=(0, "inf"), component=component)
    return float(value)


def validate_axis(axis: int, ndim: int, component: str | None = None) -> int:
    """Normalize a (possibly negative) axis, raising ShapeMismatchError when out of range."""
    if isinstance(axis, bool) or not isinstance(axis, numbers.Integral):
        raise ConfigurationError("axis", axis, expected_type=int, component=component)
    if not -ndim <= axis < ndim:
        raise ShapeMismatchError(
            array_name="axis",
            provided_shape=axis,
            expected_shape=f"[{-ndim}, {ndim - 1}]",
            component=component,
            context=f"field has {ndim} dimension(s)",
        )
    return int(axis) % ndim
