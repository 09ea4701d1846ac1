# src/dae_stepper/errors.py
"""Error types and validation helpers for dae_stepper.

This module centralizes:
- explicit error classes, each also deriving from the matching builtin so
  callers can catch either, and
- small helpers producing standardized messages for precondition violations.

Dimension mismatches between a container and the dimension reported by an
integrable system are programming errors. They are raised, never recovered.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Final

import numpy as np

if TYPE_CHECKING:
    from numpy.typing import NDArray

_DIMENSION_MISMATCH_MSG: Final[str] = (
    "{name} has length {got}, but the integrable system reports {expected}."
)
_NEGATIVE_DIMENSION_MSG: Final[str] = (
    "{name} must be a non-negative integer dimension; got {got!r}."
)
_NOT_1D_MSG: Final[str] = "{name} must be a 1D vector; got shape {shape}."


class StepperError(Exception):
    """Base exception for dae_stepper errors."""


class DimensionMismatchError(StepperError, ValueError):
    """Raised when a container length disagrees with a reported dimension."""


class IntegrableTypeError(StepperError, TypeError):
    """Raised when a stepper is attached to a system lacking a capability."""


class ConvergenceError(StepperError, RuntimeError):
    """Raised when a strict Newton solve exhausts its iteration budget."""


class UnknownMethodError(StepperError, ValueError):
    """Raised when a time-stepping method name is not registered."""


def raise_dimension_mismatch(*, name: str, expected: int, got: int) -> None:
    """Raise a standardized DimensionMismatchError.

    Args:
        name: Name of the offending container.
        expected: Dimension reported by the integrable system.
        got: Observed container length.

    Raises:
        DimensionMismatchError: Always.
    """
    raise DimensionMismatchError(
        _DIMENSION_MISMATCH_MSG.format(name=name, got=got, expected=expected)
    )


def check_length(arr: NDArray[np.floating], expected: int, *, name: str) -> None:
    """Validate that arr is a 1D vector of the expected length.

    Args:
        arr: Vector to validate.
        expected: Required length.
        name: Name used in the error message.

    Raises:
        DimensionMismatchError: If arr is not 1D or has the wrong length.
    """
    shape = np.shape(arr)
    if len(shape) != 1:
        raise DimensionMismatchError(_NOT_1D_MSG.format(name=name, shape=shape))
    if shape[0] != expected:
        raise_dimension_mismatch(name=name, expected=expected, got=shape[0])


def check_dimension(value: object, *, name: str) -> int:
    """Validate a dimension reported by an integrable system.

    Args:
        value: Reported dimension.
        name: Name used in the error message.

    Raises:
        DimensionMismatchError: If value is not a non-negative integer.

    Returns:
        The dimension as a Python int.
    """
    is_int = isinstance(value, (int, np.integer)) and not isinstance(value, bool)
    if not is_int or int(value) < 0:  # type: ignore[call-overload]
        raise DimensionMismatchError(
            _NEGATIVE_DIMENSION_MSG.format(name=name, got=value)
        )
    return int(value)  # type: ignore[call-overload]
