# src/dae_stepper/config.py
"""Dict/YAML-friendly stepper configuration.

:class:`StepperConfig` is a pydantic model mirroring the native configuration
objects. It validates user input, converts to :class:`ImplicitConfig` and
builds a ready-to-use stepper for a given integrable system.
"""

from __future__ import annotations

import warnings
from typing import TYPE_CHECKING, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .errors import UnknownMethodError
from .explicit import (
    EulerExplicit,
    EulerExplicitIIOrder,
    EulerSemiImplicit,
    Heun,
    Leapfrog,
    RungeKutta4,
)
from .implicit import EulerImplicit
from .timestepper import ImplicitConfig

if TYPE_CHECKING:
    from .timestepper import Timestepper

MethodName = Literal[
    "euler",
    "euler-ii",
    "euler-semi-implicit",
    "leapfrog",
    "rk4",
    "heun",
    "euler-implicit",
]

METHODS: dict[str, type[Timestepper]] = {
    "euler": EulerExplicit,
    "euler-ii": EulerExplicitIIOrder,
    "euler-semi-implicit": EulerSemiImplicit,
    "leapfrog": Leapfrog,
    "rk4": RungeKutta4,
    "heun": Heun,
    "euler-implicit": EulerImplicit,
}

IMPLICIT_METHODS: frozenset[str] = frozenset({"euler-implicit"})

_NEWTON_FIELDS = ("max_iters", "tolerance", "strict")
_UNKNOWN_METHOD_ERROR = "Unknown method '{method}'. Supported: {supported}"
_IGNORED_NEWTON_WARNING = (
    "Newton settings {fields} are ignored by explicit method '{method}'."
)


def normalize_method(method: object) -> str:
    """Normalize and validate a method name.

    Args:
        method: Raw method name.

    Raises:
        UnknownMethodError: If the name is not registered.

    Returns:
        The canonical, lower-case method name.
    """
    name = str(method).strip().lower()
    if name not in METHODS:
        raise UnknownMethodError(
            _UNKNOWN_METHOD_ERROR.format(
                method=method,
                supported=", ".join(sorted(METHODS)),
            )
        )
    return name


def get_stepper_class(method: str) -> type[Timestepper]:
    """Return the stepper class registered under method."""
    return METHODS[normalize_method(method)]


class StepperConfig(BaseModel):
    """Configuration schema for building a stepper from plain data."""

    model_config = ConfigDict(extra="allow")

    method: MethodName = Field(
        default="euler-implicit", description="Time integration method"
    )
    t0: float | None = Field(
        default=None,
        description="Initial time scattered into the system; None keeps its own",
    )

    # Newton (implicit methods only)
    max_iters: int = Field(default=20, ge=0)
    tolerance: float = Field(default=1e-10, ge=0.0)
    strict: bool = Field(
        default=False,
        description="Raise ConvergenceError when Newton does not converge",
    )

    @field_validator("method", mode="before")
    @classmethod
    def _normalize_method(cls, value: object) -> str:
        return normalize_method(value)

    @property
    def is_implicit(self) -> bool:
        """Whether the configured method runs a Newton loop."""
        return self.method in IMPLICIT_METHODS

    def to_implicit_config(self) -> ImplicitConfig:
        """
        Convert to the native Newton settings.

        Returns:
            ImplicitConfig reflecting this configuration.
        """
        return ImplicitConfig(
            max_iters=self.max_iters,
            tolerance=self.tolerance,
            strict=self.strict,
        )

    def build(self, integrable: object) -> Timestepper:
        """
        Construct the configured stepper over integrable.

        Newton settings given explicitly for an explicit method are accepted
        but ignored, with a RuntimeWarning.

        Args:
            integrable: System to advance.

        Returns:
            A stepper instance.
        """
        cls = METHODS[self.method]

        if self.is_implicit:
            return EulerImplicit(
                integrable,  # type: ignore[arg-type]
                t0=self.t0,
                implicit=self.to_implicit_config(),
            )

        ignored = [name for name in _NEWTON_FIELDS if name in self.model_fields_set]
        if ignored:
            warnings.warn(
                _IGNORED_NEWTON_WARNING.format(fields=ignored, method=self.method),
                RuntimeWarning,
                stacklevel=2,
            )
        return cls(integrable, t0=self.t0)  # type: ignore[call-arg]
