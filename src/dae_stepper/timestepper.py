# src/dae_stepper/timestepper.py
"""Stepper abstractions shared by all time-integration schemes.

A stepper owns the current time and a reference to an integrable system, and
exposes a single operation, :meth:`Timestepper.advance`, which moves the
system forward by ``dt``. On exit the system is scattered with the new state
and the new time, so anything inspecting it between steps sees post-step
values.

Two bases specialize state storage:

- :class:`FirstOrderTimestepper` for :class:`~dae_stepper.integrable.Integrable`
  systems, owning ``Y`` and ``dY/dt``;
- :class:`SecondOrderTimestepper` for
  :class:`~dae_stepper.integrable.IntegrableIIOrder` systems, owning ``X``,
  ``V`` and the cached acceleration ``A``.

The kind of system is checked once at construction. Implicit schemes hold an
:class:`ImplicitConfig` value object instead of inheriting Newton settings.
"""

from __future__ import annotations

import logging
import math
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, ClassVar

from .errors import IntegrableTypeError
from .integrable import Integrable, IntegrableIIOrder
from .state import FirstOrderState, SecondOrderState, StateLayout

if TYPE_CHECKING:
    import numpy as np
    from numpy.typing import NDArray

logger = logging.getLogger(__name__)

_DT_ERROR = "dt must be a finite positive float; got {dt!r}"
_TIME_ERROR = "time must be a finite float; got {t!r}"
_INTEGRABLE_TYPE_ERROR = (
    "{stepper} requires a {kind} integrable system; got {got}. "
    "It must provide: {members}."
)
_MAX_ITERS_ERROR = "max_iters must be a non-negative integer; got {value!r}"
_TOLERANCE_ERROR = "tolerance must be a finite non-negative float; got {value!r}"


# =============================================================================
# Implicit solver configuration
# =============================================================================


@dataclass(slots=True, frozen=True)
class ImplicitConfig:
    """Newton-Raphson settings for implicit steppers.

    Attributes:
        max_iters: Maximum number of Newton iterations per step.
        tolerance: Convergence threshold on the residual infinity norm.
        strict: If True, exhausting max_iters without convergence raises
            ConvergenceError. If False, the last iterate is accepted silently.
    """

    max_iters: int = 20
    tolerance: float = 1e-10
    strict: bool = False

    def __post_init__(self) -> None:
        """Validate settings.

        Raises:
            ValueError: If max_iters or tolerance is out of range.
        """
        if isinstance(self.max_iters, bool) or not isinstance(self.max_iters, int):
            raise ValueError(_MAX_ITERS_ERROR.format(value=self.max_iters))
        if self.max_iters < 0:
            raise ValueError(_MAX_ITERS_ERROR.format(value=self.max_iters))
        tol = float(self.tolerance)
        if not math.isfinite(tol) or tol < 0.0:
            raise ValueError(_TOLERANCE_ERROR.format(value=self.tolerance))


@dataclass(slots=True, frozen=True)
class NewtonStats:
    """Outcome of the Newton loop of the most recent implicit step.

    Attributes:
        iterations: Number of corrections applied.
        residual_norm: Last measured residual infinity norm (inf if never
            measured, i.e. max_iters == 0).
        converged: Whether the residual dropped below tolerance.
    """

    iterations: int
    residual_norm: float
    converged: bool


# =============================================================================
# Stepper bases
# =============================================================================


class Timestepper(ABC):
    """Base class for time integrators advancing an integrable system."""

    def __init__(self, integrable: object) -> None:
        """Initialize the stepper.

        Args:
            integrable: System to advance.
        """
        self._integrable = integrable
        self._time = 0.0

    @property
    def integrable(self) -> object:
        """The integrable system this stepper advances."""
        return self._integrable

    @property
    def time(self) -> float:
        """Current time. Assigning it also scatters the system at that time."""
        return self._time

    @time.setter
    def time(self, t: float) -> None:
        self.gather(t=t)

    @abstractmethod
    def advance(self, dt: float) -> None:
        """Advance the system by one step of size dt.

        Args:
            dt: Step size; must be finite and positive.
        """

    @abstractmethod
    def gather(self, *, t: float | None = None) -> float:
        """Synchronize the stepper containers and clock from the system."""

    @staticmethod
    def _check_dt(dt: float) -> float:
        """Validate a step size.

        Args:
            dt: Step size.

        Raises:
            ValueError: If dt is not a finite positive number.

        Returns:
            dt as a float.
        """
        dt_f = float(dt)
        if not math.isfinite(dt_f) or dt_f <= 0.0:
            raise ValueError(_DT_ERROR.format(dt=dt))
        return dt_f

    def _sync_time(self, t: float) -> float:
        """Set the stepper clock to a time read from or sent to the system.

        Raises:
            ValueError: If t is not finite.
        """
        t_f = float(t)
        if not math.isfinite(t_f):
            raise ValueError(_TIME_ERROR.format(t=t))
        self._time = t_f
        return t_f

    def _advance_time(self, dt: float) -> float:
        """Advance the stepper clock by exactly dt and return the new time."""
        self._time += dt
        return self._time

    @classmethod
    def _require(
        cls,
        integrable: object,
        protocol: type,
        *,
        kind: str,
        members: tuple[str, ...],
    ) -> None:
        """Check integrable against a runtime-checkable protocol.

        Raises:
            IntegrableTypeError: If integrable lacks the capability.
        """
        if not isinstance(integrable, protocol):
            raise IntegrableTypeError(
                _INTEGRABLE_TYPE_ERROR.format(
                    stepper=cls.__name__,
                    kind=kind,
                    got=type(integrable).__name__,
                    members=", ".join(members),
                )
            )


class FirstOrderTimestepper(Timestepper):
    """Base class for steppers over first-order systems."""

    _REQUIRED: ClassVar[tuple[str, ...]] = (
        "n_coords_y",
        "n_coords_dy",
        "n_constr",
        "state_gather",
        "state_scatter",
        "state_increment",
        "state_solve",
    )

    def __init__(self, integrable: Integrable, *, t0: float | None = None) -> None:
        """Initialize the stepper.

        Args:
            integrable: First-order integrable system.
            t0: Initial time, scattered into the system. If None, the
                stepper adopts the system's own time.
        """
        self._require(
            integrable,
            Integrable,
            kind="first-order",
            members=self._REQUIRED,
        )
        super().__init__(integrable)
        self._state = FirstOrderState()
        self.gather(t=t0)

    @property
    def integrable(self) -> Integrable:
        """The first-order system this stepper advances."""
        return self._integrable  # type: ignore[return-value]

    @property
    def y(self) -> NDArray[np.float64]:
        """State Y at the current time."""
        return self._state.y

    @property
    def dydt(self) -> NDArray[np.float64]:
        """Derivative dY/dt from the most recent step."""
        return self._state.dydt

    def state_setup(self) -> StateLayout:
        """Query the system's dimensions and resize containers if needed.

        Returns:
            The current layout.
        """
        layout = StateLayout.of_first_order(self.integrable)
        if self._state.setup(layout):
            logger.debug("%s: allocated state for %s", type(self).__name__, layout)
        return layout

    def gather(self, *, t: float | None = None) -> float:
        """Pull Y and the time from the system into the stepper.

        Args:
            t: If given, the system is re-scattered at this time and the stepper
                clock is set to it.

        Returns:
            The stepper time after the call.
        """
        self.state_setup()
        t_sys = self.integrable.state_gather(self._state.y)
        if t is None:
            return self._sync_time(t_sys)
        self.integrable.state_scatter(self._state.y, self._sync_time(t))
        return self.time


class SecondOrderTimestepper(Timestepper):
    """Base class for steppers over second-order (mechanical) systems."""

    _REQUIRED: ClassVar[tuple[str, ...]] = (
        "n_coords_x",
        "n_coords_v",
        "n_coords_a",
        "n_constr",
        "state_gather_xv",
        "state_scatter_xv",
        "state_increment_x",
        "state_solve_a",
        "state_solve_correction",
        "load_residual_f",
        "load_residual_mv",
        "load_residual_cql",
        "load_constraint_c",
    )

    def __init__(
        self, integrable: IntegrableIIOrder, *, t0: float | None = None
    ) -> None:
        """Initialize the stepper.

        Args:
            integrable: Second-order integrable system.
            t0: Initial time, scattered into the system. If None, the
                stepper adopts the system's own time.
        """
        self._require(
            integrable,
            IntegrableIIOrder,
            kind="second-order",
            members=self._REQUIRED,
        )
        super().__init__(integrable)
        self._state = SecondOrderState()
        self.gather(t=t0)

    @property
    def integrable(self) -> IntegrableIIOrder:
        """The second-order system this stepper advances."""
        return self._integrable  # type: ignore[return-value]

    @property
    def x(self) -> NDArray[np.float64]:
        """Positions at the current time."""
        return self._state.x

    @property
    def v(self) -> NDArray[np.float64]:
        """Velocities at the current time."""
        return self._state.v

    @property
    def a(self) -> NDArray[np.float64]:
        """Acceleration computed during the most recent step."""
        return self._state.a

    def state_setup(self) -> StateLayout:
        """Query the system's dimensions and resize containers if needed.

        Returns:
            The current layout.
        """
        layout = StateLayout.of_second_order(self.integrable)
        if self._state.setup(layout):
            logger.debug("%s: allocated state for %s", type(self).__name__, layout)
            self._on_realloc()
        return layout

    def gather(self, *, t: float | None = None) -> float:
        """Pull X, V and the time from the system into the stepper.

        Args:
            t: If given, the system is re-scattered at this time and the stepper
                clock is set to it.

        Returns:
            The stepper time after the call.
        """
        self.state_setup()
        x, v = self._state.x, self._state.v
        t_sys = self.integrable.state_gather_xv(x, v)
        if t is None:
            return self._sync_time(t_sys)
        self.integrable.state_scatter_xv(x, v, self._sync_time(t))
        return self.time

    def _on_realloc(self) -> None:
        """Hook called after containers were re-allocated."""
