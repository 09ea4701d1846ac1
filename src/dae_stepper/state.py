# src/dae_stepper/state.py
"""State containers owned by time steppers.

A stepper owns its position-like state, its velocity/derivative state and,
for second-order systems, a cached acceleration. Containers are plain 1D
float64 vectors sized from the dimensions reported by the attached integrable
system at the last setup. They are re-allocated whenever those dimensions
change and are never handed over to the system: the system only reads them
(scatter) or writes into them (gather).

Scratch vectors needed inside a single ``advance`` call (trial states, stage
increments, multipliers, residuals) live in a :class:`StepScratch` arena that
is created at the start of the call and dropped at its end.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

import numpy as np

from .errors import check_dimension

if TYPE_CHECKING:
    from numpy.typing import NDArray

    from .integrable import Integrable, IntegrableIIOrder

_DTYPE = np.float64
_UNKNOWN_SCRATCH_ERROR = "Unknown scratch buffer: {name}"


def new_state(n: int) -> NDArray[np.float64]:
    """Return a zero-filled position-like state vector of length n."""
    return np.zeros(n, dtype=_DTYPE)


def new_delta(n: int) -> NDArray[np.float64]:
    """Return a zero-filled velocity/derivative vector of length n."""
    return np.zeros(n, dtype=_DTYPE)


def new_multipliers(n: int) -> NDArray[np.float64]:
    """Return a zero-filled Lagrange multiplier vector of length n."""
    return np.zeros(n, dtype=_DTYPE)


@dataclass(frozen=True, slots=True)
class StateLayout:
    """Dimensions reported by an integrable system at setup time.

    For first-order systems ``n_x`` is the length of the state ``Y`` and ``n_v``
    the length of its derivative ``dY/dt``. For second-order systems they are
    the position and velocity dimensions.

    Attributes:
        n_x: Position-like state dimension.
        n_v: Velocity/derivative dimension.
        n_constr: Number of active constraints.
    """

    n_x: int
    n_v: int
    n_constr: int

    @classmethod
    def of_first_order(cls, integrable: Integrable) -> StateLayout:
        """Query a first-order system for its dimensions.

        Args:
            integrable: First-order integrable system.

        Returns:
            Layout with n_x = n_coords_y and n_v = n_coords_dy.
        """
        return cls(
            n_x=check_dimension(integrable.n_coords_y, name="n_coords_y"),
            n_v=check_dimension(integrable.n_coords_dy, name="n_coords_dy"),
            n_constr=check_dimension(integrable.n_constr, name="n_constr"),
        )

    @classmethod
    def of_second_order(cls, integrable: IntegrableIIOrder) -> StateLayout:
        """Query a second-order system for its dimensions.

        Args:
            integrable: Second-order integrable system.

        Returns:
            Layout with n_x = n_coords_x and n_v = n_coords_v.
        """
        return cls(
            n_x=check_dimension(integrable.n_coords_x, name="n_coords_x"),
            n_v=check_dimension(integrable.n_coords_v, name="n_coords_v"),
            n_constr=check_dimension(integrable.n_constr, name="n_constr"),
        )


class FirstOrderState:
    """State ``Y`` and derivative ``dY/dt`` of a first-order stepper."""

    def __init__(self) -> None:
        """Initialize empty containers; call setup() before use."""
        self.layout: StateLayout | None = None
        self.y: NDArray[np.float64] = new_state(0)
        self.dydt: NDArray[np.float64] = new_delta(0)

    def setup(self, layout: StateLayout) -> bool:
        """Resize containers to match layout.

        Args:
            layout: Dimensions reported by the integrable system.

        Returns:
            True if containers were re-allocated.
        """
        if layout == self.layout:
            return False
        self.layout = layout
        self.y = new_state(layout.n_x)
        self.dydt = new_delta(layout.n_v)
        return True


class SecondOrderState:
    """Position ``X``, velocity ``V`` and acceleration ``A`` of a stepper.

    The acceleration is a cached derived quantity, recomputed every step.
    """

    def __init__(self) -> None:
        """Initialize empty containers; call setup() before use."""
        self.layout: StateLayout | None = None
        self.x: NDArray[np.float64] = new_state(0)
        self.v: NDArray[np.float64] = new_delta(0)
        self.a: NDArray[np.float64] = new_delta(0)

    def setup(self, layout: StateLayout) -> bool:
        """Resize containers to match layout.

        Args:
            layout: Dimensions reported by the integrable system.

        Returns:
            True if containers were re-allocated.
        """
        if layout == self.layout:
            return False
        self.layout = layout
        self.x = new_state(layout.n_x)
        self.v = new_delta(layout.n_v)
        self.a = new_delta(layout.n_v)
        return True


class StepScratch:
    """Arena of named scratch vectors scoped to one ``advance`` call.

    Buffers are sized from the layout: ``"x"`` buffers get ``n_x`` entries,
    ``"v"`` buffers ``n_v`` entries and ``"c"`` buffers ``n_constr`` entries.

    Example:
        scratch = StepScratch(layout, x=("y_new",), v=("dy1", "dy2"), c=("lam",))
        scratch["dy1"]  # zero-filled vector of length n_v
    """

    __slots__ = ("_buffers", "layout")

    def __init__(
        self,
        layout: StateLayout,
        *,
        x: tuple[str, ...] = (),
        v: tuple[str, ...] = (),
        c: tuple[str, ...] = (),
    ) -> None:
        """Allocate the requested buffers.

        Args:
            layout: Dimensions used to size buffers.
            x: Names of position-like buffers.
            v: Names of velocity/derivative buffers.
            c: Names of constraint-sized buffers.
        """
        self.layout = layout
        self._buffers: dict[str, NDArray[np.float64]] = {}
        for name in x:
            self._buffers[name] = new_state(layout.n_x)
        for name in v:
            self._buffers[name] = new_delta(layout.n_v)
        for name in c:
            self._buffers[name] = new_multipliers(layout.n_constr)

    def __getitem__(self, name: str) -> NDArray[np.float64]:
        """Return the buffer called name.

        Raises:
            KeyError: If no such buffer was allocated.
        """
        try:
            return self._buffers[name]
        except KeyError as exc:
            raise KeyError(_UNKNOWN_SCRATCH_ERROR.format(name=name)) from exc

    def __contains__(self, name: object) -> bool:
        """Return True if a buffer called name exists."""
        return name in self._buffers

    def zero(self, *names: str) -> None:
        """Reset the named buffers to zero in place."""
        for name in names:
            self[name].fill(0.0)
