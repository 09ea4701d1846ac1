# src/dae_stepper/driver.py
"""Advance a stepper across a fixed output time grid.

The driver steps exactly from one grid point to the next (one ``advance`` per
interval) and records the stepper's state after each step. It adds no error
control; refining the grid is the way to improve accuracy.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

import numpy as np

from .timestepper import FirstOrderTimestepper, SecondOrderTimestepper

if TYPE_CHECKING:
    from numpy.typing import ArrayLike, NDArray

    from .timestepper import Timestepper

logger = logging.getLogger(__name__)

_TIMEGRID_1D_ERROR = "time_grid must be a 1D array"
_TIMEGRID_MIN_POINTS_ERROR = "time_grid must contain at least one time point"
_TIMEGRID_MONOTONE_ERROR = "time_grid must be strictly increasing"
_HISTORY_DIM_ERROR = (
    "State dimension changed during the run ({before} -> {after}); "
    "recorded states must share one shape."
)


@dataclass(slots=True, frozen=True)
class Trajectory:
    """Recorded output of :func:`run_time_grid`.

    Attributes:
        times: Output times, shape (n_out,).
        states: Y (first-order) or X (second-order) per output time,
            shape (n_out, n).
        velocities: V per output time for second-order steppers, else None.
        final_time: Stepper time after the last step.
    """

    times: NDArray[np.float64]
    states: NDArray[np.float64]
    velocities: NDArray[np.float64] | None
    final_time: float

    @property
    def final_state(self) -> NDArray[np.float64]:
        """State at the last recorded time."""
        return self.states[-1]


def validate_time_grid(time_grid: ArrayLike) -> NDArray[np.float64]:
    """Validate and convert a time grid.

    Args:
        time_grid: Candidate output times.

    Raises:
        ValueError: If the grid is not 1D, empty or not strictly increasing.

    Returns:
        The grid as a float64 array.
    """
    grid = np.asarray(time_grid, dtype=np.float64)
    if grid.ndim != 1:
        raise ValueError(_TIMEGRID_1D_ERROR)
    if grid.size < 1:
        raise ValueError(_TIMEGRID_MIN_POINTS_ERROR)
    if grid.size > 1 and np.any(np.diff(grid) <= 0.0):
        raise ValueError(_TIMEGRID_MONOTONE_ERROR)
    return grid


def _snapshot(
    stepper: Timestepper,
) -> tuple[NDArray[np.float64], NDArray[np.float64] | None]:
    if isinstance(stepper, SecondOrderTimestepper):
        return stepper.x.copy(), stepper.v.copy()
    if isinstance(stepper, FirstOrderTimestepper):
        return stepper.y.copy(), None
    msg = f"Unsupported stepper type: {type(stepper).__name__}"
    raise TypeError(msg)


def run_time_grid(
    stepper: Timestepper,
    time_grid: ArrayLike,
    *,
    store_history: bool = True,
) -> Trajectory:
    """Advance stepper through time_grid.

    The system is re-scattered at ``time_grid[0]`` before the first step, so the
    grid defines the time axis regardless of the system's previous clock.

    Args:
        stepper: Stepper attached to the system to advance.
        time_grid: Strictly increasing output times.
        store_history: If False, only the initial and final states are kept.

    Raises:
        ValueError: If time_grid is invalid or the state dimension differs
            between recorded states.

    Returns:
        The recorded trajectory.
    """
    grid = validate_time_grid(time_grid)
    stepper.gather(t=float(grid[0]))

    states: list[NDArray[np.float64]] = []
    velocities: list[NDArray[np.float64]] = []

    def record() -> None:
        x, v = _snapshot(stepper)
        if states and x.shape != states[0].shape:
            raise ValueError(
                _HISTORY_DIM_ERROR.format(before=states[0].shape, after=x.shape)
            )
        states.append(x)
        if v is not None:
            velocities.append(v)

    record()
    for idx in range(grid.size - 1):
        stepper.advance(float(grid[idx + 1] - grid[idx]))
        if store_history or idx == grid.size - 2:
            record()

    logger.debug(
        "run_time_grid: %d steps, t=%g -> %g",
        grid.size - 1,
        grid[0],
        stepper.time,
    )
    times = grid
    if not store_history and grid.size > 1:
        times = grid[[0, -1]]
    return Trajectory(
        times=np.asarray(times, dtype=np.float64),
        states=np.stack(states),
        velocities=np.stack(velocities) if velocities else None,
        final_time=stepper.time,
    )
