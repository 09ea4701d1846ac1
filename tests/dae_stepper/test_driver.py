"""Unit tests for dae_stepper.driver.run_time_grid."""

from __future__ import annotations

import numpy as np
import pytest

from dae_stepper.driver import run_time_grid, validate_time_grid
from dae_stepper.explicit import EulerExplicit, EulerSemiImplicit
from dae_stepper.systems import FunctionIntegrable, MassSpringDamper

# -------------------------------------------------------------------
# Grid validation
# -------------------------------------------------------------------


@pytest.mark.parametrize(
    ("grid", "match"),
    [
        (np.zeros((2, 2)), "1D"),
        (np.array([]), "at least one"),
        (np.array([0.0, 1.0, 1.0]), "strictly increasing"),
        (np.array([0.0, 2.0, 1.0]), "strictly increasing"),
    ],
)
def test_invalid_grids_are_rejected(grid: np.ndarray, match: str) -> None:
    """Grids must be 1D, non-empty and strictly increasing."""
    with pytest.raises(ValueError, match=match):
        validate_time_grid(grid)


def test_single_point_grid_records_initial_state(
    decay: FunctionIntegrable,
) -> None:
    """A one-point grid performs no step and records the gathered state."""
    traj = run_time_grid(EulerExplicit(decay), [3.0])
    assert traj.times.tolist() == [3.0]
    assert traj.states.tolist() == [[1.0]]
    assert traj.final_time == 3.0
    assert decay.time == 3.0


# -------------------------------------------------------------------
# Stepping
# -------------------------------------------------------------------


def test_first_order_history_on_non_uniform_grid() -> None:
    """Each interval is one Euler step of its own width."""
    system = FunctionIntegrable(lambda _t, _y: np.array([1.0]), y0=[0.0])
    grid = np.array([0.0, 0.5, 0.75, 2.0])
    traj = run_time_grid(EulerExplicit(system), grid)

    assert traj.velocities is None
    assert np.allclose(traj.times, grid)
    assert np.allclose(traj.states[:, 0], grid)
    assert traj.final_time == pytest.approx(2.0)


def test_grid_start_overrides_system_clock() -> None:
    """The system is re-scattered at time_grid[0] before stepping."""
    system = FunctionIntegrable(lambda t, _y: np.array([t]), y0=[0.0], t0=-5.0)
    traj = run_time_grid(EulerExplicit(system), [1.0, 2.0])

    # dy = f(t0) * dt with t0 = 1.0 from the grid, not -5.0 from the system.
    assert traj.states[-1, 0] == pytest.approx(1.0)
    assert system.time == pytest.approx(2.0)


def test_second_order_history_records_velocities() -> None:
    """Second-order runs record positions and velocities."""
    system = MassSpringDamper(mass=1.0, stiffness=0.0, force=1.0, x0=0.0)
    traj = run_time_grid(EulerSemiImplicit(system), [0.0, 1.0, 2.0])

    assert traj.velocities is not None
    assert traj.states.shape == (3, 1)
    assert traj.velocities[:, 0].tolist() == pytest.approx([0.0, 1.0, 2.0])
    assert traj.states[:, 0].tolist() == pytest.approx([0.0, 1.0, 3.0])


def test_without_history_only_endpoints_are_kept(
    decay: FunctionIntegrable,
) -> None:
    """store_history=False keeps the initial and final states only."""
    grid = np.linspace(0.0, 1.0, 11)
    traj = run_time_grid(EulerExplicit(decay), grid, store_history=False)

    assert traj.times.tolist() == [0.0, 1.0]
    assert traj.states.shape == (2, 1)
    assert traj.final_state[0] == pytest.approx(0.9**10)
