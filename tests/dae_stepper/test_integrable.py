# tests/dae_stepper/test_integrable.py
"""Unit tests for dae_stepper.integrable.

Covers:
- runtime protocol checks distinguishing first- and second-order systems,
- the componentwise default increments and their length checks,
- the first-order view Y = [x, v] of a mechanical system.
"""

from __future__ import annotations

import numpy as np
import pytest

from dae_stepper.errors import DimensionMismatchError
from dae_stepper.integrable import Integrable, IntegrableIIOrder
from dae_stepper.systems import (
    ConstrainedPendulum,
    FunctionIntegrable,
    MassSpringDamper,
)

# -----------------------------------------------------------------------------
# Protocols
# -----------------------------------------------------------------------------


def test_first_order_system_is_not_mechanical(decay: FunctionIntegrable) -> None:
    """FunctionIntegrable satisfies Integrable only."""
    assert isinstance(decay, Integrable)
    assert not isinstance(decay, IntegrableIIOrder)


def test_mechanical_system_satisfies_both_protocols(
    oscillator: MassSpringDamper,
) -> None:
    """IntegrableIIOrderBase subclasses also expose the first-order view."""
    assert isinstance(oscillator, IntegrableIIOrder)
    assert isinstance(oscillator, Integrable)


def test_plain_object_satisfies_neither() -> None:
    """Objects lacking the interface fail both runtime checks."""
    assert not isinstance(object(), Integrable)
    assert not isinstance(object(), IntegrableIIOrder)


# -----------------------------------------------------------------------------
# Default increments
# -----------------------------------------------------------------------------


def test_default_state_increment_is_componentwise(
    decay: FunctionIntegrable,
) -> None:
    """IntegrableBase.state_increment writes y + dy into y_new."""
    y_new = np.zeros(1)
    decay.state_increment(y_new, np.array([1.5]), np.array([0.25]))
    assert y_new[0] == pytest.approx(1.75)


def test_default_state_increment_supports_aliasing(
    oscillator: MassSpringDamper,
) -> None:
    """x_new may be the same array as x."""
    x = np.array([1.0])
    oscillator.state_increment_x(x, x, np.array([0.5]))
    assert x[0] == pytest.approx(1.5)


def test_default_increment_checks_lengths(oscillator: MassSpringDamper) -> None:
    """An increment of the wrong length is a DimensionMismatchError."""
    with pytest.raises(DimensionMismatchError, match="dx"):
        oscillator.state_increment_x(np.zeros(1), np.zeros(1), np.zeros(2))


def test_unconstrained_defaults_reject_nonempty_multipliers(
    oscillator: MassSpringDamper,
) -> None:
    """With n_constr == 0 the multiplier hooks accept only empty vectors."""
    r = np.zeros(1)
    oscillator.load_residual_cql(r, np.zeros(0), 1.0)
    oscillator.load_constraint_c(np.zeros(0), 1.0)
    assert not r.any()
    with pytest.raises(DimensionMismatchError):
        oscillator.load_constraint_c(np.zeros(1), 1.0)


# -----------------------------------------------------------------------------
# First-order view of a mechanical system
# -----------------------------------------------------------------------------


def test_first_order_view_dimensions(pendulum: ConstrainedPendulum) -> None:
    """Y stacks positions and velocities; dY stacks dx and dv."""
    assert pendulum.n_coords_y == 4
    assert pendulum.n_coords_dy == 4
    assert pendulum.n_constr == 1


def test_first_order_view_gather_scatter() -> None:
    """state_gather/state_scatter move [x, v] through the mechanical hooks."""
    system = MassSpringDamper(x0=[1.0, 2.0], v0=[3.0, 4.0], t0=0.5)
    y = np.zeros(4)
    assert system.state_gather(y) == pytest.approx(0.5)
    assert np.allclose(y, [1.0, 2.0, 3.0, 4.0])

    system.state_scatter(np.array([5.0, 6.0, 7.0, 8.0]), 1.25)
    x, v = np.zeros(2), np.zeros(2)
    assert system.state_gather_xv(x, v) == pytest.approx(1.25)
    assert np.allclose(x, [5.0, 6.0])
    assert np.allclose(v, [7.0, 8.0])


def test_first_order_view_solve_returns_velocity_and_acceleration() -> None:
    """dY = [v * dt, a * dt] with a = (f - k x - c v) / m."""
    system = MassSpringDamper(
        mass=2.0, stiffness=4.0, damping=1.0, force=1.0, x0=0.0, v0=0.0
    )
    y = np.array([0.5, 2.0])
    dy = np.zeros(2)
    system.state_solve(dy, np.zeros(0), y, 0.0, 0.1)

    accel = (1.0 - 4.0 * 0.5 - 1.0 * 2.0) / 2.0
    assert dy[0] == pytest.approx(2.0 * 0.1)
    assert dy[1] == pytest.approx(accel * 0.1)


def test_first_order_view_increment_routes_positions() -> None:
    """state_increment adds dx to x and dv to v."""
    system = MassSpringDamper(x0=[0.0, 0.0])
    y_new = np.zeros(4)
    system.state_increment(
        y_new,
        np.array([1.0, 1.0, 2.0, 2.0]),
        np.array([0.1, 0.2, 0.3, 0.4]),
    )
    assert np.allclose(y_new, [1.1, 1.2, 2.3, 2.4])
