# tests/dae_stepper/test_state.py
"""Unit tests for dae_stepper.state.

Covers:
- zero-filled float64 allocation helpers,
- StateLayout queries for first- and second-order systems,
- re-allocation of stepper-owned containers only on a dimension change,
- StepScratch sizing, lookup and zeroing.
"""

from __future__ import annotations

import numpy as np
import pytest

from dae_stepper.errors import DimensionMismatchError
from dae_stepper.state import (
    FirstOrderState,
    SecondOrderState,
    StateLayout,
    StepScratch,
    new_delta,
    new_multipliers,
    new_state,
)
from dae_stepper.systems import ConstrainedPendulum, FunctionIntegrable

# -----------------------------------------------------------------------------
# Allocation helpers and layouts
# -----------------------------------------------------------------------------


@pytest.mark.parametrize("factory", [new_state, new_delta, new_multipliers])
def test_allocators_return_zero_float64_vectors(factory) -> None:
    """Allocation helpers return zero-filled float64 1D vectors."""
    vec = factory(5)
    assert vec.shape == (5,)
    assert vec.dtype == np.float64
    assert not vec.any()


def test_layout_of_first_order_system() -> None:
    """A first-order system reports n_coords_y/n_coords_dy and no constraints."""
    system = FunctionIntegrable(lambda _t, y: y, y0=[1.0, 2.0, 3.0])
    assert StateLayout.of_first_order(system) == StateLayout(3, 3, 0)


def test_layout_of_second_order_system(pendulum: ConstrainedPendulum) -> None:
    """The pendulum reports 2 positions, 2 velocities and 1 constraint."""
    assert StateLayout.of_second_order(pendulum) == StateLayout(2, 2, 1)


def test_layout_of_first_order_view_of_mechanical_system(
    pendulum: ConstrainedPendulum,
) -> None:
    """The first-order view of a mechanical system stacks [x, v]."""
    assert StateLayout.of_first_order(pendulum) == StateLayout(4, 4, 1)


def test_layout_rejects_negative_dimension() -> None:
    """A negative reported dimension is a DimensionMismatchError."""

    class Broken:
        n_coords_y = -1
        n_coords_dy = 1
        n_constr = 0

    with pytest.raises(DimensionMismatchError, match="n_coords_y"):
        StateLayout.of_first_order(Broken())  # type: ignore[arg-type]


# -----------------------------------------------------------------------------
# Stepper-owned containers
# -----------------------------------------------------------------------------


def test_first_order_state_reallocates_only_on_change() -> None:
    """setup() re-allocates on the first call and on dimension changes only."""
    state = FirstOrderState()
    assert state.setup(StateLayout(2, 2, 0)) is True
    y_before = state.y
    assert state.setup(StateLayout(2, 2, 0)) is False
    assert state.y is y_before

    assert state.setup(StateLayout(3, 3, 0)) is True
    assert state.y.shape == (3,)
    assert state.dydt.shape == (3,)


def test_second_order_state_sizes_acceleration_like_velocity() -> None:
    """X is sized by n_x; V and A by n_v."""
    state = SecondOrderState()
    state.setup(StateLayout(3, 2, 1))
    assert state.x.shape == (3,)
    assert state.v.shape == (2,)
    assert state.a.shape == (2,)


# -----------------------------------------------------------------------------
# Scratch arena
# -----------------------------------------------------------------------------


def test_scratch_buffers_are_sized_by_kind() -> None:
    """x, v and c buffers take n_x, n_v and n_constr entries."""
    scratch = StepScratch(
        StateLayout(3, 2, 1), x=("x_new",), v=("dv", "r"), c=("lam",)
    )
    assert scratch["x_new"].shape == (3,)
    assert scratch["dv"].shape == (2,)
    assert scratch["r"].shape == (2,)
    assert scratch["lam"].shape == (1,)
    assert "dv" in scratch
    assert "qc" not in scratch


def test_scratch_unknown_name_raises_key_error() -> None:
    """Looking up a buffer that was not requested raises KeyError."""
    scratch = StepScratch(StateLayout(1, 1, 0), v=("dv",))
    with pytest.raises(KeyError, match="Unknown scratch buffer: dy"):
        scratch["dy"]


def test_scratch_zero_resets_selected_buffers() -> None:
    """zero() clears only the named buffers, in place."""
    scratch = StepScratch(StateLayout(2, 2, 0), v=("r", "w"))
    r, w = scratch["r"], scratch["w"]
    r[:] = 1.0
    w[:] = 2.0
    scratch.zero("r")
    assert scratch["r"] is r
    assert not r.any()
    assert np.all(w == 2.0)
