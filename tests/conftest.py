"""Global pytest configuration and shared fixtures for dae_stepper."""

from __future__ import annotations

import importlib.util
from typing import Final

import pytest

from dae_stepper.systems import (
    ConstrainedPendulum,
    FunctionIntegrable,
    MassSpringDamper,
)

# -----------------------------------------------------------------------------
# Optional dependency detection
# -----------------------------------------------------------------------------

HAS_MATPLOTLIB: Final[bool] = importlib.util.find_spec("matplotlib") is not None


# -----------------------------------------------------------------------------
# Global markers registration safety (for local pytest runs)
# -----------------------------------------------------------------------------


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers used by the test suite."""
    config.addinivalue_line(
        "markers",
        "convergence: order-of-accuracy test running several refined grids",
    )
    config.addinivalue_line(
        "markers",
        "examples: runs a script from examples/ (needs the examples extra)",
    )


# -----------------------------------------------------------------------------
# Conditional skipping fixture
# -----------------------------------------------------------------------------


@pytest.fixture(scope="session")
def require_matplotlib() -> None:
    """
    Skip tests if matplotlib (examples extra) is not installed.

    Usage:
        def test_x(require_matplotlib):
            ...
    """
    if not HAS_MATPLOTLIB:
        pytest.skip("matplotlib (examples extra) not installed")


# -----------------------------------------------------------------------------
# Reference systems
# -----------------------------------------------------------------------------


@pytest.fixture
def decay() -> FunctionIntegrable:
    """Scalar decay dy/dt = -y with y(0) = 1."""
    return FunctionIntegrable(lambda _t, y: -y, y0=[1.0])


@pytest.fixture
def oscillator() -> MassSpringDamper:
    """Undamped unit oscillator with x(0) = 1, v(0) = 0."""
    return MassSpringDamper(mass=1.0, stiffness=1.0, x0=1.0, v0=0.0)


@pytest.fixture
def pendulum() -> ConstrainedPendulum:
    """Unit pendulum released from rest in the horizontal position."""
    return ConstrainedPendulum(length=1.0, mass=1.0, gravity=9.81, x0=(1.0, 0.0))
