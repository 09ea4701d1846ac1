"""dae_stepper time integrators for ODE and constrained mechanical systems."""

from __future__ import annotations

from .config import METHODS, StepperConfig, get_stepper_class, normalize_method
from .driver import Trajectory, run_time_grid, validate_time_grid
from .errors import (
    ConvergenceError,
    DimensionMismatchError,
    IntegrableTypeError,
    StepperError,
    UnknownMethodError,
)
from .explicit import (
    EulerExplicit,
    EulerExplicitIIOrder,
    EulerSemiImplicit,
    Heun,
    Leapfrog,
    RungeKutta4,
)
from .implicit import EulerImplicit
from .integrable import (
    Integrable,
    IntegrableBase,
    IntegrableIIOrder,
    IntegrableIIOrderBase,
)
from .linalg import assemble_saddle_point, solve_saddle_point
from .state import StateLayout, new_delta, new_multipliers, new_state
from .systems import ConstrainedPendulum, FunctionIntegrable, MassSpringDamper
from .timestepper import (
    FirstOrderTimestepper,
    ImplicitConfig,
    NewtonStats,
    SecondOrderTimestepper,
    Timestepper,
)

__all__ = [
    "METHODS",
    "ConstrainedPendulum",
    "ConvergenceError",
    "DimensionMismatchError",
    "EulerExplicit",
    "EulerExplicitIIOrder",
    "EulerImplicit",
    "EulerSemiImplicit",
    "FirstOrderTimestepper",
    "FunctionIntegrable",
    "Heun",
    "ImplicitConfig",
    "Integrable",
    "IntegrableBase",
    "IntegrableIIOrder",
    "IntegrableIIOrderBase",
    "IntegrableTypeError",
    "Leapfrog",
    "MassSpringDamper",
    "NewtonStats",
    "RungeKutta4",
    "SecondOrderTimestepper",
    "StateLayout",
    "StepperConfig",
    "StepperError",
    "Timestepper",
    "Trajectory",
    "UnknownMethodError",
    "assemble_saddle_point",
    "get_stepper_class",
    "new_delta",
    "new_multipliers",
    "new_state",
    "normalize_method",
    "run_time_grid",
    "solve_saddle_point",
    "validate_time_grid",
]

__version__ = "0.1.0"
