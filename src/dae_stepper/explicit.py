# src/dae_stepper/explicit.py
"""Explicit time-stepping schemes.

Every scheme follows the same sequence inside ``advance(dt)``:

    setup (query dimensions) -> gather -> evaluate -> combine -> t += dt -> scatter

Supported schemes:
    - EulerExplicit:        Y += dy                          (1st-order systems)
    - EulerExplicitIIOrder: x += v*dt, then v += dv          (mechanical)
    - EulerSemiImplicit:    v += dv, then x += v_new*dt      (mechanical)
    - Leapfrog:             velocity-Verlet form, reuses last acceleration
    - RungeKutta4:          classic 4-stage RK               (1st-order systems)
    - Heun:                 2-stage predictor/corrector      (1st-order systems)

Scatter policy:
    The first evaluation within a step runs at the freshly gathered state and is
    issued with ``force_state_scatter=False``. Every later evaluation is at a
    trial state that differs from what the system holds, and asks the system to
    scatter it first.

None of the schemes controls the error or adapts dt; stability is the caller's
responsibility.
"""

from __future__ import annotations

import logging

import numpy as np

from .state import StepScratch
from .timestepper import FirstOrderTimestepper, SecondOrderTimestepper

logger = logging.getLogger(__name__)


# =============================================================================
# First-order schemes
# =============================================================================


class EulerExplicit(FirstOrderTimestepper):
    """Explicit Euler: ``Y_new = Y + f(Y, t) * dt``."""

    def advance(self, dt: float) -> None:
        """Advance by one explicit Euler step.

        Args:
            dt: Step size.
        """
        dt = self._check_dt(dt)
        layout = self.state_setup()
        system = self.integrable
        y = self._state.y

        t = system.state_gather(y)
        self._sync_time(t)

        scratch = StepScratch(layout, v=("dy",), c=("lam",))
        dy = scratch["dy"]
        system.state_solve(dy, scratch["lam"], y, t, dt, force_state_scatter=False)

        system.state_increment(y, y, dy)
        np.multiply(dy, 1.0 / dt, out=self._state.dydt)
        t_new = self._advance_time(dt)

        system.state_scatter(y, t_new)


class RungeKutta4(FirstOrderTimestepper):
    """Classic 4th-order explicit Runge-Kutta.

    Stage increments are evaluated at ``t``, ``t + dt/2`` (twice) and ``t + dt``
    and combined as ``(k1 + 2 k2 + 2 k3 + k4) / 6``.
    """

    def advance(self, dt: float) -> None:
        """Advance by one RK4 step.

        Args:
            dt: Step size.
        """
        dt = self._check_dt(dt)
        layout = self.state_setup()
        system = self.integrable
        y = self._state.y

        t = system.state_gather(y)
        self._sync_time(t)

        scratch = StepScratch(
            layout,
            x=("y_new",),
            v=("dy1", "dy2", "dy3", "dy4", "dy_sum"),
            c=("lam",),
        )
        y_new = scratch["y_new"]
        dy1, dy2, dy3, dy4 = (scratch[k] for k in ("dy1", "dy2", "dy3", "dy4"))
        lam = scratch["lam"]

        system.state_solve(dy1, lam, y, t, dt, force_state_scatter=False)

        system.state_increment(y_new, y, dy1 * 0.5)
        system.state_solve(dy2, lam, y_new, t + 0.5 * dt, dt)

        system.state_increment(y_new, y, dy2 * 0.5)
        system.state_solve(dy3, lam, y_new, t + 0.5 * dt, dt)

        system.state_increment(y_new, y, dy3)
        system.state_solve(dy4, lam, y_new, t + dt, dt)

        dy_sum = scratch["dy_sum"]
        np.add(dy2, dy3, out=dy_sum)
        dy_sum *= 2.0
        dy_sum += dy1
        dy_sum += dy4
        dy_sum *= 1.0 / 6.0

        system.state_increment(y, y, dy_sum)
        np.multiply(dy4, 1.0 / dt, out=self._state.dydt)
        t_new = self._advance_time(dt)

        system.state_scatter(y, t_new)


class Heun(FirstOrderTimestepper):
    """Heun's method (explicit trapezoidal / RK2).

    Predictor ``k1`` at ``t``, corrector ``k2`` at the predicted state and
    ``t + dt``; the update is ``(k1 + k2) / 2``.
    """

    def advance(self, dt: float) -> None:
        """Advance by one Heun step.

        Args:
            dt: Step size.
        """
        dt = self._check_dt(dt)
        layout = self.state_setup()
        system = self.integrable
        y = self._state.y

        t = system.state_gather(y)
        self._sync_time(t)

        scratch = StepScratch(layout, x=("y_new",), v=("dy1", "dy2"), c=("lam",))
        y_new, dy1, dy2 = scratch["y_new"], scratch["dy1"], scratch["dy2"]
        lam = scratch["lam"]

        system.state_solve(dy1, lam, y, t, dt, force_state_scatter=False)

        system.state_increment(y_new, y, dy1)
        system.state_solve(dy2, lam, y_new, t + dt, dt)

        system.state_increment(y, y, 0.5 * (dy1 + dy2))
        np.multiply(dy2, 1.0 / dt, out=self._state.dydt)
        t_new = self._advance_time(dt)

        system.state_scatter(y, t_new)


# =============================================================================
# Second-order schemes
# =============================================================================


class EulerExplicitIIOrder(SecondOrderTimestepper):
    """Explicit Euler for mechanical systems.

    Positions move with the *old* velocity:

        a = dv / dt;  x_new = x + v * dt;  v_new = v + dv
    """

    def advance(self, dt: float) -> None:
        """Advance by one explicit Euler step.

        Args:
            dt: Step size.
        """
        dt = self._check_dt(dt)
        layout = self.state_setup()
        system = self.integrable
        x, v, a = self._state.x, self._state.v, self._state.a

        t = system.state_gather_xv(x, v)
        self._sync_time(t)

        scratch = StepScratch(layout, v=("dv",), c=("lam",))
        dv, lam = scratch["dv"], scratch["lam"]
        system.state_solve_a(dv, lam, x, v, t, dt, force_state_scatter=False)

        np.multiply(dv, 1.0 / dt, out=a)
        system.state_increment_x(x, x, v * dt)
        v += dv
        t_new = self._advance_time(dt)

        system.state_scatter_xv(x, v, t_new)


class EulerSemiImplicit(SecondOrderTimestepper):
    """Semi-implicit (symplectic) Euler for mechanical systems.

    Velocities are updated first and positions move with the *new* velocity:

        a = dv / dt;  v_new = v + dv;  x_new = x + v_new * dt
    """

    def advance(self, dt: float) -> None:
        """Advance by one semi-implicit Euler step.

        Args:
            dt: Step size.
        """
        dt = self._check_dt(dt)
        layout = self.state_setup()
        system = self.integrable
        x, v, a = self._state.x, self._state.v, self._state.a

        t = system.state_gather_xv(x, v)
        self._sync_time(t)

        scratch = StepScratch(layout, v=("dv",), c=("lam",))
        dv, lam = scratch["dv"], scratch["lam"]
        system.state_solve_a(dv, lam, x, v, t, dt, force_state_scatter=False)

        np.multiply(dv, 1.0 / dt, out=a)
        v += dv
        system.state_increment_x(x, x, v * dt)
        t_new = self._advance_time(dt)

        system.state_scatter_xv(x, v, t_new)


class Leapfrog(SecondOrderTimestepper):
    """Leapfrog (velocity Verlet) for mechanical systems.

    Symplectic and second-order accurate when forces depend on positions only:

        x_new = x + v * dt + a_old * dt^2 / 2
        a_new = a(x_new)
        v_new = v + (a_old + a_new) * dt / 2

    The acceleration of the previous step is reused. It is primed with one extra
    evaluation on the first step and after any re-allocation of the state
    containers, so such a step costs two evaluations instead of one rather than
    reusing whatever acceleration happens to be cached. Renumbering degrees of
    freedom or constraints between steps without a dimension change
    invalidates the cached value; that is the caller's responsibility.
    """

    def _on_realloc(self) -> None:
        self._has_acceleration = False

    def advance(self, dt: float) -> None:
        """Advance by one leapfrog step.

        Args:
            dt: Step size.
        """
        dt = self._check_dt(dt)
        layout = self.state_setup()
        system = self.integrable
        x, v, a = self._state.x, self._state.v, self._state.a

        t = system.state_gather_xv(x, v)
        self._sync_time(t)

        scratch = StepScratch(layout, v=("dv", "a_old", "dx"), c=("lam",))
        dv, a_old, dx, lam = (scratch[k] for k in ("dv", "a_old", "dx", "lam"))

        if not self._has_acceleration:
            system.state_solve_a(dv, lam, x, v, t, dt, force_state_scatter=False)
            np.multiply(dv, 1.0 / dt, out=a)
            self._has_acceleration = True
            logger.debug("Leapfrog: primed acceleration at t=%g", t)
        np.copyto(a_old, a)

        np.multiply(v, dt, out=dx)
        dx += (0.5 * dt * dt) * a_old
        system.state_increment_x(x, x, dx)

        system.state_solve_a(dv, lam, x, v, t + dt, dt)
        np.multiply(dv, 1.0 / dt, out=a)

        v += (0.5 * dt) * (a_old + a)
        t_new = self._advance_time(dt)

        system.state_scatter_xv(x, v, t_new)
