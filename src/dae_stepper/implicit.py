# src/dae_stepper/implicit.py
"""Implicit Euler for constrained mechanical systems (Newton-Raphson).

The scheme discretizes the index-1 DAE

    M dv = F(x, v, t) dt + Cq^T lambda dt,    C(x) = 0

with implicit Euler and solves for ``v_new`` and ``lambda`` by a simplified
Newton iteration. Each iteration solves the saddle-point system

    [ M - dt dF/dv - dt^2 dF/dx   Cq^T ] [ dv  ]   [ M (v - v_new) + dt F + dt Cq^T l ]
    [ Cq                          0    ] [ dl' ] = [ -C / dt                          ]

through the integrable's ``state_solve_correction``, passing only the scalar
factors (1, -dt, -dt^2) for the mass, damping and stiffness blocks. The
multiplier increment is recovered as ``dl = -dl' / dt``.

The iteration stops when the infinity norm of the stacked residual
``[R; C/dt]`` drops below the configured tolerance, or when the iteration
budget is spent. A non-finite residual ends the iteration as unconverged.
Both outcomes commit the last iterate; an exhausted budget is only reported
through :attr:`EulerImplicit.last_newton` unless the configuration is strict.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import numpy as np

from .errors import ConvergenceError
from .state import StepScratch
from .timestepper import ImplicitConfig, NewtonStats, SecondOrderTimestepper

if TYPE_CHECKING:
    from .integrable import IntegrableIIOrder

logger = logging.getLogger(__name__)

_NOT_CONVERGED_MSG = (
    "Newton iteration did not converge in {iters} iterations at t={t:.6g} "
    "(residual {norm:.3e} >= tolerance {tol:.3e})"
)


def _inf_norm(*vectors: np.ndarray) -> float:
    """Return the infinity norm of the concatenation of vectors (NaN propagates)."""
    stacked = np.concatenate(vectors)
    if stacked.size == 0:
        return 0.0
    return float(np.max(np.abs(stacked)))


class EulerImplicit(SecondOrderTimestepper):
    """Implicit Euler with Newton correction for constrained mechanical systems."""

    def __init__(
        self,
        integrable: IntegrableIIOrder,
        *,
        t0: float | None = None,
        implicit: ImplicitConfig | None = None,
    ) -> None:
        """Initialize the stepper.

        Args:
            integrable: Second-order integrable system.
            t0: Initial time, scattered into the system. If None, the
                stepper adopts the system's own time.
            implicit: Newton settings; defaults to ImplicitConfig().
        """
        super().__init__(integrable, t0=t0)
        self.implicit = implicit or ImplicitConfig()
        self.last_newton: NewtonStats | None = None

    @property
    def max_iters(self) -> int:
        """Maximum Newton iterations per step."""
        return self.implicit.max_iters

    @property
    def tolerance(self) -> float:
        """Newton convergence tolerance on the residual infinity norm."""
        return self.implicit.tolerance

    def advance(self, dt: float) -> None:
        """Advance by one implicit Euler step.

        Args:
            dt: Step size.

        Raises:
            ConvergenceError: If the configuration is strict and Newton does not
                converge within max_iters. The system is scattered back to
                the state and time it held before the step.
        """
        dt = self._check_dt(dt)
        layout = self.state_setup()
        system = self.integrable
        x, v, a = self._state.x, self._state.v, self._state.a

        t = system.state_gather_xv(x, v)
        self._sync_time(t)
        t_new = t + dt

        scratch = StepScratch(
            layout,
            x=("x_new",),
            v=("dv", "v_new", "a_new", "r", "w"),
            c=("lam", "dl", "qc"),
        )
        x_new, v_new, dv = scratch["x_new"], scratch["v_new"], scratch["dv"]
        a_new, r, w = scratch["a_new"], scratch["r"], scratch["w"]
        lam, dl, qc = scratch["lam"], scratch["dl"], scratch["qc"]

        # Explicit Euler prediction.
        system.state_solve_a(dv, lam, x, v, t, dt, force_state_scatter=False)
        np.multiply(dv, 1.0 / dt, out=a_new)
        system.state_increment_x(x_new, x, v * dt)
        np.add(v, dv, out=v_new)
        lam.fill(0.0)

        cfg = self.implicit
        iterations = 0
        norm = float("inf")
        converged = False
        for _ in range(cfg.max_iters):
            system.state_scatter_xv(x_new, v_new, t_new)

            scratch.zero("r", "qc")
            system.load_residual_f(r, dt)
            np.subtract(v, v_new, out=w)
            system.load_residual_mv(r, w, 1.0)
            system.load_residual_cql(r, lam, dt)
            system.load_constraint_c(qc, 1.0 / dt)

            norm = _inf_norm(r, qc)
            logger.debug("Newton iter %d, t=%g: |R|inf=%.3e", iterations, t_new, norm)
            if norm < cfg.tolerance:
                converged = True
                break
            if not np.isfinite(norm):
                break

            system.state_solve_correction(
                dv,
                dl,
                r,
                qc,
                1.0,
                -dt,
                -dt * dt,
                x_new,
                v_new,
                t_new,
                force_state_scatter=False,
            )
            dl *= -1.0 / dt
            lam += dl
            v_new += dv
            system.state_increment_x(x_new, x, v_new * dt)
            iterations += 1

        self.last_newton = NewtonStats(
            iterations=iterations,
            residual_norm=norm,
            converged=converged,
        )
        if not converged:
            msg = _NOT_CONVERGED_MSG.format(
                iters=iterations,
                t=t_new,
                norm=norm,
                tol=cfg.tolerance,
            )
            if cfg.strict:
                system.state_scatter_xv(x, v, t)
                raise ConvergenceError(msg)
            logger.debug("%s; accepting last iterate", msg)

        np.copyto(x, x_new)
        np.copyto(v, v_new)
        np.copyto(a, a_new)
        t_new = self._advance_time(dt)

        system.state_scatter_xv(x, v, t_new)
