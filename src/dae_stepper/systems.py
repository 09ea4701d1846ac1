# src/dae_stepper/systems.py
"""Reference integrable systems.

Small, self-contained systems implementing the integrable contract. They are
used by the test suite, the documentation and the examples, and double as
templates for wiring a real model into the steppers.

- :class:`FunctionIntegrable`: first-order ODE ``dy/dt = rhs(t, y)``.
- :class:`MassSpringDamper`: uncoupled n-DOF linear oscillators,
  ``m a = f - k x - c v``, no constraints.
- :class:`ConstrainedPendulum`: planar point mass in Cartesian coordinates
  held at distance ``L`` from the origin by one holonomic constraint
  ``C(x) = (x . x - L^2) / 2``.

Mechanical systems solve their acceleration-level and correction systems with
:func:`dae_stepper.linalg.solve_saddle_point`.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING

import numpy as np
from numpy.typing import ArrayLike, NDArray

from .errors import check_length
from .integrable import IntegrableBase, IntegrableIIOrderBase
from .linalg import solve_saddle_point

if TYPE_CHECKING:
    FloatArray = NDArray[np.floating]

RHSFunction = Callable[[float, NDArray[np.floating]], ArrayLike]

_MASS_ERROR = "mass must be strictly positive; got {mass}"
_LENGTH_ERROR = "length must be strictly positive; got {length}"
_PENDULUM_DIM_ERROR = "pendulum positions/velocities must have 2 entries; got {shape}"


def _as_vector(value: ArrayLike) -> NDArray[np.float64]:
    return np.atleast_1d(np.asarray(value, dtype=np.float64)).ravel()


# =============================================================================
# First-order
# =============================================================================


class FunctionIntegrable(IntegrableBase):
    """First-order system defined by a right-hand-side callable.

    Example:
        >>> system = FunctionIntegrable(lambda t, y: -y, y0=[1.0])
        >>> system.n_coords_y
        1
    """

    def __init__(self, rhs: RHSFunction, y0: ArrayLike, *, t0: float = 0.0) -> None:
        """Initialize the system.

        Args:
            rhs: Callable ``rhs(t, y) -> dy/dt`` returning an array like y.
            y0: Initial state.
            t0: Initial time.
        """
        self._rhs = rhs
        self._y = _as_vector(y0).copy()
        self._t = float(t0)

    @property
    def n_coords_y(self) -> int:
        """Length of the state vector."""
        return int(self._y.size)

    @property
    def y(self) -> NDArray[np.float64]:
        """Current internal state (read-only view)."""
        view = self._y.view()
        view.flags.writeable = False
        return view

    @property
    def time(self) -> float:
        """Current internal time."""
        return self._t

    def state_gather(self, y: FloatArray) -> float:
        """Copy the state into y and return the time."""
        check_length(y, self.n_coords_y, name="y")
        np.copyto(y, self._y)
        return self._t

    def state_scatter(self, y: FloatArray, t: float) -> None:
        """Set the state and time."""
        check_length(y, self.n_coords_y, name="y")
        np.copyto(self._y, y)
        self._t = float(t)

    def state_solve(
        self,
        dy: FloatArray,
        lam: FloatArray,
        y: FloatArray,
        t: float,
        dt: float,
        *,
        force_state_scatter: bool = True,
    ) -> None:
        """Write dy = rhs(t, y) * dt.

        Args:
            dy: Output increment.
            lam: Output multipliers (empty; no constraints).
            y: State at which to evaluate.
            t: Time at which to evaluate.
            dt: Step size.
            force_state_scatter: Scatter (y, t) before evaluating.
        """
        check_length(dy, self.n_coords_dy, name="dy")
        check_length(lam, self.n_constr, name="lam")
        if force_state_scatter:
            self.state_scatter(y, t)
        f = _as_vector(self._rhs(float(t), np.array(y, dtype=np.float64)))
        check_length(f, self.n_coords_dy, name="rhs(t, y)")
        np.multiply(f, dt, out=dy)


# =============================================================================
# Second-order
# =============================================================================


class MassSpringDamper(IntegrableIIOrderBase):
    """Uncoupled linear oscillators ``m a = f - k x - c v``.

    All parameters broadcast against each other; the number of degrees of
    freedom is the broadcast size.
    """

    def __init__(
        self,
        *,
        mass: ArrayLike = 1.0,
        stiffness: ArrayLike = 1.0,
        damping: ArrayLike = 0.0,
        force: ArrayLike = 0.0,
        x0: ArrayLike = 0.0,
        v0: ArrayLike = 0.0,
        t0: float = 0.0,
    ) -> None:
        """Initialize the system.

        Args:
            mass: Masses (strictly positive).
            stiffness: Spring constants.
            damping: Viscous damping coefficients.
            force: Constant external forces.
            x0: Initial positions.
            v0: Initial velocities.
            t0: Initial time.

        Raises:
            ValueError: If any mass is not strictly positive.
        """
        m, k, c, f, x, v = np.broadcast_arrays(
            *(_as_vector(p) for p in (mass, stiffness, damping, force, x0, v0))
        )
        if np.any(m <= 0.0):
            raise ValueError(_MASS_ERROR.format(mass=m))
        self.mass = m.copy()
        self.stiffness = k.copy()
        self.damping = c.copy()
        self.force = f.copy()
        self._x = x.copy()
        self._v = v.copy()
        self._t = float(t0)

    @property
    def n_coords_x(self) -> int:
        """Number of degrees of freedom."""
        return int(self._x.size)

    @property
    def time(self) -> float:
        """Current internal time."""
        return self._t

    def forces(self) -> NDArray[np.float64]:
        """Return F(x, v) at the current internal state."""
        return self.force - self.stiffness * self._x - self.damping * self._v

    def energy(self) -> float:
        """Return kinetic + elastic energy minus the work potential of f."""
        kinetic = 0.5 * float(np.sum(self.mass * self._v**2))
        elastic = 0.5 * float(np.sum(self.stiffness * self._x**2))
        return kinetic + elastic - float(np.sum(self.force * self._x))

    def state_gather_xv(self, x: FloatArray, v: FloatArray) -> float:
        """Copy positions and velocities and return the time."""
        check_length(x, self.n_coords_x, name="x")
        check_length(v, self.n_coords_v, name="v")
        np.copyto(x, self._x)
        np.copyto(v, self._v)
        return self._t

    def state_scatter_xv(self, x: FloatArray, v: FloatArray, t: float) -> None:
        """Set positions, velocities and time."""
        check_length(x, self.n_coords_x, name="x")
        check_length(v, self.n_coords_v, name="v")
        np.copyto(self._x, x)
        np.copyto(self._v, v)
        self._t = float(t)

    def state_solve_a(
        self,
        dv: FloatArray,
        lam: FloatArray,
        x: FloatArray,
        v: FloatArray,
        t: float,
        dt: float,
        *,
        force_state_scatter: bool = True,
    ) -> None:
        """Write dv = (F / m) * dt."""
        check_length(dv, self.n_coords_v, name="dv")
        check_length(lam, self.n_constr, name="lam")
        if force_state_scatter:
            self.state_scatter_xv(x, v, t)
        np.multiply(self.forces() / self.mass, dt, out=dv)

    def state_solve_correction(
        self,
        dv: FloatArray,
        dl: FloatArray,
        r: FloatArray,
        qc: FloatArray,
        c_m: float,
        c_d: float,
        c_k: float,
        x: FloatArray,
        v: FloatArray,
        t: float,
        *,
        force_state_scatter: bool = True,
    ) -> None:
        """Solve (c_m M - c_d C - c_k K) dv = r, since dF/dv = -C, dF/dx = -K."""
        check_length(dv, self.n_coords_v, name="dv")
        check_length(dl, self.n_constr, name="dl")
        if force_state_scatter:
            self.state_scatter_xv(x, v, t)
        h_diag = c_m * self.mass - c_d * self.damping - c_k * self.stiffness
        cq = np.zeros((0, self.n_coords_v), dtype=np.float64)
        sol_v, _sol_l = solve_saddle_point(np.diag(h_diag), cq, r, qc)
        np.copyto(dv, sol_v)

    def load_residual_f(self, r: FloatArray, c: float) -> None:
        """Accumulate r += c * F."""
        check_length(r, self.n_coords_v, name="r")
        r += c * self.forces()

    def load_residual_mv(self, r: FloatArray, w: FloatArray, c: float) -> None:
        """Accumulate r += c * M @ w."""
        check_length(r, self.n_coords_v, name="r")
        check_length(w, self.n_coords_v, name="w")
        r += c * self.mass * w


class ConstrainedPendulum(IntegrableIIOrderBase):
    """Planar pendulum as a point mass with one holonomic constraint.

    Coordinates are Cartesian ``x = (px, py)`` with gravity along ``-y``. The
    constraint ``C(x) = (x . x - L^2) / 2`` has Jacobian ``Cq = x^T`` and the
    constraint force is ``Cq^T lambda``.
    """

    def __init__(
        self,
        *,
        length: float = 1.0,
        mass: float = 1.0,
        gravity: float = 9.81,
        x0: ArrayLike = (1.0, 0.0),
        v0: ArrayLike = (0.0, 0.0),
        t0: float = 0.0,
    ) -> None:
        """Initialize the system.

        Args:
            length: Rod length L.
            mass: Point mass.
            gravity: Gravitational acceleration (acts along -y).
            x0: Initial position, 2 entries.
            v0: Initial velocity, 2 entries.
            t0: Initial time.

        Raises:
            ValueError: If length/mass are not positive or x0/v0 are not 2D.
        """
        if length <= 0.0:
            raise ValueError(_LENGTH_ERROR.format(length=length))
        if mass <= 0.0:
            raise ValueError(_MASS_ERROR.format(mass=mass))
        self.length = float(length)
        self.mass = float(mass)
        self.gravity = float(gravity)
        self._x = _as_vector(x0).copy()
        self._v = _as_vector(v0).copy()
        if self._x.shape != (2,) or self._v.shape != (2,):
            raise ValueError(
                _PENDULUM_DIM_ERROR.format(shape=(self._x.shape, self._v.shape))
            )
        self._t = float(t0)

    @property
    def n_coords_x(self) -> int:
        """Two Cartesian coordinates."""
        return 2

    @property
    def n_constr(self) -> int:
        """One rod constraint."""
        return 1

    @property
    def time(self) -> float:
        """Current internal time."""
        return self._t

    @property
    def position(self) -> NDArray[np.float64]:
        """Copy of the current position."""
        return self._x.copy()

    @property
    def velocity(self) -> NDArray[np.float64]:
        """Copy of the current velocity."""
        return self._v.copy()

    def constraint_violation(self) -> float:
        """Return C(x) = (x . x - L^2) / 2 at the current position."""
        return 0.5 * (float(self._x @ self._x) - self.length**2)

    def energy(self) -> float:
        """Return kinetic + gravitational potential energy."""
        kinetic = 0.5 * self.mass * float(self._v @ self._v)
        return kinetic + self.mass * self.gravity * float(self._x[1])

    def _gravity_force(self) -> NDArray[np.float64]:
        return np.array([0.0, -self.mass * self.gravity], dtype=np.float64)

    def _cq(self) -> NDArray[np.float64]:
        return self._x.reshape(1, 2)

    def state_gather_xv(self, x: FloatArray, v: FloatArray) -> float:
        """Copy positions and velocities and return the time."""
        check_length(x, 2, name="x")
        check_length(v, 2, name="v")
        np.copyto(x, self._x)
        np.copyto(v, self._v)
        return self._t

    def state_scatter_xv(self, x: FloatArray, v: FloatArray, t: float) -> None:
        """Set positions, velocities and time."""
        check_length(x, 2, name="x")
        check_length(v, 2, name="v")
        np.copyto(self._x, x)
        np.copyto(self._v, v)
        self._t = float(t)

    def state_solve_a(
        self,
        dv: FloatArray,
        lam: FloatArray,
        x: FloatArray,
        v: FloatArray,
        t: float,
        dt: float,
        *,
        force_state_scatter: bool = True,
    ) -> None:
        """Solve the acceleration-level KKT system and write dv = a * dt.

        [M  Cq^T][a  ]   [ F      ]
        [Cq 0   ][mu ] = [ -v . v ]

        so that M a = F - Cq^T mu; the multiplier written to lam is -mu.
        """
        check_length(dv, 2, name="dv")
        check_length(lam, 1, name="lam")
        if force_state_scatter:
            self.state_scatter_xv(x, v, t)
        h = self.mass * np.eye(2)
        qc = np.array([float(self._v @ self._v)], dtype=np.float64)
        acc, mu = solve_saddle_point(h, self._cq(), self._gravity_force(), qc)
        np.multiply(acc, dt, out=dv)
        np.negative(mu, out=lam)

    def state_solve_correction(
        self,
        dv: FloatArray,
        dl: FloatArray,
        r: FloatArray,
        qc: FloatArray,
        c_m: float,
        c_d: float,
        c_k: float,
        x: FloatArray,
        v: FloatArray,
        t: float,
        *,
        force_state_scatter: bool = True,
    ) -> None:
        """Solve [[c_m M, Cq^T], [Cq, 0]] [dv; dl] = [r; -qc].

        Gravity is constant, so the damping and stiffness blocks vanish.
        """
        check_length(dv, 2, name="dv")
        check_length(dl, 1, name="dl")
        if force_state_scatter:
            self.state_scatter_xv(x, v, t)
        h = c_m * self.mass * np.eye(2)
        sol_v, sol_l = solve_saddle_point(h, self._cq(), r, qc)
        np.copyto(dv, sol_v)
        np.copyto(dl, sol_l)

    def load_residual_f(self, r: FloatArray, c: float) -> None:
        """Accumulate r += c * F."""
        check_length(r, 2, name="r")
        r += c * self._gravity_force()

    def load_residual_mv(self, r: FloatArray, w: FloatArray, c: float) -> None:
        """Accumulate r += c * M @ w."""
        check_length(r, 2, name="r")
        check_length(w, 2, name="w")
        r += (c * self.mass) * w

    def load_residual_cql(self, r: FloatArray, lam: FloatArray, c: float) -> None:
        """Accumulate r += c * Cq^T @ lam."""
        check_length(r, 2, name="r")
        check_length(lam, 1, name="lam")
        r += c * float(lam[0]) * self._x

    def load_constraint_c(self, qc: FloatArray, c: float) -> None:
        """Accumulate qc += c * C(x)."""
        check_length(qc, 1, name="qc")
        qc[0] += c * self.constraint_violation()
