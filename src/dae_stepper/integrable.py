# src/dae_stepper/integrable.py
"""Contract every simulated system must satisfy to be advanced by a stepper.

Two capability sets are defined:

- :class:`Integrable`: a first-order system ``dY/dt = f(Y, t)`` with optional
  algebraic constraints. Steppers interact with it through gather/scatter of
  ``Y`` and through ``state_solve``, which returns an increment ``dY = f*dt``.
- :class:`IntegrableIIOrder`: a second-order (mechanical) system
  ``M dv/dt = F(x, v, t) + Cq^T lambda``, ``C(x) = 0``. Besides gather/scatter of
  ``(x, v)`` and an acceleration-level solve, it exposes the residual loaders and
  the correction solve required by implicit schemes.

Both are ``typing.Protocol`` classes so any object with the right methods
qualifies. The abstract base classes :class:`IntegrableBase` and
:class:`IntegrableIIOrderBase` supply the default behaviors: componentwise
state increments and, for second-order systems, a first-order view with
``Y = [x, v]`` so that first-order schemes can advance mechanical systems too.

Sign conventions for second-order systems:
    Residual loaders accumulate into a caller-provided vector ``r``:
        load_residual_f:   r += c * F(x, v, t)
        load_residual_mv:  r += c * M @ w
        load_residual_cql: r += c * Cq^T @ lam
        load_constraint_c: qc += c * C(x)

    state_solve_correction solves the saddle-point system
        [ c_m*M + c_d*dF/dv + c_k*dF/dx   Cq^T ] [ dv ]   [  r  ]
        [ Cq                              0    ] [ dl ] = [ -qc ]

All vectors are 1D float64 arrays sized from the reported dimensions. Passing
a mis-sized container is a programming error.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Protocol, runtime_checkable

import numpy as np

from .errors import check_length

if TYPE_CHECKING:
    from numpy.typing import NDArray

    FloatArray = NDArray[np.floating]


# =============================================================================
# Protocols
# =============================================================================


@runtime_checkable
class Integrable(Protocol):
    """First-order integrable system."""

    @property
    def n_coords_y(self) -> int:
        """Length of the state vector Y."""
        ...

    @property
    def n_coords_dy(self) -> int:
        """Length of the derivative vector dY/dt."""
        ...

    @property
    def n_constr(self) -> int:
        """Number of active algebraic constraints."""
        ...

    def state_gather(self, y: FloatArray) -> float:
        """Copy the internal state into y and return the current time."""
        ...

    def state_scatter(self, y: FloatArray, t: float) -> None:
        """Push y and t into the system, updating dependent quantities."""
        ...

    def state_increment(
        self,
        y_new: FloatArray,
        y: FloatArray,
        dy: FloatArray,
    ) -> None:
        """Write y_new = y (+) dy."""
        ...

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
        """Write dy = f(y, t) * dt and the constraint multipliers into lam."""
        ...


@runtime_checkable
class IntegrableIIOrder(Protocol):
    """Second-order integrable system with constraints."""

    @property
    def n_coords_x(self) -> int:
        """Length of the position vector x."""
        ...

    @property
    def n_coords_v(self) -> int:
        """Length of the velocity vector v."""
        ...

    @property
    def n_coords_a(self) -> int:
        """Length of the acceleration vector a."""
        ...

    @property
    def n_constr(self) -> int:
        """Number of active algebraic constraints."""
        ...

    def state_gather_xv(self, x: FloatArray, v: FloatArray) -> float:
        """Copy positions and velocities into x, v and return the time."""
        ...

    def state_scatter_xv(self, x: FloatArray, v: FloatArray, t: float) -> None:
        """Push x, v and t into the system, updating dependent quantities."""
        ...

    def state_increment_x(
        self,
        x_new: FloatArray,
        x: FloatArray,
        dx: FloatArray,
    ) -> None:
        """Write x_new = x (+) dx, where dx lives in velocity space."""
        ...

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
        """Write dv = a(x, v, t) * dt and the constraint multipliers into lam."""
        ...

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
        """Solve the linearized saddle-point system for (dv, dl)."""
        ...

    def load_residual_f(self, r: FloatArray, c: float) -> None:
        """Accumulate r += c * F."""
        ...

    def load_residual_mv(self, r: FloatArray, w: FloatArray, c: float) -> None:
        """Accumulate r += c * M @ w."""
        ...

    def load_residual_cql(self, r: FloatArray, lam: FloatArray, c: float) -> None:
        """Accumulate r += c * Cq^T @ lam."""
        ...

    def load_constraint_c(self, qc: FloatArray, c: float) -> None:
        """Accumulate qc += c * C(x)."""
        ...


# =============================================================================
# Base classes with default behaviors
# =============================================================================


class IntegrableBase(ABC):
    """First-order system with a Euclidean (componentwise) state increment."""

    @property
    @abstractmethod
    def n_coords_y(self) -> int:
        """Length of the state vector Y."""

    @property
    def n_coords_dy(self) -> int:
        """Length of dY/dt; equal to n_coords_y unless overridden."""
        return self.n_coords_y

    @property
    def n_constr(self) -> int:
        """Number of constraints; none unless overridden."""
        return 0

    @abstractmethod
    def state_gather(self, y: FloatArray) -> float:
        """Copy the internal state into y and return the current time."""

    @abstractmethod
    def state_scatter(self, y: FloatArray, t: float) -> None:
        """Push y and t into the system."""

    def state_increment(
        self,
        y_new: FloatArray,
        y: FloatArray,
        dy: FloatArray,
    ) -> None:
        """Write y_new = y + dy componentwise.

        Args:
            y_new: Output state.
            y: Base state.
            dy: Increment, in derivative space.
        """
        check_length(y, self.n_coords_y, name="y")
        check_length(dy, self.n_coords_dy, name="dy")
        np.add(y, dy, out=y_new)

    @abstractmethod
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
        """Write dy = f(y, t) * dt and multipliers into lam."""


class IntegrableIIOrderBase(ABC):
    """Second-order system with default increments and a first-order view.

    Subclasses implement the mechanical interface. The first-order view maps

        Y  = [x, v]               (length n_x + n_v)
        dY = [v * dt, a * dt]     (length 2 * n_v)

    so an instance also satisfies :class:`Integrable`.
    """

    # ------------------------------------------------------------------
    # Dimensions
    # ------------------------------------------------------------------

    @property
    @abstractmethod
    def n_coords_x(self) -> int:
        """Length of the position vector x."""

    @property
    def n_coords_v(self) -> int:
        """Length of the velocity vector; equal to n_coords_x unless overridden."""
        return self.n_coords_x

    @property
    def n_coords_a(self) -> int:
        """Length of the acceleration vector (always n_coords_v)."""
        return self.n_coords_v

    @property
    def n_constr(self) -> int:
        """Number of constraints; none unless overridden."""
        return 0

    @property
    def n_coords_y(self) -> int:
        """Length of the first-order state [x, v]."""
        return self.n_coords_x + self.n_coords_v

    @property
    def n_coords_dy(self) -> int:
        """Length of the first-order increment [dx, dv]."""
        return 2 * self.n_coords_v

    # ------------------------------------------------------------------
    # Mechanical interface
    # ------------------------------------------------------------------

    @abstractmethod
    def state_gather_xv(self, x: FloatArray, v: FloatArray) -> float:
        """Copy positions and velocities into x, v and return the time."""

    @abstractmethod
    def state_scatter_xv(self, x: FloatArray, v: FloatArray, t: float) -> None:
        """Push x, v and t into the system."""

    def state_increment_x(
        self,
        x_new: FloatArray,
        x: FloatArray,
        dx: FloatArray,
    ) -> None:
        """Write x_new = x + dx componentwise.

        Args:
            x_new: Output positions.
            x: Base positions.
            dx: Increment, in velocity space.
        """
        check_length(x, self.n_coords_x, name="x")
        check_length(dx, self.n_coords_v, name="dx")
        np.add(x, dx, out=x_new)

    @abstractmethod
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
        """Write dv = a(x, v, t) * dt and multipliers into lam."""

    @abstractmethod
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
        """Solve the linearized saddle-point system for (dv, dl)."""

    @abstractmethod
    def load_residual_f(self, r: FloatArray, c: float) -> None:
        """Accumulate r += c * F."""

    @abstractmethod
    def load_residual_mv(self, r: FloatArray, w: FloatArray, c: float) -> None:
        """Accumulate r += c * M @ w."""

    def load_residual_cql(self, r: FloatArray, lam: FloatArray, c: float) -> None:
        """Accumulate r += c * Cq^T @ lam; a no-op for unconstrained systems."""
        check_length(lam, self.n_constr, name="lam")

    def load_constraint_c(self, qc: FloatArray, c: float) -> None:
        """Accumulate qc += c * C(x); a no-op for unconstrained systems."""
        check_length(qc, self.n_constr, name="qc")

    # ------------------------------------------------------------------
    # First-order view: Y = [x, v]
    # ------------------------------------------------------------------

    def _split_y(self, y: FloatArray) -> tuple[FloatArray, FloatArray]:
        check_length(y, self.n_coords_y, name="y")
        n_x = self.n_coords_x
        return y[:n_x], y[n_x:]

    def _split_dy(self, dy: FloatArray) -> tuple[FloatArray, FloatArray]:
        check_length(dy, self.n_coords_dy, name="dy")
        n_v = self.n_coords_v
        return dy[:n_v], dy[n_v:]

    def state_gather(self, y: FloatArray) -> float:
        """Gather [x, v] into y and return the time."""
        x, v = self._split_y(y)
        return self.state_gather_xv(x, v)

    def state_scatter(self, y: FloatArray, t: float) -> None:
        """Scatter [x, v] from y."""
        x, v = self._split_y(y)
        self.state_scatter_xv(x, v, t)

    def state_increment(
        self,
        y_new: FloatArray,
        y: FloatArray,
        dy: FloatArray,
    ) -> None:
        """Write y_new = y (+) dy, routing positions through state_increment_x."""
        x_new, v_new = self._split_y(y_new)
        x, v = self._split_y(y)
        dx, dv = self._split_dy(dy)
        self.state_increment_x(x_new, x, dx)
        np.add(v, dv, out=v_new)

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
        """Write dy = [v * dt, a * dt] for the state y = [x, v]."""
        x, v = self._split_y(y)
        dx, dv = self._split_dy(dy)
        self.state_solve_a(
            dv,
            lam,
            x,
            v,
            t,
            dt,
            force_state_scatter=force_state_scatter,
        )
        np.multiply(v, dt, out=dx)
