# src/dae_stepper/linalg.py
"""Saddle-point (KKT) linear solves for constrained mechanical systems.

Integrable systems answer acceleration-level solves and Newton corrections by
solving systems of the form

    [ H   Cq^T ] [ u ]   [  r  ]
    [ Cq  0    ] [ l ] = [ -qc ]

where ``H`` is an effective mass/stiffness matrix (n x n) and ``Cq`` the
constraint Jacobian (m x n). With no constraints (m == 0) the system reduces
to ``H u = r``.

Design notes:
    * Dense and sparse paths mirror each other: dense blocks are factorized
      with LAPACK LU (scipy.linalg.lu_factor), sparse ones with SuperLU
      (scipy.sparse.linalg.factorized). The sparse path is taken whenever either
      block is a SciPy sparse matrix.
    * Factorizations are not cached: ``H`` and ``Cq`` depend on the state and
      on the step size, so each call assembles and factorizes afresh.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, TypeAlias, cast

import numpy as np
from numpy.typing import NDArray
from scipy.linalg import lu_factor, lu_solve
from scipy.sparse import bmat, csc_matrix, csr_matrix, issparse
from scipy.sparse.linalg import factorized as sparse_factorized

from .errors import check_length

if TYPE_CHECKING:
    from collections.abc import Callable

DenseMatrix: TypeAlias = NDArray[np.floating]
SparseMatrix: TypeAlias = csr_matrix
Matrix: TypeAlias = DenseMatrix | SparseMatrix

_SQUARE_ERROR = "H must be square; got shape {shape}"
_CQ_SHAPE_ERROR = "Cq shape {shape} is incompatible with H of size {n}"


def _validate_blocks(h: Matrix, cq: Matrix) -> tuple[int, int]:
    """Validate block shapes.

    Args:
        h: Effective matrix, shape (n, n).
        cq: Constraint Jacobian, shape (m, n).

    Raises:
        ValueError: If shapes are inconsistent.

    Returns:
        Tuple (n, m).
    """
    h_shape = cast("tuple[int, int]", h.shape)
    if len(h_shape) != 2 or h_shape[0] != h_shape[1]:
        raise ValueError(_SQUARE_ERROR.format(shape=h_shape))
    n = int(h_shape[0])

    cq_shape = cast("tuple[int, int]", cq.shape)
    if len(cq_shape) != 2 or cq_shape[1] != n:
        raise ValueError(_CQ_SHAPE_ERROR.format(shape=cq_shape, n=n))
    return n, int(cq_shape[0])


def assemble_saddle_point(h: Matrix, cq: Matrix) -> Matrix:
    """Assemble the KKT matrix [[H, Cq^T], [Cq, 0]].

    Args:
        h: Effective matrix, shape (n, n), dense or sparse.
        cq: Constraint Jacobian, shape (m, n), dense or sparse.

    Returns:
        The (n + m) x (n + m) KKT matrix; CSR if either block is sparse,
        otherwise a dense ndarray.
    """
    n, m = _validate_blocks(h, cq)

    if issparse(h) or issparse(cq):
        h_sp = csr_matrix(h)
        cq_sp = csr_matrix(cq)
        if m == 0:
            return h_sp
        kkt = bmat([[h_sp, cq_sp.T], [cq_sp, None]], format="csr")
        return cast("csr_matrix", kkt)

    h_arr = np.asarray(h, dtype=np.float64)
    if m == 0:
        return h_arr
    cq_arr = np.asarray(cq, dtype=np.float64)
    kkt_dense = np.zeros((n + m, n + m), dtype=np.float64)
    kkt_dense[:n, :n] = h_arr
    kkt_dense[:n, n:] = cq_arr.T
    kkt_dense[n:, :n] = cq_arr
    return kkt_dense


def _build_solver(
    kkt: Matrix,
) -> Callable[[NDArray[np.floating]], NDArray[np.floating]]:
    """Factorize kkt and return a solve callable.

    Args:
        kkt: Assembled KKT matrix.

    Returns:
        A callable mapping a right-hand side to the solution.
    """
    if issparse(kkt):
        solve_sparse = sparse_factorized(csc_matrix(kkt))

        def sparse_solver(rhs: NDArray[np.floating]) -> NDArray[np.floating]:
            return np.asarray(solve_sparse(rhs), dtype=np.float64)

        return sparse_solver

    lu, piv = lu_factor(np.asarray(kkt, dtype=np.float64))

    def dense_solver(rhs: NDArray[np.floating]) -> NDArray[np.floating]:
        return np.asarray(lu_solve((lu, piv), rhs), dtype=np.float64)

    return dense_solver


def solve_saddle_point(
    h: Matrix,
    cq: Matrix,
    r: NDArray[np.floating],
    qc: NDArray[np.floating],
) -> tuple[NDArray[np.float64], NDArray[np.float64]]:
    """Solve [[H, Cq^T], [Cq, 0]] [u; l] = [r; -qc].

    Args:
        h: Effective matrix, shape (n, n).
        cq: Constraint Jacobian, shape (m, n).
        r: Upper right-hand side, length n.
        qc: Constraint right-hand side, length m (enters with a minus sign).

    Returns:
        Tuple (u, l) with lengths n and m.
    """
    n, m = _validate_blocks(h, cq)
    check_length(r, n, name="r")
    check_length(qc, m, name="qc")

    rhs = np.empty(n + m, dtype=np.float64)
    rhs[:n] = r
    np.negative(qc, out=rhs[n:])

    solver = _build_solver(assemble_saddle_point(h, cq))
    sol = solver(rhs)
    return sol[:n].copy(), sol[n:].copy()
