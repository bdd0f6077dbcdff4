"""
Quadratic program exposed through the nonlinear-engine callback protocol.

Derivative-based engines query a problem through a fixed set of callbacks:
sizes, bounds, a starting point, the objective and its gradient, the
constraint values and Jacobian, the Hessian of the Lagrangian, and a final
hand-back of the solution. :class:`QuadNLP` answers all of them from a
:class:`~optconduit.convex.problem.QuadraticProblem`. Method names follow the
``cyipopt`` problem-object convention so that the adapter can be handed to the
interior-point engine as-is; other engines call the same methods.

For the objective ``f(x) = x^T Q x + l^T x`` and constraints ``g(x) = A x``:

* ``grad f(x) = l + (Q + Q^T) x``
* the Jacobian of ``g`` is ``A`` everywhere,
* the Lagrangian Hessian is ``obj_factor * (Q + Q^T)``, because linear
  constraints have no curvature.

The Jacobian is reported fully dense (every constraint depends on every
variable) and the Hessian as its full lower triangle, regardless of zero
coefficients. Structure and value callbacks enumerate entries in the same
row-major order. Indices are zero-based.
"""

from __future__ import annotations

from typing import Optional, Tuple

import numpy as np

from ..diagnostics import assert_size, assert_vector_length, is_debug_enabled
from .core import NLPInfo, ReturnStatus, SolutionRecord
from .problem import QuadraticProblem


class QuadNLP:
    """
    Callback adapter serving one solve of a quadratic problem.

    The adapter keeps a read-only reference to the problem and owns the
    :class:`SolutionRecord` built in :meth:`finalize_solution`. Create a new
    adapter for every solve.
    """

    def __init__(self, problem: QuadraticProblem):
        self.problem = problem
        self._n = problem.num_vars
        self._m = problem.num_constraints
        # Row-major enumeration of the dense Jacobian and lower-triangle Hessian.
        self._jac_rows, self._jac_cols = np.divmod(np.arange(self._n * self._m), self._n)
        self._hess_rows, self._hess_cols = np.tril_indices(self._n)
        self._iter_count = 0
        self._solution: Optional[SolutionRecord] = None

    def _check_x(self, x: np.ndarray) -> None:
        if is_debug_enabled():
            assert_vector_length(np.asarray(x), self._n, "x")

    def get_nlp_info(self) -> NLPInfo:
        """Return problem sizes and the number of reported derivative entries."""
        n, m = self._n, self._m
        return NLPInfo(n=n, m=m, nnz_jacobian=n * m, nnz_hessian=n * (n + 1) // 2)

    def get_bounds_info(self) -> Tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
        """Return copies of ``(x_l, x_u, g_l, g_u)``."""
        p = self.problem
        return p.lb.copy(), p.ub.copy(), p.con_lb.copy(), p.con_ub.copy()

    def get_starting_point(
        self, init_x: bool = True, init_z: bool = False, init_lambda: bool = False
    ) -> Tuple[Optional[np.ndarray], ...]:
        """
        Return ``(x, z_l, z_u, lambda)`` for the requested parts.

        The primal start is the problem's initial guess when it has one and
        zero otherwise. Multipliers always start at zero. Parts that were not
        requested are returned as ``None``.
        """
        x = None
        if init_x:
            x0 = self.problem.x0
            x = np.zeros(self._n) if x0 is None else x0.copy()
        z_l = np.zeros(self._n) if init_z else None
        z_u = np.zeros(self._n) if init_z else None
        lam = np.zeros(self._m) if init_lambda else None
        return x, z_l, z_u, lam

    def objective(self, x: np.ndarray) -> float:
        self._check_x(x)
        x = np.asarray(x, dtype=float)
        return float(x @ self.problem.q @ x + self.problem.linear @ x)

    def gradient(self, x: np.ndarray) -> np.ndarray:
        self._check_x(x)
        x = np.asarray(x, dtype=float)
        q = self.problem.q
        return self.problem.linear + (q + q.T) @ x

    def constraints(self, x: np.ndarray) -> np.ndarray:
        self._check_x(x)
        return self.problem.a @ np.asarray(x, dtype=float)

    def jacobianstructure(self) -> Tuple[np.ndarray, np.ndarray]:
        """Row and column of every Jacobian entry, constraint by constraint."""
        return self._jac_rows.copy(), self._jac_cols.copy()

    def jacobian(self, x: np.ndarray) -> np.ndarray:
        """Jacobian values in :meth:`jacobianstructure` order."""
        self._check_x(x)
        return self.problem.a[self._jac_rows, self._jac_cols]

    def hessianstructure(self) -> Tuple[np.ndarray, np.ndarray]:
        """Row and column of every lower-triangle Hessian entry (row >= col)."""
        return self._hess_rows.copy(), self._hess_cols.copy()

    def hessian(self, x: np.ndarray, lagrange: np.ndarray, obj_factor: float) -> np.ndarray:
        """Lagrangian Hessian values in :meth:`hessianstructure` order."""
        self._check_x(x)
        if is_debug_enabled():
            assert_vector_length(np.asarray(lagrange), self._m, "lagrange")
        q = self.problem.q
        rows, cols = self._hess_rows, self._hess_cols
        return obj_factor * (q[rows, cols] + q[cols, rows])

    def intermediate(
        self,
        alg_mod: int,
        iter_count: int,
        obj_value: float,
        inf_pr: float,
        inf_du: float,
        mu: float,
        d_norm: float,
        regularization_size: float,
        alpha_du: float,
        alpha_pr: float,
        ls_trials: int,
    ) -> bool:
        """Per-iteration hook; records the iteration count and never stops the engine."""
        self._iter_count = int(iter_count)
        return True

    @property
    def iter_count(self) -> int:
        return self._iter_count

    def finalize_solution(
        self,
        status: int,
        x: np.ndarray,
        z_l: np.ndarray,
        z_u: np.ndarray,
        g: np.ndarray,
        lagrange: np.ndarray,
        obj_value: float,
        iter_count: Optional[int] = None,
        message: Optional[str] = None,
    ) -> SolutionRecord:
        """
        Copy the engine's final buffers into an owned :class:`SolutionRecord`.

        The engine may reuse or free its buffers as soon as this returns, so
        nothing in the record aliases them.
        """
        if is_debug_enabled():
            assert_vector_length(np.asarray(x), self._n, "x")
            assert_vector_length(np.asarray(z_l), self._n, "z_l")
            assert_vector_length(np.asarray(z_u), self._n, "z_u")
            assert_vector_length(np.asarray(lagrange), self._m, "lagrange")
            assert_size(np.asarray(g).shape[0], self._m, "m")
        if iter_count is not None:
            self._iter_count = int(iter_count)
        self._solution = SolutionRecord(
            x=np.array(x, dtype=float, copy=True).reshape(self._n),
            z_l=np.array(z_l, dtype=float, copy=True).reshape(self._n),
            z_u=np.array(z_u, dtype=float, copy=True).reshape(self._n),
            lagrange=np.array(lagrange, dtype=float, copy=True).reshape(self._m),
            objective=float(obj_value),
            iterations=self._iter_count,
            status=ReturnStatus(int(status)),
            constraint_values=np.array(g, dtype=float, copy=True).reshape(self._m),
            message=message,
        )
        return self._solution

    @property
    def solution(self) -> Optional[SolutionRecord]:
        """Record built by :meth:`finalize_solution`, or ``None`` before finalization."""
        return self._solution


__all__ = ["QuadNLP"]
