"""
Karush-Kuhn-Tucker diagnostics for solved quadratic problems.

Residuals are measured in the sign convention of the interior-point engine:
stationarity reads ``grad f(x) + A^T lambda - z_l + z_u = 0`` with
``z_l, z_u >= 0``. A positive ``lambda_i`` belongs to an active upper
constraint bound and a negative one to an active lower bound.
"""

from __future__ import annotations

from typing import Dict

import numpy as np

from .core import SolutionRecord
from .problem import QuadraticProblem
from .utils import symmetrize


def _violation(value: np.ndarray, lower: np.ndarray, upper: np.ndarray) -> float:
    if value.size == 0:
        return 0.0
    below = np.where(np.isfinite(lower), lower - value, 0.0)
    above = np.where(np.isfinite(upper), value - upper, 0.0)
    return float(max(np.max(below, initial=0.0), np.max(above, initial=0.0), 0.0))


def _gap(value: np.ndarray, bound: np.ndarray, mult: np.ndarray) -> np.ndarray:
    return np.where(np.isfinite(bound), np.abs((value - bound) * mult), 0.0)


def _largest(*parts: np.ndarray) -> float:
    return float(max((np.max(part, initial=0.0) for part in parts), default=0.0))


def kkt_residuals_at(
    problem: QuadraticProblem,
    x: np.ndarray,
    lagrange: np.ndarray,
    z_l: np.ndarray,
    z_u: np.ndarray,
) -> Dict[str, float]:
    """
    Compute infinity norms of the KKT residuals at an arbitrary primal-dual point.

    Returns:
        Dictionary with ``primal_bounds`` (variable bound violation),
        ``primal_constraints`` (constraint bound violation), ``dual``
        (stationarity), ``complementary`` (bound and constraint
        complementarity) and ``dual_feasibility`` (multipliers of the wrong
        sign, or attached to an infinite bound).
    """

    x = np.asarray(x, dtype=float).reshape(-1)
    lagrange = np.asarray(lagrange, dtype=float).reshape(-1)
    z_l = np.asarray(z_l, dtype=float).reshape(-1)
    z_u = np.asarray(z_u, dtype=float).reshape(-1)

    hessian = 2.0 * symmetrize(problem.q)
    grad = hessian @ x + problem.linear
    stationarity = grad + problem.a.T @ lagrange - z_l + z_u
    activity = problem.a @ x
    upper_mult = np.maximum(lagrange, 0.0)
    lower_mult = np.maximum(-lagrange, 0.0)

    complementary = _largest(
        _gap(x, problem.lb, z_l),
        _gap(x, problem.ub, z_u),
        _gap(activity, problem.con_ub, upper_mult),
        _gap(activity, problem.con_lb, lower_mult),
    )
    dual_feasibility = _largest(
        np.maximum(-z_l, 0.0),
        np.maximum(-z_u, 0.0),
        np.where(np.isfinite(problem.lb), 0.0, np.abs(z_l)),
        np.where(np.isfinite(problem.ub), 0.0, np.abs(z_u)),
        np.where(np.isfinite(problem.con_ub), 0.0, upper_mult),
        np.where(np.isfinite(problem.con_lb), 0.0, lower_mult),
    )

    return {
        "primal_bounds": _violation(x, problem.lb, problem.ub),
        "primal_constraints": _violation(activity, problem.con_lb, problem.con_ub),
        "dual": float(np.linalg.norm(stationarity, ord=np.inf)) if x.size else 0.0,
        "complementary": complementary,
        "dual_feasibility": dual_feasibility,
    }


def kkt_residuals(problem: QuadraticProblem, record: SolutionRecord) -> Dict[str, float]:
    """Compute the KKT residuals of a solution record, see :func:`kkt_residuals_at`."""
    return kkt_residuals_at(problem, record.x, record.lagrange, record.z_l, record.z_u)


def is_kkt_optimal(problem: QuadraticProblem, record: SolutionRecord, tol: float = 1e-6) -> bool:
    """
    Return True if all KKT residuals are below ``tol``.
    """

    residuals = kkt_residuals(problem, record)
    return all(value <= tol for value in residuals.values())


__all__ = ["kkt_residuals_at", "kkt_residuals", "is_kkt_optimal"]
