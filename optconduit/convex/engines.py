"""
Nonlinear engines that drive a :class:`~optconduit.convex.nlp.QuadNLP`.

Every engine follows the same two-step sequence: :meth:`NLPEngine.initialize`
checks and stores the options, then :meth:`NLPEngine.optimize` runs the
engine's own iteration loop against the adapter callbacks and hands the final
iterate back through :meth:`QuadNLP.finalize_solution`. Engines do no
numerics of their own beyond translating between their native conventions and
the adapter's.

``IpoptEngine`` runs the interior-point engine through ``cyipopt``, which is an
optional dependency. ``ScipyEngine`` runs SciPy's ``trust-constr`` method and
is always available.
"""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from typing import Dict, Optional, Tuple, Type

import numpy as np
from scipy.optimize import Bounds, LinearConstraint, minimize

from ..diagnostics import has_finite_entries
from ..logging import get_logger
from .core import (
    EngineInitializationError,
    EngineOptimizationError,
    ReturnStatus,
)
from .kkt import kkt_residuals_at
from .nlp import QuadNLP
from .options import SolveOptions

try:
    import cyipopt

    CYIPOPT_AVAILABLE = True
except Exception:  # pragma: no cover - cyipopt is optional
    CYIPOPT_AVAILABLE = False
    cyipopt = None

logger = get_logger(__name__)

# Codes after which the engine has no usable iterate to report.
_ABORT_CODES = frozenset(
    {
        ReturnStatus.UNRECOVERABLE_EXCEPTION,
        ReturnStatus.NONIPOPT_EXCEPTION_THROWN,
        ReturnStatus.INSUFFICIENT_MEMORY,
        ReturnStatus.INTERNAL_ERROR,
    }
)
_SETUP_CODES = frozenset(
    {ReturnStatus.INVALID_OPTION, ReturnStatus.INVALID_PROBLEM_DEFINITION}
)


class NLPEngine(ABC):
    """Common interface of the nonlinear engines."""

    name: str = ""

    def __init__(self) -> None:
        self.options: Optional[SolveOptions] = None

    def initialize(self, options: SolveOptions) -> None:
        """Validate and store ``options``; raise if the engine cannot run."""
        options.validate()
        self.options = options

    def _require_options(self) -> SolveOptions:
        if self.options is None:
            raise EngineInitializationError(
                f"{self.name} engine used before initialize()", ReturnStatus.INVALID_OPTION
            )
        return self.options

    @abstractmethod
    def optimize(self, nlp: QuadNLP) -> ReturnStatus:
        """Run the engine against ``nlp`` and finalize its solution."""


class IpoptEngine(NLPEngine):
    """Interior-point engine accessed through ``cyipopt``."""

    name = "ipopt"

    def initialize(self, options: SolveOptions) -> None:
        if not CYIPOPT_AVAILABLE:
            raise EngineInitializationError(
                "cyipopt is not installed; install the 'ipopt' extra",
                ReturnStatus.INVALID_OPTION,
            )
        super().initialize(options)

    def optimize(self, nlp: QuadNLP) -> ReturnStatus:
        options = self._require_options()
        info = nlp.get_nlp_info()
        x_l, x_u, g_l, g_u = nlp.get_bounds_info()
        x0, _, _, _ = nlp.get_starting_point(init_x=True)

        problem = cyipopt.Problem(
            n=info.n,
            m=info.m,
            problem_obj=nlp,
            lb=x_l,
            ub=x_u,
            cl=g_l if info.m else None,
            cu=g_u if info.m else None,
        )
        for key, value in options.engine_settings().items():
            try:
                problem.add_option(key, value)
            except (TypeError, ValueError) as exc:
                raise EngineInitializationError(
                    f"Engine rejected option {key}={value!r}", ReturnStatus.INVALID_OPTION
                ) from exc

        try:
            _, result = problem.solve(x0)
        except Exception as exc:
            raise EngineOptimizationError(
                f"Engine aborted: {exc}", ReturnStatus.NONIPOPT_EXCEPTION_THROWN
            ) from exc

        status = ReturnStatus(int(result["status"]))
        message = result["status_msg"]
        if isinstance(message, bytes):
            message = message.decode()
        if status in _SETUP_CODES:
            raise EngineInitializationError(message, status)
        if status in _ABORT_CODES:
            raise EngineOptimizationError(message, status)

        nlp.finalize_solution(
            status=status,
            x=result["x"],
            z_l=result["mult_x_L"],
            z_u=result["mult_x_U"],
            g=result["g"],
            lagrange=result["mult_g"],
            obj_value=result["obj_val"],
            message=message,
        )
        return status


# Distances (relative to 1 + |bound|) within which a bound is taken as active
# when polishing a trust-constr iterate.
_ACTIVE_RADII = (1e-6, 1e-4, 1e-2)
# Interior-point engine default for acceptable_tol.
_ACCEPTABLE_TOL = 1e-6


def _near(value: np.ndarray, bound: np.ndarray, radius: float) -> np.ndarray:
    with np.errstate(invalid="ignore"):
        return np.isfinite(bound) & (np.abs(value - bound) <= radius * (1.0 + np.abs(bound)))


def _kkt_errors(residuals: Dict[str, float], *multipliers: np.ndarray) -> Tuple[float, float]:
    """Split residuals into the primal violation and a multiplier-scaled dual error."""
    primal = max(residuals["primal_bounds"], residuals["primal_constraints"])
    scale = max([1.0] + [float(np.max(np.abs(mult), initial=0.0)) for mult in multipliers])
    dual = max(
        residuals["dual"], residuals["complementary"], residuals["dual_feasibility"]
    ) / scale
    return primal, dual


class ScipyEngine(NLPEngine):
    """
    SciPy ``trust-constr`` engine.

    The constant Jacobian is evaluated once into a ``LinearConstraint`` and the
    constant Lagrangian Hessian once into a dense matrix, following the
    structural hints in :meth:`SolveOptions.engine_settings`. Multipliers are
    reported in the interior-point convention
    ``grad f + A^T lambda - z_l + z_u = 0``.

    ``trust-constr`` stops inside its barrier, slightly off any active bound.
    A converged iterate is therefore polished: the bounds it sits near are
    taken as the active set and the equality-constrained QP on that set is
    solved directly, which lands on the bounds and yields the multipliers.
    The returned status is certified by the KKT residuals of the final point,
    not by the ``trust-constr`` exit flag alone.
    """

    name = "scipy"

    def optimize(self, nlp: QuadNLP) -> ReturnStatus:
        options = self._require_options()
        info = nlp.get_nlp_info()
        n, m = info.n, info.m
        x_l, x_u, g_l, g_u = nlp.get_bounds_info()
        x0, _, _, _ = nlp.get_starting_point(init_x=True)
        x0 = np.clip(x0, x_l, x_u)

        jac = np.zeros((m, n))
        rows, cols = nlp.jacobianstructure()
        jac[rows, cols] = nlp.jacobian(x0)

        hess = np.zeros((n, n))
        rows, cols = nlp.hessianstructure()
        values = nlp.hessian(x0, np.zeros(m), 1.0)
        hess[rows, cols] = values
        hess[cols, rows] = values

        constraints = [LinearConstraint(jac, g_l, g_u)] if m else []
        has_bounds = bool(np.any(np.isfinite(x_l)) or np.any(np.isfinite(x_u)))
        bounds = Bounds(x_l, x_u) if has_bounds else None

        start = time.process_time()
        out_of_time = False

        def _callback(intermediate_result):
            nonlocal out_of_time
            if time.process_time() - start > options.max_cpu_seconds:
                out_of_time = True
                raise StopIteration

        res = minimize(
            nlp.objective,
            x0,
            jac=nlp.gradient,
            hess=lambda _x: hess,
            method="trust-constr",
            bounds=bounds,
            constraints=constraints,
            callback=_callback,
            options={
                "gtol": options.tol,
                "barrier_tol": options.tol,
                "maxiter": max(int(options.max_iterations), 1),
                "verbose": min(max(int(options.print_level), 0), 3),
            },
        )

        x = np.asarray(res.x, dtype=float)
        if not has_finite_entries(x):
            raise EngineOptimizationError(
                "Engine returned a non-finite iterate", ReturnStatus.INVALID_NUMBER_DETECTED
            )

        lagrange = np.zeros(m)
        if m:
            lagrange = np.asarray(res.v[0], dtype=float).reshape(-1)
            if lagrange.shape[0] != m:
                raise EngineOptimizationError(
                    f"Engine returned {lagrange.shape[0]} constraint multipliers, expected {m}",
                    ReturnStatus.INTERNAL_ERROR,
                )
        residual = nlp.gradient(x) + jac.T @ lagrange
        z_l = np.where(np.isfinite(x_l), np.maximum(residual, 0.0), 0.0)
        z_u = np.where(np.isfinite(x_u), np.maximum(-residual, 0.0), 0.0)
        residuals = kkt_residuals_at(nlp.problem, x, lagrange, z_l, z_u)

        if res.status in (1, 2):
            polished = self._polish(nlp, hess, jac, x, options)
            if polished is not None:
                x, lagrange, z_l, z_u, residuals = polished

        primal, dual = _kkt_errors(residuals, lagrange, z_l, z_u)
        status = self._map_status(res, out_of_time, primal, dual, options)
        logger.debug(
            "trust-constr status %s mapped to %s (primal %.3g, dual %.3g)",
            res.status,
            status.name,
            primal,
            dual,
        )
        nlp.finalize_solution(
            status=status,
            x=x,
            z_l=z_l,
            z_u=z_u,
            g=nlp.constraints(x),
            lagrange=lagrange,
            obj_value=nlp.objective(x),
            iter_count=int(res.nit),
        )
        return status

    @staticmethod
    def _polish(
        nlp: QuadNLP, hess: np.ndarray, jac: np.ndarray, x: np.ndarray, options: SolveOptions
    ):
        """
        Solve the QP with the bounds near ``x`` held as equalities.

        Returns ``(x, lagrange, z_l, z_u, residuals)`` for the first active set
        whose solution passes the KKT test at ``options.tol``, or ``None``.
        """
        n, m = jac.shape[1], jac.shape[0]
        x_l, x_u, g_l, g_u = nlp.get_bounds_info()
        linear = nlp.gradient(np.zeros(n))
        activity = jac @ x
        equal_rows = np.isfinite(g_l) & (g_l == g_u)

        for radius in _ACTIVE_RADII:
            at_lower = _near(x, x_l, radius)
            at_upper = _near(x, x_u, radius) & ~at_lower
            var_index = np.flatnonzero(at_lower | at_upper)
            var_target = np.where(at_lower, x_l, x_u)[var_index]

            row_lower = equal_rows | _near(activity, g_l, radius)
            row_upper = _near(activity, g_u, radius) & ~row_lower
            row_index = np.flatnonzero(row_lower | row_upper)
            row_target = np.where(row_lower, g_l, g_u)[row_index]

            active = np.vstack([np.eye(n)[var_index], jac[row_index]])
            k = active.shape[0]
            kkt = np.block([[hess, active.T], [active, np.zeros((k, k))]])
            rhs = np.concatenate([-linear, var_target, row_target])
            solution = np.linalg.lstsq(kkt, rhs, rcond=None)[0]

            x_new = solution[:n]
            mult = solution[n:]
            var_mult, row_mult = mult[: var_index.shape[0]], mult[var_index.shape[0]:]

            lagrange = np.zeros(m)
            lagrange[row_index] = row_mult
            z_l = np.zeros(n)
            z_u = np.zeros(n)
            fixed = x_l[var_index] == x_u[var_index]
            lower = at_lower[var_index] & ~fixed
            upper = at_upper[var_index]
            z_l[var_index[lower]] = -var_mult[lower]
            z_u[var_index[upper]] = var_mult[upper]
            z_l[var_index[fixed]] = np.maximum(-var_mult[fixed], 0.0)
            z_u[var_index[fixed]] = np.maximum(var_mult[fixed], 0.0)

            residuals = kkt_residuals_at(nlp.problem, x_new, lagrange, z_l, z_u)
            primal, dual = _kkt_errors(residuals, lagrange, z_l, z_u)
            if primal <= options.tol and dual <= options.tol:
                logger.debug(
                    "Polished onto %d active bounds and %d active rows (radius %g)",
                    var_index.shape[0],
                    row_index.shape[0],
                    radius,
                )
                return x_new, lagrange, z_l, z_u, residuals
        return None

    @staticmethod
    def _map_status(
        res, out_of_time: bool, primal: float, dual: float, options: SolveOptions
    ) -> ReturnStatus:
        if res.status == 3:
            return (
                ReturnStatus.MAXIMUM_CPUTIME_EXCEEDED
                if out_of_time
                else ReturnStatus.USER_REQUESTED_STOP
            )
        if res.status == 0:
            return ReturnStatus.MAXIMUM_ITERATIONS_EXCEEDED
        if primal > options.constr_viol_tol:
            return ReturnStatus.INFEASIBLE_PROBLEM_DETECTED
        if primal <= options.tol and dual <= options.tol:
            return ReturnStatus.SOLVE_SUCCEEDED
        acceptable = max(options.tol, _ACCEPTABLE_TOL)
        if primal <= options.constr_viol_tol and dual <= acceptable:
            return ReturnStatus.SOLVED_TO_ACCEPTABLE_LEVEL
        return ReturnStatus.SEARCH_DIRECTION_BECOMES_TOO_SMALL


_ENGINES: Dict[str, Type[NLPEngine]] = {
    IpoptEngine.name: IpoptEngine,
    ScipyEngine.name: ScipyEngine,
}


def get_engine(name: str) -> NLPEngine:
    """Return a fresh engine instance registered under ``name``."""
    try:
        return _ENGINES[name.lower()]()
    except KeyError:
        raise EngineInitializationError(
            f"Unknown engine {name!r}; choose from {sorted(_ENGINES)}",
            ReturnStatus.INVALID_OPTION,
        ) from None


__all__ = [
    "CYIPOPT_AVAILABLE",
    "NLPEngine",
    "IpoptEngine",
    "ScipyEngine",
    "get_engine",
]
