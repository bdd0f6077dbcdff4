"""
Solve orchestration for quadratic problems on nonlinear engines.

:func:`solve` wires a :class:`QuadraticProblem` to an engine: it builds a fresh
:class:`QuadNLP` adapter, configures the engine, runs initialize-then-optimize
and reads the :class:`SolutionRecord` back from the adapter. Failures are
reported as typed exceptions (shape errors before any engine interaction,
initialization errors before any solve, aborted solves afterwards). A solve
that stops short of the tolerance still returns its best iterate, with the
termination code in ``record.status``.

Example:
    >>> import numpy as np
    >>> from optconduit.convex import QuadraticProblem, solve
    >>> problem = QuadraticProblem(
    ...     q=2.0 * np.eye(2), linear=np.zeros(2), a=np.array([[1.0, 1.0]]),
    ...     lb=np.zeros(2), ub=np.ones(2), con_lb=np.array([1.0]), con_ub=np.array([1.0]),
    ... )
    >>> record = solve(problem)
    >>> record.success, np.round(record.x, 4).tolist()
    (True, [0.5, 0.5])
"""

from __future__ import annotations

from typing import Any, Mapping, Optional, Tuple, Union

import numpy as np

from ..logging import get_logger
from .core import EngineOptimizationError, ReturnStatus, SolutionRecord
from .engines import NLPEngine, get_engine
from .nlp import QuadNLP
from .options import SolveOptions
from .problem import QuadraticProblem

logger = get_logger(__name__)


def solve(
    problem: QuadraticProblem,
    options: Optional[SolveOptions] = None,
    engine: Optional[NLPEngine] = None,
) -> SolutionRecord:
    """
    Solve ``problem`` on a nonlinear engine and return the final record.

    Args:
        problem: Quadratic problem to solve. It is only read.
        options: Engine options; defaults to :class:`SolveOptions()`.
        engine: Engine instance to use. When omitted, ``options.engine``
            names one.

    Returns:
        The :class:`SolutionRecord` copied out of the engine.

    Raises:
        EngineInitializationError: Options were rejected or the engine is
            unavailable. No solve was attempted.
        EngineOptimizationError: The engine aborted without a final iterate.
    """

    options = options or SolveOptions()
    options.validate()
    engine = engine or get_engine(options.engine)
    nlp = QuadNLP(problem)
    info = nlp.get_nlp_info()
    logger.debug(
        "Solving QP with n=%d, m=%d on %s engine (tol=%g, max_iter=%d)",
        info.n,
        info.m,
        engine.name,
        options.tol,
        options.max_iterations,
    )

    engine.initialize(options)
    status = engine.optimize(nlp)

    record = nlp.solution
    if record is None:
        raise EngineOptimizationError(
            f"{engine.name} engine finished without finalizing a solution", status
        )
    if record.success:
        logger.info(
            "QP solved in %d iterations, objective %.6g", record.iterations, record.objective
        )
    else:
        logger.warning("QP solve ended with status %s: %s", record.status.name, record.message)
    return record


def solve_qp(
    num_vars: int,
    num_constraints: int,
    q: np.ndarray,
    p: np.ndarray,
    con_matrix: Optional[np.ndarray],
    con_lb: Optional[np.ndarray],
    con_ub: Optional[np.ndarray],
    lb: np.ndarray,
    ub: np.ndarray,
    x0: Optional[np.ndarray] = None,
    options: Union[SolveOptions, Mapping[str, Any], None] = None,
) -> Tuple[np.ndarray, float, int, int, np.ndarray, np.ndarray, np.ndarray]:
    """
    Host-facing entry point taking arguments in host order.

    ``options`` may be a :class:`SolveOptions` or the host mapping
    ``{"maxIterations": ..., "maxCpuSeconds": ...}``.

    Returns:
        ``(x, objective, status, iterations, z_l, z_u, lagrange)`` where
        ``status`` is the integer termination code.
    """

    problem = QuadraticProblem.from_host(
        num_vars, num_constraints, q, p, con_matrix, con_lb, con_ub, lb, ub, x0=x0
    )
    if options is not None and not isinstance(options, SolveOptions):
        options = SolveOptions.from_host(options)
    record = solve(problem, options)
    return (
        record.x,
        record.objective,
        int(ReturnStatus(record.status)),
        record.iterations,
        record.z_l,
        record.z_u,
        record.lagrange,
    )


__all__ = ["solve", "solve_qp"]
