"""
Quadratic programs on derivative-based nonlinear engines.

This subpackage holds the quadratic problem descriptor, the adapter that
exposes it through the nonlinear-engine callback protocol, the engines that
drive the adapter, the solve orchestrator and KKT diagnostics.

Interior-point iterations are left to the engines. The IPOPT engine needs the
optional ``cyipopt`` package; the SciPy ``trust-constr`` engine is always
available.
"""

from . import core, engines, kkt, nlp, options, problem, solver, utils
from .core import (
    EngineError,
    EngineInitializationError,
    EngineOptimizationError,
    NLPInfo,
    ReturnStatus,
    SolutionRecord,
    Status,
    describe_status,
)
from .engines import CYIPOPT_AVAILABLE, IpoptEngine, NLPEngine, ScipyEngine, get_engine
from .kkt import is_kkt_optimal, kkt_residuals, kkt_residuals_at
from .nlp import QuadNLP
from .options import SolveOptions
from .problem import QuadraticProblem
from .solver import solve, solve_qp
from .utils import ProblemShapeError

__all__ = [
    "core",
    "engines",
    "kkt",
    "nlp",
    "options",
    "problem",
    "solver",
    "utils",
    # Core types
    "Status",
    "ReturnStatus",
    "describe_status",
    "NLPInfo",
    "SolutionRecord",
    "EngineError",
    "EngineInitializationError",
    "EngineOptimizationError",
    "ProblemShapeError",
    # Problem and adapter
    "QuadraticProblem",
    "QuadNLP",
    # Engines and orchestration
    "SolveOptions",
    "NLPEngine",
    "IpoptEngine",
    "ScipyEngine",
    "CYIPOPT_AVAILABLE",
    "get_engine",
    "solve",
    "solve_qp",
    # Diagnostics
    "kkt_residuals",
    "kkt_residuals_at",
    "is_kkt_optimal",
]
