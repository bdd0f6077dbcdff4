"""
Core status, result and error types for the optimization bridges.

Two status vocabularies coexist. :class:`ReturnStatus` mirrors the integer
application return codes of the interior-point engine and is what the host
receives after a nonlinear solve; every nonlinear engine is mapped onto it.
:class:`Status` is the coarse outcome used by the linear/mixed-integer session.

References:
    - Wächter & Biegler, *On the implementation of an interior-point filter
      line-search algorithm for large-scale nonlinear programming* (2006)
    - Nocedal & Wright, *Numerical Optimization* (2006)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Optional

import numpy as np


class Status(Enum):
    """Solution status for linear and mixed-integer solves."""

    OPTIMAL = "optimal"
    INFEASIBLE = "infeasible"
    UNBOUNDED = "unbounded"
    MAX_ITER = "max_iter"
    NUMERICAL_ERROR = "numerical_error"


class ReturnStatus(IntEnum):
    """Termination codes reported for nonlinear solves."""

    SOLVE_SUCCEEDED = 0
    SOLVED_TO_ACCEPTABLE_LEVEL = 1
    INFEASIBLE_PROBLEM_DETECTED = 2
    SEARCH_DIRECTION_BECOMES_TOO_SMALL = 3
    DIVERGING_ITERATES = 4
    USER_REQUESTED_STOP = 5
    FEASIBLE_POINT_FOUND = 6
    MAXIMUM_ITERATIONS_EXCEEDED = -1
    RESTORATION_FAILED = -2
    ERROR_IN_STEP_COMPUTATION = -3
    MAXIMUM_CPUTIME_EXCEEDED = -4
    NOT_ENOUGH_DEGREES_OF_FREEDOM = -10
    INVALID_PROBLEM_DEFINITION = -11
    INVALID_OPTION = -12
    INVALID_NUMBER_DETECTED = -13
    UNRECOVERABLE_EXCEPTION = -100
    NONIPOPT_EXCEPTION_THROWN = -101
    INSUFFICIENT_MEMORY = -102
    INTERNAL_ERROR = -199


_STATUS_MESSAGES = {
    ReturnStatus.SOLVE_SUCCEEDED: "Optimal solution found",
    ReturnStatus.SOLVED_TO_ACCEPTABLE_LEVEL: "Solved to acceptable level",
    ReturnStatus.INFEASIBLE_PROBLEM_DETECTED: "Converged to a point of local infeasibility",
    ReturnStatus.SEARCH_DIRECTION_BECOMES_TOO_SMALL: "Search direction becomes too small",
    ReturnStatus.DIVERGING_ITERATES: "Iterates diverging; problem might be unbounded",
    ReturnStatus.USER_REQUESTED_STOP: "Stopping optimization at current point as requested",
    ReturnStatus.FEASIBLE_POINT_FOUND: "Feasible point found",
    ReturnStatus.MAXIMUM_ITERATIONS_EXCEEDED: "Maximum number of iterations exceeded",
    ReturnStatus.RESTORATION_FAILED: "Restoration phase failed",
    ReturnStatus.ERROR_IN_STEP_COMPUTATION: "Error in step computation",
    ReturnStatus.MAXIMUM_CPUTIME_EXCEEDED: "Maximum CPU time exceeded",
    ReturnStatus.NOT_ENOUGH_DEGREES_OF_FREEDOM: "Problem has too few degrees of freedom",
    ReturnStatus.INVALID_PROBLEM_DEFINITION: "Problem definition is invalid",
    ReturnStatus.INVALID_OPTION: "Invalid option",
    ReturnStatus.INVALID_NUMBER_DETECTED: "Invalid number in NLP function or derivative detected",
    ReturnStatus.UNRECOVERABLE_EXCEPTION: "Unrecoverable exception",
    ReturnStatus.NONIPOPT_EXCEPTION_THROWN: "Unknown exception caught in the engine",
    ReturnStatus.INSUFFICIENT_MEMORY: "Not enough memory",
    ReturnStatus.INTERNAL_ERROR: "Internal error in the engine",
}

_SUCCESS_CODES = frozenset(
    {ReturnStatus.SOLVE_SUCCEEDED, ReturnStatus.SOLVED_TO_ACCEPTABLE_LEVEL}
)


def describe_status(status: int) -> str:
    """
    Return a human-readable message for a termination code.

    Unknown integers are reported rather than rejected so that codes from a
    newer engine release still produce output.
    """

    try:
        return _STATUS_MESSAGES[ReturnStatus(int(status))]
    except ValueError:
        return f"Unknown return status {status}"


class EngineError(RuntimeError):
    """Base class for failures reported by an external optimization engine."""

    def __init__(self, message: str, status: ReturnStatus = ReturnStatus.INTERNAL_ERROR):
        super().__init__(message)
        self.status = status


class EngineInitializationError(EngineError):
    """The engine could not be configured; no solve was attempted."""


class EngineOptimizationError(EngineError):
    """The engine ran but did not hand back a final iterate."""


@dataclass(frozen=True)
class NLPInfo:
    """Sizes announced to a nonlinear engine before it allocates its buffers."""

    n: int
    m: int
    nnz_jacobian: int
    nnz_hessian: int


@dataclass
class SolutionRecord:
    """
    Final iterate and multipliers copied out of a nonlinear engine.

    Attributes:
        x: Primal solution, length ``n``.
        z_l: Multipliers of the variable lower bounds, length ``n``.
        z_u: Multipliers of the variable upper bounds, length ``n``.
        lagrange: Constraint multipliers, length ``m``.
        objective: Objective value at ``x``.
        iterations: Number of engine iterations.
        status: Termination code.
        constraint_values: Constraint activities ``A x`` at ``x``.
        message: Human-readable termination message.
    """

    x: np.ndarray
    z_l: np.ndarray
    z_u: np.ndarray
    lagrange: np.ndarray
    objective: float
    iterations: int
    status: ReturnStatus
    constraint_values: np.ndarray = field(default_factory=lambda: np.zeros(0))
    message: Optional[str] = None

    def __post_init__(self) -> None:
        if self.message is None:
            self.message = describe_status(self.status)

    @property
    def success(self) -> bool:
        return self.status in _SUCCESS_CODES


__all__ = [
    "Status",
    "ReturnStatus",
    "describe_status",
    "EngineError",
    "EngineInitializationError",
    "EngineOptimizationError",
    "NLPInfo",
    "SolutionRecord",
]
