"""Optimization Conduit - quadratic and mixed-integer programs on external engines."""

__version__ = "0.1.0"

# Quadratic programs and nonlinear engines
from .convex import (
    CYIPOPT_AVAILABLE,
    EngineError,
    EngineInitializationError,
    EngineOptimizationError,
    IpoptEngine,
    NLPEngine,
    NLPInfo,
    ProblemShapeError,
    QuadNLP,
    QuadraticProblem,
    ReturnStatus,
    ScipyEngine,
    SolutionRecord,
    SolveOptions,
    Status,
    describe_status,
    get_engine,
    is_kkt_optimal,
    kkt_residuals,
    solve,
    solve_qp,
)

# Diagnostics
from .diagnostics import (
    assert_size,
    assert_vector_length,
    debug_context,
    has_finite_entries,
    is_debug_enabled,
    set_debug_enabled,
)

# Logging
from .logging import configure_logging, get_logger, set_log_level

# Mixed-integer sessions
from .milp import MILPResult, MILPSession, SessionError, deduce_row_senses

# Sparse storage
from .sparse import (
    ColumnMajorMatrix,
    RowMajorMatrix,
    SparseFormatError,
    column_major_to_row_major,
    dense_to_column_major,
    from_host,
    row_major_to_column_major,
    to_dense,
    to_host,
    to_scipy,
    triples,
)

__all__ = [
    "__version__",
    # Sparse storage
    "ColumnMajorMatrix",
    "RowMajorMatrix",
    "SparseFormatError",
    "column_major_to_row_major",
    "row_major_to_column_major",
    "dense_to_column_major",
    "to_dense",
    "to_scipy",
    "triples",
    "to_host",
    "from_host",
    # Quadratic programs
    "QuadraticProblem",
    "QuadNLP",
    "NLPInfo",
    "SolutionRecord",
    "ReturnStatus",
    "Status",
    "describe_status",
    "SolveOptions",
    "NLPEngine",
    "IpoptEngine",
    "ScipyEngine",
    "CYIPOPT_AVAILABLE",
    "get_engine",
    "solve",
    "solve_qp",
    "kkt_residuals",
    "is_kkt_optimal",
    # Errors
    "EngineError",
    "EngineInitializationError",
    "EngineOptimizationError",
    "ProblemShapeError",
    # Mixed-integer sessions
    "MILPSession",
    "MILPResult",
    "SessionError",
    "deduce_row_senses",
    # Diagnostics
    "assert_size",
    "assert_vector_length",
    "has_finite_entries",
    "is_debug_enabled",
    "set_debug_enabled",
    "debug_context",
    # Logging
    "get_logger",
    "set_log_level",
    "configure_logging",
]
