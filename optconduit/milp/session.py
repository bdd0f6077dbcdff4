"""
Mixed-integer linear engine session.

A :class:`MILPSession` owns one loaded problem

```
    minimize or maximize  c^T x
    subject to            con_lb <= A x <= con_ub
                          lb <= x <= ub,  x_j integer for flagged j
```

and keeps the constraint matrix in the engine's native column-major storage.
Problems arrive either as a dense matrix (every coefficient is declared) or as
a row-major sparse matrix, and :meth:`MILPSession.get_matrix` converts the
native storage back to the row-major host layout. Branch-and-bound and presolve
happen inside HiGHS, reached through :func:`scipy.optimize.milp`.

A loaded problem can be edited in place: rows and columns are added to or
deleted from the native storage directly, and row senses are re-deduced
whenever constraint bounds change. Any edit discards the last solution.

Sessions are ordinary objects; any number of them can coexist, each with its
own problem and solution. Variable indices are zero-based.

Example:
    >>> import numpy as np
    >>> from optconduit.milp import MILPSession
    >>> with MILPSession() as session:
    ...     session.load_problem_dense(
    ...         2, 1, lb=[0, 0], ub=[4, 4], objective=[1, 1], is_integer=[True, True],
    ...         sense=-1, con_matrix=[[2, 3]], con_lb=[-np.inf], con_ub=[12])
    ...     result = session.solve()
    >>> result.status, round(result.fun, 6)
    (<Status.OPTIMAL: 'optimal'>, 5.0)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple, Union

import numpy as np
import scipy.sparse as sp
from scipy.optimize import Bounds, LinearConstraint, milp

from ..convex.core import Status
from ..convex.utils import coerce_matrix, coerce_vector
from ..logging import get_logger
from ..sparse import (
    ColumnMajorMatrix,
    RowMajorMatrix,
    column_major_to_row_major,
    dense_to_column_major,
    row_major_to_column_major,
    to_host,
    to_scipy,
)
from .constraints import RowSenses, deduce_row_senses

logger = get_logger(__name__)

MINIMIZE = 1
MAXIMIZE = -1

# scipy.optimize.milp status codes.
_MILP_STATUS = {
    0: Status.OPTIMAL,
    1: Status.MAX_ITER,
    2: Status.INFEASIBLE,
    3: Status.UNBOUNDED,
    4: Status.NUMERICAL_ERROR,
}


class SessionError(RuntimeError):
    """Raised when a session is queried in a state that cannot answer."""


@dataclass
class MILPResult:
    """
    Outcome of a mixed-integer solve.

    Attributes:
        x: Best solution found, or ``None`` when there is none.
        fun: Objective value of ``x`` in the problem's own sense.
        status: Coarse solve status.
        message: Engine message.
        mip_gap: Relative gap between the best bound and ``fun``, if reported.
        node_count: Branch-and-bound nodes explored, if reported.
    """

    x: Optional[np.ndarray]
    fun: Optional[float]
    status: Status
    message: str
    mip_gap: Optional[float] = None
    node_count: Optional[int] = None


@dataclass
class _LoadedProblem:
    lb: np.ndarray
    ub: np.ndarray
    objective: np.ndarray
    is_integer: np.ndarray
    sense: int
    matrix: ColumnMajorMatrix
    con_lb: np.ndarray
    con_ub: np.ndarray
    rows: RowSenses
    # Cutoff on sense * objective, i.e. in minimization terms.
    primal_bound: float = np.inf
    start: Optional[np.ndarray] = None


def _row_bounds(sense: str, rhs: float, rhs2: Optional[float]) -> Tuple[float, float]:
    kind = str(sense).upper()
    if kind not in ("L", "E", "G", "R"):
        raise ValueError(f'Row sense must be "L", "E", "G" or "R", got {sense!r}')
    if (kind == "R") != (rhs2 is not None):
        raise ValueError("A second right-hand side is given exactly for ranged rows")
    rhs = float(rhs)
    if kind == "L":
        return -np.inf, rhs
    if kind == "G":
        return rhs, np.inf
    if kind == "E":
        return rhs, rhs
    return min(rhs, float(rhs2)), max(rhs, float(rhs2))


def _checked_indices(indices, size: int, what: str) -> np.ndarray:
    idx = np.unique(np.asarray(indices, dtype=np.int64).reshape(-1))
    if idx.size and (idx[0] < 0 or idx[-1] >= size):
        raise IndexError(f"{what} indices must lie between 0 and {size - 1}")
    return idx


def _assemble(rows: int, cols: int, columns: np.ndarray, row_index: np.ndarray, values):
    # ``columns`` must already be non-decreasing.
    column_start = np.zeros(cols + 1, dtype=np.int64)
    np.cumsum(np.bincount(columns, minlength=cols), out=column_start[1:])
    return ColumnMajorMatrix(rows, cols, column_start, row_index, values)


_FEASIBILITY_TOL = 1e-6


def _infeasibility(problem: _LoadedProblem, x: np.ndarray) -> float:
    worst = max(
        float(np.max(problem.lb - x, initial=0.0)),
        float(np.max(x - problem.ub, initial=0.0)),
    )
    integer = x[problem.is_integer]
    worst = max(worst, float(np.max(np.abs(integer - np.round(integer)), initial=0.0)))
    if problem.matrix.rows:
        activity = to_scipy(problem.matrix) @ x
        worst = max(
            worst,
            float(np.max(problem.con_lb - activity, initial=0.0)),
            float(np.max(activity - problem.con_ub, initial=0.0)),
        )
    return worst


class MILPSession:
    """Explicitly owned handle on one mixed-integer linear problem."""

    def __init__(self) -> None:
        self._problem: Optional[_LoadedProblem] = None
        self._result: Optional[MILPResult] = None

    def __enter__(self) -> "MILPSession":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        """Drop the loaded problem and any solution."""
        self._problem = None
        self._result = None

    @property
    def is_loaded(self) -> bool:
        return self._problem is not None

    def _loaded(self) -> _LoadedProblem:
        if self._problem is None:
            raise SessionError("No problem is loaded in this session")
        return self._problem

    def _solved(self) -> MILPResult:
        if self._result is None:
            raise SessionError("The loaded problem has not been solved")
        return self._result

    # Loading -------------------------------------------------------------------

    def _load(
        self,
        num_vars: int,
        num_constraints: int,
        lb,
        ub,
        objective,
        is_integer,
        sense: int,
        matrix: ColumnMajorMatrix,
        con_lb,
        con_ub,
    ) -> None:
        n, m = int(num_vars), int(num_constraints)
        if n <= 0 or m < 0:
            raise ValueError(f"Invalid problem size: {n} variables, {m} constraints")
        if sense not in (MINIMIZE, MAXIMIZE):
            raise ValueError("sense must be 1 (minimize) or -1 (maximize)")
        if matrix.shape != (m, n):
            raise ValueError(f"Constraint matrix must be {m}x{n}, got {matrix.rows}x{matrix.cols}")

        integer = np.asarray(is_integer, dtype=bool).reshape(-1)
        if integer.shape[0] != n:
            raise ValueError(f"is_integer must have {n} entries, got {integer.shape[0]}")
        con_lb_vec = np.array(coerce_vector(con_lb if m else None, m, "con_lb"))
        con_ub_vec = np.array(coerce_vector(con_ub if m else None, m, "con_ub"))

        self._problem = _LoadedProblem(
            lb=np.array(coerce_vector(lb, n, "lb")),
            ub=np.array(coerce_vector(ub, n, "ub")),
            objective=np.array(coerce_vector(objective, n, "objective")),
            is_integer=integer.copy(),
            sense=int(sense),
            matrix=matrix,
            con_lb=con_lb_vec,
            con_ub=con_ub_vec,
            rows=deduce_row_senses(con_lb_vec, con_ub_vec),
        )
        self._result = None
        logger.info(
            "Loaded problem with %d variables, %d constraints, %d matrix elements",
            n,
            m,
            matrix.nnz,
        )

    def load_problem_dense(
        self,
        num_vars: int,
        num_constraints: int,
        lb,
        ub,
        objective,
        is_integer,
        sense: int,
        con_matrix,
        con_lb,
        con_ub,
    ) -> None:
        """
        Load a problem whose constraint matrix is a dense ``m x n`` array.

        Every coefficient, zero or not, is declared in the native storage.
        Suitable for small problems.
        """
        n, m = int(num_vars), int(num_constraints)
        dense = coerce_matrix(con_matrix if m else None, m, n, "con_matrix")
        self._load(
            n, m, lb, ub, objective, is_integer, sense,
            dense_to_column_major(dense, keep_zeros=True), con_lb, con_ub,
        )

    def load_problem(
        self,
        num_vars: int,
        num_constraints: int,
        lb,
        ub,
        objective,
        is_integer,
        sense: int,
        con_matrix: Union[RowMajorMatrix, ColumnMajorMatrix],
        con_lb,
        con_ub,
    ) -> None:
        """
        Load a problem whose constraint matrix is sparse.

        A :class:`RowMajorMatrix` (the host layout) is converted into the
        native column-major storage; a :class:`ColumnMajorMatrix` is stored
        as is.
        """
        if isinstance(con_matrix, RowMajorMatrix):
            matrix = row_major_to_column_major(con_matrix)
        elif isinstance(con_matrix, ColumnMajorMatrix):
            matrix = con_matrix
        else:
            raise TypeError("con_matrix must be a RowMajorMatrix or ColumnMajorMatrix")
        self._load(num_vars, num_constraints, lb, ub, objective, is_integer, sense, matrix,
                   con_lb, con_ub)

    # Problem queries -----------------------------------------------------------

    @property
    def num_vars(self) -> int:
        return self._loaded().matrix.cols

    @property
    def num_constraints(self) -> int:
        return self._loaded().matrix.rows

    @property
    def num_elements(self) -> int:
        return self._loaded().matrix.nnz

    @property
    def var_lower(self) -> np.ndarray:
        return self._loaded().lb.copy()

    @property
    def var_upper(self) -> np.ndarray:
        return self._loaded().ub.copy()

    @property
    def obj_coeff(self) -> np.ndarray:
        """Objective coefficients as loaded, independent of the sense."""
        return self._loaded().objective.copy()

    @property
    def obj_sense(self) -> int:
        return self._loaded().sense

    @property
    def is_integer(self) -> np.ndarray:
        return self._loaded().is_integer.copy()

    @property
    def constr_lower(self) -> np.ndarray:
        return self._loaded().con_lb.copy()

    @property
    def constr_upper(self) -> np.ndarray:
        return self._loaded().con_ub.copy()

    @property
    def rhs(self) -> np.ndarray:
        return self._loaded().rows.rhs.copy()

    @property
    def constr_range(self) -> np.ndarray:
        return self._loaded().rows.range.copy()

    @property
    def row_sense(self) -> np.ndarray:
        return self._loaded().rows.sense.copy()

    def get_native_matrix(self) -> ColumnMajorMatrix:
        """Constraint matrix in the engine's column-major storage."""
        return self._loaded().matrix

    def get_matrix(self) -> RowMajorMatrix:
        """Constraint matrix reconstructed in row-major layout (zero-based)."""
        return column_major_to_row_major(self._loaded().matrix)

    def get_matrix_host(self) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        """Constraint matrix as ``(count_per_row, column_position, values)``, one-based."""
        return to_host(self.get_matrix())

    # Modification --------------------------------------------------------------

    def _invalidate(self) -> None:
        self._result = None
        self._loaded().start = None

    def _var_index(self, index: int) -> int:
        n = self._loaded().matrix.cols
        if not 0 <= int(index) < n:
            raise IndexError(f"Variable index must be a number between 0 and {n - 1}")
        return int(index)

    def _row_index(self, index: int) -> int:
        m = self._loaded().matrix.rows
        if not 0 <= int(index) < m:
            raise IndexError(f"Constraint index must be a number between 0 and {m - 1}")
        return int(index)

    def _set_row_bounds(self, con_lb: np.ndarray, con_ub: np.ndarray) -> None:
        problem = self._loaded()
        rows = deduce_row_senses(con_lb, con_ub)
        problem.con_lb, problem.con_ub, problem.rows = con_lb, con_ub, rows
        self._invalidate()

    def set_obj_sense(self, sense: int) -> None:
        if sense not in (MINIMIZE, MAXIMIZE):
            raise ValueError("sense must be 1 (minimize) or -1 (maximize)")
        self._loaded().sense = int(sense)
        self._invalidate()

    def set_obj_coeff(self, index: int, value: float) -> None:
        self._loaded().objective[self._var_index(index)] = float(value)
        self._invalidate()

    def set_var_bounds(self, index: int, lower: float, upper: float) -> None:
        problem = self._loaded()
        j = self._var_index(index)
        problem.lb[j] = float(lower)
        problem.ub[j] = float(upper)
        self._invalidate()

    def set_integer(self, index: int) -> None:
        self._loaded().is_integer[self._var_index(index)] = True
        self._invalidate()

    def set_continuous(self, index: int) -> None:
        self._loaded().is_integer[self._var_index(index)] = False
        self._invalidate()

    def set_constr_lower(self, index: int, value: float) -> None:
        """Change the lower bound of one row; its sense is re-deduced."""
        problem = self._loaded()
        con_lb = problem.con_lb.copy()
        con_lb[self._row_index(index)] = float(value)
        self._set_row_bounds(con_lb, problem.con_ub.copy())

    def set_constr_upper(self, index: int, value: float) -> None:
        """Change the upper bound of one row; its sense is re-deduced."""
        problem = self._loaded()
        con_ub = problem.con_ub.copy()
        con_ub[self._row_index(index)] = float(value)
        self._set_row_bounds(problem.con_lb.copy(), con_ub)

    def set_constr_type(
        self, index: int, sense: str, rhs: float, rhs2: Optional[float] = None
    ) -> None:
        """
        Replace the sense of one row.

        ``sense`` is one of ``L``, ``E``, ``G`` or ``R`` (case-insensitive).
        A ranged row needs both ``rhs`` and ``rhs2``; the larger becomes the
        right-hand side and their distance the range.
        """
        problem = self._loaded()
        i = self._row_index(index)
        lower, upper = _row_bounds(sense, rhs, rhs2)
        con_lb, con_ub = problem.con_lb.copy(), problem.con_ub.copy()
        con_lb[i], con_ub[i] = lower, upper
        self._set_row_bounds(con_lb, con_ub)

    def add_constraint(
        self, coefficients, sense: str, rhs: float, rhs2: Optional[float] = None
    ) -> int:
        """
        Append a row to the problem and return its index.

        Args:
            coefficients: Dense row of length ``num_vars``; only the non-zero
                coefficients are stored.
            sense: ``L``, ``E``, ``G`` or ``R``, see :meth:`set_constr_type`.
            rhs: Right-hand side.
            rhs2: Second bound of a ranged row.
        """
        problem = self._loaded()
        matrix = problem.matrix
        row = np.asarray(coerce_vector(coefficients, matrix.cols, "coefficients"))
        lower, upper = _row_bounds(sense, rhs, rhs2)

        new_cols = np.flatnonzero(row)
        columns = np.concatenate([matrix.column_of_entries(), new_cols])
        # Stable ordering keeps the new row after the existing entries of each column.
        order = np.argsort(columns, kind="stable")
        row_index = np.concatenate([matrix.row_index, np.full(new_cols.shape[0], matrix.rows)])
        values = np.concatenate([matrix.values, row[new_cols]])

        self._set_row_bounds(np.append(problem.con_lb, lower), np.append(problem.con_ub, upper))
        problem.matrix = _assemble(
            matrix.rows + 1, matrix.cols, columns[order], row_index[order], values[order]
        )
        logger.info("Added constraint %d with %d coefficients", matrix.rows, new_cols.shape[0])
        return matrix.rows

    def add_variable(
        self,
        coefficients,
        lower: float,
        upper: float,
        objective: float,
        is_integer: bool = False,
    ) -> int:
        """
        Append a column to the problem and return its index.

        ``coefficients`` is the dense column of length ``num_constraints``
        (``None`` for a problem without rows); only non-zeros are stored.
        """
        problem = self._loaded()
        matrix = problem.matrix
        column = np.asarray(coerce_vector(coefficients, matrix.rows, "coefficients"))
        new_rows = np.flatnonzero(column)

        problem.matrix = ColumnMajorMatrix(
            rows=matrix.rows,
            cols=matrix.cols + 1,
            column_start=np.append(matrix.column_start, matrix.nnz + new_rows.shape[0]),
            row_index=np.concatenate([matrix.row_index, new_rows]),
            values=np.concatenate([matrix.values, column[new_rows]]),
        )
        problem.lb = np.append(problem.lb, float(lower))
        problem.ub = np.append(problem.ub, float(upper))
        problem.objective = np.append(problem.objective, float(objective))
        problem.is_integer = np.append(problem.is_integer, bool(is_integer))
        self._invalidate()
        logger.info("Added variable %d with %d coefficients", matrix.cols, new_rows.shape[0])
        return matrix.cols

    def delete_rows(self, indices) -> None:
        """Remove the given rows; the remaining rows keep their relative order."""
        problem = self._loaded()
        matrix = problem.matrix
        drop = _checked_indices(indices, matrix.rows, "Constraint")
        keep_row = np.ones(matrix.rows, dtype=bool)
        keep_row[drop] = False
        new_position = np.cumsum(keep_row) - 1

        kept = keep_row[matrix.row_index]
        rows = int(keep_row.sum())
        self._set_row_bounds(problem.con_lb[keep_row], problem.con_ub[keep_row])
        problem.matrix = _assemble(
            rows,
            matrix.cols,
            matrix.column_of_entries()[kept],
            new_position[matrix.row_index[kept]],
            matrix.values[kept],
        )
        logger.info("Deleted %d constraints", drop.shape[0])

    def delete_cols(self, indices) -> None:
        """Remove the given variables; at least one variable must remain."""
        problem = self._loaded()
        matrix = problem.matrix
        drop = _checked_indices(indices, matrix.cols, "Variable")
        if drop.shape[0] == matrix.cols:
            raise ValueError("Cannot delete every variable of the problem")
        keep_col = np.ones(matrix.cols, dtype=bool)
        keep_col[drop] = False
        new_position = np.cumsum(keep_col) - 1

        columns = matrix.column_of_entries()
        kept = keep_col[columns]
        problem.matrix = _assemble(
            matrix.rows,
            int(keep_col.sum()),
            new_position[columns[kept]],
            matrix.row_index[kept],
            matrix.values[kept],
        )
        problem.lb = problem.lb[keep_col]
        problem.ub = problem.ub[keep_col]
        problem.objective = problem.objective[keep_col]
        problem.is_integer = problem.is_integer[keep_col]
        self._invalidate()
        logger.info("Deleted %d variables", drop.shape[0])

    # Variable types ------------------------------------------------------------

    @property
    def num_integer(self) -> int:
        return int(self._loaded().is_integer.sum())

    def is_continuous(self, index: int) -> bool:
        return not bool(self._loaded().is_integer[self._var_index(index)])

    def is_binary(self, index: int) -> bool:
        """True for an integer variable bounded by ``[0, 1]``."""
        problem = self._loaded()
        j = self._var_index(index)
        return bool(problem.is_integer[j] and problem.lb[j] == 0.0 and problem.ub[j] == 1.0)

    # Primal bound and starting solution ----------------------------------------

    @property
    def primal_bound(self) -> float:
        """
        Objective cutoff in the problem's own sense.

        Solutions must reach at least this value when maximizing and at most
        this value when minimizing. After a solve the objective of the
        solution found is reported when it is tighter than the cutoff.
        """
        problem = self._loaded()
        bound = problem.primal_bound
        if self._result is not None and self._result.fun is not None:
            bound = min(bound, problem.sense * self._result.fun)
        return problem.sense * bound

    @primal_bound.setter
    def primal_bound(self, value: float) -> None:
        problem = self._loaded()
        problem.primal_bound = problem.sense * float(value)
        self._result = None

    def set_col_solution(self, x) -> None:
        """
        Supply a known feasible solution.

        :meth:`solve` reports it when the engine hits its time or iteration
        limit without finding a better one.

        Raises:
            ValueError: If ``x`` is infeasible or worse than the current
                solution.
        """
        problem = self._loaded()
        start = np.array(coerce_vector(x, problem.matrix.cols, "x"))
        violation = _infeasibility(problem, start)
        if violation > _FEASIBILITY_TOL:
            raise ValueError(f"The given solution is infeasible (violation {violation:.3g})")
        value = problem.sense * float(problem.objective @ start)
        if self._result is not None and self._result.fun is not None:
            if value > problem.sense * self._result.fun + _FEASIBILITY_TOL:
                raise ValueError("The given solution is worse than the current solution")
        problem.start = start

    # Solving -------------------------------------------------------------------

    def solve(self, time_limit: Optional[float] = None) -> MILPResult:
        """
        Solve the loaded problem with HiGHS.

        Args:
            time_limit: Optional wall-clock limit in seconds.
        """
        problem = self._loaded()
        constraints = []
        if problem.matrix.rows:
            constraints.append(
                LinearConstraint(to_scipy(problem.matrix), problem.con_lb, problem.con_ub)
            )
        if np.isfinite(problem.primal_bound):
            constraints.append(
                LinearConstraint(
                    sp.csr_matrix((problem.sense * problem.objective)[np.newaxis, :]),
                    -np.inf,
                    problem.primal_bound,
                )
            )
        options = {"disp": False}
        if time_limit is not None:
            options["time_limit"] = float(time_limit)

        res = milp(
            c=problem.sense * problem.objective,
            integrality=problem.is_integer.astype(int),
            bounds=Bounds(problem.lb, problem.ub),
            constraints=constraints or None,
            options=options,
        )
        status = _MILP_STATUS.get(res.status, Status.NUMERICAL_ERROR)
        x = None if res.x is None else np.asarray(res.x, dtype=float)
        fun = None if res.fun is None else problem.sense * float(res.fun)
        start = problem.start
        if start is not None and status is Status.MAX_ITER:
            start_fun = float(problem.objective @ start)
            if fun is None or problem.sense * start_fun < problem.sense * fun:
                logger.info("Engine stopped without a better solution; reporting the given one")
                x, fun = start.copy(), start_fun
        node_count = getattr(res, "mip_node_count", None)
        self._result = MILPResult(
            x=x,
            fun=fun,
            status=status,
            message=str(res.message),
            mip_gap=getattr(res, "mip_gap", None),
            node_count=None if node_count is None else int(node_count),
        )
        logger.info("MILP solve finished with status %s", status.value)
        return self._result

    # Solution queries ----------------------------------------------------------

    @property
    def status(self) -> Status:
        return self._solved().status

    @property
    def solution(self) -> np.ndarray:
        result = self._solved()
        if result.x is None:
            raise SessionError(f"No solution available (status {result.status.value})")
        return result.x.copy()

    @property
    def objective_value(self) -> float:
        result = self._solved()
        if result.fun is None:
            raise SessionError(f"No objective value available (status {result.status.value})")
        return result.fun

    @property
    def iteration_count(self) -> int:
        """Branch-and-bound nodes explored by the last solve (0 when unreported)."""
        return self._solved().node_count or 0

    @property
    def row_activity(self) -> np.ndarray:
        """Constraint activities ``A x`` at the current solution."""
        return to_scipy(self._loaded().matrix) @ self.solution


__all__ = ["MINIMIZE", "MAXIMIZE", "SessionError", "MILPResult", "MILPSession"]
