"""
Quadratic problem descriptor.

The descriptor standardizes a quadratic program with linear constraints,

```
    minimize    x^T Q x + l^T x
    subject to  con_lb <= A x <= con_ub
                lb <= x <= ub
```

so that the nonlinear-engine adapter and the diagnostics read the same data.
``Q`` is stored exactly as supplied; only its symmetric part ``(Q + Q^T) / 2``
affects the objective and no symmetrization happens here. Infinite entries in
the bound vectors denote missing bounds. Bound ordering is left for the engine
to judge.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import numpy as np

from .utils import ProblemShapeError, coerce_matrix, coerce_vector


@dataclass(frozen=True)
class QuadraticProblem:
    """
    Immutable quadratic program with linear constraints.

    Every array is copied on construction and flagged read-only, so a
    descriptor can be reused across independent solves.

    Attributes:
        q: Quadratic coefficients, ``n x n``; need not be symmetric.
        linear: Linear coefficients, length ``n``.
        a: Constraint coefficients, ``m x n``; row ``i`` is constraint ``i``.
        lb: Variable lower bounds, length ``n``.
        ub: Variable upper bounds, length ``n``.
        con_lb: Constraint lower bounds, length ``m``.
        con_ub: Constraint upper bounds, length ``m``.
        x0: Optional initial guess, length ``n``.
    """

    q: np.ndarray
    linear: np.ndarray
    a: Optional[np.ndarray]
    lb: np.ndarray
    ub: np.ndarray
    con_lb: Optional[np.ndarray] = None
    con_ub: Optional[np.ndarray] = None
    x0: Optional[np.ndarray] = None

    def __post_init__(self) -> None:
        linear = np.asarray(self.linear, dtype=float).reshape(-1)
        n = linear.shape[0]
        if n == 0:
            raise ProblemShapeError("A quadratic problem needs at least one variable")

        a_raw = None if self.a is None else np.asarray(self.a, dtype=float)
        if a_raw is None or a_raw.size == 0:
            m = 0
        elif a_raw.ndim == 1:
            m = 1 if a_raw.shape[0] == n else -1
        else:
            m = a_raw.shape[0]
        if m < 0:
            raise ProblemShapeError(f"a must have {n} columns, got shape {a_raw.shape}")
        a_mat = coerce_matrix(None if m == 0 else a_raw.reshape(m, -1), m, n, "a")

        values = {
            "q": coerce_matrix(self.q, n, n, "q"),
            "linear": coerce_vector(linear, n, "linear"),
            "a": a_mat,
            "lb": coerce_vector(self.lb, n, "lb"),
            "ub": coerce_vector(self.ub, n, "ub"),
            "con_lb": coerce_vector(self.con_lb, m, "con_lb"),
            "con_ub": coerce_vector(self.con_ub, m, "con_ub"),
            "x0": None if self.x0 is None else coerce_vector(self.x0, n, "x0"),
        }
        for name, value in values.items():
            object.__setattr__(self, name, value)

    @property
    def num_vars(self) -> int:
        return int(self.linear.shape[0])

    @property
    def num_constraints(self) -> int:
        return int(self.a.shape[0])

    @classmethod
    def from_host(
        cls,
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
    ) -> "QuadraticProblem":
        """
        Build a descriptor from host arguments in host order.

        The declared sizes are checked against every array before anything
        else happens. ``con_matrix`` and the constraint bounds may be omitted
        when ``num_constraints`` is zero.
        """

        if int(num_vars) <= 0:
            raise ProblemShapeError(f"num_vars must be positive, got {num_vars}")
        if int(num_constraints) < 0:
            raise ProblemShapeError(f"num_constraints must be non-negative, got {num_constraints}")
        n = int(num_vars)
        m = int(num_constraints)
        return cls(
            q=coerce_matrix(q, n, n, "q"),
            linear=coerce_vector(p, n, "p"),
            a=coerce_matrix(con_matrix if m else None, m, n, "con_matrix"),
            lb=coerce_vector(lb, n, "lb"),
            ub=coerce_vector(ub, n, "ub"),
            con_lb=coerce_vector(con_lb if m else None, m, "con_lb"),
            con_ub=coerce_vector(con_ub if m else None, m, "con_ub"),
            x0=None if x0 is None else coerce_vector(x0, n, "x0"),
        )


__all__ = ["QuadraticProblem"]
