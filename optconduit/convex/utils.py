"""
Numerical helper routines shared by the quadratic bridge.

These helpers coerce host data into float arrays of a fixed shape and provide
the small amount of linear algebra the diagnostics need. They only depend on
NumPy.
"""

from __future__ import annotations

from typing import Callable, Optional

import numpy as np

from ..diagnostics.core import assert_vector_length


class ProblemShapeError(ValueError):
    """Raised when problem arrays do not match the declared dimensions."""


def symmetrize(matrix: np.ndarray) -> np.ndarray:
    """
    Return the symmetric part ``0.5 * (matrix + matrix.T)``.

    The quadratic form ``x^T Q x`` only sees this part of ``Q``.
    """

    return 0.5 * (matrix + matrix.T)


def coerce_vector(vec: Optional[np.ndarray], length: int, name: str) -> np.ndarray:
    """
    Return ``vec`` as a read-only float vector of exactly ``length`` entries.

    ``None`` is accepted only when ``length`` is zero. Row and column vectors
    from the host are both flattened.
    """

    if vec is None:
        if length == 0:
            arr = np.zeros(0)
            arr.setflags(write=False)
            return arr
        raise ProblemShapeError(f"{name} is required and must have {length} entries")
    arr = np.array(vec, dtype=float, copy=True)
    if arr.ndim > 2 or (arr.ndim == 2 and min(arr.shape) > 1):
        raise ProblemShapeError(f"{name} must be a vector, got shape {arr.shape}")
    arr = arr.reshape(-1)
    try:
        assert_vector_length(arr, length, name)
    except ValueError as exc:
        raise ProblemShapeError(str(exc)) from exc
    arr.setflags(write=False)
    return arr


def coerce_matrix(mat: Optional[np.ndarray], rows: int, cols: int, name: str) -> np.ndarray:
    """
    Return ``mat`` as a read-only ``rows x cols`` float matrix.

    ``None`` is accepted when ``rows`` or ``cols`` is zero and yields an empty
    matrix of the right shape.
    """

    if mat is None:
        if rows == 0 or cols == 0:
            arr = np.zeros((rows, cols))
            arr.setflags(write=False)
            return arr
        raise ProblemShapeError(f"{name} is required and must be {rows}x{cols}")
    arr = np.array(mat, dtype=float, copy=True)
    if arr.size == 0 and rows * cols == 0:
        arr = arr.reshape(rows, cols)
    if arr.shape != (rows, cols):
        raise ProblemShapeError(f"{name} must be {rows}x{cols}, got shape {arr.shape}")
    arr.setflags(write=False)
    return arr


def approx_grad(fun: Callable[[np.ndarray], float], x: np.ndarray, eps: float = 1e-6) -> np.ndarray:
    """Central-difference gradient of ``fun`` at ``x``."""
    if eps <= 0:
        raise ValueError("eps must be positive")
    x = np.asarray(x, dtype=float).copy()
    grad = np.zeros_like(x, dtype=float)
    for i in range(x.size):
        ei = np.zeros_like(x)
        ei[i] = eps
        grad[i] = (fun(x + ei) - fun(x - ei)) / (2.0 * eps)
    return grad


__all__ = [
    "ProblemShapeError",
    "symmetrize",
    "coerce_vector",
    "coerce_matrix",
    "approx_grad",
]
