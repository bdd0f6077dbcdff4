"""
Host-facing sparse layout.

The host numbers columns from one. Everything inside the package numbers from
zero, so this module is the single place where column positions are shifted.
"""

from __future__ import annotations

from typing import Tuple

import numpy as np

from .core import RowMajorMatrix, SparseFormatError


def to_host(matrix: RowMajorMatrix) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Return ``(count_per_row, column_position, values)`` with one-based columns.
    """

    return (
        np.array(matrix.count_per_row, dtype=np.int64),
        np.array(matrix.column_position, dtype=np.int64) + 1,
        np.array(matrix.values, dtype=float),
    )


def from_host(
    rows: int,
    cols: int,
    count_per_row: np.ndarray,
    column_position: np.ndarray,
    values: np.ndarray,
) -> RowMajorMatrix:
    """
    Build a zero-based :class:`RowMajorMatrix` from one-based host arrays.

    Raises:
        SparseFormatError: If a column position falls outside ``[1, cols]``
            or the arrays are inconsistent.
    """

    positions = np.asarray(column_position, dtype=np.int64).reshape(-1)
    if positions.size and (positions.min() < 1 or positions.max() > cols):
        raise SparseFormatError(f"Host column positions must lie in [1, {cols}]")
    return RowMajorMatrix(
        rows=rows,
        cols=cols,
        count_per_row=count_per_row,
        column_position=positions - 1,
        values=values,
    )


__all__ = ["to_host", "from_host"]
