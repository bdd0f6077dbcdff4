"""
Sparse matrix containers shared by the converters and the engine sessions.

Two storage conventions cross the engine boundary. The linear engine keeps its
constraint matrix column-major (``column_start``/``row_index``/``values``),
while the host exchanges row-major data (``count_per_row``/``column_position``/
``values``) in which the rows are implied by the order of the entries. Both
containers hold zero-based indices; the one-based host convention is applied
only in :mod:`optconduit.sparse.boundary`.

Containers validate their invariants on construction and freeze their arrays
so that a matrix can be shared between a session and its callers.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Tuple

import numpy as np


class SparseFormatError(ValueError):
    """Raised when sparse index or value arrays violate their storage invariants."""


def _frozen(arr, dtype) -> np.ndarray:
    out = np.array(arr, dtype=dtype, copy=True).reshape(-1)
    out.setflags(write=False)
    return out


def _check_dims(rows: int, cols: int) -> None:
    if rows < 0 or cols < 0:
        raise SparseFormatError(f"Matrix dimensions must be non-negative, got {rows}x{cols}")


@dataclass(frozen=True)
class ColumnMajorMatrix:
    """
    Column-major (compressed column) sparse matrix.

    Attributes:
        rows: Number of rows.
        cols: Number of columns.
        column_start: Offsets of length ``cols + 1``; column ``c`` owns the
            entries ``column_start[c]:column_start[c + 1]``.
        row_index: Row of each stored entry, length ``nnz``.
        values: Stored entries, length ``nnz``.
    """

    rows: int
    cols: int
    column_start: np.ndarray
    row_index: np.ndarray
    values: np.ndarray

    def __post_init__(self) -> None:
        _check_dims(self.rows, self.cols)
        column_start = _frozen(self.column_start, np.int64)
        row_index = _frozen(self.row_index, np.int64)
        values = _frozen(self.values, float)

        if column_start.shape[0] != self.cols + 1:
            raise SparseFormatError(
                f"column_start must have {self.cols + 1} entries, got {column_start.shape[0]}"
            )
        if column_start[0] != 0:
            raise SparseFormatError("column_start[0] must be 0")
        if np.any(np.diff(column_start) < 0):
            raise SparseFormatError("column_start must be non-decreasing")
        nnz = int(column_start[-1])
        if row_index.shape[0] != nnz or values.shape[0] != nnz:
            raise SparseFormatError(
                f"row_index and values must have {nnz} entries, "
                f"got {row_index.shape[0]} and {values.shape[0]}"
            )
        if nnz and (row_index.min() < 0 or row_index.max() >= self.rows):
            raise SparseFormatError(f"row_index entries must lie in [0, {self.rows})")

        object.__setattr__(self, "column_start", column_start)
        object.__setattr__(self, "row_index", row_index)
        object.__setattr__(self, "values", values)

    @property
    def nnz(self) -> int:
        return int(self.values.shape[0])

    @property
    def shape(self) -> Tuple[int, int]:
        return (self.rows, self.cols)

    def column_of_entries(self) -> np.ndarray:
        """Column index of every stored entry, in storage order."""
        return np.repeat(np.arange(self.cols, dtype=np.int64), np.diff(self.column_start))


@dataclass(frozen=True)
class RowMajorMatrix:
    """
    Row-major sparse matrix in the host's count-per-row layout.

    Attributes:
        rows: Number of rows.
        cols: Number of columns.
        count_per_row: Number of stored entries in each row, length ``rows``.
        column_position: Column of each stored entry, length ``nnz``. Entries
            of row ``r`` follow those of row ``r - 1``.
        values: Stored entries, length ``nnz``.
    """

    rows: int
    cols: int
    count_per_row: np.ndarray
    column_position: np.ndarray
    values: np.ndarray

    def __post_init__(self) -> None:
        _check_dims(self.rows, self.cols)
        count_per_row = _frozen(self.count_per_row, np.int64)
        column_position = _frozen(self.column_position, np.int64)
        values = _frozen(self.values, float)

        if count_per_row.shape[0] != self.rows:
            raise SparseFormatError(
                f"count_per_row must have {self.rows} entries, got {count_per_row.shape[0]}"
            )
        if np.any(count_per_row < 0):
            raise SparseFormatError("count_per_row entries must be non-negative")
        nnz = int(count_per_row.sum())
        if column_position.shape[0] != nnz or values.shape[0] != nnz:
            raise SparseFormatError(
                f"column_position and values must have {nnz} entries, "
                f"got {column_position.shape[0]} and {values.shape[0]}"
            )
        if nnz and (column_position.min() < 0 or column_position.max() >= self.cols):
            raise SparseFormatError(f"column_position entries must lie in [0, {self.cols})")

        object.__setattr__(self, "count_per_row", count_per_row)
        object.__setattr__(self, "column_position", column_position)
        object.__setattr__(self, "values", values)

    @property
    def nnz(self) -> int:
        return int(self.values.shape[0])

    @property
    def shape(self) -> Tuple[int, int]:
        return (self.rows, self.cols)

    def row_starts(self) -> np.ndarray:
        """Prefix offsets of length ``rows + 1`` into the entry arrays."""
        starts = np.zeros(self.rows + 1, dtype=np.int64)
        np.cumsum(self.count_per_row, out=starts[1:])
        return starts

    def row_of_entries(self) -> np.ndarray:
        """Row index of every stored entry, in storage order."""
        return np.repeat(np.arange(self.rows, dtype=np.int64), self.count_per_row)


def triples(matrix: ColumnMajorMatrix | RowMajorMatrix) -> List[Tuple[int, int, float]]:
    """
    Return the stored entries as ``(row, col, value)`` triples in storage order.
    """

    if isinstance(matrix, ColumnMajorMatrix):
        rows = matrix.row_index
        cols = matrix.column_of_entries()
    else:
        rows = matrix.row_of_entries()
        cols = matrix.column_position
    return [(int(r), int(c), float(v)) for r, c, v in zip(rows, cols, matrix.values)]


def to_dense(matrix: ColumnMajorMatrix | RowMajorMatrix) -> np.ndarray:
    """
    Expand a sparse matrix into a dense ``rows x cols`` array.

    Duplicate entries are summed, matching the usual sparse semantics.
    """

    dense = np.zeros((matrix.rows, matrix.cols))
    for row, col, value in triples(matrix):
        dense[row, col] += value
    return dense


__all__ = [
    "SparseFormatError",
    "ColumnMajorMatrix",
    "RowMajorMatrix",
    "triples",
    "to_dense",
]
