"""
Conversions between column-major and row-major sparse storage.

Both directions use one counting pass and one stable reordering: count the
entries that land in each target row (or column), then order the source
entries stably by target. Because the reordering is stable, entries inside a
target row keep their storage order and come out by ascending column (and vice
versa), which is the order the host expects. The reordering is a radix sort,
so a conversion stays linear in the number of entries.
"""

from __future__ import annotations

import numpy as np
import scipy.sparse as sp

from ..logging import get_logger
from .core import ColumnMajorMatrix, RowMajorMatrix, SparseFormatError

logger = get_logger(__name__)


def _stable_order(keys: np.ndarray) -> np.ndarray:
    # Least-significant-digit radix passes over 16-bit digits. NumPy sorts
    # 16-bit keys with a stable radix sort, so every pass is linear.
    order = np.arange(keys.shape[0], dtype=np.int64)
    shift = 0
    while keys.size and (keys >> shift).any():
        digit = ((keys[order] >> shift) & 0xFFFF).astype(np.uint16)
        order = order[np.argsort(digit, kind="stable")]
        shift += 16
    return order


def _scatter(
    target_index: np.ndarray, n_targets: int, other_index: np.ndarray, values: np.ndarray
) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    counts = np.bincount(target_index, minlength=n_targets).astype(np.int64)
    order = _stable_order(np.asarray(target_index, dtype=np.int64))
    other_index = np.asarray(other_index, dtype=np.int64)
    values = np.asarray(values, dtype=float)
    return counts, other_index[order], values[order]


def column_major_to_row_major(matrix: ColumnMajorMatrix) -> RowMajorMatrix:
    """
    Convert column-major storage into the host's row-major layout.

    Runs in ``O(nnz + rows + cols)``. A matrix without stored entries yields an
    all-zero ``count_per_row`` and empty position/value arrays.

    Example:
        >>> import numpy as np
        >>> from optconduit.sparse import ColumnMajorMatrix, column_major_to_row_major
        >>> csc = ColumnMajorMatrix(2, 2, np.array([0, 1, 3]), np.array([1, 0, 1]),
        ...                         np.array([5.0, 2.0, 7.0]))
        >>> rm = column_major_to_row_major(csc)
        >>> rm.count_per_row.tolist(), rm.column_position.tolist(), rm.values.tolist()
        ([1, 2], [1, 0, 1], [2.0, 5.0, 7.0])
    """

    counts, column_position, values = _scatter(
        matrix.row_index, matrix.rows, matrix.column_of_entries(), matrix.values
    )
    logger.debug(
        "Converted %dx%d column-major matrix with %d entries to row-major",
        matrix.rows,
        matrix.cols,
        matrix.nnz,
    )
    return RowMajorMatrix(
        rows=matrix.rows,
        cols=matrix.cols,
        count_per_row=counts,
        column_position=column_position,
        values=values,
    )


def row_major_to_column_major(matrix: RowMajorMatrix) -> ColumnMajorMatrix:
    """
    Convert the host's row-major layout into column-major storage.

    This is the direction taken when a sparse constraint matrix is loaded into
    the linear engine. Within each column, entries are ordered by ascending
    row.
    """

    counts, row_index, values = _scatter(
        matrix.column_position, matrix.cols, matrix.row_of_entries(), matrix.values
    )
    column_start = np.zeros(matrix.cols + 1, dtype=np.int64)
    np.cumsum(counts, out=column_start[1:])
    logger.debug(
        "Converted %dx%d row-major matrix with %d entries to column-major",
        matrix.rows,
        matrix.cols,
        matrix.nnz,
    )
    return ColumnMajorMatrix(
        rows=matrix.rows,
        cols=matrix.cols,
        column_start=column_start,
        row_index=row_index,
        values=values,
    )


def dense_to_column_major(dense: np.ndarray, keep_zeros: bool = True) -> ColumnMajorMatrix:
    """
    Store a dense ``rows x cols`` array column-major.

    With ``keep_zeros=True`` every coefficient is declared, including zeros,
    so the stored structure is the full dense pattern. With
    ``keep_zeros=False`` only non-zero coefficients are kept.
    """

    arr = np.asarray(dense, dtype=float)
    if arr.ndim != 2:
        raise SparseFormatError(f"Dense matrix must be 2D, got shape {arr.shape}")
    rows, cols = arr.shape
    mask = np.ones_like(arr, dtype=bool) if keep_zeros else arr != 0.0
    # Transposing makes the boolean scan walk column by column.
    col_idx, row_idx = np.nonzero(mask.T)
    counts = np.bincount(col_idx, minlength=cols)
    column_start = np.zeros(cols + 1, dtype=np.int64)
    np.cumsum(counts, out=column_start[1:])
    return ColumnMajorMatrix(
        rows=rows,
        cols=cols,
        column_start=column_start,
        row_index=row_idx,
        values=arr[row_idx, col_idx],
    )


def to_scipy(matrix: ColumnMajorMatrix | RowMajorMatrix) -> sp.spmatrix:
    """
    Wrap a container as a SciPy sparse matrix without reordering entries.

    Column-major input becomes ``csc_matrix`` and row-major input
    ``csr_matrix``.
    """

    if isinstance(matrix, ColumnMajorMatrix):
        return sp.csc_matrix(
            (matrix.values, matrix.row_index, matrix.column_start),
            shape=matrix.shape,
        )
    return sp.csr_matrix(
        (matrix.values, matrix.column_position, matrix.row_starts()),
        shape=matrix.shape,
    )


__all__ = [
    "column_major_to_row_major",
    "row_major_to_column_major",
    "dense_to_column_major",
    "to_scipy",
]
