"""
Sparse storage containers and format conversion.

Constraint matrices travel column-major inside the linear engine and
row-major (count per row, column positions, values) on the host side. This
subpackage holds both containers, the linear-time converters between them,
and the one-based host boundary.
"""

from . import boundary, convert, core
from .boundary import from_host, to_host
from .convert import (
    column_major_to_row_major,
    dense_to_column_major,
    row_major_to_column_major,
    to_scipy,
)
from .core import ColumnMajorMatrix, RowMajorMatrix, SparseFormatError, to_dense, triples

__all__ = [
    "boundary",
    "convert",
    "core",
    # Containers
    "ColumnMajorMatrix",
    "RowMajorMatrix",
    "SparseFormatError",
    "triples",
    "to_dense",
    # Conversions
    "column_major_to_row_major",
    "row_major_to_column_major",
    "dense_to_column_major",
    "to_scipy",
    # Host boundary
    "to_host",
    "from_host",
]
