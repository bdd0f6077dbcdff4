import numpy as np
import pytest

from optconduit.sparse import (
    ColumnMajorMatrix,
    SparseFormatError,
    column_major_to_row_major,
    from_host,
    to_dense,
    to_host,
)


def test_host_positions_are_one_based():
    csc = ColumnMajorMatrix(2, 2, np.array([0, 1, 3]), np.array([1, 0, 1]), np.array([5.0, 2.0, 7.0]))
    counts, positions, values = to_host(column_major_to_row_major(csc))
    assert counts.tolist() == [1, 2]
    assert positions.tolist() == [2, 1, 2]
    assert values.tolist() == [2.0, 5.0, 7.0]


def test_from_host_shifts_to_zero_based():
    rm = from_host(2, 3, [1, 2], [3, 1, 2], [4.0, 5.0, 6.0])
    assert rm.column_position.tolist() == [2, 0, 1]
    expected = np.array([[0.0, 0.0, 4.0], [5.0, 6.0, 0.0]])
    assert np.array_equal(to_dense(rm), expected)


def test_host_round_trip():
    rm = from_host(2, 3, [1, 2], [3, 1, 2], [4.0, 5.0, 6.0])
    counts, positions, values = to_host(rm)
    assert counts.tolist() == [1, 2]
    assert positions.tolist() == [3, 1, 2]
    assert values.tolist() == [4.0, 5.0, 6.0]


@pytest.mark.parametrize("positions", [[0], [4]])
def test_from_host_rejects_out_of_range(positions):
    with pytest.raises(SparseFormatError):
        from_host(1, 3, [1], positions, [1.0])


def test_from_host_empty():
    rm = from_host(2, 2, [0, 0], [], [])
    assert rm.nnz == 0
