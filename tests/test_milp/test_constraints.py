import numpy as np
import pytest

from optconduit.milp import deduce_row_senses


def test_row_senses_cover_every_kind():
    inf = np.inf
    rows = deduce_row_senses(
        np.array([-inf, 1.0, 2.0, -inf, 0.0]),
        np.array([inf, inf, 2.0, 5.0, 4.0]),
    )
    assert rows.sense.tolist() == ["N", "G", "E", "L", "R"]
    assert rows.rhs.tolist() == [0.0, 1.0, 2.0, 5.0, 4.0]
    assert rows.range.tolist() == [0.0, 0.0, 0.0, 0.0, 4.0]


def test_row_senses_empty():
    rows = deduce_row_senses(np.zeros(0), np.zeros(0))
    assert rows.sense.size == 0


def test_lower_above_upper_names_the_row():
    with pytest.raises(ValueError, match="constraint 1"):
        deduce_row_senses(np.array([0.0, 3.0]), np.array([1.0, 2.0]))


def test_mismatched_lengths():
    with pytest.raises(ValueError):
        deduce_row_senses(np.zeros(2), np.zeros(3))
