"""
Row-sense classification of two-sided constraint bounds.

Linear engines describe a constraint ``lower <= a^T x <= upper`` by a sense
character, a right-hand side and a range:

===== ===================== ======= ===============
sense meaning               rhs     range
===== ===================== ======= ===============
N     free row              0       0
L     ``a^T x <= upper``    upper   0
G     ``a^T x >= lower``    lower   0
E     ``a^T x == lower``    lower   0
R     ranged row            upper   upper - lower
===== ===================== ======= ===============
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np


@dataclass(frozen=True)
class RowSenses:
    """Per-row sense characters, right-hand sides and ranges."""

    sense: np.ndarray
    rhs: np.ndarray
    range: np.ndarray


def deduce_row_senses(con_lb: np.ndarray, con_ub: np.ndarray) -> RowSenses:
    """
    Classify every constraint row from its lower and upper bound.

    Raises:
        ValueError: If the bound vectors differ in length or a lower bound
            exceeds its upper bound.
    """

    lower = np.asarray(con_lb, dtype=float).reshape(-1)
    upper = np.asarray(con_ub, dtype=float).reshape(-1)
    if lower.shape != upper.shape:
        raise ValueError("Constraint bound vectors must have the same length")
    bad = np.flatnonzero(lower > upper)
    if bad.size:
        raise ValueError(
            f"The lower bound of constraint {int(bad[0])} is more than its upper bound"
        )

    m = lower.shape[0]
    sense = np.full(m, "R", dtype="<U1")
    rhs = upper.copy()
    with np.errstate(invalid="ignore"):
        rng = upper - lower

    no_lower = np.isneginf(lower)
    no_upper = np.isposinf(upper)
    equal = lower == upper

    sense[equal] = "E"
    rhs[equal] = lower[equal]
    sense[no_upper] = "G"
    rhs[no_upper] = lower[no_upper]
    sense[no_lower] = "L"
    rhs[no_lower] = upper[no_lower]
    free = no_lower & no_upper
    sense[free] = "N"
    rhs[free] = 0.0
    rng[sense != "R"] = 0.0

    return RowSenses(sense=sense, rhs=rhs, range=rng)


__all__ = ["RowSenses", "deduce_row_senses"]
