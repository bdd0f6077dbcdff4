"""Core diagnostic functions for engine callbacks and problem data."""

from __future__ import annotations

from typing import Optional

import numpy as np


def assert_size(value: int, expected: int, name: str) -> None:
    """
    Assert that an engine-supplied size equals the size the problem declares.

    Parameters
    ----------
    value:
        Size handed over by the engine (e.g. ``n`` or ``m``).
    expected:
        Size the problem was built with.
    name:
        Label used in the error message.

    Raises
    ------
    ValueError
        If the two sizes differ.
    """
    if int(value) != int(expected):
        raise ValueError(f"{name} mismatch: engine passed {value}, problem declares {expected}.")


def assert_vector_length(vec: Optional[np.ndarray], expected: int, name: str) -> None:
    """
    Assert that a one-dimensional buffer has exactly ``expected`` entries.

    Raises
    ------
    ValueError
        If the buffer is missing, not one-dimensional, or of the wrong length.
    """
    if vec is None:
        raise ValueError(f"{name} is missing; expected {expected} entries.")
    arr = np.asarray(vec)
    if arr.ndim != 1 or arr.shape[0] != expected:
        raise ValueError(f"{name} has shape {arr.shape}; expected ({expected},).")


def has_finite_entries(vec: np.ndarray) -> bool:
    """Return True if every entry of ``vec`` is finite."""
    return bool(np.all(np.isfinite(np.asarray(vec, dtype=float))))
