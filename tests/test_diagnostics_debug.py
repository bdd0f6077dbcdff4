"""Tests for debug mode functionality."""

import numpy as np
import pytest

from optconduit.convex import QuadNLP, QuadraticProblem
from optconduit.diagnostics import (
    debug_context,
    is_debug_enabled,
    set_debug_enabled,
)


def _problem() -> QuadraticProblem:
    return QuadraticProblem(
        q=np.eye(2), linear=np.zeros(2), a=np.ones((1, 2)), lb=np.zeros(2), ub=np.ones(2),
        con_lb=[0.0], con_ub=[1.0],
    )


def test_debug_mode_toggle_and_context() -> None:
    """Test debug mode toggling and context manager."""
    original = is_debug_enabled()

    try:
        set_debug_enabled(False)
        assert not is_debug_enabled()

        with debug_context(True):
            assert is_debug_enabled()

        # Back to previous (False in this block)
        assert not is_debug_enabled()

        set_debug_enabled(True)
        assert is_debug_enabled()

        with debug_context(False):
            assert not is_debug_enabled()

        # Back to True
        assert is_debug_enabled()
    finally:
        set_debug_enabled(original)


def test_debug_context_nested() -> None:
    """Test nested debug contexts."""
    original = is_debug_enabled()

    try:
        set_debug_enabled(False)

        with debug_context(True):
            assert is_debug_enabled()

            with debug_context(False):
                assert not is_debug_enabled()

            # Back to True
            assert is_debug_enabled()

        # Back to False
        assert not is_debug_enabled()
    finally:
        set_debug_enabled(original)


def test_debug_context_restores_after_error() -> None:
    """Test that the previous mode is restored when the block raises."""
    original = is_debug_enabled()

    try:
        set_debug_enabled(False)
        with pytest.raises(RuntimeError):
            with debug_context(True):
                raise RuntimeError("boom")
        assert not is_debug_enabled()
    finally:
        set_debug_enabled(original)


def test_callback_size_checks_only_in_debug_mode() -> None:
    """Test that adapter callbacks check buffer sizes in debug mode."""
    nlp = QuadNLP(_problem())
    original = is_debug_enabled()

    try:
        set_debug_enabled(True)
        with pytest.raises(ValueError):
            nlp.gradient(np.zeros(3))
        with pytest.raises(ValueError):
            nlp.jacobian(np.zeros(1))
        # Correct sizes pass.
        assert nlp.gradient(np.zeros(2)).shape == (2,)

        set_debug_enabled(False)
        # Without debug mode the wrong length reaches NumPy unchecked.
        assert nlp.jacobian(np.zeros(1)).shape == (2,)
    finally:
        set_debug_enabled(original)
