"""Diagnostics and debugging utilities for Optimization Conduit."""

from .core import assert_size, assert_vector_length, has_finite_entries
from .debug_mode import (
    debug_context,
    is_debug_enabled,
    set_debug_enabled,
)

__all__ = [
    "assert_size",
    "assert_vector_length",
    "has_finite_entries",
    "is_debug_enabled",
    "set_debug_enabled",
    "debug_context",
]
