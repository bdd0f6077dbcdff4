"""
Mixed-integer linear programs on an explicitly owned engine session.

Each :class:`MILPSession` stores its constraint matrix column-major and
reports it back row-major; row senses are deduced from two-sided bounds.
"""

from . import constraints, session
from .constraints import RowSenses, deduce_row_senses
from .session import MAXIMIZE, MINIMIZE, MILPResult, MILPSession, SessionError

__all__ = [
    "constraints",
    "session",
    "RowSenses",
    "deduce_row_senses",
    "MINIMIZE",
    "MAXIMIZE",
    "MILPResult",
    "MILPSession",
    "SessionError",
]
