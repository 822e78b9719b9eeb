from __future__ import annotations

from .dreal import DRealSession
from .session import (
    IntervalResult,
    SessionState,
    SolverConfig,
    SolverSession,
    parse_response,
    parse_result_line,
)
from .z3_session import Z3Session

__all__ = [
    "DRealSession",
    "IntervalResult",
    "SessionState",
    "SolverConfig",
    "SolverSession",
    "Z3Session",
    "parse_response",
    "parse_result_line",
]
