"""
Solver Session Contract

A session owns one decision procedure for one problem:

    open() -> write(...)* -> solve() -> close()

States: CREATED -> OPENED -> WRITING -> SOLVED | CLOSED. close() is idempotent and legal
from every state; sessions are context managers that always close on exit.

The dReal response grammar is parsed here so that any backend speaking the same
text protocol can reuse it.
"""

from __future__ import annotations

import os
import re
import shutil
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

from ..errors import SolverError, SolverNotFoundError, SolverParseError, SolverStateError
from ..smt2.expressions import Expression, serialize


# ============================================================================
# CONFIG
# ============================================================================

@dataclass(frozen=True)
class SolverConfig:
    """
    Where to find the solver and how to launch it.

    The executable is looked up in ``search_dirs`` first (first match wins),
    then on PATH, then in the working directory.
    """
    executable: str = "dReal"
    arguments: Tuple[str, ...] = ("--in", "--model", "--suppress-warning")
    search_dirs: Tuple[str, ...] = ()

    def resolve_executable(self) -> str:
        """
        Resolved once per config. A failed lookup is remembered too: installing
        the solver later needs a new config (or a new process).
        """
        found = _resolve_executable(self)
        if isinstance(found, SolverNotFoundError):
            raise SolverNotFoundError(found.executable, found.searched)
        return found


def _is_executable(path: Path) -> bool:
    return path.is_file() and os.access(path, os.X_OK)


@lru_cache(maxsize=None)
def _resolve_executable(config: SolverConfig) -> Union[str, SolverNotFoundError]:
    searched: List[str] = []

    direct = Path(config.executable)
    if direct.is_absolute():
        if _is_executable(direct):
            return str(direct)
        return SolverNotFoundError(config.executable, (str(direct),))

    for d in config.search_dirs:
        candidate = Path(d) / config.executable
        searched.append(str(candidate))
        if _is_executable(candidate):
            return str(candidate)

    on_path = shutil.which(config.executable)
    if on_path:
        return on_path
    searched.append("PATH")

    local = Path.cwd() / config.executable
    searched.append(str(local))
    if _is_executable(local):
        return str(local)

    return SolverNotFoundError(config.executable, tuple(searched))


# ============================================================================
# RESULT
# ============================================================================

@dataclass
class IntervalResult:
    """
    Outcome of a solve. For satisfiable problems, ``intervals`` maps each
    solved symbol name to the closed interval (lower, upper) reported for it.
    """
    satisfiable: bool
    intervals: Dict[str, Tuple[float, float]] = field(default_factory=dict)

    @classmethod
    def unsat(cls) -> "IntervalResult":
        return cls(satisfiable=False)

    def midpoint(self, name: str) -> float:
        # representative value; any point of the interval would do
        lower, upper = self.intervals[name]
        return (lower + upper) / 2.0

    def __contains__(self, name: str) -> bool:
        return name in self.intervals

    def __len__(self):
        return len(self.intervals)


_RESULT_LINE = re.compile(
    r"^(?P<symbol>\S+)\s*:\s*\[.*\]\s*=\s*\[\s*(?P<lower>[^,\s\]]+)\s*,\s*(?P<upper>[^,\s\]]+)\s*\]$"
)

_UNSAT = "unsat"
_SOLUTION = "Solution:"
_TERMINATORS = ("sat", "delta-sat")


def _is_terminator(line: str) -> bool:
    return line in _TERMINATORS or line.startswith("delta-sat ")


def parse_result_line(line: str) -> Tuple[str, float, float]:
    """``x : [ ENTIRE ] = [1.0, 2.0]`` -> ("x", 1.0, 2.0)"""
    m = _RESULT_LINE.match(line)
    if m is None:
        raise SolverParseError("could not interpret result line", line)
    try:
        lower = float(m.group("lower"))
        upper = float(m.group("upper"))
    except ValueError as e:
        raise SolverParseError("could not interpret interval bounds", line) from e
    return m.group("symbol"), lower, upper


def parse_response(lines: Iterable[str]) -> IntervalResult:
    """
    Read a solver response:

        unsat

    or

        Solution:
        x : [ ENTIRE ] = [1.0, 2.0]
        ...
        sat

    Raises:
        SolverError: the first line is neither 'unsat' nor 'Solution:'.
        SolverParseError: a malformed result line, or the stream ends early.
    """
    it = iter(lines)
    first = None
    for raw in it:
        first = raw.strip()
        if first:
            break
    if not first:
        raise SolverParseError("solver produced no output")

    if first == _UNSAT:
        return IntervalResult.unsat()
    if first != _SOLUTION:
        raise SolverError("unexpected response from solver", first)

    intervals: Dict[str, Tuple[float, float]] = {}
    for raw in it:
        line = raw.strip()
        if not line:
            continue
        if _is_terminator(line):
            return IntervalResult(satisfiable=True, intervals=intervals)
        symbol, lower, upper = parse_result_line(line)
        intervals[symbol] = (lower, upper)
    raise SolverParseError("solver output ended before the end of the solution")


# ============================================================================
# SESSION
# ============================================================================

class SessionState(Enum):
    CREATED = "created"
    OPENED = "opened"
    WRITING = "writing"
    SOLVED = "solved"
    CLOSED = "closed"


class SolverSession(ABC):
    def __init__(self, *, debug: bool = False):
        self.state = SessionState.CREATED
        self.debug = bool(debug)
        self._trace: List[Dict[str, Any]] = []
        self._trace_max: int = 400

    # -----------------------------
    # Public API
    # -----------------------------
    def open(self) -> None:
        if self.state is not SessionState.CREATED:
            raise SolverStateError(f"cannot open a session that is {self.state.value}")
        self._open()
        self.state = SessionState.OPENED
        self._t("open")

    def write(self, statement: Union[Expression, str]) -> None:
        """Send one statement (an expression or a raw protocol line)."""
        self._require_open("write")
        line = statement if isinstance(statement, str) else serialize(statement)
        self._t("write", line=line)
        self._write(line)
        self.state = SessionState.WRITING

    def write_all(self, statements: Iterable[Union[Expression, str]]) -> None:
        for s in statements:
            self.write(s)

    def solve(self) -> IntervalResult:
        self._require_open("solve")
        result = self._solve()
        self.state = SessionState.SOLVED
        self._t("solved", satisfiable=result.satisfiable, symbols=len(result.intervals))
        return result

    def close(self) -> None:
        if self.state is SessionState.CLOSED:
            return
        try:
            self._close()
        finally:
            self.state = SessionState.CLOSED
            self._t("close")

    @property
    def trace(self) -> List[Dict[str, Any]]:
        return list(self._trace)

    def __enter__(self):
        if self.state is SessionState.CREATED:
            self.open()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False

    # -----------------------------
    # Backend hooks
    # -----------------------------
    @abstractmethod
    def _open(self) -> None:
        ...

    @abstractmethod
    def _write(self, line: str) -> None:
        ...

    @abstractmethod
    def _solve(self) -> IntervalResult:
        ...

    @abstractmethod
    def _close(self) -> None:
        ...

    # -----------------------------
    # internals
    # -----------------------------
    def _require_open(self, action: str) -> None:
        if self.state not in (SessionState.OPENED, SessionState.WRITING):
            raise SolverStateError(f"cannot {action}: session is {self.state.value}")

    def _t(self, event: str, **data):
        if not self.debug:
            return
        rec = {"event": event, "session": type(self).__name__, **data}
        self._trace.append(rec)
        if len(self._trace) > self._trace_max:
            self._trace.pop(0)
