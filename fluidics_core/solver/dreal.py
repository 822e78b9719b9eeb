"""
dReal subprocess session.

The solver reads the problem on stdin and prints its answer on stdout; stderr
is merged into stdout so diagnostics surface as an unexpected first line.
"""

from __future__ import annotations

import subprocess
from typing import Optional

from ..errors import SolverError
from ..smt2 import qfnra
from ..smt2.expressions import serialize
from .session import IntervalResult, SolverConfig, SolverSession, parse_response


class DRealSession(SolverSession):
    """
    Usage:
        with DRealSession() as session:
            session.write_all(exprs)
            result = session.solve()
    """

    def __init__(self, config: Optional[SolverConfig] = None, *, debug: bool = False):
        super().__init__(debug=debug)
        self.config = config or SolverConfig()
        self._process: Optional[subprocess.Popen] = None

    @property
    def command(self):
        return [self.config.resolve_executable(), *self.config.arguments]

    def _open(self) -> None:
        command = self.command
        self._t("spawn", command=command)
        try:
            self._process = subprocess.Popen(
                command,
                stdin=subprocess.PIPE,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
            )
        except OSError as e:
            raise SolverError(f"could not start solver: {e}", command[0]) from e
        self._send(serialize(qfnra.use_qfnra()))

    def _write(self, line: str) -> None:
        self._send(line)

    def _solve(self) -> IntervalResult:
        self._send(serialize(qfnra.check_sat()))
        self._send(serialize(qfnra.exit_solver()))
        proc = self._process
        try:
            proc.stdin.close()
        except BrokenPipeError as e:
            raise self._terminated() from e
        return parse_response(proc.stdout)

    def _close(self) -> None:
        proc = self._process
        self._process = None
        if proc is None:
            return
        for stream in (proc.stdin, proc.stdout):
            if stream is not None and not stream.closed:
                try:
                    stream.close()
                except BrokenPipeError:
                    pass
        if proc.poll() is None:
            proc.kill()
        proc.wait()
        self._t("reaped", returncode=proc.returncode)

    def _send(self, line: str) -> None:
        try:
            self._process.stdin.write(line + "\n")
        except BrokenPipeError as e:
            raise self._terminated(line) from e

    def _terminated(self, line: Optional[str] = None) -> SolverError:
        """
        The solver stopped reading its input. Whatever it printed before exiting
        is the real diagnostic; only an empty stdout falls back to the line we
        failed to send.
        """
        for raw in self._process.stdout:
            text = raw.strip()
            if text:
                self._t("terminated", output=text)
                return SolverError("unexpected response from solver", text)
        return SolverError("solver process terminated unexpectedly", line)
