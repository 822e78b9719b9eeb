"""
Microfluidics Backend

Compiles a microfluidic schematic into a QF_NRA problem and, given a solver
session, solves it and writes the solution back onto a copy of the schematic.

Pipeline:
    type table -> header -> placement -> multiphase -> pressure/flow
    -> single phase -> declare free symbols -> sort -> [.smt2] -> solve -> annotate
"""

from __future__ import annotations

import math
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from .annotation import annotate_with_report
from .params import ProcessParameters
from .schematic import Schematic
from .smt2 import qfnra, symbols
from .smt2.expressions import Decimal, Expression, Symbol, free_symbols, serialize
from .solver.session import IntervalResult, SolverSession
from .strategies.base import TranslationStrategy
from .strategies.sets import (
    MultiPhaseStrategySet,
    PlacementStrategySet,
    PressureFlowStrategySet,
    SinglePhaseStrategySet,
)
from .type_table import PrimitiveTypeTable


@dataclass(frozen=True)
class BackendConfig:
    worst_case_analysis: bool = False
    assume_infinite_area: bool = False
    write_smt2: bool = False  # writes <output_dir>/<schematic>.smt2
    output_dir: Optional[str] = None
    verbose: bool = False


@dataclass
class BackendResult:
    schematic_name: str
    expressions: List[Expression] = field(default_factory=list)
    result: Optional[IntervalResult] = None
    annotated: Optional[Schematic] = None
    skipped_symbols: List[str] = field(default_factory=list)
    smt2_path: Optional[Path] = None
    latency_ms: float = 0.0

    @property
    def solved(self) -> bool:
        return self.result is not None

    @property
    def satisfiable(self) -> Optional[bool]:
        return None if self.result is None else self.result.satisfiable


def header() -> List[Expression]:
    """Mathematical constants used by the physical models."""
    return [
        qfnra.declare_real(symbols.PI),
        qfnra.declare_real(symbols.EULER),
        qfnra.assert_equal(symbols.PI, Decimal.from_float(math.pi)),
        qfnra.assert_equal(symbols.EULER, Decimal.from_float(math.e)),
    ]


def sort_expressions(exprs: List[Expression]) -> List[Expression]:
    """
    Declarations first, then assertions, then anything else; relative order is
    kept within each group. Repeated declarations of a symbol are dropped.
    """
    declarations: List[Expression] = []
    assertions: List[Expression] = []
    others: List[Expression] = []
    declared = set()
    for e in exprs:
        if qfnra.is_declaration(e):
            key = serialize(e)
            if key in declared:
                continue
            declared.add(key)
            declarations.append(e)
        elif qfnra.is_assertion(e):
            assertions.append(e)
        else:
            others.append(e)
    return declarations + assertions + others


def declare_free_symbols(exprs: List[Expression]) -> List[Expression]:
    """Declarations for symbols that are asserted on but never declared."""
    declared = set()
    for e in exprs:
        if qfnra.is_declaration(e):
            declared.add(serialize(e[1]))
    missing: Dict[str, None] = {}
    for e in exprs:
        if qfnra.is_assertion(e):
            for name in free_symbols(e):
                if name not in declared:
                    missing.setdefault(name, None)
    return [qfnra.declare_real(Symbol(name)) for name in missing]


class MicrofluidicsBackend:
    def __init__(self, config: Optional[BackendConfig] = None, *, debug: bool = False):
        self.config = config or BackendConfig()
        self.placement = PlacementStrategySet(self.config.assume_infinite_area)
        self.multiphase = MultiPhaseStrategySet()
        self.pressure_flow = PressureFlowStrategySet(self.config.worst_case_analysis)
        self.single_phase = SinglePhaseStrategySet()

        self.debug = bool(debug)
        self._trace: List[Dict[str, Any]] = []
        self._trace_max: int = 400

    @property
    def strategy_sets(self) -> List[Tuple[str, TranslationStrategy]]:
        return [
            ("placement", self.placement),
            ("multiphase", self.multiphase),
            ("pressure/flow", self.pressure_flow),
            ("single phase", self.single_phase),
        ]

    # -----------------------------
    # Public API
    # -----------------------------
    def generate(self, schematic: Schematic, params: ProcessParameters) -> List[Expression]:
        """The sorted problem body: every declaration and assertion, no commands."""
        self._log(f"⚙️  Compiling Schematic: {schematic.name}")
        self._log("   • Resolving Primitive Types...", end=" ")
        type_table = PrimitiveTypeTable.from_schematic(schematic)
        self._log("✅ OK")

        exprs = header()
        for label, strategy_set in self.strategy_sets:
            self._log(f"   • Translating {label}...", end=" ")
            generated = strategy_set.translate(schematic, params, type_table)
            self._t("translated", strategy=label, count=len(generated))
            self._log(f"✅ {len(generated)} expressions")
            exprs.extend(generated)

        implicit = declare_free_symbols(exprs)
        if implicit:
            self._t("implicit_declarations", names=[serialize(d[1]) for d in implicit])
        return sort_expressions(exprs + implicit)

    def run(self, schematic: Schematic, params: ProcessParameters,
            session: Optional[SolverSession] = None) -> BackendResult:
        start = time.perf_counter()
        exprs = self.generate(schematic, params)
        out = BackendResult(schematic_name=schematic.name, expressions=exprs)

        if self.config.write_smt2:
            out.smt2_path = self.write_smt2(schematic.name, exprs)
            self._log(f"   • Wrote {out.smt2_path}")

        if session is not None:
            self._log(f"   ├── Solving ({type(session).__name__})...", end=" ")
            with session:
                session.write_all(exprs)
                out.result = session.solve()
            if out.result.satisfiable:
                self._log(f"✅ SAT ({len(out.result)} symbols)")
                annotation = annotate_with_report(schematic, out.result)
                out.annotated = annotation.schematic
                out.skipped_symbols = annotation.skipped
            else:
                self._log("\n❌ UNSAT: no design satisfies the constraints")

        out.latency_ms = (time.perf_counter() - start) * 1000.0
        self._t("run_done", latency_ms=out.latency_ms, satisfiable=out.satisfiable)
        return out

    def write_smt2(self, name: str, exprs: List[Expression]) -> Path:
        out_dir = Path(self.config.output_dir or ".").expanduser()
        out_dir.mkdir(parents=True, exist_ok=True)
        path = out_dir / f"{name}.smt2"
        statements = [qfnra.use_qfnra(), *exprs, qfnra.check_sat(), qfnra.exit_solver()]
        path.write_text("".join(serialize(s) + "\n" for s in statements), encoding="utf-8")
        return path

    @property
    def trace(self) -> List[Dict[str, Any]]:
        return list(self._trace)

    # -----------------------------
    # internals
    # -----------------------------
    def _log(self, message: str, end: str = "\n") -> None:
        if self.config.verbose:
            print(message, end=end)

    def _t(self, event: str, **data):
        if not self.debug:
            return
        rec = {"event": event, **data}
        self._trace.append(rec)
        if len(self._trace) > self._trace_max:
            self._trace.pop(0)
