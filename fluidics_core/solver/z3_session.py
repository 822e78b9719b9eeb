"""
In-process Z3 session.

Speaks the same statements as the dReal session, read back through the
expression parser and mapped onto z3 terms. Z3 reports point models, so every
solved symbol gets the degenerate interval [v, v]. arcsin has no z3 counterpart
and is kept as an uninterpreted real function.
"""

from __future__ import annotations

from functools import reduce
from typing import Dict, Optional

import z3

from ..errors import ExpressionError, SolverError
from ..smt2.expressions import Decimal, Expression, Numeral, ParenList, Symbol, parse_many, serialize
from .session import IntervalResult, SolverSession


_ARITHMETIC = {
    "+": lambda l, r: l + r,
    "-": lambda l, r: l - r,
    "*": lambda l, r: l * r,
    "/": lambda l, r: l / r,
    "^": lambda l, r: l ** r,
}

_RELATIONS = {
    "=": lambda l, r: l == r,
    "<": lambda l, r: l < r,
    "<=": lambda l, r: l <= r,
    ">": lambda l, r: l > r,
    ">=": lambda l, r: l >= r,
}


class Z3Session(SolverSession):
    def __init__(self, *, timeout_ms: Optional[int] = None, debug: bool = False):
        super().__init__(debug=debug)
        self.timeout_ms = timeout_ms
        self.solver: Optional[z3.Solver] = None
        self.z3_vars: Dict[str, z3.ArithRef] = {}
        self._functions: Dict[str, z3.FuncDeclRef] = {}

    def _open(self) -> None:
        self.solver = z3.Solver()
        if self.timeout_ms is not None:
            self.solver.set(timeout=int(self.timeout_ms))
        self.z3_vars = {}
        self._functions = {"arcsin": z3.Function("arcsin", z3.RealSort(), z3.RealSort())}

    def _write(self, line: str) -> None:
        try:
            statements = parse_many(line)
        except ExpressionError as e:
            raise SolverError(f"could not read statement: {e}", line) from e
        for statement in statements:
            self._command(statement)

    def _command(self, statement: Expression) -> None:
        match statement:
            case ParenList(terms=(Symbol(name="set-logic"), *_)):
                return
            case ParenList(terms=(Symbol(name="check-sat"),)) | ParenList(terms=(Symbol(name="exit"),)):
                return
            case ParenList(terms=(Symbol(name="declare-fun"), Symbol(name=name),
                                  ParenList(terms=()), Symbol(name="Real"))):
                if name not in self.z3_vars:
                    self.z3_vars[name] = z3.Real(name)
                    self._t("register_var", name=name)
            case ParenList(terms=(Symbol(name="assert"), body)):
                self.solver.add(self._to_z3(body))
            case _:
                raise SolverError("unsupported statement", serialize(statement))

    def _solve(self) -> IntervalResult:
        verdict = self.solver.check()
        self._t("check", verdict=str(verdict))
        if verdict == z3.unsat:
            return IntervalResult.unsat()
        if verdict != z3.sat:
            raise SolverError("solver could not decide the problem", self.solver.reason_unknown())

        model = self.solver.model()
        intervals = {}
        for name, var in self.z3_vars.items():
            value = _to_float(model.eval(var, model_completion=True))
            if value is not None:
                intervals[name] = (value, value)
        return IntervalResult(satisfiable=True, intervals=intervals)

    def _close(self) -> None:
        self.solver = None

    # -----------------------------
    # expression mapping
    # -----------------------------
    def _to_z3(self, expr: Expression):
        match expr:
            case Symbol(name=name):
                if name in self.z3_vars:
                    return self.z3_vars[name]
                # undeclared variables must not auto-create fresh symbols
                raise SolverError("undeclared symbol referenced in assertion", name)
            case Numeral(value=value):
                return z3.RealVal(value)
            case Decimal(representation=text):
                return z3.RealVal(text)
            case ParenList(terms=(Symbol(name="-"), operand)):
                return -self._to_z3(operand)
            case ParenList(terms=(Symbol(name="ite"), cond, then, other)):
                return z3.If(self._to_z3(cond), self._to_z3(then), self._to_z3(other))
            case ParenList(terms=(Symbol(name="not"), operand)):
                return z3.Not(self._to_z3(operand))
            case ParenList(terms=(Symbol(name="and"), *args)):
                return z3.And(*[self._to_z3(a) for a in args])
            case ParenList(terms=(Symbol(name="or"), *args)):
                return z3.Or(*[self._to_z3(a) for a in args])
            case ParenList(terms=(Symbol(name=op), lhs, rhs)) if op in _RELATIONS:
                return _RELATIONS[op](self._to_z3(lhs), self._to_z3(rhs))
            case ParenList(terms=(Symbol(name=op), first, *rest)) if op in _ARITHMETIC and rest:
                return reduce(_ARITHMETIC[op], (self._to_z3(a) for a in rest), self._to_z3(first))
            case ParenList(terms=(Symbol(name=fn), *args)) if fn in self._functions:
                return self._functions[fn](*[self._to_z3(a) for a in args])
        raise SolverError("unsupported term", serialize(expr))


def _to_float(value) -> Optional[float]:
    if z3.is_rational_value(value):
        return float(value.as_fraction())
    if z3.is_algebraic_value(value):
        return float(value.approx(20).as_fraction())
    return None
