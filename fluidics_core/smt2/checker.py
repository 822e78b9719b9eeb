"""
Assertion Checker

A numeric oracle for generated assertions. Given a table of variable bindings,
each (assert (<rel> <lhs> <rhs>)) is evaluated and its relation checked. It
validates strategy output against a known candidate solution and stands in for
the real solver in tests.

non_assertions_are_errors:
    - False (default): anything not shaped like an assertion is ignored
    - True: strict mode; such terms count as failures
"""

from __future__ import annotations

from typing import Dict, Iterable, Optional

from ..errors import ExpressionError
from .expressions import Expression, ParenList, Symbol, evaluate, RELATIONS


class AssertionChecker:
    def __init__(self, delta: float = 1e-6, non_assertions_are_errors: bool = False):
        self.delta = delta
        self.non_assertions_are_errors = non_assertions_are_errors
        self.bindings: Dict[str, float] = {}

        # diagnostics for the most recently checked assertion
        self.last_expression: Optional[Expression] = None
        self.last_lhs: Optional[float] = None
        self.last_rhs: Optional[float] = None
        self.last_error: Optional[Exception] = None

    def add_binding(self, name, value: float) -> None:
        if isinstance(name, Symbol):
            name = name.name
        self.bindings[name] = float(value)

    def add_bindings(self, values: Dict) -> None:
        for k, v in values.items():
            self.add_binding(k, v)

    def verify_all(self, exprs: Iterable[Expression]) -> bool:
        """True iff every term passes. Stops at the first failure."""
        for e in exprs:
            if not self.verify(e):
                return False
        return True

    def verify(self, expr: Expression) -> bool:
        self.last_expression = expr
        self.last_lhs = None
        self.last_rhs = None
        self.last_error = None

        if not (
            isinstance(expr, ParenList)
            and len(expr) == 2
            and expr[0] == Symbol("assert")
            and isinstance(expr[1], ParenList)
        ):
            return not self.non_assertions_are_errors

        body = expr[1]
        if len(body) != 3 or not isinstance(body[0], Symbol):
            return False
        relation = body[0].name
        if relation not in RELATIONS:
            return False

        try:
            lhs = evaluate(body[1], self.bindings)
            rhs = evaluate(body[2], self.bindings)
        except (ExpressionError, ArithmeticError, ValueError) as e:
            self.last_error = e
            return False
        self.last_lhs = lhs
        self.last_rhs = rhs

        if relation == "=":
            return abs(lhs - rhs) < self.delta
        return RELATIONS[relation](lhs, rhs)

    def describe_last(self) -> str:
        """One-line summary of the last checked term, for assertion messages."""
        text = str(self.last_expression) if self.last_expression is not None else "<none>"
        if self.last_error is not None:
            return f"{text} failed to evaluate: {self.last_error}"
        return f"{text} LHS = {self.last_lhs} RHS = {self.last_rhs}"
