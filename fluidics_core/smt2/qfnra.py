"""
QF_NRA Term Builder

Stateless constructors for quantifier-free nonlinear real arithmetic terms.
Every function returns a fresh tree and never mutates its inputs.
"""

from __future__ import annotations

from typing import Sequence

from .expressions import Decimal, Expression, Numeral, ParenList, Symbol


def _infix(lhs: Expression, op: str, rhs: Expression) -> ParenList:
    return ParenList(Symbol(op), lhs, rhs)


# ----------------------------------------------------------------------------
# arithmetic
# ----------------------------------------------------------------------------

def add(lhs: Expression, rhs: Expression) -> ParenList:
    return _infix(lhs, "+", rhs)


def subtract(lhs: Expression, rhs: Expression) -> ParenList:
    return _infix(lhs, "-", rhs)


def multiply(lhs: Expression, rhs: Expression) -> ParenList:
    return _infix(lhs, "*", rhs)


def divide(lhs: Expression, rhs: Expression) -> ParenList:
    return _infix(lhs, "/", rhs)


def pow(base: Expression, exponent: Expression) -> ParenList:
    return _infix(base, "^", exponent)


def sum_of(terms: Sequence[Expression]) -> Expression:
    """Left-nested sum. An empty sequence is the numeral 0."""
    terms = list(terms)
    if not terms:
        return Numeral(0)
    total = terms[0]
    for t in terms[1:]:
        total = add(total, t)
    return total


def arcsin(argument: Expression) -> ParenList:
    return ParenList(Symbol("arcsin"), argument)


def conditional(condition: Expression, then: Expression, otherwise: Expression) -> ParenList:
    """(ite condition then otherwise)"""
    return ParenList(Symbol("ite"), condition, then, otherwise)


# ----------------------------------------------------------------------------
# relations
# ----------------------------------------------------------------------------

def equal(lhs: Expression, rhs: Expression) -> ParenList:
    return _infix(lhs, "=", rhs)


def less_than(lhs: Expression, rhs: Expression) -> ParenList:
    return _infix(lhs, "<", rhs)


def less_than_equal(lhs: Expression, rhs: Expression) -> ParenList:
    return _infix(lhs, "<=", rhs)


def greater(lhs: Expression, rhs: Expression) -> ParenList:
    return _infix(lhs, ">", rhs)


def greater_equal(lhs: Expression, rhs: Expression) -> ParenList:
    return _infix(lhs, ">=", rhs)


# ----------------------------------------------------------------------------
# statements
# ----------------------------------------------------------------------------

def assert_that(term: Expression) -> ParenList:
    return ParenList(Symbol("assert"), term)


def assert_equal(lhs: Expression, rhs: Expression) -> ParenList:
    return assert_that(equal(lhs, rhs))


def assert_less_than(lhs: Expression, rhs: Expression) -> ParenList:
    return assert_that(less_than(lhs, rhs))


def assert_less_than_equal(lhs: Expression, rhs: Expression) -> ParenList:
    return assert_that(less_than_equal(lhs, rhs))


def assert_greater(lhs: Expression, rhs: Expression) -> ParenList:
    return assert_that(greater(lhs, rhs))


def assert_greater_equal(lhs: Expression, rhs: Expression) -> ParenList:
    return assert_that(greater_equal(lhs, rhs))


def declare_real(symbol: Symbol) -> ParenList:
    """(declare-fun symbol () Real)"""
    return ParenList(Symbol("declare-fun"), symbol, ParenList(), Symbol("Real"))


def use_qfnra() -> ParenList:
    return ParenList(Symbol("set-logic"), Symbol("QF_NRA"))


def check_sat() -> ParenList:
    return ParenList(Symbol("check-sat"))


def exit_solver() -> ParenList:
    return ParenList(Symbol("exit"))


def real(value: float) -> Decimal:
    return Decimal.from_float(value)


def is_declaration(expr: Expression) -> bool:
    return isinstance(expr, ParenList) and expr.head == Symbol("declare-fun")


def is_assertion(expr: Expression) -> bool:
    return isinstance(expr, ParenList) and expr.head == Symbol("assert")
