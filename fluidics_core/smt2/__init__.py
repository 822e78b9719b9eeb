from __future__ import annotations

from .expressions import (
    Decimal,
    Expression,
    Numeral,
    ParenList,
    Symbol,
    evaluate,
    parse,
    parse_many,
    serialize,
)
from .checker import AssertionChecker
from . import qfnra, symbols

__all__ = [
    "Decimal",
    "Expression",
    "Numeral",
    "ParenList",
    "Symbol",
    "evaluate",
    "parse",
    "parse_many",
    "serialize",
    "AssertionChecker",
    "qfnra",
    "symbols",
]
