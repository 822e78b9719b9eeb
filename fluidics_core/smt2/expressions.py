"""
SMT-LIB Expression Model

Terms are a closed union of four immutable node kinds:

    Symbol    validated identifier (variables and operator tokens)
    Numeral   exact integer literal
    Decimal   real literal, always written with a decimal point
    ParenList ordered compound term, usually (operator arg ...)

Serialization, evaluation and parsing are plain functions that pattern match on
the node kind, so adding a new consumer never touches the node classes.
"""

from __future__ import annotations

import decimal
import math
import re
from dataclasses import dataclass
from typing import Dict, Iterable, Iterator, List, Mapping, Tuple, Union

from ..errors import (
    EmptyExpressionError,
    ExpressionError,
    ExpressionParseError,
    InvalidSymbolError,
    MalformedDecimalError,
    UnboundVariableError,
    UnsupportedOperatorError,
)


# ============================================================================
# LEAVES
# ============================================================================

_SYMBOL_EXTRA_CHARS = frozenset("+-/*=%?!.$_~&^<>@")


@dataclass(frozen=True)
class Symbol:
    """
    A non-empty identifier that does not start with a digit.

    Allowed characters are letters, digits and + - / * = % ? ! . $ _ ~ & ^ < > @
    """
    name: str

    def __post_init__(self):
        name = self.name
        if not isinstance(name, str) or not name:
            raise InvalidSymbolError("symbol name cannot be empty", str(name))
        if name[0].isdigit():
            raise InvalidSymbolError("symbol name cannot start with a digit", name)
        for ch in name:
            if ch.isalpha() or ch.isdigit() or ch in _SYMBOL_EXTRA_CHARS:
                continue
            raise InvalidSymbolError(
                f"character '{ch}' cannot appear in a symbol name", name
            )

    def __str__(self):
        return self.name


@dataclass(frozen=True)
class Numeral:
    value: int

    def __post_init__(self):
        if isinstance(self.value, bool) or not isinstance(self.value, int):
            raise ExpressionError(f"numeral requires an integer, got {self.value!r}")

    def __str__(self):
        return str(self.value)


_INTEGER_PART = re.compile(r"^[+-]?[0-9]+$")
_FRACTION_PART = re.compile(r"^[0-9]+$")


@dataclass(frozen=True, init=False)
class Decimal:
    """
    A real literal in the form <integer>.<digits>.

    Text without a decimal point gets ".0" appended, so Decimal("5") is 5.0.
    """
    representation: str

    def __init__(self, representation: str):
        object.__setattr__(self, "representation", _normalize_decimal(representation))

    @classmethod
    def from_float(cls, value: float) -> "Decimal":
        """Build a literal from a float without exponent notation."""
        value = float(value)
        if math.isnan(value) or math.isinf(value):
            raise MalformedDecimalError(
                f"cannot represent {value!r} as a decimal literal", repr(value)
            )
        text = repr(value)
        if "e" in text or "E" in text:
            text = format(decimal.Decimal(text), "f")
        return cls(text)

    @property
    def value(self) -> float:
        return float(self.representation)

    def __str__(self):
        return self.representation


def _normalize_decimal(representation: str) -> str:
    if representation is None or representation == "":
        raise MalformedDecimalError("decimal representation cannot be empty", "")
    text = str(representation)
    dot = text.find(".")
    if dot == -1:
        dot = len(text)
        text = text + ".0"
    if dot + 1 == len(text):
        raise MalformedDecimalError(
            f"decimal representation '{text}' must have a numeral after decimal point",
            text,
        )
    if not _INTEGER_PART.match(text[:dot]) or not _FRACTION_PART.match(text[dot + 1:]):
        raise MalformedDecimalError(f"malformed decimal representation '{text}'", text)
    return text


# ============================================================================
# COMPOUND TERMS
# ============================================================================

@dataclass(frozen=True, init=False)
class ParenList:
    """Ordered compound term. ParenList(Symbol("+"), a, b) is (+ a b)."""
    terms: Tuple["Expression", ...]

    def __init__(self, *terms: "Expression"):
        for t in terms:
            if not isinstance(t, (Symbol, Numeral, Decimal, ParenList)):
                raise ExpressionError(f"not an expression: {t!r}")
        object.__setattr__(self, "terms", tuple(terms))

    @classmethod
    def of(cls, terms: Iterable["Expression"]) -> "ParenList":
        return cls(*terms)

    @property
    def head(self):
        return self.terms[0] if self.terms else None

    def __len__(self):
        return len(self.terms)

    def __iter__(self) -> Iterator["Expression"]:
        return iter(self.terms)

    def __getitem__(self, index):
        return self.terms[index]

    def __str__(self):
        return serialize(self)


Expression = Union[Symbol, Numeral, Decimal, ParenList]


# ============================================================================
# SERIALIZATION
# ============================================================================

def serialize(expr: Expression) -> str:
    """Canonical prefix text with single-space separators: (assert (= x 1.0))."""
    match expr:
        case Symbol(name=name):
            return name
        case Numeral(value=value):
            return str(value)
        case Decimal(representation=text):
            return text
        case ParenList(terms=terms):
            return "(" + " ".join(serialize(t) for t in terms) + ")"
    raise ExpressionError(f"cannot serialize {expr!r}")


def free_symbols(expr: Expression) -> List[str]:
    """Names of all symbols in argument positions, in first-seen order."""
    seen: Dict[str, None] = {}

    def walk(e: Expression, is_head: bool):
        match e:
            case Symbol(name=name):
                if not is_head:
                    seen.setdefault(name, None)
            case ParenList(terms=terms):
                for i, t in enumerate(terms):
                    walk(t, i == 0 and isinstance(t, Symbol))

    walk(expr, False)
    return list(seen)


# ============================================================================
# EVALUATION
# ============================================================================

def _pow(base: float, exponent: float) -> float:
    return math.pow(base, exponent)


_BINARY_OPS = {
    "+": lambda l, r: l + r,
    "-": lambda l, r: l - r,
    "*": lambda l, r: l * r,
    "/": lambda l, r: l / r,
    "^": _pow,
}

RELATIONS = {
    "=": lambda l, r: l == r,
    "<": lambda l, r: l < r,
    "<=": lambda l, r: l <= r,
    ">": lambda l, r: l > r,
    ">=": lambda l, r: l >= r,
}


def evaluate(expr: Expression, bindings: Mapping[str, float]) -> float:
    """
    Reduce an arithmetic term to a float.

    Symbols are looked up in ``bindings``. Compound terms must be headed by an
    operator symbol: binary + - * / ^, unary arcsin, or (ite cond then else)
    where cond is a binary relation.

    Raises:
        UnboundVariableError: a symbol has no binding.
        EmptyExpressionError: an empty compound term.
        UnsupportedOperatorError: unknown operator, wrong arity or non-symbol head.
    """
    match expr:
        case Symbol(name=name):
            if name not in bindings:
                raise UnboundVariableError(name)
            return float(bindings[name])
        case Numeral(value=value):
            return float(value)
        case Decimal():
            return expr.value
        case ParenList(terms=()):
            raise EmptyExpressionError()
        case ParenList(terms=(only,)):
            return evaluate(only, bindings)
        case ParenList(terms=(Symbol(name="ite"), cond, then, other)):
            if _evaluate_condition(cond, bindings):
                return evaluate(then, bindings)
            return evaluate(other, bindings)
        case ParenList(terms=(Symbol(name="arcsin"), arg)):
            return math.asin(evaluate(arg, bindings))
        case ParenList(terms=(Symbol(name=op), lhs, rhs)) if op in _BINARY_OPS:
            return _BINARY_OPS[op](evaluate(lhs, bindings), evaluate(rhs, bindings))
        case ParenList(terms=(Symbol(name=op), *args)):
            raise UnsupportedOperatorError(
                f"cannot evaluate unknown function '{op}' with {len(args)} argument(s)", op
            )
        case ParenList():
            raise UnsupportedOperatorError(
                f"cannot evaluate expression with non-symbol head: {serialize(expr)}"
            )
    raise ExpressionError(f"cannot evaluate {expr!r}")


def _evaluate_condition(expr: Expression, bindings: Mapping[str, float]) -> bool:
    match expr:
        case ParenList(terms=(Symbol(name=rel), lhs, rhs)) if rel in RELATIONS:
            return RELATIONS[rel](evaluate(lhs, bindings), evaluate(rhs, bindings))
    raise UnsupportedOperatorError(f"unsupported condition: {serialize(expr)}")


# ============================================================================
# PARSING
# ============================================================================

_TOKEN = re.compile(r"\s*(?:(;[^\n]*)|(\()|(\))|([^\s();]+))")
_NUMERAL = re.compile(r"^-?[0-9]+$")
_DECIMAL = re.compile(r"^-?[0-9]+\.[0-9]+$")


def _tokenize(text: str) -> Iterator[Tuple[str, int]]:
    pos = 0
    end = len(text)
    while pos < end:
        m = _TOKEN.match(text, pos)
        if m is None:
            if text[pos:].strip() == "":
                return
            raise ExpressionParseError("unexpected character", text, pos)
        if m.end() == pos:
            return
        pos = m.end()
        comment, lpar, rpar, atom = m.groups()
        if comment is not None:
            continue
        if lpar is not None:
            yield "(", m.start(2)
        elif rpar is not None:
            yield ")", m.start(3)
        elif atom is not None:
            yield atom, m.start(4)


def _atom(token: str, text: str, pos: int) -> Expression:
    if _NUMERAL.match(token):
        return Numeral(int(token))
    if _DECIMAL.match(token):
        return Decimal(token)
    try:
        return Symbol(token)
    except InvalidSymbolError as e:
        raise ExpressionParseError(str(e), text, pos) from e


def parse_many(text: str) -> List[Expression]:
    """Read every top-level term in ``text`` (``;`` starts a line comment)."""
    stack: List[List[Expression]] = []
    out: List[Expression] = []
    for token, pos in _tokenize(text):
        if token == "(":
            stack.append([])
        elif token == ")":
            if not stack:
                raise ExpressionParseError("unbalanced ')'", text, pos)
            term = ParenList(*stack.pop())
            (stack[-1] if stack else out).append(term)
        else:
            term = _atom(token, text, pos)
            (stack[-1] if stack else out).append(term)
    if stack:
        raise ExpressionParseError("unterminated '('", text, len(text))
    return out


def parse(text: str) -> Expression:
    terms = parse_many(text)
    if len(terms) != 1:
        raise ExpressionParseError(f"expected exactly one term, found {len(terms)}", text)
    return terms[0]
