"""
Fluidics Core - Error Taxonomy

Every fault raised by the backend is one of these classes. They all propagate
synchronously to the caller; nothing in the package retries.

1) Schema mismatch (CodeGenerationError): the graph does not have a type, port
   or attribute that a strategy needs.
2) Expression faults (ExpressionError and subclasses): invalid literal syntax or
   an expression that cannot be evaluated.
3) Solver session faults (SolverError and subclasses): executable missing, bad
   call sequence or an unexpected response line.
4) Cache usage (CacheUsageError): cached strategy output read before any
   translation happened.
"""

from __future__ import annotations

from typing import Optional


class CodeGenerationError(Exception):
    """Raised when the graph is structurally incompatible with a strategy."""
    def __init__(self, message: str, entity: Optional[str] = None):
        self.message = message
        self.entity = entity
        prefix = f"[{entity}] " if entity else ""
        super().__init__(f"{prefix}{message}")


# ============================================================================
# EXPRESSION FAULTS
# ============================================================================

class ExpressionError(Exception):
    """Base class for faults in building or evaluating expressions."""
    pass


class InvalidSymbolError(ExpressionError):
    def __init__(self, message: str, name: str):
        self.name = name
        super().__init__(message)


class MalformedDecimalError(ExpressionError):
    def __init__(self, message: str, representation: str):
        self.representation = representation
        super().__init__(message)


class UnboundVariableError(ExpressionError):
    """Raised when the evaluator meets a symbol with no binding."""
    def __init__(self, name: str):
        self.name = name
        super().__init__(f"no binding for variable '{name}'")


class EmptyExpressionError(ExpressionError):
    def __init__(self):
        super().__init__("cannot evaluate empty expression")


class UnsupportedOperatorError(ExpressionError):
    """Raised for unknown operators, wrong arity, or a non-symbol head."""
    def __init__(self, message: str, operator: Optional[str] = None):
        self.operator = operator
        super().__init__(message)


class ExpressionParseError(ExpressionError):
    def __init__(self, message: str, text: str, position: Optional[int] = None):
        self.text = text
        self.position = position
        prefix = f"Offset {position}: " if position is not None else ""
        super().__init__(f"{prefix}{message}")


# ============================================================================
# SOLVER SESSION FAULTS
# ============================================================================

class SolverError(Exception):
    """Raised when the decision procedure reports an error or misbehaves."""
    def __init__(self, message: str, line: Optional[str] = None):
        self.message = message
        self.line = line
        suffix = f": '{line}'" if line is not None else ""
        super().__init__(f"{message}{suffix}")


class SolverNotFoundError(SolverError):
    def __init__(self, executable: str, searched: tuple = ()):
        self.executable = executable
        self.searched = tuple(searched)
        super().__init__(f"cannot find {executable} executable")


class SolverStateError(SolverError):
    """Raised for an invalid open/write/solve/close call sequence."""
    pass


class SolverParseError(SolverError):
    """Raised when a response line does not match the expected grammar."""
    pass


# ============================================================================
# OTHER
# ============================================================================

class CacheUsageError(Exception):
    """Raised when cached strategy output is read before any translation."""
    def __init__(self, strategy: str):
        self.strategy = strategy
        super().__init__(
            f"{strategy}: cached results requested before translate() was called"
        )


class AnnotationError(Exception):
    pass


class ParameterError(Exception):
    """Raised when process parameters cannot be loaded."""
    def __init__(self, message: str, key: Optional[str] = None):
        self.key = key
        super().__init__(message)
