from __future__ import annotations

from .annotation import annotate
from .backend import BackendConfig, BackendResult, MicrofluidicsBackend
from .errors import (
    AnnotationError,
    CacheUsageError,
    CodeGenerationError,
    ExpressionError,
    ParameterError,
    SolverError,
)
from .factory import create_backend, create_session, load_parameters, solve_schematic
from .params import ProcessParameters
from .schematic import Schematic, SchematicBuilder
from .type_table import PrimitiveTypeTable

__version__ = "0.1.0"

__all__ = [
    "annotate",
    "BackendConfig",
    "BackendResult",
    "MicrofluidicsBackend",
    "AnnotationError",
    "CacheUsageError",
    "CodeGenerationError",
    "ExpressionError",
    "ParameterError",
    "SolverError",
    "create_backend",
    "create_session",
    "load_parameters",
    "solve_schematic",
    "ProcessParameters",
    "Schematic",
    "SchematicBuilder",
    "PrimitiveTypeTable",
]
