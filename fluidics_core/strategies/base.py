"""
Translation Strategy Framework

A strategy turns (schematic, process parameters, type table) into a list of
SMT expressions for one physical phenomenon or device type.

translate() always recomputes: it drops the previous cache, runs the
overridable translation_step(), then marks the fresh list as valid.
get_cached() only ever returns output of a completed translate().

A StrategySet runs a fixed, explicit, ordered list of named sub-strategies and
concatenates their output. Sub-strategies can be replaced by name; this is the
extension point for alternative physical models.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, List, Optional, Sequence, Tuple

from ..errors import CacheUsageError, CodeGenerationError
from ..params import ProcessParameters
from ..schematic import Schematic
from ..smt2.expressions import Expression
from ..type_table import PrimitiveTypeTable


class TranslationStrategy(ABC):
    def __init__(self):
        self._cached: List[Expression] = []
        self._cache_valid: bool = False

    def translate(
        self,
        schematic: Schematic,
        params: ProcessParameters,
        type_table: PrimitiveTypeTable,
    ) -> List[Expression]:
        self._cache_valid = False
        self._cached = []
        exprs = list(self.translation_step(schematic, params, type_table))
        self._cached = exprs
        self._cache_valid = True
        return list(exprs)

    def get_cached(self) -> List[Expression]:
        if not self._cache_valid:
            raise CacheUsageError(type(self).__name__)
        return list(self._cached)

    @property
    def is_cached(self) -> bool:
        return self._cache_valid

    @abstractmethod
    def translation_step(
        self,
        schematic: Schematic,
        params: ProcessParameters,
        type_table: PrimitiveTypeTable,
    ) -> List[Expression]:
        ...

    def __repr__(self):
        return f"{type(self).__name__}()"


class StrategySet(TranslationStrategy):
    """Ordered composite of named strategies."""

    def __init__(self, members: Sequence[Tuple[str, TranslationStrategy]]):
        super().__init__()
        self._members: List[Tuple[str, TranslationStrategy]] = []
        for name, strategy in members:
            if self.get(name) is not None:
                raise ValueError(f"duplicate strategy name '{name}' in {type(self).__name__}")
            self._members.append((name, strategy))

    @property
    def names(self) -> List[str]:
        return [name for name, _ in self._members]

    @property
    def strategies(self) -> List[TranslationStrategy]:
        return [s for _, s in self._members]

    def get(self, name: str) -> Optional[TranslationStrategy]:
        for member_name, strategy in self._members:
            if member_name == name:
                return strategy
        return None

    def replace(self, name: str, strategy: TranslationStrategy) -> TranslationStrategy:
        """Swap the sub-strategy registered under ``name``; returns the old one."""
        for i, (member_name, old) in enumerate(self._members):
            if member_name == name:
                self._members[i] = (name, strategy)
                return old
        raise KeyError(f"{type(self).__name__} has no strategy named '{name}'")

    def translation_step(self, schematic, params, type_table) -> List[Expression]:
        exprs: List[Expression] = []
        for _, strategy in self._members:
            exprs.extend(strategy.translate(schematic, params, type_table))
        return exprs

    def __repr__(self):
        inner = ", ".join(f"{n}={s!r}" for n, s in self._members)
        return f"{type(self).__name__}({inner})"


# ----------------------------------------------------------------------------
# helpers shared by the domain strategies
# ----------------------------------------------------------------------------

def schema_mismatch(what: str, entity: str, error: Exception) -> CodeGenerationError:
    """Wrap a missing port/attribute lookup as a fatal code generation fault."""
    return CodeGenerationError(
        f"{error} when inspecting {what} '{entity}'; possible schematic version mismatch",
        entity,
    )


def real_value(value: Any, name: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise TypeError(f"attribute '{name}' must be a real value, got {value!r}")
    return float(value)
