from __future__ import annotations

from .base import StrategySet, TranslationStrategy
from .multiphase import DropletConstraintStrategy, TJunctionStrategy
from .placement import (
    ChannelLengthStrategy,
    ChannelPlacementConstraintStrategy,
    ControlPointPlacementConstraintStrategy,
    CosineLawCriticalAngleStrategy,
    FiniteChipAreaRuleStrategy,
    InfiniteChipAreaRuleStrategy,
    MinimumChannelLengthStrategy,
    PythagoreanLengthRuleStrategy,
)
from .pressureflow import (
    AnalyticalPressureFlowStrategy,
    ChannelResistanceStrategy,
    CircularChannelResistanceStrategy,
    FluidEntryExitStrategy,
    SimplePressureFlowStrategy,
)
from .sets import (
    MultiPhaseStrategySet,
    PlacementStrategySet,
    PressureFlowStrategySet,
    SinglePhaseStrategySet,
)
from .singlephase import (
    ElectrophoreticCrossStrategy,
    ElectrophoreticNodeStrategy,
    ReservoirStrategy,
)

__all__ = [
    "TranslationStrategy",
    "StrategySet",
    "PlacementStrategySet",
    "PressureFlowStrategySet",
    "MultiPhaseStrategySet",
    "SinglePhaseStrategySet",
    "ChannelPlacementConstraintStrategy",
    "ControlPointPlacementConstraintStrategy",
    "FiniteChipAreaRuleStrategy",
    "InfiniteChipAreaRuleStrategy",
    "CosineLawCriticalAngleStrategy",
    "PythagoreanLengthRuleStrategy",
    "ChannelLengthStrategy",
    "MinimumChannelLengthStrategy",
    "ChannelResistanceStrategy",
    "CircularChannelResistanceStrategy",
    "FluidEntryExitStrategy",
    "SimplePressureFlowStrategy",
    "AnalyticalPressureFlowStrategy",
    "TJunctionStrategy",
    "DropletConstraintStrategy",
    "ElectrophoreticCrossStrategy",
    "ElectrophoreticNodeStrategy",
    "ReservoirStrategy",
]
