"""
Default strategy sets, in the order the backend runs them.

Any member can be swapped for an alternative model:

    placement = PlacementStrategySet()
    placement.replace("critical_angle", MyAngleStrategy())
"""

from __future__ import annotations

from .base import StrategySet
from .multiphase import DropletConstraintStrategy, TJunctionStrategy
from .placement import (
    ChannelLengthStrategy,
    ChannelPlacementConstraintStrategy,
    ControlPointPlacementConstraintStrategy,
    CosineLawCriticalAngleStrategy,
    FiniteChipAreaRuleStrategy,
    InfiniteChipAreaRuleStrategy,
    PythagoreanLengthRuleStrategy,
)
from .pressureflow import (
    ChannelResistanceStrategy,
    FluidEntryExitStrategy,
    SimplePressureFlowStrategy,
)
from .singlephase import (
    ElectrophoreticCrossStrategy,
    ElectrophoreticNodeStrategy,
    ReservoirStrategy,
)


class PlacementStrategySet(StrategySet):
    def __init__(self, assume_infinite_area: bool = False):
        self.assume_infinite_area = assume_infinite_area
        chip_area = (InfiniteChipAreaRuleStrategy() if assume_infinite_area
                     else FiniteChipAreaRuleStrategy())
        super().__init__([
            ("channel_placement", ChannelPlacementConstraintStrategy()),
            ("chip_area", chip_area),
            ("control_point_placement", ControlPointPlacementConstraintStrategy()),
            ("critical_angle", CosineLawCriticalAngleStrategy()),
            ("length_rule", PythagoreanLengthRuleStrategy()),
            ("channel_length", ChannelLengthStrategy()),
        ])


class PressureFlowStrategySet(StrategySet):
    def __init__(self, worst_case_analysis: bool = False):
        self.worst_case_analysis = worst_case_analysis
        super().__init__([
            ("channel_resistance", ChannelResistanceStrategy()),
            ("entry_exit", FluidEntryExitStrategy()),
            ("pressure_flow", SimplePressureFlowStrategy(worst_case_analysis)),
        ])


class MultiPhaseStrategySet(StrategySet):
    def __init__(self):
        super().__init__([
            ("droplet_constraint", DropletConstraintStrategy()),
            ("t_junction", TJunctionStrategy()),
        ])


class SinglePhaseStrategySet(StrategySet):
    def __init__(self):
        super().__init__([
            ("electrophoretic_cross", ElectrophoreticCrossStrategy()),
            ("electrophoretic_node", ElectrophoreticNodeStrategy()),
            ("reservoir", ReservoirStrategy()),
        ])
