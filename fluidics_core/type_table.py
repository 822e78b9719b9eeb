"""
Primitive Type Table
====================
Maps the type names a microfluidic schematic must declare onto the TypeDef
objects of one particular schematic, so strategies can match by subtype.

Base types are required. Device and constraint types are optional: when a
schematic does not declare one, the strategies targeting it match nothing.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .errors import CodeGenerationError
from .schematic import Schematic, TypeDef, UndeclaredIdentifierError


@dataclass(frozen=True)
class PrimitiveTypeTable:
    microfluid_port: TypeDef
    control_point: TypeDef
    pressure_control_point: TypeDef
    voltage_control_point: TypeDef
    channel_crossing: TypeDef
    microfluid_channel: TypeDef

    # device node types
    t_junction: Optional[TypeDef] = None
    fluid_entry: Optional[TypeDef] = None
    fluid_exit: Optional[TypeDef] = None
    electrophoretic_cross: Optional[TypeDef] = None
    electrophoretic_node: Optional[TypeDef] = None
    reservoir: Optional[TypeDef] = None

    # constraint types
    control_point_placement: Optional[TypeDef] = None
    channel_placement: Optional[TypeDef] = None
    channel_droplet_volume: Optional[TypeDef] = None

    @classmethod
    def from_schematic(cls, schematic: Schematic) -> "PrimitiveTypeTable":
        try:
            table = cls(
                microfluid_port=schematic.get_port_type("microfluidPort"),
                control_point=schematic.get_node_type("controlPoint"),
                pressure_control_point=schematic.get_node_type("pressureControlPoint"),
                voltage_control_point=schematic.get_node_type("voltageControlPoint"),
                channel_crossing=schematic.get_node_type("channelCrossing"),
                microfluid_channel=schematic.get_connection_type("microfluidChannel"),
                t_junction=schematic.node_types.get("tJunction"),
                fluid_entry=schematic.node_types.get("fluidEntry"),
                fluid_exit=schematic.node_types.get("fluidExit"),
                electrophoretic_cross=schematic.node_types.get("electrophoreticCross"),
                electrophoretic_node=schematic.node_types.get("electrophoreticNode"),
                reservoir=schematic.node_types.get("reservoir"),
                control_point_placement=schematic.constraint_types.get(
                    "controlPointPlacementConstraint"),
                channel_placement=schematic.constraint_types.get(
                    "channelPlacementConstraint"),
                channel_droplet_volume=schematic.constraint_types.get(
                    "channelDropletVolumeConstraint"),
            )
        except UndeclaredIdentifierError as e:
            raise CodeGenerationError(
                f"could not find required microfluidic schematic type '{e.identifier}'; "
                "schematic version mismatch or not a microfluidic schematic"
            ) from e
        table.check_hierarchy()
        return table

    def check_hierarchy(self) -> None:
        if not self.pressure_control_point.is_subtype_of(self.control_point):
            raise CodeGenerationError(
                "pressure control point type is not a subtype of control point")
        if not self.voltage_control_point.is_subtype_of(self.control_point):
            raise CodeGenerationError(
                "voltage control point type is not a subtype of control point")
