"""
Symbol Name Generator

The only textual contract between the device graph and the solver:

    <entity>.<attribute>          node, connection or constraint attribute
    <node>.<port>.<attribute>     port attribute

Entity names are unique within a schematic, so the names round-trip through
back-annotation.
"""

from __future__ import annotations

from typing import Any

from ..errors import CodeGenerationError
from ..schematic import Connection, Node, Port, Schematic
from .expressions import Symbol

DELIMITER = "."

# mathematical constants, declared and pinned by the backend header
PI = Symbol("PI")
EULER = Symbol("E")


def attribute_symbol(schematic: Schematic, entity: Any, attribute: str) -> Symbol:
    return Symbol(f"{schematic.name_of(entity)}{DELIMITER}{attribute}")


def port_symbol(schematic: Schematic, port: Port, attribute: str) -> Symbol:
    node_name = schematic.name_of(port.parent)
    if port.parent.ports.get(port.name) is not port:
        raise CodeGenerationError(f"could not map port to name for node '{node_name}'")
    return Symbol(DELIMITER.join((node_name, port.name, attribute)))


# ----------------------------------------------------------------------------
# nodes
# ----------------------------------------------------------------------------

def node_x(schematic: Schematic, node: Node) -> Symbol:
    return attribute_symbol(schematic, node, "pos_x")


def node_y(schematic: Schematic, node: Node) -> Symbol:
    return attribute_symbol(schematic, node, "pos_y")


def node_pressure(schematic: Schematic, node: Node) -> Symbol:
    """Pressure throughout a node, i.e. at every port."""
    return attribute_symbol(schematic, node, "pressure")


def port_pressure(schematic: Schematic, port: Port) -> Symbol:
    return port_symbol(schematic, port, "pressure")


def t_junction_epsilon(schematic: Schematic, junction: Node) -> Symbol:
    """Sharpness of the corners of a T-junction."""
    return attribute_symbol(schematic, junction, "epsilon")


# ----------------------------------------------------------------------------
# channels
# ----------------------------------------------------------------------------

def channel_length(schematic: Schematic, ch: Connection) -> Symbol:
    return attribute_symbol(schematic, ch, "length")


def channel_flow_rate(schematic: Schematic, ch: Connection) -> Symbol:
    """Positive flow runs out of the "from" port and into the "to" port."""
    return attribute_symbol(schematic, ch, "flowrate")


def channel_flow_rate_worst_case(schematic: Schematic, ch: Connection) -> Symbol:
    return attribute_symbol(schematic, ch, "flowrate_worst_case")


def channel_viscosity(schematic: Schematic, ch: Connection) -> Symbol:
    return attribute_symbol(schematic, ch, "viscosity")


def channel_resistance(schematic: Schematic, ch: Connection) -> Symbol:
    return attribute_symbol(schematic, ch, "resistance")


def channel_droplet_volume(schematic: Schematic, ch: Connection) -> Symbol:
    return attribute_symbol(schematic, ch, "droplet_volume")


def channel_height(schematic: Schematic, ch: Connection) -> Symbol:
    return attribute_symbol(schematic, ch, "height")


def channel_width(schematic: Schematic, ch: Connection) -> Symbol:
    return attribute_symbol(schematic, ch, "width")


def channel_radius(schematic: Schematic, ch: Connection) -> Symbol:
    return attribute_symbol(schematic, ch, "radius")


def channel_max_droplets(schematic: Schematic, ch: Connection) -> Symbol:
    return attribute_symbol(schematic, ch, "max_droplets")


def channel_droplet_resistance(schematic: Schematic, ch: Connection) -> Symbol:
    return attribute_symbol(schematic, ch, "droplet_resistance")
