"""
Back-Annotation

Writes solved values back onto the device graph. Symbol names follow the
naming scheme of fluidics_core.smt2.symbols:

    entity.attribute          node, else connection, else constraint
    node.port.attribute       port attribute

Each symbol gets the midpoint of its interval. Names of any other shape, and
names whose entity does not exist (PI, E, ...), are skipped.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List

from .errors import AnnotationError
from .schematic import Schematic, SchematicBuilder
from .smt2.symbols import DELIMITER
from .solver.session import IntervalResult


@dataclass
class Annotation:
    schematic: Schematic
    written: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)


def annotate_with_report(schematic: Schematic, result: IntervalResult) -> Annotation:
    if not result.satisfiable:
        raise AnnotationError(
            f"cannot annotate schematic '{schematic.name}' from an unsatisfiable result")

    builder = SchematicBuilder(schematic)
    written: List[str] = []
    skipped: List[str] = []

    for name in result.intervals:
        value = result.midpoint(name)
        parts = name.split(DELIMITER)
        if len(parts) == 2:
            entity, attribute = parts
            if entity in schematic.nodes:
                builder.set_node_attribute(entity, attribute, value)
            elif entity in schematic.connections:
                builder.set_connection_attribute(entity, attribute, value)
            elif entity in schematic.constraints:
                builder.set_constraint_attribute(entity, attribute, value)
            else:
                skipped.append(name)
                continue
        elif len(parts) == 3:
            node, port, attribute = parts
            if node not in schematic.nodes or port not in schematic.nodes[node].ports:
                skipped.append(name)
                continue
            builder.set_port_attribute(node, port, attribute, value)
        else:
            skipped.append(name)
            continue
        written.append(name)

    return Annotation(builder.build(), written, skipped)


def annotate(schematic: Schematic, result: IntervalResult) -> Schematic:
    """A copy of ``schematic`` carrying the solved values; the input is unchanged."""
    return annotate_with_report(schematic, result).schematic
