"""
Placement Strategies

Geometric constraints on node coordinates and channel lengths:
- channels forced through fixed points (zero signed triangle area)
- control points pinned to fixed coordinates
- chip area bounds (finite or unbounded)
- critical crossing angle between adjacent channels
- channel length consistency with node coordinates
- minimum / maximum channel length
"""

from __future__ import annotations

import math
from itertools import combinations
from typing import List, Optional

from ..errors import CodeGenerationError
from ..params import ProcessParameters
from ..schematic import Connection, ConstraintValue, Node, Schematic
from ..smt2 import qfnra, symbols
from ..smt2.expressions import Decimal, Expression, Numeral
from ..type_table import PrimitiveTypeTable
from .base import TranslationStrategy, real_value


def connecting_channel(
    schematic: Schematic,
    type_table: PrimitiveTypeTable,
    n1: Node,
    n2: Node,
    directed: bool = False,
) -> Optional[Connection]:
    """
    A channel from any port of n1 to any port of n2, or (when not directed)
    a channel between them in either direction. None if there is none.
    """
    for conn in schematic.connections.values():
        if not conn.type.is_subtype_of(type_table.microfluid_channel):
            continue
        src = conn.from_port.parent
        dst = conn.to_port.parent
        if src is n1 and dst is n2:
            return conn
        if not directed and src is n2 and dst is n1:
            return conn
    return None


def _constraint_error(schematic: Schematic, cxt: ConstraintValue, kind: str) -> CodeGenerationError:
    return CodeGenerationError(
        f"instance of {kind} has values with wrong types", schematic.name_of(cxt))


# ============================================================================
# POSITION CONSTRAINTS
# ============================================================================

class ChannelPlacementConstraintStrategy(TranslationStrategy):
    """
    Constrain a channel to pass through a point P.

    With channel endpoints I and J, the triangle IPJ must have zero area:
        x_i (y_p - y_j) + x_p (y_j - y_i) + x_j (y_i - y_p) = 0
    """

    def translation_step(self, schematic, params, type_table) -> List[Expression]:
        exprs: List[Expression] = []
        for _, cxt in schematic.iter_constraints_of(type_table.channel_placement):
            try:
                channel = cxt.get_attribute("channel")
                if not isinstance(channel, Connection):
                    raise TypeError("attribute 'channel' must be a connection")
                xp = Decimal.from_float(real_value(cxt.get_attribute("x"), "x"))
                yp = Decimal.from_float(real_value(cxt.get_attribute("y"), "y"))
            except (KeyError, TypeError) as e:
                raise _constraint_error(schematic, cxt, "channelPlacementConstraint") from e

            node_i = channel.from_port.parent
            node_j = channel.to_port.parent
            xi, yi = symbols.node_x(schematic, node_i), symbols.node_y(schematic, node_i)
            xj, yj = symbols.node_x(schematic, node_j), symbols.node_y(schematic, node_j)

            exprs.append(qfnra.assert_equal(
                Decimal("0.0"),
                qfnra.add(
                    qfnra.multiply(xi, qfnra.subtract(yp, yj)),
                    qfnra.add(
                        qfnra.multiply(xp, qfnra.subtract(yj, yi)),
                        qfnra.multiply(xj, qfnra.subtract(yi, yp)),
                    ),
                ),
            ))
        return exprs


class ControlPointPlacementConstraintStrategy(TranslationStrategy):
    """Pin a control point to the (x, y) of a controlPointPlacementConstraint."""

    def translation_step(self, schematic, params, type_table) -> List[Expression]:
        exprs: List[Expression] = []
        for _, cxt in schematic.iter_constraints_of(type_table.control_point_placement):
            try:
                node = cxt.get_attribute("node")
                if not isinstance(node, Node):
                    raise TypeError("attribute 'node' must be a node")
                x = real_value(cxt.get_attribute("x"), "x")
                y = real_value(cxt.get_attribute("y"), "y")
            except (KeyError, TypeError) as e:
                raise _constraint_error(schematic, cxt, "controlPointPlacementConstraint") from e
            exprs.append(qfnra.assert_equal(symbols.node_x(schematic, node), Decimal.from_float(x)))
            exprs.append(qfnra.assert_equal(symbols.node_y(schematic, node), Decimal.from_float(y)))
        return exprs


# ============================================================================
# CHIP AREA
# ============================================================================

class FiniteChipAreaRuleStrategy(TranslationStrategy):
    """Every control point lies strictly inside (0, maxX) x (0, maxY)."""

    def translation_step(self, schematic, params, type_table) -> List[Expression]:
        exprs: List[Expression] = []
        max_x = Decimal.from_float(params.maximum_chip_size_x)
        max_y = Decimal.from_float(params.maximum_chip_size_y)
        for _, node in schematic.iter_nodes_of(type_table.control_point):
            x = symbols.node_x(schematic, node)
            y = symbols.node_y(schematic, node)
            exprs.append(qfnra.assert_greater(x, Decimal("0.0")))
            exprs.append(qfnra.assert_greater(y, Decimal("0.0")))
            exprs.append(qfnra.assert_less_than(x, max_x))
            exprs.append(qfnra.assert_less_than(y, max_y))
        return exprs


class InfiniteChipAreaRuleStrategy(TranslationStrategy):
    """Unbounded chip: control points only need to lie in the positive quadrant."""

    def translation_step(self, schematic, params, type_table) -> List[Expression]:
        exprs: List[Expression] = []
        for _, node in schematic.iter_nodes_of(type_table.control_point):
            exprs.append(qfnra.assert_greater(symbols.node_x(schematic, node), Decimal("0.0")))
            exprs.append(qfnra.assert_greater(symbols.node_y(schematic, node), Decimal("0.0")))
        return exprs


# ============================================================================
# CRITICAL ANGLE
# ============================================================================

class CosineLawCriticalAngleStrategy(TranslationStrategy):
    """
    Bound the angle between two channels meeting at a node.

    Let A = n1 - n2 and B = n3 - n2. Then
        cos(theta) = (A . B) / (|A| |B|)
    Squaring both sides avoids the square roots:
        cos^2(theta_c) <= (A . B)^2 / (|A|^2 |B|^2)
    """

    def translation_step(self, schematic, params, type_table) -> List[Expression]:
        exprs: List[Expression] = []
        nodes = list(schematic.nodes.values())
        for a, b, c in combinations(nodes, 3):
            # each node of the triple takes a turn in the middle
            for n1, n2, n3 in ((a, b, c), (b, a, c), (a, c, b)):
                ch12 = connecting_channel(schematic, type_table, n1, n2)
                ch23 = connecting_channel(schematic, type_table, n2, n3)
                if ch12 is None or ch23 is None:
                    continue
                exprs.append(self.critical_angle_constraint(schematic, params, n1, n2, n3))
        return exprs

    def critical_angle_constraint(self, schematic: Schematic, params: ProcessParameters,
                                  n1: Node, n2: Node, n3: Node) -> Expression:
        n1x, n1y = symbols.node_x(schematic, n1), symbols.node_y(schematic, n1)
        n2x, n2y = symbols.node_x(schematic, n2), symbols.node_y(schematic, n2)
        n3x, n3y = symbols.node_x(schematic, n3), symbols.node_y(schematic, n3)

        ax = qfnra.subtract(n1x, n2x)
        ay = qfnra.subtract(n1y, n2y)
        bx = qfnra.subtract(n3x, n2x)
        by = qfnra.subtract(n3y, n2y)

        dot_squared = qfnra.pow(
            qfnra.add(qfnra.multiply(ax, bx), qfnra.multiply(ay, by)),
            Decimal("2.0"),
        )
        norms_squared = qfnra.multiply(
            qfnra.add(qfnra.multiply(ax, ax), qfnra.multiply(ay, ay)),
            qfnra.add(qfnra.multiply(bx, bx), qfnra.multiply(by, by)),
        )
        cos_squared_critical = Decimal.from_float(math.cos(params.critical_crossing_angle) ** 2)
        return qfnra.assert_less_than_equal(
            cos_squared_critical, qfnra.divide(dot_squared, norms_squared))


# ============================================================================
# LENGTHS
# ============================================================================

class PythagoreanLengthRuleStrategy(TranslationStrategy):
    """(x1 - x2)^2 + (y1 - y2)^2 = L^2 for every channel n1 -> n2."""

    def translation_step(self, schematic, params, type_table) -> List[Expression]:
        exprs: List[Expression] = []
        for n1 in schematic.nodes.values():
            for n2 in schematic.nodes.values():
                if n1 is n2:
                    continue
                channel = connecting_channel(schematic, type_table, n1, n2, directed=True)
                if channel is not None:
                    exprs.append(self.length_assertion(schematic, n1, n2, channel))
        return exprs

    def length_assertion(self, schematic: Schematic, n1: Node, n2: Node,
                         channel: Connection) -> Expression:
        side_a = qfnra.subtract(symbols.node_x(schematic, n1), symbols.node_x(schematic, n2))
        side_b = qfnra.subtract(symbols.node_y(schematic, n1), symbols.node_y(schematic, n2))
        length = symbols.channel_length(schematic, channel)
        return qfnra.assert_equal(
            qfnra.add(qfnra.pow(side_a, Numeral(2)), qfnra.pow(side_b, Numeral(2))),
            qfnra.pow(length, Numeral(2)),
        )


class ChannelLengthStrategy(TranslationStrategy):
    """minimum channel length <= L <= largest chip dimension"""

    def translation_step(self, schematic, params, type_table) -> List[Expression]:
        exprs: List[Expression] = []
        minimum = Decimal.from_float(params.minimum_channel_length)
        maximum = Decimal.from_float(params.maximum_chip_dimension)
        for conn in schematic.connections.values():
            length = symbols.channel_length(schematic, conn)
            exprs.append(qfnra.assert_greater_equal(length, minimum))
            exprs.append(qfnra.assert_less_than_equal(length, maximum))
        return exprs


class MinimumChannelLengthStrategy(TranslationStrategy):
    def translation_step(self, schematic, params, type_table) -> List[Expression]:
        minimum = Decimal.from_float(params.minimum_channel_length)
        return [
            qfnra.assert_greater_equal(symbols.channel_length(schematic, conn), minimum)
            for conn in schematic.connections.values()
        ]
