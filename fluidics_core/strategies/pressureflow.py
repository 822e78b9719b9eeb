"""
Pressure / Flow Strategies

Hydraulic model of the channel network: channel resistance from geometry,
pressure drop = flow rate x resistance along every channel, boundary conditions
at fluid entry and exit nodes.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import List

from ..errors import CodeGenerationError
from ..schematic import Connection, Node, Port, Schematic
from ..smt2 import qfnra, symbols
from ..smt2.expressions import Decimal, Expression, Numeral
from ..smt2.macros import connected_channel
from ..type_table import PrimitiveTypeTable
from .base import TranslationStrategy, real_value, schema_mismatch


# ============================================================================
# RESISTANCE
# ============================================================================

class ChannelResistanceStrategy(TranslationStrategy):
    """
    Rectangular channels of width w, height h (h < w), length L and fluid
    viscosity mu:

        R = (12 mu L) / (w h^3 (1 - 0.630 h/w))
    """

    def translation_step(self, schematic, params, type_table) -> List[Expression]:
        exprs: List[Expression] = []
        for conn in schematic.connections.values():
            exprs.extend(self.rectangular_channel(schematic, conn))
        return exprs

    def rectangular_channel(self, schematic: Schematic, channel: Connection) -> List[Expression]:
        r = symbols.channel_resistance(schematic, channel)
        w = symbols.channel_width(schematic, channel)
        h = symbols.channel_height(schematic, channel)
        mu = symbols.channel_viscosity(schematic, channel)
        length = symbols.channel_length(schematic, channel)

        exprs: List[Expression] = [qfnra.declare_real(s) for s in (r, w, h, mu, length)]
        exprs.extend(qfnra.assert_greater(s, Decimal("0.0")) for s in (r, w, h, mu, length))
        exprs.append(qfnra.assert_equal(
            r,
            qfnra.divide(
                qfnra.multiply(Decimal("12.0"), qfnra.multiply(mu, length)),
                qfnra.multiply(w, qfnra.multiply(
                    qfnra.pow(h, Decimal("3.0")),
                    qfnra.subtract(
                        Decimal("1.0"),
                        qfnra.multiply(Decimal("0.630"), qfnra.divide(h, w)),
                    ),
                )),
            ),
        ))
        exprs.append(qfnra.assert_less_than(h, w))
        return exprs


class CircularChannelResistanceStrategy(TranslationStrategy):
    """
    Circular channels of radius r:

        R = 8 mu L / (pi r^4)

    Length and radius are fixed by the channel's "length" and "radius" attributes.
    """

    def translation_step(self, schematic, params, type_table) -> List[Expression]:
        exprs: List[Expression] = []
        for name, conn in schematic.connections.items():
            exprs.append(qfnra.declare_real(symbols.channel_max_droplets(schematic, conn)))
            exprs.append(qfnra.declare_real(symbols.channel_droplet_resistance(schematic, conn)))
            try:
                exprs.extend(self.circular_channel(schematic, conn))
            except (KeyError, TypeError) as e:
                raise schema_mismatch("circular channel", name, e) from e
        return exprs

    def circular_channel(self, schematic: Schematic, channel: Connection) -> List[Expression]:
        r = symbols.channel_resistance(schematic, channel)
        radius = symbols.channel_radius(schematic, channel)
        mu = symbols.channel_viscosity(schematic, channel)
        length = symbols.channel_length(schematic, channel)

        length_value = real_value(channel.get_attribute("length"), "length")
        radius_value = real_value(channel.get_attribute("radius"), "radius")

        return [
            qfnra.declare_real(r),
            qfnra.declare_real(radius),
            qfnra.declare_real(mu),
            qfnra.declare_real(length),
            qfnra.assert_greater(r, Decimal("0.0")),
            qfnra.assert_greater(radius, Decimal("0.0")),
            qfnra.assert_greater(mu, Decimal("0.0")),
            qfnra.assert_greater(length, Decimal("0.0")),
            qfnra.assert_equal(length, Decimal.from_float(length_value)),
            qfnra.assert_equal(radius, Decimal.from_float(radius_value)),
            qfnra.assert_equal(
                r,
                qfnra.divide(
                    qfnra.multiply(Decimal("8.0"), qfnra.multiply(mu, length)),
                    qfnra.multiply(Decimal.from_float(math.pi), qfnra.pow(radius, Decimal("4.0"))),
                ),
            ),
        ]


# ============================================================================
# BOUNDARY NODES
# ============================================================================

class FluidEntryExitStrategy(TranslationStrategy):
    """
    Fluid entry nodes: non-negative pressure at the "output" port, and the
    connected channel carries the fluid viscosity given on the node.
    Fluid exit nodes: non-negative pressure at the "input" port.
    """

    def translation_step(self, schematic, params, type_table) -> List[Expression]:
        exprs: List[Expression] = []
        for name, node in schematic.nodes.items():
            try:
                if node.type.is_subtype_of(type_table.fluid_entry):
                    exprs.extend(self.entry_node(schematic, node))
                elif node.type.is_subtype_of(type_table.fluid_exit):
                    exprs.extend(self.exit_node(schematic, node))
            except (KeyError, TypeError) as e:
                raise schema_mismatch("fluid entry/exit node", name, e) from e
        return exprs

    def _boundary(self, schematic: Schematic, node: Node, port: Port) -> List[Expression]:
        pressure = symbols.port_pressure(schematic, port)
        return [
            qfnra.declare_real(symbols.node_x(schematic, node)),
            qfnra.declare_real(symbols.node_y(schematic, node)),
            qfnra.declare_real(pressure),
            qfnra.assert_less_than_equal(Numeral(0), pressure),
        ]

    def entry_node(self, schematic: Schematic, node: Node) -> List[Expression]:
        port = node.get_port("output")
        viscosity = real_value(node.get_attribute("viscosity"), "viscosity")
        exprs = self._boundary(schematic, node, port)
        channel = connected_channel(schematic, port)
        exprs.append(qfnra.assert_equal(
            symbols.channel_viscosity(schematic, channel), Decimal.from_float(viscosity)))
        return exprs

    def exit_node(self, schematic: Schematic, node: Node) -> List[Expression]:
        return self._boundary(schematic, node, node.get_port("input"))


# ============================================================================
# PRESSURE / FLOW
# ============================================================================

class SimplePressureFlowStrategy(TranslationStrategy):
    """
    (p_from - p_to) = Q R for every channel, with |Q| <= 1000.

    With worst-case analysis, a second flow rate accounts for the channel
    holding its maximum number of droplets:
        (p_from - p_to) = Q_wc (R + n R_droplet)
    """

    FLOW_LIMIT = 1000.0

    def __init__(self, worst_case: bool = False):
        super().__init__()
        self.worst_case = worst_case

    def translation_step(self, schematic, params, type_table) -> List[Expression]:
        exprs: List[Expression] = []
        for conn in schematic.connections.values():
            exprs.extend(self.channel(schematic, conn))
        return exprs

    def channel(self, schematic: Schematic, conn: Connection) -> List[Expression]:
        p1 = symbols.port_pressure(schematic, conn.from_port)
        p2 = symbols.port_pressure(schematic, conn.to_port)
        q = symbols.channel_flow_rate(schematic, conn)
        r = symbols.channel_resistance(schematic, conn)

        exprs: List[Expression] = [
            qfnra.declare_real(q),
            qfnra.assert_equal(qfnra.subtract(p1, p2), qfnra.multiply(q, r)),
            qfnra.assert_greater_equal(q, Decimal.from_float(-self.FLOW_LIMIT)),
            qfnra.assert_less_than_equal(q, Decimal.from_float(self.FLOW_LIMIT)),
        ]
        if self.worst_case:
            q_wc = symbols.channel_flow_rate_worst_case(schematic, conn)
            n_droplets = symbols.channel_max_droplets(schematic, conn)
            r_droplet = symbols.channel_droplet_resistance(schematic, conn)
            exprs.append(qfnra.declare_real(q_wc))
            exprs.append(qfnra.assert_equal(
                qfnra.subtract(p1, p2),
                qfnra.multiply(q_wc, qfnra.add(r, qfnra.multiply(n_droplets, r_droplet))),
            ))
        return exprs

    def __repr__(self):
        return f"{type(self).__name__}(worst_case={self.worst_case})"


@dataclass
class ExpandedPath:
    connections: List[Connection] = field(default_factory=list)
    ports: List[Port] = field(default_factory=list)


_CROSSING_THROUGH = {
    "channelA0": "channelA1",
    "channelA1": "channelA0",
    "channelB0": "channelB1",
    "channelB1": "channelB0",
}


class AnalyticalPressureFlowStrategy(TranslationStrategy):
    """
    Pressure/flow relations between pressure control points, following each
    channel path through any channel crossings on the way.

    For every channel on a path, with conventional direction from -> to:
        (P_from - P_to) = Q R
    and consecutive channels on the path carry the same flow, up to sign:
        same direction:      Q_pre = Q_post
        opposite directions: 0 = Q_pre + Q_post
    """

    def translation_step(self, schematic, params, type_table) -> List[Expression]:
        exprs: List[Expression] = []
        closed: List[Node] = []
        for start in schematic.nodes.values():
            closed.append(start)
            if not start.type.is_subtype_of(type_table.pressure_control_point):
                continue
            for port in start.ports.values():
                if schematic.connection_at(port) is None:
                    continue
                path = self.expand_through(port, schematic, type_table)
                if any(path.ports[-1].parent is n for n in closed):
                    continue
                exprs.extend(self.path_constraints(schematic, path))
        return exprs

    def path_constraints(self, schematic: Schematic, path: ExpandedPath) -> List[Expression]:
        exprs: List[Expression] = []
        for channel in path.connections:
            exprs.append(qfnra.assert_equal(
                qfnra.subtract(
                    symbols.port_pressure(schematic, channel.from_port),
                    symbols.port_pressure(schematic, channel.to_port),
                ),
                qfnra.multiply(
                    symbols.channel_flow_rate(schematic, channel),
                    symbols.channel_resistance(schematic, channel),
                ),
            ))

        for pre, post in zip(path.connections, path.connections[1:]):
            flow_pre = symbols.channel_flow_rate(schematic, pre)
            flow_post = symbols.channel_flow_rate(schematic, post)
            # ports on a crossing are distinct objects, so match through their node
            pre_to, pre_from = pre.to_port.parent, pre.from_port.parent
            post_to, post_from = post.to_port.parent, post.from_port.parent
            if pre_to is post_from or post_to is pre_from:
                exprs.append(qfnra.assert_equal(flow_pre, flow_post))
            elif pre_to is post_to or pre_from is post_from:
                exprs.append(qfnra.assert_equal(Decimal("0.0"), qfnra.add(flow_pre, flow_post)))
            else:
                raise CodeGenerationError("inconsistent port matching when expanding channels")
        return exprs

    def expand_through(self, port: Port, schematic: Schematic,
                       type_table: PrimitiveTypeTable) -> ExpandedPath:
        """Follow channels from ``port`` until a pressure control point is reached."""
        path = ExpandedPath()
        next_port = port
        while True:
            conn = schematic.connection_at(next_port)
            if conn is None:
                raise CodeGenerationError(
                    f"could not expand through unconnected port '{next_port.name}'",
                    schematic.name_of(next_port.parent),
                )
            path.connections.append(conn)
            dest_port = conn.to_port if conn.from_port is next_port else conn.from_port
            path.ports.append(dest_port)
            dest = dest_port.parent

            if dest.type.is_subtype_of(type_table.pressure_control_point):
                return path
            if not dest.type.is_subtype_of(type_table.channel_crossing):
                raise CodeGenerationError(
                    f"don't know how to expand through node '{schematic.name_of(dest)}'")
            through = _CROSSING_THROUGH.get(dest_port.name)
            if through is None or dest.ports.get(dest_port.name) is not dest_port:
                raise CodeGenerationError(
                    "expanded into a channel crossing that does not contain "
                    "the expanded destination port")
            try:
                next_port = dest.get_port(through)
            except KeyError as e:
                raise CodeGenerationError(
                    "could not find required port on channel crossing",
                    schematic.name_of(dest)) from e
