"""
Multiphase Strategies

Droplet generation at T-junctions and user constraints on droplet volume.
"""

from __future__ import annotations

from typing import List

from ..errors import CodeGenerationError
from ..schematic import Connection, Node, Port, Schematic
from ..smt2 import qfnra, symbols
from ..smt2.expressions import Decimal, Expression, Numeral
from ..smt2.macros import connected_channel, conservation_of_flow, flows_into
from .base import TranslationStrategy, real_value, schema_mismatch


def _half(x: Expression) -> Expression:
    return qfnra.divide(x, Numeral(2))


def _quarter(x: Expression) -> Expression:
    return qfnra.divide(x, Numeral(4))


def calculated_droplet_volume(h: Expression, w: Expression, w_in: Expression,
                              epsilon: Expression, q_d: Expression,
                              q_c: Expression) -> Expression:
    """
    Droplet volume produced by a T-junction.

    van Steijn, Kleijn and Kreutzer, "Predictive model for the size of bubbles
    and droplets created in microfluidic T-junctions", Lab Chip 10 (2010) 2513.

    h, w: height and width of the continuous-phase channel
    w_in: width of the dispersed-phase inlet
    q_d, q_c: dispersed and continuous flow rates

        V / (h w^2) = V_fill / (h w^2) + alpha (q_d / q_c)
    """
    pi = symbols.PI
    gutter_by_continuous = Decimal("0.1")
    h_over_w = qfnra.divide(h, w)
    w_in_over_w = qfnra.divide(w_in, w)
    inlet_angle = qfnra.arcsin(qfnra.subtract(Numeral(1), qfnra.divide(w, w_in)))
    one_minus_quarter_pi = qfnra.subtract(Numeral(1), _quarter(pi))

    # w_in <= w: 3pi/8 - (pi/2)(1 - pi/4)(h/w)
    fill_simple = qfnra.subtract(
        qfnra.multiply(Decimal.from_float(3.0 / 8.0), pi),
        qfnra.multiply(qfnra.multiply(_half(pi), one_minus_quarter_pi), h_over_w),
    )

    # w_in > w
    fill_complex = qfnra.add(
        qfnra.add(
            qfnra.multiply(
                qfnra.subtract(_quarter(pi), qfnra.multiply(Decimal("0.5"), inlet_angle)),
                qfnra.pow(w_in_over_w, Numeral(2)),
            ),
            qfnra.multiply(
                Decimal("-0.5"),
                qfnra.multiply(
                    qfnra.subtract(w_in_over_w, Numeral(1)),
                    qfnra.pow(
                        qfnra.subtract(qfnra.multiply(Numeral(2), w_in_over_w), Numeral(1)),
                        Decimal("0.5"),
                    ),
                ),
            ),
        ),
        qfnra.add(
            qfnra.divide(pi, Numeral(8)),
            qfnra.multiply(
                qfnra.multiply(Decimal("-0.5"), one_minus_quarter_pi),
                qfnra.multiply(
                    qfnra.add(
                        qfnra.multiply(qfnra.subtract(_half(pi), inlet_angle), w_in_over_w),
                        _half(pi),
                    ),
                    h_over_w,
                ),
            ),
        ),
    )

    normalized_fill = qfnra.conditional(
        qfnra.less_than_equal(w_in, w), fill_simple, fill_complex)

    hw_parallel = qfnra.divide(qfnra.multiply(h, w), qfnra.add(h, w))
    r_pinch = qfnra.add(
        w,
        qfnra.add(
            qfnra.subtract(w_in, qfnra.subtract(hw_parallel, epsilon)),
            qfnra.pow(
                qfnra.multiply(
                    Numeral(2),
                    qfnra.multiply(
                        qfnra.subtract(w_in, hw_parallel),
                        qfnra.subtract(w, hw_parallel),
                    ),
                ),
                Decimal("0.5"),
            ),
        ),
    )
    # max(w, w_in)
    r_fill = qfnra.conditional(qfnra.greater(w, w_in), w, w_in)
    r_pinch_over_w = qfnra.divide(r_pinch, w)
    r_fill_over_w = qfnra.divide(r_fill, w)

    alpha = qfnra.multiply(
        one_minus_quarter_pi,
        qfnra.multiply(
            qfnra.pow(qfnra.subtract(Numeral(1), gutter_by_continuous), Numeral(-1)),
            qfnra.add(
                qfnra.subtract(
                    qfnra.pow(r_pinch_over_w, Numeral(2)),
                    qfnra.pow(r_fill_over_w, Numeral(2)),
                ),
                qfnra.multiply(
                    _quarter(pi),
                    qfnra.multiply(qfnra.subtract(r_pinch_over_w, r_fill_over_w), h_over_w),
                ),
            ),
        ),
    )

    return qfnra.multiply(
        qfnra.multiply(h, qfnra.multiply(w, w)),
        qfnra.add(normalized_fill, qfnra.multiply(alpha, qfnra.divide(q_d, q_c))),
    )


class TJunctionStrategy(TranslationStrategy):
    """
    Sharp-edged T-junction with ports "continuous", "dispersed" and "output".

    The continuous and dispersed phases flow in, droplets flow out. All three
    ports share the junction pressure, and the output channel carries the
    continuous phase's width, height and viscosity.
    """

    def translation_step(self, schematic, params, type_table) -> List[Expression]:
        exprs: List[Expression] = []
        for name, node in schematic.iter_nodes_of(type_table.t_junction):
            try:
                ports = [node.get_port(p) for p in ("continuous", "dispersed", "output")]
            except KeyError as e:
                raise schema_mismatch("T-junction node", name, e) from e
            exprs.extend(self.junction(schematic, node, *ports))
        return exprs

    @staticmethod
    def flow_direction(schematic: Schematic, port: Port, channel: Connection,
                       is_output: bool) -> Expression:
        """
        Flow is positive when the channel's canonical direction agrees with the
        required direction at the port, negative otherwise.
        """
        rate = symbols.channel_flow_rate(schematic, channel)
        if not (flows_into(channel, port) ^ is_output):
            return qfnra.assert_less_than(rate, Numeral(0))
        return qfnra.assert_greater(rate, Numeral(0))

    def junction(self, schematic: Schematic, node: Node, p_continuous: Port,
                 p_dispersed: Port, p_output: Port) -> List[Expression]:
        ch_continuous = connected_channel(schematic, p_continuous)
        ch_dispersed = connected_channel(schematic, p_dispersed)
        ch_output = connected_channel(schematic, p_output)

        h = symbols.channel_height(schematic, ch_continuous)
        w = symbols.channel_width(schematic, ch_continuous)
        w_in = symbols.channel_width(schematic, ch_dispersed)
        q_c = symbols.channel_flow_rate(schematic, ch_continuous)
        q_d = symbols.channel_flow_rate(schematic, ch_dispersed)
        epsilon = symbols.t_junction_epsilon(schematic, node)

        exprs: List[Expression] = [
            qfnra.declare_real(symbols.node_x(schematic, node)),
            qfnra.declare_real(symbols.node_y(schematic, node)),
            qfnra.declare_real(epsilon),
            self.flow_direction(schematic, p_continuous, ch_continuous, False),
            self.flow_direction(schematic, p_dispersed, ch_dispersed, False),
            self.flow_direction(schematic, p_output, ch_output, True),
            qfnra.assert_equal(w, symbols.channel_width(schematic, ch_output)),
            qfnra.assert_equal(h, symbols.channel_height(schematic, ch_dispersed)),
            qfnra.assert_equal(h, symbols.channel_height(schematic, ch_output)),
            qfnra.assert_equal(epsilon, Numeral(0)),
        ]

        node_pressure = symbols.node_pressure(schematic, node)
        port_pressures = [symbols.port_pressure(schematic, p)
                          for p in (p_continuous, p_dispersed, p_output)]
        exprs.append(qfnra.declare_real(node_pressure))
        exprs.extend(qfnra.declare_real(p) for p in port_pressures)
        exprs.extend(qfnra.assert_equal(node_pressure, p) for p in port_pressures)

        exprs.extend(conservation_of_flow(schematic, [p_continuous, p_dispersed, p_output]))

        exprs.append(qfnra.assert_equal(
            symbols.channel_viscosity(schematic, ch_continuous),
            symbols.channel_viscosity(schematic, ch_output),
        ))

        v_output = symbols.channel_droplet_volume(schematic, ch_output)
        exprs.append(qfnra.declare_real(v_output))
        exprs.append(qfnra.assert_equal(
            v_output, calculated_droplet_volume(h, w, w_in, epsilon, q_d, q_c)))
        return exprs


class DropletConstraintStrategy(TranslationStrategy):
    """Pin the droplet volume of a channel named by a channelDropletVolumeConstraint."""

    def translation_step(self, schematic, params, type_table) -> List[Expression]:
        exprs: List[Expression] = []
        for _, cxt in schematic.iter_constraints_of(type_table.channel_droplet_volume):
            try:
                channel = cxt.get_attribute("channel")
                if not isinstance(channel, Connection):
                    raise TypeError("attribute 'channel' must be a connection")
                volume = real_value(cxt.get_attribute("volume"), "volume")
            except (KeyError, TypeError) as e:
                raise CodeGenerationError(
                    "instance of channelDropletVolumeConstraint has values with wrong types",
                    schematic.name_of(cxt),
                ) from e
            exprs.append(qfnra.assert_equal(
                symbols.channel_droplet_volume(schematic, channel),
                Decimal.from_float(volume),
            ))
        return exprs
