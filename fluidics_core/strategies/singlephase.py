"""
Single Phase Strategies

Capillary electrophoresis on a cross-shaped injector, electrophoretic channel
nodes and sample/waste reservoirs.

Concentration of analyte i at the detector, a distance L down the separation
channel, with diffusion D, velocity v and injected amount M:

    C(t) = M (4 pi D t)^(-1/2) exp(-(L - v t)^2 / (4 D t))

Writing g(t) = d/dt ln C(t):

    g(t)  = -1/(2t) + (L^2 - v^2 t^2) / (4 D t^2)
    g'(t) = 1/(2t^2) - L^2 / (2 D t^3)
    C'    = C g
    C''   = C (g^2 + g')

A peak sits where g = 0, i.e. v^2 t^2 + 2 D t - L^2 = 0, with g' < 0.
Two adjacent peaks are resolved when the valley between them, where the
derivative of the summed signal vanishes with positive curvature, drops below
the baseline concentration.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Sequence

from ..schematic import Connection, Node, Port, Schematic
from ..smt2 import qfnra, symbols
from ..smt2.expressions import Decimal, Expression, Numeral, Symbol
from ..smt2.macros import connected_channel, flows_into
from .base import TranslationStrategy, real_value, schema_mismatch


# ============================================================================
# CONCENTRATION PROFILE
# ============================================================================

def concentration(amount: Expression, diffusion: Expression, length: Expression,
                  velocity: Expression, t: Expression) -> Expression:
    """C(t) of a single analyte band."""
    spread = qfnra.pow(
        qfnra.multiply(Numeral(4), qfnra.multiply(symbols.PI, qfnra.multiply(diffusion, t))),
        Decimal("-0.5"),
    )
    exponent = qfnra.multiply(
        Numeral(-1),
        qfnra.divide(
            qfnra.pow(qfnra.subtract(length, qfnra.multiply(velocity, t)), Numeral(2)),
            qfnra.multiply(Numeral(4), qfnra.multiply(diffusion, t)),
        ),
    )
    return qfnra.multiply(amount, qfnra.multiply(spread, qfnra.pow(symbols.EULER, exponent)))


def log_slope(diffusion: Expression, length: Expression, velocity: Expression,
              t: Expression) -> Expression:
    """g(t) = d/dt ln C(t)"""
    return qfnra.add(
        qfnra.divide(Numeral(-1), qfnra.multiply(Numeral(2), t)),
        qfnra.divide(
            qfnra.subtract(
                qfnra.pow(length, Numeral(2)),
                qfnra.multiply(qfnra.pow(velocity, Numeral(2)), qfnra.pow(t, Numeral(2))),
            ),
            qfnra.multiply(Numeral(4), qfnra.multiply(diffusion, qfnra.pow(t, Numeral(2)))),
        ),
    )


def log_slope_derivative(diffusion: Expression, length: Expression,
                         t: Expression) -> Expression:
    """g'(t)"""
    return qfnra.subtract(
        qfnra.divide(Numeral(1), qfnra.multiply(Numeral(2), qfnra.pow(t, Numeral(2)))),
        qfnra.divide(
            qfnra.pow(length, Numeral(2)),
            qfnra.multiply(Numeral(2), qfnra.multiply(diffusion, qfnra.pow(t, Numeral(3)))),
        ),
    )


def peak_time_equation(diffusion: Expression, length: Expression,
                       velocity: Expression, t: Expression) -> Expression:
    """v^2 t^2 + 2 D t = L^2"""
    return qfnra.assert_equal(
        qfnra.add(
            qfnra.multiply(qfnra.pow(velocity, Numeral(2)), qfnra.pow(t, Numeral(2))),
            qfnra.multiply(Numeral(2), qfnra.multiply(diffusion, t)),
        ),
        qfnra.pow(length, Numeral(2)),
    )


@dataclass(frozen=True)
class Analyte:
    """Solver variables of one analyte species on an electrophoretic cross."""
    mobility: Symbol
    diffusion: Symbol
    initial_concentration: Symbol
    velocity: Symbol
    peak_time: Symbol
    peak_concentration: Symbol

    @classmethod
    def for_cross(cls, schematic: Schematic, cross: Node, index: int) -> "Analyte":
        prefix = f"analyte{index}_"

        def sym(attr: str) -> Symbol:
            return symbols.attribute_symbol(schematic, cross, prefix + attr)

        return cls(
            mobility=sym("mobility"),
            diffusion=sym("diffusion"),
            initial_concentration=sym("initial_concentration"),
            velocity=sym("velocity"),
            peak_time=sym("peak_time"),
            peak_concentration=sym("peak_concentration"),
        )

    def all_symbols(self) -> List[Symbol]:
        return [self.mobility, self.diffusion, self.initial_concentration,
                self.velocity, self.peak_time, self.peak_concentration]

    def concentration_at(self, length: Expression, t: Expression) -> Expression:
        return concentration(self.initial_concentration, self.diffusion, length,
                             self.velocity, t)

    def curvature_at(self, length: Expression, t: Expression) -> Expression:
        """C''(t)"""
        g = log_slope(self.diffusion, length, self.velocity, t)
        return qfnra.multiply(
            self.concentration_at(length, t),
            qfnra.add(qfnra.pow(g, Numeral(2)),
                      log_slope_derivative(self.diffusion, length, t)),
        )

    def slope_at(self, length: Expression, t: Expression) -> Expression:
        """C'(t)"""
        return qfnra.multiply(
            self.concentration_at(length, t),
            log_slope(self.diffusion, length, self.velocity, t),
        )


# ============================================================================
# STRATEGIES
# ============================================================================

class ElectrophoreticCrossStrategy(TranslationStrategy):
    """
    Electrophoretic injection cross: pull-back voltages during injection and
    peak separation of every analyte at the end of the separation channel.

    Node attributes:
        numAnalytes, bulkMobility, injectionCathodeNodeVoltage,
        lenSeparationChannel, lenInjectionChannel, channelRadius,
        baselineConcentration,
        analyteElectrophoreticMobility, analyteInitialSurfaceConcentration,
        analyteDiffusionCoefficient   (one entry per analyte)
    """

    ANALYTE_LISTS = (
        "analyteElectrophoreticMobility",
        "analyteInitialSurfaceConcentration",
        "analyteDiffusionCoefficient",
    )

    def translation_step(self, schematic, params, type_table) -> List[Expression]:
        exprs: List[Expression] = []
        for name, node in schematic.iter_nodes_of(type_table.electrophoretic_cross):
            try:
                exprs.extend(self.cross(schematic, node))
            except (KeyError, TypeError) as e:
                raise schema_mismatch("electrophoretic cross", name, e) from e
        return exprs

    def _analyte_values(self, node: Node, count: int) -> List[Sequence[float]]:
        columns = []
        for attr in self.ANALYTE_LISTS:
            values = node.get_attribute(attr)
            if not isinstance(values, (list, tuple)) or len(values) < count:
                raise TypeError(f"attribute '{attr}' must list at least {count} values")
            columns.append([real_value(v, attr) for v in values[:count]])
        return columns

    def cross(self, schematic: Schematic, node: Node) -> List[Expression]:
        count = node.get_attribute("numAnalytes")
        if isinstance(count, bool) or not isinstance(count, int) or count < 1:
            raise TypeError(f"attribute 'numAnalytes' must be a positive integer, got {count!r}")
        mobilities, amounts, diffusions = self._analyte_values(node, count)

        def sym(attr: str) -> Symbol:
            return symbols.attribute_symbol(schematic, node, attr)

        def pinned(symbol: Symbol, attr: str) -> Expression:
            return qfnra.assert_equal(
                symbol, Decimal.from_float(real_value(node.get_attribute(attr), attr)))

        separation = sym("separation_length")
        tail = sym("tail_length")
        radius = sym("channel_radius")
        bulk = sym("bulk_mobility")
        field_strength = sym("field_strength")
        cathode = sym("injection_cathode_voltage")
        sample = sym("injection_sample_voltage")
        waste = sym("injection_waste_voltage")
        baseline = sym("baseline_concentration")
        analytes = [Analyte.for_cross(schematic, node, i) for i in range(count)]
        fade_times = [sym(f"analyte{i}_fade_time") for i in range(count - 1)]

        exprs: List[Expression] = [
            qfnra.declare_real(s) for s in (
                separation, tail, radius, bulk, field_strength,
                cathode, sample, waste, baseline)
        ]
        for analyte in analytes:
            exprs.extend(qfnra.declare_real(s) for s in analyte.all_symbols())
        exprs.extend(qfnra.declare_real(s) for s in fade_times)

        exprs.extend([
            pinned(separation, "lenSeparationChannel"),
            pinned(tail, "lenInjectionChannel"),
            pinned(radius, "channelRadius"),
            pinned(bulk, "bulkMobility"),
            pinned(cathode, "injectionCathodeNodeVoltage"),
            pinned(baseline, "baselineConcentration"),
            qfnra.assert_equal(field_strength,
                               qfnra.divide(cathode, qfnra.add(separation, tail))),
            # pull-back voltages
            qfnra.assert_equal(sample, qfnra.multiply(
                cathode, qfnra.divide(separation, qfnra.add(separation, tail)))),
            qfnra.assert_equal(sample, waste),
        ])

        for analyte, mobility, amount, diffusion in zip(analytes, mobilities, amounts, diffusions):
            exprs.extend(self.analyte_peak(analyte, mobility, amount, diffusion,
                                           separation, bulk, field_strength, baseline))

        for fade, pre, post in zip(fade_times, analytes, analytes[1:]):
            exprs.extend(self.resolution(fade, pre, post, separation, baseline))
        return exprs

    def analyte_peak(self, analyte: Analyte, mobility: float, amount: float,
                     diffusion: float, length: Symbol, bulk: Symbol,
                     field_strength: Symbol, baseline: Symbol) -> List[Expression]:
        tp = analyte.peak_time
        return [
            qfnra.assert_equal(analyte.mobility, Decimal.from_float(mobility)),
            qfnra.assert_equal(analyte.initial_concentration, Decimal.from_float(amount)),
            qfnra.assert_equal(analyte.diffusion, Decimal.from_float(diffusion)),
            qfnra.assert_equal(analyte.velocity,
                               qfnra.multiply(qfnra.add(bulk, analyte.mobility), field_strength)),
            qfnra.assert_greater(tp, Numeral(0)),
            peak_time_equation(analyte.diffusion, length, analyte.velocity, tp),
            qfnra.assert_less_than(log_slope_derivative(analyte.diffusion, length, tp),
                                   Numeral(0)),
            qfnra.assert_equal(analyte.peak_concentration, analyte.concentration_at(length, tp)),
            qfnra.assert_greater(analyte.peak_concentration, baseline),
        ]

    def resolution(self, fade: Symbol, pre: Analyte, post: Analyte,
                   length: Symbol, baseline: Symbol) -> List[Expression]:
        return [
            qfnra.assert_less_than(pre.peak_time, fade),
            qfnra.assert_less_than(fade, post.peak_time),
            qfnra.assert_equal(
                qfnra.add(pre.slope_at(length, fade), post.slope_at(length, fade)),
                Numeral(0),
            ),
            qfnra.assert_greater(
                qfnra.add(pre.curvature_at(length, fade), post.curvature_at(length, fade)),
                Numeral(0),
            ),
            qfnra.assert_less_than(
                qfnra.add(pre.concentration_at(length, fade),
                          post.concentration_at(length, fade)),
                baseline,
            ),
        ]


class ElectrophoreticNodeStrategy(TranslationStrategy):
    """
    Straight electrophoretic channel segment between ports "sampleIn" and
    "wasteOut". Both channels share a height and have positive geometry.
    """

    def translation_step(self, schematic, params, type_table) -> List[Expression]:
        exprs: List[Expression] = []
        for name, node in schematic.iter_nodes_of(type_table.electrophoretic_node):
            try:
                entry = node.get_port("sampleIn")
                exit_ = node.get_port("wasteOut")
            except KeyError as e:
                raise schema_mismatch("electrophoretic node", name, e) from e
            exprs.extend(self.device(schematic, node, entry, exit_))
        return exprs

    @staticmethod
    def flow_direction(schematic: Schematic, port: Port, channel: Connection,
                       is_output: bool) -> Expression:
        rate = symbols.channel_flow_rate(schematic, channel)
        # opposite sign convention to the T-junction
        if flows_into(channel, port) ^ is_output:
            return qfnra.assert_less_than(rate, Numeral(0))
        return qfnra.assert_greater(rate, Numeral(0))

    def device(self, schematic: Schematic, node: Node, entry: Port, exit_: Port) -> List[Expression]:
        entry_channel = connected_channel(schematic, entry)
        exit_channel = connected_channel(schematic, exit_)
        h_entry = symbols.channel_height(schematic, entry_channel)
        w_entry = symbols.channel_width(schematic, entry_channel)
        h_exit = symbols.channel_height(schematic, exit_channel)
        w_exit = symbols.channel_width(schematic, exit_channel)

        exprs: List[Expression] = [
            qfnra.declare_real(symbols.node_x(schematic, node)),
            qfnra.declare_real(symbols.node_y(schematic, node)),
            self.flow_direction(schematic, entry, entry_channel, False),
            self.flow_direction(schematic, exit_, exit_channel, True),
            qfnra.assert_equal(h_entry, h_exit),
        ]
        exprs.extend(qfnra.assert_greater(s, Numeral(0)) for s in (w_entry, h_entry, w_exit, h_exit))
        return exprs


class ReservoirStrategy(TranslationStrategy):
    def translation_step(self, schematic, params, type_table) -> List[Expression]:
        exprs: List[Expression] = []
        for _, node in schematic.iter_nodes_of(type_table.reservoir):
            exprs.append(qfnra.declare_real(symbols.node_x(schematic, node)))
            exprs.append(qfnra.declare_real(symbols.node_y(schematic, node)))
        return exprs
