from __future__ import annotations

import math
from types import SimpleNamespace

import pytest

from fluidics_core.errors import CodeGenerationError
from fluidics_core.smt2 import qfnra
from fluidics_core.smt2.expressions import Symbol, evaluate, free_symbols
from fluidics_core.strategies import (
    ElectrophoreticCrossStrategy,
    ElectrophoreticNodeStrategy,
    ReservoirStrategy,
)
from fluidics_core.strategies.singlephase import (
    Analyte,
    concentration,
    log_slope,
    log_slope_derivative,
    peak_time_equation,
)

D, L, V = Symbol("D"), Symbol("L"), Symbol("v")
T = Symbol("t")

CROSS_ATTRS = dict(
    numAnalytes=3,
    bulkMobility=1e-8,
    injectionCathodeNodeVoltage=-1000.0,
    lenSeparationChannel=0.03,
    lenInjectionChannel=0.0045,
    channelRadius=2.5e-5,
    baselineConcentration=1e-6,
    analyteElectrophoreticMobility=[-3e-8, -3.5e-8, -4e-8],
    analyteInitialSurfaceConcentration=[5e-3, 4e-3, 3e-3],
    analyteDiffusionCoefficient=[1e-9, 1.2e-9, 1.4e-9],
)


def _cross(graph, **overrides):
    s = graph.schematic()
    attrs = {**CROSS_ATTRS, **overrides}
    graph.node(s, "cross", "electrophoreticCross",
               **{k: v for k, v in attrs.items() if v is not None})
    return s


# ----------------------------------------------------------------------------
# concentration profile
# ----------------------------------------------------------------------------

def test_peak_time_solves_log_slope():
    d, length, v = 0.5, 1.0, 1.0
    tp = (-d + math.sqrt(d * d + v * v * length * length)) / (v * v)
    bindings = {"D": d, "L": length, "v": v, "t": tp}

    equation = peak_time_equation(D, L, V, T)
    assert evaluate(equation[1][1], bindings) == pytest.approx(evaluate(equation[1][2], bindings))
    assert evaluate(log_slope(D, L, V, T), bindings) == pytest.approx(0.0, abs=1e-9)
    # a maximum, not a minimum
    assert evaluate(log_slope_derivative(D, L, T), bindings) < 0


def test_peak_time_equation_under_checker(graph):
    d, length, v = 0.5, 1.0, 1.0
    tp = (-d + math.sqrt(d * d + v * v * length * length)) / (v * v)
    checker = graph.checker({"D": d, "L": length, "v": v, "t": tp})
    assert checker.verify(peak_time_equation(D, L, V, T))
    checker.add_binding("t", tp * 1.1)
    assert not checker.verify(peak_time_equation(D, L, V, T))


def test_concentration_matches_gaussian_band():
    m, d, length, v, t = 2.0, 0.5, 1.0, 1.0, 0.8
    expected = m * (4 * math.pi * d * t) ** -0.5 * math.exp(-((length - v * t) ** 2) / (4 * d * t))
    term = concentration(Symbol("M"), D, L, V, T)
    bindings = {"M": m, "D": d, "L": length, "v": v, "t": t, "PI": math.pi, "E": math.e}
    assert evaluate(term, bindings) == pytest.approx(expected, rel=1e-12)


# ----------------------------------------------------------------------------
# electrophoretic cross
# ----------------------------------------------------------------------------

def test_cross_declares_every_variable_once(graph, params):
    s = _cross(graph)
    out = ElectrophoreticCrossStrategy().translate(s, params, graph.types(s))
    declared = [str(e[1]) for e in out if qfnra.is_declaration(e)]
    # 9 shared, 6 per analyte, one fade time per adjacent pair
    assert len(declared) == 29
    assert len(set(declared)) == 29
    assert "cross.analyte2_peak_time" in declared
    assert "cross.analyte1_fade_time" in declared
    assert "cross.analyte2_fade_time" not in declared


def test_cross_assertion_count(graph, params):
    s = _cross(graph)
    out = ElectrophoreticCrossStrategy().translate(s, params, graph.types(s))
    assert sum(1 for e in out if qfnra.is_assertion(e)) == 9 + 3 * 9 + 2 * 5


def _voltage_bindings(sample_factor=1.0):
    sep, tail, cathode = 0.03, 0.0045, -1000.0
    sample = cathode * (sep / (sep + tail)) * sample_factor
    return {
        "cross.separation_length": sep,
        "cross.tail_length": tail,
        "cross.channel_radius": 2.5e-5,
        "cross.bulk_mobility": 1e-8,
        "cross.baseline_concentration": 1e-6,
        "cross.injection_cathode_voltage": cathode,
        "cross.injection_sample_voltage": sample,
        "cross.injection_waste_voltage": sample,
        "cross.field_strength": cathode / (sep + tail),
    }


def _over(exprs, bindings):
    return [e for e in exprs
            if qfnra.is_assertion(e) and set(free_symbols(e)) <= set(bindings)]


def test_cross_pull_back_voltages(graph, params):
    s = _cross(graph)
    out = ElectrophoreticCrossStrategy().translate(s, params, graph.types(s))
    bindings = _voltage_bindings()
    relevant = _over(out, bindings)
    assert len(relevant) == 9
    checker = graph.checker(bindings)
    assert checker.verify_all(relevant), checker.describe_last()

    wrong = _voltage_bindings(sample_factor=0.5)
    assert not graph.checker(wrong).verify_all(relevant)


def test_cross_single_analyte_has_no_resolution_terms(graph, params):
    s = _cross(graph, numAnalytes=1)
    out = ElectrophoreticCrossStrategy().translate(s, params, graph.types(s))
    assert not any("fade_time" in str(e) for e in out)


@pytest.mark.parametrize("overrides", [
    {"channelRadius": None},
    {"numAnalytes": 0},
    {"numAnalytes": "3"},
    {"analyteDiffusionCoefficient": [1e-9, 1.2e-9]},
    {"analyteElectrophoreticMobility": [-3e-8, "fast", -4e-8]},
])
def test_cross_schema_mismatch(graph, params, overrides):
    s = _cross(graph, **overrides)
    with pytest.raises(CodeGenerationError) as ei:
        ElectrophoreticCrossStrategy().translate(s, params, graph.types(s))
    assert ei.value.entity == "cross"


# ----------------------------------------------------------------------------
# peak separation
# ----------------------------------------------------------------------------

SEP_LENGTH, SEP_DIFFUSION = 1.0, 1e-3


def _band(m, v, t):
    d, length = SEP_DIFFUSION, SEP_LENGTH
    return m * (4 * math.pi * d * t) ** -0.5 * math.exp(-((length - v * t) ** 2) / (4 * d * t))


def _band_slope(m, v, t):
    d, length = SEP_DIFFUSION, SEP_LENGTH
    g = -1 / (2 * t) + (length ** 2 - v ** 2 * t ** 2) / (4 * d * t ** 2)
    return _band(m, v, t) * g


def _peak_time(v):
    d, length = SEP_DIFFUSION, SEP_LENGTH
    return (-d + math.sqrt(d * d + v * v * length * length)) / (v * v)


def _valley_time(v0, v1, lo, hi):
    # summed slope is positive just after the first peak, negative before the second
    for _ in range(200):
        mid = (lo + hi) / 2
        if _band_slope(1.0, v0, mid) + _band_slope(1.0, v1, mid) > 0:
            lo = mid
        else:
            hi = mid
    return (lo + hi) / 2


def _analyte(prefix):
    return Analyte(*(Symbol(f"{prefix}.{attr}") for attr in (
        "mobility", "diffusion", "initial_concentration",
        "velocity", "peak_time", "peak_concentration")))


@pytest.fixture
def two_bands():
    # unit field and no bulk flow, so velocity equals mobility
    v0, v1 = 1.0, 0.8
    tp0, tp1 = _peak_time(v0), _peak_time(v1)
    fade = _valley_time(v0, v1, tp0, tp1)
    bindings = {
        "PI": math.pi, "E": math.e,
        "L": SEP_LENGTH, "bulk": 0.0, "field": 1.0, "baseline": 2.0, "fade": fade,
    }
    for prefix, v, tp in (("a0", v0, tp0), ("a1", v1, tp1)):
        bindings.update({
            f"{prefix}.mobility": v,
            f"{prefix}.diffusion": SEP_DIFFUSION,
            f"{prefix}.initial_concentration": 1.0,
            f"{prefix}.velocity": v,
            f"{prefix}.peak_time": tp,
            f"{prefix}.peak_concentration": _band(1.0, v, tp),
        })
    return SimpleNamespace(velocities=(v0, v1), peaks=(tp0, tp1), fade=fade, bindings=bindings)


def _separation_terms(two_bands):
    strategy = ElectrophoreticCrossStrategy()
    pre, post = _analyte("a0"), _analyte("a1")
    L, bulk, field, baseline = (Symbol(n) for n in ("L", "bulk", "field", "baseline"))
    exprs = []
    for analyte, v in zip((pre, post), two_bands.velocities):
        exprs += strategy.analyte_peak(analyte, v, 1.0, SEP_DIFFUSION, L, bulk, field, baseline)
    exprs += strategy.resolution(Symbol("fade"), pre, post, L, baseline)
    return exprs


def test_separated_bands_satisfy_peak_and_resolution(graph, two_bands):
    tp0, tp1 = two_bands.peaks
    valley = sum(_band(1.0, v, two_bands.fade) for v in two_bands.velocities)
    assert tp0 < two_bands.fade < tp1
    assert valley < 2.0 < min(two_bands.bindings["a0.peak_concentration"],
                              two_bands.bindings["a1.peak_concentration"])

    exprs = _separation_terms(two_bands)
    assert len(exprs) == 2 * 9 + 5
    checker = graph.checker(two_bands.bindings)
    assert checker.verify_all(exprs), checker.describe_last()


def test_band_slope_and_curvature_terms(two_bands):
    analyte = _analyte("a0")
    L, t, h = Symbol("L"), Symbol("t"), 1e-6
    t0 = two_bands.peaks[0] + 0.03

    def at(x):
        return {**two_bands.bindings, "t": x}

    def c(x):
        return evaluate(analyte.concentration_at(L, t), at(x))

    slope = evaluate(analyte.slope_at(L, t), at(t0))
    assert slope == pytest.approx((c(t0 + h) - c(t0 - h)) / (2 * h), rel=1e-5)
    curvature = evaluate(analyte.curvature_at(L, t), at(t0))
    assert curvature == pytest.approx((c(t0 + h) - 2 * c(t0) + c(t0 - h)) / h ** 2, rel=1e-3)


@pytest.mark.parametrize("name, value", [
    ("fade", "after_second_peak"),
    ("fade", "before_first_peak"),
    ("baseline", 0.5),
    ("a1.peak_time", "shifted"),
])
def test_unresolved_bands_are_rejected(graph, two_bands, name, value):
    tp0, tp1 = two_bands.peaks
    value = {
        "after_second_peak": tp1 + 0.01,
        "before_first_peak": tp0 - 0.01,
        "shifted": tp1 * 1.01,
    }.get(value, value)
    checker = graph.checker({**two_bands.bindings, name: value})
    assert not checker.verify_all(_separation_terms(two_bands))


# ----------------------------------------------------------------------------
# electrophoretic node / reservoir
# ----------------------------------------------------------------------------

def test_electrophoretic_node(graph, params):
    s = graph.schematic()
    n = graph.node(s, "n", "electrophoreticNode")
    sample = graph.node(s, "sample", "reservoir")
    waste = graph.node(s, "waste", "reservoir")
    graph.connect(s, "c_in", sample, "opening", n, "sampleIn")
    graph.connect(s, "c_out", n, "wasteOut", waste, "opening")
    out = ElectrophoreticNodeStrategy().translate(s, params, graph.types(s))
    assert [str(e) for e in out] == [
        "(declare-fun n.pos_x () Real)",
        "(declare-fun n.pos_y () Real)",
        "(assert (< c_in.flowrate 0))",
        "(assert (< c_out.flowrate 0))",
        "(assert (= c_in.height c_out.height))",
        "(assert (> c_in.width 0))",
        "(assert (> c_in.height 0))",
        "(assert (> c_out.width 0))",
        "(assert (> c_out.height 0))",
    ]


def test_electrophoretic_node_needs_connections(graph, params):
    s = graph.schematic()
    graph.node(s, "n", "electrophoreticNode")
    with pytest.raises(CodeGenerationError):
        ElectrophoreticNodeStrategy().translate(s, params, graph.types(s))


def test_reservoirs_declare_positions(graph, params):
    s = graph.schematic()
    graph.node(s, "r1", "reservoir")
    graph.node(s, "r2", "reservoir")
    graph.node(s, "p", "pressureControlPoint")
    out = ReservoirStrategy().translate(s, params, graph.types(s))
    assert [str(e) for e in out] == [
        "(declare-fun r1.pos_x () Real)",
        "(declare-fun r1.pos_y () Real)",
        "(declare-fun r2.pos_x () Real)",
        "(declare-fun r2.pos_y () Real)",
    ]
