from __future__ import annotations

import pytest

from fluidics_core.errors import CodeGenerationError
from fluidics_core.strategies import (
    ChannelLengthStrategy,
    ChannelPlacementConstraintStrategy,
    ControlPointPlacementConstraintStrategy,
    CosineLawCriticalAngleStrategy,
    FiniteChipAreaRuleStrategy,
    InfiniteChipAreaRuleStrategy,
    MinimumChannelLengthStrategy,
    PythagoreanLengthRuleStrategy,
)


def _translate(strategy, s, params, graph):
    return strategy.translate(s, params, graph.types(s))


@pytest.fixture
def two_points(graph):
    """Two pressure control points joined by channel ch0 (n1 -> n2)."""
    s = graph.schematic()
    n1 = graph.node(s, "n1", "pressureControlPoint")
    n2 = graph.node(s, "n2", "pressureInlet")
    ch0 = graph.connect(s, "ch0", n1, "channel0", n2, "channel0")
    return s, n1, n2, ch0


# ----------------------------------------------------------------------------
# control point / channel placement
# ----------------------------------------------------------------------------

def test_control_point_placement_pins_coordinates(graph, params, two_points):
    s, n1, _, _ = two_points
    graph.constraint(s, "pin", "controlPointPlacementConstraint", node=n1, x=0.01, y=0.02)
    out = _translate(ControlPointPlacementConstraintStrategy(), s, params, graph)
    assert [str(e) for e in out] == [
        "(assert (= n1.pos_x 0.01))",
        "(assert (= n1.pos_y 0.02))",
    ]


@pytest.mark.parametrize("attrs", [
    {"x": "left", "y": 0.02},
    {"x": 0.01},
    {"x": 0.01, "y": 0.02, "node": "n1"},
])
def test_control_point_placement_wrong_values(graph, params, two_points, attrs):
    s, n1, _, _ = two_points
    attrs = {"node": n1, **attrs}
    graph.constraint(s, "pin", "controlPointPlacementConstraint", **attrs)
    with pytest.raises(CodeGenerationError) as ei:
        _translate(ControlPointPlacementConstraintStrategy(), s, params, graph)
    assert ei.value.entity == "pin"
    assert "wrong types" in str(ei.value)


@pytest.mark.parametrize("point,expected", [((0.5, 0.5), True), ((0.5, 0.6), False)])
def test_channel_placement_zero_triangle_area(graph, params, two_points, point, expected):
    s, _, _, ch0 = two_points
    graph.constraint(s, "via", "channelPlacementConstraint", channel=ch0, x=point[0], y=point[1])
    out = _translate(ChannelPlacementConstraintStrategy(), s, params, graph)
    assert len(out) == 1
    checker = graph.checker({"n1.pos_x": 0.0, "n1.pos_y": 0.0, "n2.pos_x": 1.0, "n2.pos_y": 1.0})
    assert checker.verify(out[0]) is expected


def test_channel_placement_requires_a_channel(graph, params, two_points):
    s, n1, _, _ = two_points
    graph.constraint(s, "via", "channelPlacementConstraint", channel=n1, x=0.1, y=0.1)
    with pytest.raises(CodeGenerationError):
        _translate(ChannelPlacementConstraintStrategy(), s, params, graph)


# ----------------------------------------------------------------------------
# chip area
# ----------------------------------------------------------------------------

def test_finite_chip_area_bounds_every_control_point(graph, params, two_points):
    s = two_points[0]
    graph.node(s, "j", "tJunction")
    out = _translate(FiniteChipAreaRuleStrategy(), s, params, graph)
    # n1 and its subtype sibling n2 only; the junction is not a control point
    assert len(out) == 8
    inside = {"n1.pos_x": 0.01, "n1.pos_y": 0.02, "n2.pos_x": 0.04, "n2.pos_y": 0.049}
    assert graph.checker(inside).verify_all(out)
    outside = {**inside, "n2.pos_x": 0.06}
    assert not graph.checker(outside).verify_all(out)


def test_infinite_chip_area_only_bounds_below(graph, params, two_points):
    s = two_points[0]
    out = _translate(InfiniteChipAreaRuleStrategy(), s, params, graph)
    assert len(out) == 4
    far = {"n1.pos_x": 10.0, "n1.pos_y": 20.0, "n2.pos_x": 1e6, "n2.pos_y": 0.001}
    assert graph.checker(far).verify_all(out)
    assert not graph.checker({**far, "n1.pos_x": 0.0}).verify_all(out)


# ----------------------------------------------------------------------------
# critical angle
# ----------------------------------------------------------------------------

@pytest.fixture
def bend(graph):
    """a -> b -> c through the T-junction b."""
    s = graph.schematic()
    a = graph.node(s, "a", "pressureControlPoint")
    b = graph.node(s, "b", "tJunction")
    c = graph.node(s, "c", "pressureControlPoint")
    graph.connect(s, "ab", a, "channel0", b, "continuous")
    graph.connect(s, "bc", b, "output", c, "channel0")
    return s


def test_critical_angle_one_constraint_per_bend(graph, params, bend):
    out = _translate(CosineLawCriticalAngleStrategy(), bend, params, graph)
    assert len(out) == 1


def test_critical_angle_accepts_straight_line(graph, params, bend):
    out = _translate(CosineLawCriticalAngleStrategy(), bend, params, graph)
    straight = {"a.pos_x": 0.0, "a.pos_y": 0.0, "b.pos_x": 1.0, "b.pos_y": 0.0,
                "c.pos_x": 2.0, "c.pos_y": 0.0}
    assert graph.checker(straight).verify(out[0])


def test_critical_angle_rejects_right_angle(graph, params, bend):
    out = _translate(CosineLawCriticalAngleStrategy(), bend, params, graph)
    square = {"a.pos_x": 0.0, "a.pos_y": 0.0, "b.pos_x": 1.0, "b.pos_y": 0.0,
              "c.pos_x": 1.0, "c.pos_y": 1.0}
    assert not graph.checker(square).verify(out[0])


def test_critical_angle_ignores_unconnected_triples(graph, params):
    s = graph.schematic()
    for name in ("a", "b", "c"):
        graph.node(s, name, "pressureControlPoint")
    assert _translate(CosineLawCriticalAngleStrategy(), s, params, graph) == []


# ----------------------------------------------------------------------------
# lengths
# ----------------------------------------------------------------------------

def test_pythagorean_length_rule(graph, params, two_points):
    s = two_points[0]
    out = _translate(PythagoreanLengthRuleStrategy(), s, params, graph)
    assert [str(e) for e in out] == [
        "(assert (= (+ (^ (- n1.pos_x n2.pos_x) 2) (^ (- n1.pos_y n2.pos_y) 2)) (^ ch0.length 2)))"
    ]
    coords = {"n1.pos_x": 0.0, "n1.pos_y": 0.0, "n2.pos_x": 3.0, "n2.pos_y": 4.0}
    assert graph.checker({**coords, "ch0.length": 5.0}).verify(out[0])
    assert not graph.checker({**coords, "ch0.length": 4.0}).verify(out[0])


@pytest.mark.parametrize("length,expected", [(0.01, True), (0.000001, False), (0.1, False)])
def test_channel_length_bounds(graph, params, two_points, length, expected):
    s = two_points[0]
    out = _translate(ChannelLengthStrategy(), s, params, graph)
    assert len(out) == 2
    assert graph.checker({"ch0.length": length}).verify_all(out) is expected


def test_minimum_channel_length_has_no_upper_bound(graph, params, two_points):
    s = two_points[0]
    out = _translate(MinimumChannelLengthStrategy(), s, params, graph)
    assert [str(e) for e in out] == ["(assert (>= ch0.length 0.00001))"]
    assert graph.checker({"ch0.length": 10.0}).verify_all(out)
