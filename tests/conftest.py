from __future__ import annotations

from types import SimpleNamespace
from typing import List, Optional

import pytest

from fluidics_core.params import ProcessParameters
from fluidics_core.schematic import Connection, ConstraintValue, Node, Schematic, TypeDef
from fluidics_core.smt2.checker import AssertionChecker
from fluidics_core.solver.session import IntervalResult, SolverSession
from fluidics_core.type_table import PrimitiveTypeTable


# ----------------------------------------------------------------------------
# graph builders
# ----------------------------------------------------------------------------

def microfluidic_schematic(name: str = "testSchematic") -> Schematic:
    """An empty schematic declaring every microfluidic type."""
    s = Schematic(name)
    port = s.add_port_type("microfluidPort", TypeDef("microfluidPort"))

    cp = s.add_node_type("controlPoint", TypeDef("controlPoint"))
    pcp = s.add_node_type("pressureControlPoint", TypeDef(
        "pressureControlPoint", cp, {"channel0": port}))
    s.add_node_type("voltageControlPoint", TypeDef("voltageControlPoint", cp))
    s.add_node_type("channelCrossing", TypeDef("channelCrossing", None, {
        "channelA0": port, "channelA1": port, "channelB0": port, "channelB1": port}))
    s.add_node_type("tJunction", TypeDef("tJunction", None, {
        "continuous": port, "dispersed": port, "output": port}))
    s.add_node_type("fluidEntry", TypeDef("fluidEntry", None, {"output": port}))
    s.add_node_type("fluidExit", TypeDef("fluidExit", None, {"input": port}))
    s.add_node_type("electrophoreticCross", TypeDef("electrophoreticCross", None, {
        "sample": port, "waste": port, "cathode": port, "anode": port}))
    s.add_node_type("electrophoreticNode", TypeDef("electrophoreticNode", None, {
        "sampleIn": port, "wasteOut": port}))
    s.add_node_type("reservoir", TypeDef("reservoir", None, {"opening": port}))
    # a device-specific subtype, to exercise subtype matching
    s.add_node_type("pressureInlet", TypeDef("pressureInlet", pcp))

    s.add_connection_type("microfluidChannel", TypeDef("microfluidChannel"))

    s.add_constraint_type("controlPointPlacementConstraint",
                          TypeDef("controlPointPlacementConstraint"))
    s.add_constraint_type("channelPlacementConstraint", TypeDef("channelPlacementConstraint"))
    s.add_constraint_type("channelDropletVolumeConstraint",
                          TypeDef("channelDropletVolumeConstraint"))
    return s


def add_node(s: Schematic, name: str, type_name: str, **attributes) -> Node:
    return s.add_node(name, Node(s.get_node_type(type_name), attributes))


def connect(s: Schematic, name: str, src: Node, src_port: str, dst: Node, dst_port: str,
            **attributes) -> Connection:
    conn = Connection(s.get_connection_type("microfluidChannel"),
                      src.get_port(src_port), dst.get_port(dst_port), attributes)
    return s.add_connection(name, conn)


def add_constraint(s: Schematic, name: str, type_name: str, **attributes) -> ConstraintValue:
    return s.add_constraint(name, ConstraintValue(s.get_constraint_type(type_name), attributes))


def checker_with(bindings, *, delta: float = 1e-6) -> AssertionChecker:
    checker = AssertionChecker(delta=delta)
    checker.add_bindings(bindings)
    return checker


class FakeSession(SolverSession):
    """Records every line and answers with a canned result."""

    def __init__(self, result: IntervalResult):
        super().__init__(debug=True)
        self.canned = result
        self.lines: List[str] = []
        self.closed_cleanly: Optional[bool] = None

    def _open(self):
        self.lines.append("(set-logic QF_NRA)")

    def _write(self, line):
        self.lines.append(line)

    def _solve(self):
        self.lines.append("(check-sat)")
        return self.canned

    def _close(self):
        self.closed_cleanly = True


# ----------------------------------------------------------------------------
# fixtures
# ----------------------------------------------------------------------------

@pytest.fixture(scope="session")
def params() -> ProcessParameters:
    return ProcessParameters.test_data()


@pytest.fixture(scope="session")
def graph():
    """Graph-building helpers, so test modules need no imports from conftest."""
    return SimpleNamespace(
        schematic=microfluidic_schematic,
        node=add_node,
        connect=connect,
        constraint=add_constraint,
        types=PrimitiveTypeTable.from_schematic,
        checker=checker_with,
        fake_session=FakeSession,
    )
