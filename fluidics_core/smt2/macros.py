"""
Reusable constraint fragments shared by several strategies.
"""

from __future__ import annotations

from typing import List, Sequence

from ..errors import CodeGenerationError
from ..schematic import Connection, Port, Schematic
from . import qfnra, symbols
from .expressions import Expression


def flows_into(channel: Connection, port: Port) -> bool:
    """
    True when the channel's canonical direction points into ``port``'s node.

    Raises CodeGenerationError if the channel does not touch the port.
    """
    if channel.from_port is port:
        return False
    if channel.to_port is port:
        return True
    raise CodeGenerationError(
        "attempt to generate flow direction constraint for a channel "
        "that is disconnected from the target port"
    )


def connected_channel(schematic: Schematic, port: Port) -> Connection:
    channel = schematic.connection_at(port)
    if channel is None:
        raise CodeGenerationError(
            f"port '{port.name}' is not connected to any channel",
            schematic.name_of(port.parent),
        )
    return channel


def conservation_of_flow(schematic: Schematic, ports: Sequence[Port]) -> List[Expression]:
    """
    Total flow in equals total flow out at a junction.

    Each port's channel contributes to the inflow sum when its canonical
    direction points into the junction and to the outflow sum otherwise; the
    actual flow may still run backwards, which shows up as a negative rate.
    The same equality is generated for the worst-case flow rates.
    """
    flow_in: List[Expression] = []
    flow_out: List[Expression] = []
    worst_in: List[Expression] = []
    worst_out: List[Expression] = []

    for port in ports:
        channel = connected_channel(schematic, port)
        rate = symbols.channel_flow_rate(schematic, channel)
        worst = symbols.channel_flow_rate_worst_case(schematic, channel)
        if flows_into(channel, port):
            flow_in.append(rate)
            worst_in.append(worst)
        else:
            flow_out.append(rate)
            worst_out.append(worst)

    return [
        qfnra.assert_equal(qfnra.sum_of(flow_in), qfnra.sum_of(flow_out)),
        qfnra.assert_equal(qfnra.sum_of(worst_in), qfnra.sum_of(worst_out)),
    ]


