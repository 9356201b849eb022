from __future__ import annotations

import logging
from typing import Iterable, List, TextIO, Tuple

from kmedian.errors import DimacsFormatError

from .network import FlowNetwork, FlowResult

logger = logging.getLogger(__name__)


def read_dimacs_min(lines: Iterable[str]) -> FlowNetwork:
    """Parse a DIMACS min-cost-flow instance.

    Recognized lines (node ids are 1-based in the file)::

        c <comment>
        p min <nodes> <arcs>
        n <id> <supply>
        a <src> <dst> <lower> <capacity> <cost>

    An arc whose capacity is below its lower bound (conventionally ``-1``)
    is unbounded; it gets the total positive supply plus the sum of all lower
    bounds as capacity, which no feasible flow can exceed.
    """
    network: FlowNetwork | None = None
    declared_arcs = 0
    arcs: List[Tuple[int, int, int, int, int, float]] = []

    for lineno, raw in enumerate(lines, start=1):
        fields = raw.split()
        if not fields or fields[0] == "c":
            continue
        tag = fields[0]
        try:
            if tag == "p":
                if network is not None:
                    raise DimacsFormatError(f"line {lineno}: duplicate problem line")
                if len(fields) != 4 or fields[1] != "min":
                    raise DimacsFormatError(f"line {lineno}: expected 'p min <nodes> <arcs>'")
                network = FlowNetwork(int(fields[2]))
                declared_arcs = int(fields[3])
                continue

            if network is None:
                raise DimacsFormatError(f"line {lineno}: {tag!r} line before the problem line")
            if tag == "n":
                if len(fields) != 3:
                    raise DimacsFormatError(f"line {lineno}: expected 'n <id> <supply>'")
                network.set_supply(int(fields[1]) - 1, int(fields[2]))
            elif tag == "a":
                if len(fields) != 6:
                    raise DimacsFormatError(
                        f"line {lineno}: expected 'a <src> <dst> <lower> <capacity> <cost>'"
                    )
                src, dst, lower, capacity = (int(f) for f in fields[1:5])
                arcs.append((lineno, src - 1, dst - 1, lower, capacity, float(fields[5])))
            else:
                raise DimacsFormatError(f"line {lineno}: unknown line type {tag!r}")
        except DimacsFormatError:
            raise
        except ValueError as exc:
            raise DimacsFormatError(f"line {lineno}: {exc}") from exc

    if network is None:
        raise DimacsFormatError("missing problem line")

    unbounded = sum(s for s in network.supply if s > 0) + sum(max(0, a[3]) for a in arcs)
    for lineno, src, dst, lower, capacity, cost in arcs:
        if capacity < lower:
            capacity = unbounded
        try:
            network.add_arc(src, dst, lower=lower, capacity=capacity, cost=cost)
        except ValueError as exc:
            raise DimacsFormatError(f"line {lineno}: {exc}") from exc

    if network.num_arcs != declared_arcs:
        logger.warning(
            f"Problem line declares {declared_arcs} arcs but {network.num_arcs} were read"
        )
    return network


def write_flows(out: TextIO, network: FlowNetwork, result: FlowResult) -> None:
    """Write ``source target flow`` (0-based node ids) for every arc with flow."""
    for arc, flow in result.nonzero(network):
        out.write(f"{arc.source} {arc.target} {flow}\n")
