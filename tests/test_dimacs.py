from __future__ import annotations

import io
import logging

import pytest

from kmedian.errors import DimacsFormatError
from kmedian.flow import read_dimacs_min, solve_min_cost_flow, write_flows
from kmedian.flow.cli import main

SAMPLE = """\
c four nodes, every unit of supply is forced through node 3
p min 4 4
n 1 4
n 4 -4
a 1 2 0 2 1
a 1 3 0 2 3
a 2 3 0 2 1
a 3 4 0 4 1
"""

EXPECTED_FLOWS = ["0 1 2", "0 2 2", "1 2 2", "2 3 4"]


def test_read_solve_and_write_sample() -> None:
    network = read_dimacs_min(SAMPLE.splitlines())

    assert network.num_nodes == 4
    assert network.num_arcs == 4
    assert network.supply == [4, 0, 0, -4]

    result = solve_min_cost_flow(network)
    assert result.total_cost == 14.0

    out = io.StringIO()
    write_flows(out, network, result)
    assert out.getvalue().splitlines() == EXPECTED_FLOWS


def test_arc_lower_bounds_are_parsed() -> None:
    network = read_dimacs_min(["p min 2 1", "n 1 3", "n 2 -3", "a 1 2 1 5 2.5"])
    arc = network.arcs[0]
    assert (arc.source, arc.target, arc.lower, arc.capacity, arc.cost) == (0, 1, 1, 5, 2.5)


def test_capacity_below_lower_bound_means_unbounded() -> None:
    network = read_dimacs_min(["p min 2 1", "n 1 3", "n 2 -3", "a 1 2 0 -1 1"])

    arc = network.arcs[0]
    assert arc.lower == 0
    assert arc.capacity >= 3
    result = solve_min_cost_flow(network)
    assert result.flows.tolist() == [3]
    assert result.total_cost == 3.0


def test_unbounded_arc_declared_before_supplies() -> None:
    lines = ["p min 3 2", "a 1 2 1 -1 2", "a 2 3 0 -1 1", "n 1 5", "n 3 -5"]
    network = read_dimacs_min(lines)

    result = solve_min_cost_flow(network)
    assert result.flows.tolist() == [5, 5]
    assert result.total_cost == 15.0


@pytest.mark.parametrize(
    "lines",
    [
        ["a 1 2 0 1 1"],  # arc before problem line
        ["p max 2 1"],
        ["p min 2 1", "p min 2 1"],
        ["p min 2 1", "a 1 2 0 1"],
        ["p min 2 1", "n 1"],
        ["p min 2 1", "x 1 2"],
        ["p min 2 1", "a 1 3 0 1 1"],  # unknown node
        ["p min 2 1", "a 1 2 -2 -3 1"],  # negative lower bound
        ["p min two 1"],
        ["c only a comment"],
    ],
)
def test_malformed_input_is_rejected(lines) -> None:
    with pytest.raises(DimacsFormatError):
        read_dimacs_min(lines)


def test_arc_count_mismatch_only_warns(caplog) -> None:
    with caplog.at_level(logging.WARNING):
        network = read_dimacs_min(["p min 2 3", "a 1 2 0 1 1"])
    assert network.num_arcs == 1
    assert "declares 3 arcs" in caplog.text


def test_cli_writes_flows(tmp_path, caplog) -> None:
    instance = tmp_path / "sample.min"
    instance.write_text(SAMPLE, encoding="utf-8")
    output = tmp_path / "flows.txt"

    caplog.set_level(logging.INFO)
    assert main([str(instance), str(output)]) == 0

    assert output.read_text(encoding="utf-8").splitlines() == EXPECTED_FLOWS
    assert "Nodes: 4\t Edges: 4" in caplog.text
    assert "Total cost: 14" in caplog.text


def test_cli_reports_failures(tmp_path) -> None:
    infeasible = tmp_path / "infeasible.min"
    infeasible.write_text("p min 2 1\nn 1 5\nn 2 -5\na 1 2 0 2 1\n", encoding="utf-8")
    output = tmp_path / "flows.txt"

    assert main([str(infeasible), str(output)]) == 1
    assert not output.exists()
    assert main([str(tmp_path / "missing.min"), str(output)]) == 1
