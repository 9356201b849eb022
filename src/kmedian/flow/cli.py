from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import List

from kmedian.errors import DimacsFormatError, InfeasibleFlowError

from .dimacs import read_dimacs_min, write_flows
from .network import DEFAULT_COST_SCALE, solve_min_cost_flow

logger = logging.getLogger(__name__)


def main(argv: List[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="Solve a DIMACS min-cost-flow instance and write the non-zero arc flows."
    )
    parser.add_argument("input", type=Path, help="DIMACS min-cost-flow instance.")
    parser.add_argument("output", type=Path, help="File receiving 'source target flow' lines.")
    parser.add_argument(
        "--cost-scale",
        type=int,
        default=DEFAULT_COST_SCALE,
        help="Multiplier turning fractional arc costs into integers.",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable verbose (DEBUG) logging.",
    )
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(levelname)s - %(message)s",
    )

    try:
        with args.input.open(encoding="utf-8") as f:
            network = read_dimacs_min(f)
    except (OSError, DimacsFormatError) as exc:
        logger.error(f"Cannot read {args.input}: {exc}")
        return 1

    logger.info(f"Nodes: {network.num_nodes}\t Edges: {network.num_arcs}")

    try:
        result = solve_min_cost_flow(network, cost_scale=args.cost_scale)
    except InfeasibleFlowError as exc:
        logger.error(f"Infeasible instance: {exc}")
        return 1

    logger.info(f"Total cost: {result.total_cost:g}")
    with args.output.open("w", encoding="utf-8") as fout:
        write_flows(fout, network, result)
    return 0


if __name__ == "__main__":
    sys.exit(main())
