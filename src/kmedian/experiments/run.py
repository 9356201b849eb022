from __future__ import annotations

import argparse
import logging
import time
import traceback
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Tuple

import numpy as np
import pandas as pd
from tqdm.auto import tqdm

from kmedian.algorithms import RoundingConfig, approximate_clustering, exact_clustering
from kmedian.errors import KMedianError
from kmedian.lp import SolverConfig
from kmedian.metric import DistanceGraph, FiniteMetric, build_metric
from kmedian.objective import objective_value

logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(levelname)s - %(message)s")
logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InstanceGrid:
    """Random distance graphs and the (k, p, lower) combinations run on each.

    `upper` of ``None`` means no effective cap (upper = N).
    """

    n_nodes: int = 6
    edge_prob: float = 0.4
    max_multiplicity: int = 3
    ks: Tuple[int, ...] = (2, 3)
    ps: Tuple[int, ...] = (1, 2)
    lowers: Tuple[int, ...] = (0, 2)
    upper: int | None = None

    def __post_init__(self) -> None:
        if self.n_nodes < 1:
            raise ValueError("n_nodes must be >= 1.")
        if not (0.0 <= self.edge_prob <= 1.0):
            raise ValueError("edge_prob must be in [0, 1].")
        if self.max_multiplicity < 1:
            raise ValueError("max_multiplicity must be >= 1.")


def random_distance_graph(
    n_nodes: int, edge_prob: float, max_multiplicity: int, rng: np.random.Generator
) -> DistanceGraph:
    """Erdős–Rényi node graph with multiplicities drawn uniformly from 1..max."""
    graph = DistanceGraph(rng.integers(1, max_multiplicity + 1, size=n_nodes).tolist())
    for u in range(n_nodes):
        for v in range(u + 1, n_nodes):
            if rng.random() < edge_prob:
                graph.add_edge(u, v)
    return graph


def _solution_row(
    metric: FiniteMetric, solution, algorithm: str, runtime: float, base: Dict
) -> Dict:
    loads = solution.loads()
    return {
        **base,
        "algorithm": algorithm,
        "status": "ok",
        "objective": objective_value(metric, solution),
        "kcenter_radius": objective_value(metric, solution, objective="kcenter"),
        "lp_bound": solution.lp_bound,
        "consolidated_cost": solution.consolidated_cost,
        "upper_bound_used": int(solution.upper_bound),
        "min_load": int(loads.min()),
        "max_load": int(loads.max()),
        "runtime_sec": float(runtime),
    }


def _run_instance(
    metric: FiniteMetric,
    instance_id: int,
    k: int,
    p: int,
    lower: int,
    upper: int,
    rounding: RoundingConfig,
) -> List[Dict]:
    rows: List[Dict] = []
    base = {
        "instance_id": instance_id,
        "n_points": metric.size(),
        "k": k,
        "p": p,
        "lower": lower,
        "upper": upper,
    }

    runners = [
        ("exact", lambda: exact_clustering(metric, k, p, lower, upper, config=rounding.solver)),
        ("approximate", lambda: approximate_clustering(metric, k, p, lower, upper, config=rounding)),
    ]
    for algorithm, run in runners:
        t0 = time.perf_counter()
        try:
            solution = run()
        except KMedianError as exc:
            logger.warning(f"  {algorithm} failed on instance {instance_id} (k={k}, p={p}, lower={lower}): {exc}")
            rows.append({**base, "algorithm": algorithm, "status": type(exc).__name__})
            continue
        rows.append(_solution_row(metric, solution, algorithm, time.perf_counter() - t0, base))

    exact_row, approx_row = rows
    if exact_row["status"] == "ok" and approx_row["status"] == "ok":
        ratio = approx_row["objective"] / exact_row["objective"] if exact_row["objective"] > 0 else 1.0
        approx_row["ratio_to_exact"] = float(ratio)
    return rows


def _save_results(output_root: Path, rows: List[Dict], label: str) -> None:
    if not rows:
        return
    df = pd.DataFrame(rows)
    output_path = output_root / f"{label}.parquet"
    if output_path.exists():
        existing_df = pd.read_parquet(output_path)
        df = pd.concat([existing_df, df], ignore_index=True)
    df.to_parquet(output_path, index=False)
    logger.info(f"  Saved {len(rows)} results to {output_path}")


def run_experiments(
    output_root: Path,
    grid: InstanceGrid,
    instances: int = 10,
    seed: int = 0,
    rounding: RoundingConfig | None = None,
    verbose: bool = False,
) -> None:
    """Run exact and approximate clustering on random distance graphs.

    Args:
        output_root: Directory to save result Parquet files
        grid: Instance generator and parameter grid
        instances: Number of random instances
        seed: Seed of the instance generator
        rounding: Configuration of the approximation (and the solver)
        verbose: If True, enable DEBUG logging
    """
    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)
    if rounding is None:
        rounding = RoundingConfig()

    output_root.mkdir(parents=True, exist_ok=True)
    rng = np.random.default_rng(seed)
    combos = [(k, p, lower) for k in grid.ks for p in grid.ps for lower in grid.lowers if p <= k]
    logger.info(f"Running {instances} instances x {len(combos)} parameter combinations")

    processed_count = 0
    for instance_id in tqdm(range(instances), desc="Instances", unit="instance"):
        graph = random_distance_graph(grid.n_nodes, grid.edge_prob, grid.max_multiplicity, rng)
        metric = build_metric(graph)
        upper = metric.size() if grid.upper is None else grid.upper
        logger.info(f"Instance {instance_id}: {graph.num_nodes} nodes, N={graph.num_points}")

        rows: List[Dict] = []
        for k, p, lower in tqdm(combos, desc="Parameters", leave=False):
            try:
                rows.extend(_run_instance(metric, instance_id, k, p, lower, upper, rounding))
            except Exception as exc:
                logger.error(f"  Error on instance {instance_id} (k={k}, p={p}, lower={lower}): {exc}")
                logger.error(traceback.format_exc())
                continue

        _save_results(output_root, rows, f"results_seed{seed}")
        processed_count += 1

    logger.info("=" * 60)
    logger.info("Experiment summary:")
    logger.info(f"  Processed: {processed_count} instances")
    logger.info(f"  Result files in: {output_root}")
    logger.info("=" * 60)


def main(argv: List[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Compare exact and LP-rounded k-median on random instances.")
    parser.add_argument(
        "--output",
        type=Path,
        required=True,
        help="Directory where raw result Parquet files will be stored.",
    )
    parser.add_argument("--instances", type=int, default=10, help="Number of random instances.")
    parser.add_argument("--seed", type=int, default=0, help="Seed of the instance generator.")
    parser.add_argument("--nodes", type=int, default=6, help="Nodes per distance graph.")
    parser.add_argument("--edge-prob", type=float, default=0.4, help="Probability of each node edge.")
    parser.add_argument(
        "--max-multiplicity", type=int, default=3, help="Largest number of points per node."
    )
    parser.add_argument("--k", type=int, nargs="+", default=[2, 3], help="Numbers of centers.")
    parser.add_argument("--p", type=int, nargs="+", default=[1, 2], help="Replication factors.")
    parser.add_argument("--lower", type=int, nargs="+", default=[0, 2], help="Per-center lower bounds.")
    parser.add_argument(
        "--upper",
        type=int,
        default=0,
        help="Per-center upper bound. Use 0 for no limit.",
    )
    parser.add_argument(
        "--capacity-factor",
        type=float,
        default=None,
        help="Upper-bound inflation used by flow rounding (default (p+2)/p).",
    )
    parser.add_argument("--time-limit", type=float, default=None, help="Solver time limit in seconds.")
    parser.add_argument("--threads", type=int, default=4, help="Solver threads.")
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable verbose (DEBUG) logging.",
    )

    args = parser.parse_args(argv)
    grid = InstanceGrid(
        n_nodes=args.nodes,
        edge_prob=args.edge_prob,
        max_multiplicity=args.max_multiplicity,
        ks=tuple(args.k),
        ps=tuple(args.p),
        lowers=tuple(args.lower),
        upper=None if args.upper == 0 else args.upper,
    )
    rounding = RoundingConfig(
        capacity_factor=args.capacity_factor,
        solver=SolverConfig(threads=args.threads, time_limit=args.time_limit),
    )
    run_experiments(
        args.output,
        grid,
        instances=args.instances,
        seed=args.seed,
        rounding=rounding,
        verbose=args.verbose,
    )


if __name__ == "__main__":
    main()
