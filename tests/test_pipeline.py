from __future__ import annotations

import numpy as np
import pandas as pd
import pytest

from kmedian import DistanceGraph, RoundingConfig, approximate_clustering, build_metric, exact_clustering
from kmedian.analysis.summarize import main as summarize_main
from kmedian.errors import InfeasibleInstanceError
from kmedian.experiments.run import InstanceGrid, random_distance_graph, run_experiments
from kmedian.objective import objective_value

TOL = 1e-6


def _scenario_metric():
    graph = DistanceGraph([1, 10])
    graph.add_edge(0, 1)
    return build_metric(graph)


def test_approximation_on_two_node_graph() -> None:
    metric = _scenario_metric()
    exact = exact_clustering(metric, k=2, p=1, lower=3, upper=11)
    approx = approximate_clustering(metric, k=2, p=1, lower=3, upper=11)

    assert np.isclose(objective_value(metric, exact), 11.0)
    assert approx.k == 2
    assert np.all(approx.replication() == 1)
    assert np.all(approx.loads() >= 3)
    assert approx.lp_bound is not None
    assert approx.lp_bound <= objective_value(metric, exact) + TOL
    assert objective_value(metric, approx) >= objective_value(metric, exact) - TOL
    assert exact.consolidated_cost is None
    assert approx.consolidated_cost is not None
    assert approx.consolidated_cost >= 0.0


@pytest.mark.parametrize("seed", range(3))
@pytest.mark.parametrize("k, p, lower", [(2, 1, 0), (2, 2, 1), (3, 2, 1)])
def test_rounded_solutions_are_feasible(seed: int, k: int, p: int, lower: int) -> None:
    rng = np.random.default_rng(seed)
    metric = build_metric(random_distance_graph(4, 0.5, 2, rng))
    upper = metric.size()

    exact = exact_clustering(metric, k, p, lower, upper)
    approx = approximate_clustering(metric, k, p, lower, upper)

    assert approx.k == k
    assert np.unique(approx.centers).size == k
    assert np.all(approx.replication() == p)
    loads = approx.loads()
    assert np.all(loads >= lower)
    assert np.all(loads <= approx.upper_bound)
    # With a non-binding upper bound the rounded solution is feasible for the exact program
    exact_cost = objective_value(metric, exact)
    assert approx.lp_bound <= exact_cost + TOL
    assert exact_cost <= objective_value(metric, approx) + TOL


def test_exact_replication_without_band() -> None:
    metric = _scenario_metric()
    config = RoundingConfig(replication_band=False, capacity_factor=1.0)
    approx = approximate_clustering(metric, k=2, p=2, lower=0, upper=11, config=config)

    assert approx.upper_bound == 11
    assert np.all(approx.replication() == 2)


def test_infeasible_instances_raise() -> None:
    metric = _scenario_metric()
    with pytest.raises(InfeasibleInstanceError):
        approximate_clustering(metric, k=0, p=1, lower=0, upper=11)
    with pytest.raises(InfeasibleInstanceError):
        approximate_clustering(metric, k=2, p=1, lower=6, upper=11)


def test_rounding_config_validation() -> None:
    assert RoundingConfig().tol == 1e-6
    with pytest.raises(ValueError):
        RoundingConfig(capacity_factor=0.5)
    with pytest.raises(ValueError):
        RoundingConfig(tol=0.0)
    with pytest.raises(ValueError):
        RoundingConfig(cost_scale=0)


def test_experiments_and_summary(tmp_path) -> None:
    raw = tmp_path / "raw"
    grid = InstanceGrid(n_nodes=3, edge_prob=0.5, max_multiplicity=2, ks=(2,), ps=(1,), lowers=(0,))
    run_experiments(raw, grid, instances=2, seed=1)

    df = pd.read_parquet(raw / "results_seed1.parquet")
    assert set(df["algorithm"]) == {"exact", "approximate"}
    assert (df["status"] == "ok").all()
    assert (df.loc[df["algorithm"] == "approximate", "ratio_to_exact"] >= 1.0 - TOL).all()
    assert df.loc[df["algorithm"] == "approximate", "consolidated_cost"].notna().all()

    summary = tmp_path / "summary"
    summarize_main(["--raw", str(raw), "--output", str(summary)])
    assert (summary / "summary.csv").exists()
    assert (summary / "table_ratio.tex").exists()
    assert (summary / "ratio_by_k.png").exists()
