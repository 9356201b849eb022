"""
Lower/upper-bounded, p-replicated k-median by LP rounding.

This package provides:
- finite metrics, built directly, from point clouds or from distance graphs
- the LP relaxation and the exact integer program (PuLP/CBC)
- monarch/empire rounding of the opened centers
- min-cost-flow rounding of the assignment (networkx) and a DIMACS utility
- objective evaluation, experiment orchestration and analysis utilities
"""

from .algorithms import RoundingConfig, approximate_clustering, exact_clustering
from .metric import DistanceGraph, FiniteMetric, build_metric
from .objective import objective_value

__all__ = [
    "DistanceGraph",
    "FiniteMetric",
    "RoundingConfig",
    "approximate_clustering",
    "build_metric",
    "exact_clustering",
    "objective_value",
]
