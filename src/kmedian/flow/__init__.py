from .dimacs import read_dimacs_min, write_flows
from .network import DEFAULT_COST_SCALE, Arc, FlowNetwork, FlowResult, solve_min_cost_flow

__all__ = [
    "Arc",
    "DEFAULT_COST_SCALE",
    "FlowNetwork",
    "FlowResult",
    "read_dimacs_min",
    "solve_min_cost_flow",
    "write_flows",
]
