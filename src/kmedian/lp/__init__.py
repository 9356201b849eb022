from .formulation import build_program, solve_exact, solve_relaxation
from .program import (
    LinearProgram,
    PulpBackend,
    SolverBackend,
    SolverConfig,
    SolverResult,
    SolverStatus,
)

__all__ = [
    "LinearProgram",
    "PulpBackend",
    "SolverBackend",
    "SolverConfig",
    "SolverResult",
    "SolverStatus",
    "build_program",
    "solve_exact",
    "solve_relaxation",
]
