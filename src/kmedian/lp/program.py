from __future__ import annotations

import enum
import logging
import time
from dataclasses import dataclass
from typing import Dict, List, Literal, Mapping, Protocol, Tuple

import numpy as np
import pulp

logger = logging.getLogger(__name__)

Sense = Literal["<=", ">=", "=="]


@dataclass(frozen=True)
class SolverConfig:
    """Configuration handed to the LP/MIP backend.

    Attributes
    ----------
    solver:
        PuLP solver name (see ``pulp.listSolvers()``); CBC ships with PuLP.
    verbose:
        Forward the solver log to the console.
    threads:
        Worker threads the solver may use internally.
    time_limit:
        Budget in seconds, passed through unchanged. ``None`` means no limit.
    """

    solver: str = "PULP_CBC_CMD"
    verbose: bool = False
    threads: int = 4
    time_limit: float | None = None

    def __post_init__(self) -> None:
        if self.threads < 1:
            raise ValueError("threads must be >= 1.")
        if self.time_limit is not None and self.time_limit <= 0:
            raise ValueError("time_limit must be positive.")


class SolverStatus(enum.Enum):
    OPTIMAL = "optimal"
    INFEASIBLE = "infeasible"
    UNBOUNDED = "unbounded"
    TIME_LIMIT = "time_limit"
    ERROR = "error"


@dataclass(frozen=True)
class SolverResult:
    status: SolverStatus
    values: np.ndarray
    objective: float | None
    runtime_sec: float = 0.0


@dataclass(frozen=True)
class Constraint:
    coeffs: Tuple[Tuple[int, float], ...]
    sense: Sense
    rhs: float
    name: str


class LinearProgram:
    """Explicit minimization model: bounded variables, linear objective and rows.

    Variables are referred to by the integer index :meth:`add_variable`
    returns. The model holds no solver state, so any backend implementing
    :class:`SolverBackend` can solve it.
    """

    def __init__(self, name: str = "program") -> None:
        self.name = name
        self.names: List[str] = []
        self.lower: List[float] = []
        self.upper: List[float | None] = []
        self.integer: List[bool] = []
        self.objective: Dict[int, float] = {}
        self.constraints: List[Constraint] = []

    @property
    def num_variables(self) -> int:
        return len(self.names)

    @property
    def num_constraints(self) -> int:
        return len(self.constraints)

    def add_variable(
        self, name: str, lower: float = 0.0, upper: float | None = None, integer: bool = False
    ) -> int:
        self.names.append(name)
        self.lower.append(float(lower))
        self.upper.append(None if upper is None else float(upper))
        self.integer.append(bool(integer))
        return len(self.names) - 1

    def add_constraint(
        self, coeffs: Mapping[int, float], sense: Sense, rhs: float, name: str | None = None
    ) -> None:
        if sense not in ("<=", ">=", "=="):
            raise ValueError(f"Unknown constraint sense: {sense!r}")
        if name is None:
            name = f"c{len(self.constraints)}"
        terms = tuple((int(i), float(c)) for i, c in coeffs.items())
        self.constraints.append(Constraint(terms, sense, float(rhs), name))

    def set_objective(self, coeffs: Mapping[int, float]) -> None:
        self.objective = {int(i): float(c) for i, c in coeffs.items()}


class SolverBackend(Protocol):
    """Black-box optimizer: a program goes in, a status and a point come out."""

    def solve(self, program: LinearProgram, config: SolverConfig) -> SolverResult:
        ...


class PulpBackend:
    """Solve a :class:`LinearProgram` through PuLP (CBC by default)."""

    def _make_solver(self, config: SolverConfig) -> pulp.LpSolver:
        return pulp.getSolver(
            config.solver,
            msg=config.verbose,
            timeLimit=config.time_limit,
            threads=config.threads,
        )

    def _status(self, problem: pulp.LpProblem, config: SolverConfig) -> SolverStatus:
        status, sol_status = problem.status, problem.sol_status
        if sol_status == pulp.LpSolutionIntegerFeasible and config.time_limit is not None:
            # Stopped on the time limit with an incumbent, optimality not proven
            return SolverStatus.TIME_LIMIT
        if status == pulp.LpStatusOptimal:
            return SolverStatus.OPTIMAL
        if status == pulp.LpStatusInfeasible:
            return SolverStatus.INFEASIBLE
        if status == pulp.LpStatusUnbounded:
            return SolverStatus.UNBOUNDED
        if status == pulp.LpStatusNotSolved and config.time_limit is not None:
            return SolverStatus.TIME_LIMIT
        if status == pulp.LpStatusUndefined:
            # CBC reports some infeasible integer programs as undefined
            return SolverStatus.INFEASIBLE
        return SolverStatus.ERROR

    def solve(self, program: LinearProgram, config: SolverConfig) -> SolverResult:
        problem = pulp.LpProblem(program.name, pulp.LpMinimize)
        variables = [
            pulp.LpVariable(
                name,
                lowBound=lo,
                upBound=up,
                cat=pulp.LpInteger if integer else pulp.LpContinuous,
            )
            for name, lo, up, integer in zip(
                program.names, program.lower, program.upper, program.integer
            )
        ]

        problem += pulp.lpSum(c * variables[i] for i, c in program.objective.items())
        for con in program.constraints:
            expr = pulp.lpSum(c * variables[i] for i, c in con.coeffs)
            if con.sense == "<=":
                problem += expr <= con.rhs, con.name
            elif con.sense == ">=":
                problem += expr >= con.rhs, con.name
            else:
                problem += expr == con.rhs, con.name

        logger.debug(
            f"Solving {program.name}: {program.num_variables} variables, "
            f"{program.num_constraints} constraints with {config.solver}"
        )
        t0 = time.perf_counter()
        problem.solve(self._make_solver(config))
        runtime = time.perf_counter() - t0

        status = self._status(problem, config)
        values = np.array(
            [v.varValue if v.varValue is not None else 0.0 for v in variables], dtype=float
        )
        objective = pulp.value(problem.objective)
        logger.debug(
            f"{program.name}: status={pulp.LpStatus[problem.status]}, "
            f"objective={objective}, time={runtime:.2f}s"
        )
        return SolverResult(
            status=status,
            values=values,
            objective=None if objective is None else float(objective),
            runtime_sec=runtime,
        )
