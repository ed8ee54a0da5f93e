"""
Production Scheduler — Solving Engine Backend
The narrow contract the model builder talks to, and its OR-Tools CP-SAT
implementation. The builder only ever calls the methods of SolvingBackend,
so another constraint engine can be plugged in behind the same surface.
"""

import logging
from typing import Any, Optional, Protocol, Sequence

from ortools.sat.python import cp_model

from .models import SolverConfig, SolverStatus


logger = logging.getLogger(__name__)


class SolveOutcome(Protocol):
    status: SolverStatus
    wall_time: float

    def value(self, var: Any) -> int: ...


class SolvingBackend(Protocol):
    def new_int_var(self, lower_bound: int, upper_bound: int, name: str) -> Any: ...

    def new_bool_var(self, name: str) -> Any: ...

    def new_optional_interval(self, start: Any, length: int, end: Any, presence: Any, name: str) -> Any: ...

    def add_equality(self, expr: Any, rhs: Any, enforce: Optional[Any] = None) -> None: ...

    def add_greater_or_equal(self, expr: Any, bound: Any, enforce: Optional[Any] = None) -> None: ...

    def add_less_or_equal(self, expr: Any, bound: Any, enforce: Optional[Any] = None) -> None: ...

    def add_no_overlap(self, intervals: Sequence[Any]) -> None: ...

    def add_max_equality(self, target: Any, exprs: Sequence[Any]) -> None: ...

    def add_hint(self, var: Any, value: int) -> None: ...

    def minimize(self, expr: Any) -> None: ...

    def solve(self, config: SolverConfig) -> SolveOutcome: ...


_STATUS_MAP = {
    cp_model.OPTIMAL: SolverStatus.OPTIMAL,
    cp_model.FEASIBLE: SolverStatus.FEASIBLE,
    cp_model.INFEASIBLE: SolverStatus.INFEASIBLE,
    cp_model.UNKNOWN: SolverStatus.INCONCLUSIVE,
    cp_model.MODEL_INVALID: SolverStatus.ERROR,
}


class CpSatOutcome:
    """Terminal status of a CP-SAT run plus read access to its values."""

    def __init__(self, solver: cp_model.CpSolver, status):
        self._solver = solver
        self.status = _STATUS_MAP.get(status, SolverStatus.ERROR)
        self.status_name = solver.status_name(status)

    @property
    def wall_time(self) -> float:
        return self._solver.wall_time

    def value(self, var) -> int:
        return self._solver.value(var)


class CpSatBackend:
    """SolvingBackend over `ortools.sat.python.cp_model`."""

    def __init__(self):
        self.model = cp_model.CpModel()

    def new_int_var(self, lower_bound, upper_bound, name):
        return self.model.new_int_var(lower_bound, upper_bound, name)

    def new_bool_var(self, name):
        return self.model.new_bool_var(name)

    def new_optional_interval(self, start, length, end, presence, name):
        return self.model.new_optional_interval_var(start, length, end, presence, name)

    def add_equality(self, expr, rhs, enforce=None):
        self._enforce(self.model.add(expr == rhs), enforce)

    def add_greater_or_equal(self, expr, bound, enforce=None):
        self._enforce(self.model.add(expr >= bound), enforce)

    def add_less_or_equal(self, expr, bound, enforce=None):
        self._enforce(self.model.add(expr <= bound), enforce)

    def add_no_overlap(self, intervals):
        self.model.add_no_overlap(intervals)

    def add_max_equality(self, target, exprs):
        self.model.add_max_equality(target, exprs)

    def add_hint(self, var, value):
        self.model.add_hint(var, value)

    def minimize(self, expr):
        self.model.minimize(expr)

    def solve(self, config: SolverConfig) -> CpSatOutcome:
        solver = cp_model.CpSolver()
        solver.parameters.max_time_in_seconds = config.max_solve_time_seconds
        solver.parameters.num_workers = config.num_workers
        solver.parameters.log_search_progress = config.log_search_progress
        if config.log_search_progress:
            solver.parameters.log_to_stdout = False
            solver.log_callback = lambda line: logger.info("CP-SAT: %s", line)

        status = solver.solve(self.model)
        outcome = CpSatOutcome(solver, status)
        logger.debug("CP-SAT finished with %s in %.3fs", outcome.status_name, outcome.wall_time)
        return outcome

    @staticmethod
    def _enforce(constraint, enforce):
        if enforce is not None:
            constraint.only_enforce_if(enforce)
