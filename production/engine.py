"""
Production Scheduler — Scheduling Pipeline
Calendar-constrained piece scheduling via Google OR-Tools CP-SAT.

Pipeline:
  1. Reject structurally invalid requests
  2. Snapshot every calendar (clamped to `start` when given)
  3. Anchor the integer horizon (derived or fixed)
  4. Convert slots to windows, dropping those shorter than a cycle
  5. Build and solve the model
  6. Project the assignment back into calendar time
"""

import logging
import time
from typing import Callable, Optional

from .backend import CpSatBackend, SolvingBackend
from .builder import ProductionModelBuilder, check_structure
from .errors import SchedulingError
from .horizon import filter_windows, resolve_horizon, to_windows
from .models import ProductionRequest, ProductionResponse, SolverStatus, TimeSlot
from .projector import project_solution


logger = logging.getLogger(__name__)


def collect_slots(request: ProductionRequest) -> dict[int, list[TimeSlot]]:
    """Productive slots per machine, read from private calendar copies."""
    slots = {}
    for m in request.machines:
        calendar = m.calendar.snapshot()
        if request.start is not None:
            slots[m.machine_id] = calendar.productive_slots(request.start)
        else:
            slots[m.machine_id] = list(calendar.slots)
    return slots


def solve_production(
    request: ProductionRequest,
    backend_factory: Optional[Callable[[], SolvingBackend]] = None,
) -> ProductionResponse:
    """
    Schedule `request.num_pieces` pieces on the request's machines.

    Domain errors (no machines, bad cycle time, no availability) come back
    as an ERROR response; infeasible and inconclusive searches come back with
    their own status.
    """
    t0 = time.time()
    backend_factory = backend_factory or CpSatBackend

    try:
        check_structure(request.machines, request.num_pieces)

        slots = collect_slots(request)
        horizon = resolve_horizon(request.horizon, slots.values())

        windows = {}
        for m in request.machines:
            machine_windows = to_windows(slots[m.machine_id], horizon)
            if request.filter_short_windows:
                machine_windows = filter_windows(machine_windows, m.cycle_time)
            windows[m.machine_id] = machine_windows

        logger.info(
            "Scheduling %d pieces on %d machines (horizon %s mode, %ds)",
            request.num_pieces, len(request.machines), request.horizon.mode.value, horizon.max_end,
        )
        model = ProductionModelBuilder(
            request.machines, request.num_pieces, windows, horizon, backend_factory()
        ).build()

        logger.info("Solving (time limit: %ss, workers: %s)", request.solver.max_solve_time_seconds,
                    request.solver.num_workers)
        outcome = model.backend.solve(request.solver)
        return project_solution(model, outcome, time.time() - t0)

    except SchedulingError as e:
        logger.warning("Scheduling request rejected: %s", e)
        return ProductionResponse(
            status=SolverStatus.ERROR,
            message=f"{type(e).__name__}: {e}",
        )
