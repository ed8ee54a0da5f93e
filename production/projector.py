"""
Production Scheduler — Solution Projection
Turns the engine's integer assignment back into calendar time.
"""

import collections
import logging

from .models import (
    Placement, MachineSummary, ProductionMetrics, ProductionResponse, SolverStatus,
    seconds_between,
)


logger = logging.getLogger(__name__)


def project_solution(model, outcome, solve_time: float) -> ProductionResponse:
    """
    Read back a solved ProductionModel.

    Optimal and feasible runs produce one placement per active (machine,
    piece) pair. Infeasible and inconclusive runs are ordinary outcomes with
    an explanatory message.
    """
    horizon = model.horizon

    if outcome.status in (SolverStatus.OPTIMAL, SolverStatus.FEASIBLE):
        placements = []
        for m in model.machines:
            windows = model.windows.get(m.machine_id, [])
            for pv in model.piece_vars(m.machine_id):
                if not outcome.value(pv.active):
                    continue
                start_offset = outcome.value(pv.start)
                end_offset = outcome.value(pv.end)
                window = next(
                    (w.slot for w, lit in zip(windows, pv.in_window) if outcome.value(lit)),
                    None,
                )
                placements.append(Placement(
                    machine_id=m.machine_id,
                    piece=pv.piece,
                    start=horizon.instant(start_offset),
                    end=horizon.instant(end_offset),
                    start_offset=start_offset,
                    end_offset=end_offset,
                    window=window,
                ))
        placements.sort(key=lambda p: (p.piece, p.machine_id))

        makespan_offset = outcome.value(model.makespan)
        summaries = compute_machine_summaries(model.machines, placements, model.windows)
        metrics = _compute_metrics(placements, summaries, makespan_offset, solve_time)
        label = "Optimal" if outcome.status == SolverStatus.OPTIMAL else "Feasible"

        return ProductionResponse(
            status=outcome.status,
            message=(
                f"{label} schedule for {len(placements)} pieces found in {solve_time:.2f}s. "
                f"Last piece ends at {horizon.instant(makespan_offset).isoformat()}."
            ),
            placements=placements,
            makespan=horizon.instant(makespan_offset),
            horizon=horizon,
            machine_summaries=summaries,
            metrics=metrics,
        )

    if outcome.status == SolverStatus.INFEASIBLE:
        logger.warning("No feasible schedule for %d pieces", model.num_pieces)
        return ProductionResponse(
            status=SolverStatus.INFEASIBLE,
            message=(
                f"No feasible schedule exists for {model.num_pieces} pieces. "
                "The productive windows cannot host every piece without overlap."
            ),
            horizon=horizon,
        )

    if outcome.status == SolverStatus.INCONCLUSIVE:
        logger.warning("Search inconclusive after %.2fs", solve_time)
        return ProductionResponse(
            status=SolverStatus.INCONCLUSIVE,
            message=(
                f"Search inconclusive within budget ({solve_time:.2f}s): neither a schedule nor "
                "a proof of infeasibility was found. Try increasing max_solve_time_seconds."
            ),
            horizon=horizon,
        )

    return ProductionResponse(
        status=SolverStatus.ERROR,
        message="The solving engine rejected the model.",
        horizon=horizon,
    )


def compute_machine_summaries(machines, placements: list[Placement], windows=None) -> list[MachineSummary]:
    """Per-machine piece count and busy share of the offered productive time."""
    by_machine: dict[int, list[Placement]] = collections.defaultdict(list)
    for p in placements:
        by_machine[p.machine_id].append(p)

    summaries = []
    for m in machines:
        placed = by_machine.get(m.machine_id, [])
        busy = sum(seconds_between(p.start, p.end) for p in placed)
        if windows is not None:
            available = sum(w.hi - w.lo for w in windows.get(m.machine_id, []))
        else:
            available = sum(int(slot.duration.total_seconds()) for slot in m.slots)
        summaries.append(MachineSummary(
            machine_id=m.machine_id,
            name=m.name,
            num_pieces=len(placed),
            busy_seconds=busy,
            available_seconds=max(0, available),
            utilization_pct=min(100.0, round(busy / available * 100, 1)) if available > 0 else 0.0,
        ))
    return summaries


def _compute_metrics(placements, summaries, makespan_offset: int, solve_time: float) -> ProductionMetrics:
    avg_util = (
        sum(s.utilization_pct for s in summaries) / len(summaries)
        if summaries else 0
    )
    return ProductionMetrics(
        makespan_seconds=makespan_offset,
        num_pieces=len(placements),
        machines_used=sum(1 for s in summaries if s.num_pieces > 0),
        avg_machine_utilization_pct=round(avg_util, 1),
        solve_time_seconds=round(solve_time, 3),
    )
