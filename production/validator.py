"""
Production Scheduler — Placement Validator
Checks a set of placements (solver output or hand-made) against machine
calendars and cycle times, and reports every violation found.
"""

import collections

from .models import (
    ValidateRequest, ValidateResponse, ValidationViolation, Placement,
    seconds_between,
)
from .projector import compute_machine_summaries


def validate_production(request: ValidateRequest) -> ValidateResponse:
    """
    Validate placements.

    Checks:
      1. Machine existence
      2. Duration (end - start == machine cycle time)
      3. Containment (inside one calendar slot of the machine)
      4. No overlap per machine
      5. Single assignment (every piece exactly once, indices in range)
      6. Makespan (equals the latest placement end, when reported)
    """
    violations: list[ValidationViolation] = []
    suggestions: list[str] = []

    machine_map = {m.machine_id: m for m in request.machines}

    # ── 1. Machine existence ──
    known: list[Placement] = []
    for p in request.placements:
        if p.machine_id not in machine_map:
            violations.append(ValidationViolation(
                violation_type="unknown_machine",
                description=f"Piece {p.piece} assigned to unknown machine {p.machine_id}",
                affected_pieces=[p.piece],
            ))
        else:
            known.append(p)

    # ── 2. Duration ──
    for p in known:
        cycle = machine_map[p.machine_id].cycle_time
        actual = seconds_between(p.start, p.end)
        if actual != cycle:
            violations.append(ValidationViolation(
                violation_type="duration",
                description=f"Piece {p.piece} on machine {p.machine_id} lasts {actual}s, cycle time is {cycle}s",
                affected_pieces=[p.piece],
            ))

    # ── 3. Containment ──
    for p in known:
        slots = machine_map[p.machine_id].slots
        if not any(slot.start <= p.start and p.end <= slot.end for slot in slots):
            violations.append(ValidationViolation(
                violation_type="containment",
                description=(
                    f"Piece {p.piece} [{p.start.isoformat()} - {p.end.isoformat()}] "
                    f"is not inside any productive slot of machine {p.machine_id}"
                ),
                affected_pieces=[p.piece],
            ))

    # ── 4. No-overlap per machine ──
    by_machine: dict[int, list[Placement]] = collections.defaultdict(list)
    for p in known:
        by_machine[p.machine_id].append(p)

    for mid, placed in by_machine.items():
        ordered = sorted(placed, key=lambda p: p.start)
        # a: the piece ending last among those seen so far
        a = None
        for b in ordered:
            if a is not None and a.end > b.start:
                violations.append(ValidationViolation(
                    violation_type="overlap",
                    description=(
                        f"Machine {mid}: piece {a.piece} ends at {a.end.isoformat()} "
                        f"but piece {b.piece} starts at {b.start.isoformat()}"
                    ),
                    affected_pieces=[a.piece, b.piece],
                ))
            if a is None or b.end > a.end:
                a = b

    # ── 5. Single assignment ──
    counts = collections.Counter(p.piece for p in request.placements)
    for piece, count in sorted(counts.items()):
        if piece >= request.num_pieces:
            violations.append(ValidationViolation(
                violation_type="unknown_piece",
                description=f"Piece {piece} is outside the requested range 0..{request.num_pieces - 1}",
                affected_pieces=[piece],
            ))
        elif count > 1:
            violations.append(ValidationViolation(
                violation_type="duplicate_piece",
                description=f"Piece {piece} is placed {count} times",
                affected_pieces=[piece],
            ))
    for piece in range(request.num_pieces):
        if piece not in counts:
            violations.append(ValidationViolation(
                violation_type="missing_piece",
                description=f"Piece {piece} is not in the schedule",
                affected_pieces=[piece],
            ))

    # ── 6. Makespan ──
    if request.makespan is not None and request.placements:
        latest = max(p.end for p in request.placements)
        if request.makespan != latest:
            violations.append(ValidationViolation(
                violation_type="makespan",
                description=(
                    f"Reported makespan {request.makespan.isoformat()} differs from "
                    f"the last piece end {latest.isoformat()}"
                ),
            ))

    errors = [v for v in violations if v.severity == "error"]

    summaries = []
    if not errors:
        summaries = compute_machine_summaries(request.machines, request.placements)

        # Idle time between consecutive pieces inside the same slot
        for mid, placed in by_machine.items():
            ordered = sorted(placed, key=lambda p: p.start)
            idle = 0
            for a, b in zip(ordered, ordered[1:]):
                if a.window is not None and a.window == b.window:
                    idle += seconds_between(a.end, b.start)
            if idle > 0:
                suggestions.append(
                    f"Machine {mid} idles {idle}s between pieces inside the same slot. Consider compacting."
                )

    return ValidateResponse(
        is_valid=len(errors) == 0,
        num_violations=len(violations),
        violations=violations,
        machine_summaries=summaries,
        improvement_suggestions=suggestions,
    )
