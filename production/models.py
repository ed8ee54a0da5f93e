"""
Production Scheduler — Data Models
Pydantic schemas for calendar-constrained production scheduling.

A machine owns a calendar of productive time slots and produces one piece
every `cycle_time` seconds. The scheduler places every requested piece inside
one productive slot of exactly one machine, minimizing the makespan.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from enum import Enum
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .errors import InvalidIntervalError


logger = logging.getLogger(__name__)

_SECONDS_PER_DAY = 86400


def seconds_between(reference: datetime, instant: datetime) -> int:
    """Whole seconds from `reference` to `instant`, truncated toward zero."""
    delta = instant - reference
    seconds = delta.days * _SECONDS_PER_DAY + delta.seconds
    if seconds < 0 and delta.microseconds:
        seconds += 1
    return seconds


def check_same_awareness(instants) -> None:
    """Reject a mix of timezone-aware and naive datetimes, which cannot be compared."""
    kinds = {instant.utcoffset() is not None for instant in instants if instant is not None}
    if len(kinds) > 1:
        raise ValueError("Cannot mix timezone-aware and naive datetimes")


# ─────────────────────────────────────────────
# Enums
# ─────────────────────────────────────────────

class SolverStatus(str, Enum):
    """Terminal outcome of one scheduling run."""
    OPTIMAL = "optimal"
    FEASIBLE = "feasible"
    INFEASIBLE = "infeasible"
    INCONCLUSIVE = "inconclusive"
    ERROR = "error"


class HorizonMode(str, Enum):
    """How the integer timeline is anchored."""
    DERIVED = "derived"
    FIXED = "fixed"


# ─────────────────────────────────────────────
# Calendar Models
# ─────────────────────────────────────────────

class TimeSlot(BaseModel):
    """A closed productive interval [start, end]. Immutable."""
    model_config = ConfigDict(frozen=True)

    start: datetime = Field(..., description="Instant the slot opens")
    end: datetime = Field(..., description="Instant the slot closes. Must be after start.")

    @model_validator(mode="after")
    def check_order(self):
        check_same_awareness((self.start, self.end))
        if self.end <= self.start:
            raise InvalidIntervalError(f"Slot end {self.end} is not after start {self.start}")
        return self

    @property
    def duration(self) -> timedelta:
        return self.end - self.start

    def start_seconds(self, reference: datetime) -> int:
        return seconds_between(reference, self.start)

    def end_seconds(self, reference: datetime) -> int:
        return seconds_between(reference, self.end)

    def __str__(self) -> str:
        return f"Slot: [{self.start.isoformat()} - {self.end.isoformat()}]"


def _check_count(n: Optional[int]) -> None:
    if n is not None and n < 0:
        raise ValueError(f"Slot count must not be negative, got {n}")


class Calendar(BaseModel):
    """
    Ordered productive slots of one machine.

    Insertion order is treated as chronological order; the calendar never
    re-sorts and never checks overlap. The only mutations are `add_slot` and
    `clamp_first_window`.
    """
    slots: list[TimeSlot] = Field(default_factory=list, description="Productive slots in chronological order")

    def add_slot(self, slot: TimeSlot) -> None:
        self.slots.append(slot)

    def snapshot(self) -> Calendar:
        """Private deep copy, safe to clamp without touching the original."""
        return self.model_copy(deep=True)

    def visible_windows(self, start: datetime) -> list[TimeSlot]:
        """Slots still productive at or after `start`, first one clamped to `start`.

        Pure: the stored slots are left untouched.
        """
        windows = [slot for slot in self.slots if slot.end > start]
        if windows and windows[0].start < start:
            windows[0] = TimeSlot(start=start, end=windows[0].end)
        return windows

    def clamp_first_window(self, start: datetime) -> None:
        """Replace the first stored slot visible from `start` by [start, end]."""
        for index, slot in enumerate(self.slots):
            if slot.end <= start:
                continue
            if slot.start < start:
                self.slots[index] = TimeSlot(start=start, end=slot.end)
                logger.debug("Clamped slot %d from %s to %s", index, slot.start, start)
            return

    def productive_slots(self, start: datetime, n: Optional[int] = None) -> list[TimeSlot]:
        """
        Productive windows from `start`, clamping the stored first window.

        With `n`, returns the first `n` windows, or nothing when `n` exceeds
        either the stored slot count or the number of visible windows. The
        stored-count check runs against all slots, including those already
        past `start`. Nothing is clamped when the result is empty.
        """
        _check_count(n)
        if n is not None and n > len(self.slots):
            return []
        windows = self.visible_windows(start)
        if not windows or (n is not None and n > len(windows)):
            return []
        self.clamp_first_window(start)
        return windows if n is None else windows[:n]

    def non_productive_slots(self, start: datetime, n: Optional[int] = None) -> list[TimeSlot]:
        """Gaps between visible windows, led by [start, first.start) when the first opens later."""
        _check_count(n)
        windows = self.visible_windows(start)
        if not windows:
            return []
        gaps = []
        if windows[0].start > start:
            gaps.append(TimeSlot(start=start, end=windows[0].start))
        for previous, following in zip(windows, windows[1:]):
            # adjacent or overlapping slots leave no gap
            if following.start > previous.end:
                gaps.append(TimeSlot(start=previous.end, end=following.start))
        if n is None:
            return gaps
        if n > len(gaps):
            return []
        return gaps[:n]


class Machine(BaseModel):
    """A machine producing one piece per cycle inside its calendar."""
    model_config = ConfigDict(frozen=True)

    machine_id: int = Field(..., description="Unique machine identifier")
    name: Optional[str] = Field(None, description="Human-readable machine name")
    cycle_time: int = Field(..., description="Seconds needed to produce one piece")
    calendar: Calendar = Field(default_factory=Calendar, description="Productive slots of this machine")

    @property
    def slots(self) -> list[TimeSlot]:
        return self.calendar.slots

    @property
    def calendar_size(self) -> int:
        return len(self.calendar.slots)


# ─────────────────────────────────────────────
# Horizon & Configuration
# ─────────────────────────────────────────────

class Horizon(BaseModel):
    """Zero-based integer timeline: offset 0 is `reference_point`."""
    model_config = ConfigDict(frozen=True)

    reference_point: datetime
    max_end: int = Field(..., ge=0, description="Upper bound of every offset, in seconds")

    def offset(self, instant: datetime) -> int:
        return seconds_between(self.reference_point, instant)

    def instant(self, offset: int) -> datetime:
        return self.reference_point + timedelta(seconds=offset)


class HorizonConfig(BaseModel):
    """Either derive the horizon from the calendars, or pin it."""
    mode: HorizonMode = Field(HorizonMode.DERIVED, description="derived = from calendars, fixed = caller supplied")
    reference_point: Optional[datetime] = Field(None, description="Offset 0 in fixed mode")
    max_end: Optional[int] = Field(None, ge=0, description="Horizon bound in seconds in fixed mode")

    @model_validator(mode="after")
    def check_fixed_values(self):
        if self.mode == HorizonMode.FIXED and (self.reference_point is None or self.max_end is None):
            raise ValueError("Fixed horizon needs both reference_point and max_end")
        return self


class SolverConfig(BaseModel):
    """Knobs handed to the solving engine."""
    num_workers: int = Field(4, ge=0, description="Parallel search workers. 0 = one per core.")
    max_solve_time_seconds: int = Field(30, ge=1, le=300, description="Maximum solver runtime in seconds")
    log_search_progress: bool = Field(False, description="Route the engine search log to the logger")


# ─────────────────────────────────────────────
# Input Models
# ─────────────────────────────────────────────

class ProductionRequest(BaseModel):
    """
    Complete scheduling request.

    Send the machines (cycle time + calendar) and the number of pieces. The
    solver assigns every piece to one machine and one productive slot while
    minimizing the time the last piece finishes.
    """
    machines: list[Machine] = Field(..., description="Machines with their calendars")
    num_pieces: int = Field(..., description="Number of identical pieces to produce")
    start: Optional[datetime] = Field(
        None, description="Schedule from this instant. Slots are clamped to it. None = use whole calendars."
    )
    horizon: HorizonConfig = Field(default_factory=HorizonConfig)
    filter_short_windows: bool = Field(
        True, description="Drop slots shorter than one cycle before building the model"
    )
    solver: SolverConfig = Field(default_factory=SolverConfig)

    @field_validator("machines")
    @classmethod
    def validate_unique_machine_ids(cls, v):
        ids = [m.machine_id for m in v]
        if len(ids) != len(set(ids)):
            raise ValueError("Duplicate machine_id found")
        return v

    @model_validator(mode="after")
    def check_datetimes_comparable(self):
        instants = [self.start, self.horizon.reference_point]
        for m in self.machines:
            instants.extend(t for s in m.slots for t in (s.start, s.end))
        check_same_awareness(instants)
        return self


# ─────────────────────────────────────────────
# Output Models
# ─────────────────────────────────────────────

class Placement(BaseModel):
    """One piece produced on one machine."""
    machine_id: int
    piece: int = Field(..., ge=0)
    start: datetime
    end: datetime
    start_offset: int = Field(..., ge=0, description="Seconds since the horizon reference point")
    end_offset: int = Field(..., ge=0)
    window: Optional[TimeSlot] = Field(None, description="Productive slot hosting the piece")


class MachineSummary(BaseModel):
    """Load of a single machine."""
    machine_id: int
    name: Optional[str] = None
    num_pieces: int = Field(..., ge=0)
    busy_seconds: int = Field(..., ge=0)
    available_seconds: int = Field(..., ge=0, description="Productive seconds offered to the model")
    utilization_pct: float = Field(..., ge=0, le=100)


class ProductionMetrics(BaseModel):
    """Aggregate metrics for the entire schedule."""
    makespan_seconds: int = Field(..., description="Offset of the last piece end")
    num_pieces: int
    machines_used: int
    avg_machine_utilization_pct: float
    solve_time_seconds: float


class ProductionResponse(BaseModel):
    """
    Complete solver response.

    On success carries the placements in calendar time and the makespan
    instant; infeasible and inconclusive runs carry only status and message.
    """
    status: SolverStatus
    message: str = Field(..., description="Human-readable status message")
    placements: list[Placement] = Field(default_factory=list)
    makespan: Optional[datetime] = None
    horizon: Optional[Horizon] = None
    machine_summaries: list[MachineSummary] = Field(default_factory=list)
    metrics: Optional[ProductionMetrics] = None


# ─────────────────────────────────────────────
# Validation Request/Response
# ─────────────────────────────────────────────

class ValidationViolation(BaseModel):
    """A single constraint violation found in a set of placements."""
    violation_type: str = Field(..., description="Type: overlap, duration, containment, assignment, etc.")
    severity: str = Field("error", description="error or warning")
    description: str
    affected_pieces: list[int] = Field(default_factory=list)


class ValidateRequest(BaseModel):
    """Validate placements against machine calendars and cycle times."""
    placements: list[Placement] = Field(default_factory=list)
    machines: list[Machine] = Field(..., min_length=1)
    num_pieces: int = Field(..., ge=0)
    makespan: Optional[datetime] = Field(None, description="Reported makespan to cross-check")

    @model_validator(mode="after")
    def check_datetimes_comparable(self):
        instants = [self.makespan]
        instants.extend(t for p in self.placements for t in (p.start, p.end))
        for m in self.machines:
            instants.extend(t for s in m.slots for t in (s.start, s.end))
        check_same_awareness(instants)
        return self


class ValidateResponse(BaseModel):
    """Validation result."""
    is_valid: bool
    num_violations: int = 0
    violations: list[ValidationViolation] = Field(default_factory=list)
    machine_summaries: list[MachineSummary] = Field(default_factory=list)
    improvement_suggestions: list[str] = Field(default_factory=list)
