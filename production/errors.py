"""
Production Scheduler — Errors
Malformed input fails fast, before any solver variable exists.

Infeasible and inconclusive searches are not errors: they come back as
SolverStatus values on the response.
"""


class SchedulingError(Exception):
    """Base class for every domain error raised by the scheduler."""


class InvalidIntervalError(SchedulingError):
    """A time slot whose end is not strictly after its start."""


class NoAvailabilityError(SchedulingError):
    """No machine offers a single productive slot, so no horizon exists."""


class ModelConstructionError(SchedulingError):
    """Structurally invalid request: no machines, negative pieces, bad cycle time."""
