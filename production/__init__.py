"""Production Scheduler — calendar-constrained piece scheduling via OR-Tools CP-SAT."""
from .models import *  # noqa: F401,F403
from .errors import (  # noqa: F401
    SchedulingError, InvalidIntervalError, NoAvailabilityError, ModelConstructionError,
)
from .registry import MachineScheduledJobs  # noqa: F401
from .engine import solve_production  # noqa: F401
from .validator import validate_production  # noqa: F401
