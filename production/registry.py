"""
Production Scheduler — Calendar Registry
Side table used while machine calendars are assembled slot by slot from an
external source. The scheduling model never reads it directly.
"""

import logging

from pydantic import BaseModel, Field

from .models import Calendar, Machine, TimeSlot


logger = logging.getLogger(__name__)


class MachineScheduledJobs(BaseModel):
    """Machine id → calendar."""
    schedule: dict[int, Calendar] = Field(default_factory=dict)

    def add_calendar(self, machine_id: int, calendar: Calendar) -> None:
        self.schedule[machine_id] = calendar

    def add_slot(self, machine_id: int, slot: TimeSlot) -> bool:
        """Append to a registered calendar. Unknown machines are skipped."""
        calendar = self.schedule.get(machine_id)
        if calendar is None:
            logger.warning("No calendar registered for machine %s, slot %s ignored", machine_id, slot)
            return False
        calendar.add_slot(slot)
        return True

    def calendar_for(self, machine_id: int) -> Calendar:
        return self.schedule[machine_id]

    def build_machines(self, cycle_times: dict[int, int]) -> list[Machine]:
        """Machines for every registered calendar, in registration order."""
        missing = [mid for mid in self.schedule if mid not in cycle_times]
        if missing:
            raise KeyError(f"No cycle time for machines {missing}")
        return [
            Machine(machine_id=mid, cycle_time=cycle_times[mid], calendar=calendar)
            for mid, calendar in self.schedule.items()
        ]
