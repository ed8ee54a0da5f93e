"""
Production Scheduler — Horizon Normalization & Window Filtering
Maps calendar instants onto the zero-based integer timeline the solver works
on, and drops productive windows that cannot host a single piece.
"""

import collections
import logging
from typing import Iterable

from .errors import NoAvailabilityError
from .models import Horizon, HorizonConfig, HorizonMode, TimeSlot, seconds_between


logger = logging.getLogger(__name__)


# A productive slot expressed as horizon offsets, plus the slot it came from
Window = collections.namedtuple("Window", "lo hi slot")


def derive_horizon(slot_lists: Iterable[Iterable[TimeSlot]]) -> Horizon:
    """
    Anchor the timeline on the earliest slot start of all machines.

    `max_end` is the latest slot instant, in whole seconds after that anchor.
    """
    slots = [slot for slots in slot_lists for slot in slots]
    if not slots:
        raise NoAvailabilityError("No machine offers any productive slot")

    reference_point = min(slot.start for slot in slots)
    latest = max(max(slot.start, slot.end) for slot in slots)
    horizon = Horizon(reference_point=reference_point, max_end=seconds_between(reference_point, latest))
    logger.debug("Derived horizon from %d slots: %s + %ds", len(slots), reference_point, horizon.max_end)
    return horizon


def resolve_horizon(config: HorizonConfig, slot_lists: Iterable[Iterable[TimeSlot]]) -> Horizon:
    """Fixed horizons are taken as given; derived ones come from the slots."""
    if config.mode == HorizonMode.FIXED:
        return Horizon(reference_point=config.reference_point, max_end=config.max_end)
    return derive_horizon(slot_lists)


def to_windows(slots: Iterable[TimeSlot], horizon: Horizon) -> list[Window]:
    """Slots as integer offsets, rounded inward so every offset stays inside its slot."""
    windows = []
    for slot in slots:
        lo = horizon.offset(slot.start)
        if horizon.instant(lo) < slot.start:
            lo += 1
        hi = horizon.offset(slot.end)
        if horizon.instant(hi) > slot.end:
            hi -= 1
        windows.append(Window(lo=lo, hi=hi, slot=slot))
    return windows


def filter_windows(windows: list[Window], cycle_time: int) -> list[Window]:
    """Keep windows long enough for at least one piece."""
    kept = [w for w in windows if w.hi - w.lo >= cycle_time]
    if len(kept) < len(windows):
        logger.debug(
            "Dropped %d windows shorter than cycle time %ds", len(windows) - len(kept), cycle_time
        )
    return kept
