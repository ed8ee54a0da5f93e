"""
Production Scheduler — Model Builder
Encodes piece assignment, window containment, per-machine no-overlap and the
makespan objective for the solving engine.

For every (machine m, piece i):
  - start / end offsets in [0, max_end]
  - an `active` literal: piece i is produced on machine m
  - an optional interval of length cycle_time[m], present only when active
  - one `in_window` literal per retained productive window of m

One builder serves exactly one request.
"""

import collections
import logging
from typing import Optional

from .backend import CpSatBackend, SolvingBackend
from .errors import ModelConstructionError
from .horizon import Window
from .models import Horizon, Machine


logger = logging.getLogger(__name__)


# Internal bookkeeping per (machine, piece)
_PieceVar = collections.namedtuple("_PieceVar", "start end active interval in_window machine_id piece")


class ProductionModel:
    """A built model: the backend holding it and the handles to read it back."""

    def __init__(self, backend, machines, num_pieces, horizon, windows, pieces, makespan):
        self.backend = backend
        self.machines = machines
        self.num_pieces = num_pieces
        self.horizon = horizon
        self.windows = windows
        self.pieces = pieces
        self.makespan = makespan

    def piece_vars(self, machine_id: int) -> list:
        return [self.pieces[(machine_id, i)] for i in range(self.num_pieces)]


def check_structure(machines: list[Machine], num_pieces: int) -> None:
    """Reject requests no model can be built for."""
    if not machines:
        raise ModelConstructionError("At least one machine is required")
    if num_pieces < 0:
        raise ModelConstructionError(f"Piece count must not be negative, got {num_pieces}")
    for m in machines:
        if m.cycle_time <= 0:
            raise ModelConstructionError(
                f"Machine {m.machine_id} has non-positive cycle time {m.cycle_time}"
            )


def preferred_machine(machines: list[Machine]) -> Machine:
    """Fastest machine; the first one listed wins ties."""
    return min(machines, key=lambda m: m.cycle_time)


class ProductionModelBuilder:

    def __init__(
        self,
        machines: list[Machine],
        num_pieces: int,
        windows: dict[int, list[Window]],
        horizon: Horizon,
        backend: Optional[SolvingBackend] = None,
    ):
        self.machines = machines
        self.num_pieces = num_pieces
        self.windows = windows
        self.horizon = horizon
        self.backend = backend if backend is not None else CpSatBackend()

    def build(self) -> ProductionModel:
        check_structure(self.machines, self.num_pieces)

        pieces = self._add_variables()
        self._add_assignment(pieces)
        self._add_containment(pieces)
        self._add_no_overlap(pieces)
        self._add_hints(pieces)
        makespan = self._add_objective(pieces)

        logger.info(
            "Built model: %d machines x %d pieces, %d windows, horizon %ds",
            len(self.machines), self.num_pieces,
            sum(len(self.windows.get(m.machine_id, [])) for m in self.machines),
            self.horizon.max_end,
        )
        return ProductionModel(
            backend=self.backend,
            machines=self.machines,
            num_pieces=self.num_pieces,
            horizon=self.horizon,
            windows=self.windows,
            pieces=pieces,
            makespan=makespan,
        )

    # ── Variables ──

    def _add_variables(self) -> dict[tuple[int, int], _PieceVar]:
        b = self.backend
        max_end = self.horizon.max_end
        pieces = {}
        for m in self.machines:
            for i in range(self.num_pieces):
                suffix = f"_m{m.machine_id}_p{i}"
                start = b.new_int_var(0, max_end, f"start{suffix}")
                end = b.new_int_var(0, max_end, f"end{suffix}")
                active = b.new_bool_var(f"active{suffix}")
                interval = b.new_optional_interval(start, m.cycle_time, end, active, f"task{suffix}")
                pieces[(m.machine_id, i)] = _PieceVar(
                    start=start, end=end, active=active, interval=interval,
                    in_window=[], machine_id=m.machine_id, piece=i,
                )
        return pieces

    # ── Constraints ──

    def _add_assignment(self, pieces):
        # Every piece on exactly one machine
        for i in range(self.num_pieces):
            self.backend.add_equality(sum(pieces[(m.machine_id, i)].active for m in self.machines), 1)

    def _add_containment(self, pieces):
        b = self.backend
        max_end = self.horizon.max_end
        for m in self.machines:
            windows = self.windows.get(m.machine_id, [])
            for i in range(self.num_pieces):
                pv = pieces[(m.machine_id, i)]
                for j, w in enumerate(windows):
                    in_window = b.new_bool_var(f"in_window_m{m.machine_id}_p{i}_w{j}")
                    b.add_greater_or_equal(pv.start, w.lo, enforce=in_window)
                    b.add_less_or_equal(pv.end, w.hi, enforce=in_window)
                    pv.in_window.append(in_window)

                # Active pieces sit in exactly one window, inactive ones in none
                if pv.in_window:
                    b.add_equality(sum(pv.in_window), pv.active)
                else:
                    b.add_equality(pv.active, 0)

                # Inactive pieces collapse to offset 0 and stay out of the makespan
                b.add_less_or_equal(pv.start, pv.active * max_end)
                b.add_less_or_equal(pv.end, pv.active * max_end)

    def _add_no_overlap(self, pieces):
        for m in self.machines:
            intervals = [pieces[(m.machine_id, i)].interval for i in range(self.num_pieces)]
            if len(intervals) > 1:
                self.backend.add_no_overlap(intervals)

    def _add_hints(self, pieces):
        # Search hint only: never changes feasibility or the optimum
        fastest = preferred_machine(self.machines)
        for i in range(self.num_pieces):
            self.backend.add_hint(pieces[(fastest.machine_id, i)].active, 1)

    # ── Objective ──

    def _add_objective(self, pieces):
        b = self.backend
        ends = [pv.end for pv in pieces.values()]
        if not ends:
            makespan = b.new_int_var(0, 0, "makespan")
        else:
            makespan = b.new_int_var(0, self.horizon.max_end, "makespan")
            b.add_max_equality(makespan, ends)
        b.minimize(makespan)
        return makespan
