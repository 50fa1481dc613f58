"""Ignition controller — the player's "controlled burn".

Igniting a point sets it alight immediately, then forces fire outward
one Chebyshev ring at a time on a real-time schedule.  Once the last
ring has burned for a short grace period the whole area is put out and
left as a burn scar.

The effect is an explicit state object advanced by the frame driver,
not a thread or coroutine.  It mutates the grid directly between ticks
and never replaces the per-tick fire rule, which keeps running on the
cells it ignites.  Starting a new burn cancels the one in flight.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from canopy.simulation.config import IgnitionConfig

if TYPE_CHECKING:
    from canopy.world.grid import Grid

logger = logging.getLogger(__name__)


@dataclass
class RingSpread:
    """Progress of one in-flight ring spread.

    Attributes:
        centre_x: Column of the ignition point.
        centre_y: Row of the ignition point.
        current_ring: Outermost ring ignited so far (0 = centre only).
        elapsed: Seconds since the burn started.
        forced: Cells this spread set alight.
    """

    centre_x: int
    centre_y: int
    current_ring: int = 0
    elapsed: float = 0.0
    forced: set[tuple[int, int]] = field(default_factory=set)


class IgnitionController:
    """Runs at most one ring spread at a time.

    Attributes:
        config: Ring count and timing.
        spread: The active spread, or None when idle.
    """

    def __init__(self, config: IgnitionConfig | None = None) -> None:
        self.config = config or IgnitionConfig()
        self.spread: RingSpread | None = None

    @property
    def active(self) -> bool:
        """True while a ring spread is in progress."""
        return self.spread is not None

    @property
    def duration(self) -> float:
        """Seconds from ignition until the area is extinguished."""
        cfg = self.config
        return cfg.max_distance * cfg.seconds_per_step + cfg.grace_seconds

    def start(self, grid: Grid, x: int, y: int) -> bool:
        """Begin a ring spread centred on ``(x, y)``.

        Any spread already in flight is cancelled first.

        Returns:
            False (and does nothing) if the centre is out of bounds.
        """
        if not grid.in_bounds(x, y):
            return False
        if self.spread is not None:
            self.cancel(grid)
        self.spread = RingSpread(centre_x=x, centre_y=y)
        self._ignite(grid, x, y)
        logger.info("Ring ignition started at (%d, %d)", x, y)
        return True

    def advance(self, grid: Grid, dt: float) -> None:
        """Advance the active spread by ``dt`` seconds.

        Every step that has come due runs, so a long frame may ignite
        several rings and finish the burn in one call.
        """
        spread = self.spread
        if spread is None:
            return
        spread.elapsed += max(0.0, dt)

        cfg = self.config
        while spread.current_ring < cfg.max_distance:
            if spread.elapsed < (spread.current_ring + 1) * cfg.seconds_per_step:
                return
            spread.current_ring += 1
            for x, y in grid.ring(spread.centre_x, spread.centre_y, spread.current_ring):
                self._ignite(grid, x, y)

        if spread.elapsed >= self.duration:
            self._finish(grid)

    def cancel(self, grid: Grid) -> None:
        """Abort the active spread.

        Cells it set alight that are still burning are put out; cells
        that have already gone out are left as they are.
        """
        spread = self.spread
        if spread is None:
            return
        released = 0
        for x, y in spread.forced:
            cell = grid.cells[y][x]
            if cell.is_on_fire:
                cell.is_on_fire = False
                cell.fire_fuel = 0.0
                released += 1
        self.spread = None
        logger.info(
            "Ring ignition at (%d, %d) cancelled, released %d burning cells",
            spread.centre_x,
            spread.centre_y,
            released,
        )

    def _ignite(self, grid: Grid, x: int, y: int) -> None:
        cell = grid.cells[y][x]
        cell.is_on_fire = True
        cell.fire_fuel = 1.0
        if self.spread is not None:
            self.spread.forced.add((x, y))

    def _finish(self, grid: Grid) -> None:
        """Extinguish the whole area and leave a burn scar."""
        spread = self.spread
        if spread is None:
            return
        area = grid.cells_within(spread.centre_x, spread.centre_y, self.config.max_distance)
        for x, y in area:
            grid.cells[y][x].burn_out()
        self.spread = None
        logger.info(
            "Ring ignition at (%d, %d) finished, scarred %d cells",
            spread.centre_x,
            spread.centre_y,
            len(area),
        )
