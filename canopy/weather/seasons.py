"""Season clock and the per-season baseline nudges applied to cells.

Seasons advance on their own fixed-length timer, independent of both
the weather phase timer and the discrete tick.  Entering a season
applies one additive nudge to every cell.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from canopy.weather.phases import Season
from canopy.world.cell import clamp01

if TYPE_CHECKING:
    from canopy.world.grid import Grid

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SeasonNudge:
    """Additive deltas applied to every cell when a season begins."""

    water: float = 0.0
    sunlight: float = 0.0
    heat: float = 0.0


SEASON_NUDGES: dict[Season, SeasonNudge] = {
    Season.SPRING: SeasonNudge(water=0.06),
    Season.SUMMER: SeasonNudge(sunlight=0.05, heat=0.04),
    Season.AUTUMN: SeasonNudge(water=0.03, sunlight=-0.05),
    Season.WINTER: SeasonNudge(heat=-0.08),
}


def apply_season_nudge(grid: Grid, season: Season) -> None:
    """Shift every cell's baseline fields for the start of ``season``.

    Args:
        grid: The grid to modify in place.
        season: The season being entered.
    """
    nudge = SEASON_NUDGES[season]
    for row in grid.cells:
        for cell in row:
            cell.water = clamp01(cell.water + nudge.water)
            cell.sunlight = clamp01(cell.sunlight + nudge.sunlight)
            cell.heat = clamp01(cell.heat + nudge.heat)


class SeasonClock:
    """Fixed-length season timer.

    Attributes:
        season_seconds: Length of one season.
        season: The current season.
        elapsed: Seconds spent in the current season.
    """

    def __init__(self, season_seconds: float, season: Season = Season.SUMMER) -> None:
        if season_seconds <= 0:
            msg = f"season_seconds must be positive, got {season_seconds}"
            raise ValueError(msg)
        self.season_seconds = season_seconds
        self.season = season
        self.elapsed = 0.0

    @property
    def progress(self) -> float:
        """Fraction of the current season that has elapsed (0.0-1.0)."""
        return self.elapsed / self.season_seconds

    def advance(self, dt: float) -> list[Season]:
        """Advance the timer by ``dt`` seconds.

        Returns:
            Seasons entered during this call, in order.  Usually empty;
            a very long frame may cross more than one boundary.
        """
        self.elapsed += max(0.0, dt)
        entered: list[Season] = []
        while self.elapsed >= self.season_seconds:
            self.elapsed -= self.season_seconds
            self.season = self.season.next()
            entered.append(self.season)
            logger.info("Season changed to %s", self.season.name.lower())
        return entered
