"""GridSnapshot — read-only view of cell state for external consumers.

Renderers and HUDs receive arrays, never the live Cell objects, so
nothing outside the simulation loop can mutate the grid.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import numpy as np
from numpy.typing import NDArray

from canopy.weather.phases import Season, WeatherPhase
from canopy.world.cell import PlantStage
from canopy.world.grid import CONTINUOUS_FIELDS, Grid


def _frozen(array: NDArray[Any]) -> NDArray[Any]:
    array.flags.writeable = False
    return array


@dataclass(frozen=True)
class GridSnapshot:
    """Immutable per-cell arrays indexed ``[y, x]``.

    Attributes:
        tick: Discrete tick the snapshot was taken after.
        phase: Weather phase at snapshot time.
        season: Season at snapshot time.
        stage: ``PlantStage`` values as int8.
        water: Water field.
        sunlight: Sunlight field.
        heat: Heat field.
        durability: Durability field.
        success: Success field.
        fire_fuel: Remaining fire fuel.
        is_on_fire: Burning flags.
    """

    tick: int
    phase: WeatherPhase
    season: Season
    stage: NDArray[np.int8]
    water: NDArray[np.float64]
    sunlight: NDArray[np.float64]
    heat: NDArray[np.float64]
    durability: NDArray[np.float64]
    success: NDArray[np.float64]
    fire_fuel: NDArray[np.float64]
    is_on_fire: NDArray[np.bool_]

    @classmethod
    def from_grid(
        cls,
        grid: Grid,
        *,
        tick: int,
        phase: WeatherPhase,
        season: Season,
    ) -> GridSnapshot:
        """Copy the grid's current state into read-only arrays."""
        stage = np.array(
            [[cell.stage.value for cell in row] for row in grid.cells],
            dtype=np.int8,
        )
        on_fire = np.array(
            [[cell.is_on_fire for cell in row] for row in grid.cells],
            dtype=np.bool_,
        )
        fields = {name: _frozen(grid.field_values(name)) for name in CONTINUOUS_FIELDS}
        return cls(
            tick=tick,
            phase=phase,
            season=season,
            stage=_frozen(stage),
            is_on_fire=_frozen(on_fire),
            **fields,
        )

    @property
    def shape(self) -> tuple[int, int]:
        """``(height, width)`` of the snapshot."""
        return self.stage.shape

    def cell(self, x: int, y: int) -> dict[str, Any]:
        """Return one cell's state as a plain dict (for HUD readouts)."""
        return {
            "stage": PlantStage(int(self.stage[y, x])),
            "water": float(self.water[y, x]),
            "sunlight": float(self.sunlight[y, x]),
            "heat": float(self.heat[y, x]),
            "durability": float(self.durability[y, x]),
            "success": float(self.success[y, x]),
            "is_on_fire": bool(self.is_on_fire[y, x]),
            "fire_fuel": float(self.fire_fuel[y, x]),
        }

    def census(self) -> dict[PlantStage, int]:
        """Count cells in each stage."""
        values, counts = np.unique(self.stage, return_counts=True)
        found = {PlantStage(int(v)): int(c) for v, c in zip(values, counts)}
        return {stage: found.get(stage, 0) for stage in PlantStage}

    def to_bytes(self) -> bytes:
        """Serialise all arrays for exact equality checks."""
        parts = [self.stage, self.is_on_fire] + [getattr(self, n) for n in CONTINUOUS_FIELDS]
        return b"".join(part.tobytes() for part in parts)
