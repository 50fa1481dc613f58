"""Cell — a single tile in the ecosystem grid.

Each cell carries a discrete plant-growth stage plus continuous
environmental fields.  Cells are plain values: the grid owns them and
the tick pipeline copies them into a next buffer rather than sharing
references.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum


class PlantStage(Enum):
    """Growth stage of the plant on a tile.

    Values are ordered: a living plant only ever moves forward.
    ``BURNT`` is terminal until the tile is reseeded.
    """

    EMPTY = 0
    SMALL_PLANT = 1
    SMALL_TREE = 2
    MEDIUM_TREE = 3
    LARGE_TREE = 4
    BURNT = 5

    @property
    def is_plant(self) -> bool:
        """Return True for the living stages."""
        return self not in (PlantStage.EMPTY, PlantStage.BURNT)


# Stage reached by one growth step from each living stage.
NEXT_STAGE: dict[PlantStage, PlantStage] = {
    PlantStage.SMALL_PLANT: PlantStage.SMALL_TREE,
    PlantStage.SMALL_TREE: PlantStage.MEDIUM_TREE,
    PlantStage.MEDIUM_TREE: PlantStage.LARGE_TREE,
}


def clamp01(value: float) -> float:
    """Clamp ``value`` to the unit interval."""
    if value < 0.0:
        return 0.0
    if value > 1.0:
        return 1.0
    return value


@dataclass
class Cell:
    """State of a single grid tile.

    Attributes:
        stage: Current plant-growth stage.
        water: Soil water (0.0-1.0).
        sunlight: Light reaching the tile (0.0-1.0).
        heat: Local heat (0.0-1.0).
        durability: Slow-moving plant health (0.0-1.0).
        success: Slow-moving fitness signal (0.0-1.0).
        is_on_fire: Whether the tile is currently burning.
        fire_fuel: Fuel remaining for an active fire (0.0-1.0).
    """

    stage: PlantStage = PlantStage.EMPTY
    water: float = 0.2
    sunlight: float = 0.8
    heat: float = 0.1
    durability: float = 1.0
    success: float = 0.5
    is_on_fire: bool = False
    fire_fuel: float = 0.0

    @property
    def has_plant(self) -> bool:
        """Return True if a living plant occupies this tile."""
        return self.stage.is_plant

    def copy(self) -> Cell:
        """Return an independent copy of this cell."""
        return replace(self)

    def clamp(self) -> None:
        """Clamp every continuous field to [0, 1] in place."""
        self.water = clamp01(self.water)
        self.sunlight = clamp01(self.sunlight)
        self.heat = clamp01(self.heat)
        self.durability = clamp01(self.durability)
        self.success = clamp01(self.success)
        self.fire_fuel = clamp01(self.fire_fuel)

    def burn_out(self) -> None:
        """Turn the tile into a burn scar."""
        self.is_on_fire = False
        self.fire_fuel = 0.0
        self.stage = PlantStage.BURNT
        self.durability = 0.0
