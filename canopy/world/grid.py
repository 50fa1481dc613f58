"""Grid — the spatial container for the ecosystem simulation.

The Grid owns a fixed-size 2D array of cells and provides the spatial
queries used everywhere else: bounds checks, world <-> cell mapping and
Moore-neighbourhood lookups.  World space is 3D with the grid lying on
the XZ plane; ``origin`` is the bottom-left corner of cell ``(0, 0)``.
"""

from __future__ import annotations

import math
from collections.abc import Callable, Iterator, Sequence
from dataclasses import dataclass, field

import numpy as np
from numpy.typing import NDArray

from canopy.world.cell import Cell

# Moore neighbourhood, in the fixed order used for per-neighbour random draws.
NEIGHBOUR_OFFSETS: tuple[tuple[int, int], ...] = (
    (-1, -1),
    (0, -1),
    (1, -1),
    (-1, 0),
    (1, 0),
    (-1, 1),
    (0, 1),
    (1, 1),
)

CONTINUOUS_FIELDS: tuple[str, ...] = (
    "water",
    "sunlight",
    "heat",
    "durability",
    "success",
    "fire_fuel",
)


@dataclass
class Grid:
    """A 2D grid of ecosystem cells.

    Attributes:
        width: Number of columns.
        height: Number of rows.
        cell_size: World-space edge length of one cell.
        origin: World-space position of the grid's bottom-left corner.
        cells: 2D list of Cell objects indexed as ``cells[y][x]``.
    """

    width: int
    height: int
    cell_size: float = 0.5
    origin: tuple[float, float, float] = (0.0, 0.0, 0.0)
    cells: list[list[Cell]] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        """Validate dimensions and initialise every cell to defaults."""
        if self.width <= 0 or self.height <= 0:
            msg = f"grid dimensions must be positive, got {self.width}x{self.height}"
            raise ValueError(msg)
        if self.cell_size <= 0:
            msg = f"cell_size must be positive, got {self.cell_size}"
            raise ValueError(msg)
        self.origin = (
            float(self.origin[0]),
            float(self.origin[1]),
            float(self.origin[2]),
        )
        self.reset()

    @classmethod
    def centred_on(
        cls,
        centre: Sequence[float],
        width: int,
        height: int,
        cell_size: float = 0.5,
    ) -> Grid:
        """Build a grid whose footprint is centred on ``centre``.

        Args:
            centre: World-space centre point ``(x, y, z)``.
            width: Number of columns.
            height: Number of rows.
            cell_size: Edge length of one cell.
        """
        origin = (
            float(centre[0]) - width * cell_size * 0.5,
            float(centre[1]),
            float(centre[2]) - height * cell_size * 0.5,
        )
        return cls(width=width, height=height, cell_size=cell_size, origin=origin)

    def reset(self) -> None:
        """Restore every cell to its default state."""
        self.cells = [[Cell() for _ in range(self.width)] for _ in range(self.height)]

    # -- Addressing ----------------------------------------------------------

    def in_bounds(self, x: int, y: int) -> bool:
        """Return True if ``(x, y)`` lies inside the grid."""
        return 0 <= x < self.width and 0 <= y < self.height

    def cell_at(self, x: int, y: int) -> Cell:
        """Return the cell at grid coordinates ``(x, y)``.

        Raises:
            IndexError: If coordinates are out of bounds.
        """
        if not self.in_bounds(x, y):
            msg = f"({x}, {y}) out of bounds for {self.width}x{self.height}"
            raise IndexError(msg)
        return self.cells[y][x]

    def coords(self) -> Iterator[tuple[int, int]]:
        """Yield every ``(x, y)`` in row-major order."""
        for y in range(self.height):
            for x in range(self.width):
                yield x, y

    def cell_centre(self, x: int, y: int) -> NDArray[np.float64]:
        """Return the world-space centre of cell ``(x, y)``."""
        ox, oy, oz = self.origin
        return np.array(
            [ox + (x + 0.5) * self.cell_size, oy, oz + (y + 0.5) * self.cell_size],
            dtype=np.float64,
        )

    def world_to_cell(self, point: Sequence[float]) -> tuple[int, int] | None:
        """Map a world-space point to the cell containing it.

        Args:
            point: World-space ``(x, y, z)``; the y component is ignored.

        Returns:
            ``(x, y)`` cell coordinates, or None if the point falls
            outside the grid.
        """
        local_x = float(point[0]) - self.origin[0]
        local_z = float(point[2]) - self.origin[2]
        x = math.floor(local_x / self.cell_size)
        y = math.floor(local_z / self.cell_size)
        if not self.in_bounds(x, y):
            return None
        return x, y

    # -- Neighbourhood queries -----------------------------------------------

    def neighbours(self, x: int, y: int) -> list[tuple[int, int]]:
        """Return the in-bounds Moore neighbours of ``(x, y)``.

        Edges are clipped; the grid does not wrap.
        """
        result: list[tuple[int, int]] = []
        for dx, dy in NEIGHBOUR_OFFSETS:
            nx, ny = x + dx, y + dy
            if self.in_bounds(nx, ny):
                result.append((nx, ny))
        return result

    def neighbour_cells(self, x: int, y: int) -> list[Cell]:
        """Return the neighbouring Cell objects of ``(x, y)``."""
        return [self.cells[ny][nx] for nx, ny in self.neighbours(x, y)]

    def count_neighbours(
        self,
        x: int,
        y: int,
        predicate: Callable[[Cell], bool],
    ) -> int:
        """Count the Moore neighbours of ``(x, y)`` that satisfy ``predicate``."""
        count = 0
        for dx, dy in NEIGHBOUR_OFFSETS:
            nx, ny = x + dx, y + dy
            if self.in_bounds(nx, ny) and predicate(self.cells[ny][nx]):
                count += 1
        return count

    def cells_within(self, cx: int, cy: int, radius: int) -> list[tuple[int, int]]:
        """Return in-bounds coordinates within Chebyshev ``radius`` of a centre."""
        return [
            (x, y)
            for y in range(cy - radius, cy + radius + 1)
            for x in range(cx - radius, cx + radius + 1)
            if self.in_bounds(x, y)
        ]

    def ring(self, cx: int, cy: int, distance: int) -> list[tuple[int, int]]:
        """Return in-bounds coordinates at exactly Chebyshev ``distance``."""
        if distance == 0:
            return [(cx, cy)] if self.in_bounds(cx, cy) else []
        return [
            (x, y)
            for x, y in self.cells_within(cx, cy, distance)
            if max(abs(x - cx), abs(y - cy)) == distance
        ]

    # -- Buffers -------------------------------------------------------------

    def copy_cells(self) -> list[list[Cell]]:
        """Return a deep value copy of the cell array."""
        return [[cell.copy() for cell in row] for row in self.cells]

    def swap(self, cells: list[list[Cell]]) -> None:
        """Replace the cell array wholesale.

        Raises:
            ValueError: If ``cells`` does not match the grid's shape.
        """
        if len(cells) != self.height or any(len(row) != self.width for row in cells):
            msg = f"buffer shape does not match grid {self.width}x{self.height}"
            raise ValueError(msg)
        self.cells = cells

    def field_values(self, name: str) -> NDArray[np.float64]:
        """Extract one continuous field as a ``(height, width)`` array.

        Args:
            name: One of ``CONTINUOUS_FIELDS``.

        Raises:
            KeyError: If ``name`` is not a continuous field.
        """
        if name not in CONTINUOUS_FIELDS:
            raise KeyError(name)
        return np.array(
            [[getattr(cell, name) for cell in row] for row in self.cells],
            dtype=np.float64,
        )
