"""Tests for canopy.world.grid and canopy.world.cell."""

import numpy as np
import pytest

from canopy.world.cell import Cell, PlantStage, clamp01
from canopy.world.grid import Grid


class TestCell:
    """Tests for the Cell dataclass."""

    def test_default_values(self) -> None:
        cell = Cell()
        assert cell.stage is PlantStage.EMPTY
        assert cell.water == 0.2
        assert cell.sunlight == 0.8
        assert cell.heat == 0.1
        assert cell.durability == 1.0
        assert cell.success == 0.5
        assert cell.is_on_fire is False
        assert cell.fire_fuel == 0.0

    def test_has_plant(self) -> None:
        assert not Cell().has_plant
        assert not Cell(stage=PlantStage.BURNT).has_plant
        for stage in (
            PlantStage.SMALL_PLANT,
            PlantStage.SMALL_TREE,
            PlantStage.MEDIUM_TREE,
            PlantStage.LARGE_TREE,
        ):
            assert Cell(stage=stage).has_plant

    def test_clamp(self) -> None:
        cell = Cell(
            water=1.4,
            sunlight=-0.2,
            heat=2.0,
            durability=-1.0,
            success=1.01,
            fire_fuel=-0.5,
        )
        cell.clamp()
        assert cell.water == 1.0
        assert cell.sunlight == 0.0
        assert cell.heat == 1.0
        assert cell.durability == 0.0
        assert cell.success == 1.0
        assert cell.fire_fuel == 0.0

    def test_copy_is_independent(self) -> None:
        cell = Cell(water=0.6)
        other = cell.copy()
        other.water = 0.1
        assert cell.water == 0.6

    def test_burn_out(self) -> None:
        cell = Cell(stage=PlantStage.MEDIUM_TREE, is_on_fire=True, fire_fuel=0.7)
        cell.burn_out()
        assert cell.stage is PlantStage.BURNT
        assert cell.durability == 0.0
        assert not cell.is_on_fire
        assert cell.fire_fuel == 0.0

    def test_clamp01(self) -> None:
        assert clamp01(-0.1) == 0.0
        assert clamp01(0.3) == 0.3
        assert clamp01(7.0) == 1.0


class TestGrid:
    """Tests for the Grid."""

    def test_dimensions(self, small_grid: Grid) -> None:
        assert small_grid.width == 8
        assert small_grid.height == 8
        assert len(small_grid.cells) == 8
        assert len(small_grid.cells[0]) == 8

    def test_invalid_dimensions(self) -> None:
        with pytest.raises(ValueError):
            Grid(width=0, height=4)
        with pytest.raises(ValueError):
            Grid(width=4, height=4, cell_size=0.0)

    def test_cell_at_out_of_bounds(self, small_grid: Grid) -> None:
        with pytest.raises(IndexError):
            small_grid.cell_at(8, 0)
        with pytest.raises(IndexError):
            small_grid.cell_at(0, -1)

    def test_coords_row_major(self) -> None:
        grid = Grid(width=3, height=2)
        assert list(grid.coords()) == [(0, 0), (1, 0), (2, 0), (0, 1), (1, 1), (2, 1)]

    def test_neighbours_corner(self, small_grid: Grid) -> None:
        assert len(small_grid.neighbours(0, 0)) == 3

    def test_neighbours_edge(self, small_grid: Grid) -> None:
        assert len(small_grid.neighbours(0, 3)) == 5

    def test_neighbours_center(self, small_grid: Grid) -> None:
        neighbours = small_grid.neighbours(3, 3)
        assert len(neighbours) == 8
        assert (3, 3) not in neighbours

    def test_count_neighbours(self, small_grid: Grid) -> None:
        small_grid.cells[2][2].stage = PlantStage.SMALL_PLANT
        small_grid.cells[4][4].stage = PlantStage.SMALL_PLANT
        small_grid.cells[3][5].stage = PlantStage.SMALL_PLANT  # not adjacent
        count = small_grid.count_neighbours(3, 3, lambda c: c.has_plant)
        assert count == 2

    def test_ring_and_cells_within(self, small_grid: Grid) -> None:
        assert len(small_grid.ring(4, 4, 1)) == 8
        assert len(small_grid.ring(4, 4, 2)) == 16
        assert small_grid.ring(4, 4, 0) == [(4, 4)]
        assert len(small_grid.cells_within(4, 4, 1)) == 9

    def test_ring_clipped_at_corner(self, small_grid: Grid) -> None:
        assert sorted(small_grid.ring(0, 0, 1)) == [(0, 1), (1, 0), (1, 1)]
        assert len(small_grid.cells_within(0, 0, 1)) == 4

    def test_cell_centre(self, small_grid: Grid) -> None:
        centre = small_grid.cell_centre(0, 0)
        np.testing.assert_allclose(centre, [0.25, 0.0, 0.25])

    def test_world_to_cell_round_trip(self, small_grid: Grid) -> None:
        for x, y in [(0, 0), (3, 5), (7, 7)]:
            assert small_grid.world_to_cell(small_grid.cell_centre(x, y)) == (x, y)

    def test_world_to_cell_outside(self, small_grid: Grid) -> None:
        assert small_grid.world_to_cell((-0.01, 0.0, 1.0)) is None
        assert small_grid.world_to_cell((1.0, 0.0, 4.0)) is None
        assert small_grid.world_to_cell((100.0, 0.0, 100.0)) is None

    def test_centred_on(self) -> None:
        grid = Grid.centred_on((10.0, 2.0, -4.0), width=4, height=6, cell_size=1.0)
        assert grid.origin == (8.0, 2.0, -7.0)
        assert grid.world_to_cell((10.0, 0.0, -4.0)) == (2, 3)

    def test_swap_shape_mismatch(self, small_grid: Grid) -> None:
        bad = Grid(width=4, height=8).copy_cells()
        with pytest.raises(ValueError):
            small_grid.swap(bad)

    def test_copy_cells_is_independent(self, small_grid: Grid) -> None:
        buffer = small_grid.copy_cells()
        buffer[0][0].water = 0.9
        assert small_grid.cells[0][0].water == 0.2

    def test_field_values(self, small_grid: Grid) -> None:
        small_grid.cells[1][2].water = 0.7
        water = small_grid.field_values("water")
        assert water.shape == (8, 8)
        assert water[1, 2] == 0.7
        assert water[0, 0] == 0.2

    def test_field_values_unknown(self, small_grid: Grid) -> None:
        with pytest.raises(KeyError):
            small_grid.field_values("stage")
