"""Per-cell fire and growth rules.

Every rule reads the *pre-tick* grid and writes only into the next
buffer.  Random numbers are passed in already drawn, one slot per cell
(and per neighbour for contagion), so the result of a tick does not
depend on the order cells are visited.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from canopy.world.cell import NEXT_STAGE, Cell, PlantStage, clamp01
from canopy.world.grid import NEIGHBOUR_OFFSETS

if TYPE_CHECKING:
    from numpy.typing import NDArray

    from canopy.simulation.config import SimulationConfig
    from canopy.world.grid import Grid


def _is_small_plant(cell: Cell) -> bool:
    return cell.stage is PlantStage.SMALL_PLANT


def _has_plant(cell: Cell) -> bool:
    return cell.has_plant


def _is_large_tree(cell: Cell) -> bool:
    return cell.stage is PlantStage.LARGE_TREE


def large_tree_neighbours(grid: Grid, x: int, y: int) -> int:
    """Count neighbouring large trees (used for shading)."""
    return grid.count_neighbours(x, y, _is_large_tree)


def environment_ok(cell: Cell, config: SimulationConfig) -> tuple[bool, bool, bool]:
    """Return ``(water_ok, sun_ok, heat_ok)`` for a cell's fields."""
    water_ok = config.water_min <= cell.water <= config.water_max
    sun_ok = config.sun_min <= cell.sunlight <= config.sun_max
    heat_ok = cell.heat <= config.heat_max
    return water_ok, sun_ok, heat_ok


def growth_chance(success: float, plant_neighbours: int, config: SimulationConfig) -> float:
    """Per-tick chance that a healthy plant advances one stage.

    Scales linearly with ``success`` and is cut back when the plant is
    crowded by ``crowding_neighbours`` or more planted neighbours.
    """
    lo, hi = config.grow_chance_min, config.grow_chance_max
    chance = lo + (hi - lo) * clamp01(success)
    if plant_neighbours >= config.crowding_neighbours:
        chance *= config.crowding_factor
    return chance


def step_fire(
    grid: Grid,
    x: int,
    y: int,
    next_cells: list[list[Cell]],
    config: SimulationConfig,
    spread_rolls: NDArray,
) -> None:
    """Burn down a cell that was on fire at the start of the tick.

    A fire that runs out of fuel goes out and leaves plants as a burn
    scar.  A fire that keeps burning may ignite each planted, unburning
    neighbour, one hop per tick.

    Args:
        grid: Pre-tick grid (read only).
        x: Column of the burning cell.
        y: Row of the burning cell.
        next_cells: Post-tick buffer; this cell and ignited neighbours
            are written.
        config: Simulation parameters.
        spread_rolls: Uniform draws for this cell, one per entry of
            ``NEIGHBOUR_OFFSETS``.
    """
    cur = grid.cells[y][x]
    if not cur.is_on_fire:
        return

    nxt = next_cells[y][x]
    nxt.heat += config.fire_heat_per_tick
    nxt.fire_fuel = clamp01(cur.fire_fuel - config.fire_fuel_burn_per_tick)

    if nxt.fire_fuel <= config.extinguish_threshold:
        nxt.is_on_fire = False
        if cur.has_plant:
            nxt.stage = PlantStage.BURNT
            nxt.durability = 0.0
        return

    for k, (dx, dy) in enumerate(NEIGHBOUR_OFFSETS):
        nx, ny = x + dx, y + dy
        if not grid.in_bounds(nx, ny):
            continue
        neighbour = grid.cells[ny][nx]
        if not neighbour.has_plant or neighbour.is_on_fire:
            continue
        if spread_rolls[k] < config.fire_spread_chance:
            target = next_cells[ny][nx]
            target.is_on_fire = True
            target.fire_fuel = max(target.fire_fuel, config.contagion_fuel)


def step_growth(
    grid: Grid,
    x: int,
    y: int,
    nxt: Cell,
    config: SimulationConfig,
    roll: float,
) -> None:
    """Apply birth, stress, growth and recovery to one cell.

    Cells that were burning at the start of the tick are left to the
    fire rule.

    Args:
        grid: Pre-tick grid (read only).
        x: Column.
        y: Row.
        nxt: This cell's entry in the post-tick buffer.
        config: Simulation parameters.
        roll: Uniform draw used for the growth chance.
    """
    cur = grid.cells[y][x]
    if cur.is_on_fire:
        return

    if cur.stage is PlantStage.BURNT:
        if cur.success < config.burnt_success_cap:
            nxt.success = min(config.burnt_success_cap, cur.success + config.burnt_recovery)
        return

    water_ok, sun_ok, heat_ok = environment_ok(cur, config)
    small_plants = grid.count_neighbours(x, y, _is_small_plant)

    if cur.stage is PlantStage.EMPTY:
        neighbours_ok = config.birth_min_neighbours <= small_plants <= config.birth_max_neighbours
        env_ok = (water_ok and sun_ok) or (water_ok and heat_ok) or (sun_ok and heat_ok)
        if neighbours_ok and env_ok:
            nxt.stage = PlantStage.SMALL_PLANT
            nxt.durability = 1.0
            nxt.success = clamp01(cur.success + config.birth_success_bonus)
        return

    # Once planted a tile stays planted; bad conditions only wear it down.
    if cur.durability <= config.min_durability or not (water_ok and sun_ok and heat_ok):
        nxt.durability = clamp01(cur.durability - config.stress_durability_loss)
        nxt.success = clamp01(cur.success - config.stress_success_loss)
        return

    any_plants = grid.count_neighbours(x, y, _has_plant)
    if roll < growth_chance(cur.success, any_plants, config) and _can_advance(
        cur.stage,
        small_plants,
        any_plants,
    ):
        nxt.stage = NEXT_STAGE[cur.stage]

    nxt.success = clamp01(cur.success + config.survival_success_gain)
    nxt.durability = clamp01(cur.durability + config.durability_recovery)


def _can_advance(stage: PlantStage, small_plants: int, any_plants: int) -> bool:
    """Neighbourhood gate for advancing out of ``stage``."""
    if stage is PlantStage.SMALL_PLANT:
        return small_plants >= 2
    if stage is PlantStage.SMALL_TREE:
        return small_plants >= 3
    if stage is PlantStage.MEDIUM_TREE:
        return any_plants >= 3
    return False
