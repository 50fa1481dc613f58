"""SimulationEngine — the simulation session and its tick pipeline.

Owns all state for one session (grid, weather scheduler, season clock,
ignition controller, seeded generators) so several independent
simulations can live in one process.

``update(dt)`` is the frame driver.  It advances the weather, season
and ring-ignition timers, then runs one discrete tick per elapsed
``tick_seconds``.  Each tick is double-buffered and follows the
canonical order:

1. Diffusion (water, heat)
2. Shading from large trees
3. Weather forcing (including lightning)
4. Fire (burn-down, extinguish, contagion)
5. Growth (birth, stress, stage advance, burnt recovery)
6. Commit (clamp, swap)
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

import numpy as np
from numpy.random import Generator, SeedSequence

from canopy.fire.ignition import IgnitionController
from canopy.simulation import rules
from canopy.simulation.config import SimulationConfig
from canopy.simulation.diffusion import diffuse
from canopy.simulation.snapshot import GridSnapshot
from canopy.weather.phases import Season, WeatherEvent, WeatherPhase
from canopy.weather.scheduler import WeatherScheduler
from canopy.weather.seasons import SeasonClock, apply_season_nudge
from canopy.world.cell import Cell, PlantStage, clamp01
from canopy.world.grid import NEIGHBOUR_OFFSETS, Grid

logger = logging.getLogger(__name__)


@dataclass
class SimulationEngine:
    """Drives the ecosystem forward frame by frame and tick by tick.

    Attributes:
        config: Loaded simulation configuration.
        grid: The cell grid.
        weather: Global weather phase scheduler.
        seasons: Season timer.
        ignition: Player ring-spread controller.
        rng: Generator for the per-tick rules.
        tick: Number of discrete ticks run so far.
    """

    config: SimulationConfig
    grid: Grid = field(init=False)
    weather: WeatherScheduler = field(init=False)
    seasons: SeasonClock = field(init=False)
    ignition: IgnitionController = field(init=False)
    rng: Generator = field(init=False)
    tick: int = 0
    _tick_accumulator: float = field(default=0.0, init=False, repr=False)

    def __post_init__(self) -> None:
        """Build the grid, timers and generators from config."""
        cfg = self.config
        tick_seed, weather_seed = SeedSequence(cfg.seed).spawn(2)
        self.rng = np.random.default_rng(tick_seed)
        self.grid = Grid.centred_on(
            cfg.world_centre,
            width=cfg.width,
            height=cfg.height,
            cell_size=cfg.cell_size,
        )
        self.weather = WeatherScheduler(cfg.weather, np.random.default_rng(weather_seed))
        self.seasons = SeasonClock(cfg.season_seconds, cfg.initial_season)
        self.ignition = IgnitionController(cfg.ignition)
        logger.info(
            "Simulation created: %dx%d grid, seed %d, season %s",
            cfg.width,
            cfg.height,
            cfg.seed,
            self.seasons.season.name.lower(),
        )

    # -- Read-only state -----------------------------------------------------

    @property
    def phase(self) -> WeatherPhase:
        """Current weather phase."""
        return self.weather.phase

    @property
    def season(self) -> Season:
        """Current season."""
        return self.seasons.season

    def snapshot(self) -> GridSnapshot:
        """Return a read-only copy of the grid for renderers and HUDs."""
        return GridSnapshot.from_grid(
            self.grid,
            tick=self.tick,
            phase=self.phase,
            season=self.season,
        )

    def drain_weather_events(self) -> list[WeatherEvent]:
        """Return and clear the queued weather transition events."""
        return self.weather.drain_events()

    # -- Frame driver --------------------------------------------------------

    def update(self, dt: float) -> int:
        """Advance every timer by ``dt`` seconds of simulation time.

        Args:
            dt: Elapsed seconds since the previous frame.

        Returns:
            Number of discrete ticks run.

        Raises:
            ValueError: If ``dt`` is NaN or infinite.
        """
        if not np.isfinite(dt):
            msg = f"dt must be finite, got {dt}"
            raise ValueError(msg)
        dt = max(0.0, dt)
        self.weather.advance(dt, self.season)
        for season in self.seasons.advance(dt):
            apply_season_nudge(self.grid, season)
        self.ignition.advance(self.grid, dt)

        if not self.config.enable_simulation_tick:
            return 0

        self._tick_accumulator += dt
        ran = 0
        while self._tick_accumulator >= self.config.tick_seconds:
            self._tick_accumulator -= self.config.tick_seconds
            self.step()
            ran += 1
        return ran

    def run(self, ticks: int) -> None:
        """Run a fixed number of discrete ticks.

        Args:
            ticks: Number of ticks to advance.
        """
        for _ in range(ticks):
            self.step()

    # -- Discrete tick -------------------------------------------------------

    def step(self, order: Iterable[tuple[int, int]] | None = None) -> None:
        """Run one discrete tick over the whole grid.

        All rules read the pre-tick grid and write a separate buffer that
        is swapped in at the end, so ``order`` (the cell visiting order
        for the per-cell passes, row-major by default) does not change
        the result.

        Args:
            order: Optional ``(x, y)`` visiting order covering the grid.

        Raises:
            ValueError: If ``order`` is not a permutation of the grid.
        """
        grid = self.grid
        cfg = self.config
        phase = self.weather.phase
        cells = list(grid.coords())
        if order is not None:
            visit = list(order)
            if sorted(visit) != sorted(cells):
                msg = "order must visit every cell exactly once"
                raise ValueError(msg)
            cells = visit

        # Draw every random number up front in a fixed layout.
        h, w = grid.height, grid.width
        lightning_rolls = self.rng.random((h, w))
        spread_rolls = self.rng.random((h, w, len(NEIGHBOUR_OFFSETS)))
        growth_rolls = self.rng.random((h, w))

        nxt = grid.copy_cells()

        self._apply_diffusion(nxt)
        self._apply_shading(nxt, cells)
        self._apply_weather(nxt, cells, phase, lightning_rolls)

        for x, y in cells:
            rules.step_fire(grid, x, y, nxt, cfg, spread_rolls[y, x])
        for x, y in cells:
            rules.step_growth(grid, x, y, nxt[y][x], cfg, float(growth_rolls[y, x]))

        for row in nxt:
            for cell in row:
                cell.clamp()
        grid.swap(nxt)
        self.tick += 1
        logger.debug("Tick %d committed (weather %s)", self.tick, phase.name.lower())

    def _apply_diffusion(self, nxt: list[list[Cell]]) -> None:
        """Blend water and heat toward their 3x3 neighbourhood means."""
        water = diffuse(self.grid.field_values("water"), self.config.water_diffuse)
        heat = diffuse(self.grid.field_values("heat"), self.config.heat_diffuse)
        for y, row in enumerate(nxt):
            for x, cell in enumerate(row):
                cell.water = float(water[y, x])
                cell.heat = float(heat[y, x])

    def _apply_shading(
        self,
        nxt: list[list[Cell]],
        cells: Sequence[tuple[int, int]],
    ) -> None:
        """Darken cells next to large trees."""
        shade_per_tree = self.config.shade_from_large_tree
        for x, y in cells:
            trees = rules.large_tree_neighbours(self.grid, x, y)
            if trees <= 0:
                continue
            shade = min(1.0, trees * shade_per_tree)
            nxt[y][x].sunlight = clamp01(nxt[y][x].sunlight - shade)

    def _apply_weather(
        self,
        nxt: list[list[Cell]],
        cells: Sequence[tuple[int, int]],
        phase: WeatherPhase,
        lightning_rolls: np.ndarray,
    ) -> None:
        """Apply the phase's per-tick deltas and any lightning strikes."""
        cfg = self.config
        forcing = cfg.forcing[phase]
        for x, y in cells:
            cell = nxt[y][x]
            if cfg.sunlight_recovery > 0:
                cell.sunlight += (cfg.base_sunlight - cell.sunlight) * cfg.sunlight_recovery
            cell.water += forcing.water
            cell.sunlight += forcing.sunlight
            cell.heat += forcing.heat
            if lightning_rolls[y, x] < forcing.ignition_chance:
                cell.is_on_fire = True
                cell.fire_fuel = max(cell.fire_fuel, cfg.lightning_fuel)

    # -- Mutation verbs (cell coordinates) ----------------------------------

    def place_seed(self, x: int, y: int) -> bool:
        """Plant a seed on an empty or burnt cell.

        Returns:
            True if a seed was planted.
        """
        if not self.grid.in_bounds(x, y):
            return False
        cell = self.grid.cells[y][x]
        if cell.stage not in (PlantStage.EMPTY, PlantStage.BURNT):
            return False
        cell.stage = PlantStage.SMALL_PLANT
        cell.durability = 1.0
        return True

    def add_water(self, x: int, y: int, amount: float | None = None) -> bool:
        """Add water to a cell, clamped to 1."""
        if not self.grid.in_bounds(x, y):
            return False
        if amount is None:
            amount = self.config.default_water_amount
        cell = self.grid.cells[y][x]
        cell.water = clamp01(cell.water + amount)
        return True

    def ignite(self, x: int, y: int) -> bool:
        """Start a ring spread at a cell, cancelling any in flight."""
        return self.ignition.start(self.grid, x, y)

    def stomp(self, x: int, y: int, damage: float | None = None) -> bool:
        """Trample a cell, reducing durability without changing stage."""
        if not self.grid.in_bounds(x, y):
            return False
        if damage is None:
            damage = self.config.stomp_damage
        cell = self.grid.cells[y][x]
        cell.durability = clamp01(cell.durability - damage)
        return True

    # -- Mutation verbs (world space) ---------------------------------------

    def world_to_cell(self, point: Sequence[float]) -> tuple[int, int] | None:
        """Map a world-space point to a cell, or None outside the grid."""
        return self.grid.world_to_cell(point)

    def cell_centre(self, x: int, y: int) -> np.ndarray:
        """World-space centre of a cell."""
        return self.grid.cell_centre(x, y)

    def place_seed_at(self, point: Sequence[float]) -> bool:
        """Plant a seed at a world-space point; off-grid points are ignored."""
        target = self.grid.world_to_cell(point)
        return target is not None and self.place_seed(*target)

    def add_water_at(self, point: Sequence[float], amount: float | None = None) -> bool:
        """Water the cell under a world-space point."""
        target = self.grid.world_to_cell(point)
        return target is not None and self.add_water(*target, amount)

    def ignite_at(self, point: Sequence[float]) -> bool:
        """Start a ring spread under a world-space point."""
        target = self.grid.world_to_cell(point)
        return target is not None and self.ignite(*target)

    def stomp_at(self, point: Sequence[float], damage: float | None = None) -> bool:
        """Stomp the cell under a world-space point."""
        target = self.grid.world_to_cell(point)
        return target is not None and self.stomp(*target, damage)
