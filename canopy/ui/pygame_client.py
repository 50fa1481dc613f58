"""Pygame 2D top-down viewer for the Canopy simulation.

Renders cell stages, fire, water and weather in a window and lets the
mouse drive the four player verbs.  The simulation advances through
``SimulationEngine.update`` with scaled frame time while the display
refreshes at the Pygame frame rate.  The viewer only reads snapshots
and calls the public verbs.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, ClassVar

import numpy as np
import pygame

if TYPE_CHECKING:
    from canopy.simulation.engine import SimulationEngine
    from canopy.simulation.snapshot import GridSnapshot

from canopy.world.cell import PlantStage

# Colour palette
_BG = (20, 18, 14)
_FIRE = (255, 90, 20)
_TEXT = (200, 200, 200)

_STAGE_COLOURS: dict[PlantStage, tuple[int, int, int]] = {
    PlantStage.EMPTY: (110, 85, 55),
    PlantStage.SMALL_PLANT: (120, 200, 90),
    PlantStage.SMALL_TREE: (70, 170, 60),
    PlantStage.MEDIUM_TREE: (40, 130, 40),
    PlantStage.LARGE_TREE: (20, 90, 25),
    PlantStage.BURNT: (45, 40, 40),
}

# Water tint (blue overlay, alpha scaled by water level)
_WATER_COLOUR = np.array([40, 110, 255], dtype=np.float64)

_TOOLS: dict[int, str] = {
    pygame.K_1: "seed",
    pygame.K_2: "water",
    pygame.K_3: "fire",
    pygame.K_4: "stomp",
}


class PygameRenderer:
    """Renders a SimulationEngine into a Pygame window.

    Attributes:
        engine: The simulation engine to visualise.
        cell_size: Pixel size of each grid cell.
        screen: The Pygame display surface.
    """

    # Time-scale presets: simulated seconds per real second
    _SPEED_STEPS: ClassVar[list[float]] = [0.25, 0.5, 1.0, 2.0, 4.0, 8.0, 16.0]

    def __init__(
        self,
        engine: SimulationEngine,
        cell_size: int = 16,
        time_scale: float = 1.0,
    ) -> None:
        """Initialise the renderer.

        Args:
            engine: The simulation engine to render.
            cell_size: Pixel width/height per grid cell.
            time_scale: Simulated seconds per real-time second.
        """
        self.engine = engine
        self.cell_size = cell_size
        self.time_scale = time_scale
        self._speed_index = self._nearest_speed(time_scale)
        self.tool = "seed"

        w = engine.grid.width * cell_size
        h = engine.grid.height * cell_size
        self._panel_width = 240
        self._win_w = w + self._panel_width
        self._win_h = max(h, 360)

        pygame.init()
        self.screen = pygame.display.set_mode((self._win_w, self._win_h))
        pygame.display.set_caption("Canopy")
        self.clock = pygame.time.Clock()
        self.font = pygame.font.SysFont("monospace", 14)
        self.running = True
        self.paused = False
        self._last_events: list[str] = []

    def _nearest_speed(self, scale: float) -> int:
        """Return the index of the closest speed preset."""
        diffs = [abs(s - scale) for s in self._SPEED_STEPS]
        return diffs.index(min(diffs))

    def run(self, fps: int = 30) -> None:
        """Main loop: handle events, advance sim, render.

        Args:
            fps: Target frames per second.
        """
        while self.running:
            dt = self.clock.tick(fps) / 1000.0
            self._handle_events()
            if not self.paused:
                self.engine.update(dt * self.time_scale)
            for event in self.engine.drain_weather_events():
                self._last_events.append(f"{event.kind.name.lower()} {event.phase.name.lower()}")
            self._last_events = self._last_events[-4:]
            self._draw()

        pygame.quit()

    def _handle_events(self) -> None:
        """Process Pygame input events."""
        for event in pygame.event.get():
            if event.type == pygame.QUIT:
                self.running = False
            elif event.type == pygame.KEYDOWN:
                if event.key == pygame.K_ESCAPE:
                    self.running = False
                elif event.key == pygame.K_SPACE:
                    self.paused = not self.paused
                elif event.key in _TOOLS:
                    self.tool = _TOOLS[event.key]
                elif event.key in (pygame.K_PLUS, pygame.K_EQUALS):
                    self._speed_index = min(len(self._SPEED_STEPS) - 1, self._speed_index + 1)
                    self.time_scale = self._SPEED_STEPS[self._speed_index]
                elif event.key == pygame.K_MINUS:
                    self._speed_index = max(0, self._speed_index - 1)
                    self.time_scale = self._SPEED_STEPS[self._speed_index]
            elif event.type == pygame.MOUSEBUTTONDOWN and event.button == 1:
                self._apply_tool(*event.pos)

    def _apply_tool(self, px: int, py: int) -> None:
        """Apply the selected tool to the cell under a pixel position."""
        cs = self.cell_size
        grid = self.engine.grid
        x = px // cs
        # Screen rows grow downward; grid rows grow away from the origin.
        y = grid.height - 1 - py // cs
        if not grid.in_bounds(x, y):
            return
        point = grid.cell_centre(x, y)
        if self.tool == "seed":
            self.engine.place_seed_at(point)
        elif self.tool == "water":
            self.engine.add_water_at(point)
        elif self.tool == "fire":
            self.engine.ignite_at(point)
        elif self.tool == "stomp":
            self.engine.stomp_at(point)

    def _draw(self) -> None:
        """Render one frame."""
        snap = self.engine.snapshot()
        self.screen.fill(_BG)
        self._draw_cells(snap)
        self._draw_water_overlay(snap)
        self._draw_info_panel(snap)
        pygame.display.flip()

    def _cell_rect(self, x: int, y: int, rows: int) -> tuple[int, int, int, int]:
        cs = self.cell_size
        return (x * cs, (rows - 1 - y) * cs, cs, cs)

    def _draw_cells(self, snap: GridSnapshot) -> None:
        """Draw each cell in its stage colour, burning cells in orange."""
        rows, cols = snap.shape
        for y in range(rows):
            for x in range(cols):
                if snap.is_on_fire[y, x]:
                    colour = _FIRE
                else:
                    colour = _STAGE_COLOURS[PlantStage(int(snap.stage[y, x]))]
                pygame.draw.rect(self.screen, colour, self._cell_rect(x, y, rows))

    def _draw_water_overlay(self, snap: GridSnapshot) -> None:
        """Tint wet cells blue."""
        rows, cols = snap.shape
        overlay = pygame.Surface(
            (cols * self.cell_size, rows * self.cell_size),
            pygame.SRCALPHA,
        )
        colour = _WATER_COLOUR.astype(int).tolist()
        for y in range(rows):
            for x in range(cols):
                water = snap.water[y, x]
                if water > 0.3:
                    alpha = int(min(water, 1.0) * 110)
                    pygame.draw.rect(overlay, (*colour, alpha), self._cell_rect(x, y, rows))
        self.screen.blit(overlay, (0, 0))

    def _draw_info_panel(self, snap: GridSnapshot) -> None:
        """Draw a stats panel on the right side of the window."""
        panel_x = snap.shape[1] * self.cell_size + 10
        y = 10
        weather = self.engine.weather

        lines = [
            f"Tick: {snap.tick}",
            f"Speed: x{self.time_scale:g}",
            f"{'PAUSED' if self.paused else 'RUNNING'}",
            f"Tool: {self.tool}",
            "",
            f"Season: {snap.season.name.lower()}",
            f"Weather: {snap.phase.name.lower()} ({weather.remaining:.1f}s)",
            f"Rain streak: {weather.rain_streak}",
            f"Fires: {int(snap.is_on_fire.sum())}",
            "",
            "--- Stages ---",
        ]
        for stage, count in snap.census().items():
            lines.append(f"  {stage.name.lower()}: {count}")
        lines += ["", "--- Weather log ---", *self._last_events]
        lines += [
            "",
            "1-4: seed/water/fire/stomp",
            "SPACE: pause  +/-: speed",
            "ESC: quit",
        ]

        for line in lines:
            surf = self.font.render(line, True, _TEXT)
            self.screen.blit(surf, (panel_x, y))
            y += 18
