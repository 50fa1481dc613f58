"""Entry point for ``python -m canopy``.

Loads the default YAML config and either opens a Pygame window to watch
and poke the ecosystem, or runs a fixed number of ticks headless and
logs a summary.
"""

from __future__ import annotations

import argparse
import logging
import pathlib

from canopy.simulation.config import SimulationConfig
from canopy.simulation.engine import SimulationEngine
from canopy.weather.phases import TransitionKind

_DEFAULT_CONFIG = (
    pathlib.Path(__file__).resolve().parent.parent / "config" / "default.yaml"
)

logger = logging.getLogger("canopy")


def build_parser() -> argparse.ArgumentParser:
    """Return the command-line parser."""
    parser = argparse.ArgumentParser(
        prog="canopy",
        description="Canopy - grow/burn/water ecosystem simulation",
    )
    parser.add_argument(
        "-c",
        "--config",
        type=pathlib.Path,
        default=_DEFAULT_CONFIG,
        help="Path to YAML config file (default: config/default.yaml)",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Override the config seed",
    )
    parser.add_argument(
        "--headless",
        action="store_true",
        help="Run without a window and log a summary",
    )
    parser.add_argument(
        "--ticks",
        type=int,
        default=400,
        help="Ticks to run in headless mode (default: 400)",
    )
    parser.add_argument(
        "--cell-size",
        type=int,
        default=16,
        help="Pixel size per grid cell (default: 16)",
    )
    parser.add_argument(
        "--fps",
        type=int,
        default=30,
        help="Target frames per second (default: 30)",
    )
    parser.add_argument(
        "--speed",
        type=float,
        default=1.0,
        help="Simulated seconds per real second (default: 1)",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging verbosity (default: INFO)",
    )
    return parser


def run_headless(engine: SimulationEngine, ticks: int) -> None:
    """Run ``ticks`` discrete ticks through the frame driver and log a summary.

    Seeds a small cluster in the middle of the grid so growth has
    something to work from.
    """
    cx, cy = engine.grid.width // 2, engine.grid.height // 2
    for dx, dy in ((0, 0), (1, 0), (0, 1), (-1, 0), (0, -1)):
        engine.place_seed(cx + dx, cy + dy)

    phases: dict[str, int] = {}
    dt = engine.config.tick_seconds
    for _ in range(ticks):
        engine.update(dt)
        for event in engine.drain_weather_events():
            if event.kind is TransitionKind.STARTED:
                name = event.phase.name.lower()
                phases[name] = phases.get(name, 0) + 1

    snap = engine.snapshot()
    logger.info(
        "Ran %d ticks; season %s, weather %s",
        snap.tick,
        snap.season.name.lower(),
        snap.phase.name.lower(),
    )
    for stage, count in snap.census().items():
        logger.info("  %-12s %d", stage.name.lower(), count)
    logger.info("Weather phases entered: %s", phases)


def main(argv: list[str] | None = None) -> None:
    """Parse CLI args, create engine, launch renderer or headless run."""
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.config.exists():
        config = SimulationConfig.from_yaml(args.config)
    else:
        logger.warning("Config %s not found, using defaults", args.config)
        config = SimulationConfig()
    if args.seed is not None:
        config.seed = args.seed

    engine = SimulationEngine(config=config)

    if args.headless:
        run_headless(engine, args.ticks)
        return

    from canopy.ui.pygame_client import PygameRenderer

    renderer = PygameRenderer(
        engine=engine,
        cell_size=args.cell_size,
        time_scale=args.speed,
    )
    renderer.run(fps=args.fps)


if __name__ == "__main__":
    main()
