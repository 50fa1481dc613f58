"""Config — load simulation parameters from YAML files.

All tunable constants (grid size, diffusion rates, growth thresholds,
fire behaviour, weather weights and durations) live in YAML and are
parsed into typed dataclasses here.  Validation happens at construction
so malformed bundles never reach the tick loop.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

import yaml

from canopy.weather.phases import Season, WeatherPhase, parse_enum

logger = logging.getLogger(__name__)

BASE_PHASES: tuple[WeatherPhase, ...] = (
    WeatherPhase.CLEAR,
    WeatherPhase.RAIN,
    WeatherPhase.WIND,
    WeatherPhase.SNOW,
)


@dataclass
class SeasonWeights:
    """Relative frequency of each base weather phase within a season.

    Thunderstorm has no base weight; it is reachable only by escalation.
    """

    clear: float = 0.0
    rain: float = 0.0
    wind: float = 0.0
    snow: float = 0.0

    def weight_of(self, phase: WeatherPhase) -> float:
        """Return the weight for a base phase (0 for Thunderstorm)."""
        if phase not in BASE_PHASES:
            return 0.0
        return getattr(self, phase.name.lower())

    def normalised(self) -> SeasonWeights:
        """Return weights clamped to >= 0 and scaled to sum to 1.

        If every weight is <= 0 the result is Clear with certainty.
        """
        c = max(0.0, self.clear)
        r = max(0.0, self.rain)
        w = max(0.0, self.wind)
        s = max(0.0, self.snow)
        total = c + r + w + s
        if total <= 0.0:
            return SeasonWeights(clear=1.0)
        return SeasonWeights(clear=c / total, rain=r / total, wind=w / total, snow=s / total)


@dataclass
class PhaseForcing:
    """Fixed per-tick deltas a weather phase applies to every cell.

    Attributes:
        water: Added to water.
        sunlight: Added to sunlight (negative for overcast phases).
        heat: Added to heat.
        ignition_chance: Independent per-cell probability of a lightning
            strike setting the cell alight.
    """

    water: float = 0.0
    sunlight: float = 0.0
    heat: float = 0.0
    ignition_chance: float = 0.0


def _default_season_weights() -> dict[Season, SeasonWeights]:
    return {
        Season.SPRING: SeasonWeights(clear=0.70, rain=0.30),
        Season.SUMMER: SeasonWeights(clear=0.60, rain=0.40),
        Season.AUTUMN: SeasonWeights(clear=0.40, rain=0.10, wind=0.50),
        Season.WINTER: SeasonWeights(clear=0.20, snow=0.80),
    }


def _default_durations() -> dict[WeatherPhase, tuple[float, float]]:
    return {
        WeatherPhase.CLEAR: (10.0, 20.0),
        WeatherPhase.WIND: (8.0, 14.0),
        WeatherPhase.RAIN: (10.0, 15.0),
        WeatherPhase.THUNDERSTORM: (4.0, 6.0),
        WeatherPhase.SNOW: (12.0, 20.0),
    }


def _default_wind_speeds() -> dict[WeatherPhase, float]:
    return {
        WeatherPhase.CLEAR: 0.4,
        WeatherPhase.WIND: 1.0,
        WeatherPhase.RAIN: 0.8,
        WeatherPhase.THUNDERSTORM: 1.2,
        WeatherPhase.SNOW: 0.6,
    }


def _default_forcing() -> dict[WeatherPhase, PhaseForcing]:
    return {
        WeatherPhase.CLEAR: PhaseForcing(water=-0.005),
        WeatherPhase.RAIN: PhaseForcing(water=0.02, sunlight=-0.015),
        WeatherPhase.THUNDERSTORM: PhaseForcing(
            water=0.03,
            sunlight=-0.02,
            ignition_chance=0.002,
        ),
        WeatherPhase.WIND: PhaseForcing(water=-0.03),
        WeatherPhase.SNOW: PhaseForcing(sunlight=-0.015, heat=-0.02),
    }


@dataclass
class WeatherConfig:
    """Parameters for the global weather scheduler.

    Attributes:
        seasonal_weights: Base-phase weights per season.
        durations: ``(min, max)`` seconds for each phase.
        phase_stickiness: Multiplier on the active base phase's weight
            when rolling the next phase.
        thunder_after_consecutive_rain_segments: Rain segments in a row
            needed before a thunderstorm is queued.
        thunder_guaranteed_when_queued: If True a queued thunderstorm
            always fires at the next transition out of Rain.
        thunder_trigger_probability: Chance a queued thunderstorm fires
            when not guaranteed.
        enable_wind: If False the wind vector is always zero.
        wind_direction: World-space base wind direction.
        wind_speeds: Wind speed per phase.
    """

    seasonal_weights: dict[Season, SeasonWeights] = field(
        default_factory=_default_season_weights,
    )
    durations: dict[WeatherPhase, tuple[float, float]] = field(
        default_factory=_default_durations,
    )
    phase_stickiness: float = 1.25
    thunder_after_consecutive_rain_segments: int = 2
    thunder_guaranteed_when_queued: bool = True
    thunder_trigger_probability: float = 0.8
    enable_wind: bool = True
    wind_direction: tuple[float, float, float] = (1.0, 0.0, 0.0)
    wind_speeds: dict[WeatherPhase, float] = field(default_factory=_default_wind_speeds)

    def __post_init__(self) -> None:
        """Validate ranges and fill in phases missing from partial tables."""
        self.seasonal_weights = dict(self.seasonal_weights)
        self.durations = dict(self.durations)
        self.wind_speeds = dict(self.wind_speeds)
        if self.thunder_after_consecutive_rain_segments < 1:
            msg = "thunder_after_consecutive_rain_segments must be >= 1"
            raise ValueError(msg)
        if self.phase_stickiness < 1.0:
            msg = f"phase_stickiness must be >= 1, got {self.phase_stickiness}"
            raise ValueError(msg)
        _check_unit("thunder_trigger_probability", self.thunder_trigger_probability)
        for season in Season:
            self.seasonal_weights.setdefault(season, SeasonWeights(clear=1.0))
        for phase, default in _default_durations().items():
            self.durations.setdefault(phase, default)
        for phase, (lo, hi) in self.durations.items():
            if lo < 0 or hi < 0:
                msg = f"duration range for {phase.name.lower()} must be >= 0"
                raise ValueError(msg)
        for phase, speed in _default_wind_speeds().items():
            self.wind_speeds.setdefault(phase, speed)

    def weights_for(self, season: Season) -> SeasonWeights:
        """Return the configured weights for ``season``."""
        return self.seasonal_weights[season]

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> WeatherConfig:
        """Build a WeatherConfig from the ``weather`` YAML section."""
        data = dict(data)
        kwargs = _pop_scalars(
            cls,
            data,
            skip={"seasonal_weights", "durations", "wind_speeds", "wind_direction"},
        )

        weights = _default_season_weights()
        for name, values in (data.pop("seasonal_weights", None) or {}).items():
            season = parse_enum(Season, name)
            weights[season] = SeasonWeights(**_known_keys(SeasonWeights, values))
        kwargs["seasonal_weights"] = weights

        durations = _default_durations()
        for name, pair in (data.pop("durations", None) or {}).items():
            lo, hi = pair
            durations[parse_enum(WeatherPhase, name)] = (float(lo), float(hi))
        kwargs["durations"] = durations

        speeds = _default_wind_speeds()
        for name, speed in (data.pop("wind_speeds", None) or {}).items():
            speeds[parse_enum(WeatherPhase, name)] = float(speed)
        kwargs["wind_speeds"] = speeds

        if "wind_direction" in data:
            kwargs["wind_direction"] = _vec3(data.pop("wind_direction"))

        _warn_unknown("weather", data)
        return cls(**kwargs)


@dataclass
class IgnitionConfig:
    """Parameters for the player-triggered ring spread.

    Attributes:
        max_distance: Outermost Chebyshev ring ignited.
        seconds_per_step: Real-time delay before each ring.
        grace_seconds: Delay after the final ring before the area is
            extinguished and scarred.
    """

    max_distance: int = 3
    seconds_per_step: float = 1.0
    grace_seconds: float = 0.25

    def __post_init__(self) -> None:
        if self.max_distance < 0:
            msg = f"max_distance must be >= 0, got {self.max_distance}"
            raise ValueError(msg)
        if self.seconds_per_step < 0 or self.grace_seconds < 0:
            msg = "ignition delays must be >= 0"
            raise ValueError(msg)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> IgnitionConfig:
        """Build an IgnitionConfig from the ``ignition`` YAML section."""
        data = dict(data)
        kwargs = _pop_scalars(cls, data)
        _warn_unknown("ignition", data)
        return cls(**kwargs)


@dataclass
class SimulationConfig:
    """Top-level simulation configuration.

    Attributes:
        seed: RNG seed for deterministic replay.
        width: Number of grid columns.
        height: Number of grid rows.
        cell_size: World-space edge length of one cell.
        world_centre: World-space point the grid is centred on.
        tick_seconds: Simulated seconds between discrete ticks.
        season_seconds: Length of one season in seconds.
        initial_season: Season active when the session starts.
        enable_simulation_tick: If False, ``update`` never runs ticks.
        water_diffuse: Diffusion blend rate for water.
        heat_diffuse: Diffusion blend rate for heat.
        shade_from_large_tree: Sunlight lost per neighbouring large tree.
        base_sunlight: Sunlight level clear skies relax toward.
        sunlight_recovery: Per-tick blend rate toward ``base_sunlight``.
        fire_heat_per_tick: Heat added to a burning cell each tick.
        fire_fuel_burn_per_tick: Fuel consumed by a burning cell each tick.
        fire_spread_chance: Per-neighbour, per-tick contagion probability.
        contagion_fuel: Minimum fuel given to a cell ignited by contagion.
        lightning_fuel: Minimum fuel given to a cell struck by lightning.
        extinguish_threshold: Fuel at or below which a fire goes out.
        water_min: Lower bound of the healthy water range.
        water_max: Upper bound of the healthy water range.
        sun_min: Lower bound of the healthy sunlight range.
        sun_max: Upper bound of the healthy sunlight range.
        heat_max: Heat above which conditions are unhealthy.
        birth_min_neighbours: Fewest small-plant neighbours for a birth.
        birth_max_neighbours: Most small-plant neighbours for a birth.
        birth_success_bonus: Success gained by a newborn plant.
        min_durability: Durability at or below which a plant is stressed.
        stress_durability_loss: Durability lost per stressed tick.
        stress_success_loss: Success lost per stressed tick.
        grow_chance_min: Growth chance at zero success.
        grow_chance_max: Growth chance at full success.
        crowding_neighbours: Plant neighbours at which crowding applies.
        crowding_factor: Growth-chance multiplier under crowding.
        survival_success_gain: Success gained per healthy tick.
        durability_recovery: Durability regained per healthy tick.
        burnt_recovery: Success regained per tick on burnt ground.
        burnt_success_cap: Ceiling for success recovery on burnt ground.
        stomp_damage: Default durability loss from a stomp.
        default_water_amount: Default water added by the watering verb.
        forcing: Per-phase weather deltas.
        weather: Weather scheduler parameters.
        ignition: Ring-spread parameters.
    """

    seed: int = 42
    width: int = 32
    height: int = 32
    cell_size: float = 0.5
    world_centre: tuple[float, float, float] = (0.0, 0.0, 0.0)

    # Timing
    tick_seconds: float = 0.25
    season_seconds: float = 150.0
    initial_season: Season = Season.SUMMER
    enable_simulation_tick: bool = True

    # Diffusion and shading
    water_diffuse: float = 0.12
    heat_diffuse: float = 0.10
    shade_from_large_tree: float = 0.35
    base_sunlight: float = 0.8
    sunlight_recovery: float = 0.05

    # Fire
    fire_heat_per_tick: float = 0.25
    fire_fuel_burn_per_tick: float = 0.12
    fire_spread_chance: float = 0.20
    contagion_fuel: float = 0.6
    lightning_fuel: float = 0.8
    extinguish_threshold: float = 0.001

    # Growth
    water_min: float = 0.25
    water_max: float = 0.85
    sun_min: float = 0.45
    sun_max: float = 0.95
    heat_max: float = 0.85
    birth_min_neighbours: int = 2
    birth_max_neighbours: int = 4
    birth_success_bonus: float = 0.05
    min_durability: float = 0.15
    stress_durability_loss: float = 0.02
    stress_success_loss: float = 0.03
    grow_chance_min: float = 0.02
    grow_chance_max: float = 0.15
    crowding_neighbours: int = 6
    crowding_factor: float = 0.35
    survival_success_gain: float = 0.01
    durability_recovery: float = 0.0
    burnt_recovery: float = 0.01
    burnt_success_cap: float = 1.0

    # Player tools
    stomp_damage: float = 0.10
    default_water_amount: float = 0.25

    forcing: dict[WeatherPhase, PhaseForcing] = field(default_factory=_default_forcing)
    weather: WeatherConfig = field(default_factory=WeatherConfig)
    ignition: IgnitionConfig = field(default_factory=IgnitionConfig)

    _UNIT_FIELDS = (
        "water_diffuse",
        "heat_diffuse",
        "shade_from_large_tree",
        "base_sunlight",
        "sunlight_recovery",
        "fire_spread_chance",
        "contagion_fuel",
        "lightning_fuel",
        "crowding_factor",
        "grow_chance_min",
        "grow_chance_max",
        "burnt_success_cap",
    )

    def __post_init__(self) -> None:
        """Validate the bundle and fill in phases missing from ``forcing``."""
        if self.width <= 0 or self.height <= 0:
            msg = f"grid dimensions must be positive, got {self.width}x{self.height}"
            raise ValueError(msg)
        if self.cell_size <= 0:
            msg = f"cell_size must be positive, got {self.cell_size}"
            raise ValueError(msg)
        if self.tick_seconds <= 0:
            msg = f"tick_seconds must be positive, got {self.tick_seconds}"
            raise ValueError(msg)
        if self.season_seconds <= 0:
            msg = f"season_seconds must be positive, got {self.season_seconds}"
            raise ValueError(msg)
        if self.birth_min_neighbours > self.birth_max_neighbours:
            msg = "birth_min_neighbours must not exceed birth_max_neighbours"
            raise ValueError(msg)
        for name in self._UNIT_FIELDS:
            _check_unit(name, getattr(self, name))
        self.forcing = dict(self.forcing)
        for phase, forcing in _default_forcing().items():
            self.forcing.setdefault(phase, forcing)
        for phase, forcing in self.forcing.items():
            _check_unit(f"{phase.name.lower()} ignition_chance", forcing.ignition_chance)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SimulationConfig:
        """Build a SimulationConfig from a parsed YAML mapping.

        Missing keys fall back to defaults; unknown keys are logged and
        ignored.
        """
        data = dict(data)
        kwargs = _pop_scalars(
            cls,
            data,
            skip={"world_centre", "initial_season", "forcing", "weather", "ignition"},
        )
        if "world_centre" in data:
            kwargs["world_centre"] = _vec3(data.pop("world_centre"))
        if "initial_season" in data:
            kwargs["initial_season"] = parse_enum(Season, data.pop("initial_season"))

        forcing = _default_forcing()
        for name, values in (data.pop("forcing", None) or {}).items():
            forcing[parse_enum(WeatherPhase, name)] = PhaseForcing(
                **_known_keys(PhaseForcing, values),
            )
        kwargs["forcing"] = forcing
        kwargs["weather"] = WeatherConfig.from_dict(data.pop("weather", None) or {})
        kwargs["ignition"] = IgnitionConfig.from_dict(data.pop("ignition", None) or {})

        _warn_unknown("top level", data)
        return cls(**kwargs)

    @classmethod
    def from_yaml(cls, path: str | Path) -> SimulationConfig:
        """Load configuration from a YAML file.

        Args:
            path: Path to the YAML config file.

        Returns:
            A populated SimulationConfig instance.

        Raises:
            FileNotFoundError: If the config file does not exist.
            ValueError: If a value fails validation.
        """
        path = Path(path)
        with path.open("r") as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            msg = f"{path}: expected a mapping at the top level"
            raise ValueError(msg)
        logger.info("Loaded simulation config from %s", path)
        return cls.from_dict(data)


# -- Helpers -----------------------------------------------------------------


def _check_unit(name: str, value: float) -> None:
    if not 0.0 <= value <= 1.0:
        msg = f"{name} must be within [0, 1], got {value}"
        raise ValueError(msg)


def _vec3(value: Any) -> tuple[float, float, float]:
    x, y, z = value
    return float(x), float(y), float(z)


def _pop_scalars(
    cls: type,
    data: dict[str, Any],
    *,
    skip: frozenset[str] | set[str] = frozenset(),
) -> dict[str, Any]:
    """Remove and return the entries of ``data`` that name plain fields."""
    kwargs: dict[str, Any] = {}
    for f in fields(cls):
        if f.name in skip or f.name not in data:
            continue
        kwargs[f.name] = data.pop(f.name)
    return kwargs


def _known_keys(cls: type, values: dict[str, Any]) -> dict[str, float]:
    names = {f.name for f in fields(cls)}
    unknown = set(values) - names
    if unknown:
        logger.warning("Ignoring unknown %s keys: %s", cls.__name__, sorted(unknown))
    return {k: float(v) for k, v in values.items() if k in names}


def _warn_unknown(section: str, data: dict[str, Any]) -> None:
    if data:
        logger.warning("Ignoring unknown config keys in %s: %s", section, sorted(data))
