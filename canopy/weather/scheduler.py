"""WeatherScheduler — global weather phase state machine.

One scheduler per simulation session.  It advances on its own duration
timer, independent of the grid tick, and picks each new phase from the
season's weight table.  Thunderstorms are never rolled directly: after
enough consecutive Rain segments a storm is queued and fires at the
next transition out of Rain.

Consumers do not register callbacks.  Every transition appends an
ENDED event for the outgoing phase and a STARTED event for the incoming
one to a queue, which collaborators drain once per frame.
"""

from __future__ import annotations

import logging

import numpy as np
from numpy.random import Generator
from numpy.typing import NDArray

from canopy.simulation.config import WeatherConfig
from canopy.weather.phases import Season, TransitionKind, WeatherEvent, WeatherPhase

logger = logging.getLogger(__name__)

_MIN_DURATION = 0.01

_INTENSITY: dict[WeatherPhase, float] = {
    WeatherPhase.CLEAR: 0.0,
    WeatherPhase.WIND: 0.35,
    WeatherPhase.RAIN: 0.6,
    WeatherPhase.THUNDERSTORM: 1.0,
    WeatherPhase.SNOW: 0.55,
}

# Cumulative roll order; Snow is the implied remainder.
_ROLL_ORDER: tuple[WeatherPhase, ...] = (
    WeatherPhase.CLEAR,
    WeatherPhase.WIND,
    WeatherPhase.RAIN,
    WeatherPhase.SNOW,
)


class WeatherScheduler:
    """Season-aware weather phase scheduler with thunderstorm escalation.

    Attributes:
        config: Weather parameters (weights, durations, escalation).
        rng: Generator used for rolls and duration sampling.
    """

    def __init__(self, config: WeatherConfig, rng: Generator) -> None:
        """Start in Clear with a sampled duration.

        Args:
            config: Weather parameters.
            rng: Seeded random generator owned by this scheduler.
        """
        self.config = config
        self.rng = rng
        self._phase = WeatherPhase.CLEAR
        self._remaining = self._sample_duration(WeatherPhase.CLEAR)
        self._rain_streak = 0
        self._thunder_queued = False
        self._events: list[WeatherEvent] = [
            WeatherEvent(WeatherPhase.CLEAR, TransitionKind.STARTED),
        ]

    # -- Read-only state -----------------------------------------------------

    @property
    def phase(self) -> WeatherPhase:
        """The currently active phase."""
        return self._phase

    @property
    def remaining(self) -> float:
        """Seconds left in the current phase."""
        return self._remaining

    @property
    def rain_streak(self) -> int:
        """Consecutive Rain segments entered so far."""
        return self._rain_streak

    @property
    def thunder_queued(self) -> bool:
        """True if a thunderstorm awaits the next transition out of Rain."""
        return self._thunder_queued

    @property
    def intensity(self) -> float:
        """Nominal intensity of the current phase (0.0-1.0)."""
        return _INTENSITY[self._phase]

    def wind_velocity(self) -> NDArray[np.float64]:
        """Return the world-space wind vector for the current phase."""
        if not self.config.enable_wind:
            return np.zeros(3, dtype=np.float64)
        direction = np.asarray(self.config.wind_direction, dtype=np.float64)
        norm = float(np.linalg.norm(direction))
        if norm < 1e-3:
            direction = np.array([1.0, 0.0, 0.0])
        else:
            direction = direction / norm
        return direction * self.config.wind_speeds[self._phase]

    def drain_events(self) -> list[WeatherEvent]:
        """Return queued transition events in order and clear the queue."""
        events, self._events = self._events, []
        return events

    # -- Driving -------------------------------------------------------------

    def advance(self, dt: float, season: Season = Season.SPRING) -> None:
        """Count down the current phase and transition when it expires.

        Overshoot carries into the next phase, so one long frame may
        run several transitions.

        Args:
            dt: Elapsed seconds (negative values are ignored).
            season: Season whose weights drive the next roll.
        """
        if not np.isfinite(dt):
            msg = f"dt must be finite, got {dt}"
            raise ValueError(msg)
        self._remaining -= max(0.0, dt)
        while self._remaining <= 0.0:
            overshoot = self._remaining
            self._schedule_next(season)
            self._remaining += overshoot

    def force_phase(self, phase: WeatherPhase, duration: float) -> None:
        """Enter ``phase`` for ``duration`` seconds.

        Re-entering the active phase only refreshes its duration and
        emits no events, but a repeated Rain still counts as a new
        segment toward escalation.

        Args:
            phase: Phase to enter.
            duration: Seconds to stay; values <= 0 become a tiny minimum.
        """
        duration = max(duration, _MIN_DURATION)

        if phase is WeatherPhase.RAIN:
            self._rain_streak += 1
            if self._rain_streak >= self.config.thunder_after_consecutive_rain_segments:
                if not self._thunder_queued:
                    logger.debug("Thunderstorm queued after %d rain segments", self._rain_streak)
                self._thunder_queued = True
        else:
            # Thunderstorm breaks the streak too, so storms cannot chain.
            self._rain_streak = 0

        if phase is self._phase:
            self._remaining = duration
            return

        old = self._phase
        self._events.append(WeatherEvent(old, TransitionKind.ENDED))
        self._phase = phase
        self._remaining = duration
        self._events.append(WeatherEvent(phase, TransitionKind.STARTED))
        logger.debug(
            "Weather %s -> %s for %.2fs",
            old.name.lower(),
            phase.name.lower(),
            duration,
        )

    def _schedule_next(self, season: Season) -> None:
        """Pick and enter the next phase."""
        if self._thunder_queued and self._phase is WeatherPhase.RAIN:
            triggered = (
                self.config.thunder_guaranteed_when_queued
                or self.rng.random() < self.config.thunder_trigger_probability
            )
            if triggered:
                self._thunder_queued = False
                self.force_phase(
                    WeatherPhase.THUNDERSTORM,
                    self._sample_duration(WeatherPhase.THUNDERSTORM),
                )
                return

        nxt = self.roll(season)
        self.force_phase(nxt, self._sample_duration(nxt))

    def roll(self, season: Season) -> WeatherPhase:
        """Roll a base phase from the season's weights.

        Weights are normalised, the active phase's weight is scaled by
        the stickiness factor, and a uniform draw is mapped onto the
        cumulative buckets Clear, Wind, Rain, Snow.
        """
        weights = self.config.weights_for(season).normalised()
        stick = max(0.0, self.config.phase_stickiness)
        scaled = [
            weights.weight_of(phase) * (stick if phase is self._phase else 1.0)
            for phase in _ROLL_ORDER
        ]

        total = sum(scaled)
        if total <= 0.0:
            return WeatherPhase.CLEAR

        roll = self.rng.random() * total
        cumulative = 0.0
        for phase, weight in zip(_ROLL_ORDER[:-1], scaled[:-1]):
            cumulative += weight
            if roll < cumulative:
                return phase
        return WeatherPhase.SNOW

    def _sample_duration(self, phase: WeatherPhase) -> float:
        """Sample a duration from the phase's configured range."""
        lo, hi = self.config.durations[phase]
        a, b = min(lo, hi), max(lo, hi)
        if np.isclose(a, b):
            return max(a, _MIN_DURATION)
        return max(float(self.rng.uniform(a, b)), _MIN_DURATION)
