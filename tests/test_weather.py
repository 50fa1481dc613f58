"""Tests for canopy.weather — phase scheduler and escalation."""

from __future__ import annotations

import numpy as np
import pytest
from numpy.random import Generator

from canopy.simulation.config import SeasonWeights, WeatherConfig
from canopy.weather.phases import (
    Season,
    TransitionKind,
    WeatherEvent,
    WeatherPhase,
    parse_enum,
)
from canopy.weather.scheduler import WeatherScheduler


def _uniform_weights(**weights: float) -> dict[Season, SeasonWeights]:
    return {season: SeasonWeights(**weights) for season in Season}


def _phases_entered(
    sched: WeatherScheduler,
    seconds: float,
    dt: float = 0.5,
) -> list[WeatherEvent]:
    events: list[WeatherEvent] = []
    for _ in range(int(seconds / dt)):
        sched.advance(dt)
        events.extend(sched.drain_events())
    return events


class TestPhases:
    """Tests for the phase and season enums."""

    def test_season_cycle(self) -> None:
        assert Season.SPRING.next() is Season.SUMMER
        assert Season.WINTER.next() is Season.SPRING

    def test_parse_enum_case_insensitive(self) -> None:
        assert parse_enum(WeatherPhase, "Thunderstorm") is WeatherPhase.THUNDERSTORM
        assert parse_enum(Season, "winter") is Season.WINTER

    def test_parse_enum_unknown(self) -> None:
        with pytest.raises(ValueError, match="hail"):
            parse_enum(WeatherPhase, "hail")


class TestSeasonWeights:
    """Tests for weight normalisation."""

    def test_normalised(self) -> None:
        w = SeasonWeights(clear=2.0, rain=2.0).normalised()
        assert w.clear == pytest.approx(0.5)
        assert w.rain == pytest.approx(0.5)
        assert w.wind == 0.0
        assert w.snow == 0.0

    def test_negative_weights_clamped(self) -> None:
        w = SeasonWeights(clear=1.0, snow=-3.0).normalised()
        assert w.clear == pytest.approx(1.0)
        assert w.snow == 0.0

    def test_all_zero_falls_back_to_clear(self) -> None:
        w = SeasonWeights().normalised()
        assert w.clear == 1.0

    def test_thunderstorm_has_no_base_weight(self) -> None:
        assert SeasonWeights(clear=1.0, rain=1.0).weight_of(WeatherPhase.THUNDERSTORM) == 0.0


class TestWeatherScheduler:
    """Tests for phase timing, rolls and transitions."""

    def test_starts_clear(self, rng: Generator) -> None:
        sched = WeatherScheduler(WeatherConfig(), rng)
        assert sched.phase is WeatherPhase.CLEAR
        assert 10.0 <= sched.remaining <= 20.0
        assert sched.rain_streak == 0
        assert not sched.thunder_queued

    def test_initial_started_event(self, rng: Generator) -> None:
        sched = WeatherScheduler(WeatherConfig(), rng)
        assert sched.drain_events() == [WeatherEvent(WeatherPhase.CLEAR, TransitionKind.STARTED)]
        assert sched.drain_events() == []

    def test_transition_emits_ended_then_started(self, rng: Generator) -> None:
        sched = WeatherScheduler(WeatherConfig(), rng)
        sched.drain_events()
        sched.force_phase(WeatherPhase.WIND, 5.0)
        assert sched.drain_events() == [
            WeatherEvent(WeatherPhase.CLEAR, TransitionKind.ENDED),
            WeatherEvent(WeatherPhase.WIND, TransitionKind.STARTED),
        ]

    def test_same_phase_refresh_emits_nothing(self, rng: Generator) -> None:
        sched = WeatherScheduler(WeatherConfig(), rng)
        sched.drain_events()
        sched.force_phase(WeatherPhase.CLEAR, 3.0)
        assert sched.drain_events() == []
        assert sched.remaining == 3.0

    def test_minimum_duration(self, rng: Generator) -> None:
        sched = WeatherScheduler(WeatherConfig(), rng)
        sched.force_phase(WeatherPhase.WIND, 0.0)
        assert sched.remaining == pytest.approx(0.01)

    def test_fixed_duration_range(self, rng: Generator) -> None:
        cfg = WeatherConfig(durations={WeatherPhase.CLEAR: (3.0, 3.0)})
        sched = WeatherScheduler(cfg, rng)
        assert sched.remaining == 3.0

    def test_reversed_duration_range(self, rng: Generator) -> None:
        cfg = WeatherConfig(durations={WeatherPhase.CLEAR: (8.0, 4.0)})
        sched = WeatherScheduler(cfg, rng)
        assert 4.0 <= sched.remaining <= 8.0

    def test_overshoot_carries_over(self, rng: Generator) -> None:
        cfg = WeatherConfig(
            seasonal_weights=_uniform_weights(clear=1.0),
            durations={phase: (1.0, 1.0) for phase in WeatherPhase},
        )
        sched = WeatherScheduler(cfg, rng)
        sched.advance(10.5)
        assert sched.phase is WeatherPhase.CLEAR
        assert sched.remaining == pytest.approx(0.5)

    def test_non_finite_dt_rejected(self, rng: Generator) -> None:
        sched = WeatherScheduler(WeatherConfig(), rng)
        with pytest.raises(ValueError):
            sched.advance(float("nan"))

    def test_negative_dt_ignored(self, rng: Generator) -> None:
        sched = WeatherScheduler(WeatherConfig(), rng)
        before = sched.remaining
        sched.advance(-5.0)
        assert sched.remaining == before

    def test_all_zero_weights_roll_clear(self, rng: Generator) -> None:
        cfg = WeatherConfig(seasonal_weights=_uniform_weights())
        sched = WeatherScheduler(cfg, rng)
        sched.force_phase(WeatherPhase.RAIN, 1.0)
        for _ in range(50):
            assert sched.roll(Season.AUTUMN) is WeatherPhase.CLEAR

    def test_roll_respects_season(self, rng: Generator) -> None:
        cfg = WeatherConfig(
            seasonal_weights={
                Season.SPRING: SeasonWeights(rain=1.0),
                Season.SUMMER: SeasonWeights(clear=1.0),
                Season.AUTUMN: SeasonWeights(wind=1.0),
                Season.WINTER: SeasonWeights(snow=1.0),
            },
        )
        sched = WeatherScheduler(cfg, rng)
        assert sched.roll(Season.SPRING) is WeatherPhase.RAIN
        assert sched.roll(Season.SUMMER) is WeatherPhase.CLEAR
        assert sched.roll(Season.AUTUMN) is WeatherPhase.WIND
        assert sched.roll(Season.WINTER) is WeatherPhase.SNOW

    def test_roll_never_returns_thunderstorm(self, rng: Generator) -> None:
        sched = WeatherScheduler(WeatherConfig(), rng)
        rolls = {sched.roll(season) for season in Season for _ in range(200)}
        assert WeatherPhase.THUNDERSTORM not in rolls

    def test_stickiness_favours_current_phase(self, rng: Generator) -> None:
        cfg = WeatherConfig(
            seasonal_weights=_uniform_weights(clear=0.5, rain=0.5),
            phase_stickiness=3.0,
        )
        sched = WeatherScheduler(cfg, rng)
        n = 4000
        clear = sum(sched.roll(Season.SPRING) is WeatherPhase.CLEAR for _ in range(n))
        # 0.5 * 3 / (0.5 * 3 + 0.5) = 0.75
        assert clear / n == pytest.approx(0.75, abs=0.04)

    def test_wind_velocity(self, rng: Generator) -> None:
        sched = WeatherScheduler(WeatherConfig(wind_direction=(2.0, 0.0, 0.0)), rng)
        np.testing.assert_allclose(sched.wind_velocity(), [0.4, 0.0, 0.0])
        sched.force_phase(WeatherPhase.WIND, 5.0)
        np.testing.assert_allclose(sched.wind_velocity(), [1.0, 0.0, 0.0])

    def test_wind_disabled(self, rng: Generator) -> None:
        sched = WeatherScheduler(WeatherConfig(enable_wind=False), rng)
        np.testing.assert_array_equal(sched.wind_velocity(), np.zeros(3))

    def test_degenerate_wind_direction(self, rng: Generator) -> None:
        sched = WeatherScheduler(WeatherConfig(wind_direction=(0.0, 0.0, 0.0)), rng)
        np.testing.assert_allclose(sched.wind_velocity(), [0.4, 0.0, 0.0])

    def test_same_seed_same_sequence(self) -> None:
        a = WeatherScheduler(WeatherConfig(), np.random.default_rng(5))
        b = WeatherScheduler(WeatherConfig(), np.random.default_rng(5))
        assert _phases_entered(a, 600.0) == _phases_entered(b, 600.0)


class TestEscalation:
    """Tests for the Rain -> Thunderstorm escalation rule."""

    def test_second_rain_segment_queues_thunder(self, rng: Generator) -> None:
        sched = WeatherScheduler(WeatherConfig(thunder_after_consecutive_rain_segments=2), rng)
        sched.force_phase(WeatherPhase.RAIN, 5.0)
        assert sched.rain_streak == 1
        assert not sched.thunder_queued
        sched.force_phase(WeatherPhase.RAIN, 5.0)
        assert sched.rain_streak == 2
        assert sched.thunder_queued

    def test_guaranteed_thunder_after_rain(self, rng: Generator) -> None:
        sched = WeatherScheduler(WeatherConfig(), rng)
        sched.force_phase(WeatherPhase.RAIN, 5.0)
        sched.force_phase(WeatherPhase.RAIN, 5.0)
        sched.drain_events()

        sched.advance(5.0)

        assert sched.phase is WeatherPhase.THUNDERSTORM
        assert 4.0 <= sched.remaining <= 6.0
        assert not sched.thunder_queued
        assert sched.rain_streak == 0
        assert sched.drain_events() == [
            WeatherEvent(WeatherPhase.RAIN, TransitionKind.ENDED),
            WeatherEvent(WeatherPhase.THUNDERSTORM, TransitionKind.STARTED),
        ]

    def test_single_rain_does_not_escalate(self, rng: Generator) -> None:
        cfg = WeatherConfig(seasonal_weights=_uniform_weights(clear=1.0))
        sched = WeatherScheduler(cfg, rng)
        sched.force_phase(WeatherPhase.RAIN, 5.0)
        sched.advance(5.0)
        assert sched.phase is WeatherPhase.CLEAR

    def test_non_rain_phase_resets_streak(self, rng: Generator) -> None:
        sched = WeatherScheduler(WeatherConfig(thunder_after_consecutive_rain_segments=3), rng)
        sched.force_phase(WeatherPhase.RAIN, 5.0)
        sched.force_phase(WeatherPhase.RAIN, 5.0)
        sched.force_phase(WeatherPhase.WIND, 5.0)
        assert sched.rain_streak == 0
        sched.force_phase(WeatherPhase.RAIN, 5.0)
        assert sched.rain_streak == 1
        assert not sched.thunder_queued

    def test_queue_persists_until_rain_ends(self, rng: Generator) -> None:
        cfg = WeatherConfig(seasonal_weights=_uniform_weights(clear=1.0))
        sched = WeatherScheduler(cfg, rng)
        sched.force_phase(WeatherPhase.RAIN, 5.0)
        sched.force_phase(WeatherPhase.RAIN, 5.0)
        sched.force_phase(WeatherPhase.WIND, 5.0)
        assert sched.thunder_queued
        sched.advance(5.0)
        # Leaving Wind is not leaving Rain, so the queued storm waits.
        assert sched.phase is WeatherPhase.CLEAR
        assert sched.thunder_queued

    def test_clear_only_weights_never_thunder(self, rng: Generator) -> None:
        cfg = WeatherConfig(
            seasonal_weights=_uniform_weights(clear=1.0),
            thunder_after_consecutive_rain_segments=1,
        )
        sched = WeatherScheduler(cfg, rng)
        events = _phases_entered(sched, 2000.0)
        phases = {event.phase for event in events}
        assert phases == {WeatherPhase.CLEAR}

    def test_rain_only_weights_escalate(self, rng: Generator) -> None:
        cfg = WeatherConfig(seasonal_weights=_uniform_weights(rain=1.0))
        sched = WeatherScheduler(cfg, rng)
        events = _phases_entered(sched, 600.0)

        storms = [
            i
            for i, event in enumerate(events)
            if event == WeatherEvent(WeatherPhase.THUNDERSTORM, TransitionKind.STARTED)
        ]
        assert storms
        for i in storms:
            assert events[i - 1] == WeatherEvent(WeatherPhase.RAIN, TransitionKind.ENDED)

    def test_no_thunder_when_trigger_probability_zero(self, rng: Generator) -> None:
        cfg = WeatherConfig(
            seasonal_weights=_uniform_weights(rain=1.0),
            thunder_guaranteed_when_queued=False,
            thunder_trigger_probability=0.0,
        )
        sched = WeatherScheduler(cfg, rng)
        events = _phases_entered(sched, 600.0)
        assert all(event.phase is not WeatherPhase.THUNDERSTORM for event in events)

    def test_invalid_threshold(self) -> None:
        with pytest.raises(ValueError):
            WeatherConfig(thunder_after_consecutive_rain_segments=0)
