"""Shared fixtures for the Canopy test suite."""

from __future__ import annotations

import numpy as np
import pytest
from numpy.random import Generator

from canopy.simulation.config import SimulationConfig
from canopy.simulation.engine import SimulationEngine
from canopy.world.grid import Grid


@pytest.fixture
def rng() -> Generator:
    """A deterministic random generator for reproducible tests."""
    return np.random.default_rng(seed=12345)


@pytest.fixture
def small_grid() -> Grid:
    """A small 8x8 grid for fast tests."""
    return Grid(width=8, height=8)


@pytest.fixture
def default_config() -> SimulationConfig:
    """Default simulation config (no YAML file needed)."""
    return SimulationConfig()


@pytest.fixture
def small_config() -> SimulationConfig:
    """An 8x8 config with a fixed seed."""
    return SimulationConfig(seed=7, width=8, height=8)


@pytest.fixture
def small_engine(small_config: SimulationConfig) -> SimulationEngine:
    """An engine over the 8x8 config."""
    return SimulationEngine(config=small_config)
