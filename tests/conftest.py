"""
Balloon Archery Test Suite — Shared Fixtures

Provides reusable pytest fixtures for all test stages.
"""

import sys
from pathlib import Path

import numpy as np
import pytest

# Add project root to path
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from balloon_engine.aim import AimController, AimGeometry, Viewport
from balloon_engine.collision import Balloon
from balloon_engine.flight import Projectile, ProjectileState
from balloon_engine.simulation import BalloonPopSimulation
from agents.envs.balloon_pop_env import BalloonPopEnv


# ---------- Geometry Fixtures ----------
@pytest.fixture
def viewport():
    """The default 960x540 canvas."""
    return Viewport(960.0, 540.0)


@pytest.fixture
def geometry(viewport):
    """Bow at (144, 270), rest at (184, 270), max pull 135."""
    return AimGeometry.from_viewport(viewport)


@pytest.fixture
def aim(geometry):
    return AimController(geometry)


@pytest.fixture
def resting_arrow(geometry):
    return Projectile.at_rest(geometry.rest_array)


# ---------- Simulation Fixtures ----------
@pytest.fixture
def sim():
    """Seeded simulation with a round already started."""
    simulation = BalloonPopSimulation(seed=42)
    simulation.start_round()
    return simulation


@pytest.fixture
def instant_sim():
    """Started round whose popped balloons respawn on the very next tick."""
    simulation = BalloonPopSimulation(round_config={"respawn_delay_ms": 0}, seed=42)
    simulation.start_round()
    return simulation


@pytest.fixture
def default_env():
    env = BalloonPopEnv()
    yield env
    env.close()


@pytest.fixture
def seeded_rng():
    """Seeded numpy RNG for determinism."""
    return np.random.default_rng(seed=42)


# ---------- Helpers ----------
def place_balloon(x: float, y: float, radius: float = 30.0, vx: float = 0.0) -> Balloon:
    """A balloon at a fixed spot (vx=0 keeps it there)."""
    return Balloon(position=np.array([x, y], dtype=np.float64), radius=radius, vx=vx)


def fire(simulation: BalloonPopSimulation, pull_offset) -> list:
    """Grab the resting arrow, draw it to anchor + pull_offset and release."""
    anchor = simulation.geometry.anchor_array
    assert simulation.on_pointer_down(simulation.projectile.position.copy())
    simulation.on_pointer_move(anchor + np.asarray(pull_offset, dtype=np.float64))
    return simulation.on_pointer_up()


def launch_straight(simulation: BalloonPopSimulation, position, velocity) -> None:
    """Put the current arrow in flight from an exact position and velocity."""
    simulation.projectile.position = np.asarray(position, dtype=np.float64)
    simulation.projectile.velocity = np.asarray(velocity, dtype=np.float64)
    simulation.projectile.state = ProjectileState.FLYING


def run_until(simulation: BalloonPopSimulation, predicate, max_ticks: int = 5000) -> list:
    """Tick until predicate(simulation) holds; returns every event seen."""
    events = []
    for _ in range(max_ticks):
        if predicate(simulation):
            break
        events.extend(simulation.tick())
    return events
