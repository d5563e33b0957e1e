"""
Balloon Engine
Drag-to-aim arrow flight, balloon pool and round bookkeeping.
"""

from balloon_engine.aim import (
    AimController,
    AimGeometry,
    Viewport,
    clamp_pull,
    launch_velocity,
)
from balloon_engine.collision import (
    Balloon,
    find_hit,
    fit_balloons,
    move_balloons,
    spawn_pool,
)
from balloon_engine.flight import (
    Projectile,
    ProjectileState,
    advance_projectile,
    simulate_flight,
)
from balloon_engine.round_state import (
    RoundPhase,
    RoundState,
    RoundEnded,
)
from balloon_engine.simulation import (
    BalloonPopSimulation,
    DEFAULT_ROUND_CONFIG,
)

__all__ = [
    "AimController",
    "AimGeometry",
    "Viewport",
    "clamp_pull",
    "launch_velocity",
    "Balloon",
    "find_hit",
    "fit_balloons",
    "move_balloons",
    "spawn_pool",
    "Projectile",
    "ProjectileState",
    "advance_projectile",
    "simulate_flight",
    "RoundPhase",
    "RoundState",
    "RoundEnded",
    "BalloonPopSimulation",
    "DEFAULT_ROUND_CONFIG",
]
