"""
Balloon Engine — Arrow Flight

Projectile state and per-tick flight integration.
One tick is one unit step: velocity is in pixels/tick, gravity in pixels/tick².

Coordinate system: canvas pixels, x=right, y=down.
"""

from dataclasses import dataclass, field
from enum import Enum

import numpy as np

# ---------- Constants ----------
GRAVITY = 0.15                # px/tick² (downward)


# ---------- Data Classes ----------
class ProjectileState(str, Enum):
    """Where the arrow is in its life. DRAGGING and FLYING are exclusive."""
    RESTING = "resting"
    DRAGGING = "dragging"
    FLYING = "flying"


@dataclass
class Projectile:
    """The single live arrow."""
    position: np.ndarray                  # [x, y]
    velocity: np.ndarray = field(default_factory=lambda: np.zeros(2))
    angle: float = 0.0                    # radians
    state: ProjectileState = ProjectileState.RESTING

    @classmethod
    def at_rest(cls, rest_position: np.ndarray) -> "Projectile":
        """Fresh resting arrow nocked at the bow."""
        return cls(position=np.array(rest_position, dtype=np.float64))

    @property
    def is_flying(self) -> bool:
        return self.state is ProjectileState.FLYING

    def reset_to_rest(self, rest_position: np.ndarray) -> None:
        """Put the arrow back on the string with no velocity."""
        self.position = np.array(rest_position, dtype=np.float64)
        self.velocity = np.zeros(2)
        self.angle = 0.0
        self.state = ProjectileState.RESTING

    def to_dict(self) -> dict:
        """JSON-serializable representation."""
        return {
            "position": self.position.tolist(),
            "velocity": self.velocity.tolist(),
            "angle": float(self.angle),
            "state": self.state.value,
        }


# ---------- Physics Functions ----------
def advance_projectile(projectile: Projectile, gravity: float = GRAVITY) -> None:
    """Integrate one tick of flight. Non-flying arrows are left untouched.

    Gravity is applied to vy before the position update (semi-implicit Euler),
    and the nose is turned to follow the new velocity.
    """
    if not projectile.is_flying:
        return

    projectile.velocity = projectile.velocity + np.array([0.0, gravity])
    projectile.position = projectile.position + projectile.velocity
    projectile.angle = float(np.arctan2(projectile.velocity[1], projectile.velocity[0]))


def is_out_of_bounds(position: np.ndarray, width: float, height: float) -> bool:
    """True once the point has left the viewport on any side."""
    x, y = float(position[0]), float(position[1])
    return x < 0.0 or x > width or y < 0.0 or y > height


def simulate_flight(
    origin: np.ndarray,
    velocity: np.ndarray,
    width: float,
    height: float,
    gravity: float = GRAVITY,
    max_ticks: int = 2000,
) -> list:
    """Fly an arrow from origin until it leaves the viewport.

    Used for aim previews and plots; balloons are ignored.

    Returns:
        List of [x, y] positions, starting at origin. The last point is the
        first one outside the viewport (or the position after max_ticks).
    """
    arrow = Projectile(
        position=np.array(origin, dtype=np.float64),
        velocity=np.array(velocity, dtype=np.float64),
        state=ProjectileState.FLYING,
    )
    path = [arrow.position.copy()]
    for _ in range(max_ticks):
        advance_projectile(arrow, gravity)
        path.append(arrow.position.copy())
        if is_out_of_bounds(arrow.position, width, height):
            break
    return path


# ---------- Smoke Test ----------
if __name__ == "__main__":
    from rich.console import Console

    console = Console()
    console.print("\n[bold cyan]═══ Balloon Engine Flight Smoke Test ═══[/bold cyan]\n")

    console.print("[bold]Test 1:[/bold] Horizontal launch falls under gravity")
    path = simulate_flight(np.array([150.0, 270.0]), np.array([10.0, 0.0]), 960, 540)
    console.print(f"  Ticks in flight: {len(path) - 1}, exit point: {path[-1]}")
    assert path[-1][1] > 270.0, "Arrow should have dropped"
    console.print("  ✅ Gravity pulls the arrow down\n")

    console.print("[bold]Test 2:[/bold] Resting arrow does not move")
    resting = Projectile.at_rest(np.array([184.0, 270.0]))
    advance_projectile(resting)
    assert np.allclose(resting.position, [184.0, 270.0])
    console.print("  ✅ Resting arrow untouched\n")

    console.print("[bold green]All flight tests passed![/bold green]\n")
