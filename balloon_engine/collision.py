"""
Balloon Engine — Balloons & Hit Detection

Balloon pool spawning, reflecting horizontal motion, and arrow/balloon hits.
Hits are point-in-circle tests on the arrow tip against each balloon.
"""

from dataclasses import dataclass
from typing import List, Optional

import numpy as np


# ---------- Constants ----------
RADIUS_RANGE = (25.0, 35.0)          # px, [low, high)
SPEED_RANGE = (1.0, 2.0)             # px/tick, [low, high)
REGION_LEFT_FRACTION = 0.55          # balloons stay right of 0.55 * width
SPAWN_LEFT_FRACTION = 0.6
SPAWN_RIGHT_MARGIN = 20.0            # px kept clear of the right edge at spawn
BOUNCE_RIGHT_MARGIN = 10.0           # px kept clear of the right edge in motion
SPAWN_TOP = 80.0
SPAWN_BOTTOM_MARGIN = 100.0


# ---------- Data Classes ----------
@dataclass
class Balloon:
    """A target balloon. Popped balloons are respawned in place, never removed."""
    position: np.ndarray           # [x, y]
    radius: float = 30.0
    vx: float = 1.5                # px/tick, horizontal only
    color: str = "hsl(0,70%,60%)"
    popped: bool = False

    def to_dict(self) -> dict:
        """JSON-serializable representation."""
        return {
            "position": self.position.tolist(),
            "radius": float(self.radius),
            "vx": float(self.vx),
            "color": self.color,
            "popped": self.popped,
        }


def hsl_color(hue: int) -> str:
    """Balloon color tag in the same form the canvas consumes."""
    return f"hsl({int(hue)},70%,60%)"


def region_bounds(width: float, radius: float) -> tuple:
    """Horizontal [left, right] region a balloon of this radius bounces within."""
    left = width * REGION_LEFT_FRACTION
    right = max(left, width - radius - BOUNCE_RIGHT_MARGIN)
    return left, right


# ---------- Spawning ----------
def _randomize(balloon: Balloon, rng: np.random.Generator, width: float, height: float) -> None:
    radius = rng.uniform(*RADIUS_RANGE)
    x_lo = width * SPAWN_LEFT_FRACTION
    x_hi = max(x_lo, width - radius - SPAWN_RIGHT_MARGIN)
    y_lo = SPAWN_TOP
    y_hi = max(y_lo, height - SPAWN_BOTTOM_MARGIN)

    balloon.radius = radius
    balloon.position = np.array([rng.uniform(x_lo, x_hi), rng.uniform(y_lo, y_hi)])
    balloon.vx = rng.uniform(*SPEED_RANGE) * (1.0 if rng.random() > 0.5 else -1.0)
    balloon.color = hsl_color(rng.integers(0, 360))
    balloon.popped = False


def spawn_balloon(rng: np.random.Generator, width: float, height: float) -> Balloon:
    """Create a balloon with random size, position, speed and color."""
    balloon = Balloon(position=np.zeros(2))
    _randomize(balloon, rng, width, height)
    return balloon


def respawn_balloon(balloon: Balloon, rng: np.random.Generator, width: float, height: float) -> None:
    """Re-roll a (popped) balloon's attributes in place, keeping its pool slot."""
    _randomize(balloon, rng, width, height)


def spawn_pool(rng: np.random.Generator, width: float, height: float, count: int = 5) -> List[Balloon]:
    """Fixed-size balloon pool for a round."""
    return [spawn_balloon(rng, width, height) for _ in range(count)]


# ---------- Motion ----------
def move_balloons(balloons: List[Balloon], width: float) -> None:
    """Advance each live balloon one tick and bounce it off its region edges.

    A balloon that steps past an edge is put back on the edge and sent back
    inward, so x never leaves [0.55 * width, width - radius].

    Args:
        balloons: Pool to update (modified in place).
        width: Viewport width.
    """
    for balloon in balloons:
        if balloon.popped:
            continue

        balloon.position = balloon.position + np.array([balloon.vx, 0.0])

        left, right = region_bounds(width, balloon.radius)
        if balloon.position[0] < left:
            balloon.position[0] = left
            balloon.vx = abs(balloon.vx)
        elif balloon.position[0] > right:
            balloon.position[0] = right
            balloon.vx = -abs(balloon.vx)


def fit_balloons(balloons: List[Balloon], width: float, height: float) -> None:
    """Pull every balloon back inside its region after the viewport changes size.

    x is clamped to the bounce region and y to the spawn band [80, height - 100].
    """
    y_hi = max(SPAWN_TOP, height - SPAWN_BOTTOM_MARGIN)
    for balloon in balloons:
        left, right = region_bounds(width, balloon.radius)
        balloon.position = np.array([
            np.clip(balloon.position[0], left, right),
            np.clip(balloon.position[1], SPAWN_TOP, y_hi),
        ])


# ---------- Hit Detection ----------
def find_hit(tip: np.ndarray, balloons: List[Balloon]) -> Optional[int]:
    """Index of the first live balloon (pool order) whose circle contains the tip.

    Overlapping balloons are not ranked by depth: the earlier pool slot wins.
    """
    for index, balloon in enumerate(balloons):
        if balloon.popped:
            continue
        if np.linalg.norm(tip - balloon.position) < balloon.radius:
            return index
    return None


# ---------- Smoke Test ----------
if __name__ == "__main__":
    from rich.console import Console
    from rich.table import Table

    console = Console()
    console.print("\n[bold cyan]═══ Balloon Engine Collision Smoke Test ═══[/bold cyan]\n")

    rng = np.random.default_rng(seed=7)
    pool = spawn_pool(rng, 960, 540)

    console.print("[bold]Test 1:[/bold] Pool stays inside its region")
    for _ in range(5000):
        move_balloons(pool, 960)
    for b in pool:
        left, _ = region_bounds(960, b.radius)
        assert left <= b.position[0] <= 960 - b.radius
    console.print("  ✅ 5000 ticks, all balloons confined\n")

    console.print("[bold]Test 2:[/bold] Tip at a balloon center is a hit")
    assert find_hit(pool[2].position.copy(), pool) is not None
    assert find_hit(np.array([-100.0, -100.0]), pool) is None
    console.print("  ✅ Hit / miss detected\n")

    table = Table(title="Balloon Pool")
    table.add_column("Slot", style="cyan")
    table.add_column("Color", style="magenta")
    table.add_column("Position")
    table.add_column("Radius")
    table.add_column("vx")
    for i, b in enumerate(pool):
        table.add_row(str(i), b.color, f"({b.position[0]:.1f}, {b.position[1]:.1f})",
                      f"{b.radius:.1f}", f"{b.vx:+.2f}")
    console.print(table)

    console.print("\n[bold green]All collision tests passed![/bold green]\n")
