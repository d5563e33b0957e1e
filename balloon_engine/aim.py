"""
Balloon Engine — Drag-to-Aim

Turns a pointer drag on the nocked arrow into a launch velocity.

The archer grabs the arrow near the bow, pulls it back (away from the
balloons) and lets go. The launch goes along the line from the drawn arrow
through the bow: the drawn pull vector, negated.
"""

from dataclasses import dataclass
from typing import Optional

import numpy as np

from balloon_engine.flight import Projectile, ProjectileState

# ---------- Constants ----------
POWER = 0.25                  # launch speed per px of pull
GRAB_RADIUS = 40.0            # px around the resting arrow that starts a drag
RELEASE_THRESHOLD = 6.0       # px; pulls this short are cancelled, not fired
REST_OFFSET = 40.0            # px in front of the bow where the arrow rests
MAX_PULL_FRACTION = 0.25      # of min(width, height)
ANCHOR_FRACTION = (0.15, 0.5) # bow position as fractions of (width, height)


# ---------- Data Classes ----------
@dataclass(frozen=True)
class Viewport:
    """Canvas size in pixels."""
    width: float
    height: float

    def __post_init__(self):
        if self.width <= 0 or self.height <= 0:
            raise ValueError(f"Viewport must be positive, got {self.width}x{self.height}")


@dataclass(frozen=True)
class AimGeometry:
    """Bow placement and draw limits derived from the viewport."""
    anchor: tuple                 # bow (x, y)
    rest_position: tuple          # where a fresh arrow sits
    max_pull: float
    grab_radius: float = GRAB_RADIUS
    release_threshold: float = RELEASE_THRESHOLD

    @classmethod
    def from_viewport(
        cls,
        viewport: Viewport,
        rest_offset: float = REST_OFFSET,
        max_pull_fraction: float = MAX_PULL_FRACTION,
        grab_radius: float = GRAB_RADIUS,
        release_threshold: float = RELEASE_THRESHOLD,
    ) -> "AimGeometry":
        ax = viewport.width * ANCHOR_FRACTION[0]
        ay = viewport.height * ANCHOR_FRACTION[1]
        return cls(
            anchor=(ax, ay),
            rest_position=(ax + rest_offset, ay),
            max_pull=min(viewport.width, viewport.height) * max_pull_fraction,
            grab_radius=grab_radius,
            release_threshold=release_threshold,
        )

    @property
    def anchor_array(self) -> np.ndarray:
        return np.array(self.anchor, dtype=np.float64)

    @property
    def rest_array(self) -> np.ndarray:
        return np.array(self.rest_position, dtype=np.float64)


# ---------- Aim Math ----------
def clamp_pull(offset: np.ndarray, max_pull: float) -> np.ndarray:
    """Limit a bow-to-pointer offset to max_pull, keeping its direction.

    A zero offset stays zero instead of dividing by zero.
    """
    length = float(np.linalg.norm(offset))
    unit = offset / (length or 1.0)
    return unit * min(length, max_pull)


def launch_velocity(pull_vector: np.ndarray, power: float = POWER) -> np.ndarray:
    """Velocity for releasing a drawn arrow.

    The pull vector points from the bow back to the drawn arrow (away from the
    balloons), so the launch runs along its negation:
        v = -unit(pull) * |pull| * power

    A zero pull gives a zero velocity.
    """
    pull_vector = np.asarray(pull_vector, dtype=np.float64)
    pull = float(np.linalg.norm(pull_vector))
    unit = pull_vector / (pull or 1.0)
    return -unit * pull * power


class AimController:
    """Drag gesture state machine for the nocked arrow.

    Owns the pointer stream between a successful grab and the release (or a
    capture loss). All inputs that don't fit the arrow's current state are
    ignored rather than treated as errors.
    """

    def __init__(self, geometry: AimGeometry, power: float = POWER):
        self.geometry = geometry
        self.power = power

    def begin_drag(self, projectile: Projectile, pointer: np.ndarray) -> bool:
        """Grab the arrow if it is resting and the pointer is within reach."""
        if projectile.state is not ProjectileState.RESTING:
            return False
        pointer = np.asarray(pointer, dtype=np.float64)
        if np.linalg.norm(pointer - projectile.position) >= self.geometry.grab_radius:
            return False

        projectile.state = ProjectileState.DRAGGING
        return True

    def update_drag(self, projectile: Projectile, pointer: np.ndarray) -> bool:
        """Move the drawn arrow to follow the pointer, clamped to max pull."""
        if projectile.state is not ProjectileState.DRAGGING:
            return False

        anchor = self.geometry.anchor_array
        offset = np.asarray(pointer, dtype=np.float64) - anchor
        projectile.position = anchor + clamp_pull(offset, self.geometry.max_pull)

        # Nock faces the archer while drawn
        to_anchor = anchor - projectile.position
        projectile.angle = float(np.arctan2(to_anchor[1], to_anchor[0]))
        return True

    def end_drag(self, projectile: Projectile, pointer: np.ndarray = None) -> Optional[np.ndarray]:
        """Release the string.

        Returns:
            The launch velocity if the arrow was fired, or None if the pull was
            too short (arrow re-nocked) or there was no drag in progress.
        """
        if projectile.state is not ProjectileState.DRAGGING:
            return None
        if pointer is not None:
            self.update_drag(projectile, pointer)

        pull_vector = projectile.position - self.geometry.anchor_array
        if np.linalg.norm(pull_vector) <= self.geometry.release_threshold:
            projectile.reset_to_rest(self.geometry.rest_array)
            return None

        projectile.velocity = launch_velocity(pull_vector, self.power)
        projectile.state = ProjectileState.FLYING
        return projectile.velocity.copy()

    def cancel_drag(self, projectile: Projectile) -> bool:
        """Pointer capture lost mid-drag: put the arrow back, fire nothing."""
        if projectile.state is not ProjectileState.DRAGGING:
            return False
        projectile.reset_to_rest(self.geometry.rest_array)
        return True


# ---------- Smoke Test ----------
if __name__ == "__main__":
    from rich.console import Console

    console = Console()
    console.print("\n[bold cyan]═══ Balloon Engine Aim Smoke Test ═══[/bold cyan]\n")

    console.print("[bold]Test 1:[/bold] Pull (-30, 0) fires forward at 7.5 px/tick")
    vel = launch_velocity(np.array([-30.0, 0.0]))
    console.print(f"  Launch velocity: {vel}")
    assert np.allclose(vel, [7.5, 0.0])
    console.print("  ✅ Release negates the pull\n")

    console.print("[bold]Test 2:[/bold] Full drag gesture")
    geometry = AimGeometry.from_viewport(Viewport(960, 540))
    arrow = Projectile.at_rest(geometry.rest_array)
    aim = AimController(geometry)
    assert aim.begin_drag(arrow, geometry.rest_array)
    aim.update_drag(arrow, geometry.anchor_array + np.array([-500.0, 0.0]))
    console.print(f"  Drawn to {arrow.position} (max pull {geometry.max_pull:.1f})")
    fired = aim.end_drag(arrow)
    console.print(f"  Fired with {fired}")
    assert fired is not None and fired[0] > 0
    console.print("  ✅ Arrow fired toward the balloons\n")

    console.print("[bold green]All aim tests passed![/bold green]\n")
