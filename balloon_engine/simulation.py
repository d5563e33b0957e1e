"""
Balloon Engine — Round Simulation

Owns one game of balloon archery: the arrow, the balloon pool, score/ammo and
the deferred-event queue. A driver (renderer, gym env, test) feeds it pointer
input and calls tick() once per frame; every entry point returns the events it
produced.

Time is simulated: tick(dt_ms) advances the clock used for deferred events,
while flight and balloon motion move one unit step per tick.
"""

from typing import List, Optional

import numpy as np

from balloon_engine.aim import AimController, AimGeometry, Viewport
from balloon_engine.collision import (
    Balloon,
    find_hit,
    fit_balloons,
    move_balloons,
    respawn_balloon,
    spawn_pool,
)
from balloon_engine.flight import (
    Projectile,
    ProjectileState,
    advance_projectile,
    is_out_of_bounds,
)
from balloon_engine.round_state import (
    BalloonPopped,
    BalloonRespawned,
    EventQueue,
    ProjectileIssued,
    RespawnDue,
    RoundEnded,
    RoundPhase,
    RoundStarted,
    RoundState,
    ShotFired,
    ShotMissed,
    SimEvent,
)


# Default round config (the classic 5-arrow game on a 960x540 canvas)
DEFAULT_ROUND_CONFIG = {
    "width": 960,
    "height": 540,
    "ammo": 5,
    "pool_size": 5,
    "gravity": 0.15,
    "power": 0.25,
    "grab_radius": 40.0,
    "release_threshold": 6.0,
    "rest_offset": 40.0,
    "max_pull_fraction": 0.25,
    "score_per_hit": 10,
    "respawn_delay_ms": 150.0,
    "frame_ms": 16.0,
}


class BalloonPopSimulation:
    """One round of balloon archery, driven by input events and ticks."""

    def __init__(
        self,
        round_config: dict = None,
        seed: int = None,
        rng: np.random.Generator = None,
    ):
        self.config = {**DEFAULT_ROUND_CONFIG, **(round_config or {})}
        if int(self.config["pool_size"]) < 1:
            raise ValueError(f"pool_size must be at least 1, got {self.config['pool_size']}")
        if int(self.config["ammo"]) < 0:
            raise ValueError(f"ammo must be non-negative, got {self.config['ammo']}")

        self.rng = rng if rng is not None else np.random.default_rng(seed)
        self.viewport = Viewport(float(self.config["width"]), float(self.config["height"]))
        self.geometry = self._make_geometry()
        self.aim = AimController(self.geometry, power=self.config["power"])

        # State
        self.round = RoundState(ammo=int(self.config["ammo"]))
        self.balloons: List[Balloon] = []
        self.projectile: Optional[Projectile] = None
        self.scheduled = EventQueue()
        self.time_ms: float = 0.0
        self.tick_count: int = 0

    def _make_geometry(self) -> AimGeometry:
        return AimGeometry.from_viewport(
            self.viewport,
            rest_offset=self.config["rest_offset"],
            max_pull_fraction=self.config["max_pull_fraction"],
            grab_radius=self.config["grab_radius"],
            release_threshold=self.config["release_threshold"],
        )

    # ---------- Read-only views ----------
    @property
    def score(self) -> int:
        return self.round.score

    @property
    def ammo(self) -> int:
        return self.round.ammo

    @property
    def phase(self) -> RoundPhase:
        return self.round.phase

    @property
    def running(self) -> bool:
        return self.round.running

    @property
    def awaiting_shot(self) -> bool:
        """True while a fresh arrow sits on the string ready to be drawn."""
        return (
            self.running
            and self.projectile is not None
            and self.projectile.state is ProjectileState.RESTING
        )

    # ---------- Round lifecycle ----------
    def start_round(self) -> List[SimEvent]:
        """Reset score and ammo, repopulate the pool, nock the first arrow.

        The first arrow is handed out directly; it does not cost ammo.
        Anything still scheduled from a previous round is dropped.
        """
        self.scheduled.clear()
        self.time_ms = 0.0
        self.tick_count = 0

        self.geometry = self._make_geometry()
        self.aim = AimController(self.geometry, power=self.config["power"])

        self.round.reset(ammo=int(self.config["ammo"]))
        self.balloons = spawn_pool(
            self.rng,
            self.viewport.width,
            self.viewport.height,
            count=int(self.config["pool_size"]),
        )
        self.projectile = Projectile.at_rest(self.geometry.rest_array)

        return [RoundStarted(ammo=self.round.ammo, pool_size=len(self.balloons))]

    def issue_next(self) -> List[SimEvent]:
        """Hand out the next arrow, or end the round if none are left."""
        if not self.running:
            return []

        if not self.round.try_issue():
            self.projectile = None
            self.scheduled.clear()
            return [RoundEnded(final_score=self.round.score)]

        self.projectile = Projectile.at_rest(self.geometry.rest_array)
        return [ProjectileIssued(ammo=self.round.ammo)]

    def exit_round(self) -> List[SimEvent]:
        """Stop an active round early. Pending respawns are discarded."""
        if not self.running:
            return []
        self.round.end()
        self.scheduled.clear()
        return [RoundEnded(final_score=self.round.score, reason="exited")]

    # ---------- Pointer input ----------
    def on_pointer_down(self, pointer) -> bool:
        """Try to grab the resting arrow. Returns True if a drag started."""
        if not self.running or self.projectile is None:
            return False
        return self.aim.begin_drag(self.projectile, pointer)

    def on_pointer_move(self, pointer) -> bool:
        if not self.running or self.projectile is None:
            return False
        return self.aim.update_drag(self.projectile, pointer)

    def on_pointer_up(self, pointer=None) -> List[SimEvent]:
        """Release the drag; fires the arrow if it was pulled far enough."""
        if not self.running or self.projectile is None:
            return []
        velocity = self.aim.end_drag(self.projectile, pointer)
        if velocity is None:
            return []
        self.round.shots_fired += 1
        return [ShotFired(velocity=(float(velocity[0]), float(velocity[1])))]

    def on_pointer_cancel(self) -> bool:
        """Pointer capture lost: the drawn arrow goes back to rest unfired."""
        if self.projectile is None:
            return False
        return self.aim.cancel_drag(self.projectile)

    def resize(self, width: float, height: float) -> None:
        """Adopt new viewport dimensions.

        Bow placement, max pull and the balloon region follow immediately, and
        balloons left outside the new region are pulled back into it.
        A drawn arrow is let down and a resting one is re-nocked at the new
        rest position; an arrow in flight keeps going.
        """
        self.viewport = Viewport(float(width), float(height))
        self.config["width"] = self.viewport.width
        self.config["height"] = self.viewport.height
        self.geometry = self._make_geometry()
        self.aim.geometry = self.geometry
        fit_balloons(self.balloons, self.viewport.width, self.viewport.height)

        if self.projectile is None:
            return
        if self.projectile.state is ProjectileState.DRAGGING:
            self.aim.cancel_drag(self.projectile)
        elif self.projectile.state is ProjectileState.RESTING:
            self.projectile.reset_to_rest(self.geometry.rest_array)

    # ---------- Simulation step ----------
    def tick(self, dt_ms: float = None) -> List[SimEvent]:
        """Advance the round by one frame.

        Order within a tick:
            1. deferred events that have come due
            2. arrow flight and the out-of-bounds check
            3. balloon motion
            4. arrow/balloon hit test

        Args:
            dt_ms: Simulated milliseconds this frame covers. Defaults to the
                configured frame length. Only the deferred-event clock uses it.

        Returns:
            Events produced during this tick, in order. Empty when the round
            isn't running.
        """
        if not self.running:
            return []

        if dt_ms is None:
            dt_ms = self.config["frame_ms"]
        self.time_ms += float(dt_ms)
        self.tick_count += 1

        events: List[SimEvent] = []

        for due in self.scheduled.pop_due(self.time_ms):
            events.extend(self._handle_due(due))
            if not self.running:
                return events

        # Arrow flight
        if self.projectile is not None and self.projectile.is_flying:
            advance_projectile(self.projectile, self.config["gravity"])
            if is_out_of_bounds(self.projectile.position, self.viewport.width, self.viewport.height):
                exit_point = self.projectile.position
                self.projectile = None
                self.round.record_miss()
                events.append(ShotMissed(position=(float(exit_point[0]), float(exit_point[1]))))
                events.extend(self.issue_next())
                if not self.running:
                    return events

        move_balloons(self.balloons, self.viewport.width)

        # Hits
        if self.projectile is not None and self.projectile.is_flying:
            index = find_hit(self.projectile.position, self.balloons)
            if index is not None:
                events.extend(self._pop(index))

        return events

    def _pop(self, index: int) -> List[SimEvent]:
        # Popped flag is set before the respawn is scheduled, so the balloon
        # can't be scored twice while it waits.
        self.balloons[index].popped = True
        self.round.record_hit(int(self.config["score_per_hit"]))
        self.projectile = None
        self.scheduled.schedule(
            self.time_ms + float(self.config["respawn_delay_ms"]),
            RespawnDue(index=index),
        )
        return [BalloonPopped(index=index, score=self.round.score)]

    def _handle_due(self, event: SimEvent) -> List[SimEvent]:
        if isinstance(event, RespawnDue):
            respawn_balloon(
                self.balloons[event.index], self.rng,
                self.viewport.width, self.viewport.height,
            )
            return [BalloonRespawned(index=event.index)] + self.issue_next()
        return []

    # ---------- Output ----------
    def snapshot(self) -> dict:
        """JSON-serializable view of everything a renderer or HUD needs."""
        return {
            "projectile": self.projectile.to_dict() if self.projectile is not None else None,
            "balloons": [b.to_dict() for b in self.balloons],
            "score": self.round.score,
            "ammo": self.round.ammo,
            "phase": self.round.phase.value,
            "anchor": list(self.geometry.anchor),
            "viewport": [self.viewport.width, self.viewport.height],
            "time_ms": self.time_ms,
        }


# ---------- Smoke Test ----------
if __name__ == "__main__":
    from rich.console import Console

    console = Console()
    console.print("\n[bold cyan]═══ Balloon Engine Simulation Smoke Test ═══[/bold cyan]\n")

    sim = BalloonPopSimulation(seed=42)
    for event in sim.start_round():
        console.print(f"  {event.to_dict()}")

    console.print("\n[bold]Test 1:[/bold] Shooting every arrow into the ground ends the round")
    shots = 0
    while sim.running and shots < 20:
        anchor = sim.geometry.anchor_array
        sim.on_pointer_down(sim.geometry.rest_array)
        sim.on_pointer_move(anchor + np.array([-40.0, -80.0]))
        sim.on_pointer_up()
        shots += 1
        for _ in range(1000):
            events = sim.tick()
            for event in events:
                console.print(f"  tick {sim.tick_count}: {event.kind} {event.to_dict()}")
            if sim.awaiting_shot or not sim.running:
                break
    assert sim.phase is RoundPhase.ENDED
    console.print(f"  ✅ Round ended after {shots} shots, score {sim.score}\n")

    console.print("[bold green]All simulation tests passed![/bold green]\n")
