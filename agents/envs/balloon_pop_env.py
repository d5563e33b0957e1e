"""
Balloon Archery — Gymnasium Environment

One episode is one round; one step is one arrow. The agent picks a launch
direction and draw strength, the env performs the drag through the
simulation's pointer API and then runs ticks until the next arrow is nocked
(or the round ends).

Observation space (2 + 5 * pool_size floats, 27 for the default pool):
    bow anchor (2) + per balloon [x, y, vx, radius, popped] (5 each)
    Positions are divided by the viewport size, radius by its smaller side.

Action space (2 floats):
    launch_angle [-1,1] → [-90°, 90°] (0 = straight at the balloons, + = down)
    draw_strength [-1,1] → [release threshold, max pull]
"""

import gymnasium as gym
import numpy as np
from gymnasium import spaces

from balloon_engine.flight import ProjectileState
from balloon_engine.round_state import BalloonPopped, ShotMissed
from balloon_engine.simulation import BalloonPopSimulation, DEFAULT_ROUND_CONFIG


BALLOON_FEATURES = 5
MAX_TICKS_PER_SHOT = 2000


class BalloonPopEnv(gym.Env):
    """Balloon archery round as a gymnasium environment.

    Reward is the score gained by each arrow (+10 per pop by default).
    """

    metadata = {"render_modes": ["human"]}

    def __init__(
        self,
        round_config: dict = None,
        render_mode: str = None,
        max_ticks_per_shot: int = MAX_TICKS_PER_SHOT,
    ):
        super().__init__()

        self.config = {**DEFAULT_ROUND_CONFIG, **(round_config or {})}
        self.render_mode = render_mode
        self.max_ticks_per_shot = max_ticks_per_shot
        self.pool_size = int(self.config["pool_size"])

        obs_dim = 2 + BALLOON_FEATURES * self.pool_size
        self.observation_space = spaces.Box(
            low=-np.inf, high=np.inf, shape=(obs_dim,), dtype=np.float32
        )
        self.action_space = spaces.Box(
            low=-1.0, high=1.0, shape=(2,), dtype=np.float32
        )

        self.sim: BalloonPopSimulation = None
        self.last_flight_path = None

        # Stats tracking
        self.shot_count: int = 0
        self.pop_count: int = 0

    def _get_observation(self) -> np.ndarray:
        """Build the observation vector from the current snapshot."""
        width = self.sim.viewport.width
        height = self.sim.viewport.height
        short_side = min(width, height)
        anchor = self.sim.geometry.anchor

        parts = [[anchor[0] / width, anchor[1] / height]]
        for balloon in self.sim.balloons:
            parts.append([
                balloon.position[0] / width,
                balloon.position[1] / height,
                balloon.vx,
                balloon.radius / short_side,
                1.0 if balloon.popped else 0.0,
            ])

        obs = np.concatenate(parts).astype(np.float32)
        obs = np.nan_to_num(obs, nan=0.0, posinf=10.0, neginf=-10.0)
        return obs

    def _get_info(self) -> dict:
        return {
            "score": self.sim.score,
            "ammo": self.sim.ammo,
            "phase": self.sim.phase.value,
        }

    def action_to_pointer(self, action: np.ndarray) -> np.ndarray:
        """Where to drag the arrow to for a given action.

        The arrow is pulled back from the bow opposite to the launch direction,
        and always a little past the release threshold so every step fires.
        """
        action = np.clip(action, -1.0, 1.0)
        angle = float(action[0]) * (np.pi / 2)
        strength = (float(action[1]) + 1.0) / 2.0

        geometry = self.sim.geometry
        min_pull = geometry.release_threshold + 1.0
        pull = min_pull + strength * max(geometry.max_pull - min_pull, 0.0)

        launch_dir = np.array([np.cos(angle), np.sin(angle)])
        return geometry.anchor_array - launch_dir * pull

    def reset(self, seed=None, options=None):
        """Start a fresh round."""
        super().reset(seed=seed)

        self.sim = BalloonPopSimulation(round_config=self.config, rng=self.np_random)
        self.sim.start_round()
        self.last_flight_path = None

        return self._get_observation(), self._get_info()

    def step(self, action: np.ndarray):
        """Fire one arrow and play the round forward until the next one is ready."""
        if not self.sim.running:
            return self._get_observation(), 0.0, True, False, self._get_info()

        score_before = self.sim.score

        sim = self.sim
        events = []
        if sim.awaiting_shot:
            sim.on_pointer_down(sim.projectile.position.copy())
            sim.on_pointer_move(self.action_to_pointer(action))
            events.extend(sim.on_pointer_up())

        path = []
        ticks = 0
        while sim.running and not sim.awaiting_shot and ticks < self.max_ticks_per_shot:
            if sim.projectile is not None and sim.projectile.state is ProjectileState.FLYING:
                path.append(sim.projectile.position.copy())
            events.extend(sim.tick())
            ticks += 1
        self.last_flight_path = path

        popped = [e.index for e in events if isinstance(e, BalloonPopped)]
        missed = any(isinstance(e, ShotMissed) for e in events)

        self.shot_count += 1
        if popped:
            self.pop_count += 1

        reward = float(sim.score - score_before)
        terminated = not sim.running
        truncated = not terminated and ticks >= self.max_ticks_per_shot

        obs = self._get_observation()
        info = {
            **self._get_info(),
            "hit": bool(popped),
            "popped_index": popped[0] if popped else None,
            "missed": missed,
            "ticks": ticks,
            "events": [e.kind for e in events],
        }

        return obs, reward, terminated, truncated, info

    @property
    def pop_rate(self) -> float:
        """Fraction of arrows that popped a balloon."""
        if self.shot_count == 0:
            return 0.0
        return self.pop_count / self.shot_count


# ---------- Smoke Test ----------
if __name__ == "__main__":
    from rich.console import Console

    console = Console()
    console.print("\n[bold cyan]═══ Balloon Pop Environment Smoke Test ═══[/bold cyan]\n")

    env = BalloonPopEnv()
    console.print(f"  Observation space: {env.observation_space}")
    console.print(f"  Action space: {env.action_space}")
    assert env.observation_space.shape == (27,)

    obs, info = env.reset(seed=42)
    console.print(f"  Reset info: {info}")

    total = 0.0
    steps = 0
    terminated = truncated = False
    while not (terminated or truncated):
        obs, reward, terminated, truncated, info = env.step(env.action_space.sample())
        total += reward
        steps += 1
    console.print(f"  Round over after {steps} arrows, score {info['score']}")
    assert steps == 6, "Five spare arrows plus the first one"
    console.print("  ✅ Round plays to completion")

    console.print("\n[bold green]All environment tests passed![/bold green]\n")
