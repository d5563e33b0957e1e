"""
Balloon Engine — Round Bookkeeping

Score, ammo and round phase, the events the simulation reports to its
driver, and the clock-ordered queue for deferred work (balloon respawns).
"""

import heapq
import itertools
from dataclasses import asdict, dataclass
from enum import Enum
from typing import List, Tuple

# ---------- Constants ----------
STARTING_AMMO = 5
SCORE_PER_HIT = 10


class RoundPhase(str, Enum):
    NOT_STARTED = "not_started"
    ACTIVE = "active"
    ENDED = "ended"


# ---------- Events ----------
@dataclass(frozen=True)
class SimEvent:
    """Base class for everything the simulation reports."""

    @property
    def kind(self) -> str:
        return type(self).__name__

    def to_dict(self) -> dict:
        return {"kind": self.kind, **asdict(self)}


@dataclass(frozen=True)
class RoundStarted(SimEvent):
    ammo: int
    pool_size: int


@dataclass(frozen=True)
class ProjectileIssued(SimEvent):
    ammo: int                       # remaining after this issuance


@dataclass(frozen=True)
class ShotFired(SimEvent):
    velocity: Tuple[float, float]


@dataclass(frozen=True)
class ShotMissed(SimEvent):
    position: Tuple[float, float]   # where the arrow left the viewport


@dataclass(frozen=True)
class BalloonPopped(SimEvent):
    index: int
    score: int                      # score after the pop


@dataclass(frozen=True)
class BalloonRespawned(SimEvent):
    index: int


@dataclass(frozen=True)
class RoundEnded(SimEvent):
    final_score: int
    reason: str = "out_of_ammo"     # or "exited"


@dataclass(frozen=True)
class RespawnDue(SimEvent):
    """Internal: respawn balloon `index` and issue the next arrow."""
    index: int


# ---------- Round State ----------
@dataclass
class RoundState:
    """Score and ammo for one round.

    Ammo counts the arrows still to be issued after the one in hand.
    Issuing and decrementing happen together in try_issue(); a round ends when
    an issue is attempted with nothing left.
    """
    score: int = 0
    ammo: int = STARTING_AMMO
    phase: RoundPhase = RoundPhase.NOT_STARTED
    shots_fired: int = 0
    hits: int = 0
    misses: int = 0

    @property
    def running(self) -> bool:
        return self.phase is RoundPhase.ACTIVE

    def reset(self, ammo: int = STARTING_AMMO) -> None:
        if ammo < 0:
            raise ValueError(f"Starting ammo must be non-negative, got {ammo}")
        self.score = 0
        self.ammo = ammo
        self.phase = RoundPhase.ACTIVE
        self.shots_fired = 0
        self.hits = 0
        self.misses = 0

    def try_issue(self) -> bool:
        """Spend one arrow. Ends the round (and returns False) when empty."""
        if self.ammo <= 0:
            self.phase = RoundPhase.ENDED
            return False
        self.ammo -= 1
        return True

    def record_hit(self, points: int = SCORE_PER_HIT) -> None:
        self.hits += 1
        self.score += points

    def record_miss(self) -> None:
        self.misses += 1

    def end(self) -> None:
        self.phase = RoundPhase.ENDED

    @property
    def accuracy(self) -> float:
        """Hit fraction over resolved shots."""
        resolved = self.hits + self.misses
        if resolved == 0:
            return 0.0
        return self.hits / resolved


# ---------- Scheduled Events ----------
class EventQueue:
    """Deferred events keyed by simulation time (ms).

    Events due at the same time come out in the order they were scheduled.
    """

    def __init__(self):
        self._heap: List[tuple] = []
        self._counter = itertools.count()

    def schedule(self, due_ms: float, event: SimEvent) -> None:
        heapq.heappush(self._heap, (due_ms, next(self._counter), event))

    def pop_due(self, now_ms: float) -> List[SimEvent]:
        """Remove and return every event due at or before now_ms."""
        due = []
        while self._heap and self._heap[0][0] <= now_ms:
            due.append(heapq.heappop(self._heap)[2])
        return due

    def clear(self) -> None:
        self._heap.clear()

    def __len__(self) -> int:
        return len(self._heap)
