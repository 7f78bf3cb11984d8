from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, Literal, Mapping, Optional

from standings.errors import InvalidInput
from standings.rules import is_win


StreakKind = Literal["wins", "losses"]


@dataclass(frozen=True)
class Streak:
    kind: StreakKind
    count: int

    def extend(self, kind: StreakKind) -> "Streak":
        if kind != self.kind:
            return Streak(kind=kind, count=1)
        return Streak(kind=kind, count=self.count + 1)


@dataclass(frozen=True)
class LedgerSnapshot:
    """Read-only view of a PlayerLedger handed to reporting."""

    player_id: str
    name: str
    events_attended: int
    total_score: float
    streak: Optional[Streak]
    event_scores: Mapping[str, float]
    cumulative_scores: Mapping[str, float]
    event_ranks: Mapping[str, int]
    cumulative_ranks: Mapping[str, int]


@dataclass
class PlayerLedger:
    """
    Running per-player record for one aggregation pass.

    Per-event mappings are keyed by event id. A missing key means the player
    did not attend (event_scores, event_ranks) or had not yet appeared in the
    season (cumulative_scores, cumulative_ranks); it is never a zero.
    """

    player_id: str
    name: str = ""
    events_attended: int = 0
    total_score: float = 0
    streak: Optional[Streak] = None
    event_scores: Dict[str, float] = field(default_factory=dict)
    cumulative_scores: Dict[str, float] = field(default_factory=dict)
    event_ranks: Dict[str, int] = field(default_factory=dict)
    cumulative_ranks: Dict[str, int] = field(default_factory=dict)

    def rename(self, name: Optional[str]) -> None:
        if name is not None and name.strip():
            self.name = name.strip()

    def add_score(self, event_id: str, score: float) -> None:
        if event_id in self.event_scores:
            raise InvalidInput(f"Player {self.player_id} already scored in event {event_id}")
        self.total_score += score
        self.events_attended += 1
        self.event_scores[event_id] = score
        self.cumulative_scores[event_id] = self.total_score

    def add_cumulative_score_carry(self, event_id: str) -> None:
        self.cumulative_scores[event_id] = self.total_score

    def add_event_rank(self, event_id: str, rank: int, total_participants: int) -> None:
        self.event_ranks[event_id] = rank
        kind: StreakKind = "wins" if is_win(rank, total_participants) else "losses"
        if self.streak is None:
            self.streak = Streak(kind=kind, count=1)
        else:
            self.streak = self.streak.extend(kind)

    def add_cumulative_rank(self, event_id: str, rank: int) -> None:
        self.cumulative_ranks[event_id] = rank

    def event_score(self, event_id: str) -> Optional[float]:
        return self.event_scores.get(event_id)

    def cumulative_score(self, event_id: str) -> Optional[float]:
        return self.cumulative_scores.get(event_id)

    def event_rank(self, event_id: str) -> Optional[int]:
        return self.event_ranks.get(event_id)

    def cumulative_rank(self, event_id: str) -> Optional[int]:
        return self.cumulative_ranks.get(event_id)

    def snapshot(self) -> LedgerSnapshot:
        return LedgerSnapshot(
            player_id=self.player_id,
            name=self.name,
            events_attended=self.events_attended,
            total_score=self.total_score,
            streak=self.streak,
            event_scores=MappingProxyType(dict(self.event_scores)),
            cumulative_scores=MappingProxyType(dict(self.cumulative_scores)),
            event_ranks=MappingProxyType(dict(self.event_ranks)),
            cumulative_ranks=MappingProxyType(dict(self.cumulative_ranks)),
        )
