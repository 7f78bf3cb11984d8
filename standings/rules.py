from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, Tuple, TypeVar

from standings.errors import InvalidInput


T = TypeVar("T")


@dataclass(frozen=True)
class Finisher:
    player_id: Optional[str]
    player_name: str
    time: Optional[float]


@dataclass(frozen=True)
class RoundScore:
    player_id: str
    player_name: str
    time: float
    position: int
    score: int


def is_present(value: object) -> bool:
    """
    True when a raw id/score/time cell holds something.
    A score of 0 is present; only None and blank strings are missing.
    """
    if value is None:
        return False
    if isinstance(value, str):
        return value.strip() != ""
    if isinstance(value, float) and math.isnan(value):
        return False
    return True


def valid_finishers(finishers: Sequence[Finisher]) -> List[Finisher]:
    return [f for f in finishers if is_present(f.player_id) and is_present(f.time)]


def require_finishers(finishers: Sequence[Finisher]) -> List[Finisher]:
    valid = valid_finishers(finishers)
    if not valid:
        raise InvalidInput("Cannot score a round without finishers")
    return valid


def score_round(finishers: Sequence[Finisher]) -> List[RoundScore]:
    """
    Positional scoring for a single round.
    Entries without an id or a time are dropped and do not count toward n.
    Fastest of n finishers gets n points, slowest gets 1; equal times keep input order.
    Returned in finishing order.
    """
    valid = valid_finishers(finishers)
    ordered = sorted(valid, key=lambda f: float(f.time))
    n = len(ordered)
    return [
        RoundScore(
            player_id=str(f.player_id).strip(),
            player_name=f.player_name,
            time=float(f.time),
            position=position,
            score=n - position + 1,
        )
        for position, f in enumerate(ordered, start=1)
    ]


def is_win(rank: int, total_participants: int) -> bool:
    # Real division: rank 3 of 5 is a loss (3 <= 2.5 is false).
    return rank <= total_participants / 2


def rank_descending(
    items: Sequence[T],
    value: Callable[[T], float],
) -> List[Tuple[int, T]]:
    """
    Sequential 1..k ranking by value, highest first, no shared ranks.
    Ties keep the input order (sorted() is stable).
    """
    ordered = sorted(items, key=lambda item: -value(item))
    return list(enumerate(ordered, start=1))


def points_per_event(cumulative_score: Optional[float], events_attended: int) -> Optional[int]:
    if cumulative_score is None or events_attended <= 0:
        return None
    return math.floor(cumulative_score / events_attended)

