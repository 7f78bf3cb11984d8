from __future__ import annotations

import logging
import math
from collections import defaultdict
from dataclasses import dataclass
from datetime import date
from typing import Dict, List, Optional, Protocol, Sequence, Tuple

from standings.rules import Finisher, is_present, require_finishers, score_round


logger = logging.getLogger(__name__)

EVENT_KIND_POINTS = "points"
EVENT_KIND_TIMES = "times"
EVENT_KINDS = (EVENT_KIND_POINTS, EVENT_KIND_TIMES)


@dataclass(frozen=True)
class EventInfo:
    id: str
    date: date
    kind: str = EVENT_KIND_POINTS
    name: str = ""


@dataclass(frozen=True)
class ResultRow:
    """
    One raw result line as supplied by a source.
    score is positional points for points events and a finish time for time events.
    """

    player_id: Optional[str]
    player_name: str
    score: object
    round_number: int = 1


@dataclass(frozen=True)
class EventEntry:
    player_id: str
    player_name: str
    score: float


@dataclass(frozen=True)
class ScoredEvent:
    id: str
    date: date
    entries: Tuple[EventEntry, ...]
    name: str = ""


class EventResultSource(Protocol):
    def list_events(self) -> Sequence[EventInfo]:
        ...

    def get_event_results(self, event_id: str) -> Sequence[ResultRow]:
        ...


def _as_number(value: object) -> Optional[float]:
    if not is_present(value):
        return None
    try:
        number = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return None
    # "nan" and "inf" parse as floats but are not scores.
    return number if math.isfinite(number) else None


def _clean_rows(event_id: str, rows: Sequence[ResultRow]) -> List[Tuple[str, str, float, int]]:
    cleaned = []
    for row in rows:
        number = _as_number(row.score)
        if not is_present(row.player_id) or number is None:
            logger.debug("Event %s: skipping malformed row %r", event_id, row)
            continue
        cleaned.append((str(row.player_id).strip(), (row.player_name or "").strip(), number, row.round_number))
    return cleaned


def _merge(entries: List[Tuple[str, str, float]]) -> Tuple[EventEntry, ...]:
    """Sum per player, keeping first-appearance order and the last non-blank name."""
    totals: Dict[str, float] = {}
    names: Dict[str, str] = {}
    for player_id, name, score in entries:
        totals[player_id] = totals.get(player_id, 0) + score
        if name or player_id not in names:
            names[player_id] = name
    return tuple(
        EventEntry(player_id=player_id, player_name=names[player_id], score=total)
        for player_id, total in totals.items()
    )


def score_event(info: EventInfo, rows: Sequence[ResultRow]) -> ScoredEvent:
    """
    Turn a source's raw rows for one event into per-player event scores.

    Points events sum each player's rows. Time events score every round
    positionally and sum the round scores. Rows with a blank id or a blank,
    non-numeric or non-finite score are dropped before anything is counted.
    """
    cleaned = _clean_rows(info.id, rows)

    if info.kind == EVENT_KIND_TIMES:
        order: Dict[str, int] = {}
        rounds: Dict[int, List[Finisher]] = defaultdict(list)
        for player_id, name, value, round_number in cleaned:
            order.setdefault(player_id, len(order))
            rounds[round_number].append(Finisher(player_id=player_id, player_name=name, time=value))

        scored: List[Tuple[str, str, float]] = []
        for round_number in sorted(rounds):
            for result in score_round(require_finishers(rounds[round_number])):
                scored.append((result.player_id, result.player_name, float(result.score)))
        # Attendance order is the order players first appear in the input.
        scored.sort(key=lambda item: order[item[0]])
        entries = _merge(scored)
    else:
        entries = _merge([(player_id, name, value) for player_id, name, value, _ in cleaned])

    return ScoredEvent(id=info.id, date=info.date, entries=entries, name=info.name)


def load_events(source: EventResultSource) -> List[ScoredEvent]:
    events = []
    for info in source.list_events():
        events.append(score_event(info, source.get_event_results(info.id)))
    return events
