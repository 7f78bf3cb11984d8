from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from standings.champions import ChampionTracker, ReignRecord
from standings.errors import DuplicateEventError
from standings.events import EventResultSource, ScoredEvent, load_events
from standings.ledger import LedgerSnapshot, PlayerLedger
from standings.rules import rank_descending


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EventSummary:
    id: str
    date: date
    name: str
    attendees: int
    winner_id: Optional[str]
    leader_id: Optional[str]


@dataclass(frozen=True)
class SeasonSnapshot:
    """Final, read-only state of one aggregation pass."""

    events: Tuple[EventSummary, ...]
    ledgers: Tuple[LedgerSnapshot, ...]
    champions: Tuple[ReignRecord, ...]

    def ledger(self, player_id: str) -> Optional[LedgerSnapshot]:
        for item in self.ledgers:
            if item.player_id == player_id:
                return item
        return None

    @property
    def latest_event(self) -> Optional[EventSummary]:
        return self.events[-1] if self.events else None

    def standings(self) -> List[LedgerSnapshot]:
        """Ledgers ordered by cumulative rank after the latest event."""
        latest = self.latest_event
        if latest is None:
            return []
        ranked = [l for l in self.ledgers if latest.id in l.cumulative_ranks]
        return sorted(ranked, key=lambda l: l.cumulative_ranks[latest.id])


def ensure_unique_event_ids(events: Sequence[ScoredEvent]) -> None:
    seen: set[str] = set()
    for event in events:
        if event.id in seen:
            raise DuplicateEventError(event.id)
        seen.add(event.id)


def sort_events(events: Iterable[ScoredEvent]) -> List[ScoredEvent]:
    # Stable: same-day events keep the order the source listed them.
    return sorted(events, key=lambda e: e.date)


class EventAggregator:
    """
    Folds chronologically ordered events into per-player ledgers.

    Each call to aggregate() works on a fresh player table, so a pass that
    raises leaves nothing behind and repeating a pass gives equal snapshots.
    """

    def __init__(self) -> None:
        self._players: Dict[str, PlayerLedger] = {}
        # Cumulative ordering after the last processed event; ties keep it.
        self._standing_order: List[str] = []

    def _reset(self) -> None:
        self._players = {}
        self._standing_order = []

    def _ledger_for(self, player_id: str) -> PlayerLedger:
        ledger = self._players.get(player_id)
        if ledger is None:
            ledger = PlayerLedger(player_id=player_id)
            self._players[player_id] = ledger
        return ledger

    def apply_event(self, event: ScoredEvent) -> EventSummary:
        previously_active = {pid for pid, l in self._players.items() if l.events_attended > 0}

        attendees: List[PlayerLedger] = []
        for entry in event.entries:
            ledger = self._ledger_for(entry.player_id)
            ledger.rename(entry.player_name)
            ledger.add_score(event.id, entry.score)
            attendees.append(ledger)

        attended_ids = {l.player_id for l in attendees}
        carried = 0
        for player_id, ledger in self._players.items():
            if player_id in previously_active and player_id not in attended_ids:
                ledger.add_cumulative_score_carry(event.id)
                carried += 1

        event_ranking = rank_descending(attendees, lambda l: l.event_scores[event.id])
        for rank, ledger in event_ranking:
            ledger.add_event_rank(event.id, rank, len(attendees))

        newcomers = [l.player_id for l in attendees if l.player_id not in self._standing_order]
        candidates = [
            self._players[pid]
            for pid in self._standing_order + newcomers
            if event.id in self._players[pid].cumulative_scores
        ]
        cumulative_ranking = rank_descending(candidates, lambda l: l.cumulative_scores[event.id])
        for rank, ledger in cumulative_ranking:
            ledger.add_cumulative_rank(event.id, rank)
        self._standing_order = [l.player_id for _, l in cumulative_ranking]

        summary = EventSummary(
            id=event.id,
            date=event.date,
            name=event.name,
            attendees=len(attendees),
            winner_id=event_ranking[0][1].player_id if event_ranking else None,
            leader_id=self._standing_order[0] if self._standing_order else None,
        )
        logger.debug(
            "Event %s (%s): %d attendees, %d carried, leader %s",
            event.id,
            event.date,
            len(attendees),
            carried,
            summary.leader_id,
        )
        return summary

    def aggregate(self, events: Iterable[ScoredEvent]) -> SeasonSnapshot:
        ordered = sort_events(events)
        ensure_unique_event_ids(ordered)

        self._reset()
        try:
            summaries = [self.apply_event(event) for event in ordered]
        except Exception:
            self._reset()
            raise

        tracker = ChampionTracker()
        champions = tracker.observe_all(
            (s.id, s.date, s.leader_id) for s in summaries if s.leader_id is not None
        )

        snapshot = SeasonSnapshot(
            events=tuple(summaries),
            ledgers=tuple(l.snapshot() for l in self._players.values()),
            champions=tuple(champions),
        )
        logger.info(
            "Aggregated %d events for %d players; current leader %s",
            len(summaries),
            len(snapshot.ledgers),
            tracker.current_leader_id,
        )
        return snapshot


def compute_standings(source: EventResultSource) -> SeasonSnapshot:
    return EventAggregator().aggregate(load_events(source))
