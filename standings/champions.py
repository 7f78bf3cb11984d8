from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import date
from typing import Dict, Iterable, List, Optional, Tuple


logger = logging.getLogger(__name__)


@dataclass
class ReignRecord:
    player_id: str
    holder_since: date
    reign_started: Optional[date] = None
    current_reign_length: int = 0
    longest_reign_length: int = 0
    total_reigns: int = 0
    is_current_holder: bool = False


class ChampionTracker:
    """
    Tracks who led the cumulative standings after each event.

    Feed leaders oldest event first. holder_since is the first event ever led;
    reign_started is where the current or most recent unbroken run began.
    total_reigns counts every event led, contiguous or not; the reign lengths
    count unbroken runs.
    """

    def __init__(self) -> None:
        self._records: Dict[str, ReignRecord] = {}
        self._current_leader_id: Optional[str] = None
        self._events_seen = 0

    def observe(self, event_id: str, event_date: date, leader_id: str) -> ReignRecord:
        record = self._records.get(leader_id)
        if record is None:
            record = ReignRecord(player_id=leader_id, holder_since=event_date)
            self._records[leader_id] = record

        record.total_reigns += 1
        if self._events_seen == 0:
            record.current_reign_length = 1
            record.reign_started = event_date
        elif leader_id == self._current_leader_id:
            record.current_reign_length += 1
        else:
            for other in self._records.values():
                other.is_current_holder = False
            record.current_reign_length = 1
            record.reign_started = event_date
            logger.debug("Event %s: leadership passes to %s", event_id, leader_id)

        record.longest_reign_length = max(record.longest_reign_length, record.current_reign_length)
        record.is_current_holder = True
        self._current_leader_id = leader_id
        self._events_seen += 1
        return record

    def observe_all(self, leaders: Iterable[Tuple[str, date, str]]) -> List[ReignRecord]:
        for event_id, event_date, leader_id in leaders:
            self.observe(event_id, event_date, leader_id)
        return self.records()

    @property
    def current_leader_id(self) -> Optional[str]:
        return self._current_leader_id

    def records(self) -> List[ReignRecord]:
        return sorted((replace(r) for r in self._records.values()), key=lambda r: r.holder_since)
