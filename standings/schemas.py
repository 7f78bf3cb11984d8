from __future__ import annotations

import datetime as dt
from typing import Literal, Optional

from pydantic import BaseModel, Field


class SeasonCreate(BaseModel):
    name: str = Field(min_length=1, max_length=128)


class EventCreate(BaseModel):
    code: str = Field(min_length=1, max_length=64)
    name: str = Field(default="", max_length=128)
    date: dt.date
    kind: Literal["points", "times"] = "points"


class ResultRowIn(BaseModel):
    # Blank ids and scores are accepted here and skipped during scoring.
    player_id: Optional[str] = None
    player_name: str = Field(default="", max_length=128)
    score: Optional[float] = None
    round_number: int = Field(default=1, ge=1)


class EventResultsUpsert(BaseModel):
    rows: list[ResultRowIn]


class StreakOut(BaseModel):
    kind: Literal["wins", "losses"]
    count: int


class StandingOut(BaseModel):
    rank: int
    player_id: str
    player_name: str
    total_score: float
    events_attended: int
    points_per_event: Optional[int] = None
    streak: Optional[StreakOut] = None
    event_scores: dict[str, float]
    event_ranks: dict[str, int]
    cumulative_ranks: dict[str, int]


class ChampionOut(BaseModel):
    player_id: str
    player_name: str
    holder_since: dt.date
    reign_started: Optional[dt.date] = None
    current_reign_length: int
    longest_reign_length: int
    total_reigns: int
    is_current_holder: bool
