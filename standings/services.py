from __future__ import annotations

import io
import logging
from datetime import date
from pathlib import Path
from typing import Any, Iterable, Optional, Sequence

import pandas as pd
from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from standings.aggregator import SeasonSnapshot, compute_standings
from standings.config import get_export_dir
from standings.errors import DuplicateEventError, InvalidInput, NotFoundError
from standings.events import EVENT_KINDS, EventInfo, ResultRow
from standings.models import Event, EventResult, Player, Season
from standings.report import write_workbook
from standings.rules import is_present, points_per_event


logger = logging.getLogger(__name__)

CSV_REQUIRED_COLUMNS = ("player_id", "player_name", "score")
CSV_ROUND_COLUMN = "round"


def get_or_404(db: Session, model: Any, obj_id: int, label: str):
    obj = db.get(model, obj_id)
    if not obj:
        raise NotFoundError(label)
    return obj


def get_season_or_404(db: Session, season_id: int) -> Season:
    return get_or_404(db, Season, season_id, "Season")


def get_event_or_404(db: Session, event_id: int) -> Event:
    return get_or_404(db, Event, event_id, "Event")


def create_season(db: Session, name: str) -> Season:
    name = name.strip()
    existing = db.scalar(select(Season).where(Season.name == name))
    if existing:
        raise InvalidInput("Season name already exists")
    season = Season(name=name)
    db.add(season)
    db.flush()
    return season


def create_event(
    db: Session,
    season_id: int,
    code: str,
    event_date: date,
    kind: str = "points",
    name: str = "",
) -> Event:
    season = get_season_or_404(db, season_id)
    if kind not in EVENT_KINDS:
        raise InvalidInput(f"Unknown event kind: {kind}")
    code = code.strip()
    existing = db.scalar(select(Event).where(Event.season_id == season.id, Event.code == code))
    if existing:
        raise DuplicateEventError(code)
    event = Event(season_id=season.id, code=code, name=name.strip(), event_date=event_date, kind=kind)
    db.add(event)
    db.flush()
    return event


def list_season_events(db: Session, season_id: int) -> list[Event]:
    get_season_or_404(db, season_id)
    return list(
        db.scalars(
            select(Event).where(Event.season_id == season_id).order_by(Event.event_date.asc(), Event.id.asc())
        ).all()
    )


def get_or_create_player(db: Session, code: str, name: str = "") -> Player:
    player = db.scalar(select(Player).where(Player.code == code))
    if player is None:
        player = Player(code=code, name=name)
        db.add(player)
        db.flush()
    elif name:
        player.name = name
    return player


def record_results(db: Session, event_id: int, rows: Iterable[ResultRow]) -> int:
    """
    Replace an event's stored results with rows, keeping their order.
    Rows without a player id cannot be attributed and are not stored; rows with
    a blank score are stored and later skipped when the event is scored.
    """
    event = get_event_or_404(db, event_id)
    db.execute(delete(EventResult).where(EventResult.event_id == event.id))

    stored = 0
    for position, row in enumerate(rows, start=1):
        if not is_present(row.player_id):
            logger.debug("Event %s: dropping row %d without player id", event.code, position)
            continue
        name = (row.player_name or "").strip()
        player = get_or_create_player(db, str(row.player_id).strip(), name)
        score = float(row.score) if is_present(row.score) else None
        db.add(
            EventResult(
                event_id=event.id,
                player_id=player.id,
                round_number=row.round_number,
                position=position,
                player_name=name,
                score=score,
            )
        )
        stored += 1
    db.flush()
    db.expire(event, ["results"])
    logger.info("Event %s: stored %d result rows", event.code, stored)
    return stored


def parse_results_csv(text: str) -> list[ResultRow]:
    """
    Parse the upload layout: a header row with player_id, player_name, score
    and an optional round column. Cells are read as text; blank or
    non-numeric scores become None.
    """
    try:
        frame = pd.read_csv(io.StringIO(text), dtype=str, keep_default_na=False, skipinitialspace=True)
    except pd.errors.EmptyDataError:
        raise InvalidInput("CSV is empty") from None
    frame.columns = [str(c).strip().lower() for c in frame.columns]
    missing = [c for c in CSV_REQUIRED_COLUMNS if c not in frame.columns]
    if missing:
        raise InvalidInput(f"CSV is missing columns: {', '.join(missing)}")

    scores = pd.to_numeric(frame["score"].str.strip(), errors="coerce")
    if CSV_ROUND_COLUMN in frame.columns:
        rounds = pd.to_numeric(frame[CSV_ROUND_COLUMN].str.strip(), errors="coerce").fillna(1).astype(int)
    else:
        rounds = pd.Series([1] * len(frame), index=frame.index)

    rows: list[ResultRow] = []
    for idx, record in frame.iterrows():
        score = scores[idx]
        rows.append(
            ResultRow(
                player_id=record["player_id"].strip() or None,
                player_name=record["player_name"].strip(),
                score=None if pd.isna(score) else float(score),
                round_number=int(rounds[idx]),
            )
        )
    return rows


def decode_upload(raw: bytes) -> str:
    try:
        return raw.decode("utf-8-sig")
    except UnicodeDecodeError:
        raise InvalidInput("CSV upload is not valid UTF-8") from None


def import_results_csv(db: Session, event_id: int, text: str) -> int:
    return record_results(db, event_id, parse_results_csv(text))


class SqlEventResultSource:
    """Serves a season's stored events and result rows to the aggregator."""

    def __init__(self, db: Session, season_id: int) -> None:
        self.db = db
        self.season_id = season_id
        self._events: dict[str, Event] = {}

    def list_events(self) -> Sequence[EventInfo]:
        rows = self.db.scalars(
            select(Event).where(Event.season_id == self.season_id).order_by(Event.id.asc())
        ).all()
        self._events = {e.code: e for e in rows}
        return [EventInfo(id=e.code, date=e.event_date, kind=e.kind, name=e.name) for e in rows]

    def get_event_results(self, event_id: str) -> Sequence[ResultRow]:
        event = self._events.get(event_id)
        if event is None:
            raise NotFoundError("Event")
        results = self.db.scalars(
            select(EventResult)
            .where(EventResult.event_id == event.id)
            .order_by(EventResult.position.asc(), EventResult.id.asc())
        ).all()
        players = {
            p.id: p
            for p in self.db.scalars(
                select(Player).where(Player.id.in_([r.player_id for r in results]))
            ).all()
        }
        return [
            ResultRow(
                player_id=players[r.player_id].code,
                player_name=r.player_name,
                score=r.score,
                round_number=r.round_number,
            )
            for r in results
        ]


def compute_season_standings(db: Session, season_id: int) -> SeasonSnapshot:
    get_season_or_404(db, season_id)
    return compute_standings(SqlEventResultSource(db, season_id))


def standings_rows(snapshot: SeasonSnapshot) -> list[dict[str, Any]]:
    latest = snapshot.latest_event
    rows: list[dict[str, Any]] = []
    for rank, ledger in enumerate(snapshot.standings(), start=1):
        streak = ledger.streak
        rows.append(
            {
                "rank": rank,
                "player_id": ledger.player_id,
                "player_name": ledger.name,
                "total_score": ledger.total_score,
                "events_attended": ledger.events_attended,
                "points_per_event": points_per_event(
                    ledger.cumulative_scores.get(latest.id) if latest else None,
                    ledger.events_attended,
                ),
                "streak": {"kind": streak.kind, "count": streak.count} if streak else None,
                "event_scores": dict(ledger.event_scores),
                "event_ranks": dict(ledger.event_ranks),
                "cumulative_ranks": dict(ledger.cumulative_ranks),
            }
        )
    return rows


def champion_rows(snapshot: SeasonSnapshot) -> list[dict[str, Any]]:
    rows: list[dict[str, Any]] = []
    for record in snapshot.champions:
        ledger = snapshot.ledger(record.player_id)
        rows.append(
            {
                "player_id": record.player_id,
                "player_name": ledger.name if ledger else "",
                "holder_since": record.holder_since,
                "reign_started": record.reign_started,
                "current_reign_length": record.current_reign_length,
                "longest_reign_length": record.longest_reign_length,
                "total_reigns": record.total_reigns,
                "is_current_holder": record.is_current_holder,
            }
        )
    return rows


def export_season_workbook(db: Session, season_id: int, path: Optional[Path] = None) -> Path:
    season = get_season_or_404(db, season_id)
    snapshot = compute_season_standings(db, season_id)
    if path is None:
        path = get_export_dir() / f"{season.name}.standings.xlsx"
    write_workbook(snapshot, path)
    logger.info("Season %s: workbook written to %s", season.name, path)
    return path
