from __future__ import annotations

import logging

from fastapi import Depends, FastAPI, File, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse
from sqlalchemy import select
from sqlalchemy.orm import Session

from standings.config import setup_logging
from standings.database import Base, engine, get_db
from standings.errors import DuplicateEventError, InvalidInput, NotFoundError
from standings.events import ResultRow
from standings.models import Season
from standings.schemas import ChampionOut, EventCreate, EventResultsUpsert, SeasonCreate, StandingOut
from standings.services import (
    champion_rows,
    compute_season_standings,
    create_event,
    create_season,
    decode_upload,
    export_season_workbook,
    get_event_or_404,
    get_season_or_404,
    import_results_csv,
    list_season_events,
    record_results,
    standings_rows,
)


logger = logging.getLogger(__name__)

app = FastAPI(
    title="Season Standings",
    version="1.0.0",
    description=(
        "Multi-event season standings: per-event and cumulative ranks, "
        "win/loss streaks and championship reigns."
    ),
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.on_event("startup")
def on_startup() -> None:
    setup_logging()
    Base.metadata.create_all(bind=engine)


@app.exception_handler(NotFoundError)
def not_found_handler(request: Request, exc: NotFoundError) -> JSONResponse:
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(InvalidInput)
@app.exception_handler(DuplicateEventError)
def bad_request_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.warning("Rejected request to %s: %s", request.url.path, exc)
    return JSONResponse(status_code=400, content={"detail": str(exc)})


def _event_summary(event) -> dict:
    return {
        "id": event.id,
        "season_id": event.season_id,
        "code": event.code,
        "name": event.name,
        "date": event.event_date,
        "kind": event.kind,
    }


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@app.post("/seasons")
def post_season(payload: SeasonCreate, db: Session = Depends(get_db)):
    season = create_season(db, payload.name)
    db.commit()
    return {"id": season.id, "name": season.name}


@app.get("/seasons")
def list_seasons(db: Session = Depends(get_db)):
    rows = db.scalars(select(Season).order_by(Season.id.asc())).all()
    return [{"id": s.id, "name": s.name, "created_at": s.created_at} for s in rows]


@app.post("/seasons/{season_id}/events")
def post_event(season_id: int, payload: EventCreate, db: Session = Depends(get_db)):
    event = create_event(
        db,
        season_id=season_id,
        code=payload.code,
        event_date=payload.date,
        kind=payload.kind,
        name=payload.name,
    )
    db.commit()
    return _event_summary(event)


@app.get("/seasons/{season_id}/events")
def get_events(season_id: int, db: Session = Depends(get_db)):
    return [_event_summary(e) for e in list_season_events(db, season_id)]


@app.put("/events/{event_id}/results")
def put_event_results(event_id: int, payload: EventResultsUpsert, db: Session = Depends(get_db)):
    rows = [
        ResultRow(
            player_id=row.player_id,
            player_name=row.player_name,
            score=row.score,
            round_number=row.round_number,
        )
        for row in payload.rows
    ]
    stored = record_results(db, event_id, rows)
    db.commit()
    return {"event_id": event_id, "stored_rows": stored}


@app.post("/events/{event_id}/results/csv")
async def upload_event_results(event_id: int, file: UploadFile = File(...), db: Session = Depends(get_db)):
    get_event_or_404(db, event_id)
    raw = await file.read()
    stored = import_results_csv(db, event_id, decode_upload(raw))
    db.commit()
    return {"event_id": event_id, "stored_rows": stored}


@app.get("/seasons/{season_id}/standings")
def get_standings(season_id: int, db: Session = Depends(get_db)):
    season = get_season_or_404(db, season_id)
    snapshot = compute_season_standings(db, season_id)
    latest = snapshot.latest_event
    return {
        "season_id": season.id,
        "season_name": season.name,
        "latest_event": latest.id if latest else None,
        "standings": [StandingOut(**row) for row in standings_rows(snapshot)],
    }


@app.get("/seasons/{season_id}/champions")
def get_champions(season_id: int, db: Session = Depends(get_db)):
    season = get_season_or_404(db, season_id)
    snapshot = compute_season_standings(db, season_id)
    return {
        "season_id": season.id,
        "season_name": season.name,
        "champions": [ChampionOut(**row) for row in champion_rows(snapshot)],
    }


@app.get("/seasons/{season_id}/report.xlsx")
def get_report(season_id: int, db: Session = Depends(get_db)) -> FileResponse:
    path = export_season_workbook(db, season_id)
    return FileResponse(
        path,
        media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        filename=path.name,
    )
