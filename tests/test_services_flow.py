from datetime import date

import openpyxl
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from standings.database import Base
from standings.errors import DuplicateEventError, InvalidInput, NotFoundError
from standings.events import ResultRow
from standings.models import Player
from standings.services import (
    champion_rows,
    compute_season_standings,
    create_event,
    create_season,
    decode_upload,
    export_season_workbook,
    import_results_csv,
    parse_results_csv,
    record_results,
    standings_rows,
)


def _session() -> Session:
    engine = create_engine("sqlite:///:memory:", connect_args={"check_same_thread": False})
    Base.metadata.create_all(bind=engine)
    SessionLocal = sessionmaker(bind=engine, autoflush=True, autocommit=False)
    return SessionLocal()


def test_season_standings_from_stored_results():
    db = _session()

    season = create_season(db, "Winter_2024")
    # Created out of date order on purpose.
    e3 = create_event(db, season.id, "wk3", date(2024, 1, 15))
    e1 = create_event(db, season.id, "wk1", date(2024, 1, 1))
    e2 = create_event(db, season.id, "wk2", date(2024, 1, 8))
    db.commit()

    record_results(db, e1.id, [ResultRow("A", "Alice", 10), ResultRow("B", "Bob", 5)])
    record_results(db, e2.id, [ResultRow("A", "Alice", 0), ResultRow("B", "Bob", 5)])
    record_results(db, e3.id, [ResultRow("A", "Alice", 10), ResultRow("B", "Bob", 5)])
    db.commit()

    snapshot = compute_season_standings(db, season.id)
    assert [e.id for e in snapshot.events] == ["wk1", "wk2", "wk3"]

    rows = standings_rows(snapshot)
    assert [(r["player_id"], r["rank"], r["total_score"]) for r in rows] == [("A", 1, 20), ("B", 2, 15)]
    assert rows[0]["streak"] == {"kind": "wins", "count": 1}
    assert rows[0]["points_per_event"] == 6
    assert rows[0]["event_scores"]["wk2"] == 0

    champions = champion_rows(snapshot)
    assert [(c["player_id"], c["total_reigns"], c["is_current_holder"]) for c in champions] == [("A", 3, True)]
    assert champions[0]["player_name"] == "Alice"

    db.close()


def test_time_event_with_rounds_and_csv_upload():
    db = _session()
    season = create_season(db, "Karting")
    race = create_event(db, season.id, "gp1", date(2024, 6, 1), kind="times", name="Grand Prix")
    db.commit()

    text = (
        "player_id,player_name,score,round\n"
        "p1,Ana,12.3,1\n"
        "p2,Ben,9.9,1\n"
        "p3,Cy,15.0,1\n"
        ",Nobody,7.0,1\n"
        "p4,Dee,,1\n"
    )
    assert import_results_csv(db, race.id, text) == 4
    db.commit()

    snapshot = compute_season_standings(db, season.id)
    scores = {l.player_id: l.event_scores.get("gp1") for l in snapshot.ledgers}
    assert scores == {"p1": 2, "p2": 3, "p3": 1}
    assert snapshot.events[0].winner_id == "p2"
    # Dee has a stored row but no time, so never enters the standings.
    assert db.query(Player).filter(Player.code == "p4").count() == 1
    assert snapshot.ledger("p4") is None

    db.close()


def test_record_results_replaces_previous_rows():
    db = _session()
    season = create_season(db, "S")
    event = create_event(db, season.id, "e1", date(2024, 1, 1))
    record_results(db, event.id, [ResultRow("A", "A", 1)])
    record_results(db, event.id, [ResultRow("B", "B", 2)])
    db.commit()

    snapshot = compute_season_standings(db, season.id)
    assert [l.player_id for l in snapshot.standings()] == ["B"]
    db.close()


def test_duplicate_event_code_is_rejected():
    db = _session()
    season = create_season(db, "S")
    create_event(db, season.id, "e1", date(2024, 1, 1))
    with pytest.raises(DuplicateEventError):
        create_event(db, season.id, "e1", date(2024, 2, 1))
    with pytest.raises(InvalidInput):
        create_event(db, season.id, "e2", date(2024, 2, 1), kind="laps")
    with pytest.raises(NotFoundError):
        compute_season_standings(db, 999)
    db.close()


def test_parse_results_csv_requires_header_columns():
    with pytest.raises(InvalidInput):
        parse_results_csv("id,name\n1,x\n")

    rows = parse_results_csv("Player_ID, Player_Name, Score\nA, Alice, 0\nB, Bob, n/a\n")
    assert rows[0] == ResultRow("A", "Alice", 0.0, 1)
    assert rows[1].score is None


def test_empty_csv_is_invalid_input():
    with pytest.raises(InvalidInput):
        parse_results_csv("")
    with pytest.raises(InvalidInput):
        decode_upload(b"player_id,player_name,score\nA,\xff\xfe,3\n")
    assert decode_upload("\ufeffplayer_id\n".encode("utf-8")) == "player_id\n"


def test_export_workbook(tmp_path):
    db = _session()
    season = create_season(db, "Spring")
    event = create_event(db, season.id, "r1", date(2024, 4, 1))
    record_results(db, event.id, [ResultRow("A", "Alice", 3), ResultRow("B", "Bob", 1)])
    db.commit()

    path = export_season_workbook(db, season.id, tmp_path / "spring.xlsx")
    workbook = openpyxl.load_workbook(path)
    assert workbook.sheetnames == [
        "Standings",
        "Events",
        "EventScores",
        "CumulativeScores",
        "CumulativeRanks",
        "Champions",
    ]
    assert workbook["Standings"]["B2"].value == "Alice"
    db.close()


def test_workbook_grids_leave_missing_cells_empty(tmp_path):
    db = _session()
    season = create_season(db, "Autumn")
    r1 = create_event(db, season.id, "r1", date(2024, 4, 1))
    r2 = create_event(db, season.id, "r2", date(2024, 4, 8))
    record_results(db, r1.id, [ResultRow("A", "Alice", 3), ResultRow("B", "Bob", 1)])
    record_results(db, r2.id, [ResultRow("A", "Alice", 2)])
    db.commit()

    workbook = openpyxl.load_workbook(export_season_workbook(db, season.id, tmp_path / "autumn.xlsx"))
    scores = workbook["EventScores"]
    assert [c.value for c in scores[1]] == ["Player", "2024-04-01 r1", "2024-04-08 r2"]
    assert scores["A3"].value == "Bob"
    assert scores["C3"].value is None
    assert scores["B2"].number_format == "0"
    # Player names stay visible while scrolling across events.
    assert scores.freeze_panes == "B2"
    assert workbook["Standings"].freeze_panes == "A2"
    assert workbook["CumulativeScores"]["C3"].value == 1
    db.close()


def test_workbook_for_season_without_events_keeps_headers(tmp_path):
    db = _session()
    season = create_season(db, "Empty")
    db.commit()

    workbook = openpyxl.load_workbook(export_season_workbook(db, season.id, tmp_path / "empty.xlsx"))
    assert [c.value for c in workbook["Standings"][1]] == [
        "Rank",
        "Player",
        "Total",
        "Events",
        "Points/Event",
        "Streak",
    ]
    assert workbook["Standings"].max_row == 1
    db.close()
