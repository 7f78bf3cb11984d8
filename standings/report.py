"""Tabular season reports built from a finished aggregation pass."""

from __future__ import annotations

from pathlib import Path

import pandas as pd
from openpyxl.utils import get_column_letter

from standings.aggregator import SeasonSnapshot
from standings.rules import points_per_event


def _cell_text(value) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _write_sheet(writer, dataframe: pd.DataFrame, sheet_name: str, freeze: str = "A2") -> None:
    """
    Write one table per sheet, keeping the header row even when there are no rows.

    Missing values (events a player skipped, ranks not yet held) stay empty
    cells and do not count toward column width. Whole-number float columns
    are shown without decimals.
    """
    dataframe.to_excel(writer, sheet_name=sheet_name, index=False)
    worksheet = writer.sheets[sheet_name]
    worksheet.auto_filter.ref = worksheet.dimensions
    worksheet.freeze_panes = freeze

    for column_index, column_name in enumerate(dataframe.columns, start=1):
        present = dataframe[column_name].dropna().tolist()
        lengths = [len(str(column_name))] + [len(_cell_text(v)) for v in present]
        letter = get_column_letter(column_index)
        worksheet.column_dimensions[letter].width = min(max(8, max(lengths) + 2), 40)

        if present and all(isinstance(v, float) and v.is_integer() for v in present):
            for (cell,) in worksheet.iter_rows(
                min_row=2, min_col=column_index, max_col=column_index, max_row=len(dataframe) + 1
            ):
                cell.number_format = "0"


def _event_column(snapshot: SeasonSnapshot, event_id: str) -> str:
    for event in snapshot.events:
        if event.id == event_id:
            return f"{event.date.isoformat()} {event.id}"
    return event_id


def standings_table(snapshot: SeasonSnapshot) -> pd.DataFrame:
    latest = snapshot.latest_event
    rows = []
    for rank, ledger in enumerate(snapshot.standings(), start=1):
        streak = ledger.streak
        rows.append(
            {
                "Rank": rank,
                "Player": ledger.name or ledger.player_id,
                "Total": ledger.total_score,
                "Events": ledger.events_attended,
                "Points/Event": points_per_event(
                    ledger.cumulative_scores.get(latest.id), ledger.events_attended
                ),
                "Streak": f"{streak.count} {streak.kind}" if streak else "",
            }
        )
    return pd.DataFrame(rows, columns=["Rank", "Player", "Total", "Events", "Points/Event", "Streak"])


def _per_event_table(snapshot: SeasonSnapshot, field: str) -> pd.DataFrame:
    """Player x event grid; cells the player has no value for stay empty, a real 0 is kept."""
    columns = ["Player"] + [_event_column(snapshot, e.id) for e in snapshot.events]
    rows = []
    for ledger in snapshot.standings():
        values = getattr(ledger, field)
        row = {"Player": ledger.name or ledger.player_id}
        for event in snapshot.events:
            row[_event_column(snapshot, event.id)] = values.get(event.id)
        rows.append(row)
    return pd.DataFrame(rows, columns=columns)


def event_scores_table(snapshot: SeasonSnapshot) -> pd.DataFrame:
    return _per_event_table(snapshot, "event_scores")


def cumulative_scores_table(snapshot: SeasonSnapshot) -> pd.DataFrame:
    return _per_event_table(snapshot, "cumulative_scores")


def cumulative_rank_table(snapshot: SeasonSnapshot) -> pd.DataFrame:
    return _per_event_table(snapshot, "cumulative_ranks")


def event_summary_table(snapshot: SeasonSnapshot) -> pd.DataFrame:
    def display(player_id):
        if player_id is None:
            return ""
        ledger = snapshot.ledger(player_id)
        return ledger.name if ledger and ledger.name else player_id

    rows = [
        {
            "Date": event.date.isoformat(),
            "Event": event.name or event.id,
            "Attendees": event.attendees,
            "Winner": display(event.winner_id),
            "Leader": display(event.leader_id),
        }
        for event in snapshot.events
    ]
    return pd.DataFrame(rows, columns=["Date", "Event", "Attendees", "Winner", "Leader"])


def champions_table(snapshot: SeasonSnapshot) -> pd.DataFrame:
    rows = []
    for record in snapshot.champions:
        ledger = snapshot.ledger(record.player_id)
        rows.append(
            {
                "Player": ledger.name if ledger and ledger.name else record.player_id,
                "First Led": record.holder_since.isoformat(),
                "Reign Started": record.reign_started.isoformat() if record.reign_started else "",
                "Current Reign": record.current_reign_length,
                "Longest Reign": record.longest_reign_length,
                "Events Led": record.total_reigns,
                "Champion": "yes" if record.is_current_holder else "",
            }
        )
    return pd.DataFrame(
        rows,
        columns=[
            "Player",
            "First Led",
            "Reign Started",
            "Current Reign",
            "Longest Reign",
            "Events Led",
            "Champion",
        ],
    )


def write_workbook(snapshot: SeasonSnapshot, excel_path: Path) -> None:
    excel_path.parent.mkdir(parents=True, exist_ok=True)
    with pd.ExcelWriter(excel_path, engine="openpyxl") as writer:
        _write_sheet(writer, standings_table(snapshot), "Standings")
        _write_sheet(writer, event_summary_table(snapshot), "Events")
        _write_sheet(writer, event_scores_table(snapshot), "EventScores", freeze="B2")
        _write_sheet(writer, cumulative_scores_table(snapshot), "CumulativeScores", freeze="B2")
        _write_sheet(writer, cumulative_rank_table(snapshot), "CumulativeRanks", freeze="B2")
        _write_sheet(writer, champions_table(snapshot), "Champions")
