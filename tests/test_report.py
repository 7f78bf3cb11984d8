from datetime import date

import pandas as pd

from standings.aggregator import EventAggregator
from standings.events import EventEntry, ScoredEvent
from standings.report import champions_table, event_scores_table, event_summary_table, standings_table


def _snapshot():
    events = [
        ScoredEvent("e1", date(2024, 1, 1), (EventEntry("A", "Alice", 0), EventEntry("B", "Bob", 4))),
        ScoredEvent("e2", date(2024, 1, 8), (EventEntry("A", "Alice", 9),)),
    ]
    return EventAggregator().aggregate(events)


def test_standings_table_orders_by_latest_cumulative_rank():
    table = standings_table(_snapshot())
    assert table["Player"].tolist() == ["Alice", "Bob"]
    assert table["Points/Event"].tolist() == [4, 4]
    # A lone attendee is ranked 1 of 1, which is not in the top half.
    assert table["Streak"].tolist() == ["2 losses", "1 wins"]


def test_event_scores_keep_zero_and_leave_absent_blank():
    table = event_scores_table(_snapshot())
    alice = table[table["Player"] == "Alice"].iloc[0]
    bob = table[table["Player"] == "Bob"].iloc[0]
    assert alice["2024-01-01 e1"] == 0
    assert pd.isna(bob["2024-01-08 e2"])


def test_summary_and_champions_tables():
    snapshot = _snapshot()
    summary = event_summary_table(snapshot)
    assert summary["Winner"].tolist() == ["Bob", "Alice"]
    assert summary["Leader"].tolist() == ["Bob", "Alice"]

    champions = champions_table(snapshot)
    assert champions["Player"].tolist() == ["Bob", "Alice"]
    assert champions["Champion"].tolist() == ["", "yes"]
