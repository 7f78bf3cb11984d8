from __future__ import annotations


class StandingsError(Exception):
    """Base class for every error raised by the standings core and services."""


class InvalidInput(StandingsError):
    pass


class DuplicateEventError(StandingsError):
    def __init__(self, event_id: str) -> None:
        super().__init__(f"Duplicate event id: {event_id}")
        self.event_id = event_id


class NotFoundError(StandingsError):
    def __init__(self, label: str) -> None:
        super().__init__(f"{label} not found")
        self.label = label
