from __future__ import annotations

from datetime import date, datetime, timezone

from sqlalchemy import (
    Date,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from standings.database import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Season(Base):
    __tablename__ = "seasons"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(128), unique=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    events: Mapped[list["Event"]] = relationship(
        "Event", back_populates="season", cascade="all, delete-orphan"
    )


class Player(Base):
    __tablename__ = "players"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    code: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)  # external player id
    name: Mapped[str] = mapped_column(String(128), default="", nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    results: Mapped[list["EventResult"]] = relationship("EventResult", back_populates="player")


class Event(Base):
    __tablename__ = "events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    season_id: Mapped[int] = mapped_column(ForeignKey("seasons.id"), nullable=False, index=True)
    code: Mapped[str] = mapped_column(String(64), nullable=False)  # external event id
    name: Mapped[str] = mapped_column(String(128), default="", nullable=False)
    event_date: Mapped[date] = mapped_column(Date, nullable=False)
    kind: Mapped[str] = mapped_column(String(16), default="points", nullable=False)  # points / times
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    season: Mapped[Season] = relationship("Season", back_populates="events")
    results: Mapped[list["EventResult"]] = relationship(
        "EventResult",
        back_populates="event",
        cascade="all, delete-orphan",
        order_by="EventResult.position",
    )

    __table_args__ = (UniqueConstraint("season_id", "code", name="uq_event_code_per_season"),)


class EventResult(Base):
    __tablename__ = "event_results"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    event_id: Mapped[int] = mapped_column(ForeignKey("events.id"), nullable=False, index=True)
    player_id: Mapped[int] = mapped_column(ForeignKey("players.id"), nullable=False, index=True)
    round_number: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False)  # input order within the event
    player_name: Mapped[str] = mapped_column(String(128), default="", nullable=False)
    score: Mapped[float | None] = mapped_column(Float, nullable=True)  # points or finish time

    event: Mapped[Event] = relationship("Event", back_populates="results")
    player: Mapped[Player] = relationship("Player", back_populates="results")
