"""ORM models for EdgeViper."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, Boolean, DateTime, Float, Integer, Numeric, String, Text, UniqueConstraint
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base declarative class."""


class BetTrackerRow(Base):
    """One candidate or approved bet in the tracker."""

    __tablename__ = "bet_tracker"

    row_number: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    date: Mapped[str] = mapped_column(String(10), nullable=False)
    bookie: Mapped[str] = mapped_column(String(64), nullable=False)
    sport: Mapped[str] = mapped_column(String(32), nullable=False)
    event: Mapped[str] = mapped_column(String(64), default="Multi")
    bet_text: Mapped[str] = mapped_column(String(512), nullable=False)
    settle_date: Mapped[str] = mapped_column(String(10), default="")
    odds: Mapped[float] = mapped_column(Float, nullable=False)
    fair_odds: Mapped[float | None] = mapped_column(Float)
    result: Mapped[str] = mapped_column(String(1), default="P")
    approved: Mapped[bool] = mapped_column(Boolean, default=False)
    posted: Mapped[bool] = mapped_column(Boolean, default=False)
    bookie_url: Mapped[str] = mapped_column(String(1024), default="")
    mapping: Mapped[dict[str, Any] | None] = mapped_column(JSON(none_as_null=True))
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)


class UserSettings(Base):
    """Member staking preferences, pushed from the membership site."""

    __tablename__ = "user_settings"

    discord_id: Mapped[str] = mapped_column(String(32), primary_key=True)
    staking_mode: Mapped[str] = mapped_column(String(8), default="flat")
    bankroll: Mapped[float | None] = mapped_column(Numeric(12, 2))
    kelly_pct: Mapped[float | None] = mapped_column(Numeric(5, 2))
    flat_stake: Mapped[float | None] = mapped_column(Numeric(10, 2))
    stw_amount: Mapped[float | None] = mapped_column(Numeric(10, 2))
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class UserStake(Base):
    """What a member actually staked on a tracked bet."""

    __tablename__ = "user_stakes"
    __table_args__ = (UniqueConstraint("discord_id", "bet_id", name="uq_user_stakes_member_bet"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    discord_id: Mapped[str] = mapped_column(String(32), nullable=False)
    bet_id: Mapped[str] = mapped_column(String(32), nullable=False)
    stake: Mapped[float] = mapped_column(Numeric(10, 2), nullable=False)
    odds: Mapped[float | None] = mapped_column(Numeric(8, 3))
    notes: Mapped[str | None] = mapped_column(Text)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
