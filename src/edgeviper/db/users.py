"""Member settings and per-bet stakes."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import List

from sqlalchemy import select
from sqlalchemy.orm import sessionmaker

from edgeviper.db.database import SessionLocal, session_scope
from edgeviper.db.models import UserSettings, UserStake

STAKING_MODES = ("flat", "kelly", "stw")


@dataclass(frozen=True)
class StakingPreferences:
    discord_id: str
    staking_mode: str = "flat"
    bankroll: float = 0.0
    kelly_pct: float = 0.0
    flat_stake: float = 0.0
    stw_amount: float = 0.0


@dataclass(frozen=True)
class StakeRecord:
    discord_id: str
    bet_id: str
    stake: float
    odds: float | None
    notes: str | None
    updated_at: datetime | None


def _num(value) -> float:
    return float(value) if value is not None else 0.0


def _preferences(row: UserSettings) -> StakingPreferences:
    return StakingPreferences(
        discord_id=row.discord_id,
        staking_mode=row.staking_mode or "flat",
        bankroll=_num(row.bankroll),
        kelly_pct=_num(row.kelly_pct),
        flat_stake=_num(row.flat_stake),
        stw_amount=_num(row.stw_amount),
    )


def _stake(row: UserStake) -> StakeRecord:
    return StakeRecord(
        discord_id=row.discord_id,
        bet_id=row.bet_id,
        stake=_num(row.stake),
        odds=float(row.odds) if row.odds is not None else None,
        notes=row.notes,
        updated_at=row.updated_at,
    )


class UserService:
    """Read and write member staking data."""

    def __init__(self, session_factory: sessionmaker | None = None) -> None:
        self.session_factory = session_factory or SessionLocal

    def save_settings(self, prefs: StakingPreferences) -> None:
        if prefs.staking_mode not in STAKING_MODES:
            raise ValueError(f"staking_mode must be one of {STAKING_MODES}")
        with session_scope(self.session_factory) as session:
            row = session.get(UserSettings, prefs.discord_id)
            if row is None:
                row = UserSettings(discord_id=prefs.discord_id)
                session.add(row)
            row.staking_mode = prefs.staking_mode
            row.bankroll = prefs.bankroll
            row.kelly_pct = prefs.kelly_pct
            row.flat_stake = prefs.flat_stake
            row.stw_amount = prefs.stw_amount
            row.updated_at = datetime.utcnow()

    def get_settings(self, discord_id: str) -> StakingPreferences | None:
        with session_scope(self.session_factory) as session:
            row = session.get(UserSettings, discord_id)
            return _preferences(row) if row is not None else None

    def _find_stake(self, session, discord_id: str, bet_id: str) -> UserStake | None:
        stmt = select(UserStake).where(UserStake.discord_id == discord_id, UserStake.bet_id == bet_id)
        return session.scalars(stmt).first()

    def get_user_bet(self, discord_id: str, bet_id: str) -> StakeRecord | None:
        with session_scope(self.session_factory) as session:
            row = self._find_stake(session, discord_id, bet_id)
            return _stake(row) if row is not None else None

    def get_bet_stake(self, discord_id: str, bet_id: str) -> float | None:
        record = self.get_user_bet(discord_id, bet_id)
        return record.stake if record is not None else None

    def save_bet_stake(
        self,
        discord_id: str,
        bet_id: str,
        stake: float,
        odds: float | None = None,
        notes: str | None = None,
    ) -> StakeRecord:
        """Insert or update the member's stake on a bet."""

        if stake < 0:
            raise ValueError("stake must be non-negative")
        with session_scope(self.session_factory) as session:
            row = self._find_stake(session, discord_id, bet_id)
            if row is None:
                row = UserStake(discord_id=discord_id, bet_id=bet_id, stake=stake)
                session.add(row)
            row.stake = stake
            if odds is not None:
                row.odds = odds
            if notes is not None:
                row.notes = notes
            row.updated_at = datetime.utcnow()
            session.flush()
            return _stake(row)

    def list_stakes(self, discord_id: str) -> List[StakeRecord]:
        with session_scope(self.session_factory) as session:
            stmt = select(UserStake).where(UserStake.discord_id == discord_id).order_by(UserStake.updated_at.desc())
            return [_stake(row) for row in session.scalars(stmt).all()]
