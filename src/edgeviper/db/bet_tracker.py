"""Row-store for tracked bets, backed by the ``bet_tracker`` table."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List

from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.orm import sessionmaker

from edgeviper.db.database import SessionLocal, session_scope
from edgeviper.db.models import BetTrackerRow
from edgeviper.valuation.types import BetMapping

logger = logging.getLogger(__name__)

TERMINAL_RESULTS = ("W", "L", "V")


@dataclass(frozen=True)
class NewBetRow:
    date: str
    bookie: str
    sport: str
    bet_text: str
    settle_date: str
    odds: float
    fair_odds: float | None = None
    bookie_url: str = ""
    mapping: BetMapping | None = None
    event: str = "Multi"


@dataclass(frozen=True)
class PendingBet:
    """An approved, unsettled bet with a readable mapping."""

    row_number: int
    date: str
    sport: str
    mapping: BetMapping
    latest_ko: datetime | None
    market_ids: List[str]


@dataclass(frozen=True)
class TrackedBet:
    row_number: int
    date: str
    bookie: str
    sport: str
    bet_text: str
    settle_date: str
    odds: float
    fair_odds: float | None
    result: str
    approved: bool
    posted: bool
    bookie_url: str


def _tracked(row: BetTrackerRow) -> TrackedBet:
    return TrackedBet(
        row_number=row.row_number,
        date=row.date,
        bookie=row.bookie,
        sport=row.sport,
        bet_text=row.bet_text,
        settle_date=row.settle_date or "",
        odds=row.odds,
        fair_odds=row.fair_odds,
        result=row.result or "P",
        approved=bool(row.approved),
        posted=bool(row.posted),
        bookie_url=row.bookie_url or "",
    )


def _mapping_json(mapping: BetMapping | None) -> Dict[str, Any] | None:
    return mapping.model_dump(mode="json") if mapping is not None else None


class BetTrackerStore:
    """Named-record access to the bet tracker table."""

    def __init__(self, session_factory: sessionmaker | None = None) -> None:
        self.session_factory = session_factory or SessionLocal

    def append_pending_bet(self, bet: NewBetRow) -> int:
        with session_scope(self.session_factory) as session:
            row = BetTrackerRow(
                date=bet.date,
                bookie=bet.bookie,
                sport=bet.sport,
                event=bet.event,
                bet_text=bet.bet_text,
                settle_date=bet.settle_date,
                odds=bet.odds,
                fair_odds=bet.fair_odds,
                result="P",
                approved=False,
                posted=False,
                bookie_url=bet.bookie_url,
                mapping=_mapping_json(bet.mapping),
            )
            session.add(row)
            session.flush()
            return row.row_number

    def pending_with_mapping(self) -> List[PendingBet]:
        """Approved rows still pending whose mapping parses; others are skipped."""

        with session_scope(self.session_factory) as session:
            stmt = (
                select(BetTrackerRow)
                .where(BetTrackerRow.approved.is_(True))
                .where(BetTrackerRow.result == "P")
                .where(BetTrackerRow.mapping.is_not(None))
                .order_by(BetTrackerRow.row_number)
            )
            rows = session.scalars(stmt).all()
            pending: List[PendingBet] = []
            for row in rows:
                try:
                    mapping = BetMapping.model_validate(row.mapping)
                except ValidationError as exc:
                    logger.warning("row %s: unreadable mapping (%s)", row.row_number, exc.error_count())
                    continue
                pending.append(
                    PendingBet(
                        row_number=row.row_number,
                        date=row.date,
                        sport=row.sport,
                        mapping=mapping,
                        latest_ko=mapping.latest_ko,
                        market_ids=mapping.market_ids(),
                    )
                )
            return pending

    def _require(self, session, row_number: int) -> BetTrackerRow:
        row = session.get(BetTrackerRow, row_number)
        if row is None:
            raise KeyError(f"bet tracker row {row_number} not found")
        return row

    def update_result(self, row_number: int, result: str) -> None:
        if result not in TERMINAL_RESULTS:
            raise ValueError(f"result must be one of {TERMINAL_RESULTS}, got {result!r}")
        with session_scope(self.session_factory) as session:
            self._require(session, row_number).result = result

    def update_mapping(self, row_number: int, mapping: BetMapping) -> None:
        with session_scope(self.session_factory) as session:
            self._require(session, row_number).mapping = _mapping_json(mapping)

    def approve(self, row_number: int) -> None:
        with session_scope(self.session_factory) as session:
            self._require(session, row_number).approved = True

    def mark_posted(self, row_number: int) -> None:
        with session_scope(self.session_factory) as session:
            self._require(session, row_number).posted = True

    def approved_unposted(self) -> List[TrackedBet]:
        with session_scope(self.session_factory) as session:
            stmt = (
                select(BetTrackerRow)
                .where(BetTrackerRow.approved.is_(True))
                .where(BetTrackerRow.posted.is_(False))
                .where(BetTrackerRow.result == "P")
                .order_by(BetTrackerRow.row_number)
            )
            return [_tracked(row) for row in session.scalars(stmt).all()]

    def get(self, row_number: int) -> TrackedBet | None:
        with session_scope(self.session_factory) as session:
            row = session.get(BetTrackerRow, row_number)
            return _tracked(row) if row is not None else None
