"""Polling worker that writes results for approved bets near kickoff."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Protocol, Sequence

import httpx
from sqlalchemy.exc import SQLAlchemyError

from edgeviper.config import get_settings
from edgeviper.db.bet_tracker import PendingBet
from edgeviper.exchange.client import ExchangeError
from edgeviper.exchange.schemas import MarketBook
from edgeviper.settlement.classifier import Outcome, is_eligible, settle_bet

logger = logging.getLogger(__name__)


class BookSource(Protocol):
    def list_market_book(self, market_ids: Iterable[str], with_prices: bool = False) -> List[MarketBook]: ...


class PendingStore(Protocol):
    def pending_with_mapping(self) -> List[PendingBet]: ...

    def update_result(self, row_number: int, result: str) -> None: ...


@dataclass
class SettlementSummary:
    scanned: int = 0
    eligible: int = 0
    markets: int = 0
    failed_batches: int = 0
    settled: Dict[int, str] = field(default_factory=dict)
    failed_rows: List[int] = field(default_factory=list)


def chunk(items: Sequence[str], size: int) -> List[List[str]]:
    return [list(items[i : i + size]) for i in range(0, len(items), size)]


class SettlementWorker:
    """One settlement cycle per :meth:`run_once` call."""

    def __init__(
        self,
        client: BookSource,
        store: PendingStore,
        *,
        near_before_min: int | None = None,
        near_after_min: int | None = None,
        max_markets_per_call: int | None = None,
        dry_run: bool = False,
    ) -> None:
        settings = get_settings()
        self.client = client
        self.store = store
        self.near_before_min = settings.near_before_min if near_before_min is None else near_before_min
        self.near_after_min = settings.near_after_min if near_after_min is None else near_after_min
        self.max_markets_per_call = max_markets_per_call or settings.max_markets_per_call
        self.dry_run = dry_run

    def _fetch_books(self, market_ids: List[str], summary: SettlementSummary) -> Dict[str, MarketBook]:
        books: Dict[str, MarketBook] = {}
        for batch in chunk(market_ids, self.max_markets_per_call):
            try:
                for book in self.client.list_market_book(batch, with_prices=False):
                    books[book.market_id] = book
            # ValueError covers undecodable bodies and books that fail validation
            except (ExchangeError, httpx.HTTPError, ValueError) as exc:
                summary.failed_batches += 1
                logger.error("listMarketBook failed for %d markets: %s", len(batch), exc)
        return books

    def run_once(self, now: datetime | None = None) -> SettlementSummary:
        now = now or datetime.now(timezone.utc)
        summary = SettlementSummary()
        tasks = self.store.pending_with_mapping()
        summary.scanned = len(tasks)

        eligible = [
            task
            for task in tasks
            if is_eligible(task.latest_ko, now, self.near_before_min, self.near_after_min)
        ]
        summary.eligible = len(eligible)

        market_ids = list(dict.fromkeys(mid for task in eligible for mid in task.market_ids if mid))
        summary.markets = len(market_ids)
        books = self._fetch_books(market_ids, summary)

        for task in eligible:
            legs = [leg for leg in task.mapping.legs if leg.market_id and leg.runner_id]
            if not legs:
                continue
            outcome = settle_bet(legs, books.get)
            if outcome is Outcome.PENDING:
                continue
            if self.dry_run:
                logger.info("[DRY_RUN] row %s -> %s", task.row_number, outcome.value)
                summary.settled[task.row_number] = outcome.value
                continue
            try:
                self.store.update_result(task.row_number, outcome.value)
            except (SQLAlchemyError, KeyError, ValueError) as exc:
                summary.failed_rows.append(task.row_number)
                logger.error("failed to update row %s: %s", task.row_number, exc)
                continue
            summary.settled[task.row_number] = outcome.value
            logger.info("row %s -> %s", task.row_number, outcome.value)
        return summary
