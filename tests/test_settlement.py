"""Settlement classifier and worker tests."""

from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone
from typing import Dict, List

import httpx
import pytest

from edgeviper.db.bet_tracker import PendingBet
from edgeviper.exchange.client import BetfairClient, ExchangeError
from edgeviper.exchange.schemas import MarketBook
from edgeviper.offers.types import OfferKind
from edgeviper.settlement.classifier import Outcome, classify_leg, is_eligible, settle_bet
from edgeviper.settlement.worker import SettlementWorker
from edgeviper.valuation.types import BetMapping, ResolvedLeg

NOW = datetime(2025, 8, 16, 18, 0, tzinfo=timezone.utc)


def _book(market_id: str, status: str, runners: Dict[int, str] | None = None) -> MarketBook:
    return MarketBook.model_validate(
        {
            "marketId": market_id,
            "status": status,
            "runners": [{"selectionId": sid, "status": rs} for sid, rs in (runners or {}).items()],
        }
    )


def _leg(market_id: str, runner_id: int = 1) -> ResolvedLeg:
    return ResolvedLeg(
        kind="MATCH_ODDS",
        team=f"Team {market_id}",
        market_id=market_id,
        runner_id=runner_id,
        runner_name=f"Team {market_id}",
        mid=2.0,
        back=1.98,
        lay=2.02,
        spread_pct=2.0,
        liquidity=100.0,
    )


@pytest.mark.parametrize(
    "book, expected",
    [
        (_book("1", "CLOSED", {1: "WINNER", 2: "LOSER"}), Outcome.WIN),
        (_book("1", "CLOSED", {1: "LOSER", 2: "WINNER"}), Outcome.LOSE),
        (_book("1", "CLOSED", {2: "WINNER"}), Outcome.LOSE),
        (_book("1", "CLOSED", {2: "REMOVED"}), Outcome.VOID),
        (_book("1", "CLOSED", {1: "REMOVED", 2: "WINNER"}), Outcome.LOSE),
        (_book("1", "CLOSED", {1: "REMOVED", 2: "LOSER"}), Outcome.VOID),
        (_book("1", "INACTIVE", {1: "ACTIVE"}), Outcome.PENDING),
        (_book("1", "SUSPENDED", {1: "ACTIVE"}), Outcome.PENDING),
        (_book("1", "OPEN", {1: "ACTIVE"}), Outcome.PENDING),
        (_book("1", "SOMETHING_NEW", {1: "WINNER"}), Outcome.PENDING),
        (None, Outcome.PENDING),
    ],
)
def test_classify_leg_table(book: MarketBook | None, expected: Outcome) -> None:
    assert classify_leg(book, 1) is expected


def test_loser_short_circuits_remaining_legs() -> None:
    books = {
        "1.1": _book("1.1", "CLOSED", {1: "WINNER"}),
        "1.2": _book("1.2", "CLOSED", {1: "LOSER", 2: "WINNER"}),
        "1.3": _book("1.3", "OPEN", {1: "ACTIVE"}),
    }
    queried: List[str] = []

    def lookup(market_id: str) -> MarketBook | None:
        queried.append(market_id)
        return books.get(market_id)

    assert settle_bet([_leg("1.1"), _leg("1.2"), _leg("1.3")], lookup) is Outcome.LOSE
    assert queried == ["1.1", "1.2"]


def test_void_leg_makes_bet_void() -> None:
    books = {
        "1.1": _book("1.1", "CLOSED", {1: "WINNER"}),
        "1.2": _book("1.2", "CLOSED", {2: "REMOVED"}),
        "1.3": _book("1.3", "CLOSED", {1: "WINNER"}),
    }
    assert settle_bet([_leg("1.1"), _leg("1.2"), _leg("1.3")], books.get) is Outcome.VOID


def test_all_winners_and_pending_legs() -> None:
    won = {"1.1": _book("1.1", "CLOSED", {1: "WINNER"}), "1.2": _book("1.2", "CLOSED", {1: "WINNER"})}
    assert settle_bet([_leg("1.1"), _leg("1.2")], won.get) is Outcome.WIN

    live = {"1.1": _book("1.1", "CLOSED", {1: "WINNER"}), "1.2": _book("1.2", "OPEN", {1: "ACTIVE"})}
    assert settle_bet([_leg("1.1"), _leg("1.2")], live.get) is Outcome.PENDING
    assert settle_bet([], live.get) is Outcome.PENDING


@pytest.mark.parametrize(
    "offset_minutes, expected",
    [
        (120, True),
        (121, False),
        (-210, True),
        (-211, False),
        (0, True),
    ],
)
def test_eligibility_window(offset_minutes: int, expected: bool) -> None:
    ko = NOW + timedelta(minutes=offset_minutes)
    assert is_eligible(ko, NOW, 120, 30) is expected


def test_bets_without_kickoff_are_always_eligible() -> None:
    assert is_eligible(None, NOW, 120, 30)


def _pending(row_number: int, *market_ids: str, ko: datetime | None = NOW - timedelta(minutes=100)) -> PendingBet:
    mapping = BetMapping(
        bookie="William Hill",
        kind=OfferKind.ALL_TO_WIN,
        legs=[_leg(market_id) for market_id in market_ids],
        latest_ko=ko,
    )
    return PendingBet(
        row_number=row_number,
        date="16/08/2025",
        sport="Football",
        mapping=mapping,
        latest_ko=ko,
        market_ids=mapping.market_ids(),
    )


class FakeStore:
    def __init__(self, pending: List[PendingBet], broken_rows: tuple[int, ...] = ()) -> None:
        self.pending = pending
        self.broken_rows = broken_rows
        self.results: Dict[int, str] = {}

    def pending_with_mapping(self) -> List[PendingBet]:
        return self.pending

    def update_result(self, row_number: int, result: str) -> None:
        if row_number in self.broken_rows:
            raise KeyError(row_number)
        self.results[row_number] = result


class FakeBooks:
    def __init__(self, books: Dict[str, MarketBook], failing: tuple[str, ...] = ()) -> None:
        self.books = books
        self.failing = failing
        self.batches: List[List[str]] = []

    def list_market_book(self, market_ids, with_prices: bool = False) -> List[MarketBook]:
        ids = list(market_ids)
        self.batches.append(ids)
        assert with_prices is False
        if any(market_id in self.failing for market_id in ids):
            raise ExchangeError(503, "unavailable")
        return [self.books[market_id] for market_id in ids if market_id in self.books]


def _closed(market_id: str, result: str) -> MarketBook:
    return _book(market_id, "CLOSED", {1: result, 2: "LOSER" if result == "WINNER" else "WINNER"})


def test_worker_batches_unique_markets_and_writes_results() -> None:
    store = FakeStore(
        [
            _pending(1, "1.1", "1.2"),
            _pending(2, "1.2", "1.3"),
            _pending(3, "1.4", ko=NOW + timedelta(days=2)),
        ]
    )
    books = FakeBooks(
        {
            "1.1": _closed("1.1", "WINNER"),
            "1.2": _closed("1.2", "WINNER"),
            "1.3": _closed("1.3", "LOSER"),
        }
    )
    worker = SettlementWorker(books, store, near_before_min=120, near_after_min=30, max_markets_per_call=2)

    summary = worker.run_once(NOW)

    assert books.batches == [["1.1", "1.2"], ["1.3"]]
    assert store.results == {1: "W", 2: "L"}
    assert summary.scanned == 3
    assert summary.eligible == 2
    assert summary.settled == {1: "W", 2: "L"}


def test_failed_batch_leaves_bets_pending() -> None:
    store = FakeStore([_pending(1, "1.1"), _pending(2, "1.2")])
    books = FakeBooks({"1.1": _closed("1.1", "WINNER"), "1.2": _closed("1.2", "WINNER")}, failing=("1.1",))
    worker = SettlementWorker(books, store, max_markets_per_call=1)

    summary = worker.run_once(NOW)

    assert summary.failed_batches == 1
    assert store.results == {2: "W"}


def test_network_error_is_treated_like_a_failed_batch() -> None:
    class Offline:
        def list_market_book(self, market_ids, with_prices=False):
            raise httpx.ConnectError("down")

    store = FakeStore([_pending(1, "1.1")])
    summary = SettlementWorker(Offline(), store).run_once(NOW)
    assert summary.failed_batches == 1
    assert store.results == {}


def test_malformed_book_response_only_fails_its_batch() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        market_ids = json.loads(request.content)["marketIds"]
        if market_ids == ["1.1"]:
            return httpx.Response(200, text="<html>maintenance</html>")
        return httpx.Response(
            200,
            json=[
                {
                    "marketId": "1.2",
                    "status": "CLOSED",
                    "runners": [{"selectionId": 1, "status": "WINNER"}, {"selectionId": 2, "status": "LOSER"}],
                }
            ],
        )

    client = BetfairClient("app-key", "session", "https://bf.test/rest/v1.0", transport=httpx.MockTransport(handler))
    store = FakeStore([_pending(1, "1.1"), _pending(2, "1.2")])

    summary = SettlementWorker(client, store, max_markets_per_call=1).run_once(NOW)

    assert summary.failed_batches == 1
    assert store.results == {2: "W"}


def test_invalid_book_payload_only_fails_its_batch() -> None:
    class Garbled:
        def list_market_book(self, market_ids, with_prices=False):
            return [MarketBook.model_validate({"status": "CLOSED"})]

    store = FakeStore([_pending(1, "1.1")])
    summary = SettlementWorker(Garbled(), store).run_once(NOW)
    assert summary.failed_batches == 1
    assert store.results == {}


def test_failed_row_write_does_not_block_other_rows() -> None:
    store = FakeStore([_pending(1, "1.1"), _pending(2, "1.2")], broken_rows=(1,))
    books = FakeBooks({"1.1": _closed("1.1", "WINNER"), "1.2": _closed("1.2", "LOSER")})

    summary = SettlementWorker(books, store).run_once(NOW)

    assert summary.failed_rows == [1]
    assert store.results == {2: "L"}


def test_dry_run_does_not_write() -> None:
    store = FakeStore([_pending(1, "1.1")])
    books = FakeBooks({"1.1": _closed("1.1", "WINNER")})

    summary = SettlementWorker(books, store, dry_run=True).run_once(NOW)

    assert store.results == {}
    assert summary.settled == {1: "W"}
