"""Offer valuator tests against a fake exchange."""

from __future__ import annotations

from typing import Any, Dict, List, Sequence

import pytest

from edgeviper.exchange.client import ExchangeError
from edgeviper.exchange.schemas import MarketBook, MarketCatalogue
from edgeviper.offers.types import BoostOffer, Leg, OfferKind
from edgeviper.teams.aliases import TeamAliasIndex
from edgeviper.valuation.markets import MATCH_ODDS, safe_list_market_catalogue
from edgeviper.valuation.types import Accepted, Rejected, RejectReason, Thresholds
from edgeviper.valuation.valuator import OfferValuator

DEFAULTS = Thresholds(max_spread_pct=20.0, min_liquidity=50.0, threshold=1.05)


class FakeExchange:
    """Serves one market per team with fixed best back/lay prices."""

    def __init__(self, typed: bool = True, market_type: str = "MATCH_ODDS") -> None:
        self.typed = typed
        self.market_type = market_type
        self.markets: Dict[str, Dict[str, Any]] = {}
        self.prices: Dict[str, tuple[float, float, float]] = {}
        self.catalogue_calls: List[Dict[str, Any]] = []

    def add(self, team: str, market_id: str, back: float, lay: float, size: float = 100.0, **extra: Any) -> None:
        runners = extra.pop("runners", None) or [
            {"selectionId": 1, "runnerName": team},
            {"selectionId": 2, "runnerName": "Opponent"},
            {"selectionId": 58805, "runnerName": "The Draw"},
        ]
        self.markets[market_id] = {
            "marketId": market_id,
            "marketName": extra.pop("market_name", "Match Odds"),
            "marketStartTime": extra.pop("start", "2025-08-16T14:00:00.000Z"),
            "runners": runners,
        }
        self.prices[market_id] = (back, lay, size)

    def list_market_catalogue(
        self, market_filter: Dict[str, Any], max_results: int = 200, projection: Sequence[str] = ()
    ) -> List[MarketCatalogue]:
        self.catalogue_calls.append(market_filter)
        if "marketTypeCodes" in market_filter and not self.typed:
            return []
        query = str(market_filter.get("textQuery", "")).lower()
        found = []
        for market in self.markets.values():
            if query and not any(query in r["runnerName"].lower() for r in market["runners"]):
                continue
            found.append(MarketCatalogue.model_validate(market))
        return found

    def list_market_book_safe(self, market_ids: Sequence[str]) -> List[MarketBook]:
        books = []
        for market_id in market_ids:
            back, lay, size = self.prices[market_id]
            runners = [
                {
                    "selectionId": runner["selectionId"],
                    "status": "ACTIVE",
                    "ex": {
                        "availableToBack": [{"price": back, "size": size}],
                        "availableToLay": [{"price": lay, "size": size}],
                    },
                }
                for runner in self.markets[market_id]["runners"]
            ]
            books.append(MarketBook.model_validate({"marketId": market_id, "status": "OPEN", "runners": runners}))
        return books


def _offer(odds: float, *teams: str, kind: OfferKind = OfferKind.ALL_TO_WIN) -> BoostOffer:
    return BoostOffer(
        bookie="William Hill",
        sport="Football",
        kind=kind,
        bet_text=" & ".join(teams) + " All To Win",
        boosted_odds=odds,
        legs=tuple(Leg(market="Match Odds", team=team) for team in teams),
    )


def _valuator(exchange: FakeExchange) -> OfferValuator:
    return OfferValuator(exchange, TeamAliasIndex(), hours_ahead=72)


def test_end_to_end_double_is_accepted() -> None:
    exchange = FakeExchange()
    exchange.add("Liverpool", "1.100", back=1.98, lay=2.02)
    exchange.add("Arsenal", "1.200", back=2.08, lay=2.12, start="2025-08-16T16:30:00.000Z")

    outcome = _valuator(exchange).value_offer(_offer(4.5, "Liverpool", "Arsenal"), DEFAULTS)

    assert isinstance(outcome, Accepted)
    result = outcome.result
    assert result.fair == pytest.approx(4.2)
    assert result.rating == pytest.approx(1.0714, abs=1e-4)
    assert len(result.mapping.legs) == 2
    assert [leg.market_id for leg in result.mapping.legs] == ["1.100", "1.200"]
    assert result.mapping.legs[0].runner_id == 1
    assert result.mapping.latest_ko.isoformat() == "2025-08-16T16:30:00+00:00"


def test_wide_spread_rejects_whole_offer() -> None:
    exchange = FakeExchange()
    exchange.add("Liverpool", "1.100", back=1.98, lay=2.02)
    exchange.add("Arsenal", "1.200", back=1.8, lay=2.3)

    outcome = _valuator(exchange).value_offer(_offer(9.0, "Liverpool", "Arsenal"), DEFAULTS)

    assert isinstance(outcome, Rejected)
    assert outcome.reason is RejectReason.WIDE_SPREAD
    assert outcome.team == "Arsenal"


def test_low_liquidity_rejects() -> None:
    exchange = FakeExchange()
    exchange.add("Liverpool", "1.100", back=1.98, lay=2.02, size=10)
    exchange.add("Arsenal", "1.200", back=2.08, lay=2.12)

    outcome = _valuator(exchange).value_offer(_offer(9.0, "Liverpool", "Arsenal"), DEFAULTS)
    assert isinstance(outcome, Rejected) and outcome.reason is RejectReason.LOW_LIQUIDITY


@pytest.mark.parametrize("threshold, accepted", [(1.05, True), (1.10, False)])
def test_rating_threshold(threshold: float, accepted: bool) -> None:
    exchange = FakeExchange()
    exchange.add("Chelsea", "1.300", back=1.98, lay=2.02)
    exchange.add("Everton", "1.400", back=2.7, lay=2.8)
    thresholds = Thresholds(max_spread_pct=20.0, min_liquidity=50.0, threshold=threshold)

    outcome = _valuator(exchange).value_offer(_offer(6.0, "Chelsea", "Everton"), thresholds)

    if accepted:
        assert isinstance(outcome, Accepted)
        assert outcome.result.rating == pytest.approx(1.0909, abs=1e-4)
    else:
        assert isinstance(outcome, Rejected)
        assert outcome.reason is RejectReason.BELOW_THRESHOLD


def test_missing_market_rejects() -> None:
    exchange = FakeExchange()
    exchange.add("Liverpool", "1.100", back=1.98, lay=2.02)

    outcome = _valuator(exchange).value_offer(_offer(4.5, "Liverpool", "Arsenal"), DEFAULTS)
    assert isinstance(outcome, Rejected)
    assert outcome.reason is RejectReason.NO_MARKET
    assert outcome.team == "Arsenal"


def test_untyped_search_filters_on_market_name() -> None:
    exchange = FakeExchange(typed=False)
    exchange.add("Liverpool", "1.100", back=1.98, lay=2.02)
    exchange.add("Arsenal", "1.200", back=2.08, lay=2.12)
    exchange.add("Arsenal", "1.999", back=1.5, lay=1.52, market_name="Half Time")

    outcome = _valuator(exchange).value_offer(_offer(4.5, "Liverpool", "Arsenal"), DEFAULTS)

    assert isinstance(outcome, Accepted)
    assert [leg.market_id for leg in outcome.result.mapping.legs] == ["1.100", "1.200"]
    assert any("marketTypeCodes" not in call for call in exchange.catalogue_calls)


def test_btts_legs_use_the_yes_runner() -> None:
    exchange = FakeExchange()
    for team, market_id in (("Arsenal", "1.500"), ("Chelsea", "1.600")):
        exchange.add(
            team,
            market_id,
            back=3.9,
            lay=4.1,
            market_name="Match Odds and Both Teams To Score",
            runners=[
                {"selectionId": 10, "runnerName": f"{team}/No"},
                {"selectionId": 11, "runnerName": f"{team}/Yes"},
            ],
        )
    offer = _offer(20.0, "Arsenal", "Chelsea", kind=OfferKind.BOTH_TO_WIN_AND_ALL_TEAMS_SCORE)

    outcome = _valuator(exchange).value_offer(offer, DEFAULTS)

    assert isinstance(outcome, Accepted)
    assert [leg.runner_id for leg in outcome.result.mapping.legs] == [11, 11]
    assert all(leg.kind == "MATCH_ODDS_AND_BTTS" for leg in outcome.result.mapping.legs)
    assert outcome.result.fair == pytest.approx(16.0)


def test_over_goals_offers_are_not_valued() -> None:
    offer = _offer(3.0, "Arsenal", "Chelsea", kind=OfferKind.OVER_X_EACH_MATCH)
    outcome = _valuator(FakeExchange()).value_offer(offer, DEFAULTS)
    assert isinstance(outcome, Rejected) and outcome.reason is RejectReason.UNSUPPORTED_KIND


def test_alias_resolution_finds_exchange_runner_name() -> None:
    exchange = FakeExchange()
    exchange.add("Paris St-G", "1.700", back=1.49, lay=1.51)
    exchange.add("Arsenal", "1.200", back=2.08, lay=2.12)

    outcome = _valuator(exchange).value_offer(_offer(4.0, "Paris Saint-Germain", "Arsenal"), DEFAULTS)

    assert isinstance(outcome, Accepted)
    assert outcome.result.mapping.legs[0].runner_name == "Paris St-G"


class FlakyCatalogue:
    def __init__(self) -> None:
        self.calls: List[Dict[str, Any]] = []

    def list_market_catalogue(self, market_filter, max_results=200, projection=()):
        self.calls.append(dict(market_filter))
        if "textQuery" in market_filter:
            raise ExchangeError(400, "TOO_MUCH_DATA")
        return [MarketCatalogue(market_id="1.1")]


def test_catalogue_search_degrades_step_by_step() -> None:
    exchange = FlakyCatalogue()
    market_filter = {"eventTypeIds": ["1"], "marketStartTime": {"from": "a", "to": "b"}, "textQuery": "Arsenal"}

    result = safe_list_market_catalogue(exchange, market_filter, 10)

    assert [market.market_id for market in result] == ["1.1"]
    assert "marketStartTime" in exchange.calls[0]
    assert "marketStartTime" not in exchange.calls[1] and "textQuery" in exchange.calls[1]
    assert exchange.calls[2] == {"eventTypeIds": ["1"]}
    assert MATCH_ODDS.name_pattern.search("Match Odds")
