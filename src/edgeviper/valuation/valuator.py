"""Fair-price valuation of boost offers against exchange mid prices."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import List

from edgeviper.config import get_settings
from edgeviper.exchange.pricing import PriceQuote, mid_from_best_offers
from edgeviper.offers.types import BoostOffer, OfferKind
from edgeviper.teams.aliases import TeamAliasIndex
from edgeviper.valuation.markets import (
    MATCH_ODDS,
    MATCH_ODDS_AND_BTTS,
    ExchangeLookup,
    MarketSpec,
    find_market_for_team,
    find_runner,
)
from edgeviper.valuation.types import (
    Accepted,
    BetMapping,
    Rejected,
    RejectReason,
    ResolvedLeg,
    Thresholds,
    Valuation,
    ValuationResult,
)

logger = logging.getLogger(__name__)

MARKET_SPECS = {
    OfferKind.ALL_TO_WIN: MATCH_ODDS,
    OfferKind.BOTH_TO_WIN_AND_ALL_TEAMS_SCORE: MATCH_ODDS_AND_BTTS,
}


def combine_fair_price(legs: List[ResolvedLeg]) -> float:
    """Product of leg mid prices, treating legs as independent."""

    fair = 1.0
    for leg in legs:
        fair *= leg.mid
    return fair


def _as_utc(moment: datetime) -> datetime:
    return moment if moment.tzinfo else moment.replace(tzinfo=timezone.utc)


class OfferValuator:
    """Resolves every leg of an offer on the exchange and rates the boosted price.

    A result is produced only when all legs resolve to a market, a runner and
    an admissible price; the first failing leg rejects the whole offer.
    """

    def __init__(
        self,
        client: ExchangeLookup,
        aliases: TeamAliasIndex,
        hours_ahead: int | None = None,
    ) -> None:
        settings = get_settings()
        self.client = client
        self.aliases = aliases
        self.hours_ahead = hours_ahead or settings.hours_ahead
        self.max_results = settings.catalogue_max_results
        self.fallback_max_results = settings.catalogue_fallback_max_results

    def _quote(self, market_id: str, selection_id: int) -> PriceQuote | None:
        books = self.client.list_market_book_safe([market_id])
        if not books:
            return None
        runner = books[0].runner(selection_id)
        if runner is None or runner.ex is None:
            return None
        return mid_from_best_offers(runner.ex)

    def _resolve_leg(self, team: str, spec: MarketSpec, thresholds: Thresholds) -> ResolvedLeg | Rejected:
        market = find_market_for_team(
            self.client,
            self.aliases,
            team,
            spec,
            hours_ahead=self.hours_ahead,
            max_results=self.max_results,
            fallback_max_results=self.fallback_max_results,
        )
        if market is None:
            return Rejected(RejectReason.NO_MARKET, team, f"no {spec.market_type} market")
        queries = self.aliases.queries(team)
        runner = find_runner(market, team, queries, self.aliases, spec)
        if runner is None:
            return Rejected(RejectReason.NO_RUNNER, team, f"queries={queries}")
        quote = self._quote(market.market_id, runner.selection_id)
        if quote is None:
            return Rejected(RejectReason.NO_PRICE, team, f"market {market.market_id}")
        if quote.spread_pct > thresholds.max_spread_pct:
            return Rejected(RejectReason.WIDE_SPREAD, team, f"spread {quote.spread_pct:.1f}%")
        if quote.liquidity < thresholds.min_liquidity:
            return Rejected(RejectReason.LOW_LIQUIDITY, team, f"liquidity {quote.liquidity:.0f}")
        return ResolvedLeg(
            kind=spec.leg_kind,
            team=team,
            market_id=market.market_id,
            runner_id=runner.selection_id,
            runner_name=runner.runner_name,
            ko=market.start_time(),
            mid=quote.mid,
            back=quote.back,
            lay=quote.lay,
            spread_pct=quote.spread_pct,
            liquidity=quote.liquidity,
        )

    def value_offer(self, offer: BoostOffer, thresholds: Thresholds | None = None) -> Valuation:
        thresholds = thresholds or Thresholds()
        spec = MARKET_SPECS.get(offer.kind)
        if spec is None:
            return Rejected(RejectReason.UNSUPPORTED_KIND, detail=offer.kind.value)

        legs: List[ResolvedLeg] = []
        latest_ko: datetime | None = None
        for leg in offer.legs:
            team = leg.team or ""
            resolved = self._resolve_leg(team, spec, thresholds)
            if isinstance(resolved, Rejected):
                logger.debug("skip %r: %s %s %s", offer.bet_text, resolved.reason.value, team, resolved.detail)
                return resolved
            if resolved.ko is not None:
                ko = _as_utc(resolved.ko)
                latest_ko = ko if latest_ko is None else max(latest_ko, ko)
            legs.append(resolved)

        fair = combine_fair_price(legs)
        rating = offer.boosted_odds / fair if fair else 0.0
        if not rating >= thresholds.threshold:
            logger.debug("skip %r: rating %.3f below %.3f", offer.bet_text, rating, thresholds.threshold)
            return Rejected(RejectReason.BELOW_THRESHOLD, detail=f"rating {rating:.3f}")

        mapping = BetMapping(bookie=offer.bookie, kind=offer.kind, legs=legs, latest_ko=latest_ko)
        return Accepted(ValuationResult(fair=fair, rating=rating, mapping=mapping))
