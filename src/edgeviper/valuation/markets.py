"""Exchange market and runner lookup for offer legs."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Protocol, Sequence

import httpx

from edgeviper.exchange.client import ExchangeError
from edgeviper.exchange.pricing import SOCCER_EVENT_TYPE_ID, time_window_filter
from edgeviper.exchange.schemas import MarketBook, MarketCatalogue, RunnerDescription
from edgeviper.teams.aliases import TeamAliasIndex, normalise_name

logger = logging.getLogger(__name__)

CATALOGUE_PROJECTION = ("EVENT", "RUNNER_DESCRIPTION", "MARKET_START_TIME")
_FAR_FUTURE = datetime.max.replace(tzinfo=timezone.utc)
_YES_SUFFIX = re.compile(r"yes$", re.IGNORECASE)


class ExchangeLookup(Protocol):
    def list_market_catalogue(
        self, market_filter: Dict[str, Any], max_results: int = ..., projection: Sequence[str] = ...
    ) -> List[MarketCatalogue]: ...

    def list_market_book_safe(self, market_ids: Sequence[str]) -> List[MarketBook]: ...


@dataclass(frozen=True)
class MarketSpec:
    market_type: str
    leg_kind: str
    name_pattern: re.Pattern[str]
    yes_runner_only: bool = False


MATCH_ODDS = MarketSpec(
    market_type="MATCH_ODDS",
    leg_kind="MATCH_ODDS",
    name_pattern=re.compile(r"\bmatch\s*odds\b", re.IGNORECASE),
)
MATCH_ODDS_AND_BTTS = MarketSpec(
    market_type="MATCH_ODDS_AND_BOTH_TEAMS_TO_SCORE",
    leg_kind="MATCH_ODDS_AND_BTTS",
    name_pattern=re.compile(r"match\s*odds\s*and\s*both\s*teams\s*to\s*score", re.IGNORECASE),
    yes_runner_only=True,
)


def safe_list_market_catalogue(
    client: ExchangeLookup,
    market_filter: Dict[str, Any],
    max_results: int,
    projection: Sequence[str] = CATALOGUE_PROJECTION,
) -> List[MarketCatalogue]:
    """Catalogue search that degrades instead of failing.

    On error the start-time window is dropped, then the text query; an empty
    list comes back when every attempt fails.
    """

    try:
        return client.list_market_catalogue(market_filter, max_results, projection)
    except (ExchangeError, httpx.HTTPError) as exc:
        logger.debug("catalogue search failed: %s", exc)

    relaxed = {key: value for key, value in market_filter.items() if key != "marketStartTime"}
    for drop in (None, "textQuery"):
        if drop is not None:
            relaxed = {key: value for key, value in relaxed.items() if key != drop}
        try:
            result = client.list_market_catalogue(relaxed, max_results, projection)
        except (ExchangeError, httpx.HTTPError) as exc:
            logger.debug("relaxed catalogue search failed: %s", exc)
            continue
        if result:
            return result
    return []


def _runner_label(runner: RunnerDescription, spec: MarketSpec) -> str | None:
    name = runner.runner_name or ""
    if spec.yes_runner_only:
        if not _YES_SUFFIX.search(name):
            return None
        return name.split("/")[0] or name
    return name


def _start_key(market: MarketCatalogue) -> datetime:
    start = market.start_time()
    if start is None:
        return _FAR_FUTURE
    return start if start.tzinfo else start.replace(tzinfo=timezone.utc)


def _mentions(market: MarketCatalogue, query: str, spec: MarketSpec) -> bool:
    query_key = normalise_name(query)
    if not query_key:
        return False
    for runner in market.runners:
        if not spec.yes_runner_only or _YES_SUFFIX.search(runner.runner_name or ""):
            if query_key in normalise_name(runner.runner_name):
                return True
    return False


def find_market_for_team(
    client: ExchangeLookup,
    aliases: TeamAliasIndex,
    team: str,
    spec: MarketSpec,
    *,
    hours_ahead: int,
    max_results: int = 200,
    fallback_max_results: int = 400,
) -> MarketCatalogue | None:
    """Earliest-starting market of ``spec`` type with a runner naming the team.

    Each alias is tried in turn. When the typed search is empty, an untyped
    search is filtered on market name instead, covering upstream market-type
    taxonomy gaps.
    """

    for query in aliases.queries(team):
        window = time_window_filter(hours_ahead)
        market_filter = {
            "eventTypeIds": [SOCCER_EVENT_TYPE_ID],
            "marketTypeCodes": [spec.market_type],
            "marketStartTime": window,
            "textQuery": query,
        }
        markets = safe_list_market_catalogue(client, market_filter, max_results)
        if not markets:
            untyped = {key: value for key, value in market_filter.items() if key != "marketTypeCodes"}
            markets = [
                market
                for market in safe_list_market_catalogue(client, untyped, fallback_max_results)
                if spec.name_pattern.search(market.market_name or "")
            ]
        candidates = [market for market in markets if _mentions(market, query, spec)]
        if candidates:
            return min(candidates, key=_start_key)
    return None


def find_runner(
    market: MarketCatalogue,
    team: str,
    queries: Sequence[str],
    aliases: TeamAliasIndex,
    spec: MarketSpec,
) -> RunnerDescription | None:
    for runner in market.runners:
        label = _runner_label(runner, spec)
        if label is not None and aliases.runner_matches(label, team, queries):
            return runner
    return None
