"""Build the team alias inventory from a bulk MATCH_ODDS catalogue pull."""

from __future__ import annotations

import json
import logging
from collections import Counter
from collections.abc import Iterable
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List

from edgeviper.exchange.client import BetfairClient
from edgeviper.exchange.pricing import SOCCER_EVENT_TYPE_ID, time_window_filter
from edgeviper.exchange.schemas import MarketCatalogue
from edgeviper.teams.aliases import normalise_name

logger = logging.getLogger(__name__)

SAMPLE_MARKETS_PER_TEAM = 3


def build_team_inventory(catalogue: Iterable[MarketCatalogue], window_hours: int) -> Dict[str, Any]:
    """Group runner labels by normalised key; the most frequent label is canonical."""

    markets = list(catalogue)
    labels_by_key: Dict[str, List[str]] = {}
    frequency: Counter[str] = Counter()
    competitions: Dict[str, set[str]] = {}
    samples: Dict[str, List[Dict[str, Any]]] = {}

    for market in markets:
        competition = market.competition.name if market.competition and market.competition.name else ""
        start = market.market_start_time.isoformat() if market.market_start_time else None
        info = {
            "marketId": market.market_id,
            "marketName": market.market_name,
            "competition": competition,
            "marketStartTime": start,
        }
        for runner in market.runners:
            label = runner.runner_name
            key = normalise_name(label)
            if not key:
                continue
            frequency[label] += 1
            bucket = labels_by_key.setdefault(key, [])
            if label not in bucket:
                bucket.append(label)
            if competition:
                competitions.setdefault(label, set()).add(competition)
            sample = samples.setdefault(label, [])
            if len(sample) < SAMPLE_MARKETS_PER_TEAM:
                sample.append(info)

    entries = []
    for key, labels in labels_by_key.items():
        ordered = sorted(labels, key=lambda label: -frequency[label])
        canonical = ordered[0]
        entries.append(
            {
                "canonical": canonical,
                "normalised": key,
                "aliases": ordered,
                "competitions": sorted(competitions.get(canonical, ())),
                "sampleMarkets": samples.get(canonical, []),
            }
        )
    entries.sort(key=lambda entry: entry["canonical"].lower())

    return {
        "updatedAt": datetime.now(timezone.utc).isoformat(),
        "windowHours": window_hours,
        "totalMarkets": len(markets),
        "totalTeams": len(entries),
        "teams": entries,
    }


def write_team_inventory(client: BetfairClient, hours: int, out: Path) -> Dict[str, Any]:
    market_filter = {
        "eventTypeIds": [SOCCER_EVENT_TYPE_ID],
        "marketTypeCodes": ["MATCH_ODDS"],
        "marketStartTime": time_window_filter(hours),
    }
    catalogue = client.list_market_catalogue(market_filter, 1000, ("EVENT", "RUNNER_DESCRIPTION", "COMPETITION"))
    if not catalogue:
        logger.warning("no markets returned; try a longer --hours window")
    payload = build_team_inventory(catalogue, hours)
    out.parent.mkdir(parents=True, exist_ok=True)
    out.write_text(json.dumps(payload, indent=2), encoding="utf-8")
    logger.info("saved %d teams from %d markets to %s", payload["totalTeams"], payload["totalMarkets"], out)
    return payload
