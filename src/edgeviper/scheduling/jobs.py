"""Scheduling entry points."""

from __future__ import annotations

from pathlib import Path
from typing import Dict, List

from edgeviper.config import get_settings
from edgeviper.db.bet_tracker import BetTrackerStore
from edgeviper.exchange.client import BetfairClient
from edgeviper.notifications.service import NotificationService, publish_approved_bets
from edgeviper.settlement.worker import SettlementSummary, SettlementWorker
from edgeviper.teams.aliases import TeamAliasIndex
from edgeviper.valuation.pipeline import ValuedOffer, run_valuation
from edgeviper.valuation.types import Thresholds
from edgeviper.valuation.valuator import OfferValuator


def run_valuation_job(
    html_path: Path,
    *,
    source_url: str = "",
    thresholds: Thresholds | None = None,
    dry_run: bool | None = None,
) -> List[ValuedOffer]:
    """Value a saved snapshot against the exchange and record accepted offers."""

    settings = get_settings()
    dry_run = settings.dry_run if dry_run is None else dry_run
    aliases = TeamAliasIndex(settings.alias_inventory_path)
    with BetfairClient() as client:
        client.check_credentials()
        valuator = OfferValuator(client, aliases)
        return run_valuation(
            html_path,
            source_url=source_url,
            thresholds=thresholds,
            store=BetTrackerStore(),
            valuator=valuator,
            dry_run=dry_run,
        )


def run_settlement_job(dry_run: bool | None = None) -> SettlementSummary:
    settings = get_settings()
    dry_run = settings.dry_run if dry_run is None else dry_run
    with BetfairClient() as client:
        client.check_credentials()
        return SettlementWorker(client, BetTrackerStore(), dry_run=dry_run).run_once()


def run_publish_job() -> Dict[str, int]:
    posted = publish_approved_bets(BetTrackerStore(), NotificationService())
    return {"posted": len(posted)}
