"""Snapshot to tracker-row pipelines used by the ``run`` and ``publish`` commands."""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from datetime import date, datetime
from pathlib import Path
from typing import List, Protocol

import httpx
from sqlalchemy.exc import SQLAlchemyError

from edgeviper.db.bet_tracker import NewBetRow
from edgeviper.exchange.client import ExchangeError
from edgeviper.offers.dedupe import pick_best_by_signature
from edgeviper.offers.parser import parse_boosts_html
from edgeviper.offers.snapshot import read_meta_url
from edgeviper.offers.types import BoostOffer, OfferKind
from edgeviper.valuation.types import Accepted, Thresholds, Valuation

logger = logging.getLogger(__name__)


class RowSink(Protocol):
    def append_pending_bet(self, bet: NewBetRow) -> int: ...


class OfferRater(Protocol):
    def value_offer(self, offer: BoostOffer, thresholds: Thresholds | None = None) -> Valuation: ...


@dataclass(frozen=True)
class ValuedOffer:
    bet: str
    boosted: float
    fair: float
    rating: float
    legs: int
    row_number: int | None = None


def ddmmyyyy(moment: date | datetime | None) -> str:
    return moment.strftime("%d/%m/%Y") if moment else ""


def load_snapshot(html_path: Path, source_url: str = "") -> List[BoostOffer]:
    """Parse a saved snapshot; the URL falls back to the sidecar metadata."""

    html_path = Path(html_path)
    html = html_path.read_text(encoding="utf-8")
    url = source_url or read_meta_url(html_path)
    return parse_boosts_html(html, url)


def _write(store: RowSink, row: NewBetRow, dry_run: bool) -> int | None:
    if dry_run:
        payload = asdict(row)
        payload["mapping"] = row.mapping.model_dump(mode="json") if row.mapping else None
        logger.info("[DRY_RUN] Would write row: %s", payload)
        return None
    return store.append_pending_bet(row)


def run_valuation(
    html_path: Path,
    *,
    source_url: str = "",
    thresholds: Thresholds | None = None,
    store: RowSink,
    valuator: OfferRater,
    dry_run: bool = False,
    today: date | None = None,
) -> List[ValuedOffer]:
    """Value every de-duplicated offer in a snapshot and record the accepted ones."""

    thresholds = thresholds or Thresholds()
    html_path = Path(html_path)
    source_url = source_url or read_meta_url(html_path)
    offers = pick_best_by_signature(load_snapshot(html_path, source_url))
    logger.debug("parsed %d boosts from %s", len(offers), html_path)
    today = today or date.today()

    results: List[ValuedOffer] = []
    for offer in offers:
        if offer.kind is OfferKind.OVER_X_EACH_MATCH:
            logger.debug("skip %r: over-goals boosts are not valued yet", offer.bet_text)
            continue
        try:
            outcome = valuator.value_offer(offer, thresholds)
            if not isinstance(outcome, Accepted):
                continue
            valued = outcome.result
            row = NewBetRow(
                date=ddmmyyyy(today),
                bookie=offer.bookie,
                sport=offer.sport,
                bet_text=offer.bet_text,
                settle_date=ddmmyyyy(valued.mapping.latest_ko),
                odds=float(offer.boosted_odds),
                fair_odds=round(valued.fair, 3),
                bookie_url=source_url,
                mapping=valued.mapping,
            )
            row_number = _write(store, row, dry_run)
            if row_number is not None:
                logger.info("row %s added for %r rating %.3f", row_number, offer.bet_text, valued.rating)
        except (ExchangeError, httpx.HTTPError, ValueError, SQLAlchemyError) as exc:
            logger.error("valuation failed for %r: %s", offer.bet_text, exc)
            continue
        results.append(
            ValuedOffer(
                bet=offer.bet_text,
                boosted=offer.boosted_odds,
                fair=valued.fair,
                rating=valued.rating,
                legs=len(valued.mapping.legs),
                row_number=row_number,
            )
        )
    return results


def publish_offers(
    html_path: Path,
    *,
    source_url: str = "",
    store: RowSink,
    dry_run: bool = False,
    today: date | None = None,
) -> List[BoostOffer]:
    """Record de-duplicated offers without pricing them."""

    offers = pick_best_by_signature(load_snapshot(html_path, source_url))
    logger.info("publishing %d de-duplicated offers (dry_run=%s)", len(offers), dry_run)
    today = today or date.today()
    for offer in offers:
        row = NewBetRow(
            date=ddmmyyyy(today),
            bookie=offer.bookie,
            sport=offer.sport,
            bet_text=offer.bet_text,
            settle_date="",
            odds=float(offer.boosted_odds),
            bookie_url=offer.source_url,
        )
        _write(store, row, dry_run)
    return offers
