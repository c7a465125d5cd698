"""Best-offer price maths and request time windows."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

from edgeviper.exchange.schemas import ExchangePrices

SOCCER_EVENT_TYPE_ID = "1"


@dataclass(frozen=True)
class PriceQuote:
    mid: float
    back: float
    lay: float
    spread_pct: float
    liquidity: float


def mid_from_best_offers(ex: ExchangePrices | Mapping[str, Any] | None) -> PriceQuote | None:
    """Mid price, spread and top-of-book liquidity from best back/lay offers.

    Returns ``None`` when either side is missing or zero-priced.
    """

    if ex is None:
        return None
    if not isinstance(ex, ExchangePrices):
        ex = ExchangePrices.model_validate(ex)
    if not ex.available_to_back or not ex.available_to_lay:
        return None
    best_back = ex.available_to_back[0]
    best_lay = ex.available_to_lay[0]
    back, lay = float(best_back.price), float(best_lay.price)
    if not back or not lay:
        return None
    mid = (back + lay) / 2
    spread_pct = (lay - back) / mid * 100
    liquidity = float(best_back.size or 0) + float(best_lay.size or 0)
    return PriceQuote(mid=mid, back=back, lay=lay, spread_pct=spread_pct, liquidity=liquidity)


def iso_no_millis(moment: datetime) -> str:
    """UTC ISO-8601 with second precision; the exchange rejects fractional seconds."""

    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def time_window_filter(hours_ahead: float = 72, now: datetime | None = None) -> dict[str, str]:
    start = now or datetime.now(timezone.utc)
    end = start + timedelta(hours=hours_ahead)
    return {"from": iso_no_millis(start), "to": iso_no_millis(end)}
