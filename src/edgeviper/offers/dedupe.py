"""Offer signatures and same-day de-duplication."""

from __future__ import annotations

import hashlib
from collections.abc import Iterable
from datetime import date, datetime, timezone

from edgeviper.offers.types import BoostOffer, Leg, OfferKind


def make_offer_signature(sport: str, kind: OfferKind, legs: Iterable[Leg], day: date | None = None) -> str:
    """SHA-1 of sport, kind, sorted leg identities and the UTC day bucket."""

    day = day or datetime.now(timezone.utc).date()
    leg_key = "+".join(sorted(leg.identity for leg in legs))
    payload = f"{sport or 'Football'}|{kind.value}|{leg_key}|{day.isoformat()}"
    return hashlib.sha1(payload.encode("utf-8")).hexdigest()


def pick_best_by_signature(offers: Iterable[BoostOffer]) -> list[BoostOffer]:
    """Keep one offer per signature, preferring the higher boosted price."""

    best: dict[str, BoostOffer] = {}
    for offer in offers:
        key = offer.signature or make_offer_signature(offer.sport, offer.kind, offer.legs)
        current = best.get(key)
        if current is None or offer.boosted_odds > current.boosted_odds:
            best[key] = offer
    return list(best.values())
