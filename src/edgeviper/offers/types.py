"""Dataclasses for scraped price-boost offers."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Tuple


class OfferKind(str, Enum):
    ALL_TO_WIN = "ALL_TO_WIN"
    OVER_X_EACH_MATCH = "OVER_X_EACH_MATCH"
    BOTH_TO_WIN_AND_ALL_TEAMS_SCORE = "BOTH_TO_WIN_AND_ALL_TEAMS_SCORE"


@dataclass(frozen=True)
class Leg:
    market: str
    team: str | None = None
    selection: str | None = None
    scope: str | None = None

    @property
    def identity(self) -> str:
        return (self.team or self.market).lower()


@dataclass(frozen=True)
class Classification:
    kind: OfferKind
    legs: Tuple[Leg, ...]
    goal_line: float | None = None
    match_count: int | None = None
    competition: str | None = None


@dataclass(frozen=True)
class BoostOffer:
    bookie: str
    sport: str
    kind: OfferKind
    bet_text: str
    boosted_odds: float
    legs: Tuple[Leg, ...]
    source_url: str = ""
    signature: str = ""
    offer_type: str = "Price Boost"
    goal_line: float | None = None
    match_count: int | None = None
    competition: str | None = None
