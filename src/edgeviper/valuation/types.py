"""Valuation results and the persisted leg mapping."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import List, Union

from pydantic import BaseModel, Field

from edgeviper.config import get_settings
from edgeviper.offers.types import OfferKind

settings = get_settings()


class ResolvedLeg(BaseModel):
    """One offer leg matched to an exchange market and runner, with its price."""

    kind: str
    team: str
    market_id: str
    runner_id: int
    runner_name: str
    ko: datetime | None = None
    mid: float
    back: float
    lay: float
    spread_pct: float
    liquidity: float


class BetMapping(BaseModel):
    """Stored with each tracked bet; settlement reads it back."""

    bookie: str
    kind: OfferKind
    legs: List[ResolvedLeg] = Field(default_factory=list)
    latest_ko: datetime | None = None

    def market_ids(self) -> List[str]:
        return [leg.market_id for leg in self.legs if leg.market_id]


@dataclass(frozen=True)
class Thresholds:
    max_spread_pct: float = settings.max_spread_pct
    min_liquidity: float = settings.min_liquidity
    threshold: float = settings.value_threshold


@dataclass(frozen=True)
class ValuationResult:
    fair: float
    rating: float
    mapping: BetMapping


class RejectReason(str, Enum):
    UNSUPPORTED_KIND = "unsupported_kind"
    NO_MARKET = "no_market"
    NO_RUNNER = "no_runner"
    NO_PRICE = "no_price"
    WIDE_SPREAD = "wide_spread"
    LOW_LIQUIDITY = "low_liquidity"
    BELOW_THRESHOLD = "below_threshold"


@dataclass(frozen=True)
class Accepted:
    result: ValuationResult


@dataclass(frozen=True)
class Rejected:
    reason: RejectReason
    team: str | None = None
    detail: str = ""


Valuation = Union[Accepted, Rejected]
