"""Win/lose/void classification of tracked multiples from exchange market books."""

from __future__ import annotations

import math
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Iterable

from edgeviper.exchange.schemas import MarketBook
from edgeviper.valuation.types import ResolvedLeg

AFTER_KICKOFF_GRACE_MIN = 180


class Outcome(str, Enum):
    WIN = "W"
    LOSE = "L"
    VOID = "V"
    PENDING = "P"


def classify_leg(book: MarketBook | None, selection_id: int) -> Outcome:
    """Outcome of one leg given its market book.

    Only a CLOSED market settles. When the selection is missing from a closed
    market, or has no explicit result, it is a loss if any other runner won and
    void otherwise.
    """

    if book is None:
        return Outcome.PENDING
    if (book.status or "").upper() != "CLOSED":
        return Outcome.PENDING

    any_winner = any((runner.status or "").upper() == "WINNER" for runner in book.runners)
    runner = book.runner(selection_id)
    if runner is not None:
        status = (runner.status or "").upper()
        if status == "WINNER":
            return Outcome.WIN
        if status == "LOSER":
            return Outcome.LOSE
    return Outcome.LOSE if any_winner else Outcome.VOID


def settle_bet(legs: Iterable[ResolvedLeg], lookup: Callable[[str], MarketBook | None]) -> Outcome:
    """Reduce leg outcomes to a bet outcome, stopping at the first loser.

    ``lookup`` is only called for legs that are actually evaluated.
    """

    any_void = False
    all_win = True
    evaluated = 0
    for leg in legs:
        evaluated += 1
        outcome = classify_leg(lookup(leg.market_id), leg.runner_id)
        if outcome is Outcome.LOSE:
            return Outcome.LOSE
        if outcome is Outcome.VOID:
            any_void = True
        if outcome is not Outcome.WIN:
            all_win = False
    if any_void:
        return Outcome.VOID
    if all_win and evaluated:
        return Outcome.WIN
    return Outcome.PENDING


def _as_utc(moment: datetime) -> datetime:
    return moment if moment.tzinfo else moment.replace(tzinfo=timezone.utc)


def _minutes_between(later: datetime, earlier: datetime) -> int:
    return math.floor((later - earlier).total_seconds() / 60 + 0.5)


def is_eligible(
    latest_ko: datetime | None,
    now: datetime,
    before_min: int,
    after_min: int,
) -> bool:
    """Whether a bet is close enough to kickoff to be worth checking."""

    if latest_ko is None:
        return True
    ko, now = _as_utc(latest_ko), _as_utc(now)
    return (
        _minutes_between(ko, now) <= before_min
        and _minutes_between(now, ko) <= after_min + AFTER_KICKOFF_GRACE_MIN
    )
