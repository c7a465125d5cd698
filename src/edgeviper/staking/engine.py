"""Stake recommendations for tracked value bets."""

from __future__ import annotations

import math

from edgeviper.config import get_settings
from edgeviper.db.users import StakingPreferences

settings = get_settings()


def implied_probability(fair_odds: float) -> float:
    return 1.0 / fair_odds if fair_odds > 0 else 0.0


def kelly_stake(prob: float, decimal_odds: float, bankroll: float, fraction: float) -> float:
    b = decimal_odds - 1
    if b <= 0:
        return 0.0
    edge = (prob * decimal_odds - 1) / b
    return max(math.floor(edge * bankroll * fraction), 0)


def stake_to_win(target: float, decimal_odds: float) -> float:
    """Whole-unit stake returning at least ``target`` profit."""

    b = decimal_odds - 1
    if b <= 0 or target <= 0:
        return 0.0
    stake = round(target / b)
    if stake * b < target:
        stake += 1
    return float(stake)


def recommended_stake(prefs: StakingPreferences, odds: float, fair_odds: float | None) -> float:
    if prefs.staking_mode == "flat":
        return max(prefs.flat_stake, 0.0)
    if prefs.staking_mode == "stw":
        return stake_to_win(prefs.stw_amount, odds)
    fraction = min(max(prefs.kelly_pct, 0.0), 100.0) / 100
    return float(kelly_stake(implied_probability(fair_odds or 0.0), odds, prefs.bankroll, fraction))


def min_odds(fair_odds: float, margin: float | None = None) -> float:
    """Lowest bookmaker price still worth taking, rounded down to 2 dp."""

    margin = settings.min_odds_margin if margin is None else margin
    return math.floor(fair_odds * margin * 100) / 100


def value_pct(odds: float, fair_odds: float | None) -> float | None:
    if not fair_odds:
        return None
    return odds / fair_odds * 100
