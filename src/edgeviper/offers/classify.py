"""Bet-text classification for football price boosts."""

from __future__ import annotations

import re
from typing import List

from edgeviper.offers.types import Classification, Leg, OfferKind

MAX_TEAMS = 8
MIN_TEAMS = 2

_NOISE_WORDS = re.compile(r"\b(to\s+win|both\s+to\s+win|win|match|result|either|team|teams)\b", re.IGNORECASE)
_NOISE_PUNCT = re.compile(r"[()\-–•·]")
_ABBREVIATIONS = (
    (re.compile(r"\bMan\.?\s*Utd\b", re.IGNORECASE), "Manchester United"),
    (re.compile(r"\bMan\.?\s*City\b", re.IGNORECASE), "Manchester City"),
    (re.compile(r"\bSpurs\b", re.IGNORECASE), "Tottenham"),
    (re.compile(r"\bPSG\b", re.IGNORECASE), "Paris Saint-Germain"),
)
_CONNECTORS = re.compile(r"\s*(?:&|\+|,|(?<!\S)[x×](?!\S)|\band\b)\s*", re.IGNORECASE)

_ALL_TO_WIN = re.compile(r"^(.*)\s+All\s+To\s+Win\b", re.IGNORECASE)
_OVER_X_EACH_MATCH = re.compile(
    r"Over\s+(\d+(?:\.5)?)\s+Goals?\s+In\s+Each\s+Of\s+(?:[A-Za-z]+[’']s\s+)?(\d+)\s+(.+?)\s+Matches",
    re.IGNORECASE,
)
_BOTH_TO_WIN_ALL_SCORE = re.compile(
    r"^(.*)\s+Both\s+To\s+Win\s*&\s*All\s+(\d+)\s+Teams\s+To\s+Score\b", re.IGNORECASE
)
_PLAYER_PROP = re.compile(r"Both\s+To\s+Score\s+Anytime", re.IGNORECASE)


def _collapse(text: str) -> str:
    return re.sub(r"\s+", " ", text).strip()


def to_title_case(text: str) -> str:
    return re.sub(r"\b\w", lambda m: m.group(0).upper(), _collapse(text).lower())


def normalise_team(raw: str) -> str:
    """Strip market words from a team fragment and expand common short names."""

    if not raw:
        return ""
    cleaned = _NOISE_WORDS.sub("", raw)
    cleaned = _collapse(_NOISE_PUNCT.sub(" ", cleaned))
    for pattern, replacement in _ABBREVIATIONS:
        cleaned = pattern.sub(replacement, cleaned, count=1)
    return to_title_case(cleaned)


def extract_teams(text: str) -> List[str]:
    """Split a team list on connector tokens, normalise and de-duplicate."""

    if not text:
        return []
    parts = [part.strip() for part in _CONNECTORS.split(text)]
    teams: List[str] = []
    seen: set[str] = set()
    for part in parts:
        team = normalise_team(part)
        if len(team) < 3 or not re.search(r"[A-Za-z]", team):
            continue
        if re.search(r"to\s*win", team, re.IGNORECASE):
            continue
        key = team.lower()
        if key in seen:
            continue
        seen.add(key)
        teams.append(team)
    return teams[:MAX_TEAMS]


def is_player_prop(text: str) -> bool:
    return bool(_PLAYER_PROP.search(text))


def classify_all_to_win(text: str) -> Classification | None:
    match = _ALL_TO_WIN.match(text)
    if not match:
        return None
    teams = extract_teams(match.group(1))
    if len(teams) < MIN_TEAMS:
        return None
    legs = tuple(Leg(market="Match Odds", team=team, selection=f"{team} to Win") for team in teams)
    return Classification(kind=OfferKind.ALL_TO_WIN, legs=legs)


def classify_over_x_each_match(text: str) -> Classification | None:
    match = _OVER_X_EACH_MATCH.search(text)
    if not match:
        return None
    goals = float(match.group(1))
    match_count = int(match.group(2))
    competition = match.group(3).strip()
    legs = tuple(Leg(market=f"Over {goals:g} Goals", scope=competition) for _ in range(match_count))
    return Classification(
        kind=OfferKind.OVER_X_EACH_MATCH,
        legs=legs,
        goal_line=goals,
        match_count=match_count,
        competition=competition,
    )


def classify_both_to_win_all_score(text: str) -> Classification | None:
    match = _BOTH_TO_WIN_ALL_SCORE.match(text)
    if not match:
        return None
    teams = extract_teams(match.group(1))
    if len(teams) < MIN_TEAMS:
        return None
    legs = tuple(Leg(market="Match Odds & BTTS", team=team, selection=f"{team}/Yes") for team in teams)
    return Classification(kind=OfferKind.BOTH_TO_WIN_AND_ALL_TEAMS_SCORE, legs=legs)


CLASSIFIERS = (classify_all_to_win, classify_over_x_each_match, classify_both_to_win_all_score)


def classify(text: str) -> Classification | None:
    """First matching classifier wins; unrecognised text returns ``None``."""

    for classifier in CLASSIFIERS:
        result = classifier(text)
        if result is not None:
            return result
    return None
