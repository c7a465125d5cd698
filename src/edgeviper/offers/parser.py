"""Price-boost page parser.

Each boosted-odds button is located anywhere in the document, not inside a
particular heading or section: different site layouts render boost rows
outside the expected container. From the button we walk up to its enclosing
selection row and read only row-local text, so accidental re-nesting of the
DOM cannot merge or drop rows.
"""

from __future__ import annotations

import logging
import re
from datetime import date
from typing import List

from bs4 import BeautifulSoup, Tag

from edgeviper.offers.classify import classify, is_player_prop
from edgeviper.offers.dedupe import make_offer_signature
from edgeviper.offers.types import BoostOffer

logger = logging.getLogger(__name__)

BOOST_BUTTON_SELECTOR = "button.betbutton--enhanced-odds, button.enhanced-offers__button"
ROW_CLASS = "btmarket__selection"
NAME_SELECTOR = ".btmarket__name span"
ODDS_TEXT_SELECTOR = ".betbutton__odds"

MIN_FRACTION_DECIMAL = 1.2
MAX_FRACTION_DECIMAL = 200.0
MIN_DECIMAL_ODDS = 1.01

_FRACTION = re.compile(r"^(\d{1,3})\s*/\s*(\d{1,2})$")
_WAS_SUFFIX = re.compile(r"\s+Was\s+\d+\s*/\s*\d+.*$", re.IGNORECASE)
_TRAILING_PARENS = re.compile(r"\s*\([^)]*\)\s*$")
_LEADING_NUMBER = re.compile(r"^\s*([+-]?\d+(?:\.\d+)?)")


def clean_bet_text(name: str) -> str:
    """Drop the trailing "Was X/Y" previous price and a trailing qualifier like "(90 mins)"."""

    if not name:
        return ""
    text = re.sub(r"\s+", " ", name).strip()
    text = _WAS_SUFFIX.sub("", text).strip()
    return _TRAILING_PARENS.sub("", text).strip()


def fraction_to_decimal(fraction: str | None) -> float | None:
    match = _FRACTION.match((fraction or "").strip())
    if not match:
        return None
    numerator, denominator = float(match.group(1)), float(match.group(2))
    if not denominator:
        return None
    decimal = 1 + numerator / denominator
    if MIN_FRACTION_DECIMAL <= decimal <= MAX_FRACTION_DECIMAL:
        return decimal
    return None


def _attr_float(tag: Tag, name: str) -> float | None:
    value = tag.get(name)
    if isinstance(value, list):
        value = " ".join(value)
    match = _LEADING_NUMBER.match(value or "")
    return float(match.group(1)) if match else None


def button_odds_to_decimal(button: Tag) -> float | None:
    """Boosted decimal odds from data-num/data-denom, else from the fractional odds text."""

    numerator = _attr_float(button, "data-num")
    denominator = _attr_float(button, "data-denom")
    if numerator is not None and denominator is not None and denominator > 0:
        decimal = 1 + numerator / denominator
        return decimal if decimal >= MIN_DECIMAL_ODDS else None
    text = button.get("data-odds")
    if not text:
        odds_node = button.select_one(ODDS_TEXT_SELECTOR)
        text = odds_node.get_text(strip=True) if odds_node else ""
    return fraction_to_decimal(str(text))


def _row_name(row: Tag) -> str:
    spans = row.select(NAME_SELECTOR)
    matched = {id(span) for span in spans}
    outermost = [span for span in spans if not any(id(parent) in matched for parent in span.parents)]
    return " ".join(span.get_text(" ", strip=True) for span in outermost)


def parse_boosts_html(
    html: str,
    source_url: str = "",
    *,
    bookie: str = "William Hill",
    sport: str = "Football",
    today: date | None = None,
) -> List[BoostOffer]:
    """Extract classified boost offers in document order.

    Malformed or unrecognised rows are skipped, never raised.
    """

    soup = BeautifulSoup(html, "html.parser")
    offers: List[BoostOffer] = []
    for button in soup.select(BOOST_BUTTON_SELECTOR):
        row = button.find_parent(class_=ROW_CLASS)
        if row is None:
            continue
        name = clean_bet_text(_row_name(row))
        if not name:
            continue
        if is_player_prop(name):
            logger.debug("skip player prop: %s", name)
            continue
        odds = button_odds_to_decimal(button)
        if odds is None:
            logger.debug("no boosted odds: %s", name)
            continue
        classification = classify(name)
        if classification is None:
            logger.debug("unclassified: %s", name)
            continue
        offers.append(
            BoostOffer(
                bookie=bookie,
                sport=sport,
                kind=classification.kind,
                bet_text=name,
                boosted_odds=odds,
                legs=classification.legs,
                source_url=source_url or "",
                signature=make_offer_signature(sport, classification.kind, classification.legs, today),
                goal_line=classification.goal_line,
                match_count=classification.match_count,
                competition=classification.competition,
            )
        )
    return offers
