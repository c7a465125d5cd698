"""Notification orchestration."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Protocol

import httpx

from edgeviper.db.bet_tracker import TrackedBet
from edgeviper.notifications.discord_backend import DiscordWebhookBackend
from edgeviper.staking.engine import min_odds, value_pct

logger = logging.getLogger(__name__)

EMBED_COLOUR = 0x2E7D32


class ApprovedBets(Protocol):
    def approved_unposted(self) -> List[TrackedBet]: ...

    def mark_posted(self, row_number: int) -> None: ...


class NotificationService:
    """Announce approved value bets to members."""

    def __init__(self, discord_backend: DiscordWebhookBackend | None = None) -> None:
        self.discord_backend = discord_backend or DiscordWebhookBackend()

    @staticmethod
    def format_value_bet(bet: TrackedBet) -> Dict[str, Any]:
        fair = bet.fair_odds or 0.0
        pct = value_pct(bet.odds, fair)
        fields = [
            ("Bookie", bet.bookie, True),
            ("Odds", f"{bet.odds:g}", True),
            ("Min Odds", f"{min_odds(fair):.2f}" if fair else "N/A", True),
            ("Fair Odds", f"{fair:.2f}" if fair else "N/A", True),
            ("Value %", f"{pct:.2f}%" if pct is not None else "N/A", True),
            ("Bet", bet.bet_text, False),
            ("Settles", bet.settle_date or "TBC", True),
        ]
        return {
            "title": "New Value Bet",
            "description": f"**{bet.sport}**",
            "color": EMBED_COLOUR,
            "fields": [{"name": name, "value": value, "inline": inline} for name, value, inline in fields],
            "footer": {"text": f"Bet ID: {bet.row_number}"},
        }

    def post_value_bet(self, bet: TrackedBet) -> bool:
        return self.discord_backend.send(self.format_value_bet(bet))


def publish_approved_bets(store: ApprovedBets, service: NotificationService) -> List[int]:
    """Post every approved, unposted bet; failures stay unposted for the next run."""

    posted: List[int] = []
    for bet in store.approved_unposted():
        try:
            sent = service.post_value_bet(bet)
        except httpx.HTTPError as exc:
            logger.error("failed to post bet %s: %s", bet.row_number, exc)
            continue
        if not sent:
            continue
        store.mark_posted(bet.row_number)
        posted.append(bet.row_number)
    return posted
