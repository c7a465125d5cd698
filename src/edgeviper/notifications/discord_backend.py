"""Discord webhook backend."""

from __future__ import annotations

import logging
from typing import Any, Dict

import httpx

from edgeviper.config import get_settings

logger = logging.getLogger(__name__)


class DiscordWebhookBackend:
    """Posts embeds to a Discord channel webhook."""

    def __init__(self, webhook_url: str | None = None, client: httpx.Client | None = None) -> None:
        self.settings = get_settings()
        self.webhook_url = webhook_url if webhook_url is not None else self.settings.discord_webhook_url
        self.enabled = bool(self.webhook_url)
        self.client = client if client else httpx.Client(timeout=10)

    def send(self, embed: Dict[str, Any], content: str = "") -> bool:
        """Post one embed; returns False when the webhook is not configured."""

        if not self.enabled:
            logger.info("[Discord disabled] %s", embed.get("title"))
            return False
        response = self.client.post(self.webhook_url, json={"content": content, "embeds": [embed]})
        response.raise_for_status()
        return True
