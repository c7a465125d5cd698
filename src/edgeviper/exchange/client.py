"""Thin client for the Betfair exchange betting REST API."""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable, Sequence
from typing import Any, Dict, List, Optional

import httpx

from edgeviper.config import get_betfair_credentials, get_settings
from edgeviper.exchange.schemas import EventTypeResult, MarketBook, MarketCatalogue

logger = logging.getLogger(__name__)

DEFAULT_PROJECTION = ("EVENT", "RUNNER_DESCRIPTION")

# Request-body variants for listMarketBook, tried in order. The upstream
# rejects some shapes with a schema error (DSC-0008) depending on the account
# and endpoint version, so each variant is a different body, not a retry.
SAFE_BOOK_PRICE_PROJECTIONS: tuple[dict[str, Any], ...] = (
    {"priceData": ["EX_BEST_OFFERS"]},
    {"priceData": ["EX_BEST_OFFERS"], "virtualise": True},
    {
        "priceData": ["EX_BEST_OFFERS"],
        "virtualise": True,
        "exBestOffersOverrides": {"bestPricesDepth": 1},
    },
)


class ExchangeError(Exception):
    """Non-2xx response from the exchange."""

    def __init__(self, status_code: int, body: str) -> None:
        super().__init__(f"Betfair {status_code}: {body}")
        self.status_code = status_code
        self.body = body


class BetfairClient:
    """Convenient wrapper for the Betfair betting endpoints used by valuation and settlement."""

    def __init__(
        self,
        app_key: Optional[str] = None,
        session_token: Optional[str] = None,
        base_url: Optional[str] = None,
        *,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        settings = get_settings()
        if not (app_key and session_token):
            app_key, session_token = get_betfair_credentials()
        self.base_url = (base_url or settings.betfair_api_url).rstrip("/")
        self._client = httpx.Client(
            timeout=settings.betfair_timeout_seconds,
            transport=transport,
            headers={
                "Content-Type": "application/json",
                "Accept": "application/json",
                "X-Application": app_key,
                "X-Authentication": session_token,
            },
        )
        self._credentials_checked = False

    def __enter__(self) -> "BetfairClient":  # pragma: no cover - context sugar
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def close(self) -> None:
        self._client.close()

    def _request(self, path: str, body: Dict[str, Any]) -> Any:
        url = f"{self.base_url}{path}"
        logger.debug("POST %s body=%s", url, json.dumps(body))
        response = self._client.post(url, json=body)
        if not response.is_success:
            raise ExchangeError(response.status_code, response.text)
        return response.json() if response.content else None

    def list_market_catalogue(
        self,
        market_filter: Dict[str, Any],
        max_results: int = 200,
        projection: Sequence[str] = DEFAULT_PROJECTION,
    ) -> List[MarketCatalogue]:
        """Search markets by event type, market type, start window and free text."""

        body = {"filter": market_filter, "maxResults": max_results, "marketProjection": list(projection)}
        payload = self._request("/listMarketCatalogue/", body) or []
        return [MarketCatalogue.model_validate(item) for item in payload]

    def _list_market_book_raw(self, body: Dict[str, Any]) -> List[MarketBook]:
        payload = self._request("/listMarketBook/", body) or []
        return [MarketBook.model_validate(item) for item in payload]

    def list_market_book(self, market_ids: Iterable[str], with_prices: bool = False) -> List[MarketBook]:
        ids = list(market_ids)
        if not ids:
            return []
        body: Dict[str, Any] = {
            "marketIds": ids,
            "orderProjection": "NONE",
            "matchProjection": "NO_ROLLUP",
        }
        if with_prices:
            body["priceProjection"] = SAFE_BOOK_PRICE_PROJECTIONS[-1]
        return self._list_market_book_raw(body)

    def list_market_book_safe(self, market_ids: Iterable[str]) -> List[MarketBook]:
        """Fetch books with prices, walking the body variants until one is accepted."""

        ids = list(market_ids)
        if not ids:
            return []
        last_index = len(SAFE_BOOK_PRICE_PROJECTIONS) - 1
        for index, projection in enumerate(SAFE_BOOK_PRICE_PROJECTIONS):
            body = {"marketIds": ids, "priceProjection": projection}
            try:
                return self._list_market_book_raw(body)
            except ExchangeError as exc:
                if index == last_index:
                    raise
                logger.debug("listMarketBook variant %d rejected: %s", index, exc)
        return []  # pragma: no cover - loop always returns or raises

    def list_event_types(self) -> List[EventTypeResult]:
        """Cheap call used to confirm the credentials are accepted."""

        payload = self._request("/listEventTypes/", {"filter": {}}) or []
        return [EventTypeResult.model_validate(item) for item in payload]

    def check_credentials(self) -> None:
        """Fail fast when the app key or session token is rejected. Runs once per client."""

        if self._credentials_checked:
            return
        event_types = self.list_event_types()
        logger.info("exchange credentials accepted (%d event types)", len(event_types))
        self._credentials_checked = True
