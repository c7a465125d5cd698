"""Environment-driven configuration helpers for EdgeViper."""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path

from pydantic import AnyUrl, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration loaded from environment variables or .env files."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    database_url: AnyUrl | str = Field(default="sqlite:///./edgeviper.db")

    betfair_app_key: str = Field(default="", validation_alias="BETFAIR_APP_KEY")
    betfair_session_token: str = Field(default="", validation_alias="BETFAIR_SESSION_TOKEN")
    betfair_api_url: str = Field(default="https://api.betfair.com/exchange/betting/rest/v1.0")
    betfair_timeout_seconds: float = Field(default=30.0, gt=0)

    hours_ahead: int = Field(default=120, ge=1)
    max_spread_pct: float = Field(default=20.0, ge=0.0)
    min_liquidity: float = Field(default=50.0, ge=0.0)
    value_threshold: float = Field(default=1.05, ge=0.0)
    catalogue_max_results: int = Field(default=200, ge=1, le=1000)
    catalogue_fallback_max_results: int = Field(default=400, ge=1, le=1000)

    near_before_min: int = Field(default=120, ge=0)
    near_after_min: int = Field(default=30, ge=0)
    max_markets_per_call: int = Field(default=40, ge=1)

    alias_inventory_path: Path = Field(default=Path("data/soccer_teams.json"))

    snapshot_dir: Path = Field(default=Path("snapshots"))
    headless: bool = Field(default=True, validation_alias="HEADLESS")
    bookie_home_url: str = Field(default="https://sports.williamhill.com/")

    dry_run: bool = Field(default=False, validation_alias="DRY_RUN")
    debug: bool = Field(default=False, validation_alias="DEBUG")
    log_level: str = Field(default="", validation_alias="LOG_LEVEL")

    discord_webhook_url: str = Field(default="", validation_alias="DISCORD_WEBHOOK_URL")
    bot_webhook_key: str = Field(default="", validation_alias="BOT_WEBHOOK_KEY")
    min_odds_margin: float = Field(default=1.05, ge=1.0)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached application settings."""

    return Settings()  # type: ignore[call-arg]


def get_betfair_credentials() -> tuple[str, str]:
    """Return the Betfair app key and session token or raise a helpful error."""

    settings = get_settings()
    app_key = os.getenv("BETFAIR_APP_KEY") or settings.betfair_app_key
    session = os.getenv("BETFAIR_SESSION_TOKEN") or settings.betfair_session_token
    if not app_key or not session:
        raise RuntimeError(
            "Missing BETFAIR_APP_KEY or BETFAIR_SESSION_TOKEN. "
            "Set both in .env for local dev or in the scheduler environment."
        )
    return app_key, session


def get_webhook_key() -> str:
    key = os.getenv("BOT_WEBHOOK_KEY") or get_settings().bot_webhook_key
    if not key:
        raise RuntimeError("BOT_WEBHOOK_KEY is not configured. Set it in your environment.")
    return key
