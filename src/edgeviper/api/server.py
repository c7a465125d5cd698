"""FastAPI backend for EdgeViper member tooling."""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import Depends, FastAPI, Header, HTTPException, Query, status

from edgeviper.api.schemas import (
    StakeQuoteResponse,
    UserSettingsPayload,
    UserStakeRequest,
    UserStakeResponse,
)
from edgeviper.config import get_webhook_key
from edgeviper.db.bet_tracker import BetTrackerStore
from edgeviper.db.users import StakeRecord, StakingPreferences, UserService
from edgeviper.staking.engine import min_odds, recommended_stake, value_pct

logger = logging.getLogger(__name__)

app = FastAPI(
    title="EdgeViper API",
    version="0.1.0",
    description="Member stakes, staking settings and stake quotes for tracked value bets.",
)


def get_user_service() -> UserService:
    return UserService()


def get_bet_store() -> BetTrackerStore:
    return BetTrackerStore()


def require_webhook_key(authorization: str | None = Header(default=None)) -> None:
    token = (authorization or "").removeprefix("Bearer ").strip()
    if not token or token != get_webhook_key():
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")


UsersDep = Annotated[UserService, Depends(get_user_service)]
StoreDep = Annotated[BetTrackerStore, Depends(get_bet_store)]


def _stake_response(record: StakeRecord) -> UserStakeResponse:
    return UserStakeResponse(
        discord_id=record.discord_id,
        bet_id=record.bet_id,
        stake=record.stake,
        odds=record.odds,
        notes=record.notes,
        updated_at=record.updated_at,
    )


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@app.get(
    "/api/user-stakes",
    response_model=list[UserStakeResponse],
    dependencies=[Depends(require_webhook_key)],
)
def list_user_stakes(users: UsersDep, discord_id: str | None = Query(default=None)) -> list[UserStakeResponse]:
    if not discord_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing discord_id")
    return [_stake_response(record) for record in users.list_stakes(discord_id)]


@app.post(
    "/api/user-stakes",
    response_model=UserStakeResponse,
    dependencies=[Depends(require_webhook_key)],
)
def save_user_stake(payload: UserStakeRequest, users: UsersDep) -> UserStakeResponse:
    record = users.save_bet_stake(
        payload.discord_id,
        payload.bet_id,
        payload.stake,
        odds=payload.odds,
        notes=payload.notes,
    )
    logger.info("stake saved for %s on bet %s", payload.discord_id, payload.bet_id)
    return _stake_response(record)


@app.post("/settings-updated", dependencies=[Depends(require_webhook_key)])
def settings_updated(payload: UserSettingsPayload, users: UsersDep) -> dict[str, str]:
    users.save_settings(
        StakingPreferences(
            discord_id=payload.discord_id,
            staking_mode=payload.staking_mode,
            bankroll=payload.bankroll or 0.0,
            kelly_pct=payload.kelly_pct or 0.0,
            flat_stake=payload.flat_stake or 0.0,
            stw_amount=payload.stw_amount or 0.0,
        )
    )
    logger.info("user settings updated for %s", payload.discord_id)
    return {"status": "ok"}


@app.get(
    "/api/stake-quote",
    response_model=StakeQuoteResponse,
    dependencies=[Depends(require_webhook_key)],
)
def stake_quote(
    users: UsersDep,
    store: StoreDep,
    discord_id: str = Query(min_length=1),
    bet_id: str = Query(min_length=1),
) -> StakeQuoteResponse:
    prefs = users.get_settings(discord_id)
    if prefs is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No staking settings for user")
    bet = store.get(int(bet_id)) if bet_id.isdigit() else None
    if bet is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Bet not found")

    previous = users.get_user_bet(discord_id, bet_id)
    odds = previous.odds if previous and previous.odds else bet.odds
    return StakeQuoteResponse(
        discord_id=discord_id,
        bet_id=bet_id,
        staking_mode=prefs.staking_mode,
        odds=odds,
        fair_odds=bet.fair_odds,
        min_odds=min_odds(bet.fair_odds) if bet.fair_odds else None,
        value_pct=value_pct(odds, bet.fair_odds),
        recommended_stake=recommended_stake(prefs, odds, bet.fair_odds),
        previous_stake=previous.stake if previous else None,
    )
