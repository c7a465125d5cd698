"""Pydantic schemas for the EdgeViper API."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field


class UserSettingsPayload(BaseModel):
    discord_id: str = Field(min_length=1)
    staking_mode: Literal["flat", "kelly", "stw"] = "flat"
    bankroll: float | None = Field(default=None, ge=0)
    kelly_pct: float | None = Field(default=None, ge=0)
    flat_stake: float | None = Field(default=None, ge=0)
    stw_amount: float | None = Field(default=None, ge=0)


class UserStakeRequest(BaseModel):
    discord_id: str = Field(min_length=1)
    bet_id: str = Field(min_length=1)
    stake: float = Field(ge=0)
    odds: float | None = Field(default=None, gt=1)
    notes: str | None = None


class UserStakeResponse(BaseModel):
    discord_id: str
    bet_id: str
    stake: float
    odds: float | None = None
    notes: str | None = None
    updated_at: datetime | None = None


class StakeQuoteResponse(BaseModel):
    discord_id: str
    bet_id: str
    staking_mode: str
    odds: float
    fair_odds: float | None
    min_odds: float | None
    value_pct: float | None
    recommended_stake: float
    previous_stake: float | None = None
