"""Pydantic schemas for the Betfair betting API responses we consume."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class BetfairModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class EventSchema(BetfairModel):
    id: str | None = None
    name: str | None = None
    open_date: datetime | None = None


class CompetitionSchema(BetfairModel):
    id: str | None = None
    name: str | None = None


class RunnerDescription(BetfairModel):
    selection_id: int
    runner_name: str = ""


class MarketCatalogue(BetfairModel):
    market_id: str
    market_name: str = ""
    market_start_time: datetime | None = None
    event: EventSchema | None = None
    competition: CompetitionSchema | None = None
    runners: list[RunnerDescription] = Field(default_factory=list)

    def start_time(self) -> datetime | None:
        """Market start time, falling back to the event open date."""

        if self.market_start_time is not None:
            return self.market_start_time
        return self.event.open_date if self.event else None


class PriceSize(BetfairModel):
    price: float = 0.0
    size: float = 0.0


class ExchangePrices(BetfairModel):
    available_to_back: list[PriceSize] = Field(default_factory=list)
    available_to_lay: list[PriceSize] = Field(default_factory=list)


class RunnerBook(BetfairModel):
    selection_id: int
    status: str | None = None
    ex: ExchangePrices | None = None


class MarketBook(BetfairModel):
    market_id: str
    status: str | None = None
    runners: list[RunnerBook] = Field(default_factory=list)

    def runner(self, selection_id: int) -> RunnerBook | None:
        for runner in self.runners:
            if runner.selection_id == selection_id:
                return runner
        return None


class EventTypeResult(BetfairModel):
    event_type: dict[str, str] = Field(default_factory=dict)
    market_count: int = 0
