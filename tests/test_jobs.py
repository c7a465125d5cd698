"""Scheduled job tests."""

from __future__ import annotations

from typing import List

import pytest

from edgeviper.exchange.client import ExchangeError
from edgeviper.scheduling import jobs


class FakeClient:
    def __init__(self, accepted: bool = True) -> None:
        self.accepted = accepted
        self.calls: List[str] = []

    def __enter__(self) -> "FakeClient":
        return self

    def __exit__(self, *exc) -> None:
        self.calls.append("close")

    def check_credentials(self) -> None:
        self.calls.append("check")
        if not self.accepted:
            raise ExchangeError(400, "INVALID_SESSION_INFORMATION")

    def list_market_book(self, market_ids, with_prices=False):
        self.calls.append("book")
        return []


class EmptyStore:
    def __init__(self) -> None:
        self.scanned = False

    def pending_with_mapping(self):
        self.scanned = True
        return []


def test_settlement_job_checks_credentials_first(monkeypatch) -> None:
    client, store = FakeClient(), EmptyStore()
    monkeypatch.setattr(jobs, "BetfairClient", lambda: client)
    monkeypatch.setattr(jobs, "BetTrackerStore", lambda: store)

    summary = jobs.run_settlement_job(dry_run=True)

    assert client.calls == ["check", "close"]
    assert store.scanned
    assert summary.scanned == 0


def test_rejected_credentials_abort_the_job(monkeypatch) -> None:
    client, store = FakeClient(accepted=False), EmptyStore()
    monkeypatch.setattr(jobs, "BetfairClient", lambda: client)
    monkeypatch.setattr(jobs, "BetTrackerStore", lambda: store)

    with pytest.raises(ExchangeError):
        jobs.run_settlement_job(dry_run=True)
    assert not store.scanned
