"""Shared fixtures.

Tests never talk to the real aggregator: sync tests use ``FakeBankClient``
and client tests drive ``GoCardlessClient`` through ``httpx.MockTransport``.
Environment variables that ``AppConfig.load`` reads are cleared so a
developer's shell cannot leak credentials or paths into a test.
"""

from __future__ import annotations

import threading
from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest

from finance_dashboard.snapshot import SnapshotStore

_ENV_VARS = (
    "GC_BAD_API",
    "FINANCE_DASHBOARD_DATA_DIR",
    "GOCARDLESS_SECRET_ID",
    "GOCARDLESS_SECRET_KEY",
    "PORT",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)


class FakeBankClient:
    """In-memory stand-in for ``GoCardlessClient``.

    ``transactions`` maps account id to the booked list, or to an exception
    instance that the fetch raises. ``gate`` (when set) blocks every fetch
    until released, to hold a run in flight.
    """

    def __init__(
        self,
        transactions: Optional[Dict[str, Any]] = None,
        requisitions: Any = None,
        gate: Optional[threading.Event] = None,
    ) -> None:
        self.transactions = transactions or {}
        self.requisitions = requisitions if requisitions is not None else []
        self.gate = gate
        self.fetch_calls: List[str] = []
        self.params: List[Dict[str, Any]] = []
        self.requisition_calls = 0
        self.closed = False

    def list_requisitions(self) -> List[Dict[str, Any]]:
        self.requisition_calls += 1
        if isinstance(self.requisitions, Exception):
            raise self.requisitions
        return self.requisitions

    def get_account_transactions(self, account_id: str, params: Optional[Dict[str, Any]] = None):
        self.fetch_calls.append(account_id)
        self.params.append(dict(params or {}))
        if self.gate is not None:
            self.gate.wait(timeout=5)
        booked = self.transactions.get(account_id, [])
        if isinstance(booked, Exception):
            raise booked
        return {"booked": [dict(t) for t in booked], "pending": []}

    def close(self) -> None:
        self.closed = True


class CountingFactory:
    """Client factory that records how many clients were built."""

    def __init__(self, client: FakeBankClient) -> None:
        self.client = client
        self.calls: List[tuple] = []

    def __call__(self, secret_id: str, secret_key: str) -> FakeBankClient:
        self.calls.append((secret_id, secret_key))
        return self.client


@pytest.fixture
def store(tmp_path: Path) -> SnapshotStore:
    return SnapshotStore.in_directory(tmp_path / "data")


def make_txn(txn_id: str, amount: str, date: str, description: str = "", **extra: Any) -> Dict[str, Any]:
    txn: Dict[str, Any] = {
        "transactionId": txn_id,
        "bookingDate": date,
        "transactionAmount": {"amount": amount, "currency": "EUR"},
    }
    if description:
        txn["remittanceInformationUnstructured"] = description
    txn.update(extra)
    return txn
