from __future__ import annotations

import json
from pathlib import Path

import pytest

from conftest import CountingFactory, FakeBankClient, make_txn
from finance_dashboard.snapshot import SnapshotStore
from finance_dashboard.status import StatusTracker
from finance_dashboard.sync import SyncEngine
from finance_dashboard.webapp import create_app


@pytest.fixture
def setup(tmp_path: Path, store: SnapshotStore):
    static = tmp_path / "public"
    static.mkdir()
    (static / "app.js").write_text("console.log('hi')", encoding="utf-8")
    config = tmp_path / "config.json"
    config.write_text(json.dumps({"static_dir": "public", "data_dir": "data"}), encoding="utf-8")

    client = FakeBankClient({"acc": [make_txn("t1", "-3.10", "2025-10-01", "Jumbo Utrecht")]})
    factory = CountingFactory(client)
    tracker = StatusTracker(SyncEngine(store, factory))
    app = create_app(str(config), tracker=tracker)
    app.config["TESTING"] = True
    return app.test_client(), factory


def test_health(setup) -> None:
    http, _ = setup
    body = http.get("/health").get_json()
    assert body["status"] == "ok"
    assert body["service"] == "financial-dashboard"
    assert body["ts"]


def test_index_without_static_page(setup) -> None:
    http, _ = setup
    assert http.get("/").get_data(as_text=True) == "Financial Dashboard API"


def test_static_files_are_served(setup) -> None:
    http, _ = setup
    assert http.get("/app.js").get_data(as_text=True) == "console.log('hi')"


def test_sync_requires_credentials(setup) -> None:
    http, factory = setup
    res = http.post("/api/sync", json={"accountIds": ["acc"]})
    assert res.status_code == 400
    assert "error" in res.get_json()
    assert factory.calls == []


def test_sync_then_status_and_transactions(setup) -> None:
    http, factory = setup

    res = http.post("/api/sync", json={"secretId": "sid", "secretKey": "skey", "accountIds": ["acc"]})
    assert res.status_code == 200
    status = res.get_json()
    assert status["running"] is False
    assert status["lastResult"]["ok"] is True
    assert status["lastResult"]["total"] == 1
    assert factory.calls == [("sid", "skey")]

    assert http.get("/api/sync/status").get_json() == status

    snapshot = http.get("/api/transactions").get_json()
    (txn,) = snapshot["transactions"]
    assert txn["category"] == "Boodschappen"
    assert txn["amount"] == "-3.10"


def test_sync_uses_configured_credentials(setup) -> None:
    http, factory = setup
    app = http.application
    app.config["DASHBOARD"].aggregator.secret_id = "env-id"
    app.config["DASHBOARD"].aggregator.secret_key = "env-key"

    res = http.post("/api/sync", json={"accountIds": "acc"})

    assert res.status_code == 200
    assert factory.calls == [("env-id", "env-key")]


def test_categorize_endpoint(setup) -> None:
    http, _ = setup
    res = http.post("/api/categorize", json={"descriptions": ["ALBERT HEIJN 1234", "nothing", 5]})
    assert res.get_json() == {"categories": ["Boodschappen", "Overig", "Overig"]}


def test_categorize_rejects_bad_body(setup) -> None:
    http, _ = setup
    assert http.post("/api/categorize", json={"descriptions": "x"}).status_code == 400


def test_unknown_route_is_json_404(setup) -> None:
    http, _ = setup
    res = http.get("/nope")
    assert res.status_code == 404
    assert "error" in res.get_json()


def test_bad_schedule_config_still_starts_scheduler(tmp_path: Path, store: SnapshotStore) -> None:
    config = tmp_path / "config.json"
    config.write_text(json.dumps({"schedule_days": [30, 31], "schedule_hour": 25}), encoding="utf-8")
    tracker = StatusTracker(SyncEngine(store, CountingFactory(FakeBankClient())))

    app = create_app(str(config), tracker=tracker, start_scheduler=True)
    scheduler = app.extensions["sync_scheduler"]
    try:
        assert (scheduler.days, scheduler.hour) == ((1, 15), 6)
        assert scheduler._timer is not None
    finally:
        scheduler.stop()


@pytest.mark.parametrize("path", ["/api/sync", "/api/categorize"])
def test_non_object_body_is_rejected(setup, path: str) -> None:
    http, factory = setup
    res = http.post(path, json=["x"])
    assert res.status_code == 400
    assert res.get_json() == {"error": "request body must be a JSON object"}
    assert factory.calls == []
