"""Flask web interface for the finance dashboard.

Serves the static dashboard files and a thin JSON API over the sync
pipeline and the categorizer.
"""

from __future__ import annotations

import datetime as dt
from pathlib import Path
from typing import Any, Dict, List, Optional

from flask import Flask, jsonify, request, send_from_directory
from werkzeug.exceptions import BadRequest, HTTPException

from .categorizer import categorize, categorize_many
from .config import AppConfig
from .errors import FinanceDashboardError, MissingCredentialsError
from .logging_setup import configure_logging, get_logger
from .scheduler import SyncScheduler
from .snapshot import SnapshotStore
from .status import StatusTracker
from .sync import SyncEngine, gocardless_factory

logger = get_logger(__name__)

SERVICE_NAME = "financial-dashboard"


def build_tracker(cfg: AppConfig, namespace: Optional[str] = None) -> StatusTracker:
    store = SnapshotStore.in_directory(cfg.data_dir, namespace)
    engine = SyncEngine(store, gocardless_factory(cfg.aggregator))
    return StatusTracker(engine)


def _string_list(value: Any) -> List[str]:
    if isinstance(value, str):
        return [v.strip() for v in value.split(",") if v.strip()]
    if isinstance(value, list):
        return [str(v) for v in value if v]
    return []


def _json_object() -> Dict[str, Any]:
    """Request body as a JSON object; an empty body counts as ``{}``."""
    body = request.get_json(silent=True)
    if body is None:
        return {}
    if not isinstance(body, dict):
        raise BadRequest("request body must be a JSON object")
    return body


def create_app(
    config_path: Optional[str] = None,
    tracker: Optional[StatusTracker] = None,
    start_scheduler: bool = False,
) -> Flask:
    cfg = AppConfig.load(_resolve_config_path(config_path))
    configure_logging()

    static_dir = Path(cfg.static_dir)
    app = Flask(__name__, static_folder=str(static_dir), static_url_path="")
    app.config["DASHBOARD"] = cfg
    app.json.sort_keys = False

    tracker = tracker or build_tracker(cfg)
    app.extensions["sync_tracker"] = tracker

    if start_scheduler:
        scheduler = SyncScheduler(tracker, cfg.aggregator, cfg.schedule_days, cfg.schedule_hour)
        scheduler.start()
        app.extensions["sync_scheduler"] = scheduler

    @app.errorhandler(FinanceDashboardError)
    def handle_dashboard_error(exc: FinanceDashboardError):
        status = 400 if isinstance(exc, MissingCredentialsError) else 502
        return jsonify({"error": str(exc)}), status

    @app.errorhandler(HTTPException)
    def handle_http_error(exc: HTTPException):
        return jsonify({"error": exc.description}), exc.code

    @app.route("/health")
    def health():
        return jsonify(
            {
                "status": "ok",
                "service": SERVICE_NAME,
                "ts": dt.datetime.now(dt.timezone.utc).isoformat(),
            }
        )

    @app.route("/")
    def index():
        if (static_dir / "index.html").is_file():
            return send_from_directory(static_dir, "index.html")
        return "Financial Dashboard API"

    @app.route("/api/sync", methods=["POST"])
    def api_sync():
        body = _json_object()
        secret_id = body.get("secretId") or cfg.aggregator.secret_id
        secret_key = body.get("secretKey") or cfg.aggregator.secret_key
        if not secret_id or not secret_key:
            raise MissingCredentialsError()
        status = tracker.trigger(secret_id, secret_key, _string_list(body.get("accountIds")))
        return jsonify(status)

    @app.route("/api/sync/status")
    def api_sync_status():
        return jsonify(tracker.get_status())

    @app.route("/api/transactions")
    def api_transactions():
        snapshot = tracker.engine.store.load()
        transactions = []
        for txn in snapshot.transactions:
            row = dict(txn)
            row["category"] = categorize(row.get("description"), cfg.rules)
            transactions.append(row)
        data = snapshot.to_dict()
        data["transactions"] = transactions
        return jsonify(data)

    @app.route("/api/categorize", methods=["POST"])
    def api_categorize():
        body = _json_object()
        descriptions = body.get("descriptions")
        if not isinstance(descriptions, list):
            return jsonify({"error": "descriptions must be a list of strings"}), 400
        labels = categorize_many([d if isinstance(d, str) else "" for d in descriptions], cfg.rules)
        return jsonify({"categories": labels})

    return app


def _resolve_config_path(config_path: Optional[str]) -> Optional[Path]:
    if not config_path:
        return None
    path = Path(config_path)
    if path.is_absolute():
        return path
    return Path.cwd() / path
