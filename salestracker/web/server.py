"""Flask web API for the sales entry matrix and analytics."""

from __future__ import annotations

import logging
import threading
from datetime import datetime
from typing import Any

from flask import Flask, jsonify, request

from salestracker.core.aggregation import AggregationEngine
from salestracker.core.config import Settings, get_settings
from salestracker.core.errors import (
    CatalogValidationError,
    InvalidMonthError,
    NotFoundError,
    OwnerRequiredError,
    StorageError,
)
from salestracker.core.ledger import LedgerWriter
from salestracker.core.loader import SnapshotLoader
from salestracker.core.models import Snapshot
from salestracker.core.months import build_month_options, current_month, parse_month
from salestracker.db.repository import Repository

from .serializers import (
    item_from_json,
    item_to_json,
    matrix_to_json,
    platform_from_json,
    platform_to_json,
    quantities_from_json,
    report_to_json,
    sale_to_json,
)

logger = logging.getLogger(__name__)

OWNER_HEADER = "X-Owner-Id"


def create_app(repository: Repository | None = None, settings: Settings | None = None) -> Flask:
    """Create and configure the Flask application."""
    app = Flask(__name__)
    app.json.sort_keys = False

    settings = settings or get_settings()
    repo = repository or Repository()
    engine = AggregationEngine.from_policy(settings.settlement)
    writer = LedgerWriter(repo, engine)

    def current_owner() -> str:
        owner_id = request.headers.get(OWNER_HEADER, "").strip()
        if not owner_id:
            raise OwnerRequiredError()
        return owner_id

    def requested_month(value: Any = None) -> str:
        month = value or request.args.get("month") or current_month()
        parse_month(month)
        return month

    def load_snapshot(owner_id: str, month: str | None = None) -> Snapshot:
        loader = SnapshotLoader(repo, max_workers=settings.loader.max_workers)
        snapshot = loader.load(owner_id, month)
        if snapshot is None:
            raise StorageError("Snapshot load was cancelled")
        return snapshot

    def json_body() -> dict[str, Any]:
        data = request.get_json(silent=True)
        return data if isinstance(data, dict) else {}

    # ==================== Errors ====================

    @app.errorhandler(OwnerRequiredError)
    def handle_owner_required(e: OwnerRequiredError):
        return jsonify({"error": "Sign-in required"}), 401

    @app.errorhandler(InvalidMonthError)
    def handle_invalid_month(e: InvalidMonthError):
        return jsonify({"error": str(e)}), 400

    @app.errorhandler(CatalogValidationError)
    def handle_validation(e: CatalogValidationError):
        return jsonify({"error": str(e), "problems": e.problems}), 400

    @app.errorhandler(NotFoundError)
    def handle_not_found(e: NotFoundError):
        return jsonify({"error": str(e)}), 404

    @app.errorhandler(StorageError)
    def handle_storage(e: StorageError):
        logger.exception(f"Storage failure: {e}")
        return jsonify({"success": False, "error": "Operation failed, please try again later"}), 500

    # ==================== Routes ====================

    @app.route("/api/health")
    def api_health():
        return jsonify({"status": "ok", "time": datetime.now().isoformat()})

    @app.route("/api/months")
    def api_months():
        """Month picker options, newest first."""
        options = build_month_options(settings.first_selectable_year)
        return jsonify({
            "current": current_month(),
            "options": [{"value": o.value, "label": o.label} for o in options],
        })

    @app.route("/api/matrix")
    def api_matrix():
        """Entry matrix for a month, prefilled from that month's saved sales."""
        owner_id = current_owner()
        month = requested_month()
        snapshot = load_snapshot(owner_id, month)
        quantities = engine.quantities_from_ledger(snapshot.sales, snapshot.platforms)
        result = engine.aggregate_matrix(snapshot.items, snapshot.platforms, quantities, month)
        return jsonify(matrix_to_json(result, snapshot.platforms, quantities))

    @app.route("/api/matrix/preview", methods=["POST"])
    def api_matrix_preview():
        """Live totals for quantities that have not been saved yet."""
        owner_id = current_owner()
        body = json_body()
        month = requested_month(body.get("month"))
        quantities = quantities_from_json(body.get("quantities"))
        snapshot = load_snapshot(owner_id)
        result = engine.aggregate_matrix(snapshot.items, snapshot.platforms, quantities, month)
        return jsonify(matrix_to_json(result, snapshot.platforms, quantities))

    @app.route("/api/sales", methods=["GET"])
    def api_sales_list():
        owner_id = current_owner()
        month = request.args.get("month")
        if month:
            parse_month(month)
        entries = repo.get_sales(owner_id, month)
        return jsonify({"count": len(entries), "items": [sale_to_json(e) for e in entries]})

    @app.route("/api/sales", methods=["POST"])
    def api_sales_save():
        """Commit the entered quantities of a month to the ledger."""
        owner_id = current_owner()
        body = json_body()
        month = requested_month(body.get("month"))
        quantities = quantities_from_json(body.get("quantities"))
        snapshot = load_snapshot(owner_id)
        result = writer.commit(owner_id, snapshot, quantities, month)
        return jsonify({"success": result.success, "month": month, "saved": result.saved_count})

    @app.route("/api/analytics")
    def api_analytics():
        owner_id = current_owner()
        entries = repo.get_sales(owner_id)
        report = engine.build_report(entries, item_count=repo.count_items(owner_id))
        return jsonify(report_to_json(report))

    # ==================== Catalog ====================

    @app.route("/api/items", methods=["GET"])
    def api_items():
        owner_id = current_owner()
        items = repo.get_items(owner_id)
        return jsonify({"count": len(items), "items": [item_to_json(i) for i in items]})

    @app.route("/api/items", methods=["POST"])
    def api_item_create():
        owner_id = current_owner()
        item = repo.save_item(owner_id, item_from_json(request.get_json(silent=True)))
        return jsonify(item_to_json(item)), 201

    @app.route("/api/items/<item_id>", methods=["GET"])
    def api_item_get(item_id: str):
        return jsonify(item_to_json(repo.get_item(current_owner(), item_id)))

    @app.route("/api/items/<item_id>", methods=["PUT"])
    def api_item_update(item_id: str):
        owner_id = current_owner()
        item = repo.save_item(owner_id, item_from_json(request.get_json(silent=True), item_id))
        return jsonify(item_to_json(item))

    @app.route("/api/items/<item_id>", methods=["DELETE"])
    def api_item_delete(item_id: str):
        repo.delete_item(current_owner(), item_id)
        return jsonify({"success": True})

    @app.route("/api/platforms", methods=["GET"])
    def api_platforms():
        owner_id = current_owner()
        platforms = repo.get_platforms(owner_id)
        return jsonify({"count": len(platforms), "items": [platform_to_json(p) for p in platforms]})

    @app.route("/api/platforms", methods=["POST"])
    def api_platform_create():
        owner_id = current_owner()
        platform = repo.save_platform(owner_id, platform_from_json(request.get_json(silent=True)))
        return jsonify(platform_to_json(platform)), 201

    @app.route("/api/platforms/<platform_id>", methods=["GET"])
    def api_platform_get(platform_id: str):
        return jsonify(platform_to_json(repo.get_platform(current_owner(), platform_id)))

    @app.route("/api/platforms/<platform_id>", methods=["PUT"])
    def api_platform_update(platform_id: str):
        owner_id = current_owner()
        platform = repo.save_platform(
            owner_id, platform_from_json(request.get_json(silent=True), platform_id)
        )
        return jsonify(platform_to_json(platform))

    @app.route("/api/platforms/<platform_id>", methods=["DELETE"])
    def api_platform_delete(platform_id: str):
        repo.delete_platform(current_owner(), platform_id)
        return jsonify({"success": True})

    return app


class WebServer:
    """Manages the Flask web server in a background thread."""

    def __init__(self, host: str = "127.0.0.1", port: int = 5050, app: Flask | None = None) -> None:
        self.host = host
        self.port = port
        self._app = app
        self._thread: threading.Thread | None = None
        self._running = False

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def url(self) -> str:
        host = "localhost" if self.host in ("0.0.0.0", "") else self.host
        return f"http://{host}:{self.port}"

    def start(self) -> str:
        """Start the web server. Returns the URL."""
        if self._running:
            return self.url

        if self._app is None:
            self._app = create_app()
        self._running = True

        def run_server():
            logging.getLogger("werkzeug").setLevel(logging.ERROR)
            try:
                self._app.run(
                    host=self.host,
                    port=self.port,
                    debug=False,
                    use_reloader=False,
                    threaded=True,
                )
            except OSError as e:
                logger.error(f"Web server error: {e}")
            finally:
                self._running = False

        self._thread = threading.Thread(target=run_server, daemon=True)
        self._thread.start()

        logger.info(f"Web API started at {self.url}")
        return self.url

    def join(self) -> None:
        """Block until the server thread exits."""
        if self._thread is not None:
            self._thread.join()

    def stop(self) -> None:
        """Stop the web server."""
        self._running = False
        # Flask has no clean shutdown in threaded mode; the daemon thread ends with the process
        logger.info("Web API stopped")
