"""HTTP API: ingest and snapshot endpoints on top of the registry."""

import atexit
import logging
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeout
from typing import Any, Iterable, Optional, Tuple

from flask import Flask, jsonify, render_template_string, request
from flask_cors import CORS

from .config import (
    APP_VERSION,
    CORS_ALLOWED_ORIGINS,
    POLL_INTERVAL_SECONDS,
    PROJECT_NAME,
    STORE_TIMEOUT_SECONDS,
    STORE_WORKERS,
)
from .dashboard import MAP_PAGE
from .exceptions import InvalidInput, StorageUnavailable
from .registry import RegistryService

logger = logging.getLogger(__name__)

NO_CACHE = "no-store, no-cache, must-revalidate, max-age=0"


def _coerce_coordinate(payload: dict, name: str) -> float:
    value = payload.get(name)
    if value is None:
        raise InvalidInput(f"{name} is required", field=name)
    if isinstance(value, bool):
        raise InvalidInput(f"{name} must be a number", field=name)
    try:
        return float(value)
    except (TypeError, ValueError, OverflowError):
        raise InvalidInput(f"{name} must be a number", field=name)


def parse_report(payload: Any) -> Tuple[str, float, float]:
    """
    Parse an ingest body into (entity_id, latitude, longitude).

    Accepts ``userId`` as an alias of ``entityId``. Coordinates may be
    numbers or numeric strings. Range checks are left to the registry.

    Raises:
        InvalidInput: Body is not an object, or a field is missing or of
            the wrong type.
    """
    if not isinstance(payload, dict):
        raise InvalidInput("expected a JSON object with entityId, latitude, longitude")

    entity_id = payload.get("entityId", payload.get("userId"))
    if entity_id is None:
        raise InvalidInput("entityId is required", field="entityId")
    if not isinstance(entity_id, str):
        raise InvalidInput("entityId must be a string", field="entityId")

    latitude = _coerce_coordinate(payload, "latitude")
    longitude = _coerce_coordinate(payload, "longitude")
    return entity_id, latitude, longitude


def _error(kind: str, message: str, status: int):
    return jsonify({"error": kind, "message": message}), status


def create_app(
    registry: RegistryService,
    store_timeout: float = STORE_TIMEOUT_SECONDS,
    cors_origins: Optional[Iterable[str]] = None,
    poll_interval: float = POLL_INTERVAL_SECONDS,
    workers: int = STORE_WORKERS,
) -> Flask:
    """
    Build the Flask application serving the registry.

    Args:
        registry: RegistryService backing every endpoint
        store_timeout: Seconds a request waits on the registry before
            answering with StorageUnavailable
        cors_origins: Allowed browser origins for /api/* (default from config)
        poll_interval: Refresh cadence of the map page, in seconds
        workers: Size of the thread pool running registry calls

    Returns:
        Configured Flask app
    """
    app = Flask(__name__)
    origins = list(cors_origins) if cors_origins is not None else CORS_ALLOWED_ORIGINS
    CORS(app, resources={r"/api/*": {"origins": origins}})

    executor = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="registry")
    atexit.register(executor.shutdown, wait=False)
    app.extensions["geotracker"] = {"registry": registry, "executor": executor}

    def call_registry(fn, *args):
        # A timed-out call may still finish later; last-write-wins keeps that harmless.
        name = getattr(fn, "__name__", "registry call")
        future = executor.submit(fn, *args)
        try:
            return future.result(timeout=store_timeout)
        except FutureTimeout:
            future.cancel()
            logger.error(f"Registry call {name} timed out after {store_timeout}s")
            raise StorageUnavailable(f"{name} timed out")

    @app.errorhandler(InvalidInput)
    def handle_invalid_input(e: InvalidInput):
        logger.warning(f"Rejected position report: {e}")
        return _error("InvalidInput", str(e), 400)

    @app.errorhandler(StorageUnavailable)
    def handle_storage_unavailable(e: StorageUnavailable):
        logger.error(f"Storage unavailable on {request.method} {request.path}")
        if request.method == "POST":
            return _error("StorageUnavailable", "Failed to update location", 500)
        return _error("StorageUnavailable", "Failed to fetch locations", 500)

    @app.route("/health", methods=["GET"])
    def health():
        return jsonify({"status": "ok", "version": APP_VERSION})

    @app.route("/api/location", methods=["POST"])
    def ingest():
        entity_id, latitude, longitude = parse_report(request.get_json(silent=True))
        call_registry(registry.report_position, entity_id, latitude, longitude)
        return jsonify({"message": "Location updated"}), 200

    @app.route("/api/locations", methods=["GET"])
    def snapshot():
        pairs = call_registry(registry.snapshot)
        response = jsonify([record.to_dict() for _, record in pairs])
        response.headers["Cache-Control"] = NO_CACHE
        return response

    @app.route("/api/locations/<entity_id>", methods=["GET"])
    def lookup(entity_id: str):
        record = call_registry(registry.lookup, entity_id)
        if record is None:
            return _error("NotFound", "Unknown entity", 404)
        response = jsonify(record.to_dict())
        response.headers["Cache-Control"] = NO_CACHE
        return response

    @app.route("/", methods=["GET"])
    def index():
        return render_template_string(
            MAP_PAGE,
            title=PROJECT_NAME,
            snapshot_url="/api/locations",
            poll_ms=int(poll_interval * 1000),
        )

    return app
