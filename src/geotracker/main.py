"""Main entry points."""

import logging

from .config import (
    API_URL,
    DB_PATH,
    HOST,
    LOG_LEVEL,
    POLL_INTERVAL_SECONDS,
    PORT,
    STORE_BACKEND,
    STORE_TIMEOUT_SECONDS,
)
from .api import create_app
from .client import TrackerClient, watch as watch_locations
from .database import SQLitePositionStore
from .position_store import InMemoryPositionStore, PositionStore
from .registry import RegistryService

logger = logging.getLogger(__name__)


def configure_logging(level: str = LOG_LEVEL):
    """Configure root logging with the service format."""
    log_level = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    # werkzeug logs every request at INFO; pollers make that noisy
    if log_level <= logging.INFO:
        logging.getLogger("werkzeug").setLevel(logging.WARNING)


def build_store(backend: str = STORE_BACKEND) -> PositionStore:
    """Create the position store selected by configuration."""
    if backend == "sqlite":
        return SQLitePositionStore(db_path=DB_PATH, timeout=STORE_TIMEOUT_SECONDS)
    if backend == "memory":
        return InMemoryPositionStore()
    raise ValueError(f"Unknown STORE_BACKEND {backend!r} (expected 'memory' or 'sqlite')")


def main():
    """Run the tracker API server."""
    configure_logging()
    store = build_store()
    registry = RegistryService(store)
    app = create_app(registry)

    logger.info(f"Starting tracker API on http://{HOST}:{PORT}")
    logger.info(f"Store backend: {STORE_BACKEND}")
    app.run(host=HOST, port=PORT, threaded=True)


def watch():
    """Poll the tracker API and log current positions."""
    configure_logging()
    client = TrackerClient(API_URL)
    logger.info(f"Polling {API_URL} every {POLL_INTERVAL_SECONDS}s")
    try:
        watch_locations(client, interval=POLL_INTERVAL_SECONDS)
    except KeyboardInterrupt:
        logger.info("Keyboard interrupt received")


if __name__ == "__main__":
    main()
