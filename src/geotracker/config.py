"""Configuration management."""

import os
from pathlib import Path
from dotenv import load_dotenv

from . import __version__

# Load environment variables
# Try to load from standard locations
env_paths = [
    Path("/var/lib/geotracker/.env"),  # Production location
    Path(".env"),  # Current directory
    Path(__file__).parent.parent.parent / ".env",  # Project root
]
for env_path in env_paths:
    if env_path.exists():
        load_dotenv(env_path)
        break
else:
    # Fallback: try default load_dotenv() behavior
    load_dotenv()

# Base directory for data
DATA_DIR = Path(os.getenv("DATA_DIR", "/var/lib/geotracker"))
try:
    DATA_DIR.mkdir(parents=True, exist_ok=True)
except (PermissionError, OSError):
    # Fallback to temp directory if we don't have permissions (e.g., during tests)
    import tempfile
    DATA_DIR = Path(tempfile.gettempdir()) / "geotracker"
    DATA_DIR.mkdir(parents=True, exist_ok=True)

# Database path (sqlite backend only)
DB_PATH = Path(os.getenv("DB_PATH", str(DATA_DIR / "positions.db")))

# Position store backend: "memory" or "sqlite"
STORE_BACKEND = os.getenv("STORE_BACKEND", "memory").strip().lower()

# HTTP server
HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", "5004"))

# Upper bound for a single registry/store call made by an HTTP request (seconds)
STORE_TIMEOUT_SECONDS = float(os.getenv("STORE_TIMEOUT_SECONDS", "5.0"))

# Worker threads serving registry calls for the HTTP layer
STORE_WORKERS = int(os.getenv("STORE_WORKERS", "8"))

# Browser origins allowed to call the API ("*" allows any)
CORS_ALLOWED_ORIGINS = [
    origin.strip()
    for origin in os.getenv("CORS_ALLOWED_ORIGINS", "*").split(",")
    if origin.strip()
]

# Position consumer polling cadence (seconds)
POLL_INTERVAL_SECONDS = float(os.getenv("POLL_INTERVAL_SECONDS", "5"))

# Base URL used by the polling client
API_URL = os.getenv("API_URL", "http://localhost:5004").rstrip("/")
API_TIMEOUT = float(os.getenv("API_TIMEOUT", "10"))

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Project information
PROJECT_NAME = "GeoTracker"
APP_VERSION = __version__
