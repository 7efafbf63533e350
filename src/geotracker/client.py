"""HTTP client for the tracker API and a polling position consumer."""

import time
import logging
import requests
from datetime import datetime
from typing import Any, Dict, List, Optional

from .config import API_URL, API_TIMEOUT, POLL_INTERVAL_SECONDS
from .exceptions import InvalidInput, StorageUnavailable

logger = logging.getLogger(__name__)


class TrackerClient:
    """Client for the ingest and snapshot endpoints."""

    def __init__(self, base_url: str = API_URL, timeout: float = API_TIMEOUT):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def _check(self, response: requests.Response):
        if response.status_code < 400:
            return
        try:
            message = response.json().get("message") or response.text
        except (ValueError, AttributeError):
            message = response.text
        if response.status_code < 500:
            raise InvalidInput(f"API rejected request ({response.status_code}): {message}")
        raise StorageUnavailable(f"API error {response.status_code}: {message}")

    def _request(self, method: str, path: str, **kwargs) -> requests.Response:
        url = f"{self.base_url}{path}"
        try:
            response = requests.request(method, url, timeout=self.timeout, **kwargs)
        except requests.exceptions.Timeout:
            logger.error(f"Tracker API timeout: {method} {url}")
            raise StorageUnavailable("tracker API timeout")
        except requests.exceptions.ConnectionError:
            logger.error(f"Tracker API connection error: {method} {url}")
            raise StorageUnavailable("tracker API unreachable")
        except requests.exceptions.RequestException as e:
            logger.error(f"Tracker API request failed: {method} {url}: {e}")
            raise StorageUnavailable("tracker API request failed")
        self._check(response)
        return response

    def report_position(self, entity_id: str, latitude: float, longitude: float):
        """Send a position report. Safe to retry on StorageUnavailable."""
        payload = {
            "entityId": entity_id,
            "latitude": latitude,
            "longitude": longitude,
        }
        self._request("POST", "/api/location", json=payload)
        logger.debug(f"Reported position for {entity_id}: ({latitude}, {longitude})")

    def fetch_locations(self) -> List[Dict[str, Any]]:
        """Get the current snapshot as a list of wire records."""
        response = self._request("GET", "/api/locations")
        try:
            locations = response.json()
        except ValueError:
            logger.error("Tracker API returned a non-JSON snapshot")
            raise StorageUnavailable("malformed snapshot response")
        if not isinstance(locations, list):
            logger.error(f"Tracker API returned {type(locations).__name__} instead of a list")
            raise StorageUnavailable("malformed snapshot response")
        return [location for location in locations if isinstance(location, dict)]


def _format_coordinate(value) -> str:
    try:
        return f"{float(value):.6f}"
    except (TypeError, ValueError, OverflowError):
        return "?"


def format_location(location: Dict[str, Any]) -> str:
    """One-line human-readable rendering of a snapshot record."""
    observed = location.get("observedAt")
    try:
        updated = datetime.fromisoformat(observed).strftime("%Y-%m-%d %H:%M:%S %Z")
    except (TypeError, ValueError):
        updated = "unknown"
    return (
        f"{location.get('entityId', '?')}: "
        f"({_format_coordinate(location.get('latitude'))}, "
        f"{_format_coordinate(location.get('longitude'))}) "
        f"last updated {updated.strip()}"
    )


def watch(
    client: TrackerClient,
    interval: float = POLL_INTERVAL_SECONDS,
    iterations: Optional[int] = None,
    sleep=time.sleep,
) -> int:
    """
    Poll the snapshot endpoint on a fixed cadence and log every record.

    Failed polls are logged and retried on the next tick.

    Args:
        client: TrackerClient to poll with
        interval: Seconds between polls
        iterations: Stop after this many polls (None polls forever)
        sleep: Sleep function, replaceable in tests

    Returns:
        Number of successful polls
    """
    successes = 0
    count = 0
    while iterations is None or count < iterations:
        count += 1
        try:
            locations = client.fetch_locations()
        except (StorageUnavailable, InvalidInput) as e:
            logger.warning(f"Poll failed: {e}")
        else:
            successes += 1
            logger.info(f"Tracking {len(locations)} entities")
            for location in locations:
                logger.info(format_location(location))
        if iterations is None or count < iterations:
            sleep(interval)
    return successes
