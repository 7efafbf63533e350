"""Registry service: the single writer and reader of the position store."""

import math
import logging
import threading
from datetime import datetime
from typing import Callable, Dict, List, Optional, Tuple

import pytz

from .exceptions import InvalidInput
from .models import PositionRecord
from .position_store import PositionStore

logger = logging.getLogger(__name__)

LATITUDE_RANGE = (-90.0, 90.0)
LONGITUDE_RANGE = (-180.0, 180.0)


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(pytz.UTC)


def _validate_coordinate(name: str, value, bounds: Tuple[float, float]) -> float:
    # bool is an int subclass; True must not pass as 1.0
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidInput(f"{name} must be a number", field=name)
    try:
        value = float(value)
    except OverflowError:
        raise InvalidInput(f"{name} is out of range", field=name)
    low, high = bounds
    if not math.isfinite(value) or not (low <= value <= high):
        raise InvalidInput(f"{name} must be between {low:g} and {high:g}", field=name)
    return value


class RegistryService:
    """
    Authority for accepting position reports and producing snapshots.

    Validates reports, stamps them with server time and writes them to the
    injected store with last-write-wins semantics: a report always replaces
    the stored record for its entity, whatever that record says.

    Attributes:
        store: PositionStore holding one record per entity
        clock: Callable returning the current aware datetime

    Note:
        Reports for the same entity are serialized by a per-entity lock, and
        stamps never go below the last one issued. Together this keeps
        ``observed_at`` non-decreasing per entity even if the wall clock
        steps back. Errors from the store propagate unchanged.
    """

    def __init__(self, store: PositionStore, clock: Optional[Callable[[], datetime]] = None):
        self.store = store
        self.clock = clock or utc_now
        # One lock per entity ever seen; drop entries here if eviction is added to the store
        self._locks: Dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()
        self._stamp_lock = threading.Lock()
        self._last_stamp: Optional[datetime] = None

    def _lock_for(self, entity_id: str) -> threading.Lock:
        with self._locks_guard:
            lock = self._locks.get(entity_id)
            if lock is None:
                lock = self._locks[entity_id] = threading.Lock()
            return lock

    def _stamp(self) -> datetime:
        with self._stamp_lock:
            now = self.clock()
            if self._last_stamp is not None and now < self._last_stamp:
                now = self._last_stamp
            self._last_stamp = now
            return now

    def report_position(self, entity_id: str, latitude: float, longitude: float) -> PositionRecord:
        """
        Accept a position report for an entity.

        Args:
            entity_id: Non-empty identifier of the tracked entity
            latitude: Degrees in [-90, 90]
            longitude: Degrees in [-180, 180]

        Returns:
            The stored PositionRecord

        Raises:
            InvalidInput: A field is missing, malformed or out of range.
                Nothing is written.
            StorageUnavailable: The store could not be reached.
        """
        if not isinstance(entity_id, str) or not entity_id.strip():
            raise InvalidInput("entityId must be a non-empty string", field="entityId")
        latitude = _validate_coordinate("latitude", latitude, LATITUDE_RANGE)
        longitude = _validate_coordinate("longitude", longitude, LONGITUDE_RANGE)

        with self._lock_for(entity_id):
            record = PositionRecord(
                entity_id=entity_id,
                latitude=latitude,
                longitude=longitude,
                observed_at=self._stamp(),
            )
            self.store.put(entity_id, record)

        logger.debug(f"Accepted position for {entity_id}: ({latitude}, {longitude})")
        return record

    def snapshot(self) -> List[Tuple[str, PositionRecord]]:
        """All current (entity_id, record) pairs, as returned by the store."""
        return self.store.get_all()

    def lookup(self, entity_id: str) -> Optional[PositionRecord]:
        """Current record for one entity, or None if it never reported."""
        return self.store.get(entity_id)
