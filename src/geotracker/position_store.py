"""Position store contract and in-memory implementation."""

import logging
import threading
from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Tuple

from .models import PositionRecord

logger = logging.getLogger(__name__)


class PositionStore(ABC):
    """
    Mapping from entity id to its latest PositionRecord.

    Implementations must make ``put`` atomic per key and ``get_all`` a
    point-in-time snapshot of whole records. Failures to reach the
    underlying storage are raised as StorageUnavailable.
    """

    @abstractmethod
    def put(self, entity_id: str, record: PositionRecord) -> None:
        """Replace the record for entity_id, creating it if absent."""

    @abstractmethod
    def get(self, entity_id: str) -> Optional[PositionRecord]:
        """Get the current record for entity_id, or None."""

    @abstractmethod
    def get_all(self) -> List[Tuple[str, PositionRecord]]:
        """Get all (entity_id, record) pairs. Order is unspecified."""

    @abstractmethod
    def __len__(self) -> int:
        """Number of tracked entities."""


class InMemoryPositionStore(PositionStore):
    """
    In-memory position store.

    Holds the latest record for each entity in a dict guarded by a lock.
    Records are immutable, so swapping the dict entry is the whole write.

    Note:
        Contents are lost on restart. Use SQLitePositionStore for a store
        that survives the process.
    """

    def __init__(self):
        self.positions: Dict[str, PositionRecord] = {}
        self._lock = threading.Lock()

    def put(self, entity_id: str, record: PositionRecord) -> None:
        with self._lock:
            self.positions[entity_id] = record
        logger.debug(f"Stored position for {entity_id}: ({record.latitude}, {record.longitude})")

    def get(self, entity_id: str) -> Optional[PositionRecord]:
        with self._lock:
            return self.positions.get(entity_id)

    def get_all(self) -> List[Tuple[str, PositionRecord]]:
        with self._lock:
            return list(self.positions.items())

    def __len__(self) -> int:
        with self._lock:
            return len(self.positions)
