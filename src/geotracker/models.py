"""Position record model."""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict


@dataclass(frozen=True)
class PositionRecord:
    """Latest known position of one entity.

    Records are immutable: a store replaces the whole record on every write,
    so readers see either the old record or the new one, never a mix.
    """
    entity_id: str
    latitude: float
    longitude: float
    observed_at: datetime

    def to_dict(self) -> Dict[str, Any]:
        """Wire representation used by the HTTP API."""
        return {
            "entityId": self.entity_id,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "observedAt": self.observed_at.isoformat(),
        }
