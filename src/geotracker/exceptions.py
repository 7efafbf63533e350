"""Error kinds raised by the registry and its stores."""

from typing import Optional


class GeoTrackerError(Exception):
    """Base exception for all geotracker errors."""


class InvalidInput(GeoTrackerError):
    """Malformed or out-of-range fields in a position report.

    Never retried; nothing is written when this is raised.
    """

    def __init__(self, message: str, field: Optional[str] = None):
        self.field = field
        super().__init__(message)


class StorageUnavailable(GeoTrackerError):
    """The position store could not be reached or did not answer in time.

    Retrying is safe: reports are last-write-wins and snapshots are reads.
    """
