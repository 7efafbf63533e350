"""SQLite-backed position store."""

import sqlite3
import logging
from pathlib import Path
from datetime import datetime
from typing import List, Optional, Tuple
from contextlib import contextmanager

from .config import DB_PATH, STORE_TIMEOUT_SECONDS
from .exceptions import StorageUnavailable
from .models import PositionRecord
from .position_store import PositionStore

logger = logging.getLogger(__name__)


class SQLitePositionStore(PositionStore):
    """Durable position store keeping one row per entity."""

    def __init__(self, db_path: Path = DB_PATH, timeout: float = STORE_TIMEOUT_SECONDS):
        self.db_path = db_path
        self.timeout = timeout
        self._init_db()

    def _init_db(self):
        """Initialize database schema."""
        with self._get_connection() as conn:
            # WAL lets snapshot readers run alongside a writer
            conn.execute("PRAGMA journal_mode=WAL")
            conn.execute("PRAGMA synchronous=FULL")
            conn.execute("""
                CREATE TABLE IF NOT EXISTS positions (
                    entity_id TEXT PRIMARY KEY,
                    latitude REAL NOT NULL,
                    longitude REAL NOT NULL,
                    observed_at TEXT NOT NULL,
                    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                )
            """)
            conn.commit()
            logger.info(f"Database initialized at {self.db_path}")

    @contextmanager
    def _get_connection(self):
        """
        Get database connection, translating driver errors.

        Any sqlite3.Error (unreachable file, lock wait past ``timeout``,
        corrupt database) rolls back and is raised as StorageUnavailable.
        The original error is kept as ``__cause__`` and logged here only.
        """
        try:
            conn = sqlite3.connect(str(self.db_path), timeout=self.timeout)
        except sqlite3.Error as e:
            logger.error(f"Cannot open database {self.db_path}: {e}")
            raise StorageUnavailable("position store unavailable") from e
        conn.row_factory = sqlite3.Row

        try:
            yield conn
        except sqlite3.Error as e:
            logger.error(f"Database error: {e}")
            try:
                conn.rollback()
            except sqlite3.Error:
                pass  # Connection never opened a transaction
            raise StorageUnavailable("position store unavailable") from e
        finally:
            conn.close()

    @staticmethod
    def _row_to_record(row) -> PositionRecord:
        return PositionRecord(
            entity_id=row["entity_id"],
            latitude=row["latitude"],
            longitude=row["longitude"],
            observed_at=datetime.fromisoformat(row["observed_at"]),
        )

    def put(self, entity_id: str, record: PositionRecord) -> None:
        """Save or replace the position row for entity_id in one statement."""
        with self._get_connection() as conn:
            conn.execute("""
                INSERT INTO positions (entity_id, latitude, longitude, observed_at, updated_at)
                VALUES (?, ?, ?, ?, CURRENT_TIMESTAMP)
                ON CONFLICT(entity_id) DO UPDATE SET
                    latitude = excluded.latitude,
                    longitude = excluded.longitude,
                    observed_at = excluded.observed_at,
                    updated_at = CURRENT_TIMESTAMP
            """, (
                entity_id,
                record.latitude,
                record.longitude,
                record.observed_at.isoformat(),
            ))
            conn.commit()
        logger.debug(f"Saved position for {entity_id}: ({record.latitude}, {record.longitude})")

    def get(self, entity_id: str) -> Optional[PositionRecord]:
        with self._get_connection() as conn:
            cursor = conn.execute("""
                SELECT entity_id, latitude, longitude, observed_at
                FROM positions
                WHERE entity_id = ?
            """, (entity_id,))
            row = cursor.fetchone()
            return self._row_to_record(row) if row else None

    def get_all(self) -> List[Tuple[str, PositionRecord]]:
        with self._get_connection() as conn:
            cursor = conn.execute("""
                SELECT entity_id, latitude, longitude, observed_at
                FROM positions
            """)
            return [(row["entity_id"], self._row_to_record(row)) for row in cursor.fetchall()]

    def __len__(self) -> int:
        with self._get_connection() as conn:
            cursor = conn.execute("SELECT COUNT(*) as count FROM positions")
            return cursor.fetchone()["count"]
