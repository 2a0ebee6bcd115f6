"""
Key-value persistence for encoded collections.

Each entity collection lives in one named slot holding the full encoded
blob. The slot store is the only component touching durable storage;
it knows nothing about records.
"""

import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional


class SqliteSlotStore:
    """
    SQLite-backed slot store.

    One row per slot. Every save replaces the whole blob inside a single
    transaction, so a slot always holds the last complete snapshot.
    """

    def __init__(self, db_path: Path):
        """
        Args:
            db_path: Path to SQLite database file
        """
        self._db_path = Path(db_path)
        self._conn: Optional[sqlite3.Connection] = None
        self._init_db()

    def _init_db(self) -> None:
        """Initialize the SQLite database."""
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(str(self._db_path), check_same_thread=False)
        self._conn.row_factory = sqlite3.Row

        self._conn.execute("""
            CREATE TABLE IF NOT EXISTS slots (
                name TEXT PRIMARY KEY,
                blob BLOB NOT NULL,
                updated_at TEXT NOT NULL
            )
        """)
        self._conn.commit()

    @property
    def path(self) -> Path:
        return self._db_path

    def load(self, slot: str) -> Optional[bytes]:
        """Return the blob stored under ``slot``, or None."""
        cursor = self._conn.execute(
            "SELECT blob FROM slots WHERE name = ?", (slot,)
        )
        row = cursor.fetchone()
        if row is None:
            return None
        return bytes(row["blob"])

    def save(self, slot: str, blob: bytes) -> None:
        """Replace the blob stored under ``slot``."""
        now = datetime.now(timezone.utc).isoformat()
        with self._conn:
            self._conn.execute("""
                INSERT OR REPLACE INTO slots (name, blob, updated_at)
                VALUES (?, ?, ?)
            """, (slot, sqlite3.Binary(blob), now))

    def delete(self, slot: str) -> bool:
        """Remove a slot. Returns True if it existed."""
        with self._conn:
            cursor = self._conn.execute(
                "DELETE FROM slots WHERE name = ?", (slot,)
            )
        return cursor.rowcount > 0

    def list_slots(self) -> list[str]:
        """List slot names."""
        cursor = self._conn.execute("SELECT name FROM slots ORDER BY name")
        return [row["name"] for row in cursor]

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def close(self) -> None:
        """Close the database connection."""
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    def __del__(self):
        self.close()


class MemorySlotStore:
    """Process-local slot store. Nothing survives the process."""

    def __init__(self):
        self._slots: dict[str, bytes] = {}
        self.save_calls = 0

    def load(self, slot: str) -> Optional[bytes]:
        return self._slots.get(slot)

    def save(self, slot: str, blob: bytes) -> None:
        self.save_calls += 1
        self._slots[slot] = bytes(blob)

    def delete(self, slot: str) -> bool:
        return self._slots.pop(slot, None) is not None

    def list_slots(self) -> list[str]:
        return sorted(self._slots)

    def close(self) -> None:
        pass
