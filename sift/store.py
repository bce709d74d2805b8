"""
Sift snapshot storage backend (SQLite).

The whole tree is stored as one JSON document in a key/value table. The
key carries the schema version: when the Card/Box shape changes the key
changes too, so an old snapshot is simply never read back. There is no
migration.
"""
import json
import logging
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from .schema import Box, Layout

logger = logging.getLogger(__name__)

# Schema version key per layout. Stack cards have no px/py.
SCHEMA_KEYS = {
    Layout.STACK: "sift_root_v1",
    Layout.SPATIAL: "sift_root_v2",
}

DEFAULT_DB = Path.home() / ".local" / "share" / "sift" / "sift.db"


def key_for(layout: Layout) -> str:
    return SCHEMA_KEYS[layout]


def _connect(db_path: str) -> sqlite3.Connection:
    """Open a connection in WAL mode."""
    conn = sqlite3.connect(db_path)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode = WAL")
    return conn


class SnapshotStore:
    """SQLite-backed store for whole-tree snapshots."""

    def __init__(self, db_path: str = None, key: str = SCHEMA_KEYS[Layout.SPATIAL]):
        """Initialize store and create the table if needed."""
        if db_path is None:
            db_path = str(DEFAULT_DB)
        db_path = str(Path(db_path).expanduser())
        self.db_path = db_path
        self.key = key
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self._init_schema()

    def _init_schema(self):
        with _connect(self.db_path) as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS snapshots (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
            """)
            conn.commit()

    def save(self, root: Box) -> bool:
        """Write the tree under the current key. Failures are logged, never raised."""
        try:
            payload = json.dumps(root.to_dict(), ensure_ascii=False)
            with _connect(self.db_path) as conn:
                conn.execute(
                    "INSERT OR REPLACE INTO snapshots (key, value, updated_at) VALUES (?, ?, ?)",
                    (self.key, payload, datetime.now(timezone.utc).isoformat()),
                )
                conn.commit()
            return True
        except (sqlite3.Error, TypeError, ValueError) as e:
            logger.error(f"Error saving snapshot {self.key}: {e}")
            return False

    def load(self) -> Optional[Box]:
        """Read the tree under the current key. None if absent or undecodable."""
        try:
            with _connect(self.db_path) as conn:
                row = conn.execute(
                    "SELECT value FROM snapshots WHERE key = ?",
                    (self.key,)
                ).fetchone()
        except sqlite3.Error as e:
            logger.error(f"Error reading snapshot {self.key}: {e}")
            return None

        if not row:
            return None

        try:
            return Box.from_dict(json.loads(row["value"]))
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            logger.warning(f"Discarding undecodable snapshot {self.key}: {e}")
            return None

    def clear(self) -> bool:
        """Delete the snapshot under the current key."""
        try:
            with _connect(self.db_path) as conn:
                conn.execute("DELETE FROM snapshots WHERE key = ?", (self.key,))
                conn.commit()
            return True
        except sqlite3.Error as e:
            logger.error(f"Error clearing snapshot {self.key}: {e}")
            return False

    def updated_at(self) -> Optional[str]:
        """ISO timestamp of the last save under the current key."""
        try:
            with _connect(self.db_path) as conn:
                row = conn.execute(
                    "SELECT updated_at FROM snapshots WHERE key = ?",
                    (self.key,)
                ).fetchone()
            return row["updated_at"] if row else None
        except sqlite3.Error as e:
            logger.error(f"Error reading snapshot time {self.key}: {e}")
            return None
