"""Local queue of shares waiting for remote processing.

This module provides:
- QueueState: Lifecycle of a queued share
- QueuedShare: A share stored locally, with its sync bookkeeping
- ShareQueue: Thread-safe SQLite-backed queue

Persistence (SQLite):
    Every operation (put/mark/prune) commits immediately, so a share
    accepted by put() survives the app being closed mid-upload. WAL mode
    and an RLock make concurrent append/remove from several pipeline runs
    safe.
"""

from __future__ import annotations

import logging
import sqlite3
import threading
import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from notecompanion.client.pipeline.types import SharedFile

logger = logging.getLogger(__name__)


class QueueState(str, Enum):
    """Lifecycle of a queued share."""

    PENDING = "pending"
    SYNCED = "synced"


@dataclass
class QueuedShare:
    """A share persisted locally.

    Attributes:
        id: Local identifier.
        shared: The original share descriptor.
        local_path: Local copy of the content (owned by the queue).
        created_at: Unix timestamp when the share was accepted.
        attempts: Number of failed sync attempts.
        last_error: Error of the last failed attempt.
        state: PENDING until processed remotely, then SYNCED.
        file_id: Remote identifier once synced.
    """

    shared: SharedFile
    local_path: Path
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    created_at: float = field(default_factory=time.time)
    attempts: int = 0
    last_error: str | None = None
    state: QueueState = QueueState.PENDING
    file_id: str | None = None

    def to_shared_file(self) -> SharedFile:
        """Share descriptor pointing at the local copy."""
        return SharedFile(
            uri=self.local_path.as_uri(),
            mime_type=self.shared.mime_type,
            name=self.shared.name,
            text=self.shared.text,
        )

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> QueuedShare:
        """Create QueuedShare from database row."""
        return cls(
            id=row["id"],
            shared=SharedFile(
                uri=row["uri"],
                mime_type=row["mime_type"],
                name=row["name"],
                text=row["text"],
            ),
            local_path=Path(row["local_path"]),
            created_at=row["created_at"],
            attempts=row["attempts"],
            last_error=row["last_error"],
            state=QueueState(row["state"]),
            file_id=row["file_id"],
        )


class ShareQueue:
    """Thread-safe, SQLite-persisted queue of local shares.

    Items are returned in arrival order.
    """

    def __init__(self, db_path: Path) -> None:
        """Open (or create) the queue database.

        Args:
            db_path: Path to SQLite database file.
        """
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.RLock()
        self._conn = sqlite3.connect(
            str(self._db_path),
            check_same_thread=False,
            isolation_level=None,  # Autocommit mode
        )
        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._create_tables()
        logger.debug("Opened share queue at %s", self._db_path)

    def _create_tables(self) -> None:
        """Create database tables if they don't exist."""
        self._conn.execute("""
            CREATE TABLE IF NOT EXISTS queued_shares (
                id TEXT PRIMARY KEY,
                uri TEXT NOT NULL,
                name TEXT,
                mime_type TEXT,
                text TEXT,
                local_path TEXT NOT NULL,
                created_at REAL NOT NULL,
                attempts INTEGER NOT NULL DEFAULT 0,
                last_error TEXT,
                state TEXT NOT NULL,
                file_id TEXT
            )
        """)

    def close(self) -> None:
        """Close the database connection."""
        with self._lock:
            self._conn.close()

    def put(self, item: QueuedShare) -> None:
        """Add a share to the queue.

        Args:
            item: The share to persist.
        """
        with self._lock:
            self._conn.execute(
                """
                INSERT OR REPLACE INTO queued_shares
                (id, uri, name, mime_type, text, local_path, created_at,
                 attempts, last_error, state, file_id)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    item.id,
                    item.shared.uri,
                    item.shared.name,
                    item.shared.mime_type,
                    item.shared.text,
                    str(item.local_path),
                    item.created_at,
                    item.attempts,
                    item.last_error,
                    item.state.value,
                    item.file_id,
                ),
            )
        logger.debug("Queued share %s (%s)", item.id, item.shared.name or item.shared.uri)

    def get(self, item_id: str) -> QueuedShare | None:
        """Get a share by id.

        Returns:
            The share, or None if not found.
        """
        with self._lock:
            row = self._conn.execute(
                "SELECT * FROM queued_shares WHERE id = ?", (item_id,)
            ).fetchone()
        if row is None:
            return None
        return QueuedShare.from_row(row)

    def pending(self) -> list[QueuedShare]:
        """List shares still waiting for remote processing, oldest first."""
        with self._lock:
            rows = self._conn.execute(
                "SELECT * FROM queued_shares WHERE state = ? ORDER BY created_at, rowid",
                (QueueState.PENDING.value,),
            ).fetchall()
        return [QueuedShare.from_row(row) for row in rows]

    def mark_failed(self, item_id: str, error: str) -> None:
        """Record a failed sync attempt; the share stays pending."""
        with self._lock:
            self._conn.execute(
                """
                UPDATE queued_shares
                SET attempts = attempts + 1, last_error = ?
                WHERE id = ?
                """,
                (error, item_id),
            )

    def mark_synced(self, item_id: str, file_id: str | None) -> None:
        """Record that a share was processed remotely."""
        with self._lock:
            self._conn.execute(
                """
                UPDATE queued_shares
                SET state = ?, file_id = ?, last_error = NULL
                WHERE id = ?
                """,
                (QueueState.SYNCED.value, file_id, item_id),
            )

    def prune_synced(self, older_than: float) -> int:
        """Delete synced shares accepted before a cutoff.

        Args:
            older_than: Unix timestamp; synced shares created earlier are dropped.

        Returns:
            Number of rows deleted.
        """
        with self._lock:
            cursor = self._conn.execute(
                "DELETE FROM queued_shares WHERE state = ? AND created_at < ?",
                (QueueState.SYNCED.value, older_than),
            )
        if cursor.rowcount:
            logger.debug("Pruned %d synced share(s)", cursor.rowcount)
        return cursor.rowcount

    def __len__(self) -> int:
        """Get number of pending shares."""
        with self._lock:
            row = self._conn.execute(
                "SELECT COUNT(*) FROM queued_shares WHERE state = ?",
                (QueueState.PENDING.value,),
            ).fetchone()
        return int(row[0])

    def stats(self) -> dict[str, int]:
        """Get queue statistics.

        Returns:
            Dictionary with share counts by state
        """
        stats = {"total": 0, "pending": 0, "synced": 0, "failed_attempts": 0}
        with self._lock:
            rows = self._conn.execute(
                "SELECT state, COUNT(*), SUM(attempts) FROM queued_shares GROUP BY state"
            ).fetchall()
        for state, count, attempts in rows:
            stats[state] = count
            stats["total"] += count
            stats["failed_attempts"] += attempts or 0
        return stats
