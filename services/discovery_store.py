"""
Discovery journal storage
=========================
SQLite-backed, per-user collection of discovery records.

DiscoveryDatabase owns the file, the schema and write serialisation.
DiscoveryStore is the view every caller uses; it reads the signed-in user
from the Session and scopes every query to it.
"""

from __future__ import annotations

import logging
import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Callable, Iterator, List, Optional

from config.settings import Session
from services.errors import NotAuthenticated, StorageError
from services.models import DiscoveryRecord
from utils.image_utils import remove_quietly

logger = logging.getLogger(__name__)

ChangeListener = Callable[[str], None]

_COLUMNS = "id, user_id, plant_name, ai_fact, local_image_path, timestamp"


def _contains_ci(haystack: Optional[str], needle: Optional[str]) -> int:
    return int((needle or "").casefold() in (haystack or "").casefold())


def _to_record(row: sqlite3.Row) -> DiscoveryRecord:
    return DiscoveryRecord(**dict(row))


class DiscoveryDatabase:
    """Thread-safe SQLite handler. One short-lived connection per operation."""

    def __init__(self, database_path: str | Path) -> None:
        self._database_path = str(database_path)
        self._write_lock = threading.Lock()
        self._listeners: List[ChangeListener] = []
        self._listeners_lock = threading.Lock()

        db_path = Path(self._database_path)
        if not db_path.parent.exists():
            db_path.parent.mkdir(parents=True, exist_ok=True)
            logger.info("Created database directory: %s", db_path.parent)
        self.create_tables()

    # --- Connections -----------------------------------------------------
    @contextmanager
    def connection(self) -> Iterator[sqlite3.Connection]:
        conn = sqlite3.connect(self._database_path, timeout=30)
        conn.row_factory = sqlite3.Row
        conn.create_function("contains_ci", 2, _contains_ci, deterministic=True)
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    @contextmanager
    def write(self) -> Iterator[sqlite3.Connection]:
        with self._write_lock, self.connection() as conn:
            yield conn

    def create_tables(self) -> None:
        with self.write() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS discoveries (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id TEXT NOT NULL,
                    plant_name TEXT NOT NULL,
                    ai_fact TEXT NOT NULL DEFAULT '',
                    local_image_path TEXT NOT NULL,
                    timestamp INTEGER NOT NULL
                )
            """)
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_discoveries_user_ts "
                "ON discoveries (user_id, timestamp)"
            )

    # --- Change notification ---------------------------------------------
    def add_listener(self, listener: ChangeListener) -> None:
        with self._listeners_lock:
            self._listeners.append(listener)

    def remove_listener(self, listener: ChangeListener) -> None:
        with self._listeners_lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    def notify_changed(self, user_id: str) -> None:
        with self._listeners_lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(user_id)
            except Exception:
                logger.exception("Discovery change listener failed")


class LiveDiscoveryList:
    """
    Push-based view of one user's journal, newest first.
    Subscribers get the current snapshot immediately and again after every
    insert or delete for that user, whichever store made it.
    """

    def __init__(self, database: DiscoveryDatabase, user_id: Optional[str]):
        self._database = database
        self._user_id = user_id
        self._lock = threading.Lock()
        self._subscribers: List[Callable[[List[DiscoveryRecord]], None]] = []
        self._items: List[DiscoveryRecord] = []
        self._closed = False
        # listen before the first read so no commit falls between the two
        with self._lock:
            database.add_listener(self._on_change)
            self._items = self._load()

    def _load(self) -> List[DiscoveryRecord]:
        if not self._user_id:
            return []
        with self._database.connection() as conn:
            rows = conn.execute(
                f"SELECT {_COLUMNS} FROM discoveries WHERE user_id = ? "
                "ORDER BY timestamp DESC, id DESC",
                (self._user_id,),
            ).fetchall()
        return [_to_record(r) for r in rows]

    def _on_change(self, user_id: str) -> None:
        if user_id != self._user_id:
            return
        with self._lock:
            if self._closed:
                return
            self._items = self._load()
            items = list(self._items)
            subscribers = list(self._subscribers)
        for callback in subscribers:
            callback(items)

    @property
    def items(self) -> List[DiscoveryRecord]:
        with self._lock:
            return list(self._items)

    def subscribe(self, callback: Callable[[List[DiscoveryRecord]], None]) -> None:
        with self._lock:
            self._subscribers.append(callback)
            items = list(self._items)
        callback(items)

    def unsubscribe(self, callback: Callable[[List[DiscoveryRecord]], None]) -> None:
        with self._lock:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

    def close(self) -> None:
        with self._lock:
            self._closed = True
            self._subscribers.clear()
        self._database.remove_listener(self._on_change)

    def __iter__(self):
        return iter(self.items)

    def __len__(self) -> int:
        return len(self.items)

    def __enter__(self) -> "LiveDiscoveryList":
        return self

    def __exit__(self, *exc) -> None:
        self.close()


class DiscoveryStore:
    """Journal operations for the currently signed-in user."""

    def __init__(self, database: DiscoveryDatabase, session: Session):
        self.db = database
        self.session = session

    @property
    def user_id(self) -> Optional[str]:
        return self.session.user_id

    def insert(self, record: DiscoveryRecord) -> int:
        """Persists record under a fresh id (record.id is ignored) and returns the id."""
        user_id = self.user_id
        if not user_id:
            raise NotAuthenticated()
        if record.user_id != user_id:
            raise StorageError("Cannot save a discovery for another user.")

        try:
            with self.db.write() as conn:
                cur = conn.execute(
                    "INSERT INTO discoveries (user_id, plant_name, ai_fact, local_image_path, timestamp) "
                    "VALUES (?, ?, ?, ?, ?)",
                    (record.user_id, record.plant_name, record.ai_fact,
                     record.local_image_path, record.timestamp),
                )
                new_id = int(cur.lastrowid)
        except sqlite3.Error as e:
            raise StorageError(f"Could not save discovery: {e}") from e

        self.db.notify_changed(user_id)
        return new_id

    def get_by_id(self, discovery_id: int) -> Optional[DiscoveryRecord]:
        if not self.user_id:
            return None
        with self.db.connection() as conn:
            row = conn.execute(
                f"SELECT {_COLUMNS} FROM discoveries WHERE id = ? AND user_id = ?",
                (discovery_id, self.user_id),
            ).fetchone()
        return _to_record(row) if row else None

    def delete(self, record: DiscoveryRecord) -> bool:
        """Removes the row, then the image file. Returns True if a row was removed."""
        user_id = self.user_id
        if not user_id or record.id is None:
            return False

        with self.db.write() as conn:
            cur = conn.execute(
                "DELETE FROM discoveries WHERE id = ? AND user_id = ?",
                (record.id, user_id),
            )
            removed = cur.rowcount > 0

        if removed:
            try:
                remove_quietly(record.local_image_path)
            except OSError as e:
                logger.warning("Could not delete image %s: %s", record.local_image_path, e)
            self.db.notify_changed(user_id)
        return removed

    def search(self, query: str) -> List[DiscoveryRecord]:
        if not self.user_id:
            return []
        with self.db.connection() as conn:
            rows = conn.execute(
                f"SELECT {_COLUMNS} FROM discoveries "
                "WHERE user_id = ? AND contains_ci(plant_name, ?) "
                "ORDER BY timestamp DESC, id DESC",
                (self.user_id, query or ""),
            ).fetchall()
        return [_to_record(r) for r in rows]

    def list_all(self) -> LiveDiscoveryList:
        return LiveDiscoveryList(self.db, self.user_id)

    def count(self) -> int:
        if not self.user_id:
            return 0
        with self.db.connection() as conn:
            row = conn.execute(
                "SELECT COUNT(*) FROM discoveries WHERE user_id = ?",
                (self.user_id,),
            ).fetchone()
        return int(row[0])
