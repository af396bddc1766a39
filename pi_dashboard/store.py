"""
Scoped key-value store for dashboard overrides.

Every backend stores JSON-encoded values under serialized OverrideKeys and
shares the same subscribe/notify hook, so the resolver and mutation code
never care which backend sits underneath.

Subscribers only hear about writes made through the same store object.
DatabaseStore picks up writes from other processes when its owner calls
poll_changes(); the HTTP app resolves from the database on every request
and never polls.
"""
import itertools
import json
import logging
from typing import Callable, Optional

from pi_dashboard import config
from pi_dashboard.database import get_db, init_database
from pi_dashboard.keys import OverrideKey

logger = logging.getLogger(__name__)


class OverrideStore:
    """Base store: JSON encoding, read-your-writes and change notification."""

    def __init__(self, board: str = config.BOARD_ACCOMPLISHMENT):
        if board not in config.BOARDS:
            raise ValueError(f"Unknown board: {board}")
        self.board = board
        self._subscribers = {}
        self._tokens = itertools.count(1)

    # Backend hooks ---------------------------------------------------

    def _read(self, raw_key: str) -> Optional[str]:
        raise NotImplementedError

    def _write(self, raw_key: str, encoded: str) -> bool:
        raise NotImplementedError

    def _delete(self, raw_key: str) -> bool:
        raise NotImplementedError

    # Public contract -------------------------------------------------

    def _check(self, key: OverrideKey) -> str:
        if key.board != self.board:
            raise ValueError(f"Key for board {key.board!r} used on {self.board!r} store")
        return key.serialize()

    def get(self, key: OverrideKey, default=None):
        """Return the stored value, or default when absent or undecodable."""
        raw = self._read(self._check(key))
        if raw is None:
            return default
        try:
            return json.loads(raw)
        except (TypeError, ValueError):
            logger.warning("Ignoring undecodable value for %s: %r", key, raw)
            return default

    def has(self, key: OverrideKey) -> bool:
        return self._read(self._check(key)) is not None

    def set(self, key: OverrideKey, value) -> bool:
        ok = self._write(self._check(key), json.dumps(value))
        if ok:
            self.notify(key)
        return ok

    def remove(self, key: OverrideKey) -> bool:
        ok = self._delete(self._check(key))
        if ok:
            self.notify(key)
        return ok

    def subscribe(self, callback: Callable) -> int:
        """Register callback(key) for change notifications; returns a token."""
        token = next(self._tokens)
        self._subscribers[token] = callback
        return token

    def unsubscribe(self, token: int) -> bool:
        return self._subscribers.pop(token, None) is not None

    def notify(self, key: Optional[OverrideKey] = None):
        """
        Tell every subscriber to re-resolve. key is None when the change
        came from another process and the exact key is unknown.
        """
        for token, callback in list(self._subscribers.items()):
            try:
                callback(key)
            except Exception:
                logger.exception("Change subscriber %s failed", token)


class MemoryStore(OverrideStore):
    """In-process store, used by tests and throwaway views."""

    def __init__(self, board: str = config.BOARD_ACCOMPLISHMENT):
        super().__init__(board)
        self._data = {}

    def _read(self, raw_key):
        return self._data.get(raw_key)

    def _write(self, raw_key, encoded):
        self._data[raw_key] = encoded
        return True

    def _delete(self, raw_key):
        self._data.pop(raw_key, None)
        return True

    def __len__(self):
        return len(self._data)


class DatabaseStore(OverrideStore):
    """
    Durable store on the application database (SQLite or PostgreSQL).
    Each write bumps the board's revision so other processes sharing the
    database can notice it through poll_changes(). Nothing polls on its own:
    a long-lived subscriber has to call poll_changes() on its own schedule.
    """

    def __init__(self, board: str = config.BOARD_ACCOMPLISHMENT, ensure_schema: bool = True):
        super().__init__(board)
        if ensure_schema:
            init_database()
        self._seen_revision = self.revision()

    def _read(self, raw_key):
        with get_db() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT value FROM pi_overrides WHERE key = ?", (raw_key,))
            row = cursor.fetchone()
        return row['value'] if row else None

    def _bump_revision(self, cursor):
        cursor.execute("SELECT revision FROM pi_store_revisions WHERE board = ?", (self.board,))
        row = cursor.fetchone()
        before = row['revision'] if row else 0
        cursor.execute("""
            INSERT INTO pi_store_revisions (board, revision) VALUES (?, 1)
            ON CONFLICT(board) DO UPDATE SET revision = pi_store_revisions.revision + 1
        """, (self.board,))
        # Only absorb our own bump; a foreign write in between stays visible to poll_changes()
        if before == self._seen_revision:
            self._seen_revision = before + 1

    def _write(self, raw_key, encoded):
        with get_db() as conn:
            cursor = conn.cursor()
            cursor.execute("""
                INSERT INTO pi_overrides (key, board, value, updated_at)
                VALUES (?, ?, ?, CURRENT_TIMESTAMP)
                ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated_at = CURRENT_TIMESTAMP
            """, (raw_key, self.board, encoded))
            self._bump_revision(cursor)
        return True

    def _delete(self, raw_key):
        with get_db() as conn:
            cursor = conn.cursor()
            cursor.execute("DELETE FROM pi_overrides WHERE key = ?", (raw_key,))
            if cursor.rowcount:
                self._bump_revision(cursor)
        return True

    def revision(self) -> int:
        with get_db() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT revision FROM pi_store_revisions WHERE board = ?", (self.board,))
            row = cursor.fetchone()
        return row['revision'] if row else 0

    def poll_changes(self) -> bool:
        """Fire subscribers if another process wrote since we last looked."""
        current = self.revision()
        if current == self._seen_revision:
            return False
        self._seen_revision = current
        self.notify(None)
        return True


def create_store(board: str = config.BOARD_ACCOMPLISHMENT) -> OverrideStore:
    """Build the backend selected by STORE_BACKEND."""
    backend = config.STORE_BACKEND
    if backend == "memory":
        return MemoryStore(board)
    if backend == "remote":
        from pi_dashboard.remote_store import RemoteStore
        return RemoteStore(config.REMOTE_STORE_URL, board)
    if backend != "database":
        logger.warning("Unknown STORE_BACKEND %r, using database", backend)
    return DatabaseStore(board)
