"""
Durable key/value storage for user preferences.

Values are JSON documents stored per scope: ``user:<id>`` for an
authenticated identity, ``local`` for anonymous sessions. Failures are
logged and reported through return values; callers keep their in-memory
state authoritative.
"""

import json
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterator, Optional, Protocol, Tuple, Union

from loguru import logger

LOCAL_SCOPE = "local"


def scope_for_identity(user_id: Optional[str]) -> str:
    """Map an authenticated user id (or None) to a storage scope."""
    if not user_id:
        return LOCAL_SCOPE
    return f"user:{user_id}"


class PersistenceAdapter(Protocol):
    """Contract for preference stores."""

    scope: str

    def load(self, key: str) -> Any:
        """Return the stored JSON value for key, or None."""
        ...

    def save(self, key: str, value: Any) -> bool:
        """Store a JSON value; return False if it could not be written."""
        ...

    def with_scope(self, scope: str) -> "PersistenceAdapter":
        """Return a store bound to another scope."""
        ...


class SqliteStore:
    """SQLite-backed preference store (one row per scope/key)."""

    def __init__(self, db_path: Union[str, Path], scope: str = LOCAL_SCOPE):
        self.db_path = Path(db_path)
        self.scope = scope
        self._schema_ready = False

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        """Get a connection with proper cleanup."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(self.db_path, timeout=30.0)
        conn.row_factory = sqlite3.Row
        try:
            if not self._schema_ready:
                conn.execute("""
                    CREATE TABLE IF NOT EXISTS preferences (
                        scope TEXT NOT NULL,
                        key TEXT NOT NULL,
                        value TEXT NOT NULL,
                        updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                        PRIMARY KEY (scope, key)
                    )
                """)
                conn.commit()
                self._schema_ready = True
            yield conn
        finally:
            conn.close()

    def with_scope(self, scope: str) -> "SqliteStore":
        store = SqliteStore(self.db_path, scope)
        store._schema_ready = self._schema_ready
        return store

    def load(self, key: str) -> Any:
        try:
            with self._connect() as conn:
                row = conn.execute(
                    "SELECT value FROM preferences WHERE scope = ? AND key = ?",
                    (self.scope, key),
                ).fetchone()
        except sqlite3.Error:
            logger.exception(f"Failed to load preference {self.scope}/{key}")
            return None

        if row is None:
            return None

        try:
            return json.loads(row["value"])
        except json.JSONDecodeError:
            logger.warning(f"Corrupt preference value for {self.scope}/{key}, ignoring")
            return None

    def save(self, key: str, value: Any) -> bool:
        try:
            payload = json.dumps(value)
        except (TypeError, ValueError):
            logger.exception(f"Preference {key} is not JSON serializable")
            return False

        try:
            with self._connect() as conn:
                conn.execute(
                    """
                    INSERT OR REPLACE INTO preferences (scope, key, value, updated_at)
                    VALUES (?, ?, ?, CURRENT_TIMESTAMP)
                    """,
                    (self.scope, key, payload),
                )
                conn.commit()
        except sqlite3.Error:
            # Logged only; in-memory state stays authoritative
            logger.exception(f"Failed to save preference {self.scope}/{key}")
            return False

        logger.debug(f"Saved preference {self.scope}/{key}")
        return True


class MemoryStore:
    """In-process preference store for ephemeral sessions and tests."""

    def __init__(
        self,
        scope: str = LOCAL_SCOPE,
        data: Optional[Dict[Tuple[str, str], str]] = None,
    ):
        self.scope = scope
        # Shared between scoped views so identity switches see the same data
        self._data: Dict[Tuple[str, str], str] = data if data is not None else {}

    def with_scope(self, scope: str) -> "MemoryStore":
        return MemoryStore(scope, self._data)

    def load(self, key: str) -> Any:
        raw = self._data.get((self.scope, key))
        return json.loads(raw) if raw is not None else None

    def save(self, key: str, value: Any) -> bool:
        try:
            self._data[(self.scope, key)] = json.dumps(value)
        except (TypeError, ValueError):
            logger.exception(f"Preference {key} is not JSON serializable")
            return False
        return True
