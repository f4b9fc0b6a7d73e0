"""
Storage media for serialized drafts.

A medium stores opaque strings under a logical key. The session medium lives for the
process; the SQLite medium is the durable fallback chosen when the session medium is
disabled by host policy.
"""

import sqlite3
from abc import ABC, abstractmethod
from typing import Dict, List, Optional

from .config import get_db_path, get_storage_kind, session_storage_enabled
from .db import get_db, init_db
from .schema import StorageUnavailableError
from ..util.logging import logger


class StorageMedium(ABC):
    """Abstract interface for draft storage media."""

    name = "medium"

    @abstractmethod
    def read(self, key: str) -> Optional[str]:
        """Return the stored string for key, or None if absent."""
        pass

    @abstractmethod
    def write(self, key: str, value: str) -> None:
        """Store value under key."""
        pass

    @abstractmethod
    def remove(self, key: str) -> None:
        """Delete key if present."""
        pass

    @abstractmethod
    def keys(self) -> List[str]:
        """List stored keys."""
        pass

    def available(self) -> bool:
        """Probe whether the medium can be used."""
        return True


class SessionMedium(StorageMedium):
    """Process-scoped medium; the Python analogue of tab/session storage."""

    name = "session"

    def __init__(self, enabled: Optional[bool] = None):
        self._enabled = session_storage_enabled() if enabled is None else enabled
        self._data: Dict[str, str] = {}

    def _check(self):
        if not self._enabled:
            raise StorageUnavailableError("session storage disabled by policy")

    def read(self, key: str) -> Optional[str]:
        self._check()
        return self._data.get(key)

    def write(self, key: str, value: str) -> None:
        self._check()
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._check()
        self._data.pop(key, None)

    def keys(self) -> List[str]:
        self._check()
        return list(self._data.keys())

    def available(self) -> bool:
        return self._enabled


class SqliteMedium(StorageMedium):
    """Durable medium backed by the drafts table."""

    name = "sqlite"

    def __init__(self, db_path: Optional[str] = None):
        self.db_path = db_path or get_db_path()
        self._initialized = False

    def _ensure(self):
        if self._initialized:
            return
        try:
            init_db(self.db_path)
        except (sqlite3.Error, OSError) as e:
            raise StorageUnavailableError(f"cannot open {self.db_path}: {e}") from e
        self._initialized = True

    def read(self, key: str) -> Optional[str]:
        self._ensure()
        try:
            with get_db(self.db_path) as conn:
                cursor = conn.cursor()
                cursor.execute("SELECT value FROM drafts WHERE key = ?", (key,))
                row = cursor.fetchone()
                return row[0] if row else None
        except (sqlite3.Error, OSError) as e:
            raise StorageUnavailableError(str(e)) from e

    def write(self, key: str, value: str) -> None:
        self._ensure()
        try:
            with get_db(self.db_path) as conn:
                cursor = conn.cursor()
                cursor.execute(
                    "INSERT INTO drafts (key, value) VALUES (?, ?) "
                    "ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated_at = CURRENT_TIMESTAMP",
                    (key, value)
                )
                conn.commit()
        except (sqlite3.Error, OSError) as e:
            raise StorageUnavailableError(str(e)) from e

    def remove(self, key: str) -> None:
        self._ensure()
        try:
            with get_db(self.db_path) as conn:
                cursor = conn.cursor()
                cursor.execute("DELETE FROM drafts WHERE key = ?", (key,))
                conn.commit()
        except (sqlite3.Error, OSError) as e:
            raise StorageUnavailableError(str(e)) from e

    def keys(self) -> List[str]:
        self._ensure()
        try:
            with get_db(self.db_path) as conn:
                cursor = conn.cursor()
                cursor.execute("SELECT key FROM drafts ORDER BY key")
                return [row[0] for row in cursor.fetchall()]
        except (sqlite3.Error, OSError) as e:
            raise StorageUnavailableError(str(e)) from e

    def available(self) -> bool:
        try:
            self._ensure()
        except StorageUnavailableError:
            return False
        return True


_selected: Optional[StorageMedium] = None


def build_medium(kind: Optional[str] = None) -> StorageMedium:
    """Build a primary medium, falling back to SQLite when the primary is unavailable."""
    kind = kind or get_storage_kind()

    if kind == "sqlite":
        return SqliteMedium()

    primary = SessionMedium()
    if primary.available():
        return primary

    logger.log_storage_fallback(primary.name, "unavailable at startup", SqliteMedium.name)
    return SqliteMedium()


def select_medium() -> StorageMedium:
    """Select the process medium once; later calls return the same instance."""
    global _selected
    if _selected is None:
        _selected = build_medium()
        logger.debug(f"Selected draft medium: {_selected.name}")
    return _selected


def reset_selected_medium() -> None:
    """Forget the process medium (tests and host restarts)."""
    global _selected
    _selected = None
