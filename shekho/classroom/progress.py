"""
ProgressStore - Persist learner progress in ~/.shekho/progress.db.

Progress is two string values in a key-value table:
- completedModules: JSON list of completed unit keys
- currentFocus: JSON string holding the focus unit key
"""

import json
import logging
import sqlite3
from pathlib import Path
from typing import Optional

from shekho.errors import CorruptProgressData
from shekho.schemas import ProgressState


logger = logging.getLogger(__name__)

DEFAULT_PROGRESS_DIR = Path.home() / ".shekho"
DEFAULT_PROGRESS_DB = DEFAULT_PROGRESS_DIR / "progress.db"

COMPLETED_KEY = "completedModules"
FOCUS_KEY = "currentFocus"


# -----------------------------------------------------------------------------
# Key-value backends
# -----------------------------------------------------------------------------

class KeyValueStore:
    """Synchronous string-keyed get/set surface."""

    def get(self, key: str) -> Optional[str]:
        raise NotImplementedError

    def set(self, key: str, value: str):
        raise NotImplementedError

    def delete(self, key: str):
        raise NotImplementedError


class MemoryKeyValueStore(KeyValueStore):
    """Dict-backed store for tests and throwaway sessions."""

    def __init__(self, initial: Optional[dict[str, str]] = None):
        self.data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    def set(self, key: str, value: str):
        self.data[key] = value

    def delete(self, key: str):
        self.data.pop(key, None)


class SQLiteKeyValueStore(KeyValueStore):
    """
    Key-value table in a SQLite file.

    Each call opens its own connection, so writes are durable as soon as
    set() returns.
    """

    def __init__(self, db_path: Optional[Path] = None):
        """
        Args:
            db_path: Path to progress.db (default: ~/.shekho/progress.db)
        """
        self.db_path = Path(db_path) if db_path else DEFAULT_PROGRESS_DB
        self._ensure_database()

    def _ensure_database(self):
        """
        Create database and table if they don't exist.

        A file that SQLite cannot open is moved aside to progress.db.corrupt
        and a fresh database is created in its place.
        """
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        try:
            self._create_table()
        except sqlite3.DatabaseError as e:
            backup_path = self.db_path.with_name(self.db_path.name + ".corrupt")
            logger.warning(f"Progress database {self.db_path} is unreadable ({e}); moving it to {backup_path}")
            self.db_path.replace(backup_path)
            self._create_table()

    def _create_table(self):
        conn = sqlite3.connect(str(self.db_path))
        try:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS kv (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL
                )
            """)
            conn.commit()
        finally:
            conn.close()

    def _get_connection(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self.db_path))
        conn.row_factory = sqlite3.Row
        return conn

    def get(self, key: str) -> Optional[str]:
        """
        Raises:
            CorruptProgressData: If the stored value cannot be read
        """
        conn = self._get_connection()
        try:
            row = conn.execute("SELECT value FROM kv WHERE key = ?", (key,)).fetchone()
            return row["value"] if row else None
        except sqlite3.DatabaseError as e:
            raise CorruptProgressData(f"Cannot read {key} from {self.db_path}: {e}") from e
        finally:
            conn.close()

    def set(self, key: str, value: str):
        conn = self._get_connection()
        try:
            conn.execute(
                """INSERT INTO kv (key, value) VALUES (?, ?)
                   ON CONFLICT(key) DO UPDATE SET value = excluded.value""",
                (key, value)
            )
            conn.commit()
        finally:
            conn.close()

    def delete(self, key: str):
        conn = self._get_connection()
        try:
            conn.execute("DELETE FROM kv WHERE key = ?", (key,))
            conn.commit()
        finally:
            conn.close()


# -----------------------------------------------------------------------------
# Progress store
# -----------------------------------------------------------------------------

class ProgressStore:
    """
    Load and save ProgressState through a KeyValueStore.

    load() never raises: missing or unreadable data yields an empty state.
    Whether the stored focus still points into the curriculum is checked by
    the Navigator, not here.
    """

    def __init__(self, kv: KeyValueStore):
        self.kv = kv

    def load(self) -> ProgressState:
        try:
            raw_completed = self.kv.get(COMPLETED_KEY)
            raw_focus = self.kv.get(FOCUS_KEY)

            if raw_completed is None and raw_focus is None:
                return ProgressState.empty()

            return ProgressState(
                completed_units=_decode_completed(raw_completed),
                current_focus=_decode_focus(raw_focus),
            )
        except CorruptProgressData as e:
            logger.warning(f"Discarding unreadable progress data: {e}")
            return ProgressState.empty()

    def save(self, state: ProgressState):
        self.kv.set(COMPLETED_KEY, json.dumps(sorted(state.completed_units)))
        if state.current_focus is not None:
            self.kv.set(FOCUS_KEY, json.dumps(state.current_focus))
        else:
            self.kv.delete(FOCUS_KEY)
        logger.debug(
            f"Saved progress: {len(state.completed_units)} completed, focus={state.current_focus}"
        )

    def has_saved_progress(self) -> bool:
        """True if readable progress is stored; unreadable data counts as none."""
        try:
            return self.kv.get(COMPLETED_KEY) is not None or self.kv.get(FOCUS_KEY) is not None
        except CorruptProgressData as e:
            logger.warning(f"Discarding unreadable progress data: {e}")
            return False

    def reset(self):
        """Forget all progress."""
        self.kv.delete(COMPLETED_KEY)
        self.kv.delete(FOCUS_KEY)
        logger.info("Progress reset")


def _decode_completed(raw: Optional[str]) -> set[str]:
    if raw is None:
        return set()
    try:
        value = json.loads(raw)
    except json.JSONDecodeError as e:
        raise CorruptProgressData(f"{COMPLETED_KEY} is not valid JSON") from e
    if not isinstance(value, list) or not all(isinstance(k, str) for k in value):
        raise CorruptProgressData(f"{COMPLETED_KEY} must be a list of unit keys")
    return set(value)


def _decode_focus(raw: Optional[str]) -> Optional[str]:
    if raw is None:
        return None
    try:
        value = json.loads(raw)
    except json.JSONDecodeError as e:
        raise CorruptProgressData(f"{FOCUS_KEY} is not valid JSON") from e
    if not isinstance(value, str):
        raise CorruptProgressData(f"{FOCUS_KEY} must be a unit key string")
    return value
