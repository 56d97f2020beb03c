"""Persistence gateway: string-keyed blob stores and the history repository.

The engine never touches a concrete backend. It is handed a
:class:`KeyValueStore` and encodes its two JSON blobs (leaderboard table
and per-user mistake history) through :class:`HistoryRepository`.
"""

import logging
import threading
from abc import ABC, abstractmethod
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Dict, List, Optional, Sequence

import redis
from pydantic import TypeAdapter, ValidationError

from .config import settings
from .database import get_db_connection, init_db
from .models import LeaderboardEntry

logger = logging.getLogger(__name__)

_leaderboard_adapter = TypeAdapter(List[LeaderboardEntry])
_mistakes_adapter = TypeAdapter(Dict[str, List[int]])


# --- Backends ---
class KeyValueStore(ABC):
    @abstractmethod
    def load(self, key: str) -> Optional[str]:
        pass

    @abstractmethod
    def save(self, key: str, value: str) -> None:
        pass


class MemoryStore(KeyValueStore):
    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self.data: Dict[str, str] = dict(initial or {})
        self._lock = threading.Lock()

    def load(self, key: str) -> Optional[str]:
        with self._lock:
            return self.data.get(key)

    def save(self, key: str, value: str) -> None:
        with self._lock:
            self.data[key] = value


class SQLiteStore(KeyValueStore):
    """Stores blobs in the ``kv_store`` table of the application database."""

    def __init__(self, db_path: Optional[str] = None):
        self.db_path = db_path
        init_db(db_path)

    def load(self, key: str) -> Optional[str]:
        conn = get_db_connection(self.db_path)
        try:
            row = conn.execute(
                "SELECT value FROM kv_store WHERE key = ?", (key,)
            ).fetchone()
        finally:
            conn.close()
        return row["value"] if row else None

    def save(self, key: str, value: str) -> None:
        conn = get_db_connection(self.db_path)
        with conn:
            conn.execute(
                """
                INSERT INTO kv_store (key, value, updated_at)
                VALUES (?, ?, CURRENT_TIMESTAMP)
                ON CONFLICT(key) DO UPDATE SET
                    value = excluded.value,
                    updated_at = excluded.updated_at
                """,
                (key, value),
            )
        conn.close()


class RedisStore(KeyValueStore):
    def __init__(self, client: "redis.Redis"):
        self.client = client

    @classmethod
    def from_url(cls, url: str) -> "RedisStore":
        return cls(redis.Redis.from_url(url, decode_responses=True))

    def load(self, key: str) -> Optional[str]:
        value = self.client.get(key)
        if isinstance(value, bytes):
            value = value.decode("utf-8")
        return value

    def save(self, key: str, value: str) -> None:
        self.client.set(key, value)


def build_store(backend: str = settings.STORE_BACKEND) -> KeyValueStore:
    if backend == "redis":
        logger.info(f"Using redis store at {settings.REDIS_URL}")
        return RedisStore.from_url(settings.REDIS_URL)
    if backend == "memory":
        logger.warning("Using in-memory store; history is lost on restart")
        return MemoryStore()
    if backend != "sqlite":
        logger.warning(f"Unknown store backend {backend!r}, using sqlite")
    return SQLiteStore()


# --- Ordered background writes ---
class OrderedWriter:
    """Runs saves on a single worker thread, in submission order."""

    def __init__(self, store: KeyValueStore):
        self.store = store
        self._executor = ThreadPoolExecutor(
            max_workers=1, thread_name_prefix="engpower-writer"
        )

    def submit(self, key: str, value: str) -> Future:
        future = self._executor.submit(self.store.save, key, value)
        future.add_done_callback(lambda f: self._report(key, f))
        return future

    @staticmethod
    def _report(key: str, future: Future):
        error = future.exception()
        if error is not None:
            logger.error(f"Failed to save {key}: {error}")

    def flush(self):
        """Blocks until every write submitted so far has finished."""
        self._executor.submit(lambda: None).result()

    def close(self):
        self._executor.shutdown(wait=True)


# --- Repository ---
class HistoryRepository:
    """Encodes the leaderboard and mistake history as JSON blobs."""

    def __init__(
        self,
        store: KeyValueStore,
        writer: Optional[OrderedWriter] = None,
        leaderboard_key: str = settings.LEADERBOARD_KEY,
        mistakes_key: str = settings.MISTAKES_KEY,
    ):
        self.store = store
        self.writer = writer
        self.leaderboard_key = leaderboard_key
        self.mistakes_key = mistakes_key

    def _load_json(self, key: str, adapter: TypeAdapter, empty):
        try:
            raw = self.store.load(key)
        except Exception as e:
            logger.error(f"Failed to load {key}: {e}")
            return empty
        if raw is None:
            return empty
        try:
            return adapter.validate_json(raw)
        except ValidationError as e:
            logger.error(f"Ignoring malformed {key}: {e.error_count()} errors")
            return empty

    def _save(self, key: str, value: str):
        if self.writer is None:
            self.store.save(key, value)
        else:
            self.writer.submit(key, value)

    def load_leaderboard(self) -> List[LeaderboardEntry]:
        return self._load_json(self.leaderboard_key, _leaderboard_adapter, [])

    def save_leaderboard(self, table: Sequence[LeaderboardEntry]):
        self._save(
            self.leaderboard_key,
            _leaderboard_adapter.dump_json(list(table)).decode("utf-8"),
        )

    def load_mistakes(self) -> Dict[str, List[int]]:
        history = self._load_json(self.mistakes_key, _mistakes_adapter, {})
        # Collapse duplicates, keeping first-seen order.
        return {name: list(dict.fromkeys(ids)) for name, ids in history.items()}

    def save_mistakes(self, history: Dict[str, List[int]]):
        self._save(self.mistakes_key, _mistakes_adapter.dump_json(history).decode("utf-8"))

    def flush(self):
        if self.writer is not None:
            self.writer.flush()
