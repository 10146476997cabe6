from __future__ import annotations

import logging
import sqlite3
import threading
from collections.abc import Callable, Iterable, Sequence
from concurrent.futures import Future, ThreadPoolExecutor
from datetime import datetime
from functools import partial
from pathlib import Path
from typing import TYPE_CHECKING, Any, TypeVar

from pydantic import ValidationError

from feedstore.errors import (
    ConstructionError,
    ConstructionFailure,
    DeletionError,
    InsertionError,
    RetrievalError,
    StoreClosedError,
)
from feedstore.schemas import CacheSnapshot, FeedImage, RetrieveResult

from .base import DeletionCompletion, InsertionCompletion, RetrievalCompletion

if TYPE_CHECKING:
    from feedstore.config import StoreConfig

MEMORY_LOCATION = ":memory:"
JOURNAL_MODES = frozenset({"DELETE", "TRUNCATE", "PERSIST", "MEMORY", "WAL", "OFF"})

TResult = TypeVar("TResult")

logger = logging.getLogger(__name__)


class SQLiteFeedStore:
    """Single-snapshot feed cache backed by SQLite.

    Every operation is queued on one private worker thread that also owns the
    connection, so durable work runs one operation at a time in submission
    order. Results are delivered through the returned future and, when given,
    a ``completion`` callable invoked on the worker before the next queued
    operation starts.
    """

    def __init__(
        self,
        db_path: str | Path,
        *,
        schema_path: str | Path | None = None,
        timeout_seconds: float = 5.0,
        journal_mode: str = "DELETE",
    ) -> None:
        if timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be > 0.")
        normalized_journal_mode = journal_mode.strip().upper()
        if normalized_journal_mode not in JOURNAL_MODES:
            raise ValueError(f"Unsupported journal_mode: {journal_mode}")

        self.db_path: str | Path = (
            MEMORY_LOCATION if str(db_path) == MEMORY_LOCATION else Path(db_path)
        )
        self.schema_path = (
            Path(schema_path)
            if schema_path is not None
            else Path(__file__).with_name("schema.sql")
        )
        self.timeout_seconds = timeout_seconds
        self.journal_mode = normalized_journal_mode

        self._conn: sqlite3.Connection | None = None
        self._worker_ident: int | None = None
        self._closed = False
        self._lock = threading.Lock()

        schema = self._load_schema()
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="feedstore")
        try:
            self._executor.submit(self._open, schema).result()
        except (sqlite3.Error, OSError) as exc:
            self._executor.shutdown(wait=True)
            self._closed = True
            raise ConstructionError(
                ConstructionFailure.LOAD_FAILED,
                f"Failed to load feed store at {self.db_path}: {exc}",
            ) from exc

    @classmethod
    def from_config(cls, config: StoreConfig) -> SQLiteFeedStore:
        return cls(
            config.path,
            schema_path=config.schema_path,
            timeout_seconds=config.timeout_seconds,
            journal_mode=config.journal_mode,
        )

    def retrieve(
        self,
        *,
        completion: RetrievalCompletion | None = None,
    ) -> Future[RetrieveResult]:
        return self._submit(self._retrieve, completion)

    def insert(
        self,
        feed: Iterable[FeedImage],
        timestamp: datetime,
        *,
        completion: InsertionCompletion | None = None,
    ) -> Future[InsertionError | None]:
        # Materialize now so the queued operation sees the feed as submitted.
        try:
            images = list(feed)
        except TypeError as exc:
            return self._submit(partial(self._reject_feed, exc), completion)
        return self._submit(partial(self._insert, images, timestamp), completion)

    def delete(
        self,
        *,
        completion: DeletionCompletion | None = None,
    ) -> Future[DeletionError | None]:
        return self._submit(self._delete, completion)

    def close(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
        if threading.get_ident() == self._worker_ident:
            # Called from a completion: queue the close behind pending work.
            self._executor.submit(self._close_connection)
            self._executor.shutdown(wait=False)
            return
        try:
            self._executor.submit(self._close_connection).result()
        finally:
            self._executor.shutdown(wait=True)

    @property
    def closed(self) -> bool:
        return self._closed

    def __enter__(self) -> SQLiteFeedStore:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _submit(
        self,
        operation: Callable[[], TResult],
        completion: Callable[[TResult], None] | None,
    ) -> Future[TResult]:
        with self._lock:
            if self._closed:
                raise StoreClosedError("Feed store is closed.")
            return self._executor.submit(self._run, operation, completion)

    @staticmethod
    def _run(
        operation: Callable[[], TResult],
        completion: Callable[[TResult], None] | None,
    ) -> TResult:
        result = operation()
        if completion is not None:
            completion(result)
        return result

    def _load_schema(self) -> str:
        if not self.schema_path.is_file():
            raise ConstructionError(
                ConstructionFailure.MODEL_NOT_FOUND,
                f"Feed store schema not found: {self.schema_path}",
            )
        try:
            return self.schema_path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise ConstructionError(
                ConstructionFailure.MODEL_NOT_FOUND,
                f"Feed store schema is unreadable: {self.schema_path}",
            ) from exc

    def _open(self, schema: str) -> None:
        if isinstance(self.db_path, Path):
            self.db_path.parent.mkdir(parents=True, exist_ok=True)

        conn = sqlite3.connect(self.db_path, timeout=self.timeout_seconds)
        try:
            conn.row_factory = sqlite3.Row
            conn.execute("PRAGMA foreign_keys = ON")
            conn.execute(f"PRAGMA journal_mode = {self.journal_mode}").fetchone()
            conn.executescript(schema)
        except sqlite3.Error:
            conn.close()
            raise

        self._conn = conn
        self._worker_ident = threading.get_ident()
        logger.debug("feed_store open path=%s journal_mode=%s", self.db_path, self.journal_mode)

    def _close_connection(self) -> None:
        if self._conn is None:
            return
        self._conn.close()
        self._conn = None
        logger.debug("feed_store close path=%s", self.db_path)

    def _connection(self) -> sqlite3.Connection:
        if self._conn is None:
            raise StoreClosedError("Feed store connection is not open.")
        return self._conn

    def _retrieve(self) -> RetrieveResult:
        try:
            snapshot = self._read_snapshot()
        except RetrievalError as exc:
            logger.debug("feed_store retrieve status=failure error=%s", exc)
            return RetrieveResult.failure(exc)

        if snapshot is None:
            logger.debug("feed_store retrieve status=empty")
            return RetrieveResult.empty()

        logger.debug("feed_store retrieve status=found count=%d", len(snapshot.feed))
        return RetrieveResult.found(snapshot)

    def _insert(self, feed: list[Any], timestamp: datetime) -> InsertionError | None:
        try:
            self._write_snapshot(feed, timestamp)
        except InsertionError as exc:
            logger.debug("feed_store insert status=failure error=%s", exc)
            return exc

        logger.debug("feed_store insert status=ok count=%d", len(feed))
        return None

    @staticmethod
    def _reject_feed(exc: TypeError) -> InsertionError:
        error = InsertionError(f"Feed is not iterable: {exc}")
        error.__cause__ = exc
        return error

    def _delete(self) -> DeletionError | None:
        try:
            self._clear_snapshot()
        except DeletionError as exc:
            logger.debug("feed_store delete status=failure error=%s", exc)
            return exc

        logger.debug("feed_store delete status=ok")
        return None

    def _read_snapshot(self) -> CacheSnapshot | None:
        query = """
        SELECT
            c.timestamp AS timestamp,
            i.id AS image_id,
            i.description AS description,
            i.location AS location,
            i.url AS url
        FROM feed_cache c
        LEFT JOIN feed_images i ON i.cache_id = c.id
        ORDER BY c.id ASC, i.position ASC
        """
        try:
            rows = self._connection().execute(query).fetchall()
        except sqlite3.Error as exc:
            raise RetrievalError(f"Failed to read feed cache: {exc}") from exc

        if not rows:
            return None
        return self._rows_to_snapshot(rows)

    def _write_snapshot(self, feed: list[Any], timestamp: datetime) -> None:
        try:
            snapshot = CacheSnapshot(feed=feed, timestamp=timestamp)
        except ValidationError as exc:
            raise InsertionError(f"Invalid feed snapshot: {exc}") from exc

        payloads = [
            (
                position,
                str(image.id),
                image.description,
                image.location,
                image.url,
            )
            for position, image in enumerate(snapshot.feed)
        ]
        query = """
        INSERT INTO feed_images (
            cache_id, position, id, description, location, url
        )
        VALUES (1, ?, ?, ?, ?, ?)
        """
        conn = self._connection()
        try:
            with conn:
                conn.execute("DELETE FROM feed_images")
                conn.execute("DELETE FROM feed_cache")
                conn.execute(
                    "INSERT INTO feed_cache (id, timestamp) VALUES (1, ?)",
                    (snapshot.timestamp.isoformat(),),
                )
                if payloads:
                    conn.executemany(query, payloads)
        except (sqlite3.Error, ValueError) as exc:
            raise InsertionError(f"Failed to commit feed cache: {exc}") from exc

    def _clear_snapshot(self) -> None:
        conn = self._connection()
        try:
            with conn:
                conn.execute("DELETE FROM feed_images")
                conn.execute("DELETE FROM feed_cache")
        except sqlite3.Error as exc:
            raise DeletionError(f"Failed to delete feed cache: {exc}") from exc

    @staticmethod
    def _rows_to_snapshot(rows: Sequence[sqlite3.Row]) -> CacheSnapshot:
        raw_timestamp = rows[0]["timestamp"]
        if raw_timestamp is None:
            raise RetrievalError("Cached snapshot has no timestamp.")

        try:
            feed = [
                FeedImage(
                    id=row["image_id"],
                    description=row["description"],
                    location=row["location"],
                    url=row["url"],
                )
                for row in rows
                if row["image_id"] is not None
            ]
            return CacheSnapshot(feed=feed, timestamp=datetime.fromisoformat(raw_timestamp))
        except (TypeError, ValueError) as exc:
            raise RetrievalError(f"Cached snapshot is malformed: {exc}") from exc
