from __future__ import annotations

from collections.abc import Callable, Iterable
from concurrent.futures import Future
from datetime import datetime
from typing import Protocol

from feedstore.errors import DeletionError, InsertionError
from feedstore.schemas import FeedImage, RetrieveResult

RetrievalCompletion = Callable[[RetrieveResult], None]
InsertionCompletion = Callable[[InsertionError | None], None]
DeletionCompletion = Callable[[DeletionError | None], None]


# Completions run on the store worker. They may call close(), but must not
# block on futures returned by the same store.


class FeedStore(Protocol):
    def retrieve(
        self, *, completion: RetrievalCompletion | None = None
    ) -> Future[RetrieveResult]:
        """Read the cached snapshot, if any."""

    def insert(
        self,
        feed: Iterable[FeedImage],
        timestamp: datetime,
        *,
        completion: InsertionCompletion | None = None,
    ) -> Future[InsertionError | None]:
        """Replace the cached snapshot with ``feed`` captured at ``timestamp``."""

    def delete(
        self, *, completion: DeletionCompletion | None = None
    ) -> Future[DeletionError | None]:
        """Remove the cached snapshot."""
