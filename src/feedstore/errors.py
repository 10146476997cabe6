from __future__ import annotations

from enum import StrEnum


class FeedStoreError(Exception):
    """Base class for feed cache store errors."""


class ConstructionFailure(StrEnum):
    MODEL_NOT_FOUND = "model_not_found"
    LOAD_FAILED = "load_failed"


class ConstructionError(FeedStoreError):
    def __init__(self, reason: ConstructionFailure, message: str) -> None:
        super().__init__(message)
        self.reason = reason


class RetrievalError(FeedStoreError):
    pass


class InsertionError(FeedStoreError):
    pass


class DeletionError(FeedStoreError):
    pass


class StoreClosedError(FeedStoreError):
    pass
