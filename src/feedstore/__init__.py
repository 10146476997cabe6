"""Single-snapshot feed cache store."""

from .config import AppConfig, StoreConfig, load_config
from .errors import (
    ConstructionError,
    ConstructionFailure,
    DeletionError,
    FeedStoreError,
    InsertionError,
    RetrievalError,
    StoreClosedError,
)
from .schemas import CacheSnapshot, CacheStatus, FeedImage, RetrieveResult
from .storage import FeedStore, SQLiteFeedStore

__all__ = [
    "AppConfig",
    "CacheSnapshot",
    "CacheStatus",
    "ConstructionError",
    "ConstructionFailure",
    "DeletionError",
    "FeedImage",
    "FeedStore",
    "FeedStoreError",
    "InsertionError",
    "RetrievalError",
    "RetrieveResult",
    "SQLiteFeedStore",
    "StoreClosedError",
    "StoreConfig",
    "load_config",
]
