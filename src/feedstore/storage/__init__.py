"""Durable storage for the cached feed snapshot."""

from .base import FeedStore
from .sqlite_store import SQLiteFeedStore

__all__ = ["FeedStore", "SQLiteFeedStore"]
