from rowstore.domain.cache.recency_cache import RecencyCache
from rowstore.domain.exceptions import (
    LoadInProgressError,
    MalformedSourceError,
    NotIndexedError,
    RowStoreError,
    SourceReadError,
)
from rowstore.domain.models import CacheStats, IndexEntry, ParsedRow, StoreState
from rowstore.infra.sources.file_source import BytesByteSource, FileByteSource
from rowstore.store import VirtualRowStore

__version__ = "0.1.0"

__all__ = [
    "VirtualRowStore",
    "RecencyCache",
    "IndexEntry",
    "ParsedRow",
    "StoreState",
    "CacheStats",
    "FileByteSource",
    "BytesByteSource",
    "RowStoreError",
    "SourceReadError",
    "MalformedSourceError",
    "NotIndexedError",
    "LoadInProgressError",
]
