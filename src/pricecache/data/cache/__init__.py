"""
缓存存储模块
"""

from pricecache.data.cache.base import CacheStore
from pricecache.data.cache.factory import create_store, open_store
from pricecache.data.cache.memory_store import MemoryStore
from pricecache.data.cache.mongo_store import MongoStore
from pricecache.data.cache.sqlite_store import SQLiteStore

__all__ = [
    "CacheStore",
    "MemoryStore",
    "MongoStore",
    "SQLiteStore",
    "create_store",
    "open_store",
]
