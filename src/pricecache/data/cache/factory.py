"""
缓存存储工厂
按配置创建存储后端并管理其连接生命周期
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from loguru import logger

from pricecache.data.cache.base import CacheStore
from pricecache.data.cache.memory_store import MemoryStore
from pricecache.data.cache.mongo_store import MongoStore
from pricecache.data.cache.sqlite_store import SQLiteStore
from pricecache.utils.config import Config, get_config


def create_store(config: Optional[Config] = None) -> CacheStore:
    """
    按 storage.backend 创建存储后端（未连接）

    Args:
        config: 配置（默认使用全局配置）

    Returns:
        CacheStore 实例
    """
    config = config or get_config()
    storage = config.storage
    backend = storage.backend.lower()

    if backend == "mongo":
        return MongoStore(
            uri=storage.mongodb_uri,
            database=storage.database or None,
            collection_name=storage.collection,
        )
    if backend == "sqlite":
        return SQLiteStore(db_path=storage.sqlite_path)
    if backend == "memory":
        return MemoryStore()

    raise ValueError(f"未知的存储后端: '{storage.backend}'，可选值: mongo, sqlite, memory")


@asynccontextmanager
async def open_store(config: Optional[Config] = None) -> AsyncIterator[CacheStore]:
    """
    打开存储连接，退出时保证关闭

    用法::

        async with open_store(config) as store:
            cache = PriceCache.from_config(config, store, provider)
    """
    store = create_store(config)
    await store.connect()
    logger.debug(f"缓存存储已打开: {store!r}")
    try:
        yield store
    finally:
        await store.close()
        logger.debug(f"缓存存储已关闭: {store!r}")
