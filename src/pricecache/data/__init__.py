"""
数据层模块
提供价格数据获取、缓存和管理功能
"""

from pricecache.data.cache import CacheStore, MemoryStore, MongoStore, SQLiteStore, create_store, open_store
from pricecache.data.errors import (
    InvalidArgument,
    PriceCacheError,
    ProviderError,
    StorageUnavailable,
    UpstreamUnavailable,
)
from pricecache.data.models import CacheEntry, CacheResult, DataKind, chart_asset_id, split_chart_asset_id
from pricecache.data.price_cache import PriceCache
from pricecache.data.providers import CoinGeckoProvider, PriceProvider
from pricecache.data.schemas import CacheStats
from pricecache.data.sweeper import ExpirySweeper
from pricecache.data.ttl import TTLPolicy

__all__ = [
    "CacheEntry",
    "CacheResult",
    "CacheStats",
    "DataKind",
    "chart_asset_id",
    "split_chart_asset_id",
    "CacheStore",
    "MemoryStore",
    "MongoStore",
    "SQLiteStore",
    "create_store",
    "open_store",
    "PriceProvider",
    "CoinGeckoProvider",
    "PriceCache",
    "TTLPolicy",
    "ExpirySweeper",
    "PriceCacheError",
    "InvalidArgument",
    "UpstreamUnavailable",
    "StorageUnavailable",
    "ProviderError",
]
