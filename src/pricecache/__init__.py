"""
加密货币价格缓存

模块:
- data: 缓存模型、存储后端、上游数据源和缓存服务
- utils: 配置和日志
"""

__version__ = "0.1.0"

from pricecache.data import (
    CacheResult,
    DataKind,
    InvalidArgument,
    PriceCache,
    StorageUnavailable,
    TTLPolicy,
    UpstreamUnavailable,
)

__all__ = [
    "PriceCache",
    "CacheResult",
    "DataKind",
    "TTLPolicy",
    "InvalidArgument",
    "UpstreamUnavailable",
    "StorageUnavailable",
]
