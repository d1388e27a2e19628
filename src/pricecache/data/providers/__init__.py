"""
数据提供者模块
"""

from pricecache.data.providers.base import PriceProvider
from pricecache.data.providers.coingecko import CoinGeckoProvider, RateLimiter

__all__ = ["PriceProvider", "CoinGeckoProvider", "RateLimiter"]
