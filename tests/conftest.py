"""
测试全局配置

清理会影响默认配置的环境变量，并提供模拟时钟和模拟上游数据源。
"""

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Any, List, Tuple

import pytest

from pricecache.data.cache.memory_store import MemoryStore
from pricecache.data.errors import ProviderError
from pricecache.data.models import DataKind
from pricecache.data.providers.base import PriceProvider
from pricecache.utils.config import reset_config

CONFIG_ENV_VARS = [
    "PRICE_CACHE_BACKEND",
    "MONGODB_URI",
    "MONGODB_DATABASE",
    "PRICE_CACHE_COLLECTION",
    "PRICE_CACHE_SQLITE_PATH",
    "PRICE_CACHE_MARKET_TTL",
    "PRICE_CACHE_CHART_TTL",
    "PRICE_CACHE_SERVE_STALE",
    "PRICE_CACHE_FETCH_TIMEOUT",
    "PRICE_CACHE_SWEEP_INTERVAL",
    "COINGECKO_API_KEY",
    "LOG_LEVEL",
    "LOG_FILE",
]


def pytest_configure(config):
    """pytest 启动时重置全局配置"""
    reset_config()


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """每个测试使用干净的环境变量和全局配置"""
    for name in CONFIG_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    reset_config()
    yield
    reset_config()


class FakeClock:
    """可手动推进的 UTC 时钟"""

    def __init__(self, start: datetime = datetime(2025, 1, 1, tzinfo=timezone.utc)):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


class FakeProvider(PriceProvider):
    """
    模拟上游数据源

    记录每次 fetch 调用，可设置延迟和失败，用于验证缓存是否生效。
    """

    def __init__(self, latency: float = 0.0):
        self.latency = latency
        self.fail = False
        self.calls: List[Tuple[str, DataKind]] = []
        self.version = 0

    @property
    def name(self) -> str:
        return "fake"

    async def fetch(self, asset_id: str, kind: DataKind) -> Any:
        self.calls.append((asset_id, kind))
        if self.latency:
            await asyncio.sleep(self.latency)
        if self.fail:
            raise ProviderError("上游不可用", status=503)
        self.version += 1
        return {"id": asset_id, "kind": kind.value, "version": self.version, "prices": [[1, 0.082]]}


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def provider():
    return FakeProvider()


@pytest.fixture
def memory_store():
    return MemoryStore()