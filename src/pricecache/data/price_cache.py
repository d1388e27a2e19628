"""
价格缓存服务
缓存命中直接返回，缺失或过期时从上游获取并写回存储
"""

import asyncio
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Generic, Optional, Tuple, TypeVar

from loguru import logger

from pricecache.data.cache.base import CacheStore
from pricecache.data.errors import UpstreamUnavailable
from pricecache.data.models import (
    DEFAULT_CHART_DAYS,
    CacheEntry,
    CacheResult,
    DataKind,
    chart_asset_id,
    utcnow,
    validate_asset_id,
)
from pricecache.data.providers.base import PriceProvider
from pricecache.data.schemas import CacheStats
from pricecache.data.ttl import TTLPolicy

T = TypeVar("T")

CacheKey = Tuple[str, DataKind]


class PriceCache(Generic[T]):
    """
    带过期时间的价格缓存

    决策表：
    - 无缓存            → 请求上游，写入并返回
    - 缓存未过期        → 直接返回，不请求上游
    - 缓存已过期        → 请求上游；成功则写入并返回，失败则按 serve_stale_on_error 处理

    同一 (asset_id, kind) 的并发刷新合并为一次上游请求。

    Example:
        async with open_store(config) as store, CoinGeckoProvider.from_config(config) as provider:
            cache = PriceCache.from_config(config, store, provider)
            result = await cache.get("bitcoin", "market")
    """

    def __init__(
        self,
        store: CacheStore,
        provider: PriceProvider,
        ttl: Optional[Callable[[DataKind], timedelta]] = None,
        serve_stale_on_error: bool = True,
        fetch_timeout: Optional[float] = None,
        collapse_concurrent_fetches: bool = True,
        clock: Callable[[], datetime] = utcnow,
    ):
        """
        初始化价格缓存

        Args:
            store: 缓存存储（由调用方负责连接和关闭）
            provider: 上游数据提供者
            ttl: 过期时间函数 kind -> timedelta（默认 TTLPolicy()）
            serve_stale_on_error: 上游失败时是否返回已过期的缓存
            fetch_timeout: 上游请求默认超时（秒），None 表示不限
            collapse_concurrent_fetches: 是否合并同一键的并发刷新
            clock: 当前时间函数（返回带时区的 UTC 时间）
        """
        self.store = store
        self.provider = provider
        self.ttl = ttl or TTLPolicy()
        self.serve_stale_on_error = serve_stale_on_error
        self.fetch_timeout = fetch_timeout
        self.collapse_concurrent_fetches = collapse_concurrent_fetches
        self._clock = clock

        self._inflight: Dict[CacheKey, asyncio.Task] = {}
        self._counters: Dict[str, int] = {
            "hits": 0,
            "misses": 0,
            "stale_served": 0,
            "refreshes": 0,
            "upstream_failures": 0,
            "collapsed": 0,
        }

    @classmethod
    def from_config(cls, config, store: CacheStore, provider: PriceProvider) -> "PriceCache":
        """按 Config.cache 创建"""
        cache_config = config.cache
        return cls(
            store=store,
            provider=provider,
            ttl=TTLPolicy.from_seconds(
                market=cache_config.market_ttl_seconds,
                chart=cache_config.chart_ttl_seconds,
            ),
            serve_stale_on_error=cache_config.serve_stale_on_error,
            fetch_timeout=cache_config.fetch_timeout_seconds or None,
            collapse_concurrent_fetches=cache_config.collapse_concurrent_fetches,
        )

    def _ttl_for(self, kind: DataKind) -> timedelta:
        ttl = self.ttl(kind)
        if not isinstance(ttl, timedelta) or ttl <= timedelta(0):
            raise ValueError(f"{kind.value} 的 TTL 必须为正数: {ttl!r}")
        return ttl

    async def get(self, asset_id: str, kind: Any, timeout: Optional[float] = None) -> CacheResult[T]:
        """
        获取价格数据

        Args:
            asset_id: 资产 ID
            kind: 数据类型（DataKind 或 "market" / "chart"）
            timeout: 本次等待上游的超时（秒），默认使用 fetch_timeout

        Returns:
            CacheResult，hit 标记是否命中缓存，stale 标记是否为过期数据

        Raises:
            InvalidArgument: 参数非法
            UpstreamUnavailable: 上游失败且没有可用缓存
            StorageUnavailable: 存储读写失败
        """
        validate_asset_id(asset_id)
        kind = DataKind.parse(kind)

        entry = await self.store.find(asset_id, kind)
        if entry is not None and not entry.is_expired(self._clock()):
            self._counters["hits"] += 1
            logger.debug(f"使用缓存数据: {asset_id} ({kind.value})")
            return CacheResult.from_entry(entry, hit=True)

        self._counters["misses"] += 1

        try:
            fresh = await self._refresh(asset_id, kind, timeout)
        except UpstreamUnavailable as e:
            if entry is not None and self.serve_stale_on_error:
                self._counters["stale_served"] += 1
                logger.warning(
                    f"上游获取失败，使用过期缓存: {asset_id} ({kind.value})，"
                    f"过期于 {entry.expires_at.isoformat()}: {e.reason}"
                )
                return CacheResult.from_entry(entry, hit=False, stale=True)
            raise

        return CacheResult.from_entry(fresh, hit=False)

    async def _refresh(self, asset_id: str, kind: DataKind, timeout: Optional[float]) -> CacheEntry:
        """刷新缓存，同一键的并发刷新共享同一个任务"""
        key = (asset_id, kind)
        task = self._inflight.get(key) if self.collapse_concurrent_fetches else None

        if task is None:
            task = asyncio.ensure_future(self._fetch_and_store(asset_id, kind))
            if self.collapse_concurrent_fetches:
                self._inflight[key] = task
            task.add_done_callback(lambda t: self._release(key, t))
        else:
            self._counters["collapsed"] += 1
            logger.debug(f"合并并发刷新: {asset_id} ({kind.value})")

        if timeout is None:
            timeout = self.fetch_timeout

        try:
            if timeout is None:
                return await asyncio.shield(task)
            return await asyncio.wait_for(asyncio.shield(task), timeout)
        except asyncio.TimeoutError as e:
            if not self.collapse_concurrent_fetches:
                task.cancel()
            self._counters["upstream_failures"] += 1
            logger.error(f"上游请求超时: {asset_id} ({kind.value}), {timeout}s")
            raise UpstreamUnavailable(asset_id, kind.value, f"请求超时 ({timeout}s)") from e

    def _release(self, key: CacheKey, task: asyncio.Task) -> None:
        if self._inflight.get(key) is task:
            del self._inflight[key]
        # 所有等待方都已超时的情况下，避免 "exception was never retrieved"
        if not task.cancelled():
            task.exception()

    async def _fetch_and_store(self, asset_id: str, kind: DataKind) -> CacheEntry:
        """请求上游并写入存储"""
        self._counters["refreshes"] += 1
        logger.info(f"获取最新数据: {asset_id} ({kind.value})")

        try:
            if self.fetch_timeout is None:
                payload = await self.provider.fetch(asset_id, kind)
            else:
                payload = await asyncio.wait_for(self.provider.fetch(asset_id, kind), self.fetch_timeout)
        except asyncio.TimeoutError as e:
            self._counters["upstream_failures"] += 1
            logger.error(f"上游请求超时: {asset_id} ({kind.value}), {self.fetch_timeout}s")
            raise UpstreamUnavailable(asset_id, kind.value, f"请求超时 ({self.fetch_timeout}s)") from e
        except Exception as e:
            self._counters["upstream_failures"] += 1
            logger.error(f"上游请求失败: {asset_id} ({kind.value}), {e}")
            raise UpstreamUnavailable(asset_id, kind.value, str(e)) from e

        now = self._clock()
        entry = CacheEntry(
            asset_id=asset_id,
            kind=kind,
            payload=payload,
            fetched_at=now,
            expires_at=now + self._ttl_for(kind),
        )
        await self.store.upsert(entry)

        logger.info(f"已缓存 {asset_id} ({kind.value})，有效期至 {entry.expires_at.isoformat()}")
        return entry

    async def invalidate(self, asset_id: str, kind: Any) -> bool:
        """
        删除缓存条目，不存在时不报错

        Returns:
            是否删除了记录
        """
        validate_asset_id(asset_id)
        kind = DataKind.parse(kind)

        removed = await self.store.delete(asset_id, kind)
        if removed:
            logger.info(f"已失效缓存: {asset_id} ({kind.value})")
        return removed

    async def purge_expired(self, now: Optional[datetime] = None) -> int:
        """
        清理 expires_at < now 的缓存

        Args:
            now: 截止时间（默认当前时间）

        Returns:
            清理的条目数
        """
        count = await self.store.delete_expired(now or self._clock())
        if count > 0:
            logger.info(f"清理了 {count} 条过期缓存")
        return count

    async def get_market_data(self, coin_id: str) -> T:
        """获取行情数据"""
        return (await self.get(coin_id, DataKind.MARKET)).payload

    async def get_chart_data(self, coin_id: str, days: int = DEFAULT_CHART_DAYS) -> T:
        """获取指定天数的走势数据，不同天数分别缓存"""
        return (await self.get(chart_asset_id(coin_id, days), DataKind.CHART)).payload

    async def stats(self) -> CacheStats:
        """获取缓存统计信息"""
        return CacheStats(
            **self._counters,
            in_flight=len(self._inflight),
            total_entries=await self.store.count(),
        )

    def __repr__(self):
        return f"PriceCache(store={self.store!r}, provider={self.provider!r})"
