"""
过期缓存清理任务
"""

import asyncio
from typing import Optional

from loguru import logger

from pricecache.data.errors import StorageUnavailable
from pricecache.data.price_cache import PriceCache


class ExpirySweeper:
    """
    定期调用 PriceCache.purge_expired 的后台任务

    Example:
        sweeper = ExpirySweeper(cache, interval=600)
        sweeper.start()
        ...
        await sweeper.stop()
    """

    def __init__(self, cache: PriceCache, interval: float = 600.0):
        if interval <= 0:
            raise ValueError(f"清理间隔必须为正数: {interval!r}")
        self.cache = cache
        self.interval = interval
        self.total_removed = 0
        self._task: Optional[asyncio.Task] = None

    @classmethod
    def from_config(cls, config, cache: PriceCache) -> "ExpirySweeper":
        """按 Config.cache.sweep_interval_seconds 创建"""
        return cls(cache, interval=config.cache.sweep_interval_seconds)

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def run_once(self) -> int:
        """执行一次清理"""
        removed = await self.cache.purge_expired()
        self.total_removed += removed
        return removed

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            try:
                await self.run_once()
            except StorageUnavailable as e:
                logger.error(f"清理过期缓存失败: {e}")
            except Exception as e:
                # 单次清理出错不终止后台任务
                logger.exception(f"清理过期缓存出现未预期错误: {e}")

    def start(self) -> None:
        """启动后台清理（需在事件循环中调用）"""
        if self.running:
            logger.debug("过期清理任务已在运行")
            return
        self._task = asyncio.ensure_future(self._run())
        logger.info(f"过期清理任务已启动，间隔 {self.interval:.0f} 秒")

    async def stop(self) -> None:
        """停止后台清理"""
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("过期清理任务已停止")

    async def __aenter__(self):
        self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.stop()
