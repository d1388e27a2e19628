"""
CoinGecko 数据提供者
从 CoinGecko API 获取币种行情和价格走势数据
"""

import asyncio
import time
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import aiohttp
from loguru import logger

from pricecache.data.errors import ProviderError
from pricecache.data.models import DataKind, split_chart_asset_id, validate_asset_id
from pricecache.data.providers.base import PriceProvider


class RateLimiter:
    """
    API 限流器

    按分钟的滑动窗口限流，calls_per_minute 为 0 表示不限制。
    """

    def __init__(self, calls_per_minute: int = 0, window_size: float = 60.0):
        self.max_calls = calls_per_minute
        self.window_size = window_size
        self.call_times: List[float] = []
        self._lock = asyncio.Lock()

    async def acquire(self) -> None:
        """获取请求许可，必要时阻塞等待"""
        if self.max_calls <= 0:
            return

        async with self._lock:
            now_ts = time.monotonic()
            cutoff = now_ts - self.window_size
            self.call_times = [t for t in self.call_times if t > cutoff]

            if len(self.call_times) >= self.max_calls:
                wait_seconds = self.call_times[0] + self.window_size - now_ts
                if wait_seconds > 0:
                    logger.debug(f"CoinGecko 限流，等待 {wait_seconds:.1f} 秒")
                    await asyncio.sleep(wait_seconds)

            self.call_times.append(time.monotonic())


def _retry_delay(retry_after: Optional[str], attempt: int) -> float:
    """Retry-After 为秒数时按其等待，缺失或为 HTTP 日期时指数退避"""
    if retry_after:
        try:
            return max(float(retry_after), 0.0)
        except ValueError:
            pass
    return 2.0 ** (attempt + 1)


class CoinGeckoProvider(PriceProvider):
    """
    CoinGecko 数据提供者

    - market: 币种详情及 market_data
    - chart: 指定天数的价格/市值/成交量走势，资产 ID 形如 ``bitcoin-7d``

    API 文档: https://docs.coingecko.com/reference/introduction
    """

    BASE_URL = "https://api.coingecko.com/api/v3"

    MARKET_PARAMS = {
        "localization": "false",
        "tickers": "false",
        "market_data": "true",
        "community_data": "false",
        "developer_data": "false",
        "sparkline": "false",
    }

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        calls_per_minute: int = 30,
        vs_currency: str = "usd",
        max_retries: int = 2,
    ):
        """
        初始化 CoinGecko 提供者

        Args:
            api_key: Demo API 密钥（可选，免费接口无需密钥）
            base_url: API 地址
            calls_per_minute: 每分钟最大请求数，0 表示不限制
            vs_currency: 图表计价货币
            max_retries: 遇到 429 时最大重试次数
        """
        self.api_key = api_key
        self.base_url = (base_url or self.BASE_URL).rstrip("/")
        self.vs_currency = vs_currency
        self.max_retries = max_retries
        self.rate_limiter = RateLimiter(calls_per_minute=calls_per_minute)

        self._session: Optional[aiohttp.ClientSession] = None

    @classmethod
    def from_config(cls, config=None) -> "CoinGeckoProvider":
        """按 Config.coingecko 创建"""
        if config is None:
            from pricecache.utils.config import get_config
            config = get_config()

        cg = config.coingecko
        return cls(
            api_key=cg.api_key or None,
            base_url=cg.base_url,
            calls_per_minute=cg.calls_per_minute,
            vs_currency=cg.vs_currency,
        )

    @property
    def name(self) -> str:
        return "coingecko"

    async def _get_session(self) -> aiohttp.ClientSession:
        """获取或创建 HTTP 会话"""
        if self._session is None or self._session.closed:
            headers = {"accept": "application/json"}
            if self.api_key:
                headers["x-cg-demo-api-key"] = self.api_key
            self._session = aiohttp.ClientSession(headers=headers)
        return self._session

    async def close(self) -> None:
        """关闭 HTTP 会话"""
        if self._session and not self._session.closed:
            await self._session.close()

    async def _make_request(self, path: str, params: Dict[str, str]) -> Any:
        """
        发送 API 请求（含 429 重试）

        Args:
            path: 接口路径
            params: 请求参数

        Returns:
            响应 JSON
        """
        url = f"{self.base_url}{path}"

        for attempt in range(self.max_retries + 1):
            await self.rate_limiter.acquire()
            session = await self._get_session()

            try:
                async with session.get(url, params=params) as response:
                    if response.status == 429 and attempt < self.max_retries:
                        wait_time = _retry_delay(response.headers.get("Retry-After"), attempt)
                        logger.warning(
                            f"CoinGecko 限流，{wait_time:.0f} 秒后重试 ({attempt + 1}/{self.max_retries})"
                        )
                        await asyncio.sleep(wait_time)
                        continue

                    if response.status != 200:
                        logger.error(f"CoinGecko 请求失败: {response.status} {path}")
                        raise ProviderError(f"CoinGecko API 错误: {response.status}", status=response.status)

                    return await response.json()

            except aiohttp.ClientError as e:
                logger.error(f"网络请求错误: {e}")
                raise ProviderError(f"CoinGecko 网络错误: {e}") from e

        raise ProviderError("CoinGecko 请求失败: 超过最大重试次数", status=429)

    async def fetch(self, asset_id: str, kind: DataKind) -> Any:
        """获取行情或走势数据"""
        validate_asset_id(asset_id)
        kind = DataKind.parse(kind)

        if kind is DataKind.MARKET:
            logger.info(f"从 CoinGecko 获取 {asset_id} 行情数据")
            return await self._make_request(f"/coins/{quote(asset_id, safe='')}", dict(self.MARKET_PARAMS))

        coin_id, days = split_chart_asset_id(asset_id)
        logger.info(f"从 CoinGecko 获取 {coin_id} 走势数据 ({days} 天)")
        return await self._make_request(
            f"/coins/{quote(coin_id, safe='')}/market_chart",
            {"vs_currency": self.vs_currency, "days": str(days)},
        )
