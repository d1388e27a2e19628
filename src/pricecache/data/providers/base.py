"""
数据提供者基类
定义上游价格数据获取的统一接口
"""

from abc import ABC, abstractmethod
from typing import Any

from pricecache.data.models import DataKind


class PriceProvider(ABC):
    """
    价格数据提供者抽象基类

    PriceCache 只依赖 fetch 接口，不关心数据源的限流和响应结构。
    所有数据源（如 CoinGecko 等）都应实现此接口。
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """数据源名称"""
        pass

    @abstractmethod
    async def fetch(self, asset_id: str, kind: DataKind) -> Any:
        """
        获取价格数据

        Args:
            asset_id: 资产 ID
            kind: 数据类型

        Returns:
            原始响应数据（缓存层不解析）
        """
        pass

    async def close(self) -> None:
        """释放资源"""

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    def __repr__(self):
        return f"PriceProvider({self.name})"
