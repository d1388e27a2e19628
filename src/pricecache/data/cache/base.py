"""
缓存存储基类
定义价格缓存后端的统一接口
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional

from pricecache.data.models import CacheEntry, DataKind


class CacheStore(ABC):
    """
    缓存存储抽象基类

    以 (asset_id, kind) 为键保存 CacheEntry。
    所有存储实现（MongoDB, SQLite, 内存等）都应实现此接口，
    任何底层读写错误都以 StorageUnavailable 抛出。
    """

    async def connect(self) -> None:
        """建立连接（需要时创建索引/表）"""

    async def close(self) -> None:
        """释放连接"""

    @abstractmethod
    async def find(self, asset_id: str, kind: DataKind) -> Optional[CacheEntry]:
        """
        查询缓存条目

        Args:
            asset_id: 资产 ID
            kind: 数据类型

        Returns:
            缓存条目（包括已过期的），不存在返回 None
        """
        pass

    @abstractmethod
    async def upsert(self, entry: CacheEntry) -> None:
        """
        写入缓存条目，同一 (asset_id, kind) 覆盖旧记录

        Args:
            entry: 缓存条目
        """
        pass

    @abstractmethod
    async def delete(self, asset_id: str, kind: DataKind) -> bool:
        """
        删除缓存条目

        Returns:
            是否删除了记录
        """
        pass

    @abstractmethod
    async def delete_expired(self, now: datetime) -> int:
        """
        删除 expires_at < now 的全部条目

        Returns:
            删除的条目数
        """
        pass

    @abstractmethod
    async def count(self) -> int:
        """存储中的条目总数（包括已过期的）"""
        pass

    async def __aenter__(self):
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
