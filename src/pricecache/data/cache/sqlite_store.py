"""
SQLite 缓存存储
使用 SQLite 数据库实现持久化价格缓存
"""

import asyncio
import pickle
import sqlite3
from datetime import datetime
from pathlib import Path
from typing import Optional

import aiosqlite
from loguru import logger

from pricecache.data.cache.base import CacheStore
from pricecache.data.errors import StorageUnavailable
from pricecache.data.models import CacheEntry, DataKind, ensure_utc


def _ts(value: datetime) -> str:
    """固定宽度的 UTC ISO 时间，保证字符串比较与时间顺序一致"""
    return ensure_utc(value).isoformat(timespec="microseconds")


class SQLiteStore(CacheStore):
    """
    SQLite 缓存存储

    特点：
    - 持久化存储，无需外部服务
    - (asset_id, data_type) 唯一约束，写入即覆盖
    - payload 以 pickle 序列化后原样保存

    表结构：
    - price_data: asset_id, data_type, data, fetched_at, expires_at
    """

    def __init__(self, db_path: Optional[str] = None):
        """
        初始化 SQLite 存储

        Args:
            db_path: 数据库文件路径（默认读取配置 storage.sqlite_path）
        """
        if db_path is None:
            from pricecache.utils.config import get_config
            db_path = get_config().storage.sqlite_path

        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        self._initialized = False
        self._lock = asyncio.Lock()

    async def _ensure_initialized(self) -> None:
        """确保数据库已初始化"""
        if self._initialized:
            return

        async with self._lock:
            if self._initialized:
                return

            # 目录路径在打开连接前拒绝，失败的 aiosqlite 连接会遗留工作线程
            if self.db_path.is_dir():
                raise StorageUnavailable(f"SQLite 路径是目录: {self.db_path}")

            try:
                async with aiosqlite.connect(self.db_path) as db:
                    await db.execute("""
                        CREATE TABLE IF NOT EXISTS price_data (
                            asset_id TEXT NOT NULL,
                            data_type TEXT NOT NULL,
                            data BLOB NOT NULL,
                            fetched_at TEXT NOT NULL,
                            expires_at TEXT NOT NULL,
                            UNIQUE(asset_id, data_type)
                        )
                    """)

                    await db.execute("""
                        CREATE INDEX IF NOT EXISTS idx_price_data_expires
                        ON price_data(expires_at)
                    """)

                    await db.commit()
            except sqlite3.Error as e:
                raise StorageUnavailable(f"SQLite 初始化失败: {self.db_path}, {e}") from e

            self._initialized = True
            logger.debug(f"SQLite 缓存初始化完成: {self.db_path}")

    async def connect(self) -> None:
        await self._ensure_initialized()

    async def find(self, asset_id: str, kind: DataKind) -> Optional[CacheEntry]:
        await self._ensure_initialized()

        try:
            async with aiosqlite.connect(self.db_path) as db:
                cursor = await db.execute(
                    """
                    SELECT data, fetched_at, expires_at
                    FROM price_data
                    WHERE asset_id = ? AND data_type = ?
                    """,
                    (asset_id, kind.value)
                )
                row = await cursor.fetchone()
        except sqlite3.Error as e:
            raise StorageUnavailable(f"缓存读取失败: {asset_id} ({kind.value}), {e}") from e

        if row is None:
            return None

        data_blob, fetched_at, expires_at = row
        return CacheEntry(
            asset_id=asset_id,
            kind=kind,
            payload=pickle.loads(data_blob),
            fetched_at=datetime.fromisoformat(fetched_at),
            expires_at=datetime.fromisoformat(expires_at),
        )

    async def upsert(self, entry: CacheEntry) -> None:
        await self._ensure_initialized()

        data_blob = pickle.dumps(entry.payload)

        try:
            async with aiosqlite.connect(self.db_path) as db:
                await db.execute(
                    """
                    INSERT OR REPLACE INTO price_data (asset_id, data_type, data, fetched_at, expires_at)
                    VALUES (?, ?, ?, ?, ?)
                    """,
                    (entry.asset_id, entry.kind.value, data_blob, _ts(entry.fetched_at), _ts(entry.expires_at))
                )
                await db.commit()
        except sqlite3.Error as e:
            raise StorageUnavailable(f"缓存写入失败: {entry.asset_id} ({entry.kind.value}), {e}") from e

    async def delete(self, asset_id: str, kind: DataKind) -> bool:
        await self._ensure_initialized()

        try:
            async with aiosqlite.connect(self.db_path) as db:
                cursor = await db.execute(
                    "DELETE FROM price_data WHERE asset_id = ? AND data_type = ?",
                    (asset_id, kind.value)
                )
                await db.commit()
                return cursor.rowcount > 0
        except sqlite3.Error as e:
            raise StorageUnavailable(f"缓存删除失败: {asset_id} ({kind.value}), {e}") from e

    async def delete_expired(self, now: datetime) -> int:
        await self._ensure_initialized()

        try:
            async with aiosqlite.connect(self.db_path) as db:
                cursor = await db.execute(
                    "DELETE FROM price_data WHERE expires_at < ?",
                    (_ts(now),)
                )
                await db.commit()
                return cursor.rowcount
        except sqlite3.Error as e:
            raise StorageUnavailable(f"清理过期缓存失败: {e}") from e

    async def count(self) -> int:
        await self._ensure_initialized()

        try:
            async with aiosqlite.connect(self.db_path) as db:
                cursor = await db.execute("SELECT COUNT(*) FROM price_data")
                return (await cursor.fetchone())[0]
        except sqlite3.Error as e:
            raise StorageUnavailable(f"缓存统计失败: {e}") from e

    def __repr__(self):
        return f"SQLiteStore(db_path={self.db_path})"
