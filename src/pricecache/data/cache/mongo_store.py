"""
MongoDB 缓存存储
每个 (assetId, dataType) 对应一个文档
"""

from datetime import datetime
from typing import Any, Optional

from loguru import logger
from pymongo import ASCENDING, AsyncMongoClient
from pymongo.errors import PyMongoError

from pricecache.data.cache.base import CacheStore
from pricecache.data.errors import StorageUnavailable
from pricecache.data.models import CacheEntry, DataKind, ensure_utc

DEFAULT_DATABASE = "buai"
DEFAULT_COLLECTION = "pricedatas"


class MongoStore(CacheStore):
    """
    MongoDB 缓存存储

    文档结构：
    - assetId, dataType, data, fetchedAt, expiresAt

    索引：
    - (assetId, dataType) 唯一复合索引，用于查询和 upsert
    - expiresAt，用于过期清理

    连接由调用方显式管理（connect/close 或 async with）。
    """

    def __init__(
        self,
        uri: str = "mongodb://localhost:27017",
        database: Optional[str] = None,
        collection_name: str = DEFAULT_COLLECTION,
        collection: Any = None,
        server_selection_timeout_ms: int = 5000,
    ):
        """
        初始化 MongoDB 存储

        Args:
            uri: MongoDB 连接串
            database: 数据库名（默认取连接串中的库名，没有则为 buai）
            collection_name: 集合名
            collection: 直接注入的集合对象（测试用，不会创建客户端）
            server_selection_timeout_ms: 选择服务器超时（毫秒）
        """
        self.uri = uri
        self.database = database
        self.collection_name = collection_name
        self.server_selection_timeout_ms = server_selection_timeout_ms

        self._client: Optional[AsyncMongoClient] = None
        self._collection = collection
        self._owns_client = collection is None
        self._indexes_ready = False

    @property
    def collection(self):
        if self._collection is None:
            raise StorageUnavailable("MongoDB 未连接，请先调用 connect()")
        return self._collection

    async def connect(self) -> None:
        """连接 MongoDB 并创建索引"""
        try:
            if self._collection is None:
                self._client = AsyncMongoClient(
                    self.uri,
                    tz_aware=True,
                    serverSelectionTimeoutMS=self.server_selection_timeout_ms,
                )
                await self._client.admin.command("ping")
                if self.database:
                    db = self._client[self.database]
                else:
                    db = self._client.get_default_database(default=DEFAULT_DATABASE)
                self._collection = db[self.collection_name]
                logger.info(f"MongoDB 连接成功: {db.name}.{self.collection_name}")

            if not self._indexes_ready:
                await self._collection.create_index(
                    [("assetId", ASCENDING), ("dataType", ASCENDING)],
                    unique=True,
                )
                await self._collection.create_index([("expiresAt", ASCENDING)])
                self._indexes_ready = True
        except PyMongoError as e:
            logger.error(f"MongoDB 连接失败: {e}")
            await self.close()
            raise StorageUnavailable(f"MongoDB 连接失败: {e}") from e

    async def close(self) -> None:
        """断开 MongoDB 连接"""
        if self._owns_client and self._client is not None:
            await self._client.close()
            self._client = None
            self._collection = None
            self._indexes_ready = False
            logger.info("MongoDB 连接已关闭")

    @staticmethod
    def _key_filter(asset_id: str, kind: DataKind) -> dict:
        return {"assetId": asset_id, "dataType": kind.value}

    async def find(self, asset_id: str, kind: DataKind) -> Optional[CacheEntry]:
        try:
            doc = await self.collection.find_one(self._key_filter(asset_id, kind), {"_id": 0})
        except PyMongoError as e:
            raise StorageUnavailable(f"缓存读取失败: {asset_id} ({kind.value}), {e}") from e

        if doc is None:
            return None
        return CacheEntry.from_document(doc)

    async def upsert(self, entry: CacheEntry) -> None:
        try:
            await self.collection.replace_one(
                self._key_filter(entry.asset_id, entry.kind),
                entry.to_document(),
                upsert=True,
            )
        except PyMongoError as e:
            raise StorageUnavailable(f"缓存写入失败: {entry.asset_id} ({entry.kind.value}), {e}") from e

    async def delete(self, asset_id: str, kind: DataKind) -> bool:
        try:
            result = await self.collection.delete_one(self._key_filter(asset_id, kind))
        except PyMongoError as e:
            raise StorageUnavailable(f"缓存删除失败: {asset_id} ({kind.value}), {e}") from e
        return result.deleted_count > 0

    async def delete_expired(self, now: datetime) -> int:
        try:
            result = await self.collection.delete_many({"expiresAt": {"$lt": ensure_utc(now)}})
        except PyMongoError as e:
            raise StorageUnavailable(f"清理过期缓存失败: {e}") from e
        return result.deleted_count

    async def count(self) -> int:
        try:
            return await self.collection.count_documents({})
        except PyMongoError as e:
            raise StorageUnavailable(f"缓存统计失败: {e}") from e

    def __repr__(self):
        return f"MongoStore(database={self.database}, collection={self.collection_name})"
