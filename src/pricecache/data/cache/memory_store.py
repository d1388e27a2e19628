"""
内存缓存存储
进程内字典实现，用于测试和本地开发
"""

import copy
from dataclasses import replace
from datetime import datetime
from typing import Dict, Optional, Tuple

from pricecache.data.cache.base import CacheStore
from pricecache.data.models import CacheEntry, DataKind, ensure_utc


def _detached(entry: CacheEntry) -> CacheEntry:
    """payload 深拷贝，调用方修改返回值不影响已缓存的数据"""
    return replace(entry, payload=copy.deepcopy(entry.payload))


class MemoryStore(CacheStore):
    """内存缓存存储，不做持久化"""

    def __init__(self):
        self._entries: Dict[Tuple[str, DataKind], CacheEntry] = {}

    async def find(self, asset_id: str, kind: DataKind) -> Optional[CacheEntry]:
        entry = self._entries.get((asset_id, kind))
        return _detached(entry) if entry is not None else None

    async def upsert(self, entry: CacheEntry) -> None:
        self._entries[entry.key] = _detached(entry)

    async def delete(self, asset_id: str, kind: DataKind) -> bool:
        return self._entries.pop((asset_id, kind), None) is not None

    async def delete_expired(self, now: datetime) -> int:
        now = ensure_utc(now)
        expired = [key for key, entry in self._entries.items() if entry.expires_at < now]
        for key in expired:
            del self._entries[key]
        return len(expired)

    async def count(self) -> int:
        return len(self._entries)

    def __repr__(self):
        return f"MemoryStore(entries={len(self._entries)})"
