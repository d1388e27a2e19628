"""
缓存相关 Pydantic 模型
"""

from pydantic import BaseModel


class CacheStats(BaseModel):
    """缓存统计"""
    hits: int = 0
    misses: int = 0
    stale_served: int = 0
    refreshes: int = 0
    upstream_failures: int = 0
    collapsed: int = 0
    in_flight: int = 0
    total_entries: int = 0

    @property
    def requests(self) -> int:
        return self.hits + self.misses

    @property
    def hit_rate(self) -> float:
        """命中率，没有请求时为 0"""
        if self.requests == 0:
            return 0.0
        return self.hits / self.requests
