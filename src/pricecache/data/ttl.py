"""
缓存过期策略
"""

from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Dict

from pricecache.data.models import DataKind

DEFAULT_TTL = timedelta(minutes=30)


@dataclass
class TTLPolicy:
    """
    按数据类型区分的过期时间

    实例可直接作为 ``kind -> timedelta`` 函数传给 PriceCache。
    """
    market: timedelta = DEFAULT_TTL
    chart: timedelta = DEFAULT_TTL

    def __post_init__(self):
        for kind in DataKind:
            ttl = getattr(self, kind.value)
            if not isinstance(ttl, timedelta) or ttl <= timedelta(0):
                raise ValueError(f"{kind.value} 的 TTL 必须为正数: {ttl!r}")

    def __call__(self, kind: DataKind) -> timedelta:
        return getattr(self, DataKind.parse(kind).value)

    @classmethod
    def from_seconds(cls, market: float, chart: float) -> "TTLPolicy":
        """从秒数创建"""
        return cls(market=timedelta(seconds=market), chart=timedelta(seconds=chart))

    def to_dict(self) -> Dict[str, Any]:
        return {kind.value: self(kind).total_seconds() for kind in DataKind}
