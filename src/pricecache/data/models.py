"""
数据模型模块
定义缓存条目和查询结果的数据结构
"""

import re
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Generic, Optional, Tuple, TypeVar

from pricecache.data.errors import InvalidArgument

T = TypeVar("T")

DEFAULT_CHART_DAYS = 7

_CHART_ASSET_RE = re.compile(r"^(?P<coin_id>.+)-(?P<days>\d+)d$")


class DataKind(Enum):
    """缓存数据类型"""
    MARKET = "market"
    CHART = "chart"

    @classmethod
    def parse(cls, value: Any) -> "DataKind":
        """
        解析数据类型

        Args:
            value: DataKind 或其字符串值

        Returns:
            DataKind

        Raises:
            InvalidArgument: 不支持的数据类型
        """
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            allowed = ", ".join(k.value for k in cls)
            raise InvalidArgument(f"不支持的数据类型: {value!r}，可选值: {allowed}") from None


def utcnow() -> datetime:
    """当前 UTC 时间（带时区）"""
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """无时区的时间按 UTC 处理"""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def validate_asset_id(asset_id: Any) -> str:
    """校验资产 ID，返回原值"""
    if not isinstance(asset_id, str) or not asset_id.strip():
        raise InvalidArgument(f"资产 ID 不能为空: {asset_id!r}")
    return asset_id


def chart_asset_id(coin_id: str, days: int = DEFAULT_CHART_DAYS) -> str:
    """
    生成图表缓存使用的资产 ID

    不同时间窗口的图表数据分别缓存，例如 bitcoin 的 7 天图表为 ``bitcoin-7d``。
    """
    validate_asset_id(coin_id)
    if not isinstance(days, int) or days <= 0:
        raise InvalidArgument(f"图表天数必须为正整数: {days!r}")
    return f"{coin_id}-{days}d"


def split_chart_asset_id(asset_id: str) -> Tuple[str, int]:
    """解析 ``chart_asset_id`` 生成的键，没有天数后缀时使用默认窗口"""
    match = _CHART_ASSET_RE.match(asset_id)
    if match:
        return match.group("coin_id"), int(match.group("days"))
    return asset_id, DEFAULT_CHART_DAYS


@dataclass
class CacheEntry(Generic[T]):
    """
    缓存条目

    每个 (asset_id, kind) 只保留一条记录，payload 原样存取，不做任何解析。
    """
    asset_id: str
    kind: DataKind
    payload: T
    fetched_at: datetime
    expires_at: datetime

    def __post_init__(self):
        self.fetched_at = ensure_utc(self.fetched_at)
        self.expires_at = ensure_utc(self.expires_at)
        if self.expires_at <= self.fetched_at:
            raise ValueError(
                f"expires_at 必须晚于 fetched_at: {self.expires_at.isoformat()} <= {self.fetched_at.isoformat()}"
            )

    @property
    def key(self) -> Tuple[str, DataKind]:
        """缓存键"""
        return self.asset_id, self.kind

    def is_expired(self, now: datetime) -> bool:
        """now 超过 expires_at 即视为过期"""
        return ensure_utc(now) > self.expires_at

    def to_document(self) -> Dict[str, Any]:
        """转换为存储文档"""
        return {
            "assetId": self.asset_id,
            "dataType": self.kind.value,
            "data": self.payload,
            "fetchedAt": self.fetched_at,
            "expiresAt": self.expires_at,
        }

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "CacheEntry":
        """从存储文档创建"""
        return cls(
            asset_id=doc["assetId"],
            kind=DataKind(doc["dataType"]),
            payload=doc["data"],
            fetched_at=doc["fetchedAt"],
            expires_at=doc["expiresAt"],
        )


@dataclass
class CacheResult(Generic[T]):
    """
    缓存查询结果

    hit 表示直接命中未过期缓存；stale 表示上游失败后返回了过期数据。
    """
    payload: T
    hit: bool
    stale: bool = False
    fetched_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None

    @classmethod
    def from_entry(cls, entry: CacheEntry, hit: bool, stale: bool = False) -> "CacheResult":
        return cls(
            payload=entry.payload,
            hit=hit,
            stale=stale,
            fetched_at=entry.fetched_at,
            expires_at=entry.expires_at,
        )
