"""
配置管理模块
统一管理价格缓存配置
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv


@dataclass
class StorageConfig:
    """存储配置"""
    backend: str = "mongo"  # mongo / sqlite / memory
    mongodb_uri: str = "mongodb://localhost:27017/buai"
    database: str = ""
    collection: str = "pricedatas"
    sqlite_path: str = "./data/cache/price_cache.db"


@dataclass
class CacheConfig:
    """缓存策略配置"""
    market_ttl_seconds: float = 1800.0
    chart_ttl_seconds: float = 1800.0
    serve_stale_on_error: bool = True
    fetch_timeout_seconds: float = 15.0
    collapse_concurrent_fetches: bool = True
    sweep_interval_seconds: float = 600.0


@dataclass
class CoinGeckoConfig:
    """CoinGecko 配置"""
    base_url: str = "https://api.coingecko.com/api/v3"
    api_key: str = ""
    calls_per_minute: int = 30
    vs_currency: str = "usd"


@dataclass
class LoggingConfig:
    """日志配置"""
    level: str = "INFO"
    file: str = ""
    rotation: str = "10 MB"
    retention: str = "1 week"


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if not value:
        return default
    return float(value)


@dataclass
class Config:
    """
    系统配置

    统一管理所有配置项。
    """
    storage: StorageConfig = field(default_factory=StorageConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    coingecko: CoinGeckoConfig = field(default_factory=CoinGeckoConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def __post_init__(self):
        self.apply_env()

    def apply_env(self) -> None:
        """从环境变量加载配置"""
        # 存储
        self.storage.backend = os.getenv("PRICE_CACHE_BACKEND", self.storage.backend)
        self.storage.mongodb_uri = os.getenv("MONGODB_URI", self.storage.mongodb_uri)
        self.storage.database = os.getenv("MONGODB_DATABASE", self.storage.database)
        self.storage.collection = os.getenv("PRICE_CACHE_COLLECTION", self.storage.collection)
        self.storage.sqlite_path = os.getenv("PRICE_CACHE_SQLITE_PATH", self.storage.sqlite_path)

        # 缓存策略
        self.cache.market_ttl_seconds = _env_float("PRICE_CACHE_MARKET_TTL", self.cache.market_ttl_seconds)
        self.cache.chart_ttl_seconds = _env_float("PRICE_CACHE_CHART_TTL", self.cache.chart_ttl_seconds)
        self.cache.serve_stale_on_error = _env_bool("PRICE_CACHE_SERVE_STALE", self.cache.serve_stale_on_error)
        self.cache.fetch_timeout_seconds = _env_float(
            "PRICE_CACHE_FETCH_TIMEOUT",
            self.cache.fetch_timeout_seconds
        )
        self.cache.sweep_interval_seconds = _env_float(
            "PRICE_CACHE_SWEEP_INTERVAL",
            self.cache.sweep_interval_seconds
        )

        # CoinGecko
        self.coingecko.api_key = os.getenv("COINGECKO_API_KEY", self.coingecko.api_key)

        # 日志
        self.logging.level = os.getenv("LOG_LEVEL", self.logging.level)
        self.logging.file = os.getenv("LOG_FILE", self.logging.file)

    @classmethod
    def from_yaml(cls, path: str) -> "Config":
        """
        从 YAML 文件加载配置

        Args:
            path: 配置文件路径

        Returns:
            Config 对象
        """
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Config":
        """
        从字典加载配置

        文件中的值覆盖默认值，环境变量再覆盖文件中的值。
        """
        config = cls()

        for section in ("storage", "cache", "coingecko", "logging"):
            target = getattr(config, section)
            for key, value in (data.get(section) or {}).items():
                if not hasattr(target, key):
                    raise ValueError(f"未知配置项: {section}.{key}")
                setattr(target, key, value)

        config.apply_env()
        return config

    def to_dict(self) -> Dict[str, Any]:
        """转换为字典"""
        return {
            "storage": {
                "backend": self.storage.backend,
                "mongodb_uri": self.storage.mongodb_uri,
                "database": self.storage.database,
                "collection": self.storage.collection,
                "sqlite_path": self.storage.sqlite_path,
            },
            "cache": {
                "market_ttl_seconds": self.cache.market_ttl_seconds,
                "chart_ttl_seconds": self.cache.chart_ttl_seconds,
                "serve_stale_on_error": self.cache.serve_stale_on_error,
                "fetch_timeout_seconds": self.cache.fetch_timeout_seconds,
                "collapse_concurrent_fetches": self.cache.collapse_concurrent_fetches,
                "sweep_interval_seconds": self.cache.sweep_interval_seconds,
            },
            "coingecko": {
                "base_url": self.coingecko.base_url,
                "api_key": "***" if self.coingecko.api_key else "",
                "calls_per_minute": self.coingecko.calls_per_minute,
                "vs_currency": self.coingecko.vs_currency,
            },
            "logging": {
                "level": self.logging.level,
                "file": self.logging.file,
                "rotation": self.logging.rotation,
                "retention": self.logging.retention,
            },
        }

    def save_yaml(self, path: str) -> None:
        """保存配置到 YAML 文件"""
        with open(path, "w", encoding="utf-8") as f:
            yaml.dump(self.to_dict(), f, default_flow_style=False)


def load_config(
    config_path: Optional[str] = None,
    env_file: Optional[str] = None,
) -> Config:
    """
    加载配置

    优先级：环境变量 > 配置文件 > 默认值

    Args:
        config_path: YAML 配置文件路径
        env_file: .env 文件路径

    Returns:
        Config 对象
    """
    # 加载 .env 文件
    if env_file:
        load_dotenv(env_file)
    else:
        default_env = Path(".env")
        if default_env.exists():
            load_dotenv(default_env)

    if config_path and Path(config_path).exists():
        config = Config.from_yaml(config_path)
    else:
        config = Config()

    return config


# 全局配置实例
_global_config: Optional[Config] = None


def get_config() -> Config:
    """获取全局配置"""
    global _global_config
    if _global_config is None:
        _global_config = load_config()
    return _global_config


def set_config(config: Config) -> None:
    """设置全局配置"""
    global _global_config
    _global_config = config


def reset_config() -> None:
    """重置全局配置，下次 get_config 时重新加载"""
    global _global_config
    _global_config = None
