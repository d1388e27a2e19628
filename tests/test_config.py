"""
配置与 TTL 策略测试
"""

import sys
from datetime import timedelta

import pytest
import yaml
from loguru import logger

from pricecache.data.models import DataKind
from pricecache.data.ttl import TTLPolicy
from pricecache.utils.config import Config, get_config, load_config, reset_config, set_config
from pricecache.utils.logger import setup_logger, setup_logger_from_config


class TestConfig:
    """默认值 / 环境变量 / YAML"""

    def test_defaults(self):
        config = Config()
        assert config.storage.backend == "mongo"
        assert config.storage.mongodb_uri == "mongodb://localhost:27017/buai"
        assert config.storage.collection == "pricedatas"
        assert config.cache.market_ttl_seconds == 1800
        assert config.cache.chart_ttl_seconds == 1800
        assert config.cache.serve_stale_on_error is True
        assert config.cache.collapse_concurrent_fetches is True

    def test_env_overrides(self, monkeypatch):
        monkeypatch.setenv("PRICE_CACHE_BACKEND", "sqlite")
        monkeypatch.setenv("MONGODB_URI", "mongodb://db:27017/prices")
        monkeypatch.setenv("PRICE_CACHE_MARKET_TTL", "60")
        monkeypatch.setenv("PRICE_CACHE_SERVE_STALE", "false")
        monkeypatch.setenv("PRICE_CACHE_FETCH_TIMEOUT", "2.5")
        monkeypatch.setenv("LOG_LEVEL", "DEBUG")

        config = Config()

        assert config.storage.backend == "sqlite"
        assert config.storage.mongodb_uri == "mongodb://db:27017/prices"
        assert config.cache.market_ttl_seconds == 60.0
        assert config.cache.serve_stale_on_error is False
        assert config.cache.fetch_timeout_seconds == 2.5
        assert config.logging.level == "DEBUG"

    def test_from_yaml(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(
            yaml.safe_dump({
                "storage": {"backend": "sqlite", "sqlite_path": "/tmp/prices.db"},
                "cache": {"chart_ttl_seconds": 7200, "serve_stale_on_error": False},
                "coingecko": {"calls_per_minute": 10},
            }),
            encoding="utf-8",
        )

        config = Config.from_yaml(str(path))

        assert config.storage.backend == "sqlite"
        assert config.storage.sqlite_path == "/tmp/prices.db"
        assert config.cache.chart_ttl_seconds == 7200
        assert config.cache.market_ttl_seconds == 1800
        assert config.cache.serve_stale_on_error is False
        assert config.coingecko.calls_per_minute == 10

    def test_env_beats_file(self, tmp_path, monkeypatch):
        path = tmp_path / "config.yaml"
        path.write_text(yaml.safe_dump({"storage": {"backend": "sqlite"}}), encoding="utf-8")
        monkeypatch.setenv("PRICE_CACHE_BACKEND", "memory")

        assert load_config(str(path)).storage.backend == "memory"

    def test_unknown_key_rejected(self):
        with pytest.raises(ValueError):
            Config.from_dict({"cache": {"ttl": 5}})

    def test_empty_yaml(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("", encoding="utf-8")
        assert Config.from_yaml(str(path)).storage.backend == "mongo"

    def test_to_dict_masks_api_key(self):
        config = Config()
        config.coingecko.api_key = "secret"
        assert config.to_dict()["coingecko"]["api_key"] == "***"

    def test_save_yaml_roundtrip(self, tmp_path):
        config = Config()
        config.cache.market_ttl_seconds = 45
        config.storage.backend = "memory"
        path = tmp_path / "saved.yaml"
        config.save_yaml(str(path))

        loaded = Config.from_yaml(str(path))
        assert loaded.cache.market_ttl_seconds == 45
        assert loaded.storage.backend == "memory"

    def test_load_config_from_env_file(self, tmp_path, monkeypatch):
        env_file = tmp_path / ".env"
        env_file.write_text("PRICE_CACHE_CHART_TTL=900\n", encoding="utf-8")
        # load_dotenv 写入 os.environ，测试结束后由 monkeypatch 清除
        monkeypatch.setenv("PRICE_CACHE_CHART_TTL", "")
        monkeypatch.delenv("PRICE_CACHE_CHART_TTL")

        config = load_config(env_file=str(env_file))
        assert config.cache.chart_ttl_seconds == 900

    def test_global_config(self):
        custom = Config()
        custom.storage.backend = "memory"
        set_config(custom)
        assert get_config() is custom

        reset_config()
        assert get_config() is not custom


class TestTTLPolicy:

    def test_defaults(self):
        policy = TTLPolicy()
        assert policy(DataKind.MARKET) == timedelta(minutes=30)
        assert policy("chart") == timedelta(minutes=30)

    def test_from_seconds(self):
        policy = TTLPolicy.from_seconds(market=60, chart=3600)
        assert policy(DataKind.MARKET) == timedelta(seconds=60)
        assert policy(DataKind.CHART) == timedelta(hours=1)
        assert policy.to_dict() == {"market": 60.0, "chart": 3600.0}

    @pytest.mark.parametrize("market", [timedelta(0), timedelta(seconds=-5)])
    def test_non_positive_rejected(self, market):
        with pytest.raises(ValueError):
            TTLPolicy(market=market)

    def test_non_timedelta_rejected(self):
        with pytest.raises(ValueError):
            TTLPolicy(chart=60)


class TestLogger:

    @pytest.fixture(autouse=True)
    def restore_logger(self):
        yield
        logger.remove()
        logger.add(sys.stderr, level="INFO")

    def test_setup_from_config_writes_file(self, tmp_path, monkeypatch):
        log_file = tmp_path / "logs" / "pricecache.log"
        monkeypatch.setenv("LOG_FILE", str(log_file))
        monkeypatch.setenv("LOG_LEVEL", "debug")

        setup_logger_from_config(Config())
        logger.debug("缓存命中: bitcoin (market)")
        logger.complete()

        content = log_file.read_text(encoding="utf-8")
        assert "日志系统初始化完成，级别: DEBUG" in content
        assert "缓存命中: bitcoin (market)" in content

    def test_level_filters_file_output(self, tmp_path):
        log_file = tmp_path / "warn.log"
        setup_logger(level="WARNING", log_file=str(log_file))
        logger.info("不应写入")
        logger.warning("上游获取失败，使用过期缓存")
        logger.complete()

        content = log_file.read_text(encoding="utf-8")
        assert "不应写入" not in content
        assert "上游获取失败，使用过期缓存" in content

    def test_unknown_level_rejected(self):
        with pytest.raises(ValueError):
            setup_logger(level="verbose")
