"""
日志模块
按配置初始化 loguru 输出
"""

import sys
from pathlib import Path
from typing import Optional

from loguru import logger

DEFAULT_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
    "<level>{message}</level>"
)


def _normalize_level(level: str) -> str:
    """日志级别统一为大写，未知级别直接报错"""
    name = level.strip().upper()
    try:
        logger.level(name)
    except ValueError:
        raise ValueError(f"未知的日志级别: {level!r}") from None
    return name


def setup_logger(
    level: str = "INFO",
    log_file: Optional[str] = None,
    rotation: str = "10 MB",
    retention: str = "1 week",
    format_string: str = DEFAULT_FORMAT,
) -> None:
    """
    配置日志系统

    替换 loguru 的默认处理器：stderr 始终输出，指定 log_file 时额外写入按大小轮转的文件。

    Args:
        level: 日志级别（不区分大小写）
        log_file: 日志文件路径，为空则只输出到控制台
        rotation: 日志轮转大小
        retention: 日志保留时间
        format_string: 日志格式
    """
    level = _normalize_level(level)
    logger.remove()
    logger.add(sys.stderr, level=level, format=format_string, colorize=True)

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            log_file,
            level=level,
            format=format_string,
            rotation=rotation,
            retention=retention,
            compression="zip",
            encoding="utf-8",
        )

    logger.info(f"日志系统初始化完成，级别: {level}")


def setup_logger_from_config(config=None) -> None:
    """按 Config.logging 配置日志（默认使用全局配置）"""
    if config is None:
        from pricecache.utils.config import get_config
        config = get_config()

    setup_logger(
        level=config.logging.level,
        log_file=config.logging.file or None,
        rotation=config.logging.rotation,
        retention=config.logging.retention,
    )
