"""日志配置模块."""

import logging
from typing import Optional
from .settings import settings

# 第三方库日志过于冗长，只保留警告以上
_NOISY_LOGGERS = ("httpx", "httpcore")


def setup_logging(level: Optional[str] = None, format_str: Optional[str] = None):
    """
    设置日志配置.

    Args:
        level: 日志级别，默认从配置中读取
        format_str: 日志格式，默认使用标准格式
    """
    log_level = (level or settings.log_level or "INFO").upper()
    log_format = format_str or "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        format=log_format,
        handlers=[logging.StreamHandler()],
    )
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """
    获取指定名称的logger实例.

    Args:
        name: logger名称，通常使用__name__

    Returns:
        配置好的logger实例
    """
    return logging.getLogger(name)
