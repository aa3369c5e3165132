"""
日志初始化 - 控制台 + 可选文件输出

职责：
- 按 LoggingConfig 设置根日志级别
- 重复调用不叠加handler
"""

from __future__ import annotations

import logging
import sys

from .runtime_config import LoggingConfig

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

_HANDLER_TAG = "_zpl_daemon_handler"


def setup_logging(config: LoggingConfig | None = None) -> logging.Logger:
    """配置根日志（幂等）"""
    config = config or LoggingConfig()
    root = logging.getLogger()
    root.setLevel(getattr(logging, config.log_level.upper(), logging.INFO))

    for handler in list(root.handlers):
        if getattr(handler, _HANDLER_TAG, False):
            root.removeHandler(handler)
            handler.close()

    formatter = logging.Formatter(LOG_FORMAT)

    stream_handler = logging.StreamHandler(sys.stdout)
    stream_handler.setFormatter(formatter)
    setattr(stream_handler, _HANDLER_TAG, True)
    root.addHandler(stream_handler)

    if config.log_to_file:
        config.log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(config.log_file, encoding="utf-8")
        file_handler.setFormatter(formatter)
        setattr(file_handler, _HANDLER_TAG, True)
        root.addHandler(file_handler)

    return root
