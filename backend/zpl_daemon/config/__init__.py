"""
配置层 - 运行期配置与日志

职责：
- 加载 config/zpl_daemon.yaml（运行期参数）
- 提供类型安全的配置访问接口
- 初始化日志输出
"""

from .logging_setup import setup_logging
from .runtime_config import (
    DEFAULT_CONFIG_PATH,
    ConcurrencyConfig,
    DaemonConfig,
    DimensionConfig,
    LoggingConfig,
    OutputConfig,
    RendererConfig,
    RetryConfig,
    RuntimeConfig,
    WatchConfig,
    get_config,
    reload_config,
)

__all__ = [
    "DEFAULT_CONFIG_PATH",
    "RuntimeConfig",
    "WatchConfig",
    "RetryConfig",
    "ConcurrencyConfig",
    "DimensionConfig",
    "OutputConfig",
    "RendererConfig",
    "LoggingConfig",
    "DaemonConfig",
    "get_config",
    "reload_config",
    "setup_logging",
]
