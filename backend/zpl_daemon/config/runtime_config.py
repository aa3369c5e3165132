"""
运行期配置 - 读取 config/zpl_daemon.yaml

职责：
- 加载监听/重试/并发/尺寸/输出等运行参数
- 提供环境变量覆盖机制
- 类型安全的配置访问
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings

DEFAULT_CONFIG_PATH = Path("config/zpl_daemon.yaml")


class WatchConfig(BaseModel):
    """监听配置"""

    listen_folder: Path = Path("watch")
    extensions: list[str] = Field(default_factory=lambda: [".txt", ".prn", ".zpl", ".imp"])
    poll_interval_sec: float = Field(default=2.0, gt=0)
    settle_delay_ms: int = Field(default=500, ge=0)
    lock_retry_attempts: int = Field(default=3, ge=1)
    lock_retry_delay_ms: int = Field(default=1000, ge=0)
    use_native_events: bool = True


class RetryConfig(BaseModel):
    """重试配置（文件被占用时）"""

    max_retries: int = Field(default=3, ge=0)
    retry_delay_ms: int = Field(default=2000, ge=0)


class ConcurrencyConfig(BaseModel):
    """并发配置"""

    max_workers: int = Field(default=1, ge=1)
    idle_wait_ms: int = Field(default=1000, gt=0)
    error_pause_ms: int = Field(default=5000, ge=0)


class DimensionConfig(BaseModel):
    """标签尺寸配置"""

    width: float = Field(default=100.0, gt=0)       # 单位见 unit
    height: float = Field(default=150.0, gt=0)
    unit: Literal["mm", "cm", "in"] = "mm"
    dpi: int = Field(default=203, ge=72, le=600)
    use_fixed: bool = False


class OutputConfig(BaseModel):
    """输出配置"""

    output_dir: Path | None = None


class RendererConfig(BaseModel):
    """渲染后端配置"""

    labelary_url: str = "http://api.labelary.com/v1/printers"
    timeout_sec: float = Field(default=60.0, gt=0)
    min_interval_ms: int = Field(default=334, ge=0)


class LoggingConfig(BaseModel):
    """日志配置"""

    log_level: str = "INFO"
    log_to_file: bool = False
    log_file: Path = Path("logs/zpl_daemon.log")


class DaemonConfig(BaseModel):
    """守护进程配置"""

    pid_file: Path | None = None


class RuntimeConfig(BaseSettings):
    """运行期配置（支持环境变量覆盖）"""

    watch: WatchConfig = Field(default_factory=WatchConfig)
    retries: RetryConfig = Field(default_factory=RetryConfig)
    concurrency: ConcurrencyConfig = Field(default_factory=ConcurrencyConfig)
    dimensions: DimensionConfig = Field(default_factory=DimensionConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)
    renderer: RendererConfig = Field(default_factory=RendererConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    daemon: DaemonConfig = Field(default_factory=DaemonConfig)

    model_config = {
        "env_prefix": "ZPL_DAEMON_",
        "env_nested_delimiter": "__",
        "arbitrary_types_allowed": True,
    }

    @classmethod
    def from_yaml(cls, yaml_path: str | Path) -> RuntimeConfig:
        """从YAML文件加载配置"""
        path = Path(yaml_path)
        if not path.exists():
            return cls()

        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

        runtime_opts = data.get("runtime_options", {})

        config = cls(
            watch=WatchConfig(**cls._extract(runtime_opts, "watch")),
            retries=RetryConfig(**cls._extract(runtime_opts, "retries")),
            concurrency=ConcurrencyConfig(**cls._extract(runtime_opts, "concurrency")),
            dimensions=DimensionConfig(**cls._extract(runtime_opts, "dimensions")),
            output=OutputConfig(**cls._extract(runtime_opts, "output")),
            renderer=RendererConfig(**cls._extract(runtime_opts, "renderer")),
            logging=LoggingConfig(**cls._extract(runtime_opts, "logging")),
            daemon=DaemonConfig(**cls._extract(runtime_opts, "daemon")),
        )

        config._resolve_paths(base_dir=path.parent)
        return config

    @staticmethod
    def _extract(data: dict[str, Any], key: str) -> dict[str, Any]:
        """提取并展平配置"""
        section = data.get(key) or {}
        result = {}
        for k, v in section.items():
            if isinstance(v, dict) and "default" in v:
                result[k] = v["default"]
            elif not isinstance(v, dict):
                result[k] = v
        return result

    def _resolve_paths(self, base_dir: Path) -> None:
        """解析相对路径配置为绝对路径（基于配置文件所在目录）"""
        if not self.watch.listen_folder.is_absolute():
            self.watch.listen_folder = (base_dir / self.watch.listen_folder).resolve()
        if self.output.output_dir and not self.output.output_dir.is_absolute():
            self.output.output_dir = (base_dir / self.output.output_dir).resolve()
        if not self.logging.log_file.is_absolute():
            self.logging.log_file = (base_dir / self.logging.log_file).resolve()
        if self.daemon.pid_file and not self.daemon.pid_file.is_absolute():
            self.daemon.pid_file = (base_dir / self.daemon.pid_file).resolve()

    def ensure_dirs(self) -> None:
        """确保必要目录存在"""
        self.watch.listen_folder.mkdir(parents=True, exist_ok=True)
        if self.output.output_dir:
            self.output.output_dir.mkdir(parents=True, exist_ok=True)


# 全局配置实例
_config: RuntimeConfig | None = None


def get_config() -> RuntimeConfig:
    """获取全局配置（惰性加载）"""
    global _config
    if _config is None:
        _config = RuntimeConfig.from_yaml(DEFAULT_CONFIG_PATH)
    return _config


def reload_config(yaml_path: str | Path | None = None) -> RuntimeConfig:
    """重新加载配置"""
    global _config
    path = yaml_path or DEFAULT_CONFIG_PATH
    _config = RuntimeConfig.from_yaml(path)
    return _config
