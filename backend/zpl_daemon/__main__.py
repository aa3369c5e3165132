"""
命令行入口 - python -m zpl_daemon

示例：
    python -m zpl_daemon --config config/zpl_daemon.yaml
    python -m zpl_daemon --folder ./inbox --output ./pdf --width 100 --height 150 --unit mm
    python -m zpl_daemon --folder ./inbox --once
"""

from __future__ import annotations

import argparse
import logging
import signal
import sys
from pathlib import Path

from .config import (
    DEFAULT_CONFIG_PATH,
    ConcurrencyConfig,
    DimensionConfig,
    RuntimeConfig,
    setup_logging,
)
from .daemon import LabelDaemon
from .interfaces import ConfigError, ZplDaemonError

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="zpl_daemon", description="ZPL标签目录监听转换")
    parser.add_argument("--config", default=str(DEFAULT_CONFIG_PATH), help="YAML配置文件")
    parser.add_argument("--folder", help="监听目录")
    parser.add_argument("--output", help="输出目录（默认与源文件同目录）")
    parser.add_argument("--width", type=float, help="标签宽度")
    parser.add_argument("--height", type=float, help="标签高度")
    parser.add_argument("--unit", choices=["mm", "cm", "in"], help="尺寸单位")
    parser.add_argument("--dpi", type=int, help="打印密度")
    parser.add_argument("--workers", type=int, help="并发转换数")
    parser.add_argument("--once", action="store_true", help="处理已有文件后退出")
    return parser


def build_config(args: argparse.Namespace) -> RuntimeConfig:
    """加载YAML配置并应用命令行覆盖"""
    config = RuntimeConfig.from_yaml(args.config)

    if args.folder:
        config.watch.listen_folder = _resolve_path(args.folder)
    if args.output:
        config.output.output_dir = _resolve_path(args.output)

    dims = config.dimensions.model_dump()
    if args.unit:
        dims["unit"] = args.unit
    if args.dpi:
        dims["dpi"] = args.dpi
    if args.width is not None and args.height is not None:
        dims.update(width=args.width, height=args.height, use_fixed=True)
    elif args.width is not None or args.height is not None:
        raise ConfigError("--width 与 --height 必须同时指定")
    config.dimensions = DimensionConfig.model_validate(dims)

    if args.workers:
        concurrency = config.concurrency.model_dump()
        concurrency["max_workers"] = args.workers
        config.concurrency = ConcurrencyConfig.model_validate(concurrency)

    return config


def _resolve_path(value: str) -> Path:
    return Path(value).expanduser().resolve()


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        config = build_config(args)
    except (ConfigError, ValueError) as e:
        print(f"配置错误: {e}", file=sys.stderr)
        return 2

    setup_logging(config.logging)

    try:
        daemon = LabelDaemon(config)
        if args.once:
            summary = daemon.run_once()
            return 0 if summary.failed == 0 else 1

        signal.signal(signal.SIGTERM, lambda signum, frame: daemon.request_stop())
        daemon.run_forever()
    except ZplDaemonError as e:
        logger.error(str(e))
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
