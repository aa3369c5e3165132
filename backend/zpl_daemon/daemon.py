"""
守护进程 - 组装检测器、队列与转换后端

职责：
1. 按 RuntimeConfig 构建事件总线、在途集合、校验门、尺寸解析器、队列、检测器
2. 常驻模式：启动双通道检测 + 后台队列，直到中断
3. 单次模式：同步扫描目录并清空队列，返回统计
4. PID文件：防止同一目录重复启动

测试要点：
- test_run_once_converts_files: 单次模式转换并统计
- test_pid_file_refuses_live_process: PID文件指向存活进程时拒绝启动
"""

from __future__ import annotations

import logging
import os
import threading
from pathlib import Path

import psutil
from pydantic import BaseModel

from .config import RuntimeConfig, get_config
from .interfaces import IClock, IConversionBackend, ZplDaemonError
from .labels import DimensionResolver
from .models import LifecycleEvent, ProcessingEvent, QueueStats
from .pipeline import EventBus, ProcessingQueue, SystemClock
from .render import create_backend
from .watch import FileDetector, InFlightRegistry, ValidationGate

logger = logging.getLogger(__name__)


class RunSummary(BaseModel):
    """单次运行统计"""
    detected: int = 0
    succeeded: int = 0
    failed: int = 0

    @property
    def total(self) -> int:
        return self.succeeded + self.failed


class PidFile:
    """PID文件"""

    def __init__(self, path: Path):
        self.path = Path(path)

    def read(self) -> int | None:
        try:
            return int(self.path.read_text(encoding="utf-8").strip())
        except (OSError, ValueError):
            return None

    def acquire(self) -> None:
        """写入当前PID；已有存活进程时抛出异常"""
        existing = self.read()
        if existing and existing != os.getpid() and psutil.pid_exists(existing):
            raise ZplDaemonError(f"守护进程已在运行 (PID {existing}): {self.path}")
        if existing:
            logger.info(f"清理过期PID文件: {self.path} (PID {existing})")
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(str(os.getpid()), encoding="utf-8")

    def release(self) -> None:
        if self.read() == os.getpid():
            self.path.unlink(missing_ok=True)


class LabelDaemon:
    """标签目录守护进程"""

    def __init__(
        self,
        config: RuntimeConfig | None = None,
        backend: IConversionBackend | None = None,
        clock: IClock | None = None,
    ):
        self.config = config or get_config()
        self.clock = clock or SystemClock()
        self.backend = backend or create_backend(self.config)

        self.bus = EventBus()
        self.registry = InFlightRegistry()
        self.gate = ValidationGate(self.config.watch.extensions)
        self.resolver = DimensionResolver(self.config.dimensions)
        self.queue = ProcessingQueue(
            backend=self.backend,
            bus=self.bus,
            gate=self.gate,
            retries=self.config.retries,
            concurrency=self.config.concurrency,
            output=self.config.output,
            resolver=self.resolver,
            clock=self.clock,
        )
        self.detector = FileDetector(
            config=self.config.watch,
            queue=self.queue,
            bus=self.bus,
            gate=self.gate,
            registry=self.registry,
            resolver=self.resolver,
            clock=self.clock,
        )

        pid_path = self.config.daemon.pid_file
        self.pid_file = PidFile(pid_path) if pid_path else None
        self._running = False
        self._stop_requested = threading.Event()

    @property
    def is_running(self) -> bool:
        return self._running

    def start(self) -> None:
        if self._running:
            return
        if self.pid_file:
            self.pid_file.acquire()
        try:
            self.config.ensure_dirs()
            self.queue.start()
            self.detector.start()
        except Exception:
            logger.exception("守护进程启动失败，回滚已启动的组件")
            self.detector.stop()
            self.queue.stop()
            if self.pid_file:
                self.pid_file.release()
            raise
        self._running = True
        logger.info(
            f"守护进程已启动: 监听 {self.config.watch.listen_folder}, "
            f"输出 {self.config.output.output_dir or '源文件目录'}"
        )

    def stop(self) -> None:
        if not self._running:
            return
        self.detector.stop()
        self.queue.stop()
        if self.pid_file:
            self.pid_file.release()
        self._running = False
        self._stop_requested.clear()
        logger.info("守护进程已停止")

    def request_stop(self) -> None:
        """请求 run_forever 退出（可在信号处理器中调用）"""
        self._stop_requested.set()

    def run_forever(self, check_interval: float = 1.0) -> None:
        """常驻运行直到 request_stop() 或 Ctrl+C"""
        self.start()
        try:
            while not self._stop_requested.wait(check_interval):
                pass
        except KeyboardInterrupt:
            logger.info("收到中断信号，正在停止...")
        finally:
            self.stop()

    def run_once(self) -> RunSummary:
        """同步处理目录中已有文件后返回"""
        self.config.ensure_dirs()
        summary = RunSummary()

        def on_detected(event: ProcessingEvent) -> None:
            summary.detected += 1

        def on_completed(event: ProcessingEvent) -> None:
            if event.success:
                summary.succeeded += 1
            else:
                summary.failed += 1

        self.bus.subscribe(LifecycleEvent.DETECTED, on_detected)
        self.bus.subscribe(LifecycleEvent.COMPLETED, on_completed)
        try:
            self.detector.scan_existing()
            self.queue.process_pending()
        finally:
            self.bus.unsubscribe(LifecycleEvent.DETECTED, on_detected)
            self.bus.unsubscribe(LifecycleEvent.COMPLETED, on_completed)

        logger.info(f"单次处理完成: 检测 {summary.detected}, 成功 {summary.succeeded}, 失败 {summary.failed}")
        return summary

    def stats(self) -> QueueStats:
        return self.queue.stats()
