"""
文件检测器 - 双通道检测 + 接收状态机

状态：
    Unseen → PendingSettle → LockCheck → Enqueued
    Unseen → Rejected（未通过校验门）
    LockCheck → Abandoned（占用超出重试预算或文件消失）

职责：
1. 原生事件与定时轮询都汇入 offer()，在途集合原子去重
2. 稳定延迟 → 存在确认 → 占用探测（读取失败视为占用）
3. 解析尺寸、构造处理项、发出 DETECTED、提交队列
4. 订阅 COMPLETED 释放在途条目（源文件仍存在时暂存签名）

测试要点：
- test_offer_rejects_invalid_extension: 扩展名不合法直接拒绝
- test_offer_deduplicates: 在途文件不会重复接收
- test_accept_abandons_locked: 持续占用 → Abandoned 并释放
- test_completion_parks_failed_file: 失败文件未变化前不再接收
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING

from ..config import WatchConfig
from ..interfaces import IClock, INotificationSource
from ..labels import DimensionResolver, read_label_file
from ..models import LifecycleEvent, ProcessingEvent, ProcessingItem
from ..pipeline.clock import SystemClock
from .inflight import InFlightRegistry
from .sources import PollingSource, WatchdogSource
from .validation import ValidationGate

if TYPE_CHECKING:
    from ..pipeline.events import EventBus
    from ..pipeline.queue import ProcessingQueue

logger = logging.getLogger(__name__)

ACCEPT_WORKERS = 4


class DetectionState(str, Enum):
    """单文件检测状态"""
    UNSEEN = "unseen"
    PENDING_SETTLE = "pending_settle"
    LOCK_CHECK = "lock_check"
    ENQUEUED = "enqueued"
    REJECTED = "rejected"
    ABANDONED = "abandoned"
    IN_FLIGHT = "in_flight"       # 已被接管（或为未变化的失败文件）


class FileDetector:
    """文件检测器"""

    def __init__(
        self,
        config: WatchConfig,
        queue: ProcessingQueue,
        bus: EventBus,
        gate: ValidationGate | None = None,
        registry: InFlightRegistry | None = None,
        resolver: DimensionResolver | None = None,
        clock: IClock | None = None,
        sources: list[INotificationSource] | None = None,
    ):
        self.config = config
        self.queue = queue
        self.bus = bus
        self.gate = gate or ValidationGate(config.extensions)
        self.registry = registry if registry is not None else InFlightRegistry()
        self.resolver = resolver or DimensionResolver()
        self.clock = clock or SystemClock()
        self.sources = sources if sources is not None else self._default_sources()

        self._executor: ThreadPoolExecutor | None = None
        self.bus.subscribe(LifecycleEvent.COMPLETED, self._on_completed)

    @property
    def folder(self) -> Path:
        return self.config.listen_folder

    def _default_sources(self) -> list[INotificationSource]:
        sources: list[INotificationSource] = []
        if self.config.use_native_events:
            sources.append(WatchdogSource(self.folder, self.offer))
        sources.append(PollingSource(self.config.poll_interval_sec, self.scan_existing))
        return sources

    # ------------------------------------------------------------------
    # 生命周期
    # ------------------------------------------------------------------

    def start(self) -> None:
        """创建监听目录、启动通知源并扫描已有文件"""
        self.folder.mkdir(parents=True, exist_ok=True)
        if self._executor is None:
            self._executor = ThreadPoolExecutor(max_workers=ACCEPT_WORKERS, thread_name_prefix="zpl-detect")
        for source in self.sources:
            source.start()
        found = self.scan_existing()
        logger.info(f"文件检测已启动: {self.folder} (已有文件 {found} 个)")

    def stop(self) -> None:
        for source in self.sources:
            try:
                source.stop()
            except Exception as e:
                logger.error(f"通知源停止失败: {e}", exc_info=True)
        if self._executor is not None:
            self._executor.shutdown(wait=True, cancel_futures=True)
            self._executor = None
        logger.info("文件检测已停止")

    # ------------------------------------------------------------------
    # 接收
    # ------------------------------------------------------------------

    def scan_existing(self) -> int:
        """将目录中已有的合格文件逐个 offer，返回新接收数量"""
        if not self.folder.is_dir():
            return 0
        accepted = 0
        for path in sorted(self.folder.iterdir()):
            if self.offer(path, "scan") not in (DetectionState.REJECTED, DetectionState.IN_FLIGHT):
                accepted += 1
        return accepted

    def offer(self, path: Path, origin: str = "scan") -> DetectionState:
        """
        接收函数（所有通知源共用）

        Returns:
            REJECTED / IN_FLIGHT: 未接收
            PENDING_SETTLE: 已交给线程池
            其余: 同步模式（未启动）下的最终状态
        """
        path = Path(path)
        if not self.gate.is_eligible(path):
            return DetectionState.REJECTED
        if not self.registry.try_acquire(path):
            return DetectionState.IN_FLIGHT

        logger.debug(f"接收文件 [{origin}]: {path.name}")
        if self._executor is None:
            return self._accept_guarded(path)

        try:
            self._executor.submit(self._accept_guarded, path)
        except RuntimeError:
            # 线程池已关闭
            self.registry.release(path)
            return DetectionState.ABANDONED
        return DetectionState.PENDING_SETTLE

    def accept(self, path: Path) -> DetectionState:
        """接收状态机（调用前须已占用在途条目）"""
        self.clock.sleep(self.config.settle_delay_ms / 1000)
        if not path.exists():
            logger.debug(f"稳定等待后文件已消失: {path}")
            self.registry.release(path)
            return DetectionState.ABANDONED

        content = self._read_when_unlocked(path)
        if content is None:
            logger.warning(f"文件持续被占用，放弃: {path.name}")
            self.registry.release(path)
            return DetectionState.ABANDONED

        dimensions = self.resolver.resolve_from_config(content)
        item = ProcessingItem.from_path(path, content, dimensions)
        logger.info(f"检测到文件: {path.name} [{dimensions}]")

        self.bus.emit(ProcessingEvent(event=LifecycleEvent.DETECTED, file_path=path, item=item))
        if not self.queue.submit(item):
            self.registry.release(path)
            return DetectionState.ABANDONED
        return DetectionState.ENQUEUED

    def _accept_guarded(self, path: Path) -> DetectionState:
        try:
            return self.accept(path)
        except Exception as e:
            logger.error(f"接收文件失败: {path}: {e}", exc_info=True)
            self.registry.release(path)
            return DetectionState.ABANDONED

    def _read_when_unlocked(self, path: Path) -> str | None:
        """占用探测 + 读取；读取失败同样计为占用"""
        attempts = self.config.lock_retry_attempts
        delay = self.config.lock_retry_delay_ms / 1000
        for attempt in range(1, attempts + 1):
            if not self.gate.is_locked(path):
                try:
                    return read_label_file(path)
                except OSError as e:
                    logger.debug(f"读取失败，视为占用: {path.name}: {e}")
            if attempt < attempts:
                self.clock.sleep(delay)
        return None

    def _on_completed(self, event: ProcessingEvent) -> None:
        park = event.file_path.exists()
        self.registry.release(event.file_path, park=park)
        if park:
            logger.debug(f"源文件保留，修改前不再处理: {event.file_path.name}")
