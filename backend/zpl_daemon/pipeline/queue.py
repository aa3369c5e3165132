"""
处理队列 - 有界并发的FIFO转换队列

职责：
1. 单一后台循环出队，N个并发槽位（信号量控制）
2. 单项状态机：存在检查 → 占用检查（重试）→ 转换 → 输出校验 → 清理源文件
3. 重试显式化：Locked → 延迟 → Requeued（队尾，由时钟调度）
4. 任何单项异常在项边界捕获并转为事件，循环不终止

测试要点：
- test_success_deletes_source: 成功后删除源文件
- test_no_labels_keeps_source: 无标签时保留源文件
- test_lock_retry_then_success: 前两次占用，第三次成功（retry_count=2）
- test_lock_retry_exhausted: 重试耗尽，终态失败，源文件保留
- test_render_count_mismatch: 渲染数量不一致视为失败
"""

from __future__ import annotations

import logging
import queue
import threading
from concurrent.futures import ThreadPoolExecutor
from enum import Enum
from pathlib import Path

from ..config import ConcurrencyConfig, OutputConfig, RetryConfig
from ..interfaces import ConversionError, IClock, IConversionBackend, NoLabelsError
from ..labels import DimensionResolver, preprocess, split_labels
from ..models import LifecycleEvent, ProcessingEvent, ProcessingItem, QueueStats
from ..watch.validation import ValidationGate
from .clock import SystemClock
from .events import EventBus

logger = logging.getLogger(__name__)

LOCKED_TOO_LONG = "file locked for too long"
NO_LABELS_FOUND = "no label units found"


class ItemOutcome(str, Enum):
    """单项处理结果"""
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    REQUEUED = "requeued"     # 文件被占用，已安排重试
    ABORTED = "aborted"       # 文件已不存在


class _PendingRetry:
    """待执行的重试（取消后不再入队）"""

    def __init__(self, item: ProcessingItem):
        self.item = item
        self.handle = None


class ProcessingQueue:
    """处理队列"""

    def __init__(
        self,
        backend: IConversionBackend,
        bus: EventBus,
        gate: ValidationGate | None = None,
        retries: RetryConfig | None = None,
        concurrency: ConcurrencyConfig | None = None,
        output: OutputConfig | None = None,
        resolver: DimensionResolver | None = None,
        clock: IClock | None = None,
    ):
        self.backend = backend
        self.bus = bus
        self.gate = gate or ValidationGate()
        self.retries = retries or RetryConfig()
        self.concurrency = concurrency or ConcurrencyConfig()
        self.output = output or OutputConfig()
        self.resolver = resolver or DimensionResolver()
        self.clock = clock or SystemClock()

        self._queue: queue.Queue[ProcessingItem] = queue.Queue()
        self._slots = threading.Semaphore(self.concurrency.max_workers)
        self._stop_event = threading.Event()
        self._closed = False
        self._executor: ThreadPoolExecutor | None = None
        self._loop_thread: threading.Thread | None = None

        self._state_lock = threading.Lock()
        self._active = 0
        self._pending_retries: set[_PendingRetry] = set()
        self._reserved_outputs: set[Path] = set()

    # ------------------------------------------------------------------
    # 生命周期
    # ------------------------------------------------------------------

    def start(self) -> None:
        """启动后台出队循环"""
        if self._loop_thread and self._loop_thread.is_alive():
            return
        self._closed = False
        self._stop_event.clear()
        self._executor = ThreadPoolExecutor(
            max_workers=self.concurrency.max_workers,
            thread_name_prefix="zpl-worker",
        )
        self._loop_thread = threading.Thread(target=self._run_loop, name="zpl-queue", daemon=True)
        self._loop_thread.start()
        logger.info(f"处理队列已启动: 并发槽位={self.concurrency.max_workers}")

    def stop(self, timeout: float | None = None) -> None:
        """
        停止队列

        已出队的项会处理完成（不中断转换）；未出队的项直接丢弃
        """
        self._closed = True
        self._stop_event.set()
        self._cancel_retries()

        if self._loop_thread:
            self._loop_thread.join(timeout)
            self._loop_thread = None
        if self._executor:
            self._executor.shutdown(wait=True)
            self._executor = None

        abandoned = 0
        while True:
            try:
                self._queue.get_nowait()
            except queue.Empty:
                break
            abandoned += 1
        if abandoned:
            logger.warning(f"队列停止，丢弃未处理项: {abandoned}")
        logger.info("处理队列已停止")

    def submit(self, item: ProcessingItem) -> bool:
        """入队（队尾）；停止后忽略"""
        if self._closed:
            logger.debug(f"队列已停止，忽略: {item.file_name}")
            return False
        self._queue.put(item)
        logger.debug(f"入队: {item.file_name} (队列长度={self._queue.qsize()})")
        return True

    def stats(self) -> QueueStats:
        with self._state_lock:
            active = self._active
        return QueueStats(
            queue_length=self._queue.qsize(),
            is_processing=self._loop_thread is not None and self._loop_thread.is_alive(),
            max_concurrent_slots=self.concurrency.max_workers,
            active_slots=active,
        )

    @property
    def pending_retries(self) -> int:
        with self._state_lock:
            return len(self._pending_retries)

    # ------------------------------------------------------------------
    # 出队循环
    # ------------------------------------------------------------------

    def _run_loop(self) -> None:
        idle_wait = self.concurrency.idle_wait_ms / 1000

        while not self._stop_event.is_set():
            try:
                if not self._slots.acquire(timeout=idle_wait):
                    continue
                dispatched = False
                try:
                    try:
                        item = self._queue.get(timeout=idle_wait)
                    except queue.Empty:
                        continue
                    if self._stop_event.is_set():
                        logger.debug(f"队列停止，丢弃: {item.file_name}")
                        break
                    self._executor.submit(self._run_slot, item)
                    dispatched = True
                finally:
                    if not dispatched:
                        self._slots.release()
            except Exception as e:
                logger.error(f"队列循环异常: {e}", exc_info=True)
                self.clock.sleep(self.concurrency.error_pause_ms / 1000)

    def _run_slot(self, item: ProcessingItem) -> None:
        with self._state_lock:
            self._active += 1
        try:
            self.process_item(item)
        finally:
            with self._state_lock:
                self._active -= 1
            self._slots.release()

    def process_pending(self) -> int:
        """
        在调用线程上同步处理队列直至清空（含待执行的重试）

        Returns:
            处理次数（重试计入）
        """
        processed = 0
        wait = min(self.concurrency.idle_wait_ms, self.retries.retry_delay_ms or 1) / 1000
        while True:
            try:
                item = self._queue.get_nowait()
            except queue.Empty:
                if self.pending_retries == 0:
                    break
                self.clock.sleep(wait)
                continue
            self.process_item(item)
            processed += 1
        return processed

    # ------------------------------------------------------------------
    # 单项状态机
    # ------------------------------------------------------------------

    def process_item(self, item: ProcessingItem) -> ItemOutcome:
        """处理单项（异常在此边界内全部捕获）"""
        path = item.file_path
        try:
            if not path.exists():
                logger.info(f"文件已不存在，跳过: {path}")
                self._emit(LifecycleEvent.COMPLETED, item, success=False)
                return ItemOutcome.ABORTED

            if self.gate.is_locked(path):
                return self._handle_locked(item)

            output_path = self._convert(item)
        except NoLabelsError as e:
            logger.info(f"未找到标签，跳过转换: {item.file_name}")
            self._fail(item, str(e))
            return ItemOutcome.FAILED
        except Exception as e:
            logger.error(f"转换失败: {item.file_name}: {e}", exc_info=True)
            self._fail(item, str(e) or type(e).__name__)
            return ItemOutcome.FAILED

        self._cleanup_source(path)
        logger.info(f"转换完成: {item.file_name} → {output_path}")
        self._emit(LifecycleEvent.SUCCEEDED, item, success=True, output_path=output_path)
        self._emit(LifecycleEvent.COMPLETED, item, success=True, output_path=output_path)
        return ItemOutcome.SUCCEEDED

    def _handle_locked(self, item: ProcessingItem) -> ItemOutcome:
        retry_count = item.mark_retry()
        if retry_count <= self.retries.max_retries:
            delay = self.retries.retry_delay_ms / 1000
            logger.warning(
                f"文件被占用，{delay:.1f}s后重试 ({retry_count}/{self.retries.max_retries}): {item.file_name}"
            )
            self._schedule_retry(item, delay)
            return ItemOutcome.REQUEUED

        logger.error(f"文件长时间被占用，放弃: {item.file_name}")
        self._fail(item, LOCKED_TOO_LONG)
        return ItemOutcome.FAILED

    def _schedule_retry(self, item: ProcessingItem, delay: float) -> None:
        pending = _PendingRetry(item)
        with self._state_lock:
            self._pending_retries.add(pending)
        pending.handle = self.clock.call_later(delay, lambda: self._requeue(pending))

    def _requeue(self, pending: _PendingRetry) -> None:
        with self._state_lock:
            if pending not in self._pending_retries:
                return
            self._pending_retries.discard(pending)
        if self._closed:
            logger.debug(f"队列已停止，放弃重试: {pending.item.file_name}")
            return
        self._queue.put(pending.item)

    def _cancel_retries(self) -> None:
        with self._state_lock:
            pending = list(self._pending_retries)
            self._pending_retries.clear()
        for entry in pending:
            if entry.handle is not None:
                entry.handle.cancel()

    def _convert(self, item: ProcessingItem) -> Path:
        units = split_labels(preprocess(item.content))
        if not units:
            raise NoLabelsError(NO_LABELS_FOUND)

        dims = item.dimensions
        if not dims.has_dimensions:
            dims = self.resolver.resolve_from_config(item.content)
            item.dimensions = dims

        buffers = self.backend.render(units, dims.width_mm, dims.height_mm, dims.dpi)
        if len(buffers) != len(units):
            raise ConversionError(
                f"渲染结果数量不一致: 标签 {len(units)} 个, 结果 {len(buffers)} 个"
            )

        output_path = self._reserve_output(item)
        try:
            self.backend.encode(buffers, output_path)
            if not output_path.exists():
                raise ConversionError(f"输出文件未生成: {output_path}")
        finally:
            with self._state_lock:
                self._reserved_outputs.discard(output_path)
        return output_path

    def _reserve_output(self, item: ProcessingItem) -> Path:
        """
        预留输出路径：与源文件同名，已存在或被其他工作线程占用时追加序号
        """
        stem = item.file_path.stem
        out_dir = self.output.output_dir or item.file_path.parent
        out_dir.mkdir(parents=True, exist_ok=True)
        with self._state_lock:
            candidate = out_dir / f"{stem}.pdf"
            index = 1
            while candidate in self._reserved_outputs or candidate.exists():
                candidate = out_dir / f"{stem}_{index}.pdf"
                index += 1
            self._reserved_outputs.add(candidate)
        if index > 1:
            logger.info(f"输出文件已存在，改用: {candidate.name}")
        return candidate

    def _cleanup_source(self, path: Path) -> None:
        try:
            path.unlink()
        except OSError as e:
            logger.warning(f"源文件删除失败（输出已生成）: {path}: {e}")

    def _fail(self, item: ProcessingItem, message: str) -> None:
        item.mark_failed(message)
        self._emit(LifecycleEvent.FAILED, item, success=False, message=message)
        self._emit(LifecycleEvent.COMPLETED, item, success=False, message=message)

    def _emit(
        self,
        event: LifecycleEvent,
        item: ProcessingItem,
        success: bool | None = None,
        message: str | None = None,
        output_path: Path | None = None,
    ) -> None:
        self.bus.emit(ProcessingEvent(
            event=event,
            file_path=item.file_path,
            item=item,
            success=success,
            message=message,
            output_path=output_path,
        ))
