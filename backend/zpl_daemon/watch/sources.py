"""
文件通知源 - 推送式（watchdog）与拉取式（定时轮询）

两种通知源都只调用同一个接收函数，重复通知由在途集合去重
"""

from __future__ import annotations

import logging
import os
import threading
from pathlib import Path
from typing import Callable

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from ..interfaces import INotificationSource

logger = logging.getLogger(__name__)

OfferFunc = Callable[[Path, str], object]


class _OfferHandler(FileSystemEventHandler):
    """watchdog事件 → offer(path, origin)"""

    def __init__(self, offer: OfferFunc):
        super().__init__()
        self._offer = offer

    def _dispatch(self, raw_path: str | bytes, origin: str) -> None:
        try:
            self._offer(Path(os.fsdecode(raw_path)), origin)
        except Exception as e:
            logger.error(f"处理文件通知失败 [{origin}] {raw_path!r}: {e}", exc_info=True)

    def on_created(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._dispatch(event.src_path, "created")

    def on_modified(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._dispatch(event.src_path, "modified")

    def on_moved(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._dispatch(event.dest_path, "moved")


class WatchdogSource(INotificationSource):
    """推送式监听（非递归）"""

    def __init__(self, folder: Path, offer: OfferFunc):
        self.folder = Path(folder)
        self._handler = _OfferHandler(offer)
        self._observer: Observer | None = None

    def start(self) -> None:
        if self._observer is not None:
            return
        observer = Observer()
        observer.schedule(self._handler, str(self.folder), recursive=False)
        observer.daemon = True
        observer.start()
        self._observer = observer
        logger.info(f"文件监听已启动: {self.folder}")

    def stop(self) -> None:
        if self._observer is None:
            return
        self._observer.stop()
        self._observer.join(timeout=5)
        self._observer = None


class PollingSource(INotificationSource):
    """拉取式轮询（补偿丢失或合并的原生事件）"""

    def __init__(self, interval_sec: float, tick: Callable[[], object]):
        self.interval_sec = interval_sec
        self._tick = tick
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    def start(self) -> None:
        if self._thread and self._thread.is_alive():
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run, name="zpl-poll", daemon=True)
        self._thread.start()
        logger.info(f"定时轮询已启动: 间隔 {self.interval_sec}s")

    def _run(self) -> None:
        while not self._stop_event.wait(self.interval_sec):
            try:
                self._tick()
            except Exception as e:
                logger.error(f"轮询扫描失败: {e}", exc_info=True)

    def stop(self) -> None:
        self._stop_event.set()
        if self._thread:
            self._thread.join(timeout=self.interval_sec + 5)
            self._thread = None
