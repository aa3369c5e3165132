"""
事件总线 - 生命周期通知分发

职责：
- 按事件类型订阅/取消订阅
- 在发出线程上同步调用处理器
- 处理器异常只记录日志，不影响检测与队列循环
"""

from __future__ import annotations

import logging
import threading
from collections import defaultdict
from typing import Callable

from ..models import LifecycleEvent, ProcessingEvent

logger = logging.getLogger(__name__)

EventHandler = Callable[[ProcessingEvent], None]


class EventBus:
    """生命周期事件总线"""

    def __init__(self):
        self._lock = threading.Lock()
        self._handlers: dict[LifecycleEvent, list[EventHandler]] = defaultdict(list)

    def subscribe(self, event: LifecycleEvent, handler: EventHandler) -> None:
        with self._lock:
            self._handlers[event].append(handler)

    def unsubscribe(self, event: LifecycleEvent, handler: EventHandler) -> None:
        with self._lock:
            handlers = self._handlers.get(event, [])
            if handler in handlers:
                handlers.remove(handler)

    def emit(self, event: ProcessingEvent) -> None:
        """同步分发事件"""
        with self._lock:
            handlers = list(self._handlers.get(event.event, []))

        for handler in handlers:
            try:
                handler(event)
            except Exception as e:
                logger.error(f"事件处理器异常 [{event.event.value}] {event.file_path}: {e}", exc_info=True)
