"""
流水线模块 - 调度与转换队列

子模块：
- clock: 时钟/延迟调度
- events: 生命周期事件总线
- queue: 有界并发处理队列
"""

from .clock import SystemClock
from .events import EventBus
from .queue import LOCKED_TOO_LONG, NO_LABELS_FOUND, ItemOutcome, ProcessingQueue

__all__ = [
    "SystemClock",
    "EventBus",
    "ProcessingQueue",
    "ItemOutcome",
    "LOCKED_TOO_LONG",
    "NO_LABELS_FOUND",
]
