"""
系统时钟 - 所有等待与延迟调度的默认实现

测试中注入假时钟，避免真实等待
"""

from __future__ import annotations

import threading
import time
from typing import Callable

from ..interfaces import ICancellable, IClock


class SystemClock(IClock):
    """基于 time / threading.Timer 的时钟"""

    def monotonic(self) -> float:
        return time.monotonic()

    def sleep(self, seconds: float) -> None:
        if seconds > 0:
            time.sleep(seconds)

    def call_later(self, seconds: float, callback: Callable[[], None]) -> ICancellable:
        timer = threading.Timer(max(seconds, 0.0), callback)
        timer.daemon = True
        timer.start()
        return timer
