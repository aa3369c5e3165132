"""
监听模块 - 文件检测与接收

子模块：
- validation: 扩展名白名单与占用探测
- inflight: 在途路径集合
- sources: watchdog监听 / 定时轮询
- detector: 接收状态机
"""

from .detector import DetectionState, FileDetector
from .inflight import InFlightRegistry, normalize_path
from .sources import PollingSource, WatchdogSource
from .validation import DEFAULT_EXTENSIONS, ValidationGate

__all__ = [
    "ValidationGate",
    "DEFAULT_EXTENSIONS",
    "InFlightRegistry",
    "normalize_path",
    "WatchdogSource",
    "PollingSource",
    "FileDetector",
    "DetectionState",
]
