"""
数据模型层 - 定义系统核心数据结构

所有模块通过这些模型交互，实现解耦：
- LabelDimensions: 标签物理尺寸（点/毫米）
- ProcessingItem: 队列处理项
- QueueStats: 队列统计快照
- ProcessingEvent: 生命周期事件
"""

from .dimensions import (
    DEFAULT_DPI,
    DEFAULT_HEIGHT_MM,
    DEFAULT_WIDTH_MM,
    MAX_DIMENSION_MM,
    MIN_DIMENSION_MM,
    MM_PER_INCH,
    DimensionSource,
    LabelDimensions,
)
from .events import LifecycleEvent, ProcessingEvent
from .item import ProcessingItem, QueueStats

__all__ = [
    "LabelDimensions",
    "DimensionSource",
    "ProcessingItem",
    "QueueStats",
    "LifecycleEvent",
    "ProcessingEvent",
    "MM_PER_INCH",
    "DEFAULT_DPI",
    "DEFAULT_WIDTH_MM",
    "DEFAULT_HEIGHT_MM",
    "MIN_DIMENSION_MM",
    "MAX_DIMENSION_MM",
]
