"""
生命周期事件模型

事件类型：
- DETECTED: 文件已检测并提交到队列
- SUCCEEDED: 转换成功
- FAILED: 转换失败（含重试耗尽/无标签）
- COMPLETED: 任何终态都会触发，携带 success 标记
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, Field

from .item import ProcessingItem


class LifecycleEvent(str, Enum):
    """生命周期事件类型"""
    DETECTED = "detected"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    COMPLETED = "completed"


class ProcessingEvent(BaseModel):
    """生命周期事件"""
    event: LifecycleEvent
    file_path: Path
    item: ProcessingItem | None = None
    success: bool | None = None
    message: str | None = None
    output_path: Path | None = None
    timestamp: datetime = Field(default_factory=datetime.now)

    model_config = {"arbitrary_types_allowed": True}
