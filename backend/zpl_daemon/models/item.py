"""
处理项模型 - 定义队列中单个文件的状态

生命周期：
- FileDetector 在文件通过校验并稳定后创建
- 仅由 ProcessingQueue 修改（重试计数/错误信息）
- 终态（成功/失败/重试耗尽）后丢弃
"""

from __future__ import annotations

from datetime import datetime
from pathlib import Path

from pydantic import BaseModel, Field

from .dimensions import LabelDimensions


class ProcessingItem(BaseModel):
    """处理项"""
    file_path: Path
    file_name: str
    content: str
    dimensions: LabelDimensions = Field(default_factory=LabelDimensions)

    created_at: datetime = Field(default_factory=datetime.now)
    retry_count: int = Field(default=0, ge=0)
    error_message: str | None = None

    model_config = {"arbitrary_types_allowed": True}

    @classmethod
    def from_path(
        cls,
        file_path: Path,
        content: str,
        dimensions: LabelDimensions,
    ) -> ProcessingItem:
        """由文件路径创建"""
        return cls(
            file_path=file_path,
            file_name=file_path.name,
            content=content,
            dimensions=dimensions,
        )

    def mark_retry(self) -> int:
        """记录一次占用重试，返回当前重试次数"""
        self.retry_count += 1
        return self.retry_count

    def mark_failed(self, error: str) -> None:
        """记录失败原因"""
        self.error_message = error


class QueueStats(BaseModel):
    """队列统计快照（只读）"""
    queue_length: int
    is_processing: bool
    max_concurrent_slots: int
    active_slots: int = 0

    model_config = {"frozen": True}
