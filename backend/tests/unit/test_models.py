"""
数据模型单元测试

每个模块完成后必须运行：pytest tests/unit/test_models.py -v
"""

from pathlib import Path

import pytest
from pydantic import ValidationError

from zpl_daemon.models import (
    DimensionSource,
    LabelDimensions,
    LifecycleEvent,
    ProcessingEvent,
    ProcessingItem,
    QueueStats,
)


class TestLabelDimensions:
    """标签尺寸测试"""

    def test_empty(self):
        """测试空尺寸"""
        dims = LabelDimensions.empty(300)
        assert dims.dpi == 300
        assert not dims.has_dimensions
        assert dims.source is None

    def test_frozen(self):
        """测试来源不可覆盖"""
        dims = LabelDimensions(width_points=400, height_points=200, source=DimensionSource.EMBEDDED)
        with pytest.raises(ValidationError):
            dims.source = DimensionSource.DEFAULT

    def test_source_values(self):
        """测试来源标记取值"""
        assert DimensionSource.EMBEDDED.value == "zpl_extraction"
        assert DimensionSource.EXPLICIT.value == "explicit_parameters"
        assert DimensionSource.DEFAULT.value == "default"


class TestProcessingItem:
    """处理项测试"""

    def test_from_path(self):
        """测试由路径创建"""
        item = ProcessingItem.from_path(Path("/tmp/a.zpl"), "^XA^XZ", LabelDimensions())
        assert item.file_name == "a.zpl"
        assert item.retry_count == 0
        assert item.error_message is None

    def test_mark_retry_and_failed(self):
        """测试重试计数与失败信息"""
        item = ProcessingItem.from_path(Path("/tmp/a.zpl"), "", LabelDimensions())
        assert item.mark_retry() == 1
        assert item.mark_retry() == 2
        item.mark_failed("boom")
        assert item.error_message == "boom"

    def test_negative_retry_rejected(self):
        """测试重试计数不能为负"""
        with pytest.raises(ValidationError):
            ProcessingItem(file_path=Path("a.zpl"), file_name="a.zpl", content="", retry_count=-1)


class TestEventsAndStats:
    """事件与统计测试"""

    def test_event_keeps_item_reference(self):
        """测试事件携带同一处理项"""
        item = ProcessingItem.from_path(Path("/tmp/a.zpl"), "", LabelDimensions())
        event = ProcessingEvent(event=LifecycleEvent.FAILED, file_path=item.file_path, item=item, message="x")
        assert event.item is item
        assert event.success is None

    def test_queue_stats_readonly(self):
        """测试统计快照只读"""
        stats = QueueStats(queue_length=1, is_processing=True, max_concurrent_slots=2)
        assert stats.active_slots == 0
        with pytest.raises(ValidationError):
            stats.queue_length = 5
