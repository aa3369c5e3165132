"""
pytest 配置与公共 fixtures

使用方式：
    def test_something(runtime_config, fake_clock, fake_backend):
        queue = ProcessingQueue(fake_backend, EventBus(), clock=fake_clock)
"""

from __future__ import annotations

import tempfile
from pathlib import Path
from typing import Callable, Generator

import pytest

from fakes import SAMPLE_LABEL, EventRecorder, FakeBackend, FakeClock
from zpl_daemon.config import RuntimeConfig
from zpl_daemon.labels import DimensionResolver
from zpl_daemon.models import LabelDimensions, ProcessingItem
from zpl_daemon.pipeline import EventBus


# ============================================================================
# 配置 Fixtures
# ============================================================================

@pytest.fixture
def runtime_config(temp_dir: Path) -> RuntimeConfig:
    """运行期配置（目录指向临时目录，等待时间归零）"""
    config = RuntimeConfig()
    config.watch.listen_folder = temp_dir / "watch"
    config.watch.use_native_events = False
    config.watch.settle_delay_ms = 0
    config.watch.lock_retry_delay_ms = 0
    config.retries.retry_delay_ms = 0
    config.logging.log_file = temp_dir / "logs" / "zpl_daemon.log"
    return config


# ============================================================================
# 调度 Fixtures
# ============================================================================

@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def fake_backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def bus() -> EventBus:
    return EventBus()


@pytest.fixture
def recorder(bus: EventBus) -> EventRecorder:
    return EventRecorder(bus)


# ============================================================================
# 文件 Fixtures
# ============================================================================

@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """临时目录"""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def label_file(temp_dir: Path) -> Path:
    """单标签ZPL文件"""
    path = temp_dir / "label.zpl"
    path.write_text(SAMPLE_LABEL, encoding="utf-8")
    return path


@pytest.fixture
def make_item() -> Callable[[Path], ProcessingItem]:
    """由文件构造处理项（尺寸按默认配置解析）"""
    resolver = DimensionResolver()

    def _make(path: Path) -> ProcessingItem:
        content = path.read_text(encoding="utf-8")
        dims: LabelDimensions = resolver.resolve_for_content(content)
        return ProcessingItem.from_path(path, content, dims)

    return _make
