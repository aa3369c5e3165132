"""
守护进程各组件之间的协作契约

- IConversionBackend: 队列唯一调用的外部协作者。render 对 N 个标签单元
  返回 N 个图像（顺序一致），encode 把图像按顺序写成一个PDF
- ILabelRenderer / IPdfEncoder: 后端内部的渲染与编码两步，可分别替换
- INotificationSource: 监听目录的通知通道（watchdog 推送、定时轮询）
- IClock: 稳定等待、占用重试和失败重试使用的 sleep / call_later
- ZplDaemonError 异常树: 队列据此区分无标签跳过、转换失败与配置错误
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Callable, Protocol, Sequence


# ============================================================================
# 转换后端接口
# ============================================================================

class ILabelRenderer(ABC):
    """标签渲染器接口 - ZPL标签 → 图像"""

    name: str = "renderer"

    @abstractmethod
    def render(
        self,
        units: Sequence[str],
        width_mm: float,
        height_mm: float,
        dpi: int,
    ) -> list[bytes]:
        """
        渲染标签

        Args:
            units: 标签单元（每个为完整 ^XA...^XZ）
            width_mm: 标签宽度（毫米）
            height_mm: 标签高度（毫米）
            dpi: 打印密度

        Returns:
            与输入顺序一致、数量相同的图像数据

        Raises:
            RenderError: 渲染失败
        """
        ...

    def is_available(self) -> bool:
        """渲染器是否可用"""
        return True


class IPdfEncoder(ABC):
    """PDF编码器接口 - 图像 → 单个PDF文件"""

    @abstractmethod
    def encode(self, buffers: Sequence[bytes], output_path: Path) -> None:
        """
        按顺序将图像写入PDF

        Raises:
            EncodeError: 编码失败
        """
        ...


class IConversionBackend(ABC):
    """转换后端接口 - 队列唯一调用的外部协作者"""

    @abstractmethod
    def render(
        self,
        units: Sequence[str],
        width_mm: float,
        height_mm: float,
        dpi: int,
    ) -> list[bytes]:
        """渲染N个标签，返回N个结果（顺序一致）"""
        ...

    @abstractmethod
    def encode(self, buffers: Sequence[bytes], output_path: Path) -> None:
        """将渲染结果编码为输出文件"""
        ...


# ============================================================================
# 监听与调度接口
# ============================================================================

class INotificationSource(ABC):
    """文件通知源接口（推送式监听 / 拉取式轮询）"""

    @abstractmethod
    def start(self) -> None:
        """开始产生通知"""
        ...

    @abstractmethod
    def stop(self) -> None:
        """停止产生通知"""
        ...


class ICancellable(Protocol):
    """可取消的延迟任务"""

    def cancel(self) -> None:
        ...


class IClock(ABC):
    """时钟/调度器接口（测试中可替换为假时钟）"""

    @abstractmethod
    def monotonic(self) -> float:
        ...

    @abstractmethod
    def sleep(self, seconds: float) -> None:
        """协作式等待"""
        ...

    @abstractmethod
    def call_later(self, seconds: float, callback: Callable[[], None]) -> ICancellable:
        """延迟执行回调"""
        ...


# ============================================================================
# 异常定义
# ============================================================================

class ZplDaemonError(Exception):
    """基础异常"""
    pass


class ConfigError(ZplDaemonError):
    """配置错误"""
    pass


class ConversionError(ZplDaemonError):
    """转换错误"""
    pass


class NoLabelsError(ConversionError):
    """文件中没有可转换的标签"""
    pass


class RenderError(ConversionError):
    """渲染错误"""
    pass


class EncodeError(ConversionError):
    """编码错误"""
    pass
