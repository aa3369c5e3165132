"""
尺寸解析器 - 从标签指令提取尺寸并执行优先级级联

职责：
1. 提取 ^PW（打印宽度）/ ^LL（标签长度），单位为点
2. 点 ↔ 毫米换算（按DPI）
3. 级联：标签内嵌尺寸 > 显式参数 > 默认尺寸

测试要点：
- test_extract_both: ^PW/^LL 同时存在
- test_extract_partial: 仅存在一个指令
- test_priority_embedded_wins: 内嵌尺寸优先于显式参数
- test_priority_explicit: 无内嵌尺寸时使用显式参数
- test_priority_default: 回退默认尺寸
"""

from __future__ import annotations

import logging
import re

from ..config import DimensionConfig
from ..models import (
    MAX_DIMENSION_MM,
    MIN_DIMENSION_MM,
    MM_PER_INCH,
    DimensionSource,
    LabelDimensions,
)
from .segmenter import preprocess, split_labels

logger = logging.getLogger(__name__)

_PRINT_WIDTH = re.compile(r"\^PW(\d+)", re.IGNORECASE)
_LABEL_LENGTH = re.compile(r"\^LL(\d+)", re.IGNORECASE)

_MM_PER_UNIT = {
    "mm": 1.0,
    "cm": 10.0,
    "in": MM_PER_INCH,
}


def points_to_mm(points: float, dpi: int) -> float:
    """点 → 毫米"""
    return points / dpi * MM_PER_INCH


def mm_to_points(mm: float, dpi: int) -> int:
    """毫米 → 点（四舍五入）"""
    return int(round(mm / MM_PER_INCH * dpi))


def to_millimeters(value: float, unit: str) -> float:
    """任意单位 → 毫米"""
    factor = _MM_PER_UNIT.get(unit.lower())
    if factor is None:
        raise ValueError(f"不支持的单位: {unit}")
    return value * factor


class DimensionResolver:
    """尺寸解析器"""

    def __init__(self, config: DimensionConfig | None = None):
        self.config = config or DimensionConfig()

    @property
    def dpi(self) -> int:
        return self.config.dpi

    def extract_from_unit(self, unit: str) -> LabelDimensions:
        """
        从单个标签提取尺寸（取第一次出现）

        Returns:
            原始提取结果（source=None）；未找到的边为0
        """
        if not unit:
            return LabelDimensions.empty(self.dpi)

        width_match = _PRINT_WIDTH.search(unit)
        height_match = _LABEL_LENGTH.search(unit)
        if width_match is None and height_match is None:
            return LabelDimensions.empty(self.dpi)

        width_points = int(width_match.group(1)) if width_match else 0
        height_points = int(height_match.group(1)) if height_match else 0
        return LabelDimensions(
            width_points=width_points,
            height_points=height_points,
            width_mm=points_to_mm(width_points, self.dpi),
            height_mm=points_to_mm(height_points, self.dpi),
            dpi=self.dpi,
            has_dimensions=True,
        )

    def extract_all(self, content: str) -> list[LabelDimensions]:
        """逐个标签提取尺寸"""
        return [self.extract_from_unit(unit) for unit in split_labels(preprocess(content or ""))]

    @staticmethod
    def validate(dims: LabelDimensions | None) -> bool:
        """尺寸是否可用（正数且在 1mm~1000mm 范围内）"""
        if dims is None:
            return False
        if dims.width_points <= 0 or dims.height_points <= 0:
            return False
        if dims.width_mm <= 0 or dims.height_mm <= 0:
            return False
        return (
            MIN_DIMENSION_MM <= dims.width_mm <= MAX_DIMENSION_MM
            and MIN_DIMENSION_MM <= dims.height_mm <= MAX_DIMENSION_MM
        )

    def apply_priority(
        self,
        explicit_width: float | None,
        explicit_height: float | None,
        unit: str,
        extracted: LabelDimensions | None,
        dpi: int | None = None,
    ) -> LabelDimensions:
        """
        尺寸优先级级联

        Args:
            explicit_width: 显式宽度（unit 单位）
            explicit_height: 显式高度（unit 单位）
            unit: 显式参数单位 mm/cm/in
            extracted: 标签提取结果
            dpi: 目标DPI（默认使用配置DPI）

        Returns:
            带来源标记的最终尺寸
        """
        dpi = dpi or self.dpi

        # 1. 内嵌尺寸（始终优先）
        if self.validate(extracted):
            return LabelDimensions(
                width_points=extracted.width_points,
                height_points=extracted.height_points,
                width_mm=points_to_mm(extracted.width_points, dpi),
                height_mm=points_to_mm(extracted.height_points, dpi),
                dpi=dpi,
                has_dimensions=True,
                source=DimensionSource.EMBEDDED,
            )

        # 2. 显式参数
        if explicit_width is not None and explicit_height is not None:
            width_mm = to_millimeters(explicit_width, unit)
            height_mm = to_millimeters(explicit_height, unit)
            return LabelDimensions(
                width_points=mm_to_points(width_mm, dpi),
                height_points=mm_to_points(height_mm, dpi),
                width_mm=width_mm,
                height_mm=height_mm,
                dpi=dpi,
                has_dimensions=True,
                source=DimensionSource.EXPLICIT,
            )

        # 3. 默认尺寸
        width_mm = to_millimeters(self.config.width, self.config.unit)
        height_mm = to_millimeters(self.config.height, self.config.unit)
        return LabelDimensions(
            width_points=mm_to_points(width_mm, dpi),
            height_points=mm_to_points(height_mm, dpi),
            width_mm=width_mm,
            height_mm=height_mm,
            dpi=dpi,
            has_dimensions=True,
            source=DimensionSource.DEFAULT,
        )

    def resolve_for_content(
        self,
        content: str,
        explicit_width: float | None = None,
        explicit_height: float | None = None,
        explicit_unit: str = "mm",
        dpi: int | None = None,
    ) -> LabelDimensions:
        """按文件第一个标签解析整个文件的尺寸"""
        units = split_labels(preprocess(content or ""))
        if units:
            extracted = self.extract_from_unit(units[0])
        else:
            extracted = LabelDimensions.empty(dpi or self.dpi)

        dims = self.apply_priority(explicit_width, explicit_height, explicit_unit, extracted, dpi)
        logger.debug(f"尺寸解析: {dims}")
        return dims

    def resolve_from_config(self, content: str) -> LabelDimensions:
        """按配置决定是否传入显式尺寸（use_fixed）"""
        if self.config.use_fixed:
            return self.resolve_for_content(
                content,
                explicit_width=self.config.width,
                explicit_height=self.config.height,
                explicit_unit=self.config.unit,
            )
        return self.resolve_for_content(content)
