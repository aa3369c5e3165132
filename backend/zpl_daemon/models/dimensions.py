"""
标签尺寸模型 - 点/毫米双表示

不可变：来源（source）一旦由优先级级联赋值便不可覆盖
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel

MM_PER_INCH = 25.4
DEFAULT_DPI = 203
DEFAULT_WIDTH_MM = 100.0
DEFAULT_HEIGHT_MM = 150.0
MIN_DIMENSION_MM = 1.0
MAX_DIMENSION_MM = 1000.0


class DimensionSource(str, Enum):
    """尺寸来源（级联层级）"""
    EMBEDDED = "zpl_extraction"           # 标签内 ^PW/^LL
    EXPLICIT = "explicit_parameters"      # 调用方显式指定
    DEFAULT = "default"                   # 默认尺寸


class LabelDimensions(BaseModel):
    """标签尺寸"""
    width_points: int = 0
    height_points: int = 0
    width_mm: float = 0.0
    height_mm: float = 0.0
    dpi: int = DEFAULT_DPI
    has_dimensions: bool = False
    source: DimensionSource | None = None  # None = 原始提取结果，尚未经过级联

    model_config = {"frozen": True}

    @classmethod
    def empty(cls, dpi: int = DEFAULT_DPI) -> LabelDimensions:
        """无尺寸信息"""
        return cls(dpi=dpi)

    def __str__(self) -> str:
        source = self.source.value if self.source else "raw"
        return (
            f"{self.width_mm:.1f}mm x {self.height_mm:.1f}mm "
            f"({self.width_points} x {self.height_points} pts @ {self.dpi} DPI) [{source}]"
        )
