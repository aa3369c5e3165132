"""
转换后端 - 组合渲染器与PDF编码器
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Sequence

from ..config import RuntimeConfig
from ..interfaces import EncodeError, IConversionBackend, ILabelRenderer, IPdfEncoder
from .labelary import LabelaryRenderer
from .pdf_encoder import ImagePdfEncoder

logger = logging.getLogger(__name__)


class LabelConversionBackend(IConversionBackend):
    """渲染器 + 编码器"""

    def __init__(self, renderer: ILabelRenderer, encoder: IPdfEncoder):
        self.renderer = renderer
        self.encoder = encoder

    def render(
        self,
        units: Sequence[str],
        width_mm: float,
        height_mm: float,
        dpi: int,
    ) -> list[bytes]:
        logger.debug(f"渲染 {len(units)} 个标签 [{self.renderer.name}] {width_mm:.1f}x{height_mm:.1f}mm @ {dpi}")
        return self.renderer.render(units, width_mm, height_mm, dpi)

    def encode(self, buffers: Sequence[bytes], output_path: Path) -> None:
        """编码后核对页数，与标签数量不一致时删除输出"""
        self.encoder.encode(buffers, output_path)
        try:
            pages = ImagePdfEncoder.count_pages(output_path)
        except EncodeError:
            output_path.unlink(missing_ok=True)
            raise
        if pages != len(buffers):
            output_path.unlink(missing_ok=True)
            raise EncodeError(f"PDF页数不一致: 期望 {len(buffers)} 页, 实际 {pages} 页")
        logger.debug(f"PDF已写入 {pages} 页: {output_path}")


def create_backend(config: RuntimeConfig) -> LabelConversionBackend:
    """按运行期配置构建默认后端（Labelary + reportlab）"""
    return LabelConversionBackend(
        renderer=LabelaryRenderer(config.renderer),
        encoder=ImagePdfEncoder(config.dimensions.dpi),
    )
