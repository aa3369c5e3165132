"""
PDF编码器 - 渲染图像 → 多页PDF

每个图像一页，页面尺寸等于图像的物理尺寸（像素 / DPI）
"""

from __future__ import annotations

import io
import logging
from pathlib import Path
from typing import Sequence

import PIL.Image
import pypdf
import reportlab.lib.utils
import reportlab.pdfgen.canvas

from ..interfaces import EncodeError, IPdfEncoder
from ..models import DEFAULT_DPI

logger = logging.getLogger(__name__)

POINTS_PER_INCH = 72.0


class ImagePdfEncoder(IPdfEncoder):
    """基于 reportlab 的图像PDF编码器"""

    def __init__(self, dpi: int = DEFAULT_DPI):
        self.dpi = dpi

    def encode(self, buffers: Sequence[bytes], output_path: Path) -> None:
        if not buffers:
            raise EncodeError("没有可编码的页面")

        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        try:
            pdf = reportlab.pdfgen.canvas.Canvas(str(output_path))
            for data in buffers:
                image = PIL.Image.open(io.BytesIO(data))
                image.load()
                page_width, page_height = self.page_size(image)
                pdf.setPageSize((page_width, page_height))
                pdf.drawImage(
                    reportlab.lib.utils.ImageReader(image),
                    0,
                    0,
                    width=page_width,
                    height=page_height,
                    mask=None,
                    preserveAspectRatio=False,
                    anchor="sw",
                )
                pdf.showPage()
            pdf.save()
        except Exception as e:
            output_path.unlink(missing_ok=True)
            raise EncodeError(f"PDF编码失败: {output_path.name}: {e}") from e

        logger.debug(f"PDF已写入: {output_path} ({len(buffers)} 页)")

    def page_size(self, image: PIL.Image.Image) -> tuple[float, float]:
        """图像物理尺寸（点）；图像自带DPI优先"""
        dpi_x, dpi_y = self._image_dpi(image)
        return (
            image.width / dpi_x * POINTS_PER_INCH,
            image.height / dpi_y * POINTS_PER_INCH,
        )

    def _image_dpi(self, image: PIL.Image.Image) -> tuple[float, float]:
        info = image.info.get("dpi")
        if info:
            dpi_x, dpi_y = float(info[0]), float(info[1])
            if dpi_x > 1 and dpi_y > 1:
                return dpi_x, dpi_y
        return float(self.dpi), float(self.dpi)

    @staticmethod
    def count_pages(pdf_path: Path) -> int:
        """统计PDF页数"""
        if not pdf_path.exists():
            raise EncodeError(f"PDF文件不存在: {pdf_path}")
        try:
            return len(pypdf.PdfReader(str(pdf_path)).pages)
        except pypdf.errors.PdfReadError as e:
            raise EncodeError(f"PDF文件无法读取: {pdf_path}: {e}") from e
