"""
渲染模块 - 转换后端默认实现

子模块：
- labelary: Labelary HTTP API 渲染（ZPL → PNG）
- pdf_encoder: PNG → 多页PDF
- backend: 组合后端与工厂函数
"""

from .backend import LabelConversionBackend, create_backend
from .labelary import LabelaryRenderer, api_parameters
from .pdf_encoder import ImagePdfEncoder

__all__ = [
    "LabelaryRenderer",
    "api_parameters",
    "ImagePdfEncoder",
    "LabelConversionBackend",
    "create_backend",
]
