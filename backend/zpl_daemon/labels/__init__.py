"""
标签处理模块 - ZPL内容切分与尺寸解析

子模块：
- segmenter: 标签切分、预处理、输出文件名指令
- dimensions: 尺寸提取与优先级级联
"""

from .dimensions import (
    DimensionResolver,
    mm_to_points,
    points_to_mm,
    to_millimeters,
)
from .segmenter import (
    extract_file_name,
    extract_forced_file_name,
    join_labels,
    preprocess,
    read_label_file,
    resolve_output_name,
    sanitize_file_name,
    split_labels,
)

__all__ = [
    "DimensionResolver",
    "points_to_mm",
    "mm_to_points",
    "to_millimeters",
    "split_labels",
    "join_labels",
    "preprocess",
    "extract_file_name",
    "extract_forced_file_name",
    "sanitize_file_name",
    "resolve_output_name",
    "read_label_file",
]
