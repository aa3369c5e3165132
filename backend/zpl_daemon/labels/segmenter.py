"""
标签切分器 - 将文件内容切分为独立标签单元

职责：
1. 按 ^XA...^XZ 切分标签，前导内容作为共享图形设置拼接到每个标签
2. 维护 ~DGR 图形定义（^IDR 清理标签会移除对应图形）
3. 预处理：移除紧跟 ^FD 的 ^FN 字段引用
4. 提取注释指令中的输出文件名（^FX FileName: / ^FX !FileName:）

测试要点：
- test_split_single_label: 单标签
- test_split_preamble: 前导内容拼接
- test_split_round_trip: 拼接后重新切分边界不变
- test_preprocess_linear: 对抗输入下线性耗时
- test_extract_file_name_sanitized: 文件名非法字符清理
"""

from __future__ import annotations

import os
import re
from pathlib import Path

_LABEL_START = re.compile(r"\^XA", re.IGNORECASE)
_LABEL_END = re.compile(r"\^XZ", re.IGNORECASE)
_Z64_MARKER = re.compile(r":Z64:", re.IGNORECASE)
_FIELD_SEPARATOR = re.compile(r"\^FS", re.IGNORECASE)
_FIELD_NUMBER = re.compile(r"\^FN\d+", re.IGNORECASE)
_CLEANUP_ONLY = re.compile(r"^\^IDR:[^\^]+\^FS\s*$", re.IGNORECASE)
_IDR_NAME = re.compile(r"\^IDR:([^\^]+)\^FS", re.IGNORECASE)

_FILE_NAME = re.compile(r"\^FX[ \t]*FileName:[ \t]*([^\^\r\n]+)", re.IGNORECASE)
_FORCED_FILE_NAME = re.compile(r"\^FX[ \t]*!FileName:[ \t]*([^\^\r\n]+)", re.IGNORECASE)
_ILLEGAL_FILE_CHARS = re.compile(r'[<>:"/\\|?*\x00-\x1f]')

_GRAPHIC_PREFIX = "~DGR:"
_FIELD_DATA = "^FD"
_MARKER_LEN = 3


# ============================================================================
# 切分
# ============================================================================

def split_labels(content: str) -> list[str]:
    """
    切分标签单元

    Args:
        content: 文件完整内容

    Returns:
        标签单元列表；没有成对的 ^XA/^XZ 时返回空列表
    """
    if content is None:
        raise TypeError("content 不能为 None")

    units: list[str] = []
    graphics: dict[str, str] = {}
    preamble: str | None = None
    pos = 0

    while True:
        start = _find_label_start(content, pos)
        if start < 0:
            break
        end = _LABEL_END.search(content, start + _MARKER_LEN)
        if end is None:
            # 之后不可能再有成对标记
            break

        rest = _collect_graphics(content[pos:start], graphics)
        if preamble is None:
            preamble = rest.strip()

        body = content[start:end.end()]
        pos = end.end()

        if _is_cleanup_only(body):
            for name in _IDR_NAME.findall(body):
                graphics.pop(name.strip().upper(), None)
            continue

        units.append(_with_setup(body, preamble, graphics))

    return units


def join_labels(units: list[str]) -> str:
    """拼接标签单元（切分的逆操作，不含前导内容）"""
    return "".join(units)


def _find_label_start(content: str, pos: int) -> int:
    """查找下一个有效的 ^XA（跳过 ~DGR 载荷内部的伪标记）"""
    while True:
        match = _LABEL_START.search(content, pos)
        if match is None:
            return -1
        if not _inside_graphic_payload(content, match.start()):
            return match.start()
        pos = match.end()


def _inside_graphic_payload(content: str, index: int) -> bool:
    """判断位置是否落在 ~DGR:name,size,bytes,:Z64:data:crc 的 data 段内"""
    line_start = max(content.rfind("\n", 0, index), content.rfind("\r", 0, index)) + 1
    if content[line_start:line_start + len(_GRAPHIC_PREFIX)].upper() != _GRAPHIC_PREFIX:
        return False

    marker = _Z64_MARKER.search(content, line_start, index)
    if marker is None:
        return False

    payload_end = content.find(":", marker.end())
    if payload_end < 0:
        payload_end = len(content)
    return marker.end() <= index < payload_end


def _collect_graphics(gap: str, graphics: dict[str, str]) -> str:
    """
    收集 ~DGR 图形定义（同名覆盖）

    Returns:
        去掉图形定义后的其余内容（首个间隙即为前导设置）
    """
    rest: list[str] = []
    for raw in gap.splitlines(keepends=True):
        line = raw.strip()
        comma = line.find(",", len(_GRAPHIC_PREFIX))
        if line[:len(_GRAPHIC_PREFIX)].upper() != _GRAPHIC_PREFIX or comma < 0:
            rest.append(raw)
            continue
        name = line[len(_GRAPHIC_PREFIX):comma].strip().upper()
        graphics.pop(name, None)
        graphics[name] = line
    return "".join(rest)


def _is_cleanup_only(body: str) -> bool:
    """仅包含 ^IDR/^FS 的清理标签不产生页面"""
    inner = body[_MARKER_LEN:-_MARKER_LEN].strip()
    if not inner:
        return True
    if _CLEANUP_ONLY.match(inner):
        return True
    if not _FIELD_SEPARATOR.sub("", inner).strip():
        return True
    return len(inner) < 20 and "^IDR" in inner.upper()


def _with_setup(body: str, preamble: str | None, graphics: dict[str, str]) -> str:
    parts = [p for p in [preamble, *graphics.values()] if p]
    if not parts:
        return body
    return os.linesep.join([*parts, body])


# ============================================================================
# 预处理
# ============================================================================

def preprocess(content: str) -> str:
    """
    移除紧跟 ^FD 的 ^FN<n>（允许中间有空白）

    线性扫描：^FN\\d+ 贪婪匹配后手工跳过空白，不依赖回溯
    """
    if not content or not content.strip():
        return content or ""

    pieces: list[str] = []
    pos = 0
    length = len(content)
    for match in _FIELD_NUMBER.finditer(content):
        if match.start() < pos:
            continue
        after = match.end()
        while after < length and content[after].isspace():
            after += 1
        if content[after:after + len(_FIELD_DATA)].upper() == _FIELD_DATA:
            pieces.append(content[pos:match.start()])
            pos = after

    if not pieces:
        return content
    pieces.append(content[pos:])
    return "".join(pieces)


# ============================================================================
# 输出文件名
# ============================================================================

def sanitize_file_name(name: str | None) -> str | None:
    """清理文件名中的非法字符；结果为空返回None"""
    if not name:
        return None
    cleaned = _ILLEGAL_FILE_CHARS.sub("", name).strip()
    if cleaned.lower().endswith(".pdf"):
        cleaned = cleaned[:-4]
    cleaned = cleaned.rstrip(". ").strip()
    return cleaned or None


def extract_file_name(content: str) -> str | None:
    """提取 ^FX FileName: 指令中的文件名"""
    if not content:
        return None
    match = _FILE_NAME.search(content)
    return sanitize_file_name(match.group(1)) if match else None


def extract_forced_file_name(content: str) -> str | None:
    """提取 ^FX !FileName: 指令中的文件名（优先于调用方指定的名称）"""
    if not content:
        return None
    match = _FORCED_FILE_NAME.search(content)
    return sanitize_file_name(match.group(1)) if match else None


def resolve_output_name(content: str, requested: str | None, fallback: str) -> str:
    """
    决定输出文件基础名

    优先级：强制指令 > 调用方指定 > 普通指令 > 回退名称
    """
    forced = extract_forced_file_name(content)
    if forced:
        return forced
    requested_name = sanitize_file_name(requested)
    if requested_name:
        return requested_name
    return extract_file_name(content) or fallback


def read_label_file(path: Path) -> str:
    """读取标签文件（UTF-8，非法字节替换）"""
    if not path.exists():
        raise FileNotFoundError(f"文件不存在: {path}")
    return path.read_text(encoding="utf-8-sig", errors="replace")
