"""
标签切分器单元测试

每个模块完成后必须运行：pytest tests/unit/test_segmenter.py -v
"""

import os
import time

import pytest

from zpl_daemon.labels import (
    extract_file_name,
    extract_forced_file_name,
    join_labels,
    preprocess,
    read_label_file,
    resolve_output_name,
    sanitize_file_name,
    split_labels,
)


class TestSplitLabels:
    """切分测试"""

    def test_split_single_label(self):
        """测试单标签"""
        content = "^XA^PW400^LL200^FO50,50^FDHello^FS^XZ"
        assert split_labels(content) == [content]

    def test_split_multiple_labels(self):
        """测试多标签（忽略大小写）"""
        content = "^XA^FDone^FS^XZ\n^xa^FDtwo^FS^xz"
        units = split_labels(content)
        assert units == ["^XA^FDone^FS^XZ", "^xa^FDtwo^FS^xz"]

    def test_split_no_markers(self):
        """测试无标记内容"""
        assert split_labels("just some text") == []
        assert split_labels("") == []
        assert split_labels("   \n") == []

    def test_split_none_raises(self):
        """测试None输入"""
        with pytest.raises(TypeError):
            split_labels(None)

    def test_split_unterminated_start(self):
        """测试没有结束标记的起始标记被跳过"""
        assert split_labels("^XA^FDonly start") == []
        assert split_labels("^XA^FDa^FS^XZ^XA^FDb") == ["^XA^FDa^FS^XZ"]

    def test_split_preamble(self):
        """测试前导内容拼接到每个标签"""
        content = "~SD15\n^XA^FDa^FS^XZ^XA^FDb^FS^XZ"
        units = split_labels(content)
        assert units == [
            f"~SD15{os.linesep}^XA^FDa^FS^XZ",
            f"~SD15{os.linesep}^XA^FDb^FS^XZ",
        ]

    def test_split_round_trip(self):
        """测试拼接后重新切分边界不变"""
        content = "^XA^FDa^FS^XZ\r\n^XA^PW100^LL100^FDb^FS^XZ\n^XA^FDc^FS^XZ"
        units = split_labels(content)
        assert len(units) == 3
        assert split_labels(join_labels(units)) == units

    def test_graphic_memory_prepended(self):
        """测试标签之间的 ~DGR 图形定义拼接到后续标签"""
        graphic = "~DGR:LOGO.GRF,4,1,:Z64:eJwrAAA=:ab12"
        content = f"^XA^FDa^FS^XZ\n{graphic}\n^XA^XGR:LOGO.GRF^FS^XZ"
        units = split_labels(content)
        assert units[0] == "^XA^FDa^FS^XZ"
        assert units[1] == f"{graphic}{os.linesep}^XA^XGR:LOGO.GRF^FS^XZ"

    def test_start_marker_inside_graphic_payload(self):
        """测试 ~DGR 载荷中的 ^XA 不被视为标签起始"""
        content = "~DGR:IMG.GRF,4,1,:Z64:ab^XAcd:0f0f\n^XA^FDreal^FS^XZ"
        units = split_labels(content)
        assert len(units) == 1
        assert units[0].endswith("^XA^FDreal^FS^XZ")

    def test_cleanup_label_skipped(self):
        """测试仅含 ^IDR 的清理标签不产生单元并移除图形"""
        graphic = "~DGR:LOGO.GRF,4,1,:Z64:eJwrAAA=:ab12"
        content = (
            f"^XA^FDa^FS^XZ\n{graphic}\n^XA^FDb^FS^XZ\n"
            "^XA^IDR:LOGO.GRF^FS^XZ\n^XA^FDc^FS^XZ\n^XA^FS^XZ\n^XA^XZ"
        )
        units = split_labels(content)
        assert len(units) == 3
        assert graphic in units[1]
        assert units[2] == "^XA^FDc^FS^XZ"

    def test_leading_graphic_removable(self):
        """测试前导内容中的 ~DGR 同样可被 ^IDR 移除"""
        graphic = "~DGR:LOGO.GRF,4,1,:Z64:eJwrAAA=:ab12"
        content = (
            f"~SD15\n{graphic}\n^XA^FDa^FS^XZ\n"
            "^XA^IDR:LOGO.GRF^FS^XZ\n^XA^FDb^FS^XZ"
        )
        units = split_labels(content)
        assert units == [
            f"~SD15{os.linesep}{graphic}{os.linesep}^XA^FDa^FS^XZ",
            f"~SD15{os.linesep}^XA^FDb^FS^XZ",
        ]


class TestPreprocess:
    """预处理测试"""

    def test_removes_field_number_before_data(self):
        """测试移除紧跟 ^FD 的 ^FN"""
        assert preprocess("^XA^FN1^FDvalue^FS^XZ") == "^XA^FDvalue^FS^XZ"
        assert preprocess("^XA^FN12  \n^FDvalue^FS^XZ") == "^XA^FDvalue^FS^XZ"

    def test_keeps_field_number_otherwise(self):
        """测试其他位置的 ^FN 保留"""
        content = "^XA^FN1^FS^FN2^FDx^FS^XZ"
        assert preprocess(content) == "^XA^FN1^FS^FDx^FS^XZ"

    def test_empty_content(self):
        """测试空内容原样返回"""
        assert preprocess("") == ""
        assert preprocess("  ") == "  "

    def test_preprocess_linear(self):
        """测试对抗输入下线性耗时"""
        hostile = "^FN" + "1" * 200_000 + " " * 200_000 + "^FX"
        hostile = hostile * 5
        start = time.perf_counter()
        assert preprocess(hostile) == hostile
        assert time.perf_counter() - start < 5.0


class TestFileNames:
    """输出文件名测试"""

    def test_extract_file_name_sanitized(self):
        """测试文件名非法字符清理"""
        content = "^XA^FX FileName: Invoice<1>^FS^FDx^FS^XZ"
        assert extract_file_name(content) == "Invoice1"

    def test_extract_forced_file_name(self):
        """测试强制文件名指令"""
        content = "^XA^FX !FileName: Forced.pdf^FS^XZ"
        assert extract_forced_file_name(content) == "Forced"
        assert extract_file_name(content) is None

    def test_sanitize(self):
        """测试清理规则"""
        assert sanitize_file_name('a/b\\c:d*e?f"g|h') == "abcdefgh"
        assert sanitize_file_name("name. ") == "name"
        assert sanitize_file_name("<>") is None
        assert sanitize_file_name(None) is None

    def test_resolve_output_name_priority(self):
        """测试强制指令 > 指定名称 > 普通指令 > 回退"""
        plain = "^XA^FX FileName: plain^FS^XZ"
        forced = "^XA^FX !FileName: forced^FS^XZ"
        assert resolve_output_name(forced, "requested", "fallback") == "forced"
        assert resolve_output_name(plain, "requested", "fallback") == "requested"
        assert resolve_output_name(plain, None, "fallback") == "plain"
        assert resolve_output_name("^XA^XZ", None, "fallback") == "fallback"


class TestReadLabelFile:
    """文件读取测试"""

    def test_invalid_bytes_replaced(self, temp_dir):
        """测试非法UTF-8字节被替换"""
        path = temp_dir / "bad.zpl"
        path.write_bytes(b"^XA^FD\xff\xfe^FS^XZ")
        content = read_label_file(path)
        assert content.startswith("^XA^FD")
        assert "�" in content

    def test_missing_file(self, temp_dir):
        """测试文件不存在"""
        with pytest.raises(FileNotFoundError):
            read_label_file(temp_dir / "missing.zpl")
