"""
校验门与在途集合单元测试

每个模块完成后必须运行：pytest tests/unit/test_validation.py -v
"""

import os
import threading

import pytest

from zpl_daemon.watch import InFlightRegistry, ValidationGate, normalize_path


class TestValidationGate:
    """校验门测试"""

    @pytest.mark.parametrize("name", ["a.txt", "b.PRN", "c.zpl", "d.Imp"])
    def test_eligible_requires_whitelist_and_file(self, temp_dir, name):
        """测试白名单扩展名 + 文件存在"""
        gate = ValidationGate()
        path = temp_dir / name
        assert not gate.is_eligible(path)
        path.write_text("^XA^XZ")
        assert gate.is_eligible(path)

    def test_rejects_other_extensions(self, temp_dir):
        """测试非白名单扩展名"""
        gate = ValidationGate()
        path = temp_dir / "label.pdf"
        path.write_text("x")
        assert not gate.is_valid_extension(path)
        assert not gate.is_eligible(path)

    def test_rejects_directory(self, temp_dir):
        """测试目录不合格"""
        folder = temp_dir / "folder.zpl"
        folder.mkdir()
        assert not ValidationGate().is_eligible(folder)

    def test_custom_extensions(self, temp_dir):
        """测试自定义扩展名（允许省略点号）"""
        gate = ValidationGate(["zpl", ".LBL"])
        assert gate.is_valid_extension(temp_dir / "x.lbl")
        assert not gate.is_valid_extension(temp_dir / "x.txt")

    def test_locked_when_missing(self, temp_dir):
        """测试文件不存在视为占用"""
        assert ValidationGate().is_locked(temp_dir / "missing.zpl")

    def test_unlocked_file(self, label_file):
        """测试未被占用的文件"""
        assert not ValidationGate().is_locked(label_file)

    @pytest.mark.skipif(os.name == "nt", reason="fcntl 仅适用于 POSIX")
    def test_locked_when_held(self, label_file):
        """测试其他句柄持有独占锁时视为占用"""
        import fcntl

        with open(label_file, "rb") as holder:
            fcntl.flock(holder.fileno(), fcntl.LOCK_EX)
            try:
                assert ValidationGate().is_locked(label_file)
            finally:
                fcntl.flock(holder.fileno(), fcntl.LOCK_UN)
        assert not ValidationGate().is_locked(label_file)


class TestInFlightRegistry:
    """在途集合测试"""

    def test_acquire_release(self, label_file):
        """测试接管与释放"""
        registry = InFlightRegistry()
        assert registry.try_acquire(label_file)
        assert not registry.try_acquire(label_file)
        assert label_file in registry
        assert len(registry) == 1
        assert registry.snapshot() == frozenset({normalize_path(label_file)})
        registry.release(label_file)
        assert label_file not in registry
        assert registry.try_acquire(label_file)

    def test_path_normalization(self, label_file):
        """测试同一文件的不同写法视为同一路径"""
        registry = InFlightRegistry()
        assert registry.try_acquire(label_file)
        alias = label_file.parent / "." / label_file.name
        assert not registry.try_acquire(alias)

    def test_concurrent_acquire_single_winner(self, label_file):
        """测试并发接管只有一个成功"""
        registry = InFlightRegistry()
        results: list[bool] = []
        barrier = threading.Barrier(8)

        def worker():
            barrier.wait()
            results.append(registry.try_acquire(label_file))

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert results.count(True) == 1

    def test_parked_until_changed(self, label_file):
        """测试暂存文件在修改前不再接管"""
        registry = InFlightRegistry()
        assert registry.try_acquire(label_file)
        registry.release(label_file, park=True)

        assert registry.is_parked(label_file)
        assert not registry.try_acquire(label_file)

        label_file.write_text("^XA^FDchanged content^FS^XZ")
        assert registry.try_acquire(label_file)
        assert not registry.is_parked(label_file)

    def test_clear_parked(self, label_file):
        """测试清空暂存"""
        registry = InFlightRegistry()
        registry.try_acquire(label_file)
        registry.release(label_file, park=True)
        registry.clear_parked()
        assert registry.try_acquire(label_file)
