"""
在途集合 - 记录已被流水线接管的文件路径

职责：
1. 原子的"检查并加入"，保证同一路径同时最多一个处理项
2. 终态后释放；源文件仍在磁盘上时记录签名（mtime/size）暂存
3. 暂存文件在签名变化前不再被接收，避免失败文件每次轮询都重复处理

所有读写在同一把锁下完成，这是检测线程与处理线程之间唯一的共享状态。
"""

from __future__ import annotations

import os
import threading
from pathlib import Path


def normalize_path(path: Path | str) -> str:
    """路径归一化（绝对路径，Windows下忽略大小写）"""
    return os.path.normcase(os.path.abspath(os.fspath(path)))


def _signature(path: str) -> tuple[int, int] | None:
    try:
        st = os.stat(path)
    except OSError:
        return None
    return st.st_mtime_ns, st.st_size


class InFlightRegistry:
    """在途路径集合（线程安全）"""

    def __init__(self):
        self._lock = threading.Lock()
        self._paths: set[str] = set()
        self._parked: dict[str, tuple[int, int]] = {}

    def try_acquire(self, path: Path | str) -> bool:
        """
        原子地接管路径

        Returns:
            False: 已在途，或为未变化的暂存文件
        """
        key = normalize_path(path)
        with self._lock:
            if key in self._paths:
                return False
            parked = self._parked.get(key)
            if parked is not None:
                current = _signature(key)
                if current == parked:
                    return False
                del self._parked[key]
            self._paths.add(key)
            return True

    def release(self, path: Path | str, park: bool = False) -> None:
        """释放路径；park=True 时记录当前签名"""
        key = normalize_path(path)
        with self._lock:
            self._paths.discard(key)
            if park:
                signature = _signature(key)
                if signature is not None:
                    self._parked[key] = signature
            else:
                self._parked.pop(key, None)

    def is_parked(self, path: Path | str) -> bool:
        with self._lock:
            return normalize_path(path) in self._parked

    def clear_parked(self) -> None:
        """清空暂存记录（允许重新处理所有失败文件）"""
        with self._lock:
            self._parked.clear()

    def snapshot(self) -> frozenset[str]:
        with self._lock:
            return frozenset(self._paths)

    def __contains__(self, path: object) -> bool:
        if not isinstance(path, (str, Path)):
            return False
        key = normalize_path(path)
        with self._lock:
            return key in self._paths

    def __len__(self) -> int:
        with self._lock:
            return len(self._paths)
