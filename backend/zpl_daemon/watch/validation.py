"""
校验门 - 扩展名白名单与文件占用探测

职责：
1. 扩展名白名单（.txt/.prn/.zpl/.imp，忽略大小写）
2. 文件存在性检查
3. 独占读锁探测（尽力而为，调用方需在读取失败时重试）

测试要点：
- test_eligible_requires_whitelist_and_file: 白名单 + 文件存在
- test_locked_when_missing: 文件不存在视为占用
- test_locked_when_held: 其他句柄持有锁时视为占用
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Iterable

logger = logging.getLogger(__name__)

DEFAULT_EXTENSIONS = (".txt", ".prn", ".zpl", ".imp")

if os.name == "nt":
    import msvcrt

    def _try_lock(fd: int) -> None:
        msvcrt.locking(fd, msvcrt.LK_NBLCK, 1)
        msvcrt.locking(fd, msvcrt.LK_UNLCK, 1)

else:
    import fcntl

    def _try_lock(fd: int) -> None:
        fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
        fcntl.flock(fd, fcntl.LOCK_UN)


class ValidationGate:
    """校验门"""

    def __init__(self, extensions: Iterable[str] | None = None):
        exts = extensions if extensions is not None else DEFAULT_EXTENSIONS
        self.extensions = frozenset(self._normalize(e) for e in exts)

    @staticmethod
    def _normalize(ext: str) -> str:
        ext = ext.strip().lower()
        return ext if ext.startswith(".") else f".{ext}"

    def is_valid_extension(self, path: Path) -> bool:
        """扩展名是否在白名单内"""
        return Path(path).suffix.lower() in self.extensions

    def is_eligible(self, path: Path) -> bool:
        """扩展名合法且文件当前存在"""
        path = Path(path)
        return self.is_valid_extension(path) and path.is_file()

    def is_locked(self, path: Path) -> bool:
        """
        尝试以独占方式打开文件

        Returns:
            True: 无法获得独占访问（不存在/无权限/被占用）
        """
        try:
            with open(path, "rb") as f:
                _try_lock(f.fileno())
        except OSError as e:
            logger.debug(f"文件被占用或不可访问: {path} ({e})")
            return True
        return False
