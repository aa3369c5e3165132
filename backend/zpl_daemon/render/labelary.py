"""
Labelary渲染器 - 通过 Labelary HTTP API 将标签渲染为PNG

职责：
1. 每个标签单独请求，返回顺序与输入一致
2. 串行化请求并保证最小请求间隔（免费接口限速）
3. 非200响应或网络错误统一转换为 RenderError

测试要点：
- test_render_builds_url: URL中的dpmm与英寸尺寸
- test_render_non_200_raises: 非200响应抛出RenderError
- test_rate_limit_waits: 连续请求之间等待最小间隔
"""

from __future__ import annotations

import logging
import threading
from typing import Sequence

import requests

from ..config import RendererConfig
from ..interfaces import IClock, ILabelRenderer, RenderError
from ..models import MM_PER_INCH
from ..pipeline.clock import SystemClock

logger = logging.getLogger(__name__)

DPMM_BY_DPI = {152: 6, 203: 8, 300: 12, 600: 24}
DEFAULT_DPMM = 8
MAX_LABEL_INCHES = 15.0
EMPTY_LABEL_ZPL = "^XA^XZ"


def api_parameters(width_mm: float, height_mm: float, dpi: int) -> tuple[int, float, float]:
    """毫米尺寸/DPI → (dpmm, 宽英寸, 高英寸)"""
    dpmm = DPMM_BY_DPI.get(dpi, DEFAULT_DPMM)
    width_in = width_mm / MM_PER_INCH
    height_in = height_mm / MM_PER_INCH
    if width_in > MAX_LABEL_INCHES or height_in > MAX_LABEL_INCHES:
        raise RenderError(
            f"标签尺寸超出Labelary上限 {MAX_LABEL_INCHES:.0f} 英寸: {width_in:.2f}in x {height_in:.2f}in"
        )
    return dpmm, width_in, height_in


class LabelaryRenderer(ILabelRenderer):
    """Labelary在线渲染器"""

    name = "labelary"

    def __init__(
        self,
        config: RendererConfig | None = None,
        session: requests.Session | None = None,
        clock: IClock | None = None,
    ):
        self.config = config or RendererConfig()
        self.session = session or requests.Session()
        self.clock = clock or SystemClock()
        self._lock = threading.Lock()
        self._last_request: float | None = None

    def render(
        self,
        units: Sequence[str],
        width_mm: float,
        height_mm: float,
        dpi: int,
    ) -> list[bytes]:
        dpmm, width_in, height_in = api_parameters(width_mm, height_mm, dpi)
        url = f"{self.config.labelary_url.rstrip('/')}/{dpmm}dpmm/labels/{width_in:.2f}x{height_in:.2f}/0/"

        images = []
        for index, unit in enumerate(units, 1):
            logger.debug(f"Labelary渲染 {index}/{len(units)}: {url}")
            images.append(self._post(url, unit))
        return images

    def is_available(self) -> bool:
        """用空标签探测接口是否可达"""
        url = f"{self.config.labelary_url.rstrip('/')}/{DEFAULT_DPMM}dpmm/labels/1x1/0/"
        try:
            self._post(url, EMPTY_LABEL_ZPL)
        except RenderError as e:
            logger.warning(f"Labelary不可用: {e}")
            return False
        return True

    def close(self) -> None:
        self.session.close()

    def _post(self, url: str, zpl: str) -> bytes:
        with self._lock:
            self._throttle()
            try:
                response = self.session.post(
                    url,
                    data=zpl.encode("utf-8"),
                    headers={
                        "Accept": "image/png",
                        "Content-Type": "application/x-www-form-urlencoded",
                    },
                    timeout=self.config.timeout_sec,
                )
            except requests.RequestException as e:
                raise RenderError(f"Labelary请求失败: {e}") from e
            finally:
                self._last_request = self.clock.monotonic()

        if response.status_code != 200:
            raise RenderError(f"Labelary API错误 ({response.status_code}): {response.text[:200]}")
        return response.content

    def _throttle(self) -> None:
        if self._last_request is None:
            return
        remaining = self.config.min_interval_ms / 1000 - (self.clock.monotonic() - self._last_request)
        if remaining > 0:
            self.clock.sleep(remaining)
