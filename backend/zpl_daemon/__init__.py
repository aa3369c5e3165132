"""
ZPL 标签目录守护进程 - 后端核心模块

模块结构：
- config/     运行期配置与日志
- models/     数据模型定义
- labels/     标签切分与尺寸解析
- watch/      目录监听（校验/去重/检测）
- pipeline/   处理队列、事件总线与时钟
- render/     转换后端（Labelary渲染 + PDF编码）
- daemon.py   守护进程编排（常驻/单次模式、PID文件）
"""

__version__ = "0.1.0"
