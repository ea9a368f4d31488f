"""MinerU 文档内容提取动作。"""

__version__ = "0.1.0"
