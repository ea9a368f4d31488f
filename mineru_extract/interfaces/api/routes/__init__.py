"""API routes package.

本模块保持无副作用，路由挂载在 `mineru_extract/interfaces/api/app.py` 中显式 include。
"""

__all__: list[str] = []
