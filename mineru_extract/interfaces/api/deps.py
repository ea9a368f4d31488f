from __future__ import annotations

import httpx


def get_mineru_http_client() -> httpx.AsyncClient | None:
    """MinerU 调用使用的 HTTP 客户端。

    默认返回 None，由动作按调用自建；测试或嵌入方可通过 dependency_overrides 注入。
    """
    return None
