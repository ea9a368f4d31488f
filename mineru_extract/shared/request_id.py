from __future__ import annotations

import contextlib
import contextvars
import uuid
from collections.abc import Iterator


request_id_var: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "request_id",
    default=None,
)


def new_request_id() -> str:
    return uuid.uuid4().hex


def get_request_id() -> str | None:
    return request_id_var.get()


def set_request_id(request_id: str | None) -> contextvars.Token[str | None]:
    return request_id_var.set(request_id)


@contextlib.contextmanager
def request_id_scope(request_id: str | None = None) -> Iterator[str]:
    """在一个作用域内绑定 request id（CLI 等非 HTTP 入口使用）。"""
    rid = request_id or new_request_id()
    token = set_request_id(rid)
    try:
        yield rid
    finally:
        request_id_var.reset(token)
