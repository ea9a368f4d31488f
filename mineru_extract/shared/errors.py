"""统一错误类型与 API 错误响应结构 `{"error": {code, message, request_id, details}}`。"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

ERROR_INTERNAL = "internal_error"
ERROR_VALIDATION = "validation_error"


@dataclass(frozen=True)
class AppError(Exception):
    """可直接映射为 HTTP 错误响应的业务异常。"""

    code: str
    message: str
    status_code: int = 400
    details: dict[str, Any] | None = None

    def __str__(self) -> str:  # pragma: no cover
        return f"{self.code}: {self.message}"

    def to_response(self, request_id: str | None) -> dict[str, Any]:
        return error_response(
            code=self.code,
            message=self.message,
            request_id=request_id,
            details=self.details,
        )


def validation_error(message: str, details: dict[str, Any] | None = None) -> AppError:
    """参数缺失或无法转换（422）。"""
    return AppError(
        code=ERROR_VALIDATION,
        message=message,
        status_code=422,
        details=details,
    )


def error_response(
    *,
    code: str,
    message: str,
    request_id: str | None,
    details: dict[str, Any] | None = None,
) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "error": {
            "code": code,
            "message": message,
            "request_id": request_id,
        }
    }
    if details is not None:
        payload["error"]["details"] = details
    return payload
