"""MinerU file_parse 接入层。

只做请求/响应整形：构造 multipart 表单 -> 一次 POST -> 按状态码与响应体类型返回。
不重试、不轮询、不缓存。
"""

from __future__ import annotations

import base64
import json
import mimetypes
from typing import Any
from urllib.parse import urlsplit

import httpx

from mineru_extract.application.schemas.mineru import (
    BinaryBody,
    JsonBody,
    MinerUExtractionParams,
    MinerUResponseBody,
    MinerUZipResult,
)
from mineru_extract.shared.errors import AppError
from mineru_extract.shared.logging import get_logger, log_extra

log = get_logger(__name__)

DEFAULT_MIME_TYPE = "application/octet-stream"
FILE_PARSE_PATH = "/file_parse"
ZIP_RESULT_SUFFIX = "_mineru_result.zip"

_ZIP_SIGNATURES = (b"PK\x03\x04", b"PK\x05\x06", b"PK\x07\x08")


class MinerUClientError(AppError):
    """MinerU 客户端错误"""

    def __init__(
        self,
        message: str,
        status_code: int = 502,
        code: str = "mineru_client_error",
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message=message, status_code=status_code, code=code, details=details)


class MinerUUpstreamStatusError(MinerUClientError):
    """MinerU 返回了 >=300 的状态码。"""

    def __init__(self, upstream_status: int, body: Any):
        super().__init__(
            message=f"MinerU API request failed with status {upstream_status}: {_stringify_body(body)}",
            code="mineru_upstream_status",
            details={
                "upstream_status": upstream_status,
                "body": _stringify_body(body) if isinstance(body, (bytes, bytearray)) else body,
            },
        )

    @property
    def upstream_status(self) -> int:
        return int((self.details or {})["upstream_status"])


class MinerUFormatMismatchError(MinerUClientError):
    """响应体类型与请求声明的返回格式不一致。"""

    def __init__(self, message: str, content_type: str | None = None):
        super().__init__(
            message=message,
            code="mineru_format_mismatch",
            details={"content_type": content_type},
        )


def _stringify_body(body: Any) -> str:
    if isinstance(body, (bytes, bytearray)):
        return f"<{len(body)} bytes>"
    try:
        return json.dumps(body, ensure_ascii=False)
    except (TypeError, ValueError):
        return repr(body)


def _safe_url_for_log(url: str) -> str:
    """用于日志：去掉 query/fragment，避免泄露签名参数。"""
    try:
        parts = urlsplit(url)
    except ValueError:
        return "<invalid_url>"
    return f"{parts.scheme}://{parts.netloc}{parts.path}"[:512]


def resolve_mime_type(extension: str | None) -> str:
    """根据扩展名查 MIME 类型；缺失或无法识别时返回 application/octet-stream。"""
    if not extension:
        return DEFAULT_MIME_TYPE
    ext = extension.strip().lstrip(".").lower()
    if not ext:
        return DEFAULT_MIME_TYPE
    mime_type, _ = mimetypes.guess_type(f"file.{ext}")
    return mime_type or DEFAULT_MIME_TYPE


def _flag(value: bool) -> str:
    return "true" if value else "false"


def build_form_fields(params: MinerUExtractionParams) -> dict[str, str]:
    """构造 multipart 中的普通字段（不含文件）。

    可选字符串字段仅在非空时下发；页码仅在设置（非 None）时下发；
    八个布尔开关总是下发 "true"/"false"。
    """
    fields: dict[str, str] = {}

    if params.lang_list:
        fields["lang_list"] = params.lang_list
    if params.backend:
        fields["backend"] = params.backend
    if params.parse_method:
        fields["parse_method"] = params.parse_method
    if params.backend_server_url:
        fields["server_url"] = params.backend_server_url
    if params.start_page_id is not None:
        fields["start_page_id"] = str(params.start_page_id)
    if params.end_page_id is not None:
        fields["end_page_id"] = str(params.end_page_id)

    fields["formula_enable"] = _flag(params.formula_enable)
    fields["table_enable"] = _flag(params.table_enable)
    fields["return_md"] = _flag(params.return_md)
    fields["return_middle_json"] = _flag(params.return_middle_json)
    fields["return_model_output"] = _flag(params.return_model_output)
    fields["return_content_list"] = _flag(params.return_content_list)
    fields["return_images"] = _flag(params.return_images)
    fields["response_format_zip"] = _flag(params.response_format_zip)
    return fields


def build_file_part(params: MinerUExtractionParams) -> dict[str, tuple[str, bytes, str]]:
    file = params.file
    return {"files": (file.filename, file.data, resolve_mime_type(file.extension))}


def file_parse_url(api_server_url: str) -> str:
    # 原样作为前缀拼接，不做协议/可达性校验
    return f"{api_server_url}{FILE_PARSE_PATH}"


def _media_type(response: httpx.Response) -> str | None:
    raw = response.headers.get("content-type")
    if not raw:
        return None
    return raw.split(";", 1)[0].strip().lower() or None


def _is_json_type(media_type: str) -> bool:
    return media_type == "application/json" or media_type.endswith("+json")


def _decode_text(response: httpx.Response) -> Any:
    text = response.text
    try:
        return json.loads(text)
    except ValueError:
        return text


def classify_response_body(response: httpx.Response) -> MinerUResponseBody:
    """按响应头判断响应体是二进制还是 JSON。

    - JSON / text 类型：解码为 JSON；解析失败时保留原始字符串
    - zip / octet-stream 及其他非文本类型：二进制
    - 无 Content-Type：先看 ZIP 魔数，再尝试 JSON，最后按二进制处理
    """
    media_type = _media_type(response)
    content = response.content

    if media_type is None:
        if content.startswith(_ZIP_SIGNATURES):
            return BinaryBody(content=content)
        try:
            return JsonBody(value=json.loads(content))
        except ValueError:
            return BinaryBody(content=content)

    if _is_json_type(media_type) or media_type.startswith("text/"):
        return JsonBody(value=_decode_text(response), content_type=media_type)
    return BinaryBody(content=content, content_type=media_type)


def _error_body(response: httpx.Response) -> Any:
    body = classify_response_body(response)
    if isinstance(body, JsonBody):
        return body.value
    try:
        return body.content.decode("utf-8")
    except UnicodeDecodeError:
        return body.content


class MinerUFileParseClient:
    """MinerU `/file_parse` 客户端。

    每次调用只发一次请求；HTTP 客户端可由调用方注入，否则按调用临时创建并关闭。
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient | None = None,
        timeout: float | None = None,
    ):
        self._http_client = http_client
        self._timeout = timeout

    def _new_http_client(self) -> httpx.AsyncClient:
        if self._timeout is None:
            return httpx.AsyncClient()
        return httpx.AsyncClient(timeout=httpx.Timeout(self._timeout))

    async def _post(self, url: str, params: MinerUExtractionParams) -> httpx.Response:
        # Content-Type（含 boundary）由 httpx 根据 files/data 生成
        request_kwargs: dict[str, Any] = {
            "data": build_form_fields(params),
            "files": build_file_part(params),
        }
        if self._http_client is not None:
            return await self._http_client.post(url, **request_kwargs)
        async with self._new_http_client() as client:
            return await client.post(url, **request_kwargs)

    async def file_parse(self, params: MinerUExtractionParams) -> MinerUZipResult | Any:
        """提交文件到 MinerU 并返回解析结果。

        Returns:
            responseFormatZip 为真时返回 MinerUZipResult，否则原样返回响应体（JSON 值、字符串或原始字节）

        Raises:
            MinerUUpstreamStatusError: 状态码 >= 300
            MinerUFormatMismatchError: 请求 ZIP 但响应体不是二进制
            httpx.RequestError: 网络层异常原样抛出
        """
        url = file_parse_url(params.api_server_url)
        log.info(
            "mineru.file_parse.start",
            extra=log_extra(
                url=_safe_url_for_log(url),
                filename=params.file.filename,
                size_bytes=len(params.file.data),
                backend=params.backend,
                response_format_zip=params.response_format_zip,
            ),
        )

        response = await self._post(url, params)

        if response.status_code >= 300:
            body = _error_body(response)
            log.warning(
                "mineru.file_parse.http_error",
                extra=log_extra(
                    status_code=response.status_code,
                    response_text=(response.text or "")[:500],
                ),
            )
            raise MinerUUpstreamStatusError(response.status_code, body)

        body = classify_response_body(response)

        if params.response_format_zip:
            if not isinstance(body, BinaryBody):
                log.warning(
                    "mineru.file_parse.format_mismatch",
                    extra=log_extra(expected="zip", content_type=body.content_type),
                )
                raise MinerUFormatMismatchError(
                    "Expected ZIP file response but received non-binary data.",
                    content_type=body.content_type,
                )
            result = MinerUZipResult(
                filename=f"{params.file.filename}{ZIP_RESULT_SUFFIX}",
                data=base64.b64encode(body.content).decode("ascii"),
                extension="zip",
            )
            log.info(
                "mineru.file_parse.ok",
                extra=log_extra(format="zip", size_bytes=len(body.content)),
            )
            return result

        if isinstance(body, BinaryBody):
            # 非 ZIP 模式不校验形态，原始字节原样返回（含空响应体）
            log.info(
                "mineru.file_parse.ok",
                extra=log_extra(
                    format="raw",
                    content_type=body.content_type,
                    size_bytes=len(body.content),
                ),
            )
            return body.content

        log.info(
            "mineru.file_parse.ok",
            extra=log_extra(format="json", body_type=type(body.value).__name__),
        )
        return body.value
