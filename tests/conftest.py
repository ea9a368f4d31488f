from __future__ import annotations

import sys
from pathlib import Path
from typing import Any

import httpx
import pytest
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, Response
from starlette.datastructures import UploadFile

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from mineru_extract.shared.config import reset_settings_for_tests

FAKE_MINERU_URL = "http://mineru.test"
ZIP_BYTES = b"PK\x03\x04" + b"\x00" * 26 + b"fake-zip-payload"


class FakeMinerU:
    """假的 MinerU 服务：记录收到的 multipart 表单，并按设定返回响应。"""

    def __init__(self) -> None:
        self.calls: list[dict[str, Any]] = []
        self._status_code = 200
        self._json_body: Any = {"markdown": "# hello"}
        self._content: bytes | None = None
        self._media_type: str | None = None

        self.app = FastAPI()
        self.app.add_api_route("/file_parse", self._file_parse, methods=["POST"])

    def respond_json(self, body: Any, status_code: int = 200) -> None:
        self._json_body = body
        self._content = None
        self._status_code = status_code

    def respond_bytes(
        self,
        content: bytes,
        media_type: str | None = "application/zip",
        status_code: int = 200,
    ) -> None:
        self._content = content
        self._media_type = media_type
        self._status_code = status_code

    @property
    def last_call(self) -> dict[str, Any]:
        assert self.calls, "fake MinerU received no request"
        return self.calls[-1]

    async def _file_parse(self, request: Request) -> Response:
        form = await request.form()
        fields: dict[str, str] = {}
        files: dict[str, dict[str, Any]] = {}
        for key, value in form.multi_items():
            if isinstance(value, UploadFile):
                files[key] = {
                    "filename": value.filename,
                    "content_type": value.content_type,
                    "data": await value.read(),
                }
            else:
                fields[key] = value
        self.calls.append(
            {
                "method": request.method,
                "path": request.url.path,
                "content_type": request.headers.get("content-type", ""),
                "fields": fields,
                "files": files,
            }
        )

        if self._content is not None:
            return Response(
                content=self._content,
                status_code=self._status_code,
                media_type=self._media_type,
            )
        return JSONResponse(self._json_body, status_code=self._status_code)


@pytest.fixture()
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch: pytest.MonkeyPatch):
    """每个用例使用干净的配置：不读 .env，不受本机 MINERU_EXTRACT_* 影响。"""
    monkeypatch.setenv("MINERU_EXTRACT_DISABLE_DOTENV", "1")
    monkeypatch.delenv("MINERU_EXTRACT_MINERU_API_URL", raising=False)
    monkeypatch.delenv("MINERU_EXTRACT_MINERU_TIMEOUT", raising=False)
    reset_settings_for_tests()
    yield
    reset_settings_for_tests()


@pytest.fixture()
def fake_mineru() -> FakeMinerU:
    return FakeMinerU()


@pytest.fixture()
async def mineru_http_client(fake_mineru: FakeMinerU):
    transport = httpx.ASGITransport(app=fake_mineru.app)
    async with httpx.AsyncClient(transport=transport) as client:
        yield client


@pytest.fixture()
async def api_client(mineru_http_client: httpx.AsyncClient):
    """API 客户端；MinerU 调用被路由到假服务。"""
    from mineru_extract.interfaces.api.app import create_app
    from mineru_extract.interfaces.api.deps import get_mineru_http_client

    app = create_app()
    app.dependency_overrides[get_mineru_http_client] = lambda: mineru_http_client
    # 未处理异常由 500 handler 渲染，不在客户端重新抛出
    transport = httpx.ASGITransport(app=app, raise_app_exceptions=False)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
