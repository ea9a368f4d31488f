from __future__ import annotations

import base64
import json

import httpx
import pytest

from mineru_extract.application.schemas.mineru import (
    BinaryBody,
    JsonBody,
    MinerUExtractionParams,
    MinerUFilePayload,
)
from mineru_extract.application.services.mineru_service import (
    DEFAULT_MIME_TYPE,
    MinerUFileParseClient,
    MinerUFormatMismatchError,
    MinerUUpstreamStatusError,
    build_file_part,
    build_form_fields,
    classify_response_body,
    file_parse_url,
    resolve_mime_type,
)

MINERU_URL = "http://mineru.test"
ZIP_BYTES = b"PK\x03\x04" + b"\x00" * 26 + b"fake-zip-payload"

BOOLEAN_FIELDS = (
    "formula_enable",
    "table_enable",
    "return_md",
    "return_middle_json",
    "return_model_output",
    "return_content_list",
    "return_images",
    "response_format_zip",
)


def _params(**overrides) -> MinerUExtractionParams:
    values = {
        "api_server_url": MINERU_URL,
        "file": MinerUFilePayload(filename="a.pdf", extension="pdf", data=b"%PDF-1.7 test"),
    }
    values.update(overrides)
    return MinerUExtractionParams(**values)


@pytest.mark.parametrize(
    ("extension", "expected"),
    [
        ("pdf", "application/pdf"),
        ("PDF", "application/pdf"),
        (".png", "image/png"),
        ("html", "text/html"),
        ("no-such-ext", DEFAULT_MIME_TYPE),
        ("", DEFAULT_MIME_TYPE),
        (None, DEFAULT_MIME_TYPE),
    ],
)
def test_resolve_mime_type(extension, expected):
    assert resolve_mime_type(extension) == expected


def test_form_fields_with_defaults():
    fields = build_form_fields(_params())
    assert fields == {
        "backend": "vlm-http-client",
        "parse_method": "auto",
        "start_page_id": "0",
        "end_page_id": "99999",
        "formula_enable": "true",
        "table_enable": "true",
        "return_md": "true",
        "return_middle_json": "false",
        "return_model_output": "false",
        "return_content_list": "false",
        "return_images": "false",
        "response_format_zip": "false",
    }


def test_form_fields_omit_empty_optional_strings():
    fields = build_form_fields(
        _params(lang_list="", backend="", parse_method="", backend_server_url="")
    )
    for key in ("lang_list", "backend", "parse_method", "server_url"):
        assert key not in fields
    for key in BOOLEAN_FIELDS:
        assert fields[key] in {"true", "false"}


def test_form_fields_include_set_optionals():
    fields = build_form_fields(
        _params(
            lang_list="en",
            backend="pipeline",
            parse_method="ocr",
            backend_server_url="http://127.0.0.1:30000",
            start_page_id=2,
            end_page_id=5,
        )
    )
    assert fields["lang_list"] == "en"
    assert fields["backend"] == "pipeline"
    assert fields["parse_method"] == "ocr"
    assert fields["server_url"] == "http://127.0.0.1:30000"
    assert fields["start_page_id"] == "2"
    assert fields["end_page_id"] == "5"


def test_form_fields_page_zero_is_sent_and_none_is_omitted():
    fields = build_form_fields(_params(start_page_id=0, end_page_id=None))
    assert fields["start_page_id"] == "0"
    assert "end_page_id" not in fields


def test_form_fields_boolean_flags_follow_input():
    fields = build_form_fields(
        _params(
            formula_enable=False,
            table_enable=False,
            return_md=False,
            return_middle_json=True,
            return_model_output=True,
            return_content_list=True,
            return_images=True,
            response_format_zip=True,
        )
    )
    assert [fields[k] for k in BOOLEAN_FIELDS] == [
        "false",
        "false",
        "false",
        "true",
        "true",
        "true",
        "true",
        "true",
    ]


def test_file_part_carries_filename_and_mime():
    part = build_file_part(
        _params(file=MinerUFilePayload(filename="scan", extension=None, data=b"x"))
    )
    assert part == {"files": ("scan", b"x", DEFAULT_MIME_TYPE)}


def test_file_parse_url_uses_prefix_verbatim():
    assert file_parse_url("http://h") == "http://h/file_parse"
    assert file_parse_url("http://h/api/") == "http://h/api//file_parse"


def test_file_payload_accepts_base64_string():
    payload = MinerUFilePayload(
        filename="a.txt",
        extension="txt",
        data=base64.b64encode(b"hello").decode(),
    )
    assert payload.data == b"hello"


def test_params_accept_camel_case_aliases():
    params = MinerUExtractionParams.model_validate(
        {
            "apiServerUrl": MINERU_URL,
            "file": {"filename": "a.pdf", "extension": "pdf", "data": base64.b64encode(b"x").decode()},
            "responseFormatZip": True,
            "returnMD": False,
            "startPageId": 3,
        }
    )
    assert params.api_server_url == MINERU_URL
    assert params.response_format_zip is True
    assert params.return_md is False
    assert params.start_page_id == 3
    assert params.end_page_id == 99999


@pytest.mark.parametrize(
    ("headers", "content", "expected"),
    [
        ({"content-type": "application/json"}, b'{"a": 1}', JsonBody(value={"a": 1}, content_type="application/json")),
        ({"content-type": "application/problem+json"}, b"[1, 2]", JsonBody(value=[1, 2], content_type="application/problem+json")),
        ({"content-type": "text/plain; charset=utf-8"}, b"plain text", JsonBody(value="plain text", content_type="text/plain")),
        ({"content-type": "application/zip"}, ZIP_BYTES, BinaryBody(content=ZIP_BYTES, content_type="application/zip")),
        ({"content-type": "application/octet-stream"}, b"\x00\x01", BinaryBody(content=b"\x00\x01", content_type="application/octet-stream")),
        ({}, ZIP_BYTES, BinaryBody(content=ZIP_BYTES)),
        ({}, b'{"a": 1}', JsonBody(value={"a": 1})),
        ({}, b"\x89PNG\r\n\x1a\n", BinaryBody(content=b"\x89PNG\r\n\x1a\n")),
    ],
)
def test_classify_response_body(headers, content, expected):
    response = httpx.Response(200, headers=headers, content=content)
    assert classify_response_body(response) == expected


@pytest.mark.anyio
async def test_file_parse_example_pdf_json(fake_mineru, mineru_http_client):
    fake_mineru.respond_json({"markdown": "# Title"})
    client = MinerUFileParseClient(http_client=mineru_http_client)

    result = await client.file_parse(_params(backend="pipeline", response_format_zip=False))

    assert result == {"markdown": "# Title"}
    assert len(fake_mineru.calls) == 1
    call = fake_mineru.last_call
    assert call["method"] == "POST"
    assert call["path"] == "/file_parse"
    assert call["content_type"].startswith("multipart/form-data; boundary=")
    assert call["files"]["files"] == {
        "filename": "a.pdf",
        "content_type": "application/pdf",
        "data": b"%PDF-1.7 test",
    }
    assert call["fields"]["backend"] == "pipeline"
    assert call["fields"]["formula_enable"] == "true"
    assert call["fields"]["table_enable"] == "true"
    assert call["fields"]["return_md"] == "true"
    for key in BOOLEAN_FIELDS[3:]:
        assert call["fields"][key] == "false"
    assert "lang_list" not in call["fields"]
    assert "server_url" not in call["fields"]


@pytest.mark.anyio
async def test_file_parse_unknown_extension_sends_octet_stream(fake_mineru, mineru_http_client):
    client = MinerUFileParseClient(http_client=mineru_http_client)
    params = _params(file=MinerUFilePayload(filename="blob.zzz", extension="zzz", data=b"\x00"))

    await client.file_parse(params)

    assert fake_mineru.last_call["files"]["files"]["content_type"] == DEFAULT_MIME_TYPE


@pytest.mark.anyio
@pytest.mark.parametrize("body", [{"results": {"a.pdf": {"md_content": "x"}}}, [1, "two"], "just text", 42])
async def test_file_parse_returns_json_body_unmodified(fake_mineru, mineru_http_client, body):
    fake_mineru.respond_json(body)
    client = MinerUFileParseClient(http_client=mineru_http_client)

    assert await client.file_parse(_params()) == body


@pytest.mark.anyio
async def test_file_parse_zip_result(fake_mineru, mineru_http_client):
    fake_mineru.respond_bytes(ZIP_BYTES, media_type="application/zip")
    client = MinerUFileParseClient(http_client=mineru_http_client)

    result = await client.file_parse(_params(response_format_zip=True))

    assert result.model_dump() == {
        "filename": "a.pdf_mineru_result.zip",
        "data": base64.b64encode(ZIP_BYTES).decode(),
        "extension": "zip",
    }
    assert fake_mineru.last_call["fields"]["response_format_zip"] == "true"


@pytest.mark.anyio
async def test_file_parse_zip_without_content_type_is_sniffed(fake_mineru, mineru_http_client):
    fake_mineru.respond_bytes(ZIP_BYTES, media_type=None)
    client = MinerUFileParseClient(http_client=mineru_http_client)

    result = await client.file_parse(_params(response_format_zip=True))

    assert base64.b64decode(result.data) == ZIP_BYTES


@pytest.mark.anyio
async def test_file_parse_zip_requested_but_json_returned(fake_mineru, mineru_http_client):
    fake_mineru.respond_json({"markdown": "not a zip"})
    client = MinerUFileParseClient(http_client=mineru_http_client)

    with pytest.raises(MinerUFormatMismatchError) as exc_info:
        await client.file_parse(_params(response_format_zip=True))

    assert exc_info.value.message == "Expected ZIP file response but received non-binary data."
    assert exc_info.value.code == "mineru_format_mismatch"


@pytest.mark.anyio
@pytest.mark.parametrize(
    ("content", "media_type"),
    [
        (b"\x00\x01", "application/octet-stream"),
        (ZIP_BYTES, "application/zip"),
        (b"\x89PNG\r\n\x1a\n", None),
    ],
)
async def test_file_parse_binary_body_without_zip_is_returned_raw(
    fake_mineru, mineru_http_client, content, media_type
):
    fake_mineru.respond_bytes(content, media_type=media_type)
    client = MinerUFileParseClient(http_client=mineru_http_client)

    result = await client.file_parse(_params(response_format_zip=False))

    assert result == content


@pytest.mark.anyio
async def test_file_parse_empty_body_without_content_type():
    def empty(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=b"")

    async with httpx.AsyncClient(transport=httpx.MockTransport(empty)) as http_client:
        client = MinerUFileParseClient(http_client=http_client)
        result = await client.file_parse(_params(response_format_zip=False))

    assert result == b""


@pytest.mark.anyio
@pytest.mark.parametrize("status", [302, 400, 422, 500, 503])
async def test_file_parse_upstream_status_error(fake_mineru, mineru_http_client, status):
    fake_mineru.respond_json({"detail": "boom"}, status_code=status)
    client = MinerUFileParseClient(http_client=mineru_http_client)

    with pytest.raises(MinerUUpstreamStatusError) as exc_info:
        await client.file_parse(_params())

    err = exc_info.value
    assert err.upstream_status == status
    assert err.message == (
        f"MinerU API request failed with status {status}: {json.dumps({'detail': 'boom'})}"
    )
    assert err.details["body"] == {"detail": "boom"}
    assert err.status_code == 502


@pytest.mark.anyio
async def test_file_parse_status_error_with_binary_body(fake_mineru, mineru_http_client):
    fake_mineru.respond_bytes(b"\xff\xfe", media_type="application/octet-stream", status_code=500)
    client = MinerUFileParseClient(http_client=mineru_http_client)

    with pytest.raises(MinerUUpstreamStatusError) as exc_info:
        await client.file_parse(_params(response_format_zip=True))

    assert exc_info.value.upstream_status == 500
    assert exc_info.value.details["body"] == "<2 bytes>"


@pytest.mark.anyio
async def test_file_parse_transport_error_propagates():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http_client:
        client = MinerUFileParseClient(http_client=http_client)
        with pytest.raises(httpx.ConnectError):
            await client.file_parse(_params())


@pytest.mark.anyio
async def test_file_parse_sends_exactly_one_request():
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(503, json={"detail": "busy"})

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http_client:
        client = MinerUFileParseClient(http_client=http_client)
        with pytest.raises(MinerUUpstreamStatusError):
            await client.file_parse(_params())

    assert len(seen) == 1
    assert str(seen[0].url) == "http://mineru.test/file_parse"
    assert seen[0].method == "POST"
