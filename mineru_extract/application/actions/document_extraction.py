"""MinerU 文档内容提取动作。"""

from __future__ import annotations

from typing import Any

import httpx

from mineru_extract.application.actions.framework import ActionDefinition, Property
from mineru_extract.application.schemas.mineru import (
    DEFAULT_END_PAGE_ID,
    DEFAULT_START_PAGE_ID,
    MINERU_LANGUAGES,
    MinerUBackend,
    MinerUExtractionParams,
    MinerUParseMethod,
    MinerUZipResult,
)
from mineru_extract.application.services.mineru_service import MinerUFileParseClient
from mineru_extract.shared.config import get_settings

ACTION_NAME = "minerUDocumentDataExtraction"

_BACKEND_DESCRIPTION = (
    "pipeline: More general, "
    "vlm-transformers: More general, but slower, "
    "vlm-mlx-engine: Faster than transformers (need apple silicon and macOS 13.5+), "
    "vlm-vllm-async-engine: Faster (vllm-engine, need vllm installed), "
    "vlm-lmdeploy-engine: Faster (lmdeploy-engine, need lmdeploy installed), "
    "vlm-http-client: Faster (client suitable for openai-compatible servers)"
)

PROPS = {
    "apiServerUrl": Property.short_text("MinerU API server url", required=True),
    "file": Property.file(
        "File for parsing",
        description="base64 file from readFile piece",
        required=True,
    ),
    "langList": Property.short_text(
        "Document language",
        description=(
            'Improves OCR accuracy with "pipeline" backend only. Supported values : '
            + ", ".join(MINERU_LANGUAGES)
        ),
        default_value="",
    ),
    "backend": Property.static_dropdown(
        "Backend for parsing",
        description=_BACKEND_DESCRIPTION,
        required=True,
        default_value=MinerUBackend.VLM_HTTP_CLIENT.value,
        options=[b.value for b in MinerUBackend],
    ),
    "backendServerUrl": Property.short_text(
        "Backend OpenAI compatible server url",
        description='Adapted only for "vlm-http-client" backend, e.g., http://127.0.0.1:30000',
    ),
    "parseMethod": Property.static_dropdown(
        "The method for parsing PDF",
        description=(
            'Adapted only for pipeline backend. "auto": Automatically determine the method '
            'based on the file type, "txt": Use text extraction method, "ocr": ocr'
        ),
        required=True,
        default_value=MinerUParseMethod.AUTO.value,
        options=[m.value for m in MinerUParseMethod],
    ),
    "formulaEnable": Property.checkbox("Enable formula parsing", default_value=True),
    "tableEnable": Property.checkbox("Enable table parsing", default_value=True),
    "returnMD": Property.checkbox("Return markdown content in response", default_value=True),
    "returnMiddleJson": Property.checkbox("Return middle JSON in response", default_value=False),
    "returnModelOutput": Property.checkbox(
        "Return model output JSON in response", default_value=False
    ),
    "returnContentList": Property.checkbox(
        "Return content list JSON in response", default_value=False
    ),
    "returnImages": Property.checkbox("Return extracted images in response", default_value=False),
    "responseFormatZip": Property.checkbox(
        "Return results as a ZIP file instead of JSON", default_value=False
    ),
    "startPageId": Property.number(
        "Start page",
        description="The starting page for PDF parsing, beginning from 0",
        default_value=DEFAULT_START_PAGE_ID,
    ),
    "endPageId": Property.number(
        "End page",
        description="The ending page for PDF parsing, beginning from 0",
        default_value=DEFAULT_END_PAGE_ID,
    ),
}


async def extract_document(
    params: MinerUExtractionParams,
    *,
    http_client: httpx.AsyncClient | None = None,
) -> Any:
    """调用 MinerU 解析文档。

    ZIP 结果以 `{filename, data, extension}` 字典返回，否则原样返回 JSON 响应体。
    """
    client = MinerUFileParseClient(
        http_client=http_client,
        timeout=get_settings().mineru_timeout,
    )
    result = await client.file_parse(params)
    if isinstance(result, MinerUZipResult):
        return result.model_dump()
    return result


document_data_extraction = ActionDefinition(
    name=ACTION_NAME,
    display_name="Document content extraction with MinerU",
    description="Extract the content of the given document with MinerU",
    props=PROPS,
    params_model=MinerUExtractionParams,
    run=extract_document,
)
