"""MinerU 直传 API 路由。"""

from __future__ import annotations

from pathlib import PurePath
from typing import Annotated

import httpx
from fastapi import APIRouter, Depends, File, Form, UploadFile

from mineru_extract.application.actions.document_extraction import extract_document
from mineru_extract.application.schemas.action import ActionRunResponse
from mineru_extract.application.schemas.mineru import (
    DEFAULT_END_PAGE_ID,
    DEFAULT_START_PAGE_ID,
    MinerUBackend,
    MinerUExtractionParams,
    MinerUFilePayload,
    MinerUParseMethod,
)
from mineru_extract.interfaces.api.deps import get_mineru_http_client
from mineru_extract.shared.config import get_settings
from mineru_extract.shared.errors import validation_error


router = APIRouter()


def _extension_of(filename: str) -> str | None:
    suffix = PurePath(filename).suffix
    return suffix[1:] if suffix else None


@router.post(
    "/mineru/extract",
    response_model=ActionRunResponse,
    summary="上传文件并提取内容",
    description="multipart 上传文件，参数与动作属性一致；未传 api_server_url 时使用配置中的默认地址。",
)
async def extract_uploaded_file(
    file: Annotated[UploadFile, File(description="待解析文件")],
    api_server_url: Annotated[str | None, Form()] = None,
    lang_list: Annotated[str, Form()] = "",
    backend: Annotated[str, Form()] = MinerUBackend.VLM_HTTP_CLIENT.value,
    backend_server_url: Annotated[str | None, Form()] = None,
    parse_method: Annotated[str, Form()] = MinerUParseMethod.AUTO.value,
    formula_enable: Annotated[bool, Form()] = True,
    table_enable: Annotated[bool, Form()] = True,
    return_md: Annotated[bool, Form()] = True,
    return_middle_json: Annotated[bool, Form()] = False,
    return_model_output: Annotated[bool, Form()] = False,
    return_content_list: Annotated[bool, Form()] = False,
    return_images: Annotated[bool, Form()] = False,
    response_format_zip: Annotated[bool, Form()] = False,
    start_page_id: Annotated[int | None, Form()] = DEFAULT_START_PAGE_ID,
    end_page_id: Annotated[int | None, Form()] = DEFAULT_END_PAGE_ID,
    http_client: httpx.AsyncClient | None = Depends(get_mineru_http_client),
):
    server_url = api_server_url or get_settings().mineru_api_url
    if not server_url:
        raise validation_error(
            "api_server_url is required (no MINERU_EXTRACT_MINERU_API_URL configured)"
        )

    filename = file.filename or "upload"
    params = MinerUExtractionParams(
        api_server_url=server_url,
        file=MinerUFilePayload(
            filename=filename,
            extension=_extension_of(filename),
            data=await file.read(),
        ),
        lang_list=lang_list,
        backend=backend,
        backend_server_url=backend_server_url,
        parse_method=parse_method,
        formula_enable=formula_enable,
        table_enable=table_enable,
        return_md=return_md,
        return_middle_json=return_middle_json,
        return_model_output=return_model_output,
        return_content_list=return_content_list,
        return_images=return_images,
        response_format_zip=response_format_zip,
        start_page_id=start_page_id,
        end_page_id=end_page_id,
    )
    result = await extract_document(params, http_client=http_client)
    return ActionRunResponse(result=result)
