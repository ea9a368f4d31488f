"""MinerU file_parse Pydantic 模型定义。"""

from __future__ import annotations

import base64
import binascii
from dataclasses import dataclass
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class MinerUBackend(str, Enum):
    """MinerU 解析后端。"""

    PIPELINE = "pipeline"
    VLM_TRANSFORMERS = "vlm-transformers"
    VLM_MLX_ENGINE = "vlm-mlx-engine"
    VLM_VLLM_ASYNC_ENGINE = "vlm-vllm-async-engine"
    VLM_LMDEPLOY_ENGINE = "vlm-lmdeploy-engine"
    VLM_HTTP_CLIENT = "vlm-http-client"


class MinerUParseMethod(str, Enum):
    """MinerU 解析方法（仅 pipeline 后端生效）。"""

    AUTO = "auto"
    TXT = "txt"
    OCR = "ocr"


# lang_list 仅作说明用途，不做校验
MINERU_LANGUAGES: tuple[str, ...] = (
    "ch",
    "ch_server",
    "ch_lite",
    "en",
    "korean",
    "japan",
    "chinese_cht",
    "ta",
    "te",
    "ka",
    "th",
    "el",
    "latin",
    "arabic",
    "east_slavic",
    "cyrillic",
    "devanagari",
)

DEFAULT_START_PAGE_ID = 0
DEFAULT_END_PAGE_ID = 99999


class MinerUFilePayload(BaseModel):
    """待解析文件。"""

    model_config = ConfigDict(frozen=True)

    filename: str = Field(..., min_length=1, description="原始文件名")
    extension: str | None = Field(None, description="文件扩展名（不含点）")
    data: bytes = Field(..., description="文件原始字节；传入 str 时按 base64 解码")

    @field_validator("data", mode="before")
    @classmethod
    def decode_base64(cls, value: Any) -> Any:
        if isinstance(value, str):
            try:
                return base64.b64decode(value, validate=True)
            except (binascii.Error, ValueError) as exc:
                raise ValueError("file data must be base64 encoded") from exc
        return value


class MinerUExtractionParams(BaseModel):
    """一次 file_parse 调用的全部输入参数。

    字段同时接受 camelCase 别名（动作属性名）与 snake_case 名称。
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    api_server_url: str = Field(..., alias="apiServerUrl", min_length=1, description="MinerU API 地址")
    file: MinerUFilePayload = Field(..., alias="file", description="待解析文件")
    lang_list: str = Field(default="", alias="langList", description="文档语言")
    backend: str = Field(
        default=MinerUBackend.VLM_HTTP_CLIENT.value,
        alias="backend",
        description="解析后端",
    )
    backend_server_url: str | None = Field(
        None,
        alias="backendServerUrl",
        description="OpenAI 兼容服务地址（仅 vlm-http-client）",
    )
    parse_method: str = Field(
        default=MinerUParseMethod.AUTO.value,
        alias="parseMethod",
        description="PDF 解析方法",
    )
    formula_enable: bool = Field(default=True, alias="formulaEnable")
    table_enable: bool = Field(default=True, alias="tableEnable")
    return_md: bool = Field(default=True, alias="returnMD")
    return_middle_json: bool = Field(default=False, alias="returnMiddleJson")
    return_model_output: bool = Field(default=False, alias="returnModelOutput")
    return_content_list: bool = Field(default=False, alias="returnContentList")
    return_images: bool = Field(default=False, alias="returnImages")
    response_format_zip: bool = Field(default=False, alias="responseFormatZip")
    # None 表示不下发该字段；0 是合法的显式起始页
    start_page_id: int | None = Field(default=DEFAULT_START_PAGE_ID, alias="startPageId")
    end_page_id: int | None = Field(default=DEFAULT_END_PAGE_ID, alias="endPageId")

    @field_validator("backend", "parse_method", mode="before")
    @classmethod
    def unwrap_enum(cls, value: Any) -> Any:
        if isinstance(value, Enum):
            return value.value
        return value

    @field_validator("lang_list", mode="before")
    @classmethod
    def none_as_empty(cls, value: Any) -> Any:
        return "" if value is None else value


class MinerUZipResult(BaseModel):
    """ZIP 形式的解析结果（base64 编码）。"""

    filename: str = Field(..., description="结果文件名")
    data: str = Field(..., description="base64 编码的 ZIP 内容")
    extension: str = Field(default="zip", description="结果扩展名")


@dataclass(frozen=True)
class BinaryBody:
    """响应体为二进制内容。"""

    content: bytes
    content_type: str | None = None


@dataclass(frozen=True)
class JsonBody:
    """响应体为 JSON（或纯文本）值。"""

    value: Any
    content_type: str | None = None


MinerUResponseBody = BinaryBody | JsonBody
