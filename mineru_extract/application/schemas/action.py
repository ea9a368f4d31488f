"""动作 API Pydantic 模型定义。"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from mineru_extract.application.actions.framework import ActionProperty


class ActionDescription(BaseModel):
    """动作声明。"""

    name: str = Field(..., description="动作名")
    display_name: str = Field(..., description="展示名称")
    description: str = Field(..., description="说明")
    props: dict[str, ActionProperty] = Field(default_factory=dict, description="属性声明")


class ActionListResponse(BaseModel):
    items: list[ActionDescription]
    total: int


class ActionRunRequest(BaseModel):
    """动作调用请求；属性名使用 camelCase，文件以 base64 传入。"""

    props: dict[str, Any] = Field(default_factory=dict, description="属性值")


class ActionRunResponse(BaseModel):
    # 原始字节结果以 base64 字符串输出
    model_config = ConfigDict(ser_json_bytes="base64")

    result: Any = Field(None, description="动作输出")
