"""动作（Action）宿主契约：声明式属性 schema + 单一调用入口。

宿主只需要知道三件事：动作名、属性声明、`invoke(props_value)`。
属性值按声明补齐默认值、做必填检查后交给动作自己的参数模型。
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from mineru_extract.shared.errors import validation_error


class PropertyType(str, Enum):
    """属性类型。"""

    SHORT_TEXT = "short_text"
    FILE = "file"
    STATIC_DROPDOWN = "static_dropdown"
    CHECKBOX = "checkbox"
    NUMBER = "number"


class DropdownOption(BaseModel):
    label: str
    value: str


class ActionProperty(BaseModel):
    """单个输入属性的声明。"""

    type: PropertyType = Field(..., description="属性类型")
    display_name: str = Field(..., description="展示名称")
    description: str | None = Field(None, description="说明")
    required: bool = Field(default=False, description="是否必填")
    default_value: Any = Field(None, description="默认值")
    options: list[DropdownOption] | None = Field(None, description="下拉选项（仅 static_dropdown）")


class Property:
    """属性声明的构造函数集合。"""

    @staticmethod
    def short_text(
        display_name: str,
        *,
        description: str | None = None,
        required: bool = False,
        default_value: str | None = None,
    ) -> ActionProperty:
        return ActionProperty(
            type=PropertyType.SHORT_TEXT,
            display_name=display_name,
            description=description,
            required=required,
            default_value=default_value,
        )

    @staticmethod
    def file(
        display_name: str,
        *,
        description: str | None = None,
        required: bool = False,
    ) -> ActionProperty:
        return ActionProperty(
            type=PropertyType.FILE,
            display_name=display_name,
            description=description,
            required=required,
        )

    @staticmethod
    def static_dropdown(
        display_name: str,
        *,
        options: list[str],
        description: str | None = None,
        required: bool = False,
        default_value: str | None = None,
    ) -> ActionProperty:
        return ActionProperty(
            type=PropertyType.STATIC_DROPDOWN,
            display_name=display_name,
            description=description,
            required=required,
            default_value=default_value,
            options=[DropdownOption(label=o, value=o) for o in options],
        )

    @staticmethod
    def checkbox(
        display_name: str,
        *,
        description: str | None = None,
        required: bool = False,
        default_value: bool | None = None,
    ) -> ActionProperty:
        return ActionProperty(
            type=PropertyType.CHECKBOX,
            display_name=display_name,
            description=description,
            required=required,
            default_value=default_value,
        )

    @staticmethod
    def number(
        display_name: str,
        *,
        description: str | None = None,
        required: bool = False,
        default_value: int | float | None = None,
    ) -> ActionProperty:
        return ActionProperty(
            type=PropertyType.NUMBER,
            display_name=display_name,
            description=description,
            required=required,
            default_value=default_value,
        )


@dataclass(frozen=True)
class ActionDefinition:
    name: str
    display_name: str
    description: str
    props: dict[str, ActionProperty]
    params_model: type[BaseModel]
    run: Callable[..., Awaitable[Any]]

    def resolve_props(self, props_value: dict[str, Any]) -> BaseModel:
        """补齐默认值、检查必填项并转换为参数模型。

        Raises:
            AppError: 缺少必填属性或属性值无法转换（validation_error, 422）
        """
        values: dict[str, Any] = {
            key: prop.default_value
            for key, prop in self.props.items()
            if prop.default_value is not None
        }
        values.update({k: v for k, v in props_value.items() if v is not None})

        missing = [
            key
            for key, prop in self.props.items()
            if prop.required and values.get(key) in (None, "")
        ]
        if missing:
            raise validation_error(
                f"missing required props: {', '.join(missing)}",
                details={"missing": missing},
            )

        try:
            return self.params_model.model_validate(values)
        except ValidationError as exc:
            raise validation_error(
                "invalid action props",
                details={
                    "errors": exc.errors(
                        include_url=False,
                        include_context=False,
                        include_input=False,
                    )
                },
            ) from exc

    async def invoke(self, props_value: dict[str, Any], **kwargs: Any) -> Any:
        params = self.resolve_props(props_value)
        return await self.run(params, **kwargs)

    def describe(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "display_name": self.display_name,
            "description": self.description,
            "props": {key: prop.model_dump(mode="json") for key, prop in self.props.items()},
        }
