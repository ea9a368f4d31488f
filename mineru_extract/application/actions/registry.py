"""动作注册表：聚合各动作定义，供 API / CLI 按名称查找。"""

from __future__ import annotations

from mineru_extract.application.actions.document_extraction import document_data_extraction
from mineru_extract.application.actions.framework import ActionDefinition
from mineru_extract.shared.errors import AppError

ERROR_ACTION_NOT_FOUND = "action_not_found"

ACTIONS: dict[str, ActionDefinition] = {
    document_data_extraction.name: document_data_extraction,
}


def get_action(name: str) -> ActionDefinition:
    action = ACTIONS.get(name)
    if action is None:
        raise AppError(
            code=ERROR_ACTION_NOT_FOUND,
            message=f"action not found: {name}",
            status_code=404,
        )
    return action
