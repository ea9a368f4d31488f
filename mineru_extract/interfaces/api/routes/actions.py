"""动作 API 路由。"""

from __future__ import annotations

import httpx
from fastapi import APIRouter, Depends

from mineru_extract.application.actions.registry import ACTIONS, get_action
from mineru_extract.application.schemas.action import (
    ActionDescription,
    ActionListResponse,
    ActionRunRequest,
    ActionRunResponse,
)
from mineru_extract.interfaces.api.deps import get_mineru_http_client
from mineru_extract.shared.logging import get_logger, log_extra


router = APIRouter()
log = get_logger(__name__)


@router.get(
    "/actions",
    response_model=ActionListResponse,
    summary="列出动作",
)
def list_actions():
    items = [action.describe() for action in ACTIONS.values()]
    return ActionListResponse(items=items, total=len(items))


@router.get(
    "/actions/{action_name}",
    response_model=ActionDescription,
    summary="获取动作声明",
)
def get_action_description(action_name: str):
    return get_action(action_name).describe()


@router.post(
    "/actions/{action_name}/run",
    response_model=ActionRunResponse,
    summary="调用动作",
    description="按属性声明补齐默认值后执行动作，文件属性以 base64 传入。",
)
async def run_action(
    action_name: str,
    payload: ActionRunRequest,
    http_client: httpx.AsyncClient | None = Depends(get_mineru_http_client),
):
    action = get_action(action_name)
    log.info(
        "action.run.start",
        extra=log_extra(action=action.name, props=sorted(payload.props)),
    )
    result = await action.invoke(payload.props, http_client=http_client)
    return ActionRunResponse(result=result)
