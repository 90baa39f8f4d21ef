"""入站操作路由

POST /api/interactions: 接收平台适配层标准化后的 Interaction，
交给 InteractionDispatcher 处理。
- X-Resolvebot-Secret 与配置的共享密钥不符：401
- 有回复：200 + InteractionReply JSON
- 被忽略（未知命令、格式不符的控件）：204
"""

from fastapi import APIRouter, Depends
from resolvebot.core.models import Interaction
from starlette.responses import JSONResponse, Response

from ..deps import get_dispatcher, verify_interactions_secret
from ..services.dispatcher import InteractionDispatcher

router = APIRouter()


@router.post("/api/interactions", dependencies=[Depends(verify_interactions_secret)])
async def receive_interaction(
    body: Interaction,
    dispatcher: InteractionDispatcher = Depends(get_dispatcher),
):
    """分发一次入站操作"""
    reply = await dispatcher.dispatch(body)
    if reply is None:
        return Response(status_code=204)
    return JSONResponse(status_code=200, content=reply.model_dump(mode="json"))
