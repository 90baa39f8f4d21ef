"""依赖注入模块 -- 通过 FastAPI Depends 注入运行时组件

组件实例通过 app.state 管理，在 lifespan 中初始化/清理。
"""

import hmac

import structlog
from fastapi import Header, HTTPException, Request, status
from resolvebot.core.store import StoreGroup

from .services.dispatcher import InteractionDispatcher

log = structlog.get_logger()

INTERACTIONS_SECRET_HEADER = "X-Resolvebot-Secret"


def get_store_group(request: Request) -> StoreGroup:
    """从 app.state 获取 StoreGroup 实例"""
    return request.app.state.store_group


def get_dispatcher(request: Request) -> InteractionDispatcher:
    """从 app.state 获取 InteractionDispatcher 实例"""
    return request.app.state.dispatcher


def verify_interactions_secret(
    request: Request,
    x_resolvebot_secret: str | None = Header(default=None),
) -> None:
    """校验平台适配层的共享密钥

    未配置密钥、缺少请求头或不匹配时返回 401。
    """
    expected = request.app.state.config.interactions_secret.get_secret_value()
    if not expected or not x_resolvebot_secret:
        log.warning("interactions_unauthorized", reason="missing_secret")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing secret")
    if not hmac.compare_digest(x_resolvebot_secret.encode(), expected.encode()):
        log.warning("interactions_unauthorized", reason="secret_mismatch")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid secret")
