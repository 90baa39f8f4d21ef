"""LoggingMiddleware

每个 HTTP 请求绑定 request_id 到 structlog contextvars：
平台适配层传入 X-Request-ID 时沿用，否则生成 ULID。
探活路径不记录访问日志。
"""

import time

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp
from ulid import ULID

REQUEST_ID_HEADER = "X-Request-ID"
QUIET_PATHS = frozenset({"/", "/health", "/ready"})

log = structlog.get_logger()


class LoggingMiddleware(BaseHTTPMiddleware):
    """请求级日志中间件"""

    def __init__(self, app: ASGIApp, quiet_paths: frozenset[str] = QUIET_PATHS) -> None:
        super().__init__(app)
        self._quiet_paths = quiet_paths

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(ULID())
        path = request.url.path

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            method=request.method,
            path=path,
        )

        started = time.perf_counter()
        response = await call_next(request)

        if path not in self._quiet_paths:
            await log.ainfo(
                "request_completed",
                status_code=response.status_code,
                duration_ms=round((time.perf_counter() - started) * 1000, 1),
            )

        response.headers[REQUEST_ID_HEADER] = request_id
        return response
