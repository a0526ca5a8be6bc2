"""
中间件模块 - 全局错误处理和请求/响应处理
遵循清晰性原则：统一的错误响应格式
"""
import time
from typing import Callable, Optional
from uuid import uuid4

from fastapi import Request, Response, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from backend.core.errors import BaseApplicationError
from backend.core.logging import get_logger

logger = get_logger(__name__)


def _error_body(
    error_code: str,
    message: str,
    details: Optional[dict] = None,
    request_id: Optional[str] = None,
) -> dict:
    content = {
        "error": {
            "code": error_code,
            "message": message,
            "details": details or {},
        }
    }
    if request_id:
        content["error"]["request_id"] = request_id
    return content


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """全局错误处理中间件"""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """处理请求并捕获所有异常"""
        # 生成请求ID用于追踪
        request_id = str(uuid4())
        request.state.request_id = request_id

        start_time = time.time()

        try:
            response = await call_next(request)
        except BaseApplicationError as e:
            return JSONResponse(
                status_code=e.status_code,
                content=_error_body(e.error_code.value, e.message, e.details, request_id),
                headers={"X-Request-ID": request_id},
            )
        except Exception as e:
            logger.error(
                "request_failed",
                request_id=request_id,
                path=request.url.path,
                error=str(e),
                exc_info=True,
            )
            return JSONResponse(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                content=_error_body(
                    "INTERNAL_ERROR",
                    "An unexpected error occurred",
                    {"type": type(e).__name__},
                    request_id,
                ),
                headers={"X-Request-ID": request_id},
            )

        response.headers["X-Request-ID"] = request_id
        response.headers["X-Process-Time"] = str(time.time() - start_time)
        return response


async def error_handler(request: Request, exc: BaseApplicationError):
    """应用异常处理 - registered for BaseApplicationError"""
    request_id = getattr(request.state, "request_id", None)
    logger.warning(
        "application_error",
        path=request.url.path,
        error_code=exc.error_code.value,
        message=exc.message,
    )
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(exc.error_code.value, exc.message, exc.details, request_id),
    )
