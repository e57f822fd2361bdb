import time
import logging
from fastapi import Request, HTTPException
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from journal.core.config import app_config
from journal.core.exceptions import AppError

# === 结构化日志配置 ===
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("journal")


class ExceptionHandlerMiddleware(BaseHTTPMiddleware):
    """
    统一异常捕获中间件

    中文注释:
    - 记录每个请求的方法/路径/状态码/耗时。
    - 路由内未被 exception_handler 接住的异常在这里兜底为 500；
      仅 development 环境回显异常信息，其余环境屏蔽细节。
    """

    async def dispatch(self, request: Request, call_next):
        start_time = time.time()
        try:
            response = await call_next(request)
            process_time = time.time() - start_time
            logger.info(
                f"Method: {request.method} Path: {request.url.path} "
                f"Status: {response.status_code} Time: {process_time:.4f}s"
            )
            return response
        except AppError as exc:
            return JSONResponse(status_code=exc.status_code, content=exc.to_dict())
        except HTTPException as exc:
            return JSONResponse(
                status_code=exc.status_code,
                content={"error": "HTTP Error", "message": str(exc.detail)},
            )
        except Exception as e:
            logger.error(f"Unhandled Exception: {str(e)}", exc_info=True)
            message = str(e) if app_config.is_development else "An unexpected error occurred"
            return JSONResponse(
                status_code=500,
                content={"error": "Internal Server Error", "message": message},
            )
