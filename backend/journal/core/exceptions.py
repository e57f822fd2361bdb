"""
统一错误分类

中文注释:
- 服务层只抛出 AppError 子类，由 register_exception_handlers 统一转换为
  {"error": <类别>, "message": <说明>, "details"?: [{field, message}]}。
- 未识别的异常交给 ExceptionHandlerMiddleware 兜底为 500。
"""

from __future__ import annotations

from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from postgrest.exceptions import APIError


class AppError(Exception):
    status_code: int = 500
    error: str = "Internal Server Error"

    def __init__(
        self,
        message: str,
        *,
        error: Optional[str] = None,
        status_code: Optional[int] = None,
        details: Optional[list[dict[str, str]]] = None,
    ):
        super().__init__(message)
        self.message = message
        if error is not None:
            self.error = error
        if status_code is not None:
            self.status_code = status_code
        self.details = details

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {"error": self.error, "message": self.message}
        if self.details:
            body["details"] = self.details
        return body


class ValidationError(AppError):
    status_code = 400
    error = "Validation Error"


class AuthenticationError(AppError):
    status_code = 401
    error = "Authentication Required"


class AuthorizationError(AppError):
    status_code = 403
    error = "Access Forbidden"


class NotFoundError(AppError):
    status_code = 404
    error = "Not Found"


class ConflictError(AppError):
    status_code = 409
    error = "Conflict"


class InternalError(AppError):
    status_code = 500
    error = "Internal Server Error"


def is_unique_violation(exc: Exception) -> bool:
    code = str(getattr(exc, "code", "") or "")
    return code == "23505" or "duplicate key" in str(exc).lower()


def translate_persistence_error(exc: APIError, *, context: str) -> AppError:
    """
    把 PostgREST 错误映射为业务错误：唯一约束冲突 -> ConflictError，其余 -> InternalError。
    """
    if is_unique_violation(exc):
        return ConflictError(f"{context}: record already exists")
    return InternalError(f"{context}: {getattr(exc, 'message', None) or exc}")


def _validation_details(exc: RequestValidationError) -> list[dict[str, str]]:
    details: list[dict[str, str]] = []
    for err in exc.errors():
        # loc 形如 ("body", "title")；去掉来源前缀，只保留字段路径
        loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path", "form")]
        details.append({"field": ".".join(loc), "message": str(err.get("msg") or "invalid value")})
    return details


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(AppError)
    async def _app_error_handler(request: Request, exc: AppError) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def _request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        err = ValidationError("Invalid request data", details=_validation_details(exc))
        return JSONResponse(status_code=err.status_code, content=err.to_dict())
