"""
Доменные ошибки API и единый формат ответа об ошибке.

Формат тела:
    {"error": {"message": "...", "code": "...", "details": [{"field": "...", "message": "..."}]}}

code и details присутствуют только если заданы. Диагностика (шаги, трейсбеки)
пишется в лог и никогда не отдаётся клиенту.
"""

import logging
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class AppError(Exception):
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    code: Optional[str] = None
    message: str = "Внутренняя ошибка сервера"

    def __init__(
        self,
        message: Optional[str] = None,
        code: Optional[str] = None,
        details: Optional[List[Dict[str, str]]] = None,
    ):
        if message is not None:
            self.message = message
        if code is not None:
            self.code = code
        self.details = details
        super().__init__(self.message)


class ValidationFailed(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    message = "Ошибка валидации данных"


class NotAuthenticated(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "UNAUTHORIZED"
    message = "Невалидный токен доступа"


class NotFound(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    message = "Ресурс не найден"


class ActivePlanConflict(AppError):
    status_code = status.HTTP_409_CONFLICT
    code = "ACTIVE_PLAN_EXISTS"
    message = "У пользователя уже есть активный план тренировок"


class RestDayCompletionNotAllowed(AppError, ValueError):
    """Попытка отметить день отдыха выполненным. Бросается и моделью, и API."""

    status_code = status.HTTP_400_BAD_REQUEST
    code = "REST_DAY_COMPLETION_NOT_ALLOWED"
    message = "День отдыха нельзя отметить как выполненный"


class PlanIntegrityError(AppError):
    message = "Данные плана тренировок повреждены"


def error_body(
    message: str,
    code: Optional[str] = None,
    details: Optional[List[Dict[str, str]]] = None,
) -> Dict[str, Any]:
    error: Dict[str, Any] = {"message": message}
    if code:
        error["code"] = code
    if details:
        error["details"] = details
    return {"error": error}


def error_response(
    message: str,
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
    code: Optional[str] = None,
    details: Optional[List[Dict[str, str]]] = None,
) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=error_body(message, code, details))


def _validation_details(exc: RequestValidationError) -> List[Dict[str, str]]:
    details = []
    for err in exc.errors():
        # loc начинается с "body"/"query"/"path" - клиенту это не нужно
        loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path")]
        details.append({"field": ".".join(loc) or "unknown", "message": err.get("msg", "")})
    return details


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path}: {exc.__class__.__name__}: {exc.message}")
    return error_response(exc.message, exc.status_code, exc.code, exc.details)


HTTP_STATUS_CODES = {
    status.HTTP_400_BAD_REQUEST: "BAD_REQUEST",
    status.HTTP_401_UNAUTHORIZED: "UNAUTHORIZED",
    status.HTTP_403_FORBIDDEN: "FORBIDDEN",
    status.HTTP_404_NOT_FOUND: "NOT_FOUND",
    status.HTTP_405_METHOD_NOT_ALLOWED: "METHOD_NOT_ALLOWED",
}


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    response = error_response(str(exc.detail), exc.status_code, HTTP_STATUS_CODES.get(exc.status_code))
    if getattr(exc, "headers", None):
        response.headers.update(exc.headers)
    return response


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    error = ValidationFailed(details=_validation_details(exc))
    return error_response(error.message, error.status_code, error.code, error.details)


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Всё, что не стало AppError: трейсбек в лог, клиенту - общий 500."""
    logger.error(f"Unhandled exception on {request.method} {request.url.path}: {exc}", exc_info=True)
    return error_response(AppError.message, status.HTTP_500_INTERNAL_SERVER_ERROR, "INTERNAL_ERROR")


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
