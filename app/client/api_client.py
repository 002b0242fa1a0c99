"""
Асинхронный клиент REST API планов тренировок (для дашборда и анкеты).

Все ошибки приводятся к ApiClientError с человекочитаемым message и
машиночитаемым kind - по kind клиентский код решает, что делать
(редирект на логин, откат, предложение повторить).
"""

import logging
from typing import Dict, Optional, Type, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from app.schemas.common import ErrorBody, ErrorResponse
from app.schemas.training_plan import GenerateTrainingPlanCommand, TrainingPlanResponse, WorkoutDayResponse

logger = logging.getLogger(__name__)

ResponseModel = TypeVar("ResponseModel", bound=BaseModel)

# Генерация ждёт AI; показ таймаута - забота PlanGenerationFlow, запрос не обрываем раньше
GENERATION_REQUEST_TIMEOUT = 120.0


class ApiClientError(Exception):
    kind = "unknown"
    default_message = "Произошла непредвиденная ошибка"

    def __init__(self, message: Optional[str] = None, status_code: Optional[int] = None, code: Optional[str] = None):
        self.message = message or self.default_message
        self.status_code = status_code
        self.code = code
        super().__init__(self.message)


class SessionExpired(ApiClientError):
    kind = "session_expired"
    default_message = "Сессия истекла. Войдите снова."


class ResourceNotFound(ApiClientError):
    kind = "not_found"
    default_message = "Не найдено или нет доступа"


class ConflictError(ApiClientError):
    kind = "conflict"
    default_message = "У вас уже есть активный план тренировок. Обновите страницу и попробуйте снова."


class ServiceUnavailable(ApiClientError):
    kind = "service_unavailable"
    default_message = "AI сервис временно недоступен. Попробуйте позже."


class ServerError(ApiClientError):
    kind = "server_error"
    default_message = "Ошибка сервера. Попробуйте ещё раз чуть позже."


class RequestRejected(ApiClientError):
    kind = "rejected"
    default_message = "Запрос отклонён сервером"


class NetworkError(ApiClientError):
    kind = "network"
    default_message = "Нет соединения с сервером. Проверьте подключение и попробуйте снова."


def _error_payload(response: httpx.Response) -> Optional[ErrorBody]:
    """Тело {"error": {...}} или None (прокси, HTML-страница, пустой ответ)."""
    try:
        return ErrorResponse.model_validate(response.json()).error
    except ValueError:
        return None


def error_for_response(response: httpx.Response) -> ApiClientError:
    payload = _error_payload(response)
    code = payload.code if payload else None
    status_code = response.status_code

    if status_code == 401:
        return SessionExpired(status_code=status_code, code=code)
    if status_code in (403, 404):
        return ResourceNotFound(status_code=status_code, code=code)
    if status_code == 409:
        return ConflictError(status_code=status_code, code=code)
    if status_code == 503:
        return ServiceUnavailable(status_code=status_code, code=code)
    if status_code >= 500:
        return ServerError(status_code=status_code, code=code)
    # 4xx: сообщение сервера уже человекочитаемое
    return RequestRejected(payload.message if payload else None, status_code=status_code, code=code)


class TrainingPlanApiClient:
    def __init__(
        self,
        http_client: httpx.AsyncClient,
        access_token: Optional[str] = None,
        api_prefix: str = "/api/v1",
    ):
        self.http = http_client
        self.access_token = access_token
        self.api_prefix = api_prefix

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.access_token:
            headers["Authorization"] = f"Bearer {self.access_token}"
        return headers

    async def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        try:
            response = await self.http.request(
                method, f"{self.api_prefix}{path}", headers=self._headers(), **kwargs
            )
        except httpx.TransportError as e:
            raise NetworkError() from e

        if response.is_success:
            return response
        raise error_for_response(response)

    @staticmethod
    def _parse(response: httpx.Response, model: Type[ResponseModel]) -> ResponseModel:
        """Разобрать {"data": ...} успешного ответа; битое тело - это ошибка сервера."""
        try:
            return model.model_validate(response.json()["data"])
        except (ValueError, KeyError, TypeError, ValidationError) as e:
            logger.error(f"Malformed {model.__name__} in {response.request.method} {response.url}: {e}")
            raise ServerError(status_code=response.status_code) from e

    async def get_active_plan(self) -> Optional[TrainingPlanResponse]:
        """Активный план или None (404 - это нормальное "плана нет")."""
        try:
            response = await self._request("GET", "/training-plans/active")
        except ResourceNotFound:
            return None
        return self._parse(response, TrainingPlanResponse)

    async def generate_plan(
        self,
        command: GenerateTrainingPlanCommand,
        replace_active_plan: bool = False,
    ) -> TrainingPlanResponse:
        body = command.model_copy(update={"replace_active_plan": replace_active_plan})
        response = await self._request(
            "POST",
            "/training-plans/generate",
            json=body.model_dump(mode="json"),
            timeout=GENERATION_REQUEST_TIMEOUT,
        )
        return self._parse(response, TrainingPlanResponse)

    async def update_workout_day(self, day_id: int, is_completed: bool) -> Optional[WorkoutDayResponse]:
        """Подтверждённый сервером день; None, если сервер ответил без тела."""
        response = await self._request(
            "PATCH", f"/workout-days/{day_id}", json={"is_completed": is_completed}
        )
        if not response.content:
            return None
        return self._parse(response, WorkoutDayResponse)
