import json
import logging
from typing import Any, Dict, List, Optional

import httpx
from fastapi import status
from pydantic import ValidationError

from app.core.config import settings
from app.core.errors import AppError
from app.models.training_plan import PLAN_LENGTH_DAYS
from app.schemas.profile import ProfileInput
from app.schemas.personal_record import PersonalRecordInput
from app.schemas.training_plan import GeneratedPlan, WorkoutDayDescriptor
from app.utils.dates import format_time

logger = logging.getLogger(__name__)

REST_DAY_DESCRIPTION = "Отдых"

SYSTEM_PROMPT = (
    "Ты - опытный тренер по бегу и составляешь персональные планы тренировок. "
    "Отвечай ТОЛЬКО валидным JSON в точности в запрошенном формате. "
    "Не задавай вопросов, не давай пояснений, не используй markdown."
)


class AIServiceError(AppError):
    code = "AI_SERVICE_ERROR"
    message = "Не удалось сгенерировать план тренировок"


class AIServiceUnavailable(AIServiceError):
    """Лимит запросов или провайдер недоступен - имеет смысл повторить позже."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    code = "AI_SERVICE_UNAVAILABLE"
    message = "AI сервис временно недоступен. Попробуйте позже."


class AIServiceMisconfigured(AIServiceError):
    code = "AI_SERVICE_NOT_CONFIGURED"
    message = "AI сервис не настроен"


class AIMalformedResponse(AIServiceError):
    code = "AI_MALFORMED_RESPONSE"

    def __init__(self, reason: str, raw_content: Optional[str] = None):
        super().__init__()
        self.reason = reason
        self.raw_content = raw_content


class AIService:
    UNAVAILABLE_STATUSES = {429, 502, 503, 504}
    AUTH_STATUSES = {401, 403}

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        model: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key if api_key is not None else settings.OPENROUTER_API_KEY
        self.base_url = base_url or settings.OPENROUTER_BASE_URL
        self.model = model or settings.OPENROUTER_MODEL
        self.timeout = timeout or settings.AI_REQUEST_TIMEOUT
        self.transport = transport

        logger.info(f"OpenRouter AI Service initialized. API Key: {'PRESENT' if self.api_key else 'NOT FOUND'}")

    async def _make_openrouter_request(self, messages: List[Dict[str, str]]) -> str:
        """Один запрос к chat/completions без повторов: повтор - решение вызывающего."""
        if not self.api_key:
            raise AIServiceMisconfigured("AI сервис не настроен. Добавьте OPENROUTER_API_KEY в .env файл")

        try:
            async with httpx.AsyncClient(transport=self.transport, timeout=self.timeout) as client:
                response = await client.post(
                    self.base_url,
                    headers={
                        "Content-Type": "application/json",
                        "Authorization": f"Bearer {self.api_key}",
                    },
                    json={
                        "model": self.model,
                        "messages": messages,
                        "temperature": settings.AI_TEMPERATURE,
                        "max_tokens": settings.AI_MAX_TOKENS,
                        "stream": False,
                    },
                )
        except httpx.TimeoutException as e:
            logger.warning(f"OpenRouter timeout: {e!r}")
            raise AIServiceUnavailable()
        except httpx.TransportError as e:
            logger.warning(f"OpenRouter connection error: {e!r}")
            raise AIServiceUnavailable()

        logger.info(f"OpenRouter API response status: {response.status_code}")

        if response.status_code != 200:
            logger.error(f"OpenRouter API error {response.status_code}: {response.text[:500]}")
            if response.status_code in self.UNAVAILABLE_STATUSES:
                raise AIServiceUnavailable()
            if response.status_code in self.AUTH_STATUSES:
                raise AIServiceMisconfigured("AI сервис отклонил ключ доступа")
            raise AIServiceError()

        try:
            result = response.json()
            content = result["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError):
            raise AIMalformedResponse("invalid completion envelope", response.text)

        if not isinstance(content, str):
            raise AIMalformedResponse("completion content is not a string", response.text)
        return content

    def _build_prompt(self, profile: ProfileInput, personal_records: List[PersonalRecordInput]) -> str:
        rest_days = 7 - profile.training_days_per_week
        records = ", ".join(
            f"{record.distance.value}: {format_time(record.time_seconds)}" for record in personal_records
        )

        return f"""
        Составь прогрессивный план беговых тренировок на 10 недель ({PLAN_LENGTH_DAYS} дней) в формате JSON.

        ДАННЫЕ БЕГУНА:
        - Цель: {profile.goal_distance.value}
        - Текущий объём: {profile.weekly_km} км в неделю
        - Тренировочных дней в неделю: {profile.training_days_per_week}
        - Дней отдыха в неделю: {rest_days}
        - Возраст: {profile.age}, вес: {profile.weight} кг, рост: {profile.height} см, пол: {profile.gender.value}
        - Личные рекорды: {records}

        ТРЕБОВАНИЯ:
        1. Ровно {PLAN_LENGTH_DAYS} дней, day_number от 1 до {PLAN_LENGTH_DAYS}
        2. {rest_days} дней отдыха в неделю, равномерно распределённых
        3. Начни с текущего объёма или чуть ниже и увеличивай постепенно
        4. Чередуй лёгкие, интервальные, темповые, длительные и восстановительные пробежки
        5. Пик объёма на 8-9 неделе, на 10 неделе - подводка
        6. Для дней отдыха: workout_description = "{REST_DAY_DESCRIPTION}" и is_rest_day = true
        7. Для тренировок: подробное описание на русском (дистанция или время, темп, структура) и is_rest_day = false
        8. Учитывай целевую дистанцию и личные рекорды при выборе темпа

        ФОРМАТ (только JSON, без текста до и после):
        {{
            "workout_days": [
                {{"day_number": 1, "workout_description": "Восстановительный бег 8 км в лёгком темпе", "is_rest_day": false}},
                {{"day_number": 2, "workout_description": "{REST_DAY_DESCRIPTION}", "is_rest_day": true}}
            ]
        }}
        """

    def _parse_workout_days(self, content: str) -> List[WorkoutDayDescriptor]:
        start_idx = content.find("{")
        end_idx = content.rfind("}") + 1
        if start_idx == -1 or end_idx == 0:
            raise AIMalformedResponse("no JSON object in response", content)

        try:
            payload: Any = json.loads(content[start_idx:end_idx])
            plan = GeneratedPlan.model_validate(payload)
        except (ValueError, ValidationError) as e:
            raise AIMalformedResponse(str(e), content)

        return sorted(plan.workout_days, key=lambda day: day.day_number)

    async def generate_training_plan(
        self,
        profile: ProfileInput,
        personal_records: List[PersonalRecordInput],
    ) -> List[WorkoutDayDescriptor]:
        """Сгенерировать 70 дней плана. Ничего не чинит: неполный ответ - ошибка."""
        messages = [
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "user", "content": self._build_prompt(profile, personal_records)},
        ]

        try:
            content = await self._make_openrouter_request(messages)
            workout_days = self._parse_workout_days(content)
        except AIMalformedResponse as e:
            logger.error(
                f"Malformed AI training plan: {e.reason}; "
                f"profile={profile.model_dump(mode='json')}; raw content={e.raw_content!r}"
            )
            raise

        logger.info(f"AI generated {len(workout_days)} workout days")
        return workout_days


# Создаем экземпляр сервиса для импорта
ai_service = AIService()
