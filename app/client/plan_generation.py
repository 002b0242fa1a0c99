"""
Клиентский сценарий генерации плана (анкета -> AI -> дашборд).

Состояния:
    idle -> checking_active_plan -> (awaiting_confirmation ->) generating -> idle
                                                                        `-> error | timeout

- при существующем активном плане запрос на генерацию не уходит, пока
  пользователь не подтвердит замену (confirm) или не отменит её (cancel);
- таймер таймаута запускается вместе с запросом и всегда отменяется,
  когда ответ пришёл;
- ответ, пришедший после таймаута, не меняет состояние: план сохраняется
  в late_plan и используется при retry вместо повторной генерации.
"""

import asyncio
import inspect
import logging
from enum import Enum
from functools import partial
from typing import Any, Callable, Optional, Set

from app.client.api_client import ApiClientError, SessionExpired, TrainingPlanApiClient
from app.core.config import settings
from app.schemas.training_plan import GenerateTrainingPlanCommand, TrainingPlanResponse

logger = logging.getLogger(__name__)

TIMEOUT_MESSAGE = "Генерация плана заняла слишком много времени. Попробуйте ещё раз."


class GenerationState(str, Enum):
    idle = "idle"
    checking_active_plan = "checking_active_plan"
    awaiting_confirmation = "awaiting_confirmation"
    generating = "generating"
    error = "error"
    timeout = "timeout"


async def _maybe_await(result: Any) -> None:
    if inspect.isawaitable(result):
        await result


class PlanGenerationFlow:
    def __init__(
        self,
        api: TrainingPlanApiClient,
        timeout: float = None,
        on_success: Optional[Callable[[TrainingPlanResponse], Any]] = None,
        on_session_expired: Optional[Callable[[], Any]] = None,
    ):
        self.api = api
        self.timeout = timeout if timeout is not None else settings.PLAN_GENERATION_TIMEOUT
        self.on_success = on_success
        self.on_session_expired = on_session_expired

        self.state = GenerationState.idle
        self.error_message: Optional[str] = None
        self.plan: Optional[TrainingPlanResponse] = None
        self.late_plan: Optional[TrainingPlanResponse] = None

        self._command: Optional[GenerateTrainingPlanCommand] = None
        self._replace_active_plan = False
        self._attempt = 0
        self._timed_out_attempts: Set[int] = set()
        self._timer: Optional[asyncio.Task] = None

    async def submit(self, command: GenerateTrainingPlanCommand) -> GenerationState:
        """Отправка анкеты: сначала проверка активного плана, потом генерация."""
        if self.state != GenerationState.idle:
            logger.info(f"Plan generation submit ignored in state {self.state.value}")
            return self.state

        self._command = command
        self.late_plan = None
        self.error_message = None
        self.state = GenerationState.checking_active_plan

        try:
            active_plan = await self.api.get_active_plan()
        except SessionExpired:
            await self._session_expired()
            return self.state
        except ApiClientError as e:
            # Без ответа о текущем плане генерировать нельзя - можно затереть план
            logger.warning(f"Active plan check failed: {e.kind} ({e.status_code})")
            return self._fail(e.message)

        if active_plan is not None:
            self.state = GenerationState.awaiting_confirmation
            return self.state

        return await self._generate(replace_active_plan=False)

    async def confirm(self) -> GenerationState:
        """Пользователь согласился заменить активный план."""
        if self.state != GenerationState.awaiting_confirmation:
            return self.state
        return await self._generate(replace_active_plan=True)

    def cancel(self) -> GenerationState:
        """Отказ от замены: запрос не отправляется, остаёмся на анкете."""
        if self.state == GenerationState.awaiting_confirmation:
            self.state = GenerationState.idle
        return self.state

    async def retry(self) -> GenerationState:
        if self.state not in (GenerationState.error, GenerationState.timeout):
            return self.state

        if self.late_plan is not None:
            plan, self.late_plan = self.late_plan, None
            logger.info(f"Adopting plan {plan.id} that arrived after timeout")
            return await self._succeed(plan)

        return await self._generate(replace_active_plan=self._replace_active_plan)

    def close(self) -> GenerationState:
        """Закрыть сообщение об ошибке/таймауте и вернуться к анкете."""
        if self.state in (GenerationState.error, GenerationState.timeout):
            self.state = GenerationState.idle
            self.error_message = None
        return self.state

    async def _generate(self, replace_active_plan: bool) -> GenerationState:
        self._attempt += 1
        attempt = self._attempt
        self._replace_active_plan = replace_active_plan
        self.error_message = None
        self.state = GenerationState.generating

        request = asyncio.ensure_future(
            self.api.generate_plan(self._command, replace_active_plan=replace_active_plan)
        )
        request.add_done_callback(partial(self._on_request_done, attempt))
        self._timer = asyncio.ensure_future(asyncio.sleep(self.timeout))

        try:
            await asyncio.wait({request, self._timer}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            self._timer.cancel()
            self._timer = None

        if not request.done():
            self._timed_out_attempts.add(attempt)
            logger.warning(f"Plan generation attempt {attempt} timed out after {self.timeout}s")
            self.state = GenerationState.timeout
            self.error_message = TIMEOUT_MESSAGE
            return self.state

        try:
            plan = request.result()
        except SessionExpired:
            await self._session_expired()
            return self.state
        except ApiClientError as e:
            logger.warning(f"Plan generation attempt {attempt} failed: {e.kind} ({e.status_code})")
            return self._fail(e.message)

        return await self._succeed(plan)

    def _on_request_done(self, attempt: int, request: asyncio.Future) -> None:
        if request.cancelled():
            return
        exc = request.exception()
        if attempt not in self._timed_out_attempts:
            return

        if exc is not None:
            logger.info(f"Plan generation attempt {attempt} failed after timeout: {exc}")
            return
        if attempt != self._attempt:
            logger.info(f"Plan generation attempt {attempt} finished after being superseded, ignored")
            return
        self.late_plan = request.result()
        logger.info(f"Plan generation attempt {attempt} finished after timeout, plan {self.late_plan.id} kept")

    async def _succeed(self, plan: TrainingPlanResponse) -> GenerationState:
        self.plan = plan
        self.state = GenerationState.idle
        if self.on_success is not None:
            await _maybe_await(self.on_success(plan))
        return self.state

    def _fail(self, message: str) -> GenerationState:
        self.state = GenerationState.error
        self.error_message = message
        return self.state

    async def _session_expired(self) -> None:
        self.state = GenerationState.idle
        if self.on_session_expired is not None:
            await _maybe_await(self.on_session_expired())
