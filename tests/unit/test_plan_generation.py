"""
Модульные тесты клиентского сценария генерации плана.

Покрываемые сценарии:
- нет активного плана → генерация сразу, on_success
- есть активный план → подтверждение; отмена не отправляет запрос
- подтверждение → replace_active_plan=True
- таймаут, поздний ответ и повтор
- ошибки проверки активного плана и генерации, истёкшая сессия
"""

import asyncio
from unittest.mock import AsyncMock

import pytest

from app.client.api_client import ConflictError, ServerError, ServiceUnavailable, SessionExpired, TrainingPlanApiClient
from app.client.plan_generation import GenerationState, PlanGenerationFlow, TIMEOUT_MESSAGE
from app.services.training_plan_service import build_plan_response
from tests.conftest import PLAN_START, make_command, make_plan

pytestmark = pytest.mark.unit


@pytest.fixture
def plan():
    return build_plan_response(make_plan(plan_id=20), today=PLAN_START)


@pytest.fixture
def existing_plan():
    return build_plan_response(make_plan(plan_id=10, completed=[1, 2]), today=PLAN_START)


@pytest.fixture
def api(plan) -> AsyncMock:
    api = AsyncMock(spec=TrainingPlanApiClient)
    api.get_active_plan.return_value = None
    api.generate_plan.return_value = plan
    return api


@pytest.fixture
def redirects() -> list:
    return []


@pytest.fixture
def flow(api, redirects) -> PlanGenerationFlow:
    return PlanGenerationFlow(
        api,
        timeout=5,
        on_success=lambda plan: redirects.append(("dashboard", plan.id)),
        on_session_expired=lambda: redirects.append(("login", None)),
    )


@pytest.mark.asyncio
async def test_submit_without_active_plan_generates(flow, api, plan, redirects):
    command = make_command()

    state = await flow.submit(command)

    assert state == GenerationState.idle
    api.generate_plan.assert_awaited_once_with(command, replace_active_plan=False)
    assert flow.plan == plan
    assert redirects == [("dashboard", 20)]


@pytest.mark.asyncio
async def test_existing_plan_requires_confirmation_and_cancel_sends_nothing(flow, api, existing_plan, redirects):
    api.get_active_plan.return_value = existing_plan

    assert await flow.submit(make_command()) == GenerationState.awaiting_confirmation
    assert flow.cancel() == GenerationState.idle

    api.generate_plan.assert_not_called()
    assert redirects == []


@pytest.mark.asyncio
async def test_confirm_replaces_active_plan(flow, api, existing_plan):
    api.get_active_plan.return_value = existing_plan
    command = make_command()

    await flow.submit(command)
    assert await flow.confirm() == GenerationState.idle

    api.generate_plan.assert_awaited_once_with(command, replace_active_plan=True)


@pytest.mark.asyncio
async def test_confirm_outside_confirmation_does_nothing(flow, api):
    assert await flow.confirm() == GenerationState.idle
    api.generate_plan.assert_not_called()


@pytest.mark.asyncio
async def test_active_plan_check_failure_does_not_generate(flow, api):
    api.get_active_plan.side_effect = ServerError(status_code=500)

    assert await flow.submit(make_command()) == GenerationState.error
    assert flow.error_message == ServerError.default_message
    api.generate_plan.assert_not_called()


@pytest.mark.asyncio
async def test_session_expired_redirects_to_login(flow, api, redirects):
    api.get_active_plan.side_effect = SessionExpired(status_code=401)

    assert await flow.submit(make_command()) == GenerationState.idle
    assert redirects == [("login", None)]
    api.generate_plan.assert_not_called()


@pytest.mark.asyncio
async def test_generation_error_then_retry(flow, api, plan, redirects):
    api.generate_plan.side_effect = [ServiceUnavailable(status_code=503), plan]

    assert await flow.submit(make_command()) == GenerationState.error
    assert flow.error_message == ServiceUnavailable.default_message

    assert await flow.retry() == GenerationState.idle
    assert api.generate_plan.await_count == 2
    assert redirects == [("dashboard", 20)]


@pytest.mark.asyncio
async def test_conflict_during_generation_is_error(flow, api):
    api.generate_plan.side_effect = ConflictError(status_code=409)

    assert await flow.submit(make_command()) == GenerationState.error
    assert "активный план" in flow.error_message
    assert flow.close() == GenerationState.idle
    assert flow.error_message is None


@pytest.mark.asyncio
async def test_timeout_then_late_result_is_adopted_on_retry(api, plan, redirects):
    release = asyncio.Event()

    async def slow_generation(command, replace_active_plan):
        await release.wait()
        return plan

    api.generate_plan.side_effect = slow_generation
    flow = PlanGenerationFlow(api, timeout=0.01, on_success=lambda p: redirects.append(("dashboard", p.id)))

    assert await flow.submit(make_command()) == GenerationState.timeout
    assert flow.error_message == TIMEOUT_MESSAGE
    assert redirects == []

    release.set()
    for _ in range(5):
        await asyncio.sleep(0)

    # Поздний ответ не меняет показанное состояние
    assert flow.state == GenerationState.timeout
    assert flow.late_plan == plan

    assert await flow.retry() == GenerationState.idle
    assert api.generate_plan.await_count == 1
    assert redirects == [("dashboard", 20)]


@pytest.mark.asyncio
async def test_late_failure_after_timeout_is_ignored(api):
    release = asyncio.Event()

    async def slow_failure(command, replace_active_plan):
        await release.wait()
        raise ServerError(status_code=500)

    api.generate_plan.side_effect = slow_failure
    flow = PlanGenerationFlow(api, timeout=0.01)

    assert await flow.submit(make_command()) == GenerationState.timeout

    release.set()
    for _ in range(5):
        await asyncio.sleep(0)

    assert flow.state == GenerationState.timeout
    assert flow.late_plan is None


@pytest.mark.asyncio
async def test_timer_is_cancelled_when_response_arrives(api):
    flow = PlanGenerationFlow(api, timeout=3600)

    assert await flow.submit(make_command()) == GenerationState.idle
    await asyncio.sleep(0)

    pending = [task for task in asyncio.all_tasks() if task is not asyncio.current_task() and not task.done()]
    assert pending == []


@pytest.mark.asyncio
async def test_submit_while_busy_is_ignored(api, plan):
    release = asyncio.Event()

    async def slow_generation(command, replace_active_plan):
        await release.wait()
        return plan

    api.generate_plan.side_effect = slow_generation
    flow = PlanGenerationFlow(api, timeout=5)

    first = asyncio.ensure_future(flow.submit(make_command()))
    for _ in range(3):
        await asyncio.sleep(0)
    assert flow.state == GenerationState.generating

    assert await flow.submit(make_command()) == GenerationState.generating

    release.set()
    assert await first == GenerationState.idle
    assert api.generate_plan.await_count == 1
