"""
Общие фикстуры для всех тестов RunPlan backend.

Стратегия:
- Тестовое FastAPI-приложение создаётся без startup-событий (нет подключения к БД).
- UserRepository заменяется на AsyncMock (mock_repo) во всех тестах auth.
- TrainingPlanRepository и AI-генератор заменяются на AsyncMock (mock_plan_repo,
  mock_generator), а get_current_user - на лямбду с нужным пользователем.
- JWT-токены создаются через auth_service.create_access_token() для проверки middleware.
"""

import pytest
from unittest.mock import AsyncMock
from httpx import AsyncClient, ASGITransport
from fastapi import FastAPI
from datetime import date, datetime
from typing import AsyncGenerator, Iterable, List

from app.api.router import api_router
from app.core.errors import register_exception_handlers
from app.models.user import User
from app.models.profile import DistanceEnum, GenderEnum
from app.models.training_plan import TrainingPlan, WorkoutDay, PLAN_LENGTH_DAYS
from app.schemas.profile import ProfileInput
from app.schemas.personal_record import PersonalRecordInput
from app.schemas.training_plan import GenerateTrainingPlanCommand, WorkoutDayDescriptor
from app.services.ai_service import AIService
from app.services.auth_service import auth_service
from app.repositories.user_repository import UserRepository
from app.repositories.training_plan_repository import TrainingPlanRepository
from app.core.dependencies import (
    get_current_user,
    get_user_repository,
    get_training_plan_repository,
    get_plan_generator,
)
from app.utils.dates import plan_end_date, workout_date

PLAN_START = date(2026, 3, 2)
# Дни недели (1..7), которые в тестовом плане считаются днями отдыха
REST_WEEKDAYS = (3, 7)


# ---------------------------------------------------------------------------
# Вспомогательные функции
# ---------------------------------------------------------------------------

def create_test_app() -> FastAPI:
    """Тестовое FastAPI-приложение без startup-событий."""
    test_app = FastAPI(title="RunPlan Test App")
    register_exception_handlers(test_app)
    test_app.include_router(api_router, prefix="/api/v1")
    return test_app


def make_auth_headers(user: User) -> dict:
    """Создать заголовки авторизации с валидным JWT для указанного пользователя."""
    access_token = auth_service.create_access_token(data={"sub": str(user.id)})
    return {"Authorization": f"Bearer {access_token}"}


def is_rest_day_number(day_number: int) -> bool:
    return (day_number - 1) % 7 + 1 in REST_WEEKDAYS


def make_profile_input(**overrides) -> ProfileInput:
    data = dict(
        goal_distance=DistanceEnum.half_marathon,
        weekly_km=30,
        training_days_per_week=4,
        age=32,
        weight=70.5,
        height=178,
        gender=GenderEnum.female,
    )
    data.update(overrides)
    return ProfileInput(**data)


def make_command(replace_active_plan: bool = False) -> GenerateTrainingPlanCommand:
    return GenerateTrainingPlanCommand(
        profile=make_profile_input(),
        personal_records=[PersonalRecordInput(distance=DistanceEnum.five_k, time_seconds=1350)],
        replace_active_plan=replace_active_plan,
    )


def make_descriptors(count: int = PLAN_LENGTH_DAYS) -> List[WorkoutDayDescriptor]:
    return [
        WorkoutDayDescriptor(
            day_number=n,
            workout_description="Отдых" if is_rest_day_number(n) else f"Лёгкий бег {5 + n % 4} км",
            is_rest_day=is_rest_day_number(n),
        )
        for n in range(1, count + 1)
    ]


def make_plan(
    plan_id: int = 10,
    user_id: int = 1,
    start_date: date = PLAN_START,
    completed: Iterable[int] = (),
    days: int = PLAN_LENGTH_DAYS,
) -> TrainingPlan:
    """ORM-план с днями; id дня = plan_id * 100 + day_number."""
    completed = set(completed)
    plan = TrainingPlan(
        id=plan_id,
        user_id=user_id,
        start_date=start_date,
        end_date=plan_end_date(start_date),
        is_active=True,
        generated_at=datetime(2026, 3, 2, 7, 30),
    )
    plan.workout_days = [
        WorkoutDay(
            id=plan_id * 100 + n,
            training_plan_id=plan_id,
            day_number=n,
            date=workout_date(start_date, n),
            workout_description="Отдых" if is_rest_day_number(n) else f"Лёгкий бег {5 + n % 4} км",
            is_rest_day=is_rest_day_number(n),
            is_completed=n in completed,
            completed_at=datetime(2026, 3, 2, 19, 0) if n in completed else None,
        )
        for n in range(1, days + 1)
    ]
    return plan


# ---------------------------------------------------------------------------
# Фикстуры пользователей
# ---------------------------------------------------------------------------

@pytest.fixture
def user_fixture() -> User:
    """Обычный зарегистрированный пользователь."""
    return User(
        id=1,
        email="test@example.com",
        password=auth_service.hash_password("password123"),
        created_at=datetime.utcnow(),
    )


@pytest.fixture
def other_user_fixture() -> User:
    """Второй пользователь - для проверок доступа к чужим данным."""
    return User(
        id=2,
        email="other@example.com",
        password=auth_service.hash_password("other123"),
        created_at=datetime.utcnow(),
    )


# ---------------------------------------------------------------------------
# Фикстуры для зависимостей
# ---------------------------------------------------------------------------

@pytest.fixture
def mock_repo() -> AsyncMock:
    """Мокированный UserRepository для auth-эндпоинтов."""
    return AsyncMock(spec=UserRepository)


@pytest.fixture
def mock_plan_repo() -> AsyncMock:
    """
    Мокированный TrainingPlanRepository.
    По умолчанию активного плана нет.
    """
    repo = AsyncMock(spec=TrainingPlanRepository)
    repo.has_active_plan.return_value = False
    repo.get_active_plan_with_days.return_value = None
    repo.deactivate_active_plans.return_value = 0
    return repo


@pytest.fixture
def mock_generator() -> AsyncMock:
    """AI-генератор, по умолчанию возвращающий корректные 70 дней."""
    generator = AsyncMock(spec=AIService)
    generator.generate_training_plan.return_value = make_descriptors()
    return generator


# ---------------------------------------------------------------------------
# HTTP-клиенты
# ---------------------------------------------------------------------------

@pytest.fixture
async def client(mock_repo) -> AsyncGenerator[AsyncClient, None]:
    """
    Базовый клиент: get_user_repository → mock_repo.
    Используется для auth-эндпоинтов (register, login, refresh, logout, me).
    """
    app = create_test_app()
    app.dependency_overrides[get_user_repository] = lambda: mock_repo
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


@pytest.fixture
async def user_client(user_fixture, mock_repo, mock_plan_repo, mock_generator) -> AsyncGenerator[AsyncClient, None]:
    """
    Клиент, аутентифицированный как обычный пользователь.
    get_current_user → user_fixture, репозиторий планов и генератор - моки.
    """
    app = create_test_app()
    app.dependency_overrides[get_user_repository] = lambda: mock_repo
    app.dependency_overrides[get_current_user] = lambda: user_fixture
    app.dependency_overrides[get_training_plan_repository] = lambda: mock_plan_repo
    app.dependency_overrides[get_plan_generator] = lambda: mock_generator
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


@pytest.fixture
async def anonymous_client(mock_repo, mock_plan_repo, mock_generator) -> AsyncGenerator[AsyncClient, None]:
    """Клиент без переопределения get_current_user: проверяется настоящий JWT."""
    app = create_test_app()
    app.dependency_overrides[get_user_repository] = lambda: mock_repo
    app.dependency_overrides[get_training_plan_repository] = lambda: mock_plan_repo
    app.dependency_overrides[get_plan_generator] = lambda: mock_generator
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac
