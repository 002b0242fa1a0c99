"""
Жизненный цикл плана тренировок.

generate_plan: проверка конфликта -> AI -> материализация (одна транзакция БД):
  1. upsert профиля
  2. замена личных рекордов (delete + insert)
  3. деактивация текущего активного плана
  4. новый план: start = сегодня, end = start + 69
  5. 70 дней, date = start + day_number - 1
  6. перечитывание плана с днями по day_number
Ошибка любого шага откатывает транзакцию и пишется в лог с именем шага.
"""

import logging
from contextlib import asynccontextmanager
from datetime import date
from enum import Enum
from typing import List, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from app.core.errors import AppError, ActivePlanConflict, NotFound, PlanIntegrityError, RestDayCompletionNotAllowed
from app.models.training_plan import TrainingPlan, WorkoutDay, ONE_ACTIVE_PLAN_INDEX, PLAN_LENGTH_DAYS
from app.repositories.training_plan_repository import TrainingPlanRepository
from app.schemas.training_plan import (
    GenerateTrainingPlanCommand,
    TrainingPlanResponse,
    WorkoutDayDescriptor,
    WorkoutDayResponse,
)
from app.services.ai_service import AIService, AIMalformedResponse
from app.services.completion_stats import calculate_completion_stats
from app.utils.dates import utc_today, workout_date

logger = logging.getLogger(__name__)


class MaterializationStep(str, Enum):
    profile = "profile"
    personal_records = "personal_records"
    deactivation = "deactivation"
    plan_insert = "plan_insert"
    days_insert = "days_insert"
    refetch = "refetch"
    commit = "commit"


class PlanMaterializationError(AppError):
    code = "PLAN_SAVE_FAILED"
    message = "Не удалось сохранить план тренировок"

    def __init__(self, step: MaterializationStep):
        super().__init__()
        self.step = step


def build_plan_response(plan: TrainingPlan, today: date = None) -> TrainingPlanResponse:
    stats = calculate_completion_stats(plan.workout_days, plan.end_date, today)
    return TrainingPlanResponse(
        id=plan.id,
        user_id=plan.user_id,
        start_date=plan.start_date,
        end_date=plan.end_date,
        is_active=plan.is_active,
        generated_at=plan.generated_at,
        workout_days=[WorkoutDayResponse.model_validate(day) for day in plan.workout_days],
        completion_stats=stats,
    )


def _check_plan_integrity(plan: TrainingPlan, user_id: int) -> None:
    numbers = [day.day_number for day in plan.workout_days]
    if numbers != list(range(1, PLAN_LENGTH_DAYS + 1)):
        logger.error(
            f"Training plan has incomplete workout days: plan_id={plan.id}, "
            f"user_id={user_id}, count={len(numbers)}"
        )
        raise PlanIntegrityError()


def _violates_one_active_plan(error: IntegrityError) -> bool:
    """
    Нарушен именно уникальный индекс активного плана, а не CHECK или FK.

    PostgreSQL называет индекс в тексте ошибки; SQLite называет только
    колонку: "UNIQUE constraint failed: training_plans.user_id".
    """
    message = str(error.orig)
    return ONE_ACTIVE_PLAN_INDEX in message or "UNIQUE constraint failed: training_plans.user_id" in message


class TrainingPlanService:
    def __init__(self, repo: TrainingPlanRepository, generator: Optional[AIService] = None):
        self.repo = repo
        self.generator = generator

    @asynccontextmanager
    async def _step(self, step: MaterializationStep, user_id: int):
        try:
            yield
        except AppError:
            await self.repo.rollback()
            raise
        except IntegrityError as e:
            await self.repo.rollback()
            if step == MaterializationStep.plan_insert and _violates_one_active_plan(e):
                # Параллельная генерация успела создать активный план
                logger.warning(f"[Training Plan] Concurrent active plan for user {user_id}: {e.orig}")
                raise ActivePlanConflict()
            logger.error(f"[Training Plan] Step '{step.value}' failed for user {user_id}: {e}")
            raise PlanMaterializationError(step)
        except SQLAlchemyError as e:
            await self.repo.rollback()
            logger.error(f"[Training Plan] Step '{step.value}' failed for user {user_id}: {e}")
            raise PlanMaterializationError(step)

    async def has_active_plan(self, user_id: int) -> bool:
        return await self.repo.has_active_plan(user_id)

    async def generate_plan(
        self,
        user_id: int,
        command: GenerateTrainingPlanCommand,
        today: date = None,
    ) -> TrainingPlanResponse:
        if not command.replace_active_plan and await self.repo.has_active_plan(user_id):
            raise ActivePlanConflict()

        logger.info(f"[Training Plan Generation] Starting for user: {user_id}")
        logger.info(
            f"[Training Plan Generation] Goal: {command.profile.goal_distance.value}, "
            f"Days/week: {command.profile.training_days_per_week}"
        )

        workout_days = await self.generator.generate_training_plan(command.profile, command.personal_records)
        if len(workout_days) != PLAN_LENGTH_DAYS:
            # Генератор обязан вернуть ровно 70 дней; всё остальное в БД не попадает
            raise AIMalformedResponse(f"expected {PLAN_LENGTH_DAYS} days, got {len(workout_days)}")

        plan = await self.materialize_plan(user_id, command, workout_days, today)
        logger.info(f"[Training Plan Generation] Successfully created plan: {plan.id}")
        return build_plan_response(plan, today)

    async def materialize_plan(
        self,
        user_id: int,
        command: GenerateTrainingPlanCommand,
        workout_days: List[WorkoutDayDescriptor],
        today: date = None,
    ) -> TrainingPlan:
        start_date = today or utc_today()

        async with self._step(MaterializationStep.profile, user_id):
            await self.repo.upsert_profile(user_id, command.profile)

        async with self._step(MaterializationStep.personal_records, user_id):
            await self.repo.replace_personal_records(user_id, command.personal_records)

        async with self._step(MaterializationStep.deactivation, user_id):
            deactivated = await self.repo.deactivate_active_plans(user_id)
            if deactivated:
                logger.info(f"[Training Plan] Deactivated {deactivated} active plan(s) for user {user_id}")

        async with self._step(MaterializationStep.plan_insert, user_id):
            plan = await self.repo.create_plan(user_id, start_date)

        async with self._step(MaterializationStep.days_insert, user_id):
            await self.repo.add_workout_days([
                WorkoutDay(
                    training_plan_id=plan.id,
                    day_number=day.day_number,
                    date=workout_date(plan.start_date, day.day_number),
                    workout_description=day.workout_description,
                    is_rest_day=day.is_rest_day,
                    is_completed=False,
                    completed_at=None,
                )
                for day in workout_days
            ])

        async with self._step(MaterializationStep.refetch, user_id):
            complete_plan = await self.repo.get_plan_with_days(plan.id)
            if complete_plan is None or len(complete_plan.workout_days) != PLAN_LENGTH_DAYS:
                logger.error(f"[Training Plan] Refetch of plan {plan.id} for user {user_id} returned incomplete data")
                raise PlanMaterializationError(MaterializationStep.refetch)

        async with self._step(MaterializationStep.commit, user_id):
            await self.repo.commit()

        return complete_plan

    async def get_active_plan(self, user_id: int, today: date = None) -> Optional[TrainingPlanResponse]:
        """Активный план с днями и статистикой; None - если активного плана нет."""
        plan = await self.repo.get_active_plan_with_days(user_id)
        if plan is None:
            return None

        _check_plan_integrity(plan, user_id)
        return build_plan_response(plan, today)

    async def set_workout_day_completion(self, user_id: int, day_id: int, is_completed: bool) -> WorkoutDay:
        day = await self.repo.get_workout_day_for_user(day_id, user_id)
        if day is None:
            raise NotFound("Тренировка не найдена", code="WORKOUT_DAY_NOT_FOUND")

        if is_completed and day.is_rest_day:
            raise RestDayCompletionNotAllowed()

        # Повторная установка того же значения ничего не меняет
        if not day.set_completed(is_completed):
            return day

        try:
            await self.repo.commit()
        except IntegrityError as e:
            await self.repo.rollback()
            logger.error(f"Workout day {day_id} update rejected by constraint: {e.orig}")
            raise RestDayCompletionNotAllowed()

        return day
