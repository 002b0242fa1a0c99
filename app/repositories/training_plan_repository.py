from datetime import date, datetime
from typing import List, Optional

from sqlalchemy import select, update, delete, exists
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.models.profile import Profile
from app.models.personal_record import PersonalRecord
from app.models.training_plan import TrainingPlan, WorkoutDay
from app.schemas.profile import ProfileInput
from app.schemas.personal_record import PersonalRecordInput
from app.utils.dates import plan_end_date


class TrainingPlanRepository:
    """
    Построчный CRUD по таблицам профиля, рекордов, планов и дней.

    Методы записи делают только flush - транзакцией управляет сервис
    через commit()/rollback().
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    # ---------- профиль и рекорды ----------

    async def get_profile(self, user_id: int) -> Optional[Profile]:
        return await self.db.get(Profile, user_id)

    async def upsert_profile(self, user_id: int, data: ProfileInput) -> Profile:
        profile = await self.db.get(Profile, user_id)
        if profile is None:
            profile = Profile(user_id=user_id)
            self.db.add(profile)

        # Полная замена: все поля анкеты обязательны
        for field, value in data.model_dump().items():
            setattr(profile, field, value)
        profile.updated_at = datetime.utcnow()

        await self.db.flush()
        return profile

    async def list_personal_records(self, user_id: int) -> List[PersonalRecord]:
        result = await self.db.execute(
            select(PersonalRecord)
            .where(PersonalRecord.user_id == user_id)
            .order_by(PersonalRecord.created_at.desc(), PersonalRecord.id.desc())
        )
        return list(result.scalars().all())

    async def replace_personal_records(
        self, user_id: int, records: List[PersonalRecordInput]
    ) -> List[PersonalRecord]:
        await self.db.execute(delete(PersonalRecord).where(PersonalRecord.user_id == user_id))

        new_records = [
            PersonalRecord(user_id=user_id, distance=record.distance, time_seconds=record.time_seconds)
            for record in records
        ]
        self.db.add_all(new_records)
        await self.db.flush()
        return new_records

    async def add_personal_record(self, user_id: int, data: PersonalRecordInput) -> PersonalRecord:
        record = PersonalRecord(user_id=user_id, distance=data.distance, time_seconds=data.time_seconds)
        self.db.add(record)
        await self.db.flush()
        return record

    async def delete_personal_record(self, user_id: int, record_id: int) -> int:
        result = await self.db.execute(
            delete(PersonalRecord).where(
                PersonalRecord.id == record_id,
                PersonalRecord.user_id == user_id,
            )
        )
        return result.rowcount

    # ---------- планы ----------

    async def has_active_plan(self, user_id: int) -> bool:
        result = await self.db.execute(
            select(exists().where(TrainingPlan.user_id == user_id, TrainingPlan.is_active.is_(True)))
        )
        return bool(result.scalar())

    async def deactivate_active_plans(self, user_id: int) -> int:
        result = await self.db.execute(
            update(TrainingPlan)
            .where(TrainingPlan.user_id == user_id, TrainingPlan.is_active.is_(True))
            .values(is_active=False)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    async def create_plan(self, user_id: int, start_date: date) -> TrainingPlan:
        plan = TrainingPlan(
            user_id=user_id,
            start_date=start_date,
            end_date=plan_end_date(start_date),
            is_active=True,
            generated_at=datetime.utcnow(),
        )
        self.db.add(plan)
        await self.db.flush()
        return plan

    async def add_workout_days(self, workout_days: List[WorkoutDay]) -> List[WorkoutDay]:
        self.db.add_all(workout_days)
        await self.db.flush()
        return workout_days

    def _plan_with_days(self):
        return (
            select(TrainingPlan)
            .options(selectinload(TrainingPlan.workout_days))
            .execution_options(populate_existing=True)
        )

    async def get_plan_with_days(self, plan_id: int) -> Optional[TrainingPlan]:
        result = await self.db.execute(self._plan_with_days().where(TrainingPlan.id == plan_id))
        return result.scalar_one_or_none()

    async def get_active_plan_with_days(self, user_id: int) -> Optional[TrainingPlan]:
        result = await self.db.execute(
            self._plan_with_days().where(
                TrainingPlan.user_id == user_id,
                TrainingPlan.is_active.is_(True),
            )
        )
        return result.scalar_one_or_none()

    # ---------- дни ----------

    async def get_workout_day_for_user(self, day_id: int, user_id: int) -> Optional[WorkoutDay]:
        """День, только если он принадлежит плану этого пользователя."""
        result = await self.db.execute(
            select(WorkoutDay)
            .join(TrainingPlan, WorkoutDay.training_plan_id == TrainingPlan.id)
            .where(WorkoutDay.id == day_id, TrainingPlan.user_id == user_id)
        )
        return result.scalar_one_or_none()

    # ---------- транзакция ----------

    async def commit(self) -> None:
        await self.db.commit()

    async def rollback(self) -> None:
        await self.db.rollback()
