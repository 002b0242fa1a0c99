from datetime import datetime

from sqlalchemy import (
    Column, Integer, String, Date, DateTime, Boolean, ForeignKey,
    CheckConstraint, UniqueConstraint, Index, text,
)
from sqlalchemy.orm import relationship, validates

from app.core.base import Base
from app.core.errors import RestDayCompletionNotAllowed

PLAN_LENGTH_DAYS = 70
ONE_ACTIVE_PLAN_INDEX = "uq_training_plans_one_active_per_user"


class TrainingPlan(Base):
    __tablename__ = "training_plans"
    __table_args__ = (
        # date + integer - арифметика PostgreSQL; в SQLite даты хранятся строками
        CheckConstraint("end_date = start_date + 69", name="ck_training_plans_ten_weeks").ddl_if(
            dialect="postgresql"
        ),
        # Не больше одного активного плана на пользователя, даже при гонке двух генераций
        Index(
            ONE_ACTIVE_PLAN_INDEX,
            "user_id",
            unique=True,
            postgresql_where=text("is_active"),
            sqlite_where=text("is_active"),
        ),
    )

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    generated_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    user = relationship("User", back_populates="training_plans")
    workout_days = relationship(
        "WorkoutDay",
        back_populates="training_plan",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="WorkoutDay.day_number",
    )


class WorkoutDay(Base):
    __tablename__ = "workout_days"
    __table_args__ = (
        UniqueConstraint("training_plan_id", "day_number", name="uq_workout_days_plan_day"),
        CheckConstraint("day_number BETWEEN 1 AND 70", name="ck_workout_days_day_number"),
        CheckConstraint("NOT (is_rest_day AND is_completed)", name="no_completed_rest_days"),
        CheckConstraint(
            "(is_completed AND completed_at IS NOT NULL) OR (NOT is_completed AND completed_at IS NULL)",
            name="ck_workout_days_completed_at",
        ),
    )

    id = Column(Integer, primary_key=True)
    training_plan_id = Column(
        Integer, ForeignKey("training_plans.id", ondelete="CASCADE"), nullable=False, index=True
    )
    day_number = Column(Integer, nullable=False)
    date = Column(Date, nullable=False)
    workout_description = Column(String, nullable=False)
    is_rest_day = Column(Boolean, default=False, nullable=False)
    is_completed = Column(Boolean, default=False, nullable=False)
    completed_at = Column(DateTime, nullable=True)

    training_plan = relationship("TrainingPlan", back_populates="workout_days")

    @validates("is_completed")
    def _validate_is_completed(self, key, value):
        if value and self.is_rest_day:
            raise RestDayCompletionNotAllowed()
        return value

    @validates("is_rest_day")
    def _validate_is_rest_day(self, key, value):
        if value and self.is_completed:
            raise RestDayCompletionNotAllowed()
        return value

    def set_completed(self, is_completed: bool, now: datetime = None) -> bool:
        """Выставить статус выполнения. Возвращает False, если статус уже такой (ничего не меняем)."""
        if bool(self.is_completed) == is_completed:
            return False
        self.is_completed = is_completed
        self.completed_at = (now or datetime.utcnow()) if is_completed else None
        return True
