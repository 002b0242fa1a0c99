from pydantic import BaseModel, Field, StrictBool, model_validator
from typing import Optional, List
from datetime import date, datetime
from enum import Enum

from app.models.training_plan import PLAN_LENGTH_DAYS
from app.schemas.profile import ProfileInput
from app.schemas.personal_record import PersonalRecordInput


class GenerateTrainingPlanCommand(BaseModel):
    profile: ProfileInput
    personal_records: List[PersonalRecordInput] = Field(min_length=1)
    # Клиент выставляет True только после явного подтверждения замены активного плана
    replace_active_plan: bool = False


class WorkoutDayDescriptor(BaseModel):
    """День плана в том виде, в каком его вернул AI (до сохранения)."""

    day_number: int = Field(ge=1, le=PLAN_LENGTH_DAYS)
    workout_description: str = Field(min_length=1)
    is_rest_day: StrictBool


class GeneratedPlan(BaseModel):
    workout_days: List[WorkoutDayDescriptor]

    @model_validator(mode="after")
    def check_ten_weeks(self):
        count = len(self.workout_days)
        if count != PLAN_LENGTH_DAYS:
            raise ValueError(f"Expected {PLAN_LENGTH_DAYS} workout days, got {count}")
        numbers = sorted(day.day_number for day in self.workout_days)
        if numbers != list(range(1, PLAN_LENGTH_DAYS + 1)):
            raise ValueError("day_number values must be exactly 1..70 without gaps or duplicates")
        return self


class CompletionReason(str, Enum):
    all_workouts_completed = "all_workouts_completed"
    end_date_passed = "end_date_passed"


class CompletionStats(BaseModel):
    total_workouts: int
    completed_workouts: int
    total_rest_days: int
    completion_percentage: int = Field(ge=0, le=100)
    is_plan_completed: bool
    completion_reason: Optional[CompletionReason] = None


class WorkoutDayResponse(BaseModel):
    id: int
    training_plan_id: int
    day_number: int
    date: date
    workout_description: str
    is_rest_day: bool
    is_completed: bool
    completed_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class WorkoutDayUpdate(BaseModel):
    is_completed: StrictBool


class TrainingPlanResponse(BaseModel):
    id: int
    user_id: int
    start_date: date
    end_date: date
    is_active: bool
    generated_at: datetime
    workout_days: List[WorkoutDayResponse]
    completion_stats: CompletionStats

    class Config:
        from_attributes = True
