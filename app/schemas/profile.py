from pydantic import BaseModel, Field
from datetime import datetime

from app.models.profile import DistanceEnum, GenderEnum


class ProfileInput(BaseModel):
    """Данные анкеты. Все поля обязательны, профиль перезаписывается целиком."""

    goal_distance: DistanceEnum
    weekly_km: float = Field(gt=0, description="Текущий недельный объём, км")
    training_days_per_week: int = Field(ge=2, le=7)
    age: int = Field(ge=1, le=119)
    weight: float = Field(gt=0, le=300, description="Вес, кг")
    height: int = Field(gt=0, le=300, description="Рост, см")
    gender: GenderEnum


class ProfileResponse(ProfileInput):
    user_id: int
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
