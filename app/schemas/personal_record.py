from pydantic import BaseModel, Field
from datetime import datetime

from app.models.profile import DistanceEnum


class PersonalRecordInput(BaseModel):
    distance: DistanceEnum
    time_seconds: int = Field(gt=0, description="Время в секундах")


class PersonalRecordResponse(PersonalRecordInput):
    id: int
    user_id: int
    created_at: datetime

    class Config:
        from_attributes = True
