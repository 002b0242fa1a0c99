import enum
from datetime import datetime

from sqlalchemy import Column, Integer, Float, Enum, ForeignKey, DateTime, CheckConstraint
from sqlalchemy.orm import relationship

from app.core.base import Base


class DistanceEnum(str, enum.Enum):
    five_k = "5K"
    ten_k = "10K"
    half_marathon = "Half Marathon"
    marathon = "Marathon"


class GenderEnum(str, enum.Enum):
    male = "M"
    female = "F"


def enum_values(enum_cls):
    # В БД храним значения ("Half Marathon"), а не имена членов
    return [member.value for member in enum_cls]


distance_type = Enum(DistanceEnum, name="distance_type", values_callable=enum_values)
gender_type = Enum(GenderEnum, name="gender_type", values_callable=enum_values)


class Profile(Base):
    """Анкета бегуна. Одна на пользователя, перезаписывается целиком при каждой генерации плана."""

    __tablename__ = "profiles"
    __table_args__ = (
        CheckConstraint("weekly_km > 0", name="ck_profiles_weekly_km_positive"),
        CheckConstraint("training_days_per_week BETWEEN 2 AND 7", name="ck_profiles_training_days"),
        CheckConstraint("age BETWEEN 1 AND 119", name="ck_profiles_age"),
        CheckConstraint("weight > 0 AND weight <= 300", name="ck_profiles_weight"),
        CheckConstraint("height > 0 AND height <= 300", name="ck_profiles_height"),
    )

    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    goal_distance = Column(distance_type, nullable=False)
    weekly_km = Column(Float, nullable=False)
    training_days_per_week = Column(Integer, nullable=False)
    age = Column(Integer, nullable=False)
    weight = Column(Float, nullable=False)
    height = Column(Integer, nullable=False)
    gender = Column(gender_type, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    user = relationship("User", back_populates="profile")
