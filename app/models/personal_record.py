from datetime import datetime

from sqlalchemy import Column, Integer, ForeignKey, DateTime, CheckConstraint
from sqlalchemy.orm import relationship

from app.core.base import Base
from app.models.profile import distance_type


class PersonalRecord(Base):
    __tablename__ = "personal_records"
    __table_args__ = (
        CheckConstraint("time_seconds > 0", name="ck_personal_records_time_positive"),
    )

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    distance = Column(distance_type, nullable=False)
    time_seconds = Column(Integer, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    user = relationship("User", back_populates="personal_records")
