from app.models.user import User
from app.models.profile import Profile, DistanceEnum, GenderEnum
from app.models.personal_record import PersonalRecord
from app.models.training_plan import TrainingPlan, WorkoutDay, PLAN_LENGTH_DAYS

__all__ = [
    "User",
    "Profile", "DistanceEnum", "GenderEnum",
    "PersonalRecord",
    "TrainingPlan", "WorkoutDay", "PLAN_LENGTH_DAYS",
]
