from fastapi import APIRouter
from app.api.v1.auth import router as auth_router
from app.api.v1.training_plans import router as training_plans_router
from app.api.v1.workout_days import router as workout_days_router
from app.api.v1.profile import router as profile_router
from app.api.v1.personal_records import router as personal_records_router

api_router = APIRouter()

api_router.include_router(auth_router, prefix="/auth", tags=["auth"])
api_router.include_router(training_plans_router, prefix="/training-plans", tags=["training-plans"])
api_router.include_router(workout_days_router, prefix="/workout-days", tags=["workout-days"])
api_router.include_router(profile_router, prefix="/profile", tags=["profile"])
api_router.include_router(personal_records_router, prefix="/personal-records", tags=["personal-records"])
