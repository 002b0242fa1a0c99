from fastapi import APIRouter, Depends

from app.core.dependencies import get_current_user, get_training_plan_service
from app.models.user import User
from app.schemas.common import DataResponse
from app.schemas.training_plan import WorkoutDayResponse, WorkoutDayUpdate
from app.services.training_plan_service import TrainingPlanService

router = APIRouter(tags=["workout-days"])


@router.patch("/{day_id}", response_model=DataResponse[WorkoutDayResponse])
async def update_workout_day(
    day_id: int,
    update: WorkoutDayUpdate,
    current_user: User = Depends(get_current_user),
    service: TrainingPlanService = Depends(get_training_plan_service),
):
    """
    Отметить тренировку выполненной / снять отметку.

    completed_at = время изменения (не дата тренировки) или null.
    400 для дня отдыха, 404 если день не найден или принадлежит другому пользователю.
    """
    day = await service.set_workout_day_completion(current_user.id, day_id, update.is_completed)
    return DataResponse[WorkoutDayResponse](data=WorkoutDayResponse.model_validate(day))
