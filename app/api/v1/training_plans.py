from fastapi import APIRouter, Depends, status

from app.core.dependencies import get_current_user, get_training_plan_service
from app.core.errors import NotFound
from app.models.user import User
from app.schemas.common import DataResponse
from app.schemas.training_plan import GenerateTrainingPlanCommand, TrainingPlanResponse
from app.services.training_plan_service import TrainingPlanService

router = APIRouter(tags=["training-plans"])


@router.post(
    "/generate",
    response_model=DataResponse[TrainingPlanResponse],
    status_code=status.HTTP_201_CREATED,
)
async def generate_training_plan(
    command: GenerateTrainingPlanCommand,
    current_user: User = Depends(get_current_user),
    service: TrainingPlanService = Depends(get_training_plan_service),
):
    """
    Сгенерировать новый 10-недельный план через AI.

    Если активный план уже есть и replace_active_plan не выставлен - 409,
    AI при этом не вызывается. Ошибки AI: 503 (повторить позже) или 500.
    """
    plan = await service.generate_plan(current_user.id, command)
    return DataResponse[TrainingPlanResponse](data=plan)


@router.get("/active", response_model=DataResponse[TrainingPlanResponse])
async def get_active_training_plan(
    current_user: User = Depends(get_current_user),
    service: TrainingPlanService = Depends(get_training_plan_service),
):
    """Активный план со всеми 70 днями и статистикой выполнения"""
    plan = await service.get_active_plan(current_user.id)
    if plan is None:
        raise NotFound("Активный план тренировок не найден", code="NO_ACTIVE_PLAN")
    return DataResponse[TrainingPlanResponse](data=plan)
