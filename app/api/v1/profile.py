from fastapi import APIRouter, Depends

from app.core.dependencies import get_current_user, get_training_plan_repository
from app.core.errors import NotFound
from app.models.user import User
from app.repositories.training_plan_repository import TrainingPlanRepository
from app.schemas.common import DataResponse
from app.schemas.profile import ProfileResponse

router = APIRouter(tags=["profile"])


@router.get("", response_model=DataResponse[ProfileResponse])
async def get_profile(
    current_user: User = Depends(get_current_user),
    repo: TrainingPlanRepository = Depends(get_training_plan_repository),
):
    """Получить анкету текущего пользователя (заполняется при генерации плана)"""
    profile = await repo.get_profile(current_user.id)
    if profile is None:
        raise NotFound("Профиль не найден", code="PROFILE_NOT_FOUND")
    return DataResponse[ProfileResponse](data=ProfileResponse.model_validate(profile))
