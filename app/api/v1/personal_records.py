from typing import List

from fastapi import APIRouter, Depends, Response, status

from app.core.dependencies import get_current_user, get_training_plan_repository
from app.models.user import User
from app.repositories.training_plan_repository import TrainingPlanRepository
from app.schemas.common import DataResponse
from app.schemas.personal_record import PersonalRecordInput, PersonalRecordResponse

router = APIRouter(tags=["personal-records"])


@router.get("", response_model=DataResponse[List[PersonalRecordResponse]])
async def list_personal_records(
    current_user: User = Depends(get_current_user),
    repo: TrainingPlanRepository = Depends(get_training_plan_repository),
):
    """Личные рекорды пользователя, новые сверху. Пустой список, если рекордов нет."""
    records = await repo.list_personal_records(current_user.id)
    return DataResponse[List[PersonalRecordResponse]](
        data=[PersonalRecordResponse.model_validate(record) for record in records]
    )


@router.post("", response_model=DataResponse[PersonalRecordResponse], status_code=status.HTTP_201_CREATED)
async def create_personal_record(
    data: PersonalRecordInput,
    current_user: User = Depends(get_current_user),
    repo: TrainingPlanRepository = Depends(get_training_plan_repository),
):
    record = await repo.add_personal_record(current_user.id, data)
    await repo.commit()
    return DataResponse[PersonalRecordResponse](data=PersonalRecordResponse.model_validate(record))


@router.delete("/{record_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_personal_record(
    record_id: int,
    current_user: User = Depends(get_current_user),
    repo: TrainingPlanRepository = Depends(get_training_plan_repository),
):
    """Идемпотентно: чужой или несуществующий рекорд тоже даёт 204."""
    await repo.delete_personal_record(current_user.id, record_id)
    await repo.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
