from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError, jwt
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db
from app.core.config import settings
from app.core.errors import NotAuthenticated
from app.models.user import User
from app.repositories.user_repository import UserRepository
from app.repositories.training_plan_repository import TrainingPlanRepository
from app.services.ai_service import AIService, ai_service
from app.services.training_plan_service import TrainingPlanService


security = HTTPBearer()


def get_user_repository(db: AsyncSession = Depends(get_db)) -> UserRepository:
    """Фабрика репозитория — инжектируется в эндпоинты через Depends."""
    return UserRepository(db)


def get_training_plan_repository(db: AsyncSession = Depends(get_db)) -> TrainingPlanRepository:
    return TrainingPlanRepository(db)


def get_plan_generator() -> AIService:
    return ai_service


def get_training_plan_service(
        repo: TrainingPlanRepository = Depends(get_training_plan_repository),
        generator: AIService = Depends(get_plan_generator),
) -> TrainingPlanService:
    return TrainingPlanService(repo, generator)


async def get_current_user(
        credentials: HTTPAuthorizationCredentials = Depends(security),
        repo: UserRepository = Depends(get_user_repository),
) -> User:
    try:
        payload = jwt.decode(
            credentials.credentials,
            settings.SECRET_KEY,
            algorithms=[settings.ALGORITHM],
        )
        user_id = payload.get("sub")
        if user_id is None:
            raise NotAuthenticated()
        user_id = int(user_id)
    except (JWTError, ValueError):
        raise NotAuthenticated()

    user = await repo.get_by_id(user_id)
    if user is None:
        raise NotAuthenticated()

    return user
