from typing import List, Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    DATABASE_URL: str = "postgresql://runplan_user:runplan_password@db:5432/runplan_db"
    # При продакшн/обычной разработке лучше не пересоздавать БД на каждом старте
    RESET_DATABASE: bool = False
    SQL_ECHO: bool = False

    SECRET_KEY: str = "SECRET_KEY_FOR_RUNPLAN"
    REFRESH_SECRET_KEY: str = "SECRET_KEY_FOR_RUNPLAN_refresh"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 30
    REFRESH_TOKEN_EXPIRE_DAYS: int = 7

    # OpenRouter (генерация плана)
    OPENROUTER_API_KEY: Optional[str] = None
    OPENROUTER_BASE_URL: str = "https://openrouter.ai/api/v1/chat/completions"
    OPENROUTER_MODEL: str = "anthropic/claude-3.5-haiku"
    AI_REQUEST_TIMEOUT: float = 55.0
    AI_MAX_TOKENS: int = 16000
    AI_TEMPERATURE: float = 0.7

    # Сколько клиент ждёт генерацию, прежде чем показать состояние таймаута
    PLAN_GENERATION_TIMEOUT: float = 60.0

    LOG_LEVEL: str = "INFO"
    CORS_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
        "http://localhost:8080",
    ]

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "allow"

settings = Settings()
