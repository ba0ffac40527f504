from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    DATABASE_URL: str = "sqlite:///./todo.db"

    # Auth
    JWT_SECRET: str = "change-me-in-production"
    JWT_ALGORITHM: str = "HS256"
    JWT_EXPIRE_DAYS: int = 7
    BCRYPT_ROUNDS: int = 10

    # Rate limiting (register/login)
    RATE_LIMIT_ENABLED: bool = True
    AUTH_RATE_LIMIT: str = "10/minute"

    # App
    CORS_ORIGINS: list[str] = ["*"]
    LOG_LEVEL: str = "INFO"
    DEBUG: bool = False
    API_PORT: int = 8400

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


@lru_cache()
def get_settings() -> Settings:
    return Settings()
