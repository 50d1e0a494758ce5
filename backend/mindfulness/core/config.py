# backend/mindfulness/core/config.py
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    MONGO_URI: str = "mongodb://localhost:27017"
    MONGO_DB_NAME: str = "mindfulness"

    JWT_SECRET_KEY: str = "dev-insecure-secret-key"
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24  # 1 day

    PORT: int = 3000
    CLIENT_URL: str = "http://localhost:3000"

    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"

    # seconds uvicorn waits for open connections before forcing exit
    SHUTDOWN_TIMEOUT: int = 5
    CACHE_TTL_SECONDS: int = 300

    # per client IP, sliding window
    RATE_LIMIT_REQUESTS: int = 100
    RATE_LIMIT_WINDOW_SECONDS: int = 15 * 60

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == "production"


@lru_cache
def get_settings() -> Settings:
    return Settings()
