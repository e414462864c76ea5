from typing import List

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    REDIS_URL: str = "redis://localhost:6379/0"
    REDIS_PASSWORD: str = ""
    REDIS_MAX_CONNECTIONS: int = 20

    JWT_SECRET: str = "dev-secret"
    JWT_ALGORITHM: str = "HS256"
    TICKET_ISSUER: str = "turnstile"

    # Seconds a crashed verification can keep a ticket locked
    LOCK_TTL_SECONDS: int = 30

    LOG_LEVEL: str = "INFO"
    APP_ENV: str = "development"
    CORS_ORIGINS: str = "http://localhost:3000"

    # Celery
    VERIFICATION_QUEUE: str = "verification"
    CELERY_WORKER_CONCURRENCY: int = 4

    # slowapi
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_VERIFY: str = "120/minute"

    @property
    def cors_origins(self) -> List[str]:
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"


settings = Settings()
