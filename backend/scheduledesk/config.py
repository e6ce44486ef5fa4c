"""Application configuration via environment variables."""
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """App settings loaded from .env or environment."""

    DATABASE_URL: str = "sqlite:///./scheduledesk.db"
    REDIS_URL: str = ""  # when set, the key-value store lives in Redis instead of SQL
    STORE_TIMEOUT_SECONDS: float = 5.0
    ADMIN_TOKEN: str = ""
    CHANNEL_SESSION_TTL_SECONDS: int = 24 * 60 * 60
    DEFAULT_CHANNEL: str = "itsflannelbeard"
    CORS_ORIGINS: str = "http://localhost:3000"
    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"


settings = Settings()
