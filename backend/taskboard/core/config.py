from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    APP_NAME: str = "Taskboard API"
    API_PREFIX: str = ""

    # Server
    HOST: str = "127.0.0.1"
    PORT: int = 5000

    # DB (unset means in-memory fallback only)
    DATABASE_URL: Optional[str] = None
    DB_CONNECT_TIMEOUT: float = 5.0
    DB_CONNECT_RETRIES: int = 3
    DB_RETRY_BASE_DELAY: float = 1.0
    # how often a lost durable store is re-checked
    DB_RECHECK_INTERVAL: float = 5.0

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FILE: Optional[str] = None

    class Config:
        env_file = ".env"

settings = Settings()
