import os
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Application
    PROJECT_NAME: str = "Catalogue Service"
    DEBUG: bool = False

    # Database
    POSTGRES_USER: str = "postgres"
    POSTGRES_PASSWORD: str = "postgres"
    POSTGRES_SERVER: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_DB: str = "catalogue"

    @property
    def database_url(self) -> str:
        """Async database URL."""
        # DATABASE_URL from env wins over the individual components
        env_db_url = os.getenv("DATABASE_URL")
        if env_db_url:
            return env_db_url
        return f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}@{self.POSTGRES_SERVER}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"

    # Event Grid (outbound transport). Empty values leave the publisher unconfigured.
    EVENT_GRID_TOPIC_ENDPOINT: str = Field(default="")
    EVENT_GRID_TOPIC_KEY: str = Field(default="")
    EVENT_GRID_TIMEOUT_SECONDS: float = 10.0
    EVENT_GRID_MAX_TRIES: int = 3

    CATALOGUE_TOPIC: str = "Catalogue"

    # Outbox
    OUTBOX_BATCH_SIZE: int = 20
    OUTBOX_POLL_SECONDS: int = 60
    OUTBOX_RETENTION_DAYS: int = 7
    OUTBOX_PURGE_CRON_HOUR: int = 3
    OUTBOX_STUCK_RETRY_THRESHOLD: int = 5

    SCHEDULER_TIMEZONE: str = "UTC"
    RUN_MIGRATIONS_ON_STARTUP: bool = True

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore"
    )


settings = Settings()
