"""Configuration management for the study session engine."""

from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    postgres_host: str = "localhost"
    postgres_port: int = 5432
    postgres_user: str = "studykit"
    postgres_password: str = "localdev"
    postgres_db: str = "studykit"
    database_url_override: Optional[str] = None

    # Knowledge unit derivation
    question_preview_length: int = 100
    default_difficulty: str = "medium"

    # Annotations
    default_highlight_color: str = "#ffff00"

    # Review sessions
    store_timeout_seconds: float = 10.0

    # Logging
    log_level: str = "INFO"

    @property
    def database_url(self) -> str:
        """Construct async database URL."""
        if self.database_url_override:
            return self.database_url_override
        return (
            f"postgresql+asyncpg://{self.postgres_user}:{self.postgres_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


settings = Settings()
