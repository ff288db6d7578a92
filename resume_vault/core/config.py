"""
Configuration module - loads all env vars using pydantic-settings.
This is the SINGLE SOURCE OF TRUTH for all config values.
"""

from functools import lru_cache
from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # PostgreSQL (metadata store)
    postgres_host: str = "localhost"
    postgres_port: int = 5432
    postgres_user: str = "resume_user"
    postgres_password: str = "password"
    postgres_db: str = "resume_vault"
    database_url: Optional[str] = None  # Overrides the postgres_* fields when set
    db_echo: bool = False

    # MongoDB (GridFS blob store)
    mongodb_uri: str = "mongodb://localhost:27017"
    mongodb_db: str = "resume_files"
    gridfs_bucket: str = "resumes"

    # DeepSeek AI (OpenAI-compatible), optional
    deepseek_api_key: str = ""
    deepseek_base_url: str = "https://api.deepseek.com/v1"
    deepseek_model: str = "deepseek-chat"

    # JWT Auth
    jwt_secret_key: str = "change-this-secret"
    jwt_algorithm: str = "HS256"
    jwt_expire_minutes: int = 1440

    # Upload limits
    max_upload_mb: int = 10
    max_tags_per_resume: int = 100

    # Blob cleanup
    cleanup_max_attempts: int = 5
    orphan_grace_hours: int = 24

    # Logging
    log_level: str = "INFO"
    env: str = "dev"
    log_file: Optional[str] = None

    # App
    cors_origins: List[str] = ["*"]
    debug: bool = False

    @property
    def postgres_url(self) -> str:
        """Construct PostgreSQL connection URL"""
        return (
            f"postgresql://{self.postgres_user}:{self.postgres_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )

    @property
    def sqlalchemy_url(self) -> str:
        return self.database_url or self.postgres_url

    @property
    def max_upload_bytes(self) -> int:
        return self.max_upload_mb * 1024 * 1024

    # Pydantic v2 config
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


@lru_cache()
def get_settings() -> Settings:
    return Settings()
