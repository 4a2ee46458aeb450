from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    database_url: str = Field("sqlite:///./socialnet.db")
    host: str = Field("0.0.0.0")
    port: int = Field(3900)
    api_title: str = Field("Social Network API")

    jwt_secret: str = Field("secret")
    jwt_algorithm: str = Field("HS256")
    access_token_expire_minutes: int = Field(60 * 24 * 30)
    bcrypt_rounds: int = Field(10, ge=4, le=31)

    # Local storage for avatars and publication media, served as static files
    upload_dir: str = Field("uploads")
    public_base_url: str = Field("")
    max_upload_bytes: int = Field(5 * 1024 * 1024)

    auth_rate_limit: str = Field("5/minute")
    rate_limit_enabled: bool = Field(True)

    log_level: str = Field("INFO")
    log_file: Optional[str] = Field(None)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()


settings = get_settings()
