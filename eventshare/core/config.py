"""Application configuration via environment variables."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings loaded from environment variables or .env file."""
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    # Application
    app_name: str = "Event Sharing Service"
    debug: bool = False

    # Server
    host: str = "0.0.0.0"
    port: int = 8000
    allowed_origins: str = "*"  # Comma-separated origins, or "*" for all

    # Database
    database_url: str = "sqlite:///./eventshare.db"

    # Logging
    log_dir: str = "~/.logs/eventshare"

    # Redaction
    redacted_title: str = "Busy"  # Shown instead of the title of a time-block view
    redacted_color: str = "gray"


settings = Settings()
