"""Application configuration using pydantic-settings."""

from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    APP_NAME: str = "UniFi Stats"
    APP_VERSION: str = "1.0.36"
    DATABASE_URL: str = "sqlite:///./unifi_stats_sessions.db"
    DEBUG: bool = False

    # Browser session handling
    SESSION_COOKIE_NAME: str = "unifi_stats_session"
    COOKIE_TIMEOUT: int = 3600

    # Controller registry (JSON file); single-controller credentials otherwise
    CONTROLLERS_FILE: Optional[str] = None
    CONTROLLER_USER: str = ""
    CONTROLLER_PASSWORD: str = ""
    CONTROLLER_URL: str = ""
    CONTROLLER_NAME: str = "Controller"
    CONTROLLER_VERIFY_SSL: bool = False
    CONTROLLER_TIMEOUT: float = 10.0

    # Usage report
    USAGE_TIMEZONE: str = "UTC"
    DEFAULT_USAGE_DAYS: int = 30

    DEFAULT_OUTPUT_FORMAT: str = "json"
    DEFAULT_THEME: str = "bootstrap"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


settings = Settings()
