# src/area_client/config.py

from pathlib import Path
from typing import Any, Optional

from dotenv import load_dotenv
from loguru import logger
from pydantic import AnyHttpUrl, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Determine the base directory of this config file
# .env is at the project root, two levels up from src/area_client/
CONFIG_FILE_DIR = Path(__file__).resolve().parent
PROJECT_ROOT_DIR = CONFIG_FILE_DIR.parent.parent
ENV_FILE_PATH = PROJECT_ROOT_DIR / ".env"

if ENV_FILE_PATH.exists():
    load_dotenv(dotenv_path=ENV_FILE_PATH, override=False)
    logger.debug("area-client: loaded .env file from {}", ENV_FILE_PATH)
else:
    logger.debug("area-client: no .env file at {}, relying on environment variables", ENV_FILE_PATH)

LOG_LEVELS = ("TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL")


class Settings(BaseSettings):
    # === Backend ===
    # Prefix for every endpoint, e.g. http://localhost:8080
    AREA_API_URL: AnyHttpUrl
    AREA_REQUEST_TIMEOUT: float = 30.0

    # === Session ===
    AREA_TOKEN_REFRESH_BUFFER_SECONDS: int = 300
    # When unset the credential snapshot lives in memory only.
    AREA_CREDENTIALS_FILE: Optional[Path] = None

    # === Aggregation ===
    AREA_LOGS_DEFAULT_LIMIT: int = 50

    # === Logging ===
    AREA_LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=str(ENV_FILE_PATH),
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False
    )

    @property
    def api_base_url(self) -> str:
        return str(self.AREA_API_URL).rstrip("/")

    @property
    def refresh_buffer_ms(self) -> int:
        return self.AREA_TOKEN_REFRESH_BUFFER_SECONDS * 1000

    @field_validator("AREA_CREDENTIALS_FILE")
    @classmethod
    def expand_credentials_path(cls, v: Optional[Path]) -> Optional[Path]:
        return v.expanduser() if v else v

    @field_validator("AREA_LOG_LEVEL", mode='before')
    @classmethod
    def check_log_level(cls, v: Any) -> str:
        level = str(v).strip().upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"AREA_LOG_LEVEL must be one of {', '.join(LOG_LEVELS)}, got {v!r}")
        return level

    @field_validator("AREA_TOKEN_REFRESH_BUFFER_SECONDS", "AREA_LOGS_DEFAULT_LIMIT")
    @classmethod
    def check_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("must be a positive integer")
        return v


try:
    settings = Settings()
except Exception as e:
    logger.error("area-client: error instantiating Settings: {}", e)
    raise
