"""
Application settings for ytlive.

This module defines all configuration settings for ytlive using Pydantic BaseSettings.
"""

from __future__ import annotations

import os
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Main application settings using Pydantic BaseSettings."""

    env: str = Field(default="dev", alias="YTLIVE_ENV")  # dev|prod|test
    log_level: str = Field(default="INFO", alias="YTLIVE_LOG_LEVEL")
    log_format: str = Field(default="json", alias="YTLIVE_LOG_FORMAT")  # json|console

    # Persistence
    database_url: str = Field(default="sqlite:///ytlive.db", alias="YTLIVE_DATABASE_URL")
    persist: bool = Field(default=True, alias="YTLIVE_PERSIST")
    echo_sql: bool = Field(default=False, alias="YTLIVE_ECHO_SQL")

    # Broadcaster
    ffmpeg_path: str = Field(default="", alias="YTLIVE_FFMPEG_PATH")  # empty: bundled or PATH
    rtmp_base_url: str = Field(default="rtmp://a.rtmp.youtube.com/live2", alias="YTLIVE_RTMP_BASE_URL")
    video_encoder: str = Field(default="auto", alias="YTLIVE_VIDEO_ENCODER")
    start_verify_seconds: float = Field(default=2.0, ge=0.0, alias="YTLIVE_START_VERIFY_SECONDS")
    stop_timeout_seconds: float = Field(default=3.0, gt=0.0, alias="YTLIVE_STOP_TIMEOUT_SECONDS")
    ffmpeg_log_dir: str = Field(default="logs", alias="YTLIVE_FFMPEG_LOG_DIR")

    # Runtime
    reconcile_interval_seconds: float = Field(default=3.0, gt=0.0, alias="YTLIVE_RECONCILE_INTERVAL_SECONDS")
    stop_retry_seconds: float = Field(default=10.0, ge=0.0, alias="YTLIVE_STOP_RETRY_SECONDS")
    batch_max_workers: int = Field(default=4, ge=1, alias="YTLIVE_BATCH_MAX_WORKERS")

    # HTTP API
    host: str = Field(default="127.0.0.1", alias="YTLIVE_HOST")
    port: int = Field(default=8420, alias="YTLIVE_PORT")

    model_config: SettingsConfigDict = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )


def _resolve_env_file() -> str | None:
    # 1) Explicit override
    explicit = os.getenv("YTLIVE_ENV_FILE")
    if explicit and Path(explicit).is_file():
        return explicit

    # 2) CWD .env
    cwd_env = Path.cwd() / ".env"
    if cwd_env.is_file():
        return str(cwd_env)
    return None


# Global settings instance (load from best-effort .env discovery)
_env_file = _resolve_env_file()
settings = Settings(_env_file=_env_file) if _env_file else Settings()  # type: ignore[call-arg]
