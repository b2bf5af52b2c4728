from __future__ import annotations

import json
from functools import lru_cache
from pathlib import Path
from typing import Annotated, Any

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

# services/api/tipster/core/config.py -> BASE_DIR == services/api
BASE_DIR = Path(__file__).resolve().parents[2]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=str(BASE_DIR / ".env"),
        extra="ignore",
        env_prefix="",
        case_sensitive=False,
    )

    # Environment
    env: str = Field(default="dev", validation_alias="ENV")

    # Application
    api_name: str = Field(default="tipster-api", validation_alias="API_NAME")
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")

    # Prediction backend
    backend_url: str = Field(
        default="http://localhost:8000", validation_alias="BACKEND_URL"
    )
    backend_api_key: str = Field(default="", validation_alias="BACKEND_API_KEY")
    # Unset means no client-side timeout; callers own cancellation.
    backend_timeout_secs: float | None = Field(
        default=None, validation_alias="BACKEND_TIMEOUT_SECS"
    )

    # Availability / enrichment
    availability_batch_size: int = Field(
        default=100, validation_alias="AVAILABILITY_BATCH_SIZE"
    )
    availability_staleness_hours: int = Field(
        default=168, validation_alias="AVAILABILITY_STALENESS_HOURS"
    )
    enrich_delay_secs: float = Field(
        default=0.3, validation_alias="ENRICH_DELAY_SECS"
    )
    cron_secret: str | None = Field(default=None, validation_alias="CRON_SECRET")

    # Cache
    redis_url: str = Field(
        default="redis://localhost:6379/0", validation_alias="REDIS_URL"
    )

    @field_validator("backend_url", mode="before")
    @classmethod
    def strip_backend_url(cls, v: Any) -> str:
        if v is None:
            return ""
        if not isinstance(v, str):
            raise TypeError("BACKEND_URL must be a string")
        return v.strip().rstrip("/")

    @field_validator("backend_timeout_secs", mode="before")
    @classmethod
    def empty_timeout_is_none(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        return v

    # CORS
    cors_origins: Annotated[list[str], NoDecode] = Field(
        default_factory=lambda: ["http://localhost:3000"],
        validation_alias="CORS_ORIGINS",
    )

    @field_validator("cors_origins", mode="before")
    @classmethod
    def parse_cors_origins(cls, v: Any) -> list[str]:
        """
        Supported env formats:
          - JSON list: '["http://localhost:3000"]'
          - Bracket list (no quotes): '[http://localhost:3000, http://localhost:5173]'
          - Comma-separated: 'http://localhost:3000, http://localhost:5173'
          - '*' wildcard
        """
        if v is None:
            return []
        if isinstance(v, list):
            return [str(x).strip() for x in v if str(x).strip()]
        if not isinstance(v, str):
            raise TypeError("cors_origins must be a string or list of strings")

        s = v.strip()
        if not s:
            return []
        if s == "*":
            return ["*"]

        if s.startswith("[") and s.endswith("]"):
            try:
                parsed = json.loads(s)
                if isinstance(parsed, list):
                    return [str(x).strip() for x in parsed if str(x).strip()]
            except json.JSONDecodeError:
                inner = s[1:-1].strip()
                if not inner:
                    return []
                parts = [p.strip().strip('"').strip("'") for p in inner.split(",")]
                return [p for p in parts if p]

        parts = [p.strip() for p in s.split(",")]
        return [p for p in parts if p]

    # Workers
    worker_job_timeout_secs: int = Field(
        default=600, validation_alias="WORKER_JOB_TIMEOUT_SECS"
    )

    # OpenTelemetry
    otel_enabled: bool = Field(default=False, validation_alias="OTEL_ENABLED")
    otel_otlp_endpoint: str = Field(
        default="http://localhost:4317",
        validation_alias="OTEL_OTLP_ENDPOINT",
    )


@lru_cache
def get_settings() -> Settings:
    return Settings()
