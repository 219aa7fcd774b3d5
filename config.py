from __future__ import annotations

import os
from functools import lru_cache

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator


class Settings(BaseModel):
    model_config = ConfigDict(extra="ignore")

    app_name: str = "Blog API"
    environment: str = "local"
    log_level: str = "INFO"
    # empty means: no database, keep everything in memory
    database_url: str = ""
    secret_key: str = "secrettoken123"
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 30
    allowed_origins: list[str] = Field(default_factory=lambda: ["*"])
    seed_demo_data: bool = True
    host: str = "0.0.0.0"
    port: int = 8080

    @field_validator("access_token_expire_minutes", "port")
    @classmethod
    def validate_positive_ints(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("Value must be greater than 0.")
        return value

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, value: str) -> str:
        return value.strip().upper() or "INFO"


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    value = raw.strip().lower()
    if value in {"1", "true", "yes", "y", "on"}:
        return True
    if value in {"0", "false", "no", "n", "off"}:
        return False
    raise ValueError(f"{name} must be boolean-like, got {raw!r}")


def _env_list(name: str, default: list[str]) -> list[str]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return list(default)
    return [item.strip() for item in raw.split(",") if item.strip()]


def load_settings(*, load_env: bool = True) -> Settings:
    """Build settings from `.env` and the process environment."""

    if load_env:
        load_dotenv()

    try:
        values: dict[str, object] = {
            "app_name": os.getenv("APP_NAME", "Blog API"),
            "environment": os.getenv("ENV", "local"),
            "log_level": os.getenv("LOG_LEVEL", "INFO"),
            "database_url": os.getenv("DATABASE_URL", ""),
            "secret_key": os.getenv("SECRET_KEY", "secrettoken123"),
            "jwt_algorithm": os.getenv("JWT_ALGORITHM", "HS256"),
            "access_token_expire_minutes": os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "30"),
            "allowed_origins": _env_list("ALLOWED_ORIGINS", ["*"]),
            "seed_demo_data": _env_bool("SEED_DEMO_DATA", True),
            "host": os.getenv("API_HOST", "0.0.0.0"),
            "port": os.getenv("API_PORT", "8080"),
        }
        return Settings.model_validate(values)
    except (ValidationError, ValueError) as exc:
        raise RuntimeError(f"Invalid environment configuration: {exc}") from exc


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return load_settings()
