from functools import lru_cache
import json
import logging
import os
from typing import Any, Literal

from dotenv import dotenv_values
from pydantic import BaseModel, ConfigDict, Field, field_validator

logger = logging.getLogger(__name__)


def parse_str_list(v: Any) -> list[str]:
    """
    Accept a list, a JSON list string or a comma/semicolon separated string.
    """
    if isinstance(v, list):
        return [str(item) for item in v]
    if not isinstance(v, str):
        raise ValueError("Expected a list or a delimited string")
    if v.strip().startswith("[") and v.strip().endswith("]"):
        try:
            parsed = json.loads(v)
            if isinstance(parsed, list):
                return [str(item) for item in parsed]
        except json.JSONDecodeError:
            pass
    sep = "," if "," in v else ";"
    return [item.strip() for item in v.split(sep) if item.strip()]


class SentryConfig(BaseModel):
    SENTRY_DSN: str | None = None
    SENTRY_ENV: str = "development"
    SENTRY_ENABLED: bool = False

    model_config = ConfigDict(extra="ignore")


class RedisConfig(BaseModel):
    REFRESH_STORE_BACKEND: Literal["memory", "redis"] = "memory"

    REDIS_HOST: str = "localhost"
    REDIS_PORT: int = 6379
    REDIS_PASSWORD: str = ""
    REDIS_DATABASE: str = "0"

    model_config = ConfigDict(extra="ignore")

    @property
    def dsn(self) -> str:
        return (
            f"redis://:"
            f"{self.REDIS_PASSWORD}@"
            f"{self.REDIS_HOST}:"
            f"{self.REDIS_PORT}/"
            f"{self.REDIS_DATABASE}"
        )


class JWTConfig(BaseModel):
    JWT_SECRET: str
    JWT_ISSUER: str
    JWT_HEADER: str = "Authorization"

    # Negative values are accepted so already-expired tokens can be minted on purpose
    ACCESS_TOKEN_TTL_MILLIS: int = 15 * 60 * 1000
    REFRESH_TOKEN_TTL_MILLIS: int = 7 * 24 * 60 * 60 * 1000

    REFRESH_ENABLED: bool = True
    REFRESH_ROTATE: bool = True
    REUSE_DETECTION: bool = True

    PROTECTED_PATHS: list[str] = Field(["/api/*"])
    EXCLUDED_PATHS: list[str] = Field([])

    model_config = ConfigDict(extra="ignore")

    @field_validator("PROTECTED_PATHS", "EXCLUDED_PATHS", mode="before")
    @classmethod
    def parse_paths(cls, v: Any) -> list[str]:
        return parse_str_list(v)


class AppConfig(BaseModel):
    PROJECT_NAME: str = "token-lifecycle-service"
    VERSION: str = "0.1.0"
    DEBUG: bool = False
    TESTING: bool = False

    LOG_LEVEL: str = "INFO"
    LOG_LEVEL_FILE: str = "WARNING"

    CORS_ALLOWED_ORIGINS: list[str] = Field(["*"])
    CORS_ALLOW_CREDENTIALS: bool = True
    CORS_ALLOWED_METHODS: list[str] = Field(["*"])
    CORS_ALLOWED_HEADERS: list[str] = Field(["*"])

    # Stub credentials for the demo login endpoint
    DEMO_USERNAME: str = "admin"
    DEMO_PASSWORD: str = "password"
    DEMO_ROLES: list[str] = Field(["ADMIN", "USER"])

    model_config = ConfigDict(extra="ignore")

    @field_validator(
        "CORS_ALLOWED_ORIGINS",
        "CORS_ALLOWED_METHODS",
        "CORS_ALLOWED_HEADERS",
        "DEMO_ROLES",
        mode="before",
    )
    @classmethod
    def parse_list(cls, v: Any) -> list[str]:
        return parse_str_list(v)


class Config(BaseModel):
    app: AppConfig
    jwt: JWTConfig
    redis: RedisConfig
    sentry: SentryConfig

    model_config = ConfigDict(extra="ignore")


@lru_cache
def get_settings() -> Config:
    """
    Cached settings factory. Override in tests via monkeypatching or dependency overrides.
    """
    env_filename = ".env.test" if os.getenv("TESTING") == "true" else ".env"
    env_file_values = dotenv_values(env_filename)
    if not env_file_values:
        logger.info("No values loaded from %s; using the process environment", env_filename)
    merged_env: dict[str, Any] = {
        k: v
        for k, v in {**env_file_values, **dict(os.environ)}.items()
        if v is not None
    }

    return Config(
        app=AppConfig(**merged_env),
        jwt=JWTConfig(**merged_env),
        redis=RedisConfig(**merged_env),
        sentry=SentryConfig(**merged_env),
    )


config = get_settings()
