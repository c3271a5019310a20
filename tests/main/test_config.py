from pathlib import Path

from pydantic import ValidationError
import pytest

from src.main import config as config_module
from src.main.config import AppConfig, JWTConfig, RedisConfig, parse_str_list


def _jwt_data(**overrides: object) -> dict[str, object]:
    data: dict[str, object] = {
        "JWT_SECRET": "x" * 32,
        "JWT_ISSUER": "issuer",
    }
    data.update(overrides)
    return data


def test_parse_cors_list_json_string() -> None:
    app_config = AppConfig(CORS_ALLOWED_ORIGINS='["https://a.com", "https://b.com"]')

    assert app_config.CORS_ALLOWED_ORIGINS == ["https://a.com", "https://b.com"]


def test_parse_cors_list_semicolon_delimiter() -> None:
    app_config = AppConfig(CORS_ALLOWED_METHODS="GET;POST;PUT")

    assert app_config.CORS_ALLOWED_METHODS == ["GET", "POST", "PUT"]


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("/api/*, /admin/*", ["/api/*", "/admin/*"]),
        ("", []),
        (["/x"], ["/x"]),
    ],
)
def test_parse_str_list(raw: object, expected: list[str]) -> None:
    assert parse_str_list(raw) == expected


def test_jwt_defaults() -> None:
    jwt_config = JWTConfig(**_jwt_data())

    assert jwt_config.JWT_HEADER == "Authorization"
    assert jwt_config.ACCESS_TOKEN_TTL_MILLIS == 900_000
    assert jwt_config.REFRESH_TOKEN_TTL_MILLIS == 604_800_000
    assert jwt_config.REFRESH_ENABLED
    assert jwt_config.REFRESH_ROTATE
    assert jwt_config.REUSE_DETECTION
    assert jwt_config.PROTECTED_PATHS == ["/api/*"]
    assert jwt_config.EXCLUDED_PATHS == []


def test_jwt_paths_from_env_string() -> None:
    jwt_config = JWTConfig(
        **_jwt_data(PROTECTED_PATHS="/api/*,/admin/*", EXCLUDED_PATHS="/api/public/*")
    )

    assert jwt_config.PROTECTED_PATHS == ["/api/*", "/admin/*"]
    assert jwt_config.EXCLUDED_PATHS == ["/api/public/*"]


def test_jwt_secret_and_issuer_are_required() -> None:
    with pytest.raises(ValidationError):
        JWTConfig()


def test_negative_ttl_is_accepted() -> None:
    assert JWTConfig(**_jwt_data(ACCESS_TOKEN_TTL_MILLIS="-1000")).ACCESS_TOKEN_TTL_MILLIS == -1000


def test_unknown_store_backend_is_rejected() -> None:
    with pytest.raises(ValidationError):
        RedisConfig(REFRESH_STORE_BACKEND="memcached")


def test_redis_dsn() -> None:
    redis_config = RedisConfig(REDIS_HOST="cache", REDIS_PASSWORD="pw", REDIS_DATABASE="2")

    assert redis_config.dsn == "redis://:pw@cache:6379/2"


def test_get_settings_prefers_process_environment(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    (tmp_path / ".env.test").write_text(
        "JWT_SECRET=from-file-secret-that-is-long-enough\n"
        "JWT_ISSUER=file-issuer\n"
        "REFRESH_ROTATE=false\n"
    )
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("TESTING", "true")
    monkeypatch.setenv("JWT_ISSUER", "env-issuer")
    config_module.get_settings.cache_clear()

    try:
        settings = config_module.get_settings()
    finally:
        config_module.get_settings.cache_clear()

    assert settings.jwt.JWT_ISSUER == "env-issuer"
    assert settings.jwt.REFRESH_ROTATE is False
