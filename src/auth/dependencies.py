from typing import cast

from fastapi import Depends, Request, Security
from fastapi.security.api_key import APIKeyHeader

from src.auth.claims import Claims
from src.auth.codec import BEARER_PREFIX, TokenCodec
from src.auth.rotation import RefreshRotationService
from src.auth.store.interface import RefreshTokenStore
from src.core.errors.exceptions import UnauthorizedException
from src.main.config import AppConfig, config

access_token_header = APIKeyHeader(
    name=config.jwt.JWT_HEADER, scheme_name="access-token", auto_error=False
)


def _from_state(request: Request, name: str) -> object:
    value = getattr(request.app.state, name, None)
    if value is None:
        raise RuntimeError(
            f"{name} is not initialized. Ensure the application factory ran."
        )
    return value


def get_token_codec(request: Request) -> TokenCodec:
    return cast(TokenCodec, _from_state(request, "token_codec"))


def get_refresh_token_store(request: Request) -> RefreshTokenStore:
    return cast(RefreshTokenStore, _from_state(request, "refresh_token_store"))


def get_rotation_service(request: Request) -> RefreshRotationService:
    return cast(RefreshRotationService, _from_state(request, "rotation_service"))


def get_app_config(request: Request) -> AppConfig:
    return cast(AppConfig, _from_state(request, "app_config"))


def get_bearer_token(
    request: Request, _: str | None = Security(access_token_header)
) -> str:
    """
    Raw token for the request: the one the auth gate attached, or the
    configured JWT header on paths the gate does not cover.
    """
    header_name = cast(str, _from_state(request, "jwt_header"))
    token = getattr(request.state, "jwt", None)
    if token is None:
        token = request.headers.get(header_name, "").removeprefix(BEARER_PREFIX)
    if not token:
        raise UnauthorizedException("Authentication token not found")
    return cast(str, token)


def get_current_claims(
    token: str = Depends(get_bearer_token),
    codec: TokenCodec = Depends(get_token_codec),
) -> Claims:
    """Verified claims of the bearer token; raises TokenAuthException on failure."""
    return codec.decode_strict(token)
