from typing import Annotated

from fastapi import APIRouter, Depends, Query

from src.auth.claims import Claims
from src.auth.codec import TokenCodec
from src.auth.dependencies import (
    get_bearer_token,
    get_current_claims,
    get_rotation_service,
    get_token_codec,
)
from src.auth.rotation import IssuedTokens, RefreshRotationService
from src.auth.schemas import (
    ClaimsViewModel,
    LoginUserModel,
    RefreshTokenModel,
    TokenPairModel,
)
from src.auth.usecases.login import LoginUserUseCase, get_login_user_use_case

auth_router = APIRouter()
verification_router = APIRouter()


def _token_pair(tokens: IssuedTokens) -> TokenPairModel:
    return TokenPairModel(
        access_token=tokens.access_token,
        refresh_token=tokens.refresh_token,
        access_token_expires_at_millis=tokens.access_token_expires_at_millis,
    )


@auth_router.post(
    "/login", response_model=TokenPairModel, response_model_by_alias=True
)
def login_user(
    login_form_data: LoginUserModel,
    use_case: Annotated[LoginUserUseCase, Depends(get_login_user_use_case)],
) -> TokenPairModel:
    """
    Demo login returning an access token and a refresh token.
    """
    return _token_pair(use_case.execute(data=login_form_data))


@auth_router.post(
    "/refresh", response_model=TokenPairModel, response_model_by_alias=True
)
def refresh_tokens(
    data: RefreshTokenModel,
    rotation_service: Annotated[
        RefreshRotationService, Depends(get_rotation_service)
    ],
) -> TokenPairModel:
    """
    Exchange a refresh token for a new token pair. The presented refresh token
    is consumed.
    """
    return _token_pair(rotation_service.rotate(data.refresh_token))


@verification_router.get("/verify", response_model=bool)
def verify_token(
    token: Annotated[str, Depends(get_bearer_token)],
    codec: Annotated[TokenCodec, Depends(get_token_codec)],
) -> bool:
    """Whether the bearer token is valid and properly signed."""
    return codec.is_valid(token)


@verification_router.get("/me", response_model=ClaimsViewModel)
def read_current_claims(
    claims: Annotated[Claims, Depends(get_current_claims)],
) -> ClaimsViewModel:
    return ClaimsViewModel(
        subject=claims.subject,
        roles=sorted(claims.roles),
        token_type=claims.token_type.value,
        issuer=claims.issuer,
        issued_at=claims.issued_at,
        expires_at=claims.expires_at,
    )


@verification_router.get("/is-admin", response_model=bool)
def is_admin(claims: Annotated[Claims, Depends(get_current_claims)]) -> bool:
    return claims.has_role("ADMIN")


@verification_router.get("/has-role", response_model=bool)
def has_any_role(
    claims: Annotated[Claims, Depends(get_current_claims)],
    roles: Annotated[list[str], Query()],
) -> bool:
    """Whether the bearer token carries at least one of ``roles``."""
    return claims.has_any_role(*roles)
