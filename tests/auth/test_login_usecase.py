import pytest

from src.auth.codec import TokenCodec
from src.auth.rotation import RefreshRotationService
from src.auth.schemas import LoginUserModel
from src.auth.usecases.login import INVALID_CREDENTIALS_MESSAGE, LoginUserUseCase
from src.core.errors.exceptions import UnauthorizedException
from src.main.config import AppConfig


@pytest.fixture
def use_case(rotation_service: RefreshRotationService) -> LoginUserUseCase:
    app_config = AppConfig(
        DEMO_USERNAME="svc-a", DEMO_PASSWORD="s3cret", DEMO_ROLES=["READ", "WRITE"]
    )
    return LoginUserUseCase(rotation_service, app_config)


def test_login_opens_session_with_configured_roles(
    use_case: LoginUserUseCase, codec: TokenCodec
) -> None:
    tokens = use_case.execute(LoginUserModel(username="svc-a", password="s3cret"))

    claims = codec.decode_strict(tokens.access_token)
    assert claims.subject == "svc-a"
    assert claims.roles == frozenset({"READ", "WRITE"})
    assert codec.is_refresh_token(tokens.refresh_token)


@pytest.mark.parametrize(
    "username,password", [("svc-a", "wrong"), ("svc-b", "s3cret"), ("", "")]
)
def test_login_rejects_bad_credentials(
    use_case: LoginUserUseCase, username: str, password: str
) -> None:
    with pytest.raises(UnauthorizedException) as exc_info:
        use_case.execute(LoginUserModel(username=username, password=password))

    assert exc_info.value.message == INVALID_CREDENTIALS_MESSAGE
