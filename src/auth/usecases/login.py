import hmac

from fastapi import Depends

from loggers import get_logger
from src.auth.dependencies import get_app_config, get_rotation_service
from src.auth.rotation import IssuedTokens, RefreshRotationService
from src.auth.schemas import LoginUserModel
from src.core.errors.exceptions import UnauthorizedException
from src.main.config import AppConfig

INVALID_CREDENTIALS_MESSAGE = "Incorrect username or password."
logger = get_logger(__name__)


class LoginUserUseCase:
    """
    Demo login: checks the configured stub credentials and opens a session.

    There is no user registry behind this; it only exists to hand out a first
    token pair.
    """

    def __init__(
        self, rotation_service: RefreshRotationService, app_config: AppConfig
    ) -> None:
        self.rotation_service = rotation_service
        self.app_config = app_config

    def execute(self, data: LoginUserModel) -> IssuedTokens:
        username_ok = hmac.compare_digest(
            data.username.encode(), self.app_config.DEMO_USERNAME.encode()
        )
        password_ok = hmac.compare_digest(
            data.password.encode(), self.app_config.DEMO_PASSWORD.encode()
        )
        if not (username_ok and password_ok):
            logger.info("[LoginUser] Rejected credentials for '%s'", data.username)
            raise UnauthorizedException(INVALID_CREDENTIALS_MESSAGE)

        tokens = self.rotation_service.issue_session(
            data.username, self.app_config.DEMO_ROLES
        )
        logger.info("[LoginUser] Session opened for '%s'", data.username)
        return tokens


def get_login_user_use_case(
    rotation_service: RefreshRotationService = Depends(get_rotation_service),
    app_config: AppConfig = Depends(get_app_config),
) -> LoginUserUseCase:
    return LoginUserUseCase(rotation_service=rotation_service, app_config=app_config)
