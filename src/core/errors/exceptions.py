from enum import StrEnum
from typing import Any


class CoreException(Exception):
    def __init__(
        self, message: str | None = None, additional_info: dict[str, Any] | None = None
    ):
        super().__init__(message)
        self.message = message
        self.additional_info = additional_info


class InfrastructureException(CoreException):
    pass


class ConfigurationException(CoreException):
    pass


class UnauthorizedException(CoreException):
    pass


class TokenErrorCode(StrEnum):
    EXPIRED_TOKEN = "EXPIRED_TOKEN"
    INVALID_TOKEN = "INVALID_TOKEN"
    INVALID_SIGNATURE = "INVALID_SIGNATURE"
    MALFORMED_TOKEN = "MALFORMED_TOKEN"
    INVALID_TOKEN_TYPE = "INVALID_TOKEN_TYPE"
    REFRESH_REUSE_DETECTED = "REFRESH_REUSE_DETECTED"
    REFRESH_DISABLED = "REFRESH_DISABLED"


class TokenAuthException(CoreException):
    """Token lifecycle failure carrying a machine-readable code."""

    def __init__(
        self,
        code: TokenErrorCode,
        message: str | None = None,
        additional_info: dict[str, Any] | None = None,
    ):
        super().__init__(message, additional_info)
        self.code = code
