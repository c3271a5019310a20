from datetime import datetime

from pydantic import Field, field_validator

from src.core.schemas import Base, CamelModel


class LoginUserModel(Base):
    username: str
    password: str


class RefreshTokenModel(CamelModel):
    refresh_token: str = Field(min_length=1)

    @field_validator("refresh_token")
    @classmethod
    def not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("refreshToken must not be blank")
        return v


class TokenPairModel(CamelModel):
    access_token: str
    refresh_token: str
    access_token_expires_at_millis: int


class ClaimsViewModel(Base):
    subject: str
    roles: list[str]
    token_type: str
    issuer: str
    issued_at: datetime
    expires_at: datetime
