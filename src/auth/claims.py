from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import Any

from src.core.errors.exceptions import TokenAuthException, TokenErrorCode
from src.core.utils.datetime_utils import from_epoch_seconds, get_utc_now


class TokenType(StrEnum):
    ACCESS = "access"
    REFRESH = "refresh"


@dataclass(frozen=True, slots=True)
class Claims:
    """
    Decoded and verified content of a token.

    :ivar subject: Opaque principal identifier (``sub``).
    :ivar roles: Role names, possibly empty.
    :ivar token_type: Exactly one of ``access`` or ``refresh``.
    :ivar issuer: ``iss`` claim, empty when the token carries none.
    :ivar issued_at: ``iat`` as an aware UTC datetime.
    :ivar expires_at: ``exp`` as an aware UTC datetime.
    :ivar jti: Refresh token identifier, ``None`` for access tokens.
    """

    subject: str
    token_type: TokenType
    issued_at: datetime
    expires_at: datetime
    issuer: str = ""
    roles: frozenset[str] = field(default_factory=frozenset)
    jti: str | None = None

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "Claims":
        """
        Build claims from a signature-verified payload.

        :raises TokenAuthException: ``MALFORMED_TOKEN`` when the payload shape is wrong.
        """
        subject = payload.get("sub")
        if not isinstance(subject, str) or not subject:
            raise _malformed("Token has no subject")

        try:
            token_type = TokenType(payload.get("type"))
        except ValueError:
            raise _malformed("Token type must be 'access' or 'refresh'")

        roles = payload.get("roles") or []
        if not isinstance(roles, list) or not all(isinstance(r, str) for r in roles):
            raise _malformed("Token roles must be a list of strings")

        jti = payload.get("jti")
        if token_type is TokenType.REFRESH and (not isinstance(jti, str) or not jti):
            raise _malformed("Refresh token has no jti")

        iat = payload.get("iat")
        exp = payload.get("exp")
        if not isinstance(iat, int | float) or not isinstance(exp, int | float):
            raise _malformed("Token timestamps are missing")

        return cls(
            subject=subject,
            token_type=token_type,
            issued_at=from_epoch_seconds(iat),
            expires_at=from_epoch_seconds(exp),
            issuer=str(payload.get("iss") or ""),
            roles=frozenset(roles),
            jti=jti if token_type is TokenType.REFRESH else None,
        )

    def is_expired(self, now: datetime | None = None) -> bool:
        return self.expires_at <= (now or get_utc_now())

    def has_role(self, role: str) -> bool:
        return role in self.roles

    def has_any_role(self, *allowed: str) -> bool:
        return any(role in self.roles for role in allowed)


def _malformed(message: str) -> TokenAuthException:
    return TokenAuthException(TokenErrorCode.MALFORMED_TOKEN, message)
