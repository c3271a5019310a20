"""
Token codec: issues HS256-signed JWTs and verifies them back into claims.

The codec owns the signing key. It is read once at construction and cannot be
swapped afterwards; rotating the key means building a new codec.
"""

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import timedelta
from typing import Any
from uuid import uuid4

import jwt

from loggers import get_logger
from src.auth.claims import Claims, TokenType
from src.auth.jwt_payload_schema import JWTPayload
from src.core.errors.exceptions import (
    ConfigurationException,
    TokenAuthException,
    TokenErrorCode,
)
from src.core.utils.datetime_utils import get_utc_now

logger = get_logger(__name__)

ALGORITHM = "HS256"
MIN_SECRET_BYTES = 32
BEARER_PREFIX = "Bearer "


@dataclass(frozen=True, slots=True)
class VerificationResult:
    """Outcome of a verification attempt: either claims or an error code."""

    claims: Claims | None = None
    error: TokenErrorCode | None = None
    message: str | None = None

    @property
    def ok(self) -> bool:
        return self.claims is not None

    def unwrap(self) -> Claims:
        if self.claims is None:
            raise TokenAuthException(
                self.error or TokenErrorCode.INVALID_TOKEN, self.message
            )
        return self.claims


def strip_bearer_prefix(token: str) -> str:
    if token.startswith(BEARER_PREFIX):
        return token[len(BEARER_PREFIX) :]
    return token


class TokenCodec:
    def __init__(
        self,
        secret: str | None,
        issuer: str,
        access_ttl_millis: int,
        refresh_ttl_millis: int,
    ) -> None:
        if not secret or len(secret.encode("utf-8")) < MIN_SECRET_BYTES:
            raise ConfigurationException(
                f"JWT secret must be at least {MIN_SECRET_BYTES} bytes long "
                f"(256 bits) for {ALGORITHM}."
            )
        if not issuer or not issuer.strip():
            raise ConfigurationException("JWT issuer must not be blank.")

        self.__key = secret.encode("utf-8")
        self._issuer = issuer
        self._access_ttl = timedelta(milliseconds=access_ttl_millis)
        self._refresh_ttl = timedelta(milliseconds=refresh_ttl_millis)

    @property
    def issuer(self) -> str:
        return self._issuer

    @property
    def access_ttl(self) -> timedelta:
        return self._access_ttl

    @property
    def refresh_ttl(self) -> timedelta:
        return self._refresh_ttl

    # ----- Issuing ----- #
    def issue_access_token(self, subject: str, roles: Iterable[str]) -> str:
        """
        Create a signed access token carrying ``subject`` and ``roles``.
        """
        role_list = sorted(set(roles))
        token = self._encode(subject, TokenType.ACCESS, self._access_ttl, roles=role_list)
        logger.info("[TokenCodec] Access token issued for subject '%s'", subject)
        logger.debug("[TokenCodec] roles=%s, ttl=%s", role_list, self._access_ttl)
        return token

    def issue_refresh_token(self, subject: str, roles: Iterable[str] = ()) -> str:
        """
        Create a signed refresh token with a fresh ``jti``.

        ``roles`` are carried along so a rotated access token keeps them. The
        token is not registered anywhere; callers persist the ``jti``.
        """
        jti = str(uuid4())
        role_list = sorted(set(roles))
        token = self._encode(
            subject,
            TokenType.REFRESH,
            self._refresh_ttl,
            roles=role_list or None,
            jti=jti,
        )
        logger.info(
            "[TokenCodec] Refresh token issued for subject '%s' (jti=%s)", subject, jti
        )
        return token

    def _encode(
        self,
        subject: str,
        token_type: TokenType,
        ttl: timedelta,
        *,
        roles: list[str] | None = None,
        jti: str | None = None,
    ) -> str:
        now = get_utc_now()
        payload: JWTPayload = {
            "sub": subject,
            "iss": self._issuer,
            "iat": int(now.timestamp()),
            "exp": int((now + ttl).timestamp()),
            "type": token_type.value,
        }
        if roles is not None:
            payload["roles"] = roles
        if jti is not None:
            payload["jti"] = jti

        try:
            return jwt.encode(dict(payload), self.__key, algorithm=ALGORITHM)
        except Exception as exc:
            logger.error(
                "[TokenCodec] Failed to sign token for subject '%s': %s", subject, exc
            )
            raise

    # ----- Verification ----- #
    def verify(self, token: str | None, *, strict: bool = True) -> VerificationResult:
        """
        Verify ``token`` without raising on verification failures.

        With ``strict`` the issuer claim is required and must match; otherwise an
        issuer that is present must match but may be absent.
        """
        if not token:
            return VerificationResult(
                error=TokenErrorCode.MALFORMED_TOKEN, message="Token is missing"
            )
        raw = strip_bearer_prefix(token).strip()

        options: dict[str, Any] = {"require": ["sub", "exp", "iat"]}
        if strict:
            options["require"].append("iss")

        try:
            payload = jwt.decode(
                raw,
                self.__key,
                algorithms=[ALGORITHM],
                issuer=self._issuer if strict else None,
                options=options,
            )
            if not strict and payload.get("iss") not in (None, self._issuer):
                raise jwt.InvalidIssuerError("Invalid issuer")
            claims = Claims.from_payload(payload)
        except jwt.ExpiredSignatureError:
            return VerificationResult(
                error=TokenErrorCode.EXPIRED_TOKEN, message="Token expired"
            )
        except jwt.InvalidSignatureError:
            return VerificationResult(
                error=TokenErrorCode.INVALID_SIGNATURE,
                message="Token signature verification failed",
            )
        except jwt.DecodeError as exc:
            return VerificationResult(
                error=TokenErrorCode.MALFORMED_TOKEN, message=f"Malformed token: {exc}"
            )
        except jwt.PyJWTError as exc:
            return VerificationResult(
                error=TokenErrorCode.INVALID_TOKEN, message=f"Invalid token: {exc}"
            )
        except TokenAuthException as exc:
            return VerificationResult(error=exc.code, message=exc.message)

        return VerificationResult(claims=claims)

    def decode_and_verify(self, token: str) -> Claims:
        """
        Decode ``token`` (optionally ``Bearer ``-prefixed) into verified claims.

        :raises TokenAuthException: ``EXPIRED_TOKEN``, ``INVALID_SIGNATURE``,
            ``MALFORMED_TOKEN`` or ``INVALID_TOKEN``.
        """
        return self.verify(token, strict=False).unwrap()

    def decode_strict(self, token: str) -> Claims:
        """Like :meth:`decode_and_verify`, but the issuer claim is mandatory."""
        return self.verify(token, strict=True).unwrap()

    def is_valid(self, token: str | None) -> bool:
        """Coarse validity check for request gating. Never raises."""
        result = self.verify(token, strict=True)
        if result.claims is not None:
            logger.debug(
                "[TokenCodec] Token valid for subject '%s'", result.claims.subject
            )
            return True
        logger.warning("[TokenCodec] Token rejected: %s", result.message)
        return False

    def is_access_token(self, token: str | None) -> bool:
        result = self.verify(token)
        claims = result.claims
        return claims is not None and claims.token_type is TokenType.ACCESS

    def is_refresh_token(self, token: str | None) -> bool:
        result = self.verify(token)
        claims = result.claims
        return claims is not None and claims.token_type is TokenType.REFRESH
