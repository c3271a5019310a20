"""
Refresh token rotation.

Exchanges a refresh token for a new access/refresh pair. With reuse detection
on, presenting a refresh token that is no longer active (already rotated,
revoked, unknown, or beaten by a concurrent request) is treated as theft and
revokes every outstanding session of the token's subject.
"""

from collections.abc import Iterable
from dataclasses import dataclass

from loggers import get_logger
from src.auth.claims import Claims, TokenType
from src.auth.codec import TokenCodec
from src.auth.store.interface import RefreshTokenStore
from src.core.errors.exceptions import TokenAuthException, TokenErrorCode
from src.core.utils.datetime_utils import get_utc_now, to_epoch_millis

logger = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class RefreshSettings:
    enabled: bool = True
    rotate: bool = True
    reuse_detection: bool = True


@dataclass(frozen=True, slots=True)
class IssuedTokens:
    access_token: str
    refresh_token: str
    access_token_expires_at_millis: int


class RefreshRotationService:
    def __init__(
        self,
        codec: TokenCodec,
        store: RefreshTokenStore,
        settings: RefreshSettings | None = None,
    ) -> None:
        self.codec = codec
        self.store = store
        self.settings = settings or RefreshSettings()

    def issue_session(self, subject: str, roles: Iterable[str]) -> IssuedTokens:
        """
        Issue a fresh access/refresh pair and register the refresh ``jti``.
        """
        tokens, refresh_claims = self._mint(subject, roles)
        self.store.save(
            str(refresh_claims.jti), refresh_claims.subject, refresh_claims.expires_at
        )
        return tokens

    def rotate(self, refresh_token: str) -> IssuedTokens:
        """
        Redeem ``refresh_token`` for a new token pair.

        :raises TokenAuthException: ``REFRESH_DISABLED``, ``EXPIRED_TOKEN``,
            ``INVALID_TOKEN``, ``INVALID_TOKEN_TYPE`` or ``REFRESH_REUSE_DETECTED``.
        """
        if not self.settings.enabled:
            raise TokenAuthException(
                TokenErrorCode.REFRESH_DISABLED, "Refresh token flow is disabled"
            )

        result = self.codec.verify(refresh_token, strict=True)
        if result.claims is None:
            if result.error is TokenErrorCode.EXPIRED_TOKEN:
                logger.info("[RefreshRotation] Expired refresh token presented")
                raise TokenAuthException(
                    TokenErrorCode.EXPIRED_TOKEN, "Refresh token expired"
                )
            logger.warning("[RefreshRotation] Rejected refresh token: %s", result.message)
            raise TokenAuthException(
                TokenErrorCode.INVALID_TOKEN, f"Invalid refresh token: {result.message}"
            )

        claims = result.claims
        if claims.token_type is not TokenType.REFRESH:
            logger.warning(
                "[RefreshRotation] Subject '%s' presented a %s token",
                claims.subject,
                claims.token_type,
            )
            raise TokenAuthException(
                TokenErrorCode.INVALID_TOKEN_TYPE, "Token type must be 'refresh'"
            )

        jti = str(claims.jti)
        tokens, successor = self._mint(claims.subject, claims.roles)
        if not self._redeem(jti, successor):
            revoked = self.store.revoke_all_for_subject(claims.subject)
            logger.error(
                "[RefreshRotation] Reuse of jti=%s detected for subject '%s'; "
                "revoked %s session(s)",
                jti,
                claims.subject,
                revoked,
            )
            raise TokenAuthException(
                TokenErrorCode.REFRESH_REUSE_DETECTED,
                "Refresh token reuse detected",
                {"subject": claims.subject, "revoked_sessions": revoked},
            )

        logger.info("[RefreshRotation] Rotated refresh token for '%s'", claims.subject)
        return tokens

    def _redeem(self, jti: str, successor: Claims) -> bool:
        """
        Consume ``jti`` according to the rotation flags and register
        ``successor``. False means reuse; nothing is registered then.

        With rotation and reuse detection both on, consuming the old record and
        saving the successor is one store operation, so a concurrent replay
        either finds the old record or finds the successor to revoke.
        """
        new_jti = str(successor.jti)
        if self.settings.reuse_detection and self.settings.rotate:
            return self.store.rotate(
                jti, new_jti, successor.subject, successor.expires_at
            )
        if self.settings.reuse_detection and not self.store.is_active(jti):
            return False
        if self.settings.rotate:
            self.store.revoke(jti)
        self.store.save(new_jti, successor.subject, successor.expires_at)
        return True

    def _mint(
        self, subject: str, roles: Iterable[str]
    ) -> tuple[IssuedTokens, Claims]:
        role_set = frozenset(roles)
        access_token = self.codec.issue_access_token(subject, role_set)
        refresh_token = self.codec.issue_refresh_token(subject, role_set)
        tokens = IssuedTokens(
            access_token=access_token,
            refresh_token=refresh_token,
            access_token_expires_at_millis=self._access_expiry_millis(),
        )
        return tokens, self.codec.decode_strict(refresh_token)

    def _access_expiry_millis(self) -> int:
        return to_epoch_millis(get_utc_now() + self.codec.access_ttl)
