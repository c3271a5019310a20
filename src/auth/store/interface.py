from abc import ABC, abstractmethod
from datetime import datetime


class RefreshTokenStore(ABC):
    """
    Tracks outstanding refresh-token identifiers (``jti``).

    A record exists for every refresh token that has been issued and not yet
    rotated or revoked. Missing keys are reported through return values; none of
    the operations raise for normal conditions.
    """

    @abstractmethod
    def save(self, jti: str, subject: str, expires_at: datetime) -> None:
        """Insert or overwrite the record for ``jti``."""
        raise NotImplementedError

    @abstractmethod
    def is_active(self, jti: str) -> bool:
        """True iff a record exists and its expiration is strictly in the future."""
        raise NotImplementedError

    @abstractmethod
    def subject_for(self, jti: str) -> str | None:
        """Return the subject owning ``jti`` or None."""
        raise NotImplementedError

    @abstractmethod
    def revoke(self, jti: str) -> None:
        """Remove the record for ``jti``. Repeated calls are no-ops."""
        raise NotImplementedError

    @abstractmethod
    def revoke_all_for_subject(self, subject: str) -> int:
        """Remove every record owned by ``subject``; return how many were removed."""
        raise NotImplementedError

    @abstractmethod
    def revoke_if_active(self, jti: str) -> bool:
        """
        Atomically remove ``jti`` if it is active.

        Of several concurrent callers presenting the same active ``jti`` exactly
        one gets True.
        """
        raise NotImplementedError

    @abstractmethod
    def rotate(
        self, old_jti: str, new_jti: str, subject: str, expires_at: datetime
    ) -> bool:
        """
        Atomically replace active ``old_jti`` with a record for ``new_jti``.

        Returns False and writes nothing when ``old_jti`` is not active. No caller
        can observe the old record gone while the new one is still missing.
        """
        raise NotImplementedError

    @abstractmethod
    def purge_expired(self) -> int:
        """Remove records whose expiration has passed; return how many were removed."""
        raise NotImplementedError
