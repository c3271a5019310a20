from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime
from typing import cast

import redis

from loggers import get_logger
from src.auth.redis_scripts import (
    REVOKE_ALL_FOR_SUBJECT_SCRIPT,
    REVOKE_IF_ACTIVE_SCRIPT,
    ROTATE_REFRESH_TOKEN_SCRIPT,
)
from src.auth.store.interface import RefreshTokenStore
from src.core.errors.exceptions import InfrastructureException
from src.core.utils.datetime_utils import get_utc_now, to_epoch_millis

logger = get_logger(__name__)

RECORD_PREFIX = "refresh:"
SUBJECT_PREFIX = "refresh:subject:"


@contextmanager
def _redis_errors(operation: str) -> Iterator[None]:
    try:
        yield
    except redis.RedisError as exc:
        logger.error("[RefreshStore] Redis %s failed: %s", operation, exc)
        raise InfrastructureException(
            "Refresh token store is unavailable", {"operation": operation}
        ) from exc


class RedisRefreshTokenStore(RefreshTokenStore):
    """
    Refresh token store shared by every server process through Redis.

    Layout: one hash ``refresh:{jti}`` holding ``subject`` and ``expires_at``
    (epoch millis) that expires together with the token, plus a set
    ``refresh:subject:{subject}`` of the subject's outstanding jti values.

    :param r: A Redis client created with ``decode_responses=True``.
    """

    def __init__(self, r: redis.Redis) -> None:
        self.r = r

    @staticmethod
    def _k(jti: str) -> str:
        return f"{RECORD_PREFIX}{jti}"

    @staticmethod
    def _ks(subject: str) -> str:
        return f"{SUBJECT_PREFIX}{subject}"

    def save(self, jti: str, subject: str, expires_at: datetime) -> None:
        expires_ms = to_epoch_millis(expires_at)
        ttl_ms = max(1, expires_ms - to_epoch_millis(get_utc_now()))
        key = self._k(jti)

        with _redis_errors("save"):
            previous = cast(str | None, self.r.hget(key, "subject"))
            pipe = self.r.pipeline(transaction=True)
            if previous is not None and previous != subject:
                pipe.srem(self._ks(previous), jti)
            pipe.hset(key, mapping={"subject": subject, "expires_at": str(expires_ms)})
            pipe.pexpire(key, ttl_ms)
            pipe.sadd(self._ks(subject), jti)
            pipe.execute()

    def is_active(self, jti: str) -> bool:
        with _redis_errors("is_active"):
            expires_at = cast(str | None, self.r.hget(self._k(jti), "expires_at"))
        if expires_at is None:
            return False
        return int(expires_at) > to_epoch_millis(get_utc_now())

    def subject_for(self, jti: str) -> str | None:
        with _redis_errors("subject_for"):
            return cast(str | None, self.r.hget(self._k(jti), "subject"))

    def revoke(self, jti: str) -> None:
        key = self._k(jti)
        with _redis_errors("revoke"):
            subject = cast(str | None, self.r.hget(key, "subject"))
            pipe = self.r.pipeline(transaction=True)
            pipe.delete(key)
            if subject is not None:
                pipe.srem(self._ks(subject), jti)
            pipe.execute()

    def revoke_all_for_subject(self, subject: str) -> int:
        # One script: no save may land between SMEMBERS and DEL
        with _redis_errors("revoke_all_for_subject"):
            result = self.r.eval(
                REVOKE_ALL_FOR_SUBJECT_SCRIPT, 1, self._ks(subject), RECORD_PREFIX
            )
        return int(cast(int, result))

    def revoke_if_active(self, jti: str) -> bool:
        with _redis_errors("revoke_if_active"):
            result = self.r.eval(
                REVOKE_IF_ACTIVE_SCRIPT,
                1,
                self._k(jti),
                str(to_epoch_millis(get_utc_now())),
                SUBJECT_PREFIX,
                jti,
            )
        return int(cast(int, result)) == 1

    def rotate(
        self, old_jti: str, new_jti: str, subject: str, expires_at: datetime
    ) -> bool:
        now_ms = to_epoch_millis(get_utc_now())
        expires_ms = to_epoch_millis(expires_at)
        with _redis_errors("rotate"):
            result = self.r.eval(
                ROTATE_REFRESH_TOKEN_SCRIPT,
                3,
                self._k(old_jti),
                self._k(new_jti),
                self._ks(subject),
                str(now_ms),
                SUBJECT_PREFIX,
                old_jti,
                new_jti,
                subject,
                str(expires_ms),
                str(max(1, expires_ms - now_ms)),
            )
        return int(cast(int, result)) == 1

    def purge_expired(self) -> int:
        """
        Drop index entries whose record hash has already expired in Redis.

        Record hashes carry their own TTL, so only the subject indexes can hold
        stale members.
        """
        removed = 0
        with _redis_errors("purge_expired"):
            for key_s in self.r.scan_iter(match=f"{SUBJECT_PREFIX}*"):
                members = cast(set[str], self.r.smembers(key_s))
                stale = [j for j in members if not self.r.exists(self._k(j))]
                if stale:
                    removed += int(cast(int, self.r.srem(key_s, *stale)))
        if removed:
            logger.info("[RefreshStore] Purged %s stale index entries", removed)
        return removed
