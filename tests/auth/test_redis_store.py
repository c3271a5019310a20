from collections.abc import Callable
from datetime import timedelta
from typing import Any

import pytest
import redis

from src.auth.store.redis_store import (
    RECORD_PREFIX,
    SUBJECT_PREFIX,
    RedisRefreshTokenStore,
)
from src.core.errors.exceptions import InfrastructureException
from src.core.utils.datetime_utils import get_utc_now, to_epoch_millis
from tests.fakes.redis import InMemoryRedis


def test_save_writes_record_index_and_ttl(
    fake_redis: InMemoryRedis, redis_store: RedisRefreshTokenStore
) -> None:
    expires_at = get_utc_now() + timedelta(minutes=5)

    redis_store.save("jti-1", "svc-a", expires_at)

    assert fake_redis.hget(f"{RECORD_PREFIX}jti-1", "subject") == "svc-a"
    assert fake_redis.hget(f"{RECORD_PREFIX}jti-1", "expires_at") == str(
        to_epoch_millis(expires_at)
    )
    assert fake_redis.smembers(f"{SUBJECT_PREFIX}svc-a") == {"jti-1"}
    assert 0 < fake_redis.pttl(f"{RECORD_PREFIX}jti-1") <= 5 * 60 * 1000


def test_revoke_if_active_cleans_subject_index(
    fake_redis: InMemoryRedis, redis_store: RedisRefreshTokenStore
) -> None:
    redis_store.save("jti-1", "svc-a", get_utc_now() + timedelta(minutes=5))

    assert redis_store.revoke_if_active("jti-1")

    assert fake_redis.exists(f"{RECORD_PREFIX}jti-1") == 0
    assert fake_redis.smembers(f"{SUBJECT_PREFIX}svc-a") == set()


def test_purge_expired_drops_index_entries_of_expired_records(
    fake_redis: InMemoryRedis, redis_store: RedisRefreshTokenStore
) -> None:
    redis_store.save("old", "svc-a", get_utc_now() + timedelta(minutes=5))
    redis_store.save("new", "svc-a", get_utc_now() + timedelta(minutes=5))
    fake_redis.force_expire(f"{RECORD_PREFIX}old")

    assert redis_store.purge_expired() == 1
    assert fake_redis.smembers(f"{SUBJECT_PREFIX}svc-a") == {"new"}
    assert redis_store.purge_expired() == 0


def test_redis_errors_become_infrastructure_errors(
    fake_redis: InMemoryRedis, redis_store: RedisRefreshTokenStore
) -> None:
    fake_redis.fail_with = redis.ConnectionError("connection refused")

    with pytest.raises(InfrastructureException) as exc_info:
        redis_store.is_active("jti-1")

    assert exc_info.value.additional_info == {"operation": "is_active"}
    with pytest.raises(InfrastructureException):
        redis_store.revoke_if_active("jti-1")


class _SaveDuringRevokeAll(InMemoryRedis):
    """Runs ``on_first_read`` right before the first subject-index access."""

    def __init__(self) -> None:
        super().__init__()
        self.on_first_read: Callable[[], None] | None = None

    def _fire(self) -> None:
        callback, self.on_first_read = self.on_first_read, None
        if callback is not None:
            callback()

    def smembers(self, key: str | bytes) -> set[str]:
        self._fire()
        return super().smembers(key)

    def eval(self, script: str, numkeys: int, *keys_and_args: Any) -> int:
        self._fire()
        return super().eval(script, numkeys, *keys_and_args)


def test_save_racing_revoke_all_stays_reachable() -> None:
    fake = _SaveDuringRevokeAll()
    store = RedisRefreshTokenStore(fake)  # type: ignore[arg-type]
    store.save("a", "svc-a", get_utc_now() + timedelta(minutes=5))
    fake.on_first_read = lambda: store.save(
        "b", "svc-a", get_utc_now() + timedelta(minutes=5)
    )

    store.revoke_all_for_subject("svc-a")

    # A record that survived must still be in the index for the next kill-all
    if store.is_active("b"):
        assert "b" in fake.smembers(f"{SUBJECT_PREFIX}svc-a")
    assert store.revoke_all_for_subject("svc-a") in (0, 1)
    assert not store.is_active("b")


def test_rotate_moves_index_entry(
    fake_redis: InMemoryRedis, redis_store: RedisRefreshTokenStore
) -> None:
    redis_store.save("old", "svc-a", get_utc_now() + timedelta(minutes=5))

    assert redis_store.rotate(
        "old", "new", "svc-a", get_utc_now() + timedelta(minutes=5)
    )

    assert fake_redis.exists(f"{RECORD_PREFIX}old") == 0
    assert fake_redis.smembers(f"{SUBJECT_PREFIX}svc-a") == {"new"}
    assert 0 < fake_redis.pttl(f"{RECORD_PREFIX}new") <= 5 * 60 * 1000
