from dataclasses import dataclass
from datetime import datetime
import threading

from src.auth.store.interface import RefreshTokenStore
from src.core.utils.datetime_utils import ensure_aware_utc, get_utc_now


@dataclass(frozen=True, slots=True)
class _Record:
    subject: str
    expires_at: datetime


class InMemoryRefreshTokenStore(RefreshTokenStore):
    """
    Process-local refresh token store.

    .. note::
       Suitable for tests and single-process deployments only; several server
       processes need a shared backend such as
       :class:`~src.auth.store.redis_store.RedisRefreshTokenStore`.
    """

    def __init__(self) -> None:
        self._by_jti: dict[str, _Record] = {}
        self._by_subject: dict[str, set[str]] = {}
        self._lock = threading.Lock()

    def save(self, jti: str, subject: str, expires_at: datetime) -> None:
        with self._lock:
            previous = self._by_jti.get(jti)
            if previous is not None and previous.subject != subject:
                self._unindex(jti, previous.subject)
            self._by_jti[jti] = _Record(subject, ensure_aware_utc(expires_at))
            self._by_subject.setdefault(subject, set()).add(jti)

    def is_active(self, jti: str) -> bool:
        record = self._by_jti.get(jti)
        return record is not None and record.expires_at > get_utc_now()

    def subject_for(self, jti: str) -> str | None:
        record = self._by_jti.get(jti)
        return record.subject if record else None

    def revoke(self, jti: str) -> None:
        with self._lock:
            self._remove(jti)

    def revoke_all_for_subject(self, subject: str) -> int:
        with self._lock:
            jtis = self._by_subject.pop(subject, set())
            for jti in jtis:
                self._by_jti.pop(jti, None)
            return len(jtis)

    def revoke_if_active(self, jti: str) -> bool:
        with self._lock:
            record = self._by_jti.get(jti)
            if record is None or record.expires_at <= get_utc_now():
                return False
            self._remove(jti)
            return True

    def rotate(
        self, old_jti: str, new_jti: str, subject: str, expires_at: datetime
    ) -> bool:
        with self._lock:
            record = self._by_jti.get(old_jti)
            if record is None or record.expires_at <= get_utc_now():
                return False
            self._remove(old_jti)
            self._by_jti[new_jti] = _Record(subject, ensure_aware_utc(expires_at))
            self._by_subject.setdefault(subject, set()).add(new_jti)
            return True

    def purge_expired(self) -> int:
        now = get_utc_now()
        with self._lock:
            stale = [j for j, r in self._by_jti.items() if r.expires_at <= now]
            for jti in stale:
                self._remove(jti)
            return len(stale)

    # ----- helpers (lock held) ----- #
    def _remove(self, jti: str) -> None:
        record = self._by_jti.pop(jti, None)
        if record is not None:
            self._unindex(jti, record.subject)

    def _unindex(self, jti: str, subject: str) -> None:
        jtis = self._by_subject.get(subject)
        if jtis is None:
            return
        jtis.discard(jti)
        if not jtis:
            del self._by_subject[subject]
