"""Online minutes from the remote time source, cached per user and month."""

from __future__ import annotations

import datetime as dt
import logging
import time
from collections import OrderedDict
from threading import RLock
from typing import Callable, Optional, Protocol, Tuple

from .workdays import month_bounds

DEFAULT_TTL_SECONDS = 30 * 60

logger = logging.getLogger(__name__)


class TimeSourceUser(Protocol):
    id: int
    ssm_api_token: Optional[str]


class WorkedMinutesSource(Protocol):
    def fetch_worked_minutes(self, token: str, start: dt.date, end: dt.date) -> int: ...


class MinutesCache(Protocol):
    def get(self, key: str) -> Optional[int]: ...

    def set(self, key: str, value: int, ttl_seconds: float) -> None: ...


class InMemoryTTLCache:
    """Thread-safe LRU cache whose entries expire after their own TTL."""

    def __init__(self, max_entries: int = 1024, clock: Callable[[], float] = time.monotonic) -> None:
        if max_entries < 1:
            raise ValueError("max_entries must be >= 1")
        self._max_entries = max_entries
        self._clock = clock
        self._lock = RLock()
        # key -> (value, expires_at)
        self._data: "OrderedDict[str, Tuple[int, float]]" = OrderedDict()

    def get(self, key: str) -> Optional[int]:
        with self._lock:
            entry = self._data.get(key)
            if entry is None:
                return None
            value, expires_at = entry
            if self._clock() >= expires_at:
                del self._data[key]
                return None
            self._data.move_to_end(key)
            return value

    def set(self, key: str, value: int, ttl_seconds: float) -> None:
        with self._lock:
            if key in self._data:
                del self._data[key]
            elif len(self._data) >= self._max_entries:
                self._data.popitem(last=False)
            self._data[key] = (value, self._clock() + ttl_seconds)

    def clear(self) -> None:
        with self._lock:
            self._data.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)


def has_online_source(user: TimeSourceUser) -> bool:
    token = getattr(user, "ssm_api_token", None)
    return bool(token and str(token).strip())


def cache_key(user_id: int, now: dt.datetime) -> str:
    return f"ssm_monthly_{user_id}_{now:%Y-%m}"


class OnlineMinutesProvider:
    """Returns the current month's online minutes, never raising on remote failures."""

    def __init__(
        self,
        source: WorkedMinutesSource,
        cache: MinutesCache,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
    ) -> None:
        self.source = source
        self.cache = cache
        self.ttl_seconds = ttl_seconds

    def get_monthly_online_minutes(self, user: TimeSourceUser, now: dt.datetime) -> int:
        if not has_online_source(user):
            return 0

        key = cache_key(user.id, now)
        cached = self.cache.get(key)
        if cached is not None:
            logger.debug("Online minutes cache hit key=%s", key)
            return cached

        start, _ = month_bounds(now.date())
        try:
            minutes = int(self.source.fetch_worked_minutes(str(user.ssm_api_token).strip(), start, now.date()))
        except Exception as exc:
            logger.error("SSM monthly fetch failed for user %s: %s", user.id, exc)
            minutes = 0
        self.cache.set(key, minutes, self.ttl_seconds)
        return minutes


__all__ = [
    "InMemoryTTLCache",
    "MinutesCache",
    "OnlineMinutesProvider",
    "TimeSourceUser",
    "cache_key",
    "has_online_source",
]
