import math
import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterator, Optional, Tuple, Type

from .errors import CacheTypeError, InvalidArgument, NotFound


@dataclass(frozen=True)
class CacheEntry:
    value: Any
    expires_at: float

    def expired(self, now: float) -> bool:
        return now >= self.expires_at


class _ReadWriteLock:
    """Shared/exclusive lock. Waiting writers block new readers."""

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    @contextmanager
    def shared(self) -> Iterator[None]:
        with self._cond:
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if not self._readers:
                    self._cond.notify_all()

    @contextmanager
    def exclusive(self) -> Iterator[None]:
        with self._cond:
            self._writers_waiting += 1
            try:
                while self._writer or self._readers:
                    self._cond.wait()
            finally:
                self._writers_waiting -= 1
            self._writer = True
        try:
            yield
        finally:
            with self._cond:
                self._writer = False
                self._cond.notify_all()


class ExpiringCache:
    """
    Thread-safe in-memory cache with a single TTL.

    Every entry expires ``ttl_seconds`` after it was written. Expired entries
    are dropped lazily on read; ``sweep`` reclaims the rest on demand.
    """

    def __init__(
        self,
        ttl_seconds: float,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if (
            isinstance(ttl_seconds, bool)
            or not isinstance(ttl_seconds, (int, float))
            or not math.isfinite(ttl_seconds)
            or ttl_seconds <= 0
        ):
            raise InvalidArgument("ttl_seconds must be a positive finite number.")
        self._ttl = float(ttl_seconds)
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}
        self._lock = _ReadWriteLock()

    @property
    def ttl(self) -> float:
        return self._ttl

    def get(self, key: str, expected_type: Optional[Type[Any]] = None) -> Any:
        """
        Return the live value stored under ``key``.

        Raises:
            NotFound: the key was never set, was removed, or has expired.
            CacheTypeError: ``expected_type`` is given and the value is not
                an instance of it.
        """
        with self._lock.shared():
            entry = self._entries.get(key)
            now = self._clock()
            live = entry is not None and not entry.expired(now)

        if entry is None:
            raise NotFound(f"Key '{key}' not found in cache.")

        if not live:
            with self._lock.exclusive():
                # Another writer may have refreshed the key in between.
                if self._entries.get(key) is entry:
                    del self._entries[key]
            raise NotFound(f"Key '{key}' not found in cache.")

        if expected_type is not None and not isinstance(entry.value, expected_type):
            raise CacheTypeError(
                f"Cached value for '{key}' is {type(entry.value).__name__}, "
                f"expected {expected_type.__name__}."
            )
        return entry.value

    def lookup(self, key: str) -> Tuple[Any, bool]:
        try:
            return self.get(key), True
        except NotFound:
            return None, False

    def set(self, key: str, value: Any) -> None:
        if not isinstance(key, str) or not key:
            raise InvalidArgument("Cache key must be a non-empty string.")
        if value is None:
            raise InvalidArgument(f"Refusing to cache None for key '{key}'.")

        with self._lock.exclusive():
            self._entries[key] = CacheEntry(value=value, expires_at=self._clock() + self._ttl)

    def delete(self, key: str) -> None:
        with self._lock.exclusive():
            self._entries.pop(key, None)

    def clear(self) -> None:
        with self._lock.exclusive():
            self._entries = {}

    def sweep(self) -> int:
        """Drop every expired entry and return how many were removed."""
        with self._lock.exclusive():
            now = self._clock()
            stale = [key for key, entry in self._entries.items() if entry.expired(now)]
            for key in stale:
                del self._entries[key]
        return len(stale)

    def __contains__(self, key: object) -> bool:
        if not isinstance(key, str):
            return False
        with self._lock.shared():
            entry = self._entries.get(key)
            return entry is not None and not entry.expired(self._clock())

    def __len__(self) -> int:
        with self._lock.shared():
            return len(self._entries)
