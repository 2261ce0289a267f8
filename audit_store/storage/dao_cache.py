# ==============================================
# DaoCache
# ==============================================
#
# PURPOSE:
#   Memoizes one AuditLogDao per table name. Building a DAO creates
#   its table, so a build must happen at most once per key no matter
#   how many threads ask for it at the same time.
#
# HOW IT WORKS:
#   - One lock guards the entry map and the map of in-flight builds.
#   - The first caller for a missing key registers a Future and runs
#     the loader OUTSIDE the lock, so builds for different keys run
#     in parallel.
#   - Later callers for the same key find the Future and wait on it:
#     they get the same DAO, or the same failure.
#   - Failed builds are never cached; the next get() tries again.
#   - Entries idle for longer than `expire_after_access` seconds are
#     dropped when next looked up. When the cache holds more than
#     `maximum_size` entries the least recently used one goes.
#     Dropping an entry only drops the cache's reference; callers
#     already holding the DAO keep using it.
#
# CLASS: DaoCache
# ---------------
#   - __init__(loader, maximum_size=1000, expire_after_access=900.0, clock=time.monotonic)
#   - get(table_name) -> AuditLogDao      (raises CacheBuildError)
#   - invalidate(table_name) -> None
#   - invalidate_all() -> None
#   - __len__ / __contains__
#
# ==============================================

import logging
import threading
import time
from collections import OrderedDict
from concurrent.futures import Future
from dataclasses import dataclass
from typing import Callable, Dict, Generic, TypeVar

from audit_store.errors import CacheBuildError, ConfigurationError

logger = logging.getLogger(__name__)

V = TypeVar("V")


@dataclass
class _Entry(Generic[V]):
    value: V
    last_access: float


class DaoCache(Generic[V]):
    """Bounded, access-expiring cache that builds each key at most once at a time."""

    def __init__(
        self,
        loader: Callable[[str], V],
        maximum_size: int = 1000,
        expire_after_access: float = 15 * 60,
        clock: Callable[[], float] = time.monotonic,
    ):
        if maximum_size <= 0:
            raise ConfigurationError("maximum_size must be positive")
        if expire_after_access <= 0:
            raise ConfigurationError("expire_after_access must be positive")
        self._loader = loader
        self._maximum_size = maximum_size
        self._expire_after_access = expire_after_access
        self._clock = clock
        self._entries: "OrderedDict[str, _Entry[V]]" = OrderedDict()
        self._pending: Dict[str, Future] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> V:
        """
        Return the cached value for `key`, building it if needed.

        Args:
            key: Table name

        Returns:
            The single live value for the key

        Raises:
            CacheBuildError: the build failed (for every caller waiting on it)
        """
        with self._lock:
            now = self._clock()
            entry = self._entries.get(key)
            if entry is not None:
                if now - entry.last_access < self._expire_after_access:
                    entry.last_access = now
                    self._entries.move_to_end(key)
                    return entry.value
                del self._entries[key]
                logger.debug("Expired cached DAO for %s", key)

            pending = self._pending.get(key)
            is_builder = pending is None
            if is_builder:
                pending = Future()
                self._pending[key] = pending

        if not is_builder:
            error = pending.exception()
            if error is not None:
                raise CacheBuildError(key, error) from error
            return pending.result()

        return self._build(key, pending)

    def _build(self, key: str, pending: Future) -> V:
        logger.debug("Building DAO for %s", key)
        try:
            value = self._loader(key)
        except BaseException as e:
            # Waiters must be released even when the build is interrupted
            with self._lock:
                self._pending.pop(key, None)
            pending.set_exception(e)
            if not isinstance(e, Exception):
                raise
            raise CacheBuildError(key, e) from e

        with self._lock:
            self._entries[key] = _Entry(value=value, last_access=self._clock())
            self._entries.move_to_end(key)
            while len(self._entries) > self._maximum_size:
                evicted, _ = self._entries.popitem(last=False)
                logger.debug("Evicted cached DAO for %s", evicted)
            self._pending.pop(key, None)
        pending.set_result(value)
        return value

    def invalidate(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def invalidate_all(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: str) -> bool:
        with self._lock:
            return key in self._entries
