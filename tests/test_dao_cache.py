# ==============================================
# Tests for DaoCache
# ==============================================

import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from audit_store.errors import CacheBuildError, ConfigurationError
from audit_store.storage.dao_cache import DaoCache


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


class CountingLoader:
    """Loader that records how often each key was built."""

    def __init__(self, fail_times=0):
        self.calls = []
        self._fail_times = fail_times
        self._lock = threading.Lock()

    def __call__(self, key):
        with self._lock:
            self.calls.append(key)
            if self._fail_times > 0:
                self._fail_times -= 1
                raise RuntimeError(f"cannot create {key}")
        return object()


class TestBuildOnce:
    """Concurrent get() calls share one build."""

    def test_construction_rejects_bad_bounds(self):
        """Size and expiry must be positive."""
        with pytest.raises(ConfigurationError):
            DaoCache(CountingLoader(), maximum_size=0)
        with pytest.raises(ConfigurationError):
            DaoCache(CountingLoader(), expire_after_access=0)

    def test_hit_returns_same_value(self):
        """Second get() is served from the cache."""
        loader = CountingLoader()
        cache = DaoCache(loader)
        assert cache.get("audit") is cache.get("audit")
        assert loader.calls == ["audit"]
        assert "audit" in cache and len(cache) == 1

    def test_concurrent_first_access_builds_once(self):
        """Many threads racing on a missing key see one build and one value."""
        started = threading.Event()
        release = threading.Event()
        calls = []

        def slow_loader(key):
            calls.append(key)
            started.set()
            assert release.wait(5)
            return object()

        cache = DaoCache(slow_loader)
        with ThreadPoolExecutor(max_workers=8) as pool:
            futures = [pool.submit(cache.get, "audit") for _ in range(8)]
            assert started.wait(5)
            release.set()
            values = [f.result(timeout=5) for f in futures]

        assert calls == ["audit"]
        assert all(v is values[0] for v in values)

    def test_distinct_keys_build_in_parallel(self):
        """A slow build for one table does not block another table."""
        barrier = threading.Barrier(2, timeout=5)

        def loader(key):
            # Both builds must be in flight at once to get past the barrier
            barrier.wait()
            return key.upper()

        cache = DaoCache(loader)
        with ThreadPoolExecutor(max_workers=2) as pool:
            a = pool.submit(cache.get, "orders_audit")
            b = pool.submit(cache.get, "users_audit")
            assert a.result(timeout=5) == "ORDERS_AUDIT"
            assert b.result(timeout=5) == "USERS_AUDIT"


class TestFailures:
    """Failed builds surface as CacheBuildError and are not cached."""

    def test_failure_wraps_cause(self):
        """The builder gets CacheBuildError naming the key, with the cause chained."""
        cache = DaoCache(CountingLoader(fail_times=1))
        with pytest.raises(CacheBuildError, match="orders_audit") as info:
            cache.get("orders_audit")
        assert info.value.key == "orders_audit"
        assert isinstance(info.value.__cause__, RuntimeError)

    def test_failure_is_not_cached(self):
        """The next get() retries the build."""
        loader = CountingLoader(fail_times=1)
        cache = DaoCache(loader)
        with pytest.raises(CacheBuildError):
            cache.get("audit")
        assert "audit" not in cache
        assert cache.get("audit") is not None
        assert loader.calls == ["audit", "audit"]

    def test_waiters_see_the_same_failure(self):
        """Threads waiting on a failing build all get CacheBuildError."""
        started = threading.Event()
        release = threading.Event()

        def failing_loader(key):
            started.set()
            assert release.wait(5)
            raise RuntimeError("table creation failed")

        cache = DaoCache(failing_loader)
        with ThreadPoolExecutor(max_workers=4) as pool:
            futures = [pool.submit(cache.get, "audit") for _ in range(4)]
            assert started.wait(5)
            release.set()
            for future in futures:
                with pytest.raises(CacheBuildError, match="table creation failed"):
                    future.result(timeout=5)

    def test_interrupted_build_releases_the_key(self):
        """A loader killed by KeyboardInterrupt leaves the key buildable."""
        calls = []

        def loader(key):
            calls.append(key)
            if len(calls) == 1:
                raise KeyboardInterrupt
            return key.upper()

        cache = DaoCache(loader)
        with pytest.raises(KeyboardInterrupt):
            cache.get("audit")
        assert cache.get("audit") == "AUDIT"
        assert calls == ["audit", "audit"]

    def test_interrupted_build_releases_waiters(self):
        """Threads waiting on an interrupted build fail instead of blocking."""
        started = threading.Event()
        release = threading.Event()
        calls = []

        def loader(key):
            calls.append(key)
            if len(calls) == 1:
                started.set()
                assert release.wait(5)
                raise SystemExit(1)
            raise RuntimeError("table creation failed")

        cache = DaoCache(loader)
        with ThreadPoolExecutor(max_workers=2) as pool:
            builder = pool.submit(cache.get, "audit")
            assert started.wait(5)
            waiter = pool.submit(cache.get, "audit")
            release.set()
            with pytest.raises(SystemExit):
                builder.result(timeout=5)
            with pytest.raises(CacheBuildError):
                waiter.result(timeout=5)


class TestEviction:
    """Access expiry and size bound."""

    def test_idle_entry_expires(self):
        """An entry untouched for the expiry period is rebuilt."""
        clock = FakeClock()
        loader = CountingLoader()
        cache = DaoCache(loader, expire_after_access=900, clock=clock)
        first = cache.get("audit")
        clock.advance(900)
        assert cache.get("audit") is not first
        assert loader.calls == ["audit", "audit"]

    def test_access_refreshes_expiry(self):
        """Regular use keeps an entry alive past the expiry period."""
        clock = FakeClock()
        loader = CountingLoader()
        cache = DaoCache(loader, expire_after_access=900, clock=clock)
        first = cache.get("audit")
        for _ in range(3):
            clock.advance(600)
            assert cache.get("audit") is first
        assert loader.calls == ["audit"]

    def test_least_recently_used_is_evicted(self):
        """Over capacity, the entry used longest ago goes."""
        cache = DaoCache(CountingLoader(), maximum_size=2)
        cache.get("a")
        cache.get("b")
        cache.get("a")
        cache.get("c")
        assert "a" in cache and "c" in cache
        assert "b" not in cache
        assert len(cache) == 2

    def test_invalidate(self):
        """invalidate() drops one key, invalidate_all() drops everything."""
        loader = CountingLoader()
        cache = DaoCache(loader)
        cache.get("a")
        cache.get("b")
        cache.invalidate("a")
        assert "a" not in cache and "b" in cache
        cache.invalidate("missing")
        cache.invalidate_all()
        assert len(cache) == 0
