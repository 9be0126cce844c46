# shipping/tests/test_token_provider.py

import threading
import time

from django.test import SimpleTestCase

from shipping.carrier.token_provider import TokenProvider


class _Clock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


class TokenProviderTests(SimpleTestCase):
    """
    GUARANTEES:
    - one fetch per effective lifetime (TTL - safety margin)
    - invalidate() drops only the token it names
    - concurrent cold-cache callers share ONE fetch
    """

    def _provider(self, *, ttl=100, margin=10, clock=None):
        issued = []

        def fetch():
            issued.append(f"tok-{len(issued) + 1}")
            return issued[-1]

        provider = TokenProvider(fetch, ttl_seconds=ttl, safety_margin_seconds=margin, clock=clock or _Clock())
        return provider, issued

    def test_token_cached_until_margin(self):
        clock = _Clock()
        provider, issued = self._provider(clock=clock)

        self.assertEqual(provider.get(), "tok-1")
        clock.now += 89
        self.assertEqual(provider.get(), "tok-1")

        clock.now += 1
        self.assertEqual(provider.get(), "tok-2")
        self.assertEqual(len(issued), 2)
        self.assertEqual(provider.refresh_count, 2)

    def test_invalidate_current_token_forces_refresh(self):
        provider, issued = self._provider()

        token = provider.get()
        provider.invalidate(token)

        self.assertEqual(provider.get(), "tok-2")
        self.assertEqual(len(issued), 2)

    def test_invalidate_stale_token_is_ignored(self):
        provider, issued = self._provider()

        provider.get()
        provider.invalidate("tok-0")

        self.assertEqual(provider.get(), "tok-1")
        self.assertEqual(len(issued), 1)

    def test_invalidate_without_token_always_clears(self):
        provider, _ = self._provider()

        provider.get()
        provider.invalidate()

        self.assertEqual(provider.get(), "tok-2")

    def test_concurrent_callers_share_single_fetch(self):
        calls = []

        def slow_fetch():
            calls.append(1)
            time.sleep(0.05)
            return "shared"

        provider = TokenProvider(slow_fetch, ttl_seconds=3600)
        barrier = threading.Barrier(8)
        results = []
        lock = threading.Lock()

        def worker():
            barrier.wait()
            token = provider.get()
            with lock:
                results.append(token)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        self.assertEqual(results, ["shared"] * 8)
        self.assertEqual(len(calls), 1)
        self.assertEqual(provider.refresh_count, 1)

    def test_failed_fetch_leaves_cache_empty(self):
        attempts = []

        def flaky_fetch():
            attempts.append(1)
            if len(attempts) == 1:
                raise RuntimeError("login down")
            return "recovered"

        provider = TokenProvider(flaky_fetch, ttl_seconds=60)

        with self.assertRaises(RuntimeError):
            provider.get()
        self.assertEqual(provider.get(), "recovered")
        self.assertEqual(provider.refresh_count, 1)
