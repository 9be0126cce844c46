# shipping/carrier/token_provider.py

"""
======================================================
PATH: shipping/carrier/token_provider.py
======================================================
CARRIER TOKEN PROVIDER (process-wide)

Purpose:
- Cache ONE carrier bearer token per process.
- Refresh it when its effective lifetime (TTL - safety margin) runs out.
- Invalidate it eagerly when the carrier answers 401.

Rules:
- Refresh is single-flight: concurrent callers that find the cache empty
  wait on the same lock and reuse the token fetched by the first one.
- invalidate(token) only drops the cache if it still holds `token`, so a
  stale 401 from a slow worker cannot evict a token another worker just fetched.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable

logger = logging.getLogger(__name__)


class TokenProvider:
    def __init__(
        self,
        fetch: Callable[[], str],
        *,
        ttl_seconds: float,
        safety_margin_seconds: float = 0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._fetch = fetch
        self._lifetime = max(float(ttl_seconds) - float(safety_margin_seconds), 0.0)
        self._clock = clock
        self._lock = threading.Lock()
        self._token: str | None = None
        self._expires_at: float = 0.0
        self.refresh_count = 0

    def _cached(self) -> str | None:
        token, expires_at = self._token, self._expires_at
        if token and self._clock() < expires_at:
            return token
        return None

    def get(self) -> str:
        token = self._cached()
        if token:
            return token

        with self._lock:
            token = self._cached()
            if token:
                return token

            logger.info("Refreshing carrier auth token")
            token = self._fetch()
            self._token = token
            self._expires_at = self._clock() + self._lifetime
            self.refresh_count += 1
            return token

    def invalidate(self, token: str | None = None) -> None:
        with self._lock:
            if token is not None and token != self._token:
                return
            self._token = None
            self._expires_at = 0.0
        logger.info("Carrier auth token invalidated")
