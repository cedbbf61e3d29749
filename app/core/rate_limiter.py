from __future__ import annotations

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from threading import Lock
from typing import Callable

DEFAULT_LIMIT = 5
DEFAULT_WINDOW_SECONDS = 60
MAX_TRACKED_KEYS = 10_000


@dataclass
class RateLimitDecision:
    allowed: bool
    limit: int
    remaining: int
    retry_after_seconds: int


@dataclass
class _Window:
    started_at: float
    count: int = 0


class RateLimiterService(ABC):
    @abstractmethod
    def check(self, key: str) -> RateLimitDecision:
        """Consome uma requisição da chave e devolve a decisão completa."""

    def allow(self, key: str) -> bool:
        return self.check(key).allowed


class InMemoryRateLimiterService(RateLimiterService):
    """Janela fixa em memória por chave (ex.: IP do cliente).

    Estado por processo; a interface permite trocar por Redis/distribuído.
    """

    def __init__(
        self,
        *,
        limit: int = DEFAULT_LIMIT,
        window_seconds: int = DEFAULT_WINDOW_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.limit = limit
        self.window_seconds = window_seconds
        self._clock = clock
        self._store: dict[str, _Window] = {}
        self._lock = Lock()

    def check(self, key: str) -> RateLimitDecision:
        now = self._clock()

        with self._lock:
            if len(self._store) > MAX_TRACKED_KEYS:
                self._purge_expired(now)

            window = self._store.get(key)
            if window is None or now - window.started_at >= self.window_seconds:
                window = _Window(started_at=now)
                self._store[key] = window

            if window.count >= self.limit:
                retry_after = max(1, int(window.started_at + self.window_seconds - now))
                return RateLimitDecision(
                    allowed=False,
                    limit=self.limit,
                    remaining=0,
                    retry_after_seconds=retry_after,
                )

            window.count += 1
            return RateLimitDecision(
                allowed=True,
                limit=self.limit,
                remaining=max(0, self.limit - window.count),
                retry_after_seconds=0,
            )

    def purge_expired(self) -> int:
        with self._lock:
            return self._purge_expired(self._clock())

    def _purge_expired(self, now: float) -> int:
        expired = [key for key, window in self._store.items() if now - window.started_at >= self.window_seconds]
        for key in expired:
            del self._store[key]
        return len(expired)
