from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from threading import Lock


def status_class(status_code: int) -> str:
    return f"{status_code // 100}xx"


@dataclass
class RouteStats:
    requests: int = 0
    duration_ms_total: float = 0.0
    duration_ms_max: float = 0.0
    rate_limited: int = 0
    by_status: Counter = field(default_factory=Counter)

    def add(self, status_code: int, duration_ms: float) -> None:
        self.requests += 1
        self.duration_ms_total += duration_ms
        self.duration_ms_max = max(self.duration_ms_max, duration_ms)
        self.by_status[status_class(status_code)] += 1
        if status_code == 429:
            self.rate_limited += 1

    @property
    def errors(self) -> int:
        return self.by_status["4xx"] + self.by_status["5xx"]

    def as_dict(self) -> dict:
        avg = self.duration_ms_total / self.requests if self.requests else 0.0
        return {
            "requests": self.requests,
            "errors": self.errors,
            "rate_limited": self.rate_limited,
            "avg_duration_ms": round(avg, 2),
            "max_duration_ms": round(self.duration_ms_max, 2),
            "by_status": dict(sorted(self.by_status.items())),
        }


class InMemoryRequestMetrics:
    """Contadores por rota (template do FastAPI) e método, por processo."""

    def __init__(self) -> None:
        self._routes: dict[tuple[str, str], RouteStats] = {}
        self._lock = Lock()

    def observe(self, endpoint: str, method: str, status_code: int, duration_ms: float) -> None:
        with self._lock:
            stats = self._routes.setdefault((method, endpoint), RouteStats())
            stats.add(status_code, duration_ms)

    def snapshot(self) -> dict[str, dict]:
        with self._lock:
            return {
                f"{method} {endpoint}": stats.as_dict()
                for (method, endpoint), stats in sorted(self._routes.items())
            }

    def reset(self) -> None:
        with self._lock:
            self._routes.clear()


request_metrics = InMemoryRequestMetrics()
