from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from threading import Lock


@dataclass
class EndpointMetric:
    total_requests: int = 0
    total_duration_ms: float = 0.0
    error_count: int = 0


class InMemoryRequestMetrics:
    def __init__(self) -> None:
        self._metrics: dict[tuple[str, str], EndpointMetric] = {}
        self._lock = Lock()

    def observe(self, endpoint: str, method: str, status_code: int, duration_ms: float) -> None:
        key = (endpoint, method)
        with self._lock:
            metric = self._metrics.setdefault(key, EndpointMetric())
            metric.total_requests += 1
            metric.total_duration_ms += duration_ms
            if status_code >= 400:
                metric.error_count += 1

    def snapshot(self) -> dict[str, dict[str, float | int]]:
        with self._lock:
            result: dict[str, dict[str, float | int]] = {}
            for (endpoint, method), metric in self._metrics.items():
                avg = metric.total_duration_ms / metric.total_requests if metric.total_requests else 0.0
                result[f"{method} {endpoint}"] = {
                    "total_requests": metric.total_requests,
                    "total_duration_ms": round(metric.total_duration_ms, 2),
                    "avg_duration_ms": round(avg, 2),
                    "error_count": metric.error_count,
                }
            return result


class AccessMetrics:
    """Counts authorization outcomes so permission gaps show up as numbers, not empty lists."""

    def __init__(self) -> None:
        self._allowed: Counter[str] = Counter()
        self._denied: Counter[str] = Counter()
        self._denied_by_reason: Counter[str] = Counter()
        self._lock = Lock()

    def record_allow(self, permission: str) -> None:
        with self._lock:
            self._allowed[permission] += 1

    def record_deny(self, permission: str, reason: str) -> None:
        with self._lock:
            self._denied[permission] += 1
            self._denied_by_reason[reason] += 1

    def snapshot(self) -> dict[str, dict[str, int]]:
        with self._lock:
            return {
                "allowed": dict(self._allowed),
                "denied": dict(self._denied),
                "denied_by_reason": dict(self._denied_by_reason),
            }

    def reset(self) -> None:
        with self._lock:
            self._allowed.clear()
            self._denied.clear()
            self._denied_by_reason.clear()


request_metrics = InMemoryRequestMetrics()
access_metrics = AccessMetrics()
