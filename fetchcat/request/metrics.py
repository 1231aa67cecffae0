"""Metrics collection for request execution."""

from dataclasses import dataclass, field
from typing import ClassVar


@dataclass
class RequestMetrics:
    """Process-wide counters for executor attempts.

    Singleton class that tracks attempts, retries, failures by kind,
    responses by status code, bytes received and time spent.
    """

    attempts_total: int = 0
    retries_total: int = 0
    failures_total: dict[str, int] = field(default_factory=dict)
    responses_total: dict[int, int] = field(default_factory=dict)
    bytes_total: int = 0
    duration_ms_total: float = 0.0

    _instance: ClassVar["RequestMetrics | None"] = None

    @classmethod
    def get_instance(cls) -> "RequestMetrics":
        """Get singleton metrics instance."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Reset metrics (primarily for testing)."""
        cls._instance = None

    def record_attempt(self) -> None:
        """Record the start of an attempt."""
        self.attempts_total += 1

    def record_retry(self) -> None:
        """Record that a failed attempt will be retried."""
        self.retries_total += 1

    def record_failure(self, kind: str) -> None:
        """Record a failed attempt.

        Args:
            kind: Error kind (transport code or "http_status").
        """
        self.failures_total[kind] = self.failures_total.get(kind, 0) + 1

    def record_response(self, status_code: int, bytes_received: int) -> None:
        """Record a completed round trip.

        Args:
            status_code: Final HTTP status code.
            bytes_received: Number of body bytes accepted.
        """
        self.responses_total[status_code] = self.responses_total.get(status_code, 0) + 1
        self.bytes_total += bytes_received

    def record_duration(self, duration_ms: float) -> None:
        """Record time spent in one attempt."""
        self.duration_ms_total += duration_ms

    def to_dict(self) -> dict[str, int | float | dict[str, int] | dict[int, int]]:
        """Convert metrics to dictionary.

        Returns:
            Dictionary of metric name to value.
        """
        return {
            "attempts_total": self.attempts_total,
            "retries_total": self.retries_total,
            "failures_total": dict(self.failures_total),
            "responses_total": dict(self.responses_total),
            "bytes_total": self.bytes_total,
            "duration_ms_total": self.duration_ms_total,
        }
