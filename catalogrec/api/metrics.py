"""Metrics service for recommendation requests.

Singleton service counting recommendation requests and their latency.
"""

import threading
from typing import Dict


class MetricsService:
    """Thread-safe singleton tracking recommendation request latency."""

    _instance = None
    _lock = threading.Lock()

    def __new__(cls):
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = super(MetricsService, cls).__new__(cls)
                    cls._instance._initialized = False
        return cls._instance

    def __init__(self):
        if self._initialized:
            return

        self._lock = threading.Lock()
        self._request_count = 0
        self._total_latency_ms = 0.0
        self._min_latency_ms = float("inf")
        self._max_latency_ms = 0.0
        self._initialized = True

    def record_request(self, latency_ms: float) -> None:
        """Record one recommendation request.

        Args:
            latency_ms: Latency in milliseconds
        """
        with self._lock:
            self._request_count += 1
            self._total_latency_ms += latency_ms
            self._min_latency_ms = min(self._min_latency_ms, latency_ms)
            self._max_latency_ms = max(self._max_latency_ms, latency_ms)

    def get_metrics(self) -> Dict:
        """Get current metrics.

        Returns:
            Dictionary with:
            - request_count: Total number of recommendation requests
            - average_latency_ms: Average latency in milliseconds
            - min_latency_ms: Minimum latency observed
            - max_latency_ms: Maximum latency observed
        """
        with self._lock:
            avg_latency = (
                self._total_latency_ms / self._request_count
                if self._request_count > 0
                else 0.0
            )
            min_latency = (
                self._min_latency_ms if self._min_latency_ms != float("inf") else 0.0
            )

            return {
                "request_count": self._request_count,
                "average_latency_ms": round(avg_latency, 2),
                "min_latency_ms": round(min_latency, 2),
                "max_latency_ms": round(self._max_latency_ms, 2),
            }

    def reset(self) -> None:
        """Reset all metrics."""
        with self._lock:
            self._request_count = 0
            self._total_latency_ms = 0.0
            self._min_latency_ms = float("inf")
            self._max_latency_ms = 0.0


# Global singleton instance
metrics_service = MetricsService()
