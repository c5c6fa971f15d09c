from collections import Counter
import time
from typing import Callable

from netguard.schemas.detection import MetricsSnapshot


class NetworkMetrics:
    """Cumulative traffic and behaviour counters since start or the last reset."""

    def __init__(self, clock: Callable[[], float] = time.time):
        self._clock = clock
        self.reset()

    def reset(self) -> None:
        self.request_count = 0
        self.failed_requests = 0
        self.total_response_time = 0.0
        self.total_data_transferred = 0
        self.unique_domains: set[str] = set()
        self.http_errors = 0
        self.suspicious_patterns = 0
        self.click_count = 0
        self.navigation_count = 0
        self.memory_usage = 0.0
        self.cpu_usage = 0.0
        self.domain_requests: Counter[str] = Counter()
        self.domain_client_errors: Counter[str] = Counter()
        self.start_time = self._clock()

    def elapsed_seconds(self) -> float:
        return max(self._clock() - self.start_time, 1.0)

    def snapshot(self) -> MetricsSnapshot:
        elapsed = self.elapsed_seconds()
        return MetricsSnapshot(
            request_count=self.request_count,
            failed_requests=self.failed_requests,
            average_response_time=self.total_response_time / max(self.request_count, 1),
            # Bytes are reported in KB, the unit the bootstrap distributions use.
            total_data_transferred=self.total_data_transferred / 1024.0,
            unique_domains=len(self.unique_domains),
            http_errors=self.http_errors,
            suspicious_patterns=self.suspicious_patterns,
            memory_usage=self.memory_usage,
            cpu_usage=self.cpu_usage,
            click_rate=self.click_count / elapsed * 60.0,
            navigation_rate=self.navigation_count / elapsed * 60.0,
        )
