"""Rule-driven security event pipeline.

Signals come in through the ``observe_*`` methods. Each rule that trips
snapshots the running metrics, has the detection engine score them, and
publishes an immutable ``SecurityEvent``. Once the event has been delivered,
its feature vector is fed back to the engine, labelled with the rule's own
severity (high/critical count as threats).
"""

from collections import deque
from datetime import datetime, timezone
import logging
import math
import threading
import time
from typing import Any, Callable, Iterable
from urllib.parse import urlsplit
import uuid

from netguard.core.config import Settings
from netguard.ml.engine import ThreatDetectionEngine
from netguard.ml.features import FeatureVectorError, NetworkFeatures
from netguard.observability.metrics import SECURITY_EVENTS_TOTAL
from netguard.schemas.detection import MetricsSnapshot, ModelStats
from netguard.schemas.events import THREAT_SEVERITIES, EventType, SecurityEvent, Severity
from netguard.services.network_metrics import NetworkMetrics
from netguard.services.probing import Probe, ProbeResult, scan_hosts

logger = logging.getLogger(__name__)

Subscriber = Callable[[SecurityEvent], None]
Published = tuple[SecurityEvent, NetworkFeatures]


def domain_of(url: str) -> str:
    return urlsplit(url if "//" in url else f"//{url}").hostname or "localhost"


def _finite(name: str, value: float) -> float:
    if not math.isfinite(value):
        raise FeatureVectorError(f"{name} is not finite: {value!r}")
    return value


class SecurityMonitor:
    def __init__(
        self,
        engine: ThreatDetectionEngine,
        settings: Settings | None = None,
        clock: Callable[[], float] = time.time,
    ):
        self.engine = engine
        self.settings = settings or engine.settings
        self._clock = clock
        self.metrics = NetworkMetrics(clock)
        self._events: deque[SecurityEvent] = deque(maxlen=self.settings.event_buffer_size)
        self._subscribers: list[Subscriber] = []
        self._recent_clicks: deque[float] = deque()
        self._running = False
        self._lock = threading.RLock()

    @property
    def running(self) -> bool:
        return self._running

    def start(self) -> None:
        with self._lock:
            if self._running:
                return
            self.metrics.reset()
            self._recent_clicks.clear()
            self._running = True
        logger.info("Security monitor started")

    def stop(self) -> None:
        with self._lock:
            self._running = False
        logger.info("Security monitor stopped")

    def on_security_event(self, callback: Subscriber) -> Callable[[], None]:
        with self._lock:
            self._subscribers.append(callback)

        def unsubscribe() -> None:
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe

    def events(self, limit: int | None = None) -> list[SecurityEvent]:
        """Most recent first; a fresh list the caller may filter or trim."""
        with self._lock:
            items = list(reversed(self._events))
        return items[:limit] if limit is not None else items

    def snapshot(self) -> MetricsSnapshot:
        with self._lock:
            return self.metrics.snapshot()

    def reset_metrics(self) -> None:
        with self._lock:
            self.metrics.reset()
            self._recent_clicks.clear()

    def model_stats(self) -> ModelStats:
        return self.engine.model_stats()

    def observe_response(
        self,
        url: str,
        status: int,
        response_time_ms: float,
        size_bytes: int = 0,
    ) -> list[SecurityEvent]:
        _finite("response_time_ms", response_time_ms)
        _finite("size_bytes", size_bytes)
        domain = domain_of(url)
        settings = self.settings
        with self._lock:
            metrics = self.metrics
            metrics.request_count += 1
            metrics.total_response_time += response_time_ms
            metrics.total_data_transferred += size_bytes
            metrics.unique_domains.add(domain)
            if status >= 400:
                metrics.failed_requests += 1
                metrics.http_errors += 1

            metrics.domain_requests[domain] += 1
            request_count = metrics.domain_requests[domain]

            published: list[Published | None] = []
            if request_count > settings.domain_request_threshold:
                published.append(
                    self._fire(
                        EventType.resource_abuse,
                        Severity.medium,
                        domain,
                        f"High request volume detected to {domain}",
                        {"request_count": request_count, "url": url},
                    )
                )

            if 400 <= status < 500:
                metrics.domain_client_errors[domain] += 1
                failed_count = metrics.domain_client_errors[domain]
                if failed_count > settings.domain_client_error_threshold:
                    published.append(
                        self._fire(
                            EventType.failed_auth,
                            Severity.high,
                            domain,
                            f"Multiple failed requests detected to {domain}",
                            {"failed_count": failed_count, "status": status, "url": url},
                        )
                    )

            if response_time_ms > settings.slow_response_ms:
                published.append(
                    self._fire(
                        EventType.unusual_activity,
                        Severity.low,
                        domain,
                        f"Slow response time detected from {domain}",
                        {"response_time": response_time_ms, "url": url},
                    )
                )

            if size_bytes > settings.large_transfer_bytes:
                published.append(self._large_transfer(domain, url, size_bytes, response_time_ms))

        return self._feedback(published)

    def observe_transport_failure(self, url: str, error: BaseException | str) -> list[SecurityEvent]:
        domain = domain_of(url)
        with self._lock:
            self.metrics.failed_requests += 1
            published = [
                self._fire(
                    EventType.suspicious_request,
                    Severity.medium,
                    domain,
                    f"Failed request to {domain}",
                    {"error": str(error), "url": url},
                )
            ]
        return self._feedback(published)

    def observe_resources(
        self,
        memory_percent: float,
        cpu_percent: float | None = None,
        used_bytes: int | None = None,
    ) -> list[SecurityEvent]:
        _finite("memory_percent", memory_percent)
        if cpu_percent is not None:
            _finite("cpu_percent", cpu_percent)
        with self._lock:
            self.metrics.memory_usage = memory_percent
            if cpu_percent is not None:
                self.metrics.cpu_usage = cpu_percent

            published: list[Published | None] = []
            if memory_percent > self.settings.memory_usage_threshold:
                published.append(
                    self._fire(
                        EventType.resource_abuse,
                        Severity.high,
                        "localhost",
                        "High memory usage detected",
                        {"memory_usage": memory_percent, "used_bytes": used_bytes},
                    )
                )
        return self._feedback(published)

    def observe_click(self) -> list[SecurityEvent]:
        now = self._clock()
        window = self.settings.rapid_click_window_seconds
        with self._lock:
            self.metrics.click_count += 1
            self._recent_clicks.append(now)
            while self._recent_clicks and self._recent_clicks[0] <= now - window:
                self._recent_clicks.popleft()
            rapid_clicks = len(self._recent_clicks)

            published: list[Published | None] = []
            if rapid_clicks > self.settings.rapid_click_threshold:
                published.append(
                    self._fire(
                        EventType.unusual_activity,
                        Severity.medium,
                        "localhost",
                        "Rapid clicking pattern detected",
                        {"clicks_per_second": rapid_clicks},
                    )
                )
        return self._feedback(published)

    def observe_navigation(self) -> list[SecurityEvent]:
        with self._lock:
            self.metrics.navigation_count += 1
            page_changes = self.metrics.navigation_count

            published: list[Published | None] = []
            if page_changes > self.settings.navigation_threshold:
                published.append(
                    self._fire(
                        EventType.unusual_activity,
                        Severity.low,
                        "localhost",
                        "Excessive page navigation detected",
                        {"page_changes": page_changes},
                    )
                )
        return self._feedback(published)

    def observe_transfer(self, url: str, size_bytes: int, duration_ms: float = 0.0) -> list[SecurityEvent]:
        """Report a resource transfer that did not go through ``observe_response``."""
        _finite("size_bytes", size_bytes)
        _finite("duration_ms", duration_ms)
        domain = domain_of(url)
        with self._lock:
            self.metrics.total_data_transferred += size_bytes
            published: list[Published | None] = []
            if size_bytes > self.settings.large_transfer_bytes:
                published.append(self._large_transfer(domain, url, size_bytes, duration_ms))
        return self._feedback(published)

    def scan_hosts(self, probe: Probe, hosts: Iterable[str]) -> list[ProbeResult]:
        """Probe hosts; a probe that raises becomes a ``suspicious_request`` event."""
        return scan_hosts(
            probe,
            hosts,
            on_error=lambda host, exc: self.observe_transport_failure(host, exc),
        )

    def _large_transfer(
        self, domain: str, url: str, size_bytes: int, duration_ms: float
    ) -> Published | None:
        return self._fire(
            EventType.unusual_activity,
            Severity.medium,
            domain,
            "Large data transfer detected",
            {"size": size_bytes, "url": url, "duration": duration_ms},
        )

    def _fire(
        self,
        event_type: EventType,
        severity: Severity,
        source: str,
        description: str,
        details: dict[str, Any],
    ) -> Published | None:
        # Caller holds self._lock, which keeps publication in rule-firing order.
        if not self._running:
            return None

        self.metrics.suspicious_patterns += 1
        snapshot = self.metrics.snapshot()
        features = self.engine.extract_features(snapshot)
        prediction = self.engine.detect_threats(features)

        event = SecurityEvent(
            id=uuid.uuid4().hex,
            type=event_type,
            severity=severity,
            source=source,
            description=description,
            timestamp=datetime.now(timezone.utc),
            details=details,
            ml_prediction=prediction,
        )
        self._events.append(event)
        SECURITY_EVENTS_TOTAL.labels(type=event_type.value, severity=severity.value).inc()

        for subscriber in list(self._subscribers):
            try:
                subscriber(event)
            except Exception:
                logger.exception("Security event subscriber %r failed on event %s", subscriber, event.id)
        return event, features

    def _feedback(self, published: list[Published | None]) -> list[SecurityEvent]:
        # Runs after the lock is released: retraining never delays publication.
        events: list[SecurityEvent] = []
        for item in published:
            if item is None:
                continue
            event, features = item
            self.engine.retrain_with_feedback(features, event.severity in THREAT_SEVERITIES)
            events.append(event)
        return events
