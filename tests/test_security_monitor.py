import logging

import pytest
from conftest import FakeClock, fast_settings

from netguard.ml.engine import ThreatDetectionEngine
from netguard.ml.features import FeatureVectorError
from netguard.schemas.events import EventType, Severity
from netguard.services.security_monitor import SecurityMonitor, domain_of

URL = "https://api.example.com/v1/items"


def _navigate(monitor, times):
    events = []
    for _ in range(times):
        events.extend(monitor.observe_navigation())
    return events


@pytest.mark.parametrize(
    ("url", "domain"),
    [
        ("https://api.example.com/v1?q=1", "api.example.com"),
        ("http://10.0.0.5:8080/health", "10.0.0.5"),
        ("cdn.example.org/assets/app.js", "cdn.example.org"),
        ("/relative/path", "localhost"),
    ],
)
def test_domain_of(url, domain):
    assert domain_of(url) == domain


def test_request_volume_rule_fires_after_threshold(monitor):
    fired_at = []
    for i in range(1, 102):
        events = monitor.observe_response(URL, 200, 50.0)
        if events:
            fired_at.append((i, events))

    assert len(fired_at) == 1
    index, events = fired_at[0]
    assert index == 101
    assert len(events) == 1
    assert events[0].type == EventType.resource_abuse
    assert events[0].severity == Severity.medium
    assert events[0].source == "api.example.com"
    assert events[0].details["request_count"] == 101


def test_request_volume_is_counted_per_domain(monitor):
    for _ in range(60):
        assert monitor.observe_response("https://a.example.com/", 200, 10.0) == []
        assert monitor.observe_response("https://b.example.com/", 200, 10.0) == []


def test_client_errors_fire_failed_auth(monitor):
    results = [monitor.observe_response(URL, 401, 30.0) for _ in range(6)]

    assert all(r == [] for r in results[:5])
    assert len(results[5]) == 1
    event = results[5][0]
    assert event.type == EventType.failed_auth
    assert event.severity == Severity.high
    assert event.details["failed_count"] == 6


def test_server_errors_do_not_count_as_failed_auth(monitor):
    for _ in range(10):
        assert monitor.observe_response(URL, 503, 30.0) == []

    snapshot = monitor.snapshot()
    assert snapshot.http_errors == 10
    assert snapshot.failed_requests == 10


def test_slow_response_rule(monitor):
    assert monitor.observe_response(URL, 200, 10_000.0) == []

    events = monitor.observe_response(URL, 200, 10_001.0)

    assert [(e.type, e.severity) for e in events] == [(EventType.unusual_activity, Severity.low)]


def test_transport_failure_rule(monitor):
    events = monitor.observe_transport_failure("https://down.example.com/x", ConnectionError("refused"))

    assert len(events) == 1
    assert events[0].type == EventType.suspicious_request
    assert events[0].severity == Severity.medium
    assert events[0].source == "down.example.com"
    assert events[0].details["error"] == "refused"
    assert monitor.snapshot().failed_requests == 1


def test_memory_rule_is_strictly_above_threshold(monitor):
    assert monitor.observe_resources(90.0, cpu_percent=12.0) == []

    events = monitor.observe_resources(95.5)

    assert [(e.type, e.severity) for e in events] == [(EventType.resource_abuse, Severity.high)]
    snapshot = monitor.snapshot()
    assert snapshot.memory_usage == 95.5
    assert snapshot.cpu_usage == 12.0


def test_rapid_clicks_within_window(monitor, clock):
    fired = []
    for _ in range(11):
        fired.append(monitor.observe_click())
        clock.advance(0.05)

    assert all(events == [] for events in fired[:10])
    assert fired[10][0].type == EventType.unusual_activity
    assert fired[10][0].severity == Severity.medium
    assert fired[10][0].details["clicks_per_second"] == 11


def test_spaced_clicks_never_fire(monitor, clock):
    for _ in range(40):
        assert monitor.observe_click() == []
        clock.advance(0.2)


def test_navigation_rule(monitor):
    assert _navigate(monitor, 20) == []

    events = monitor.observe_navigation()

    assert len(events) == 1
    assert events[0].severity == Severity.low
    assert events[0].details["page_changes"] == 21


def test_large_transfer_rule(monitor):
    size = 11 * 1024 * 1024
    events = monitor.observe_response(URL, 200, 120.0, size_bytes=size)
    transfer_events = monitor.observe_transfer("https://files.example.com/dump", size, 900.0)

    for event in events + transfer_events:
        assert event.type == EventType.unusual_activity
        assert event.severity == Severity.medium
        assert event.details["size"] == size
    assert len(events) == 1
    assert len(transfer_events) == 1
    assert monitor.observe_transfer(URL, 1024) == []


def test_snapshot_units(monitor, clock):
    monitor.observe_response(URL, 200, 100.0, size_bytes=2048)
    monitor.observe_response(URL, 404, 300.0, size_bytes=1024)
    for _ in range(3):
        monitor.observe_click()
    clock.advance(30.0)

    snapshot = monitor.snapshot()

    assert snapshot.request_count == 2
    assert snapshot.average_response_time == pytest.approx(200.0)
    assert snapshot.total_data_transferred == pytest.approx(3.0)
    assert snapshot.unique_domains == 1
    assert snapshot.click_rate == pytest.approx(6.0)


def test_event_buffer_keeps_most_recent(monitor):
    published = _navigate(monitor, 125)

    buffered = monitor.events()
    assert len(published) == 105
    assert len(buffered) == 100
    assert [e.id for e in buffered] == [e.id for e in reversed(published[5:])]
    assert monitor.events(limit=3) == buffered[:3]


def test_subscribers_notified_in_order_and_unsubscribe(monitor):
    calls = []
    unsubscribe_a = monitor.on_security_event(lambda e: calls.append(("a", e.id)))
    monitor.on_security_event(lambda e: calls.append(("b", e.id)))

    first = _navigate(monitor, 21)
    unsubscribe_a()
    second = monitor.observe_navigation()

    assert calls == [("a", first[0].id), ("b", first[0].id), ("b", second[0].id)]
    assert len(monitor.events()) == 2


def test_unsubscribing_during_delivery_still_reaches_others(monitor):
    received = []
    holder = {}

    def once(event):
        received.append(("once", event.id))
        holder["unsubscribe"]()

    holder["unsubscribe"] = monitor.on_security_event(once)
    monitor.on_security_event(lambda e: received.append(("always", e.id)))

    _navigate(monitor, 22)

    assert [name for name, _ in received] == ["once", "always", "always"]


def test_failing_subscriber_is_logged_and_skipped(monitor, caplog):
    received = []

    def broken(event):
        raise RuntimeError("dashboard offline")

    monitor.on_security_event(broken)
    monitor.on_security_event(received.append)

    with caplog.at_level(logging.ERROR, logger="netguard.services.security_monitor"):
        events = monitor.observe_resources(99.0)

    assert received == events
    assert "subscriber" in caplog.text


def test_events_carry_ensemble_prediction(monitor):
    events = monitor.observe_resources(97.0)
    prediction = events[0].ml_prediction

    assert prediction is not None
    assert 0.0 <= prediction.threat_score <= 1.0


def test_each_event_counts_as_suspicious_pattern(monitor):
    monitor.observe_resources(97.0)
    monitor.observe_transport_failure(URL, "timeout")
    assert monitor.snapshot().suspicious_patterns == 2


@pytest.mark.parametrize(
    ("trigger", "label"),
    [
        (lambda m: m.observe_resources(99.0), 1),
        (lambda m: m.observe_transport_failure(URL, "reset"), 0),
    ],
)
def test_events_feed_back_with_severity_label(monitor, engine, trigger, label):
    before = engine.model_stats().training_data_size

    trigger(monitor)

    assert engine.model_stats().training_data_size == before + 1
    assert engine._training[-1].label == label


def test_stopped_monitor_publishes_nothing(monitor, engine):
    received = []
    monitor.on_security_event(received.append)
    monitor.stop()

    assert _navigate(monitor, 30) == []
    assert monitor.observe_resources(99.0) == []

    assert received == []
    assert monitor.events() == []
    assert engine.model_stats().training_data_size == 250
    assert not monitor.running


def test_start_resets_metrics(monitor):
    monitor.observe_response(URL, 200, 10.0)
    monitor.stop()
    monitor.start()
    assert monitor.snapshot().request_count == 0


def test_reset_metrics_clears_domain_counters(monitor):
    for _ in range(100):
        monitor.observe_response(URL, 200, 10.0)
    monitor.reset_metrics()

    assert monitor.snapshot().request_count == 0
    assert monitor.observe_response(URL, 200, 10.0) == []


class FakeProbe:
    def __init__(self, latencies):
        self.latencies = latencies

    def probe(self, host):
        value = self.latencies[host]
        if isinstance(value, Exception):
            raise value
        return value


def test_scan_hosts_reports_probe_errors(monitor):
    probe = FakeProbe({"up.example.com": 12.5, "dark.example.com": None, "bad.example.com": OSError("boom")})

    results = monitor.scan_hosts(probe, ["up.example.com", "dark.example.com", "bad.example.com"])

    assert [(r.host, r.reachable) for r in results] == [
        ("up.example.com", True),
        ("dark.example.com", False),
        ("bad.example.com", False),
    ]
    assert results[0].latency_ms == 12.5
    events = monitor.events()
    assert len(events) == 1
    assert events[0].type == EventType.suspicious_request
    assert events[0].source == "bad.example.com"


@pytest.mark.parametrize(
    "observe",
    [
        lambda m: m.observe_response(URL, 200, float("inf")),
        lambda m: m.observe_response(URL, 200, 10.0, size_bytes=float("nan")),
        lambda m: m.observe_resources(float("inf")),
        lambda m: m.observe_resources(50.0, cpu_percent=float("-inf")),
        lambda m: m.observe_transfer(URL, 1024, float("inf")),
    ],
)
def test_non_finite_signals_are_rejected_before_counting(monitor, engine, observe):
    with pytest.raises(FeatureVectorError):
        observe(monitor)

    snapshot = monitor.snapshot()
    assert snapshot.request_count == 0
    assert snapshot.average_response_time == 0.0
    assert snapshot.memory_usage == 0.0
    assert monitor.events() == []
    assert engine.model_stats().training_data_size == 250


def test_event_is_delivered_before_its_feedback_retrain():
    clock = FakeClock()
    engine = ThreatDetectionEngine(settings=fast_settings(retrain_interval=1), seed=7, clock=clock)
    monitor = SecurityMonitor(engine, clock=clock)
    monitor.start()
    runs_before = engine.model_stats().training_runs
    forest_before = engine._random_forest
    seen = []

    def record(event):
        seen.append((engine.model_stats().training_runs, engine._random_forest))

    monitor.on_security_event(record)
    events = monitor.observe_resources(99.0)

    assert len(events) == 1
    assert seen == [(runs_before, forest_before)]
    assert engine.model_stats().training_runs == runs_before + 1
    assert engine._random_forest is not forest_before


def test_features_are_extracted_once_per_event(monitor, engine, monkeypatch):
    extracted = []
    original = engine.extract_features

    def counting(raw):
        features = original(raw)
        extracted.append(features)
        return features

    monkeypatch.setattr(engine, "extract_features", counting)

    monitor.observe_resources(99.0)

    assert len(extracted) == 2
    assert extracted[0] is extracted[1]
    assert engine._history[-1] is extracted[0]


def test_event_details_are_read_only(monitor):
    event = monitor.observe_resources(99.0)[0]

    with pytest.raises(TypeError):
        monitor.events()[0].details["memory_usage"] = 1.0

    assert monitor.events()[0].details["memory_usage"] == 99.0
    assert event.model_dump()["details"] == {"memory_usage": 99.0, "used_bytes": None}
