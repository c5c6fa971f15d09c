import random

from netguard.core.config import get_settings
from netguard.core.logging_config import configure_logging
from netguard.ml.engine import ThreatDetectionEngine
from netguard.services.security_monitor import SecurityMonitor
from netguard.services.threat_summary import system_status, threat_level

DOMAINS = ["api.example.com", "cdn.example.com", "auth.example.com", "files.example.com"]


def run() -> None:
    settings = get_settings()
    configure_logging(settings.log_level)
    monitor = SecurityMonitor(ThreatDetectionEngine(settings=settings))
    monitor.on_security_event(
        lambda event: print(f"[{event.severity.value}] {event.type.value}: {event.description}")
    )
    monitor.start()

    for i in range(300):
        domain = random.choice(DOMAINS)
        status = 401 if domain == "auth.example.com" and random.random() < 0.4 else 200
        monitor.observe_response(
            f"https://{domain}/resource/{i}",
            status,
            response_time_ms=random.uniform(40, 1800),
            size_bytes=random.randint(200, 60_000),
        )
        if random.random() < 0.3:
            monitor.observe_click()
        if random.random() < 0.1:
            monitor.observe_navigation()
        if random.random() < 0.02:
            monitor.observe_transport_failure(f"https://{domain}/", "connection reset")

    monitor.observe_resources(memory_percent=random.uniform(60, 97), cpu_percent=random.uniform(5, 90))
    monitor.observe_transfer("https://files.example.com/export.tar", 24 * 1024 * 1024, 5400.0)
    monitor.stop()

    events = monitor.events()
    print(threat_level(events).model_dump_json(indent=2))
    print(system_status(events, monitor.model_stats()).model_dump_json(indent=2))


if __name__ == "__main__":
    run()
