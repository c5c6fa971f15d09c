from datetime import datetime, timedelta, timezone
from typing import Iterable

from netguard.schemas.detection import ModelStats
from netguard.schemas.events import SecurityEvent, Severity, SystemStatus, ThreatSummary

RECENT_WINDOW = timedelta(minutes=5)
STATUS_WINDOW = timedelta(hours=1)


def _since(events: Iterable[SecurityEvent], cutoff: datetime) -> list[SecurityEvent]:
    return [event for event in events if event.timestamp >= cutoff]


def threat_level(events: Iterable[SecurityEvent], now: datetime | None = None) -> ThreatSummary:
    now = now or datetime.now(timezone.utc)
    recent = _since(events, now - RECENT_WINDOW)
    critical = sum(1 for e in recent if e.severity == Severity.critical)
    high = sum(1 for e in recent if e.severity == Severity.high)

    level = Severity.low
    if critical > 0:
        level = Severity.critical
    elif high > 2:
        level = Severity.high
    elif len(recent) > 5:
        level = Severity.medium

    return ThreatSummary(
        threat_level=level,
        recent_events=len(recent),
        critical_events=critical,
        high_events=high,
    )


def system_status(
    events: list[SecurityEvent],
    stats: ModelStats,
    now: datetime | None = None,
) -> SystemStatus:
    now = now or datetime.now(timezone.utc)
    critical_last_hour = sum(
        1 for e in _since(events, now - STATUS_WINDOW) if e.severity == Severity.critical
    )
    return SystemStatus(
        security_status="secure" if critical_last_hour == 0 else "at_risk",
        critical_events_last_hour=critical_last_hour,
        total_events=len(events),
        model_status="ready" if stats.model_trained else "learning",
    )
