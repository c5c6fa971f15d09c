from fastapi import APIRouter, Depends, Query, status

from netguard.api.deps import get_monitor
from netguard.schemas.detection import MetricsSnapshot
from netguard.schemas.events import SecurityEvent, SystemStatus, ThreatSummary
from netguard.services.security_monitor import SecurityMonitor
from netguard.services.threat_summary import system_status, threat_level

router = APIRouter(prefix="/events", tags=["events"])


@router.get("", response_model=list[SecurityEvent])
def list_events(
    limit: int = Query(default=50, ge=1, le=100),
    monitor: SecurityMonitor = Depends(get_monitor),
):
    return monitor.events(limit=limit)


@router.get("/summary", response_model=ThreatSummary)
def summary(monitor: SecurityMonitor = Depends(get_monitor)):
    return threat_level(monitor.events())


@router.get("/status", response_model=SystemStatus)
def status_overview(monitor: SecurityMonitor = Depends(get_monitor)):
    return system_status(monitor.events(), monitor.model_stats())


@router.get("/metrics", response_model=MetricsSnapshot)
def current_metrics(monitor: SecurityMonitor = Depends(get_monitor)):
    return monitor.snapshot()


@router.post("/reset-metrics", status_code=status.HTTP_204_NO_CONTENT)
def reset_metrics(monitor: SecurityMonitor = Depends(get_monitor)):
    monitor.reset_metrics()
