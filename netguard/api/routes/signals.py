from fastapi import APIRouter, Depends

from netguard.api.deps import get_monitor
from netguard.schemas.events import SecurityEvent
from netguard.schemas.signals import (
    FailureSignalIn,
    ResourceSignalIn,
    ResponseSignalIn,
    TransferSignalIn,
)
from netguard.services.security_monitor import SecurityMonitor

router = APIRouter(prefix="/signals", tags=["signals"])


@router.post("/response", response_model=list[SecurityEvent])
def observe_response(payload: ResponseSignalIn, monitor: SecurityMonitor = Depends(get_monitor)):
    return monitor.observe_response(
        url=payload.url,
        status=payload.status,
        response_time_ms=payload.response_time_ms,
        size_bytes=payload.size_bytes,
    )


@router.post("/failure", response_model=list[SecurityEvent])
def observe_failure(payload: FailureSignalIn, monitor: SecurityMonitor = Depends(get_monitor)):
    return monitor.observe_transport_failure(payload.url, payload.error)


@router.post("/resources", response_model=list[SecurityEvent])
def observe_resources(payload: ResourceSignalIn, monitor: SecurityMonitor = Depends(get_monitor)):
    return monitor.observe_resources(
        memory_percent=payload.memory_percent,
        cpu_percent=payload.cpu_percent,
        used_bytes=payload.used_bytes,
    )


@router.post("/click", response_model=list[SecurityEvent])
def observe_click(monitor: SecurityMonitor = Depends(get_monitor)):
    return monitor.observe_click()


@router.post("/navigation", response_model=list[SecurityEvent])
def observe_navigation(monitor: SecurityMonitor = Depends(get_monitor)):
    return monitor.observe_navigation()


@router.post("/transfer", response_model=list[SecurityEvent])
def observe_transfer(payload: TransferSignalIn, monitor: SecurityMonitor = Depends(get_monitor)):
    return monitor.observe_transfer(payload.url, payload.size_bytes, payload.duration_ms)
