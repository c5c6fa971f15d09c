from fastapi import Request

from netguard.ml.engine import ThreatDetectionEngine
from netguard.services.security_monitor import SecurityMonitor
from netguard.services.state import NetGuardServices


def get_services(request: Request) -> NetGuardServices:
    return request.app.state.services


def get_monitor(request: Request) -> SecurityMonitor:
    return get_services(request).monitor


def get_engine(request: Request) -> ThreatDetectionEngine:
    return get_services(request).engine
