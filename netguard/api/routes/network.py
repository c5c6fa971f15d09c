from fastapi import APIRouter, Depends

from netguard.api.deps import get_monitor
from netguard.schemas.signals import DomainReputationOut, ProbeResultOut, ScanRequest
from netguard.services.probing import TcpConnectProbe, check_domain_reputation
from netguard.services.security_monitor import SecurityMonitor

router = APIRouter(prefix="/network", tags=["network"])


@router.post("/scan", response_model=list[ProbeResultOut])
def scan(payload: ScanRequest, monitor: SecurityMonitor = Depends(get_monitor)):
    probe = TcpConnectProbe(port=payload.port, timeout=payload.timeout)
    results = monitor.scan_hosts(probe, payload.hosts)
    return [
        {"host": r.host, "reachable": r.reachable, "latency_ms": r.latency_ms}
        for r in results
    ]


@router.get("/reputation/{domain}", response_model=DomainReputationOut)
def reputation(domain: str):
    result = check_domain_reputation(domain)
    return {"domain": result.domain, "safe": result.safe, "reason": result.reason}
