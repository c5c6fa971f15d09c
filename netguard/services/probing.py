from dataclasses import dataclass
import logging
import re
import socket
from time import perf_counter
from typing import Callable, Iterable, Protocol

logger = logging.getLogger(__name__)

SUSPICIOUS_DOMAIN_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"\d+\.\d+\.\d+\.\d+"),
    re.compile(r"[a-z]{20,}\.com"),
    re.compile(r"\b(bit\.ly|tinyurl|t\.co)\b"),
    re.compile(r"temp|tmp|test|dev"),
)


class Probe(Protocol):
    def probe(self, host: str) -> float | None:
        """Return round-trip latency in ms, or None when the host is unreachable."""


@dataclass(frozen=True)
class ProbeResult:
    host: str
    reachable: bool
    latency_ms: float | None = None
    error: str | None = None


@dataclass(frozen=True)
class DomainReputation:
    domain: str
    safe: bool
    reason: str | None = None


class TcpConnectProbe:
    def __init__(self, port: int = 80, timeout: float = 1.0):
        self.port = port
        self.timeout = timeout

    def probe(self, host: str) -> float | None:
        start = perf_counter()
        try:
            with socket.create_connection((host, self.port), timeout=self.timeout):
                return (perf_counter() - start) * 1000.0
        except OSError:
            return None


def scan_hosts(
    probe: Probe,
    hosts: Iterable[str],
    on_error: Callable[[str, Exception], None] | None = None,
) -> list[ProbeResult]:
    results: list[ProbeResult] = []
    for host in hosts:
        try:
            latency = probe.probe(host)
        except Exception as exc:
            logger.warning("Probe of %s failed: %s", host, exc)
            if on_error is not None:
                on_error(host, exc)
            results.append(ProbeResult(host=host, reachable=False, error=str(exc)))
            continue
        results.append(ProbeResult(host=host, reachable=latency is not None, latency_ms=latency))
    return results


def check_domain_reputation(domain: str) -> DomainReputation:
    for pattern in SUSPICIOUS_DOMAIN_PATTERNS:
        if pattern.search(domain.lower()):
            return DomainReputation(
                domain=domain,
                safe=False,
                reason=f"Suspicious domain pattern: {pattern.pattern}",
            )
    return DomainReputation(domain=domain, safe=True)
