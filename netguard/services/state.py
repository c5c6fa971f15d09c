from dataclasses import dataclass, field

from netguard.core.config import Settings
from netguard.ml.engine import ThreatDetectionEngine
from netguard.services.realtime_hub import RealtimeHub
from netguard.services.resource_sampler import ResourceSampler
from netguard.services.security_monitor import SecurityMonitor


@dataclass
class NetGuardServices:
    """Everything one app instance owns; built per app, never module-global."""

    settings: Settings
    engine: ThreatDetectionEngine
    monitor: SecurityMonitor
    hub: RealtimeHub = field(default_factory=RealtimeHub)
    sampler: ResourceSampler = field(default_factory=ResourceSampler)

    def start(self) -> None:
        self.monitor.start()

    def stop(self) -> None:
        self.monitor.stop()


def build_services(settings: Settings) -> NetGuardServices:
    engine = ThreatDetectionEngine(settings=settings)
    return NetGuardServices(
        settings=settings,
        engine=engine,
        monitor=SecurityMonitor(engine, settings=settings),
    )
