from typing import NamedTuple

import psutil

from netguard.schemas.events import SecurityEvent
from netguard.services.security_monitor import SecurityMonitor


class ResourceSample(NamedTuple):
    memory_percent: float
    cpu_percent: float
    used_bytes: int


class ResourceSampler:
    """Reads host memory/CPU with psutil and reports them to the monitor."""

    def sample(self) -> ResourceSample:
        memory = psutil.virtual_memory()
        # interval=None compares against the previous call and never blocks.
        cpu = psutil.cpu_percent(interval=None)
        return ResourceSample(float(memory.percent), float(cpu), int(memory.used))

    def feed(self, monitor: SecurityMonitor) -> list[SecurityEvent]:
        sample = self.sample()
        return monitor.observe_resources(
            memory_percent=sample.memory_percent,
            cpu_percent=sample.cpu_percent,
            used_bytes=sample.used_bytes,
        )
