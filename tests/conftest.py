import os
from pathlib import Path

import numpy as np
import pytest
from fastapi.testclient import TestClient

os.environ["MODEL_DIR"] = "./test_artifacts"
os.environ["RESOURCE_SAMPLING_ENABLED"] = "false"
os.environ["METRICS_ENABLED"] = "true"
os.environ["RANDOM_SEED"] = "7"

from netguard.core.config import Settings  # noqa: E402
from netguard.main import create_app  # noqa: E402
from netguard.ml.engine import ThreatDetectionEngine  # noqa: E402
from netguard.services.security_monitor import SecurityMonitor  # noqa: E402

THREAT_METRICS = {
    "request_count": 250,
    "failed_requests": 40,
    "response_time": 1800,
    "data_transferred": 4000,
    "unique_domains": 45,
    "http_errors": 15,
    "suspicious_patterns": 8,
    "memory_usage": 85,
    "cpu_usage": 90,
    "click_rate": 35,
    "navigation_rate": 18,
}

NORMAL_METRICS = {
    "request_count": 35,
    "failed_requests": 2,
    "response_time": 150,
    "data_transferred": 600,
    "unique_domains": 6,
    "http_errors": 1,
    "suspicious_patterns": 0,
    "memory_usage": 45,
    "cpu_usage": 25,
    "click_rate": 3,
    "navigation_rate": 2,
}


def fast_settings(**overrides) -> Settings:
    values = {
        "rf_num_trees": 9,
        "if_num_trees": 40,
        "random_seed": 7,
        "model_dir": "./test_artifacts",
        "resource_sampling_enabled": False,
        "realtime_push_interval_seconds": 0.1,
    }
    values.update(overrides)
    return Settings(**values)


class FakeClock:
    def __init__(self, start: float = 1_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture(scope="session", autouse=True)
def cleanup_artifacts():
    yield
    artifacts = Path("test_artifacts")
    if artifacts.exists():
        for file in artifacts.glob("*"):
            if file.is_file():
                file.unlink()
        artifacts.rmdir()


@pytest.fixture()
def settings() -> Settings:
    return fast_settings()


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def engine(settings, clock) -> ThreatDetectionEngine:
    return ThreatDetectionEngine(settings=settings, seed=7, clock=clock)


@pytest.fixture()
def monitor(engine, clock):
    security_monitor = SecurityMonitor(engine, clock=clock)
    security_monitor.start()
    yield security_monitor
    security_monitor.stop()


@pytest.fixture()
def rng() -> np.random.Generator:
    return np.random.default_rng(11)


@pytest.fixture()
def client(settings):
    with TestClient(create_app(settings)) as test_client:
        yield test_client
