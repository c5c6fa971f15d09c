from datetime import datetime
import enum

from pydantic import BaseModel, ConfigDict, Field


class RiskLevel(str, enum.Enum):
    low = "low"
    medium = "medium"
    high = "high"
    critical = "critical"


class Algorithm(str, enum.Enum):
    random_forest = "random_forest"
    isolation_forest = "isolation_forest"
    ensemble = "ensemble"


class ThreatPrediction(BaseModel):
    model_config = ConfigDict(frozen=True)

    is_anomaly: bool
    threat_score: float = Field(ge=0.0, le=1.0)
    confidence: float = Field(ge=0.0, le=1.0)
    risk_level: RiskLevel
    features: tuple[str, ...] = ()
    algorithm: Algorithm = Algorithm.ensemble

    @classmethod
    def neutral(cls) -> "ThreatPrediction":
        return cls(is_anomaly=False, threat_score=0.0, confidence=0.0, risk_level=RiskLevel.low)


class ModelStats(BaseModel):
    model_config = ConfigDict(protected_namespaces=())

    training_data_size: int
    model_trained: bool
    feature_history_size: int
    last_training_time: datetime | None = None
    training_runs: int = 0


class MetricsSnapshot(BaseModel):
    model_config = ConfigDict(allow_inf_nan=False)

    request_count: float = 0.0
    failed_requests: float = 0.0
    average_response_time: float = 0.0
    total_data_transferred: float = 0.0
    unique_domains: float = 0.0
    http_errors: float = 0.0
    suspicious_patterns: float = 0.0
    memory_usage: float = 0.0
    cpu_usage: float = 0.0
    click_rate: float = 0.0
    navigation_rate: float = 0.0


class FeedbackIn(BaseModel):
    metrics: MetricsSnapshot
    is_threat: bool


class FeedbackResult(BaseModel):
    retrained: bool
    training_data_size: int


class SnapshotResult(BaseModel):
    random_forest: str
    isolation_forest: str
