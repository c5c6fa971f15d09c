from datetime import datetime
import enum
from types import MappingProxyType
from typing import Any, Mapping

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator

from netguard.schemas.detection import ThreatPrediction


class EventType(str, enum.Enum):
    suspicious_request = "suspicious_request"
    failed_auth = "failed_auth"
    unusual_activity = "unusual_activity"
    resource_abuse = "resource_abuse"


class Severity(str, enum.Enum):
    low = "low"
    medium = "medium"
    high = "high"
    critical = "critical"


THREAT_SEVERITIES = frozenset({Severity.high, Severity.critical})


class SecurityEvent(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    type: EventType
    severity: Severity
    source: str
    description: str
    timestamp: datetime
    details: Mapping[str, Any] = Field(default_factory=dict, validate_default=True)
    ml_prediction: ThreatPrediction | None = None

    @field_validator("details", mode="after")
    @classmethod
    def freeze_details(cls, details: Mapping[str, Any]) -> Mapping[str, Any]:
        return MappingProxyType(dict(details))

    @field_serializer("details")
    def dump_details(self, details: Mapping[str, Any]) -> dict[str, Any]:
        return dict(details)


class ThreatSummary(BaseModel):
    threat_level: Severity
    recent_events: int
    critical_events: int
    high_events: int


class SystemStatus(BaseModel):
    security_status: str
    critical_events_last_hour: int
    total_events: int
    model_status: str
