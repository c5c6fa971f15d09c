from pydantic import BaseModel, ConfigDict, Field


class SignalIn(BaseModel):
    model_config = ConfigDict(allow_inf_nan=False)


class ResponseSignalIn(SignalIn):
    url: str
    status: int = Field(ge=100, le=599)
    response_time_ms: float = Field(default=0.0, ge=0.0)
    size_bytes: int = Field(default=0, ge=0)


class FailureSignalIn(SignalIn):
    url: str
    error: str = "transport error"


class ResourceSignalIn(SignalIn):
    memory_percent: float = Field(ge=0.0)
    cpu_percent: float | None = Field(default=None, ge=0.0)
    used_bytes: int | None = Field(default=None, ge=0)


class TransferSignalIn(SignalIn):
    url: str
    size_bytes: int = Field(ge=0)
    duration_ms: float = Field(default=0.0, ge=0.0)


class ScanRequest(SignalIn):
    hosts: list[str] = Field(min_length=1, max_length=64)
    port: int = Field(default=80, ge=1, le=65535)
    timeout: float = Field(default=1.0, gt=0.0, le=10.0)


class ProbeResultOut(BaseModel):
    host: str
    reachable: bool
    latency_ms: float | None = None


class DomainReputationOut(BaseModel):
    domain: str
    safe: bool
    reason: str | None = None
