"""Raw metrics snapshot -> fixed 11-slot feature vector.

Both forests index features by position, so ``FEATURE_NAMES`` is a contract:
reordering or resizing it invalidates every trained model.
"""

from collections.abc import Mapping
from dataclasses import asdict, dataclass, field
import math
import time
from typing import Any

import numpy as np

FEATURE_NAMES: tuple[str, ...] = (
    "request_count",
    "failed_requests",
    "response_time",
    "data_transferred",
    "unique_domains",
    "http_errors",
    "suspicious_patterns",
    "memory_usage",
    "cpu_usage",
    "click_rate",
    "navigation_rate",
)
FEATURE_COUNT = len(FEATURE_NAMES)

# Snapshot key -> feature slot, where the two differ.
RAW_KEY_ALIASES = {
    "average_response_time": "response_time",
    "total_data_transferred": "data_transferred",
}


class FeatureVectorError(ValueError):
    """Raised when a feature vector or raw snapshot is malformed."""


@dataclass(frozen=True)
class NetworkFeatures:
    request_count: float = 0.0
    failed_requests: float = 0.0
    response_time: float = 0.0
    data_transferred: float = 0.0
    unique_domains: float = 0.0
    http_errors: float = 0.0
    suspicious_patterns: float = 0.0
    memory_usage: float = 0.0
    cpu_usage: float = 0.0
    click_rate: float = 0.0
    navigation_rate: float = 0.0
    timestamp: float = field(default_factory=time.time, compare=False)

    def as_vector(self) -> np.ndarray:
        return np.array([getattr(self, name) for name in FEATURE_NAMES], dtype=np.float64)

    def as_dict(self) -> dict[str, float]:
        data = asdict(self)
        data.pop("timestamp")
        return data

    @classmethod
    def from_vector(cls, vector: Any, timestamp: float | None = None) -> "NetworkFeatures":
        values = validate_vector(vector)
        kwargs = dict(zip(FEATURE_NAMES, (float(v) for v in values)))
        if timestamp is not None:
            kwargs["timestamp"] = timestamp
        return cls(**kwargs)


def _to_float(name: str, value: Any) -> float:
    if value is None:
        return 0.0
    if isinstance(value, bool):
        return float(value)
    try:
        number = float(value)
    except (TypeError, ValueError) as exc:
        raise FeatureVectorError(f"feature {name!r} is not numeric: {value!r}") from exc
    if not math.isfinite(number):
        raise FeatureVectorError(f"feature {name!r} is not finite: {value!r}")
    return number


def _as_mapping(raw: Any) -> Mapping[str, Any]:
    if raw is None:
        return {}
    if isinstance(raw, Mapping):
        return raw
    if hasattr(raw, "model_dump"):
        return raw.model_dump()
    raise FeatureVectorError(f"unsupported metrics snapshot type: {type(raw).__name__}")


def extract_features(raw: Any, timestamp: float | None = None) -> NetworkFeatures:
    """Build ``NetworkFeatures`` from a metrics snapshot; missing fields are 0."""
    source = _as_mapping(raw)
    values: dict[str, float] = {}
    for key, value in source.items():
        slot = RAW_KEY_ALIASES.get(key, key)
        if slot in FEATURE_NAMES and (slot not in values or key == slot):
            values[slot] = _to_float(key, value)
    if timestamp is not None:
        return NetworkFeatures(**values, timestamp=timestamp)
    return NetworkFeatures(**values)


def validate_vector(vector: Any) -> np.ndarray:
    try:
        array = np.asarray(vector, dtype=np.float64)
    except (TypeError, ValueError) as exc:
        raise FeatureVectorError(f"feature vector is not numeric: {exc}") from exc
    if array.shape != (FEATURE_COUNT,):
        raise FeatureVectorError(
            f"feature vector must have shape ({FEATURE_COUNT},), got {array.shape}"
        )
    if not np.all(np.isfinite(array)):
        raise FeatureVectorError("feature vector contains non-finite values")
    return array
