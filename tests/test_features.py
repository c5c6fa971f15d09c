import numpy as np
import pytest

from netguard.ml.features import (
    FEATURE_COUNT,
    FEATURE_NAMES,
    FeatureVectorError,
    NetworkFeatures,
    extract_features,
    validate_vector,
)
from netguard.schemas.detection import MetricsSnapshot


def test_missing_fields_default_to_zero():
    features = extract_features({"request_count": 12})
    vector = features.as_vector()

    assert vector.shape == (FEATURE_COUNT,)
    assert vector[0] == 12.0
    assert np.all(vector[1:] == 0.0)


def test_snapshot_keys_map_to_feature_slots():
    features = extract_features(
        {"average_response_time": 320.5, "total_data_transferred": 48.0, "unknown": 1}
    )
    assert features.response_time == 320.5
    assert features.data_transferred == 48.0


def test_canonical_key_wins_over_alias():
    features = extract_features({"response_time": 10, "average_response_time": 99})
    assert features.response_time == 10.0


def test_accepts_pydantic_snapshot():
    snapshot = MetricsSnapshot(request_count=5, click_rate=2.5)
    features = extract_features(snapshot, timestamp=123.0)

    assert features.request_count == 5.0
    assert features.click_rate == 2.5
    assert features.timestamp == 123.0


def test_vector_follows_feature_name_order():
    raw = {name: float(i) for i, name in enumerate(FEATURE_NAMES)}
    assert extract_features(raw).as_vector().tolist() == [float(i) for i in range(FEATURE_COUNT)]


@pytest.mark.parametrize("value", ["lots", float("nan"), float("inf"), float("-inf"), "Infinity", [1, 2]])
def test_non_numeric_values_are_rejected(value):
    with pytest.raises(FeatureVectorError):
        extract_features({"memory_usage": value})


def test_unsupported_snapshot_type_is_rejected():
    with pytest.raises(FeatureVectorError):
        extract_features(42)


@pytest.mark.parametrize(
    "vector",
    [
        [1.0, 2.0, 3.0],
        np.zeros((2, FEATURE_COUNT)),
        [0.0] * (FEATURE_COUNT - 1) + [np.inf],
        ["x"] * FEATURE_COUNT,
    ],
)
def test_validate_vector_rejects_malformed_input(vector):
    with pytest.raises(FeatureVectorError):
        validate_vector(vector)


def test_from_vector_round_trips_values():
    vector = np.arange(FEATURE_COUNT, dtype=np.float64)
    features = NetworkFeatures.from_vector(vector, timestamp=5.0)

    assert np.array_equal(features.as_vector(), vector)
    assert features.as_dict()["navigation_rate"] == float(FEATURE_COUNT - 1)
    assert "timestamp" not in features.as_dict()
