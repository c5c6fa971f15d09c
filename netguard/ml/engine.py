"""Ensemble threat detection: Random Forest vote fused with an Isolation Forest score.

The engine owns the labelled training set and both forests. Callers only go
through ``detect_threats``, ``retrain_with_feedback`` and ``train_models``;
forests are rebuilt off to the side and swapped in under ``_state_lock`` so a
prediction that already grabbed the old pair finishes on it.
"""

from collections import deque
from dataclasses import dataclass
from datetime import datetime, timezone
import logging
from pathlib import Path
import threading
import time
from time import perf_counter
from typing import Any, Callable

import numpy as np

from netguard.core.config import Settings, get_settings
from netguard.ml.anomaly.isolation_forest import IsolationForest
from netguard.ml.features import (
    NetworkFeatures,
    extract_features,
    validate_vector,
)
from netguard.ml.tree.random_forest import RandomForest
from netguard.observability.metrics import (
    DEGRADED_PREDICTIONS_TOTAL,
    MODEL_READY,
    MODEL_TRAINING_RUNS_TOTAL,
    MODEL_TRAINING_SECONDS,
    THREAT_PREDICTIONS_TOTAL,
    TRAINING_SET_SIZE,
)
from netguard.schemas.detection import Algorithm, ModelStats, RiskLevel, ThreatPrediction

logger = logging.getLogger(__name__)

# (low, high) per feature slot, in FEATURE_NAMES order.
NORMAL_TRAFFIC_RANGES: tuple[tuple[float, float], ...] = (
    (10.0, 60.0),
    (0.0, 5.0),
    (50.0, 250.0),
    (100.0, 1100.0),
    (1.0, 11.0),
    (0.0, 3.0),
    (0.0, 0.0),
    (20.0, 70.0),
    (10.0, 40.0),
    (1.0, 6.0),
    (0.5, 3.5),
)
THREAT_TRAFFIC_RANGES: tuple[tuple[float, float], ...] = (
    (100.0, 300.0),
    (10.0, 60.0),
    (500.0, 2500.0),
    (1000.0, 6000.0),
    (20.0, 70.0),
    (5.0, 25.0),
    (3.0, 13.0),
    (70.0, 110.0),
    (60.0, 110.0),
    (20.0, 70.0),
    (10.0, 30.0),
)

CONTRIBUTING_FEATURE_RULES: tuple[tuple[str, float, str], ...] = (
    ("failed_requests", 10.0, "High failed requests"),
    ("request_count", 100.0, "Excessive request volume"),
    ("response_time", 1000.0, "Slow response times"),
    ("suspicious_patterns", 5.0, "Suspicious patterns detected"),
    ("memory_usage", 80.0, "High memory usage"),
    ("click_rate", 20.0, "Abnormal click patterns"),
)

RF_WEIGHT = 0.6
IF_WEIGHT = 0.4


@dataclass(frozen=True)
class TrainingSample:
    vector: np.ndarray
    label: int


def risk_level_for(threat_score: float) -> RiskLevel:
    if threat_score > 0.8:
        return RiskLevel.critical
    if threat_score > 0.6:
        return RiskLevel.high
    if threat_score > 0.4:
        return RiskLevel.medium
    return RiskLevel.low


def contributing_features(features: NetworkFeatures) -> tuple[str, ...]:
    return tuple(
        label
        for name, limit, label in CONTRIBUTING_FEATURE_RULES
        if getattr(features, name) > limit
    )


def synthetic_patterns(
    rng: np.random.Generator,
    ranges: tuple[tuple[float, float], ...],
    count: int,
) -> np.ndarray:
    low = np.array([r[0] for r in ranges], dtype=np.float64)
    high = np.array([r[1] for r in ranges], dtype=np.float64)
    return rng.uniform(low, high, size=(count, len(ranges)))


class ThreatDetectionEngine:
    def __init__(
        self,
        settings: Settings | None = None,
        seed: int | None = None,
        bootstrap: bool = True,
        clock: Callable[[], float] = time.time,
    ):
        self.settings = settings or get_settings()
        self._rng = np.random.default_rng(seed if seed is not None else self.settings.random_seed)
        self._clock = clock

        self._training: list[TrainingSample] = []
        self._history: deque[NetworkFeatures] = deque()
        self._random_forest = self._new_random_forest()
        self._isolation_forest = self._new_isolation_forest()
        self._trained = False
        self._training_runs = 0
        self._last_training_time: datetime | None = None

        self._train_lock = threading.Lock()
        self._state_lock = threading.RLock()

        if bootstrap:
            self._training = self._bootstrap_training_set()
            TRAINING_SET_SIZE.set(len(self._training))
            self.train_models()

    def _forest_seed(self) -> int:
        return int(self._rng.integers(0, 2**32 - 1))

    def _new_random_forest(self) -> RandomForest:
        return RandomForest(
            n_trees=self.settings.rf_num_trees,
            max_depth=self.settings.rf_max_depth,
            min_samples=self.settings.rf_min_samples,
            random_state=self._forest_seed(),
        )

    def _new_isolation_forest(self) -> IsolationForest:
        return IsolationForest(
            n_trees=self.settings.if_num_trees,
            sample_size=self.settings.if_sample_size,
            threshold=self.settings.anomaly_threshold,
            random_state=self._forest_seed(),
        )

    def _bootstrap_training_set(self) -> list[TrainingSample]:
        normal = synthetic_patterns(
            self._rng, NORMAL_TRAFFIC_RANGES, self.settings.bootstrap_normal_samples
        )
        threat = synthetic_patterns(
            self._rng, THREAT_TRAFFIC_RANGES, self.settings.bootstrap_threat_samples
        )
        return [TrainingSample(row, 0) for row in normal] + [TrainingSample(row, 1) for row in threat]

    @property
    def trained(self) -> bool:
        return self._trained

    def train_models(self) -> bool:
        """Rebuild both forests from the current training set.

        Returns False when there is nothing to train on or training failed; the
        previous models (if any) stay in place in that case.
        """
        with self._train_lock:
            with self._state_lock:
                samples = list(self._training)
            if not samples:
                return False

            x = np.vstack([s.vector for s in samples])
            y = np.array([s.label for s in samples], dtype=np.int64)
            start = perf_counter()
            try:
                random_forest = self._new_random_forest()
                random_forest.fit(x, y)
                isolation_forest = self._new_isolation_forest()
                isolation_forest.fit(x)
            except Exception:
                logger.exception("Training on %d samples failed; keeping previous models", len(samples))
                return False
            duration = perf_counter() - start

            with self._state_lock:
                self._random_forest = random_forest
                self._isolation_forest = isolation_forest
                self._trained = random_forest.fitted and isolation_forest.fitted
                self._training_runs += 1
                self._last_training_time = datetime.now(timezone.utc)

        MODEL_TRAINING_RUNS_TOTAL.inc()
        MODEL_TRAINING_SECONDS.observe(duration)
        MODEL_READY.labels(model="random_forest").set(1 if random_forest.fitted else 0)
        MODEL_READY.labels(model="isolation_forest").set(1 if isolation_forest.fitted else 0)
        logger.info(
            "Trained %d trees + %d isolation trees on %d samples in %.2fs",
            len(random_forest.trees),
            len(isolation_forest.trees),
            len(samples),
            duration,
        )
        return True

    def extract_features(self, raw: Any) -> NetworkFeatures:
        if isinstance(raw, NetworkFeatures):
            validate_vector(raw.as_vector())
            return raw
        return extract_features(raw, timestamp=self._clock())

    def _remember(self, features: NetworkFeatures) -> None:
        with self._state_lock:
            self._history.append(features)
            self._prune_history()

    def _prune_history(self) -> None:
        cutoff = self._clock() - self.settings.feature_history_seconds
        while self._history and self._history[0].timestamp < cutoff:
            self._history.popleft()

    def detect_threats(self, raw: Any) -> ThreatPrediction:
        with self._state_lock:
            trained = self._trained
            random_forest = self._random_forest
            isolation_forest = self._isolation_forest
        if not trained:
            return ThreatPrediction.neutral()

        features = self.extract_features(raw)
        self._remember(features)
        try:
            prediction = self._predict(random_forest, isolation_forest, features)
        except Exception:
            logger.exception("Ensemble prediction failed; reporting neutral risk")
            DEGRADED_PREDICTIONS_TOTAL.inc()
            return ThreatPrediction.neutral()

        THREAT_PREDICTIONS_TOTAL.labels(risk_level=prediction.risk_level.value).inc()
        return prediction

    def _predict(
        self,
        random_forest: RandomForest,
        isolation_forest: IsolationForest,
        features: NetworkFeatures,
    ) -> ThreatPrediction:
        vector = features.as_vector()
        vote = random_forest.predict(vector)
        anomaly_score, anomaly_flag = isolation_forest.score(vector)

        threat_score = RF_WEIGHT * vote.prediction + IF_WEIGHT * anomaly_score
        isolated = 1.0 if anomaly_score > isolation_forest.threshold else 0.0
        confidence = (vote.confidence + isolated) / 2.0

        return ThreatPrediction(
            is_anomaly=vote.prediction == 1 or anomaly_flag,
            threat_score=float(np.clip(threat_score, 0.0, 1.0)),
            confidence=float(np.clip(confidence, 0.0, 1.0)),
            risk_level=risk_level_for(threat_score),
            features=contributing_features(features),
            algorithm=Algorithm.ensemble,
        )

    def retrain_with_feedback(self, features: NetworkFeatures | Any, is_threat: bool) -> bool:
        """Append one labelled sample; retrain when the set size hits the interval.

        Returns whether a retraining ran.
        """
        if isinstance(features, NetworkFeatures):
            features = features.as_vector()
        vector = validate_vector(features)

        with self._state_lock:
            self._training.append(TrainingSample(vector, 1 if is_threat else 0))
            if len(self._training) > self.settings.training_capacity:
                self._training = self._training[-self.settings.training_retain :]
            size = len(self._training)
        TRAINING_SET_SIZE.set(size)

        if size % self.settings.retrain_interval == 0:
            return self.train_models()
        return False

    def model_stats(self) -> ModelStats:
        with self._state_lock:
            self._prune_history()
            return ModelStats(
                training_data_size=len(self._training),
                model_trained=self._trained,
                feature_history_size=len(self._history),
                last_training_time=self._last_training_time,
                training_runs=self._training_runs,
            )

    def snapshot(self, directory: Path | None = None) -> dict[str, Path]:
        with self._state_lock:
            random_forest = self._random_forest
            isolation_forest = self._isolation_forest
        target = directory or self.settings.model_path
        timestamp = datetime.now(timezone.utc).strftime("%Y%m%d%H%M%S")
        return {
            "random_forest": random_forest.save(target / f"random_forest_{timestamp}.joblib"),
            "isolation_forest": isolation_forest.save(target / f"isolation_forest_{timestamp}.joblib"),
        }
