from fastapi import APIRouter, Depends

from netguard.api.deps import get_engine
from netguard.ml.engine import ThreatDetectionEngine
from netguard.schemas.detection import FeedbackIn, FeedbackResult, MetricsSnapshot, ThreatPrediction

router = APIRouter(prefix="/detection", tags=["detection"])


@router.post("/predict", response_model=ThreatPrediction)
def predict(payload: MetricsSnapshot, engine: ThreatDetectionEngine = Depends(get_engine)):
    return engine.detect_threats(payload)


@router.post("/feedback", response_model=FeedbackResult)
def feedback(payload: FeedbackIn, engine: ThreatDetectionEngine = Depends(get_engine)):
    features = engine.extract_features(payload.metrics)
    retrained = engine.retrain_with_feedback(features, payload.is_threat)
    return {
        "retrained": retrained,
        "training_data_size": engine.model_stats().training_data_size,
    }
