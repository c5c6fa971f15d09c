from fastapi import APIRouter, Depends, HTTPException

from netguard.api.deps import get_engine
from netguard.ml.engine import ThreatDetectionEngine
from netguard.schemas.detection import ModelStats, SnapshotResult

router = APIRouter(prefix="/models", tags=["models"])


@router.get("/stats", response_model=ModelStats)
def model_stats(engine: ThreatDetectionEngine = Depends(get_engine)):
    return engine.model_stats()


@router.post("/retrain", response_model=ModelStats)
def retrain(engine: ThreatDetectionEngine = Depends(get_engine)):
    if not engine.train_models():
        raise HTTPException(status_code=503, detail="Training failed, previous models kept")
    return engine.model_stats()


@router.post("/snapshot", response_model=SnapshotResult)
def snapshot(engine: ThreatDetectionEngine = Depends(get_engine)):
    paths = engine.snapshot()
    return {name: str(path) for name, path in paths.items()}
