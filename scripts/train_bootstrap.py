from netguard.core.config import get_settings
from netguard.core.logging_config import configure_logging
from netguard.ml.engine import ThreatDetectionEngine


def run() -> None:
    settings = get_settings()
    configure_logging(settings.log_level)
    engine = ThreatDetectionEngine(settings=settings)
    paths = engine.snapshot()
    print(engine.model_stats().model_dump_json(indent=2))
    for name, path in paths.items():
        print(f"{name}: {path}")


if __name__ == "__main__":
    run()
