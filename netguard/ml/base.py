from pathlib import Path
from typing import Any

import joblib


class PersistableModel:
    """joblib round-trip for the forests; the whole object, trees included."""

    def save(self, path: Path) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        joblib.dump(self, path)
        return path

    @classmethod
    def load(cls, path: Path) -> Any:
        model = joblib.load(path)
        if not isinstance(model, cls):
            raise TypeError(f"{path} holds {type(model).__name__}, expected {cls.__name__}")
        return model
