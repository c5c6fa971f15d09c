from dataclasses import dataclass, field
from typing import NamedTuple

import numpy as np

from netguard.ml.base import PersistableModel
from netguard.ml.tree.decision_tree import DecisionTree


class ForestVote(NamedTuple):
    prediction: int
    confidence: float


@dataclass
class RandomForest(PersistableModel):
    n_trees: int = 50
    max_depth: int = 10
    min_samples: int = 2
    random_state: int | None = None
    trees: list[DecisionTree] = field(default_factory=list, repr=False)
    fitted: bool = False

    def __post_init__(self) -> None:
        self.rng = np.random.default_rng(self.random_state)

    def _bootstrap(self, n_samples: int) -> np.ndarray:
        return self.rng.integers(0, n_samples, size=n_samples)

    def fit(self, x: np.ndarray, y: np.ndarray) -> None:
        x = np.asarray(x, dtype=np.float64)
        y = np.asarray(y, dtype=np.int64)
        if len(x) == 0:
            return

        trees: list[DecisionTree] = []
        for _ in range(self.n_trees):
            idx = self._bootstrap(len(x))
            tree = DecisionTree(max_depth=self.max_depth, min_samples=self.min_samples)
            trees.append(tree.train(x[idx], y[idx]))
        self.trees = trees
        self.fitted = True

    def votes(self, row: np.ndarray) -> np.ndarray:
        return np.array([tree.predict(row) for tree in self.trees], dtype=np.int64)

    def predict(self, row: np.ndarray) -> ForestVote:
        if not self.fitted or not self.trees:
            return ForestVote(prediction=0, confidence=0.0)

        n_trees = len(self.trees)
        threat_votes = int(self.votes(row).sum())
        confidence = abs(threat_votes / n_trees - 0.5) * 2.0
        # Strictly more than half: an exact tie is reported as "no threat".
        prediction = 1 if threat_votes > n_trees / 2 else 0
        return ForestVote(prediction=prediction, confidence=float(confidence))
