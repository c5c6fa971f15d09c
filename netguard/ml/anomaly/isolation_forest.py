import math
from dataclasses import dataclass, field

import numpy as np

from netguard.ml.anomaly.isolation_tree import IsolationTree, average_path_length
from netguard.ml.base import PersistableModel


@dataclass
class IsolationForest(PersistableModel):
    n_trees: int = 50
    sample_size: int = 128
    threshold: float = 0.6
    random_state: int | None = None
    trees: list[IsolationTree] = field(default_factory=list, repr=False)
    effective_sample_size: int = 0
    fitted: bool = False

    def __post_init__(self) -> None:
        self.rng = np.random.default_rng(self.random_state)

    def fit(self, x: np.ndarray) -> None:
        x = np.asarray(x, dtype=np.float64)
        if len(x) < 2:
            return

        psi = min(self.sample_size, len(x))
        max_depth = math.ceil(math.log2(psi))
        trees: list[IsolationTree] = []
        for _ in range(self.n_trees):
            idx = self.rng.choice(len(x), size=psi, replace=False)
            trees.append(IsolationTree(x[idx], max_depth=max_depth, rng=self.rng))
        self.trees = trees
        self.effective_sample_size = psi
        self.fitted = True

    def mean_path_length(self, row: np.ndarray) -> float:
        return float(np.mean([tree.path_length(row) for tree in self.trees]))

    def score(self, row: np.ndarray) -> tuple[float, bool]:
        if not self.fitted or not self.trees:
            return 0.0, False

        normaliser = average_path_length(self.effective_sample_size)
        anomaly_score = float(2.0 ** (-self.mean_path_length(row) / normaliser))
        return anomaly_score, anomaly_score > self.threshold
