from __future__ import annotations

from dataclasses import dataclass, field

import numpy as np


@dataclass(frozen=True)
class Leaf:
    prediction: int


@dataclass(frozen=True)
class Split:
    feature_index: int
    threshold: float
    left: "Leaf | Split"
    right: "Leaf | Split"


Node = Leaf | Split


def gini_impurity(labels: np.ndarray) -> float:
    if len(labels) == 0:
        return 0.0
    counts = np.bincount(labels.astype(np.int64))
    probs = counts / float(len(labels))
    return float(1.0 - np.sum(probs**2))


def majority_class(labels: np.ndarray) -> int:
    if len(labels) == 0:
        return 0
    # argmax returns the lowest label on ties, so an even split predicts 0.
    return int(np.argmax(np.bincount(labels.astype(np.int64))))


def best_split(x: np.ndarray, y: np.ndarray) -> tuple[int, float, float] | None:
    """Return ``(feature_index, threshold, weighted_gini)`` of the cheapest split.

    Every midpoint between consecutive distinct values of every feature is a
    candidate. Class counts on each side are accumulated with ``cumsum`` over
    the sorted column, so one feature costs a sort instead of a rescan per
    threshold. Ties keep the first candidate found (lowest feature, lowest
    threshold).
    """
    n_samples, n_features = x.shape
    if n_samples < 2:
        return None

    labels = y.astype(np.int64)
    n_classes = int(labels.max()) + 1
    one_hot = np.eye(n_classes, dtype=np.float64)[labels]
    total_counts = one_hot.sum(axis=0)
    left_sizes = np.arange(1, n_samples, dtype=np.float64)
    right_sizes = n_samples - left_sizes

    best: tuple[int, float, float] | None = None
    for feature_index in range(n_features):
        order = np.argsort(x[:, feature_index], kind="stable")
        values = x[order, feature_index]
        valid = values[:-1] < values[1:]
        if not np.any(valid):
            continue

        left_counts = np.cumsum(one_hot[order], axis=0)[:-1]
        right_counts = total_counts - left_counts
        left_gini = 1.0 - np.sum((left_counts / left_sizes[:, None]) ** 2, axis=1)
        right_gini = 1.0 - np.sum((right_counts / right_sizes[:, None]) ** 2, axis=1)
        cost = (left_sizes * left_gini + right_sizes * right_gini) / n_samples
        cost = np.where(valid, cost, np.inf)

        position = int(np.argmin(cost))
        if best is None or cost[position] < best[2]:
            threshold = float((values[position] + values[position + 1]) / 2.0)
            best = (feature_index, threshold, float(cost[position]))
    return best


@dataclass
class DecisionTree:
    max_depth: int = 10
    min_samples: int = 2
    root: Node | None = field(default=None, repr=False)

    @property
    def fitted(self) -> bool:
        return self.root is not None

    def train(self, x: np.ndarray, y: np.ndarray) -> "DecisionTree":
        x = np.asarray(x, dtype=np.float64)
        y = np.asarray(y, dtype=np.int64)
        self.root = self._build(x, y, self.max_depth)
        return self

    def _build(self, x: np.ndarray, y: np.ndarray, depth: int) -> Node:
        if depth <= 0 or len(y) < self.min_samples or len(np.unique(y)) <= 1:
            return Leaf(majority_class(y))

        split = best_split(x, y)
        if split is None or split[2] >= gini_impurity(y):
            return Leaf(majority_class(y))

        feature_index, threshold, _ = split
        mask = x[:, feature_index] <= threshold
        return Split(
            feature_index=feature_index,
            threshold=threshold,
            left=self._build(x[mask], y[mask], depth - 1),
            right=self._build(x[~mask], y[~mask], depth - 1),
        )

    def predict(self, row: np.ndarray) -> int:
        if self.root is None:
            raise RuntimeError("DecisionTree.predict called before train")
        node = self.root
        while isinstance(node, Split):
            node = node.left if row[node.feature_index] <= node.threshold else node.right
        return node.prediction

    def depth(self) -> int:
        def _depth(node: Node | None) -> int:
            if node is None or isinstance(node, Leaf):
                return 0
            return 1 + max(_depth(node.left), _depth(node.right))

        return _depth(self.root)
