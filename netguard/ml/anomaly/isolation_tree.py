from __future__ import annotations

import math
from dataclasses import dataclass

import numpy as np

EULER_GAMMA = 0.5772156649


def average_path_length(n: int) -> float:
    """Expected path length of an unsuccessful BST search among ``n`` points.

    Added at external nodes to account for the subtree the depth limit cut off.
    """
    if n <= 1:
        return 0.0
    return 2.0 * (math.log(n - 1) + EULER_GAMMA) - (2.0 * (n - 1) / n)


@dataclass(frozen=True)
class ExternalNode:
    size: int


@dataclass(frozen=True)
class InternalNode:
    feature_index: int
    split_value: float
    left: "ExternalNode | InternalNode"
    right: "ExternalNode | InternalNode"


IsolationNode = ExternalNode | InternalNode


def _split_value(rng: np.random.Generator, low: float, high: float) -> float:
    value = float(rng.uniform(low, high))
    if not low < value < high:
        value = low + (high - low) / 2.0
    return value


class IsolationTree:
    def __init__(self, data: np.ndarray, max_depth: int, rng: np.random.Generator):
        self.max_depth = max_depth
        self.root = self._grow(np.asarray(data, dtype=np.float64), 0, rng)

    def _grow(self, data: np.ndarray, depth: int, rng: np.random.Generator) -> IsolationNode:
        n_samples = len(data)
        if depth >= self.max_depth or n_samples <= 1:
            return ExternalNode(size=n_samples)

        feature_index = int(rng.integers(0, data.shape[1]))
        column = data[:, feature_index]
        low, high = float(column.min()), float(column.max())
        if low == high:
            return ExternalNode(size=n_samples)

        split_value = _split_value(rng, low, high)
        mask = column < split_value
        return InternalNode(
            feature_index=feature_index,
            split_value=split_value,
            left=self._grow(data[mask], depth + 1, rng),
            right=self._grow(data[~mask], depth + 1, rng),
        )

    def path_length(self, point: np.ndarray) -> float:
        node = self.root
        depth = 0
        while isinstance(node, InternalNode):
            node = node.left if point[node.feature_index] < node.split_value else node.right
            depth += 1
        return depth + average_path_length(node.size)
