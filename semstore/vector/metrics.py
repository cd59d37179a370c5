"""
Distance metrics for nearest-neighbour search. Smaller is closer.
"""

from enum import Enum

import numpy as np


class DistanceMetric(str, Enum):
    L2 = "l2"
    COSINE = "cosine"


def l2_distances(matrix: np.ndarray, query: np.ndarray) -> np.ndarray:
    """Euclidean distance from query to every row of matrix."""
    return np.linalg.norm(matrix - query, axis=1)


def cosine_distances(matrix: np.ndarray, query: np.ndarray) -> np.ndarray:
    """1 - cosine similarity from query to every row; zero vectors have similarity 0."""
    row_norms = np.linalg.norm(matrix, axis=1)
    query_norm = np.linalg.norm(query)
    denominators = row_norms * query_norm

    similarities = np.zeros(matrix.shape[0], dtype=np.float64)
    nonzero = denominators > 0
    similarities[nonzero] = (matrix[nonzero] @ query) / denominators[nonzero]
    return 1.0 - np.clip(similarities, -1.0, 1.0)


def distances(metric: DistanceMetric, matrix: np.ndarray, query: np.ndarray) -> np.ndarray:
    if DistanceMetric(metric) is DistanceMetric.COSINE:
        return cosine_distances(matrix, query)
    return l2_distances(matrix, query)
