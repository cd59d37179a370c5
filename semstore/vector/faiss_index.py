"""
FAISS-backed similarity index.
Uses exact flat FAISS indexes so results match FlatIndex up to float32 rounding.
"""

from typing import Iterable, Sequence

import faiss
import numpy as np

from .index import ISimilarityIndex, rank, snapshot
from .metrics import DistanceMetric
from .types import QueryResult, VectorRecord


def _normalize_rows(matrix: np.ndarray) -> np.ndarray:
    norms = np.linalg.norm(matrix, axis=1, keepdims=True)
    norms[norms == 0] = 1.0  # zero vectors stay zero, inner product 0
    return matrix / norms


class FaissIndex(ISimilarityIndex):
    """FAISS flat index; IndexFlatL2 for l2, IndexFlatIP over normalized vectors for cosine."""

    strategy = "faiss"

    def __init__(self, metric: DistanceMetric = DistanceMetric.L2):
        super().__init__(metric)
        self.index = None
        self._ids = []

    def build(self, records: Iterable[VectorRecord]) -> "FaissIndex":
        ids, matrix = snapshot(records)
        dimension = matrix.shape[1]

        if self.metric is DistanceMetric.COSINE:
            index = faiss.IndexFlatIP(dimension)
            vectors = _normalize_rows(matrix)
        else:
            index = faiss.IndexFlatL2(dimension)
            vectors = matrix

        index.add(np.ascontiguousarray(vectors, dtype=np.float32))

        self.index = index
        self._ids = ids
        self._size = len(ids)
        self._dimension = dimension
        return self

    def nearest(self, query_vector: Sequence[float], k: int) -> QueryResult:
        query = self._check_query(query_vector, k)

        if self.metric is DistanceMetric.COSINE:
            query = _normalize_rows(query.reshape(1, -1))
        query_array = np.ascontiguousarray(query, dtype=np.float32).reshape(1, -1)

        # Search every vector so the id tie-break sees all equal distances
        raw, positions = self.index.search(query_array, self.index.ntotal)

        if self.metric is DistanceMetric.COSINE:
            scores = 1.0 - np.clip(raw[0].astype(np.float64), -1.0, 1.0)
        else:
            # IndexFlatL2 reports squared distances
            scores = np.sqrt(np.maximum(raw[0].astype(np.float64), 0.0))

        ids = [self._ids[p] for p in positions[0]]
        return rank(ids, scores, k)
