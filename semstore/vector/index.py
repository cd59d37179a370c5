"""
Similarity indexes - disposable search structures built from a record snapshot.
An index is never a source of truth; rebuilding is the only way to pick up new records.
"""

import heapq
from abc import ABC, abstractmethod
from typing import Iterable, List, Optional, Sequence, Tuple

import numpy as np

from ..core.errors import DimensionMismatch, EmptyInput, InvalidArgument
from .metrics import DistanceMetric, distances
from .types import Neighbor, QueryResult, VectorRecord, to_vector


def snapshot(records: Iterable[VectorRecord]) -> Tuple[List[str], np.ndarray]:
    """Materialize records into an id list and an (n, dim) matrix.

    Raises EmptyInput for no records and DimensionMismatch if they disagree.
    """
    records = list(records)
    if not records:
        raise EmptyInput("Cannot build an index from zero records")

    dimension = records[0].dimension
    for record in records:
        if record.dimension != dimension:
            raise DimensionMismatch(dimension, record.dimension, record.id)

    ids = [record.id for record in records]
    matrix = np.array([record.vector for record in records], dtype=np.float64)
    return ids, matrix


def rank(ids: Sequence[str], scores: np.ndarray, k: int) -> QueryResult:
    """Order by ascending distance, ties by ascending id, and keep the first k."""
    order = heapq.nsmallest(k, range(len(ids)), key=lambda i: (float(scores[i]), ids[i]))
    return [Neighbor(ids[i], float(scores[i])) for i in order]


def check_k(k: int) -> None:
    if isinstance(k, bool) or not isinstance(k, (int, np.integer)) or k < 1:
        raise InvalidArgument(f"k must be an integer >= 1, got {k!r}")


class ISimilarityIndex(ABC):
    """Abstract interface for nearest-neighbour indexes."""

    strategy = "abstract"

    def __init__(self, metric: DistanceMetric = DistanceMetric.L2):
        self.metric = DistanceMetric(metric)
        self._dimension = None
        self._size = 0

    @property
    def dimension(self) -> Optional[int]:
        return self._dimension

    @property
    def size(self) -> int:
        return self._size

    @property
    def is_built(self) -> bool:
        return self._dimension is not None

    @abstractmethod
    def build(self, records: Iterable[VectorRecord]) -> "ISimilarityIndex":
        """Replace the index contents with the given records."""
        pass

    @abstractmethod
    def nearest(self, query_vector: Sequence[float], k: int) -> QueryResult:
        """Return up to k (id, distance) pairs closest to query_vector."""
        pass

    def _check_query(self, query_vector: Sequence[float], k: int) -> np.ndarray:
        check_k(k)
        if not self.is_built:
            raise EmptyInput("Index has not been built")

        query = to_vector(query_vector)
        if query.ndim != 1 or query.size != self._dimension:
            raise DimensionMismatch(self._dimension, query.size)
        if not np.all(np.isfinite(query)):
            raise InvalidArgument("Query vector contains NaN or infinite values")
        return query


class FlatIndex(ISimilarityIndex):
    """Exact brute-force index over a numpy matrix."""

    strategy = "flat"

    def __init__(self, metric: DistanceMetric = DistanceMetric.L2):
        super().__init__(metric)
        self._ids = []
        self._matrix = np.empty((0, 0), dtype=np.float64)

    def build(self, records: Iterable[VectorRecord]) -> "FlatIndex":
        ids, matrix = snapshot(records)

        self._ids = ids
        self._matrix = matrix
        self._matrix.setflags(write=False)
        self._size = len(ids)
        self._dimension = matrix.shape[1]
        return self

    def nearest(self, query_vector: Sequence[float], k: int) -> QueryResult:
        query = self._check_query(query_vector, k)
        scores = distances(self.metric, self._matrix, query)
        return rank(self._ids, scores, k)
