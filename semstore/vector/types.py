"""
Record and result types shared by the record store, the indexes and the
semantic store.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, NamedTuple, Sequence, Tuple

import numpy as np


class EmbeddingPurpose(str, Enum):
    """What an embedding will be used for. Some providers embed differently per purpose."""

    DOCUMENT = "document"
    QUERY = "query"


@dataclass(frozen=True)
class VectorRecord:
    """Represents an immutable vector record.

    Updates replace the record wholesale under the same id.
    """

    id: str
    """Unique identifier for the vector record"""

    vector: Tuple[float, ...]
    """The vector representation of the content"""

    dimension: int = field(init=False)
    """Length of ``vector``"""

    def __post_init__(self):
        object.__setattr__(self, "vector", tuple(float(v) for v in self.vector))
        object.__setattr__(self, "dimension", len(self.vector))


class Neighbor(NamedTuple):
    """One nearest-neighbour hit. Compares equal to a plain ``(id, distance)`` tuple."""

    id: str
    distance: float


# Ordered ascending by distance, ties by id.
QueryResult = List[Neighbor]


def to_vector(values: Sequence[float]) -> np.ndarray:
    """Coerce a list, tuple or array into a float64 numpy array."""
    return np.asarray(values, dtype=np.float64)
