"""
Vector record store - the source of truth for embedded facts.
Holds records in insertion order, optionally mirrored into a backing store.
"""

import threading
from typing import Dict, Iterable, Iterator, List, Optional, Sequence, Tuple

import numpy as np

from ..core.backing_store import IBackingStore
from ..core.errors import DimensionMismatch, InvalidArgument, NotFound, BackingStoreError
from ..util.logging import logger
from .types import VectorRecord, to_vector

DEFAULT_KEY_PREFIX = "fact:"


def encode_vector(vector: Sequence[float]) -> bytes:
    """Encode a vector as little-endian float64 bytes."""
    return np.asarray(vector, dtype="<f8").tobytes()


def decode_vector(blob: bytes) -> np.ndarray:
    """Decode bytes written by encode_vector."""
    return np.frombuffer(blob, dtype="<f8").astype(np.float64)


def validate_vector(vector: Sequence[float], identifier: str = None) -> np.ndarray:
    """Return vector as a 1-D float array or raise InvalidArgument."""
    try:
        array = to_vector(vector)
    except (TypeError, ValueError) as e:
        raise InvalidArgument(f"Vector for '{identifier}' is not numeric: {e}") from e
    if array.ndim != 1 or array.size == 0:
        raise InvalidArgument(f"Vector for '{identifier}' must be a non-empty 1-D sequence")
    if not np.all(np.isfinite(array)):
        raise InvalidArgument(f"Vector for '{identifier}' contains NaN or infinite values")
    return array


class RecordsView:
    """Lazy, restartable view over a store's records in insertion order."""

    def __init__(self, store: "VectorRecordStore"):
        self._store = store

    def __iter__(self) -> Iterator[VectorRecord]:
        # Snapshot the order under the lock so a concurrent put cannot break iteration
        with self._store._lock:
            ids = list(self._store._records)
        for record_id in ids:
            record = self._store._records.get(record_id)
            if record is not None:
                yield record

    def __len__(self) -> int:
        return len(self._store)


class VectorRecordStore:
    """In-memory mapping of identifier to VectorRecord with a fixed dimension.

    The dimension is fixed at construction or established by the first put.
    Writes are serialised by a lock; a failed put leaves memory and the
    backing store unchanged.
    """

    def __init__(self, dimension: Optional[int] = None,
                 backing_store: Optional[IBackingStore] = None,
                 key_prefix: str = DEFAULT_KEY_PREFIX):
        """
        Initialize the record store.

        Args:
            dimension: Expected vector dimension, or None to take it from the first record
            backing_store: Optional persistent store records are mirrored into
            key_prefix: Prefix of backing store keys owned by this record store
        """
        if dimension is not None and dimension < 1:
            raise InvalidArgument(f"dimension must be >= 1, got {dimension}")

        self._dimension = dimension
        self._records = {}  # record_id -> VectorRecord, insertion ordered
        self._version = 0
        self._lock = threading.RLock()
        self.backing_store = backing_store
        self.key_prefix = key_prefix

    @property
    def dimension(self) -> Optional[int]:
        """Dimension shared by every record, None until established."""
        return self._dimension

    @property
    def version(self) -> int:
        """Counter bumped by every successful put, delete, load and rollback."""
        return self._version

    def put(self, identifier: str, vector: Sequence[float]) -> VectorRecord:
        """Insert or replace the record stored under identifier."""
        if not isinstance(identifier, str) or not identifier:
            raise InvalidArgument("identifier must be a non-empty string")

        array = validate_vector(vector, identifier)

        with self._lock:
            if self._dimension is not None and array.size != self._dimension:
                logger.log_vector_operation(
                    "put", identifier,
                    {"expected_dim": self._dimension, "actual_dim": array.size},
                    status="rejected"
                )
                raise DimensionMismatch(self._dimension, array.size, identifier)

            record = VectorRecord(id=identifier, vector=array.tolist())

            # Persist first so a backing store failure leaves memory untouched
            if self.backing_store is not None:
                self.backing_store.set_fields(self._key(identifier), {
                    "id": identifier,
                    "dim": record.dimension,
                    "vector": encode_vector(array),
                })

            self._records[identifier] = record
            if self._dimension is None:
                self._dimension = record.dimension
            self._version += 1

        logger.log_vector_operation("put", identifier, {"dimension": record.dimension})
        return record

    def put_many(self, items: Iterable[Tuple[str, Sequence[float]]]) -> List[VectorRecord]:
        """
        Insert or replace several records all-or-nothing.

        If any put fails, records already written by this call are rolled
        back in memory and in the backing store before the error is raised.
        """
        pairs = list(items)

        with self._lock:
            dimension = self._dimension
            previous = {}  # identifier -> VectorRecord or None, first sighting only
            written = []
            try:
                for identifier, vector in pairs:
                    if identifier not in previous:
                        previous[identifier] = self._records.get(identifier)
                    written.append(self.put(identifier, vector))
            except Exception:
                if written:
                    touched = [identifier for identifier, _ in pairs[:len(written)]]
                    self._rollback(touched, previous, dimension)
                raise

        return written

    def _rollback(self, identifiers: List[str], previous: Dict[str, Optional[VectorRecord]],
                  dimension: Optional[int]) -> None:
        for identifier in dict.fromkeys(reversed(identifiers)):
            record = previous[identifier]
            if record is None:
                if self.backing_store is not None:
                    self.backing_store.delete_key(self._key(identifier))
                self._records.pop(identifier, None)
            else:
                if self.backing_store is not None:
                    self.backing_store.set_fields(self._key(identifier), {
                        "id": identifier,
                        "dim": record.dimension,
                        "vector": encode_vector(record.vector),
                    })
                self._records[identifier] = record

        self._dimension = dimension
        self._version += 1
        logger.log_operation("vector.put_many", status="rolled_back",
                             details={"records": len(set(identifiers))})

    def get(self, identifier: str) -> VectorRecord:
        """Return the record stored under identifier or raise NotFound."""
        record = self._records.get(identifier)
        if record is None:
            raise NotFound(identifier)
        return record

    def delete(self, identifier: str) -> None:
        """Delete the record stored under identifier or raise NotFound."""
        with self._lock:
            if identifier not in self._records:
                raise NotFound(identifier)
            if self.backing_store is not None:
                self.backing_store.delete_key(self._key(identifier))
            del self._records[identifier]
            self._version += 1

        logger.log_vector_operation("delete", identifier)

    def all(self) -> RecordsView:
        """Return a lazy, restartable iterable over all records in insertion order."""
        return RecordsView(self)

    def ids(self) -> List[str]:
        """Return record identifiers in insertion order."""
        with self._lock:
            return list(self._records)

    def load(self) -> int:
        """
        Rehydrate records from the backing store.

        Keys under ``key_prefix`` are loaded in sorted key order. Records
        already in memory with the same identifier are replaced.

        Returns:
            Number of records loaded
        """
        if self.backing_store is None:
            return 0

        loaded = []
        dimension = self._dimension
        for key in self.backing_store.list_keys(self.key_prefix):
            fields = self.backing_store.get_fields(key)
            if "vector" not in fields:
                raise BackingStoreError(f"Key '{key}' has no vector field", key=key)

            identifier = fields.get("id") or key[len(self.key_prefix):]
            array = decode_vector(fields["vector"])
            if dimension is None:
                dimension = array.size
            elif array.size != dimension:
                raise DimensionMismatch(dimension, array.size, identifier)
            loaded.append(VectorRecord(id=identifier, vector=array.tolist()))

        with self._lock:
            if self._dimension is not None and dimension != self._dimension:
                raise DimensionMismatch(self._dimension, dimension)
            for record in loaded:
                self._records[record.id] = record
            self._dimension = dimension
            self._version += 1

        logger.log_operation("vector.load", details={"records": len(loaded), "prefix": self.key_prefix})
        return len(loaded)

    def _key(self, identifier: str) -> str:
        return f"{self.key_prefix}{identifier}"

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, identifier: object) -> bool:
        return identifier in self._records
