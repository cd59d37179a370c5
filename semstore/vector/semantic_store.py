"""
Semantic store service.
Composes an embedding provider, the record store and a similarity index
into ingest(id, text) and query(text, k).
"""

import threading
import time
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from ..core.errors import DimensionMismatch, EmptyStore, InvalidArgument
from ..util.logging import logger
from .embeddings import EmbeddingsService, IEmbeddingProvider
from .index import FlatIndex, ISimilarityIndex, check_k
from .record_store import VectorRecordStore, validate_vector
from .types import EmbeddingPurpose, QueryResult, VectorRecord

IndexFactory = Callable[[], ISimilarityIndex]


class SemanticStore:
    """
    High-level service for semantic storage and search.

    The index is rebuilt lazily: it remembers the record store version it
    was built from, and the next query after any change to the records
    (through this service or directly on ``records``) rebuilds it from a
    record snapshot. A rebuilt index is a fresh object swapped in under the
    write lock, so readers holding the old one are unaffected.
    """

    def __init__(self, embedding_provider: IEmbeddingProvider,
                 record_store: Optional[VectorRecordStore] = None,
                 index_factory: Optional[IndexFactory] = None):
        """
        Initialize the semantic store.

        Args:
            embedding_provider: External provider used for documents and queries
            record_store: Record store to write into, a fresh in-memory one by default
            index_factory: Zero-argument callable returning an unbuilt index
        """
        self.embeddings = EmbeddingsService(embedding_provider)
        self.records = record_store if record_store is not None else VectorRecordStore()
        self.index_factory = index_factory or FlatIndex

        self._index = None
        # An empty store has nothing to index; preloaded records need a build
        self._built_version = self.records.version if len(self.records) == 0 else None
        self._lock = threading.RLock()
        self._last_rebuild = None

    @property
    def is_stale(self) -> bool:
        """True when records changed since the last index build."""
        return self._built_version != self.records.version

    def ingest(self, identifier: str, text: str) -> VectorRecord:
        """
        Embed text and store it under identifier, replacing any previous record.

        Raises:
            EmbeddingProviderError: The provider failed; nothing was written
            DimensionMismatch: The embedding does not match the store dimension
        """
        if not isinstance(identifier, str) or not identifier:
            raise InvalidArgument("identifier must be a non-empty string")

        vector = self.embeddings.embed_text(text, EmbeddingPurpose.DOCUMENT)

        with self._lock:
            record = self.records.put(identifier, vector)

        return record

    def ingest_many(self, items: Union[Mapping[str, str], Iterable[Tuple[str, str]]]) -> List[VectorRecord]:
        """
        Ingest several (identifier, text) pairs all-or-nothing.

        Every text is embedded and every vector validated before the first
        write, so a provider failure or dimension mismatch leaves the store
        unchanged. A backing store failure mid-batch rolls back the records
        already written.
        """
        pairs = list(items.items()) if isinstance(items, Mapping) else list(items)
        if not pairs:
            return []

        for identifier, _ in pairs:
            if not isinstance(identifier, str) or not identifier:
                raise InvalidArgument("identifier must be a non-empty string")

        matrix = self.embeddings.embed_texts([text for _, text in pairs], EmbeddingPurpose.DOCUMENT)

        with self._lock:
            expected = self.records.dimension
            if expected is not None and matrix.shape[1] != expected:
                raise DimensionMismatch(expected, matrix.shape[1], pairs[0][0])
            for (identifier, _), row in zip(pairs, matrix):
                validate_vector(row, identifier)

            written = self.records.put_many(
                (identifier, row) for (identifier, _), row in zip(pairs, matrix)
            )

        logger.log_operation("semantic.ingest_many", details={"records": len(written)})
        return written

    def get(self, identifier: str) -> VectorRecord:
        """Return the stored record for identifier."""
        return self.records.get(identifier)

    def delete(self, identifier: str) -> None:
        """Delete the stored record for identifier."""
        with self._lock:
            self.records.delete(identifier)

    def rebuild_index(self) -> ISimilarityIndex:
        """
        Build a fresh index over the current records and swap it in.

        Idempotent. With no records there is nothing to index and the
        current index is dropped.
        """
        with self._lock:
            # Read the version before the snapshot so a concurrent write leaves it stale
            version = self.records.version
            if len(self.records) == 0:
                self._index = None
                self._built_version = version
                return None

            start = time.time()
            index = self.index_factory()
            index.build(self.records.all())

            self._index = index
            self._built_version = version
            self._last_rebuild = datetime.now()

        logger.log_index_rebuild(index.strategy, index.size, index.dimension,
                                 duration_ms=(time.time() - start) * 1000)
        return index

    def query(self, text: str, k: int = 5) -> QueryResult:
        """
        Return the k stored records nearest to the embedding of text.

        Raises:
            EmptyStore: Nothing has been ingested yet
            InvalidArgument: k < 1
            EmbeddingProviderError: The provider failed
            DimensionMismatch: The query embedding has the wrong dimension
        """
        if len(self.records) == 0:
            raise EmptyStore("Cannot query an empty store; ingest records first")
        check_k(k)

        start = time.time()
        vector = self.embeddings.embed_text(text, EmbeddingPurpose.QUERY)

        index = self._index
        if self.is_stale or index is None:
            index = self.rebuild_index()
            if index is None:
                raise EmptyStore("Cannot query an empty store; ingest records first")

        results = index.nearest(vector, k)
        logger.log_query(text, k, len(results), duration_ms=(time.time() - start) * 1000)
        return results

    def health(self) -> Dict[str, Any]:
        """
        Return store health information.

        Returns:
            Dict with size, dimension, provider, index strategy and staleness
        """
        index = self._index
        return {
            'status': 'healthy',
            'size': len(self.records),
            'dimension': self.records.dimension,
            'provider': self.embeddings.provider_name,
            'index_strategy': index.strategy if index is not None else self._factory_strategy(),
            'metric': index.metric.value if index is not None else None,
            'indexed': index.size if index is not None else 0,
            'stale': self.is_stale,
            'persistent': self.records.backing_store is not None,
            'last_rebuild': self._last_rebuild.isoformat() if self._last_rebuild else None,
            'last_checked': datetime.now().isoformat()
        }

    def _factory_strategy(self) -> Optional[str]:
        # functools.partial factories expose the class on .func
        target = getattr(self.index_factory, "func", self.index_factory)
        return getattr(target, "strategy", None)

    def __len__(self) -> int:
        return len(self.records)
