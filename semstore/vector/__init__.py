"""
Vector layer - records, similarity indexes, embedding providers and the
semantic store that composes them.
"""

# Package initialization for vector module
from .types import VectorRecord, Neighbor, QueryResult, EmbeddingPurpose
from .metrics import DistanceMetric
from .record_store import VectorRecordStore
from .index import ISimilarityIndex, FlatIndex
from .embeddings import (
    IEmbeddingProvider,
    DeterministicHashEmbedding,
    SentenceTransformerEmbedding,
    OpenAIEmbedding,
    EmbeddingsService
)
from .semantic_store import SemanticStore

__all__ = [
    'VectorRecord',
    'Neighbor',
    'QueryResult',
    'EmbeddingPurpose',
    'DistanceMetric',
    'VectorRecordStore',
    'ISimilarityIndex',
    'FlatIndex',
    'IEmbeddingProvider',
    'DeterministicHashEmbedding',
    'SentenceTransformerEmbedding',
    'OpenAIEmbedding',
    'EmbeddingsService',
    'SemanticStore'
]
