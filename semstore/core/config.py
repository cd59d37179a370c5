"""
Configuration from environment variables.
Getter functions re-read the environment so overrides apply without re-import.
"""

import os
from functools import partial

from dotenv import load_dotenv

load_dotenv()

# Database path configuration
DB_PATH = os.getenv("DB_PATH", "./data/semstore.db")

# Debug flag
DEBUG = os.getenv("DEBUG", "false").lower() == "true"

# Persistence (default disabled, records live in memory only)
PERSIST_ENABLED = os.getenv("PERSIST_ENABLED", "false").lower() == "true"
KEY_PREFIX = os.getenv("KEY_PREFIX", "fact:")

# Embedding configuration
EMBED_PROVIDER = os.getenv("EMBED_PROVIDER", "hash")  # hash|sentence_transformer|openai
EMBED_MODEL_NAME = os.getenv("EMBED_MODEL_NAME", "all-mpnet-base-v2")
OPENAI_EMBED_MODEL = os.getenv("OPENAI_EMBED_MODEL", "text-embedding-3-small")
EMBED_DIM = os.getenv("EMBED_DIM", "384")  # parsed by get_embed_dim()

# Index configuration
VECTOR_INDEX = os.getenv("VECTOR_INDEX", "flat")  # flat|faiss
DISTANCE_METRIC = os.getenv("DISTANCE_METRIC", "l2")  # l2|cosine

VALID_EMBED_PROVIDERS = ["hash", "sentence_transformer", "openai"]
VALID_VECTOR_INDEXES = ["flat", "faiss"]
VALID_DISTANCE_METRICS = ["l2", "cosine"]

# Version string
VERSION = "1.0.0"


def debug_enabled():
    """Check if debug mode is enabled."""
    return os.getenv("DEBUG", "false").lower() == "true"


def is_persistence_enabled():
    """Check if records are mirrored into SQLite."""
    return os.getenv("PERSIST_ENABLED", "false").lower() == "true"


def get_db_path():
    return os.getenv("DB_PATH", DB_PATH)


def get_key_prefix():
    return os.getenv("KEY_PREFIX", KEY_PREFIX)


def get_distance_metric():
    """Get distance metric (l2|cosine)."""
    return os.getenv("DISTANCE_METRIC", DISTANCE_METRIC).lower()


def get_embed_dim():
    """Get hash embedding dimension. Raises ValueError when not an integer >= 1."""
    raw = os.getenv("EMBED_DIM", EMBED_DIM).strip()
    if not raw.isdigit() or int(raw) < 1:
        raise ValueError(f"EMBED_DIM must be an integer >= 1, got {raw!r}")
    return int(raw)


def get_embedding_provider():
    """Get configured embedding provider implementation."""
    provider = os.getenv("EMBED_PROVIDER", EMBED_PROVIDER).lower()

    if provider == "sentence_transformer":
        from ..vector.embeddings import SentenceTransformerEmbedding
        return SentenceTransformerEmbedding(os.getenv("EMBED_MODEL_NAME", EMBED_MODEL_NAME))
    elif provider == "openai":
        from ..vector.embeddings import OpenAIEmbedding
        return OpenAIEmbedding(
            model_name=os.getenv("OPENAI_EMBED_MODEL", OPENAI_EMBED_MODEL),
            api_key=os.getenv("OPENAI_API_KEY")
        )
    elif provider == "hash":
        from ..vector.embeddings import DeterministicHashEmbedding
        return DeterministicHashEmbedding(get_embed_dim())
    else:
        raise ValueError(f"Invalid EMBED_PROVIDER: {provider}")


def get_index_factory():
    """Get a zero-argument callable producing the configured similarity index."""
    from ..vector.metrics import DistanceMetric

    index_type = os.getenv("VECTOR_INDEX", VECTOR_INDEX).lower()
    metric = DistanceMetric(get_distance_metric())

    if index_type == "faiss":
        from ..vector.faiss_index import FaissIndex
        return partial(FaissIndex, metric=metric)
    elif index_type == "flat":
        from ..vector.index import FlatIndex
        return partial(FlatIndex, metric=metric)
    else:
        raise ValueError(f"Invalid VECTOR_INDEX: {index_type}")


def get_backing_store():
    """Get the SQLite backing store. Returns None if persistence disabled."""
    if not is_persistence_enabled():
        return None

    from .backing_store import SQLiteBackingStore
    return SQLiteBackingStore(get_db_path())


def get_semantic_store():
    """Build a SemanticStore wired from configuration.

    With persistence enabled, records already in the database are loaded.
    """
    from ..vector.record_store import VectorRecordStore
    from ..vector.semantic_store import SemanticStore

    backing_store = get_backing_store()
    records = VectorRecordStore(backing_store=backing_store, key_prefix=get_key_prefix())
    if backing_store is not None:
        records.load()

    return SemanticStore(
        embedding_provider=get_embedding_provider(),
        record_store=records,
        index_factory=get_index_factory()
    )


def validate_config():
    """Validate configuration and return any issues."""
    issues = []

    provider = os.getenv("EMBED_PROVIDER", EMBED_PROVIDER).lower()
    if provider not in VALID_EMBED_PROVIDERS:
        issues.append(f"Invalid EMBED_PROVIDER: {provider}")

    if provider == "openai" and not os.getenv("OPENAI_API_KEY"):
        issues.append("EMBED_PROVIDER=openai requires OPENAI_API_KEY")

    index_type = os.getenv("VECTOR_INDEX", VECTOR_INDEX).lower()
    if index_type not in VALID_VECTOR_INDEXES:
        issues.append(f"Invalid VECTOR_INDEX: {index_type}")

    metric = get_distance_metric()
    if metric not in VALID_DISTANCE_METRICS:
        issues.append(f"Invalid DISTANCE_METRIC: {metric}")

    try:
        get_embed_dim()
    except ValueError:
        issues.append("EMBED_DIM must be an integer >= 1")

    return issues
