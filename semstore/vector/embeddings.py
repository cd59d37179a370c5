"""
Embedding providers - the external collaborators that turn text into vectors.
"""

import hashlib
import time
from abc import ABC, abstractmethod
from typing import Dict, List, Optional

import numpy as np
from openai import OpenAI, OpenAIError

from ..core.errors import EmbeddingProviderError
from ..util.logging import logger
from .types import EmbeddingPurpose


class IEmbeddingProvider(ABC):
    """Abstract interface for embedding providers."""

    name = "abstract"

    @abstractmethod
    def embed_text(self, text: str, purpose: EmbeddingPurpose = EmbeddingPurpose.DOCUMENT) -> List[float]:
        """Generate embedding vector for given text."""
        pass

    @abstractmethod
    def get_dimension(self) -> int:
        """Get the dimension of the embedding vectors."""
        pass


class DeterministicHashEmbedding(IEmbeddingProvider):
    """Deterministic hash-based embedding provider for testing purposes.

    Hashes the text with SHA-256 in counter mode, so every dimension is
    filled and identical text always maps to the identical vector. Offline,
    no model download. Carries no semantics beyond exact-text equality.
    """

    name = "hash"

    def __init__(self, dimension: int = 384):
        if dimension < 1:
            raise ValueError(f"dimension must be >= 1, got {dimension}")
        self.dimension = dimension

    def embed_text(self, text: str, purpose: EmbeddingPurpose = EmbeddingPurpose.DOCUMENT) -> List[float]:
        """Generate deterministic embedding vector using hash function."""
        # Purpose is ignored so a query for a stored text lands on it exactly
        data = text.encode("utf-8")
        vector = []
        block = 0
        while len(vector) < self.dimension:
            digest = hashlib.sha256(block.to_bytes(4, "big") + data).digest()
            for i in range(0, len(digest), 4):
                value = int.from_bytes(digest[i:i + 4], "big")
                # Map to [-1, 1)
                vector.append((value / 2**32) * 2 - 1)
            block += 1

        return vector[:self.dimension]

    def get_dimension(self) -> int:
        """Get the dimension of the embedding vectors."""
        return self.dimension


class SentenceTransformerEmbedding(IEmbeddingProvider):
    """Sentence transformers embedding provider using pre-trained models.

    Uses the all-mpnet-base-v2 model by default. Models trained with
    instruction prefixes can be given per-purpose prompts, e.g.
    ``{EmbeddingPurpose.QUERY: "query: ", EmbeddingPurpose.DOCUMENT: "passage: "}``.
    """

    name = "sentence_transformer"

    def __init__(self, model_name: str = "all-mpnet-base-v2",
                 prompts: Optional[Dict[EmbeddingPurpose, str]] = None):
        self.model_name = model_name
        self.prompts = prompts or {}
        self._model = None
        self._dimension = None

    @property
    def model(self):
        if self._model is None:
            from sentence_transformers import SentenceTransformer
            self._model = SentenceTransformer(self.model_name)
        return self._model

    def embed_text(self, text: str, purpose: EmbeddingPurpose = EmbeddingPurpose.DOCUMENT) -> List[float]:
        """Generate embedding vector using sentence transformers."""
        prompt = self.prompts.get(EmbeddingPurpose(purpose), "")
        embedding = self.model.encode(prompt + text, convert_to_tensor=False)
        return embedding.tolist()

    def get_dimension(self) -> int:
        """Get the dimension of the embedding vectors."""
        if self._dimension is None:
            self._dimension = self.model.get_sentence_embedding_dimension()
        return self._dimension


class OpenAIEmbedding(IEmbeddingProvider):
    """Managed embeddings API provider through the OpenAI SDK.

    The API has no notion of purpose, so documents and queries embed the same way.
    """

    name = "openai"

    KNOWN_DIMENSIONS = {
        "text-embedding-3-small": 1536,
        "text-embedding-3-large": 3072,
        "text-embedding-ada-002": 1536,
    }

    def __init__(self, model_name: str = "text-embedding-3-small", api_key: Optional[str] = None,
                 dimensions: Optional[int] = None, client=None):
        """
        Initialize the managed embeddings provider.

        Args:
            model_name: Embedding model to request
            api_key: API key, defaults to the SDK's OPENAI_API_KEY lookup
            dimensions: Requested output dimension for models that support shortening
            client: Pre-built client, mainly for tests
        """
        self.model_name = model_name
        self.dimensions = dimensions
        if client is not None:
            self.client = client
        else:
            try:
                self.client = OpenAI(api_key=api_key)
            except OpenAIError as e:
                raise EmbeddingProviderError(f"Failed to initialize OpenAI client: {e}",
                                             cause=e, provider=self.name) from e

    def embed_text(self, text: str, purpose: EmbeddingPurpose = EmbeddingPurpose.DOCUMENT) -> List[float]:
        """Generate embedding vector with one API round trip."""
        kwargs = {"model": self.model_name, "input": text}
        if self.dimensions is not None:
            kwargs["dimensions"] = self.dimensions

        try:
            response = self.client.embeddings.create(**kwargs)
        except OpenAIError as e:
            raise EmbeddingProviderError(f"OpenAI embedding request failed: {e}",
                                         cause=e, provider=self.name) from e

        if not response.data:
            raise EmbeddingProviderError("OpenAI returned no embedding data", provider=self.name)
        return list(response.data[0].embedding)

    def get_dimension(self) -> int:
        """Get the dimension of the embedding vectors."""
        if self.dimensions is not None:
            return self.dimensions
        if self.model_name in self.KNOWN_DIMENSIONS:
            return self.KNOWN_DIMENSIONS[self.model_name]
        # Unknown model: ask the API once
        self.dimensions = len(self.embed_text("dimension probe"))
        return self.dimensions


class EmbeddingsService:
    """
    Wraps an embedding provider with validation, failure wrapping and logging.

    Every failure of the provider surfaces as EmbeddingProviderError with the
    original exception as its cause. Nothing is retried.
    """

    def __init__(self, provider: IEmbeddingProvider):
        """
        Initialize the embeddings service.

        Args:
            provider: The embedding provider to call
        """
        self.provider = provider

    @property
    def provider_name(self) -> str:
        return getattr(self.provider, "name", type(self.provider).__name__)

    def embed_text(self, text: str, purpose: EmbeddingPurpose = EmbeddingPurpose.DOCUMENT) -> np.ndarray:
        """Embed one text into a 1-D float64 array."""
        purpose = EmbeddingPurpose(purpose)
        start = time.time()
        try:
            raw = self.provider.embed_text(text, purpose)
        except EmbeddingProviderError as e:
            self._log_failure(text, purpose, start, e)
            raise
        except Exception as e:
            self._log_failure(text, purpose, start, e)
            raise EmbeddingProviderError(
                f"Embedding provider '{self.provider_name}' failed: {e}",
                cause=e, provider=self.provider_name
            ) from e

        vector = self._validate(raw)
        logger.log_embedding_call(self.provider_name, purpose.value, text,
                                  duration_ms=(time.time() - start) * 1000)
        return vector

    def embed_texts(self, texts: List[str], purpose: EmbeddingPurpose = EmbeddingPurpose.DOCUMENT) -> np.ndarray:
        """
        Embed multiple texts into vectors.

        Args:
            texts: List of text strings to embed
            purpose: What the embeddings will be used for

        Returns:
            Numpy array of shape (len(texts), embedding_dim)
        """
        embeddings = [self.embed_text(text, purpose) for text in texts]
        if not embeddings:
            return np.empty((0, 0), dtype=np.float64)
        sizes = {len(e) for e in embeddings}
        if len(sizes) != 1:
            raise EmbeddingProviderError(
                f"Provider '{self.provider_name}' returned inconsistent dimensions {sorted(sizes)}",
                provider=self.provider_name
            )
        return np.vstack(embeddings)

    def _validate(self, raw) -> np.ndarray:
        try:
            vector = np.asarray(raw, dtype=np.float64)
        except (TypeError, ValueError) as e:
            raise EmbeddingProviderError(f"Provider '{self.provider_name}' returned a non-numeric embedding",
                                         cause=e, provider=self.provider_name) from e
        if vector.ndim != 1 or vector.size == 0 or not np.all(np.isfinite(vector)):
            raise EmbeddingProviderError(f"Provider '{self.provider_name}' returned a malformed embedding",
                                         provider=self.provider_name)
        return vector

    def _log_failure(self, text: str, purpose: EmbeddingPurpose, start: float, error: Exception) -> None:
        logger.log_embedding_call(self.provider_name, purpose.value, text, status="error",
                                  duration_ms=(time.time() - start) * 1000, error=str(error))
