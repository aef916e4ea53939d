"""
Embedding Service

Generates vector embeddings for text through litellm.

Model: text-embedding-3-small (default)
- 1536-dimensional embeddings
- Batched requests: one call embeds many texts, order preserved

Errors from the provider (auth, rate limit, timeout, malformed input) are
wrapped in EmbeddingError and propagated. This service never retries;
backoff is the caller's decision.
"""

import logging
from typing import Any, List, Optional
import numpy as np

import litellm

from .config import RAGConfig

logger = logging.getLogger(__name__)


class EmbeddingError(Exception):
    """Raised when the embedding provider fails."""
    pass


class EmbeddingService:
    """Service for generating text embeddings."""

    def __init__(self, config: RAGConfig):
        """
        Initialize embedding service.

        Args:
            config: RAG configuration
        """
        self.config = config
        self.model_name = config.embedding_model
        self.batch_size = config.embedding_batch_size
        self.dimension = config.embedding_dimension
        self.timeout = config.embedding_timeout

        logger.info(f"Embedding model: {self.model_name} ({self.dimension} dims)")

    def _request(self, texts: List[str]) -> List[List[float]]:
        """Send one embedding request and return vectors in input order."""
        kwargs = {"model": self.model_name, "input": texts}
        if self.timeout is not None:
            kwargs["timeout"] = self.timeout

        response = litellm.embedding(**kwargs)

        items = list(response.data)
        if len(items) != len(texts):
            raise EmbeddingError(
                f"Provider returned {len(items)} embeddings for {len(texts)} inputs"
            )

        # Providers report each vector's input position
        items.sort(key=lambda item: _field(item, "index") or 0)
        vectors = [list(_field(item, "embedding")) for item in items]

        for vector in vectors:
            if len(vector) != self.dimension:
                raise EmbeddingError(
                    f"Expected {self.dimension}-dimensional embedding, got {len(vector)}"
                )
        return vectors

    def embed_text(self, text: str) -> List[float]:
        """
        Generate embedding for a single text.

        Args:
            text: Text to embed

        Returns:
            Embedding vector as list of floats

        Raises:
            EmbeddingError: If the provider call fails
        """
        try:
            return self._request([text])[0]
        except EmbeddingError:
            raise
        except Exception as e:
            logger.error(f"Error generating embedding: {e}")
            raise EmbeddingError(f"Failed to generate embedding: {e}") from e

    def embed_batch(self, texts: List[str]) -> List[List[float]]:
        """
        Generate embeddings for multiple texts.

        Args:
            texts: List of texts to embed

        Returns:
            List of embedding vectors, same order as texts

        Raises:
            EmbeddingError: If any provider call fails
        """
        if not texts:
            return []

        logger.info(f"Embedding {len(texts)} texts in batches of {self.batch_size}")

        embeddings: List[List[float]] = []
        try:
            for i in range(0, len(texts), self.batch_size):
                embeddings.extend(self._request(texts[i:i + self.batch_size]))
        except EmbeddingError:
            raise
        except Exception as e:
            logger.error(f"Error generating batch embeddings: {e}")
            raise EmbeddingError(f"Failed to generate batch embeddings: {e}") from e

        return embeddings

    def get_query_embedding(self, query: str) -> List[float]:
        """
        Generate embedding for a search query.

        Args:
            query: Search query text

        Returns:
            Query embedding vector
        """
        # Queries and documents share one embedding space
        return self.embed_text(query)

    def similarity(
        self,
        embedding1: List[float],
        embedding2: List[float]
    ) -> float:
        """
        Calculate cosine similarity between two embeddings.

        Args:
            embedding1: First embedding vector
            embedding2: Second embedding vector

        Returns:
            Cosine similarity score
        """
        return cosine_similarity(embedding1, embedding2)


def cosine_similarity(embedding1: List[float], embedding2: List[float]) -> float:
    """Cosine similarity of two vectors (0.0 when either is all zeros)."""
    vec1 = np.asarray(embedding1, dtype=float)
    vec2 = np.asarray(embedding2, dtype=float)

    norm1 = np.linalg.norm(vec1)
    norm2 = np.linalg.norm(vec2)

    if norm1 == 0 or norm2 == 0:
        return 0.0

    return float(np.dot(vec1, vec2) / (norm1 * norm2))


def _field(item: Any, name: str, default: Any = None) -> Any:
    # litellm returns plain dicts for most providers, objects for some
    if isinstance(item, dict):
        return item.get(name, default)
    return getattr(item, name, default)


def get_embedding_service(config: Optional[RAGConfig] = None) -> EmbeddingService:
    """
    Get embedding service instance.

    Args:
        config: RAG configuration (optional, will load from env if not provided)

    Returns:
        EmbeddingService instance
    """
    if config is None:
        from .config import get_rag_config
        config = get_rag_config()

    return EmbeddingService(config)
