"""Pytest configuration and shared fixtures."""

import re
import uuid
import pytest
from typing import List

from replydash.rag.config import RAGConfig
from replydash.rag.embedding_service import EmbeddingError
from replydash.rag.vector_store import InMemoryVectorStore
from replydash.services.document_service import InMemoryDocumentService


# Words that map onto embedding dimensions for the keyword embedder
VOCABULARY = ["pricing", "support", "security", "integration", "refund", "onboarding", "api", "team"]


class KeywordEmbeddingService:
    """
    Deterministic stand-in for the embedding provider.

    Each vocabulary word owns one dimension; a text's vector counts the
    vocabulary words it contains. Texts sharing no words are orthogonal.
    """

    def __init__(self, dimension: int = len(VOCABULARY)):
        self.dimension = dimension
        self.calls: List[List[str]] = []

    def _vector(self, text: str) -> List[float]:
        words = re.findall(r"[a-z]+", text.lower())
        return [float(words.count(term)) for term in VOCABULARY[:self.dimension]]

    def embed_text(self, text: str) -> List[float]:
        return self._vector(text)

    def embed_batch(self, texts: List[str]) -> List[List[float]]:
        self.calls.append(list(texts))
        return [self._vector(text) for text in texts]

    def get_query_embedding(self, query: str) -> List[float]:
        return self._vector(query)


class FailingEmbeddingService(KeywordEmbeddingService):
    """Embedding stand-in whose first ``failures`` batch calls fail."""

    def __init__(self, failures: int = 1_000_000):
        super().__init__()
        self.failures = failures

    def _fail(self):
        if self.failures > 0:
            self.failures -= 1
            raise EmbeddingError("Failed to generate batch embeddings: rate limit exceeded")

    def embed_batch(self, texts: List[str]) -> List[List[float]]:
        self.calls.append(list(texts))
        self._fail()
        return [self._vector(text) for text in texts]

    def get_query_embedding(self, query: str) -> List[float]:
        self._fail()
        return self._vector(query)


@pytest.fixture
def rag_config():
    """In-memory configuration sized for the keyword embedder."""
    return RAGConfig(
        vector_backend="memory",
        embedding_dimension=len(VOCABULARY),
        max_concurrent_ingestions=2,
    )


@pytest.fixture
def company_id():
    """A fresh company UUID."""
    return str(uuid.uuid4())


@pytest.fixture
def embedding_service():
    return KeywordEmbeddingService()


@pytest.fixture
def vector_store(rag_config):
    return InMemoryVectorStore(rag_config)


@pytest.fixture
def document_service(vector_store):
    return InMemoryDocumentService(vector_store=vector_store)


@pytest.fixture
def failing_embedding_service():
    """Factory for embedders that fail their first ``failures`` calls."""
    return FailingEmbeddingService
