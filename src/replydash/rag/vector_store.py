"""
Vector Store Interface

Manages storage and retrieval of chunk embeddings, isolated per company.

Backends:
- VectorStore: Supabase Postgres with pgvector. Similarity ranking and
  thresholding run in the ``search_company_knowledge`` RPC (cosine).
- InMemoryVectorStore: process-local store for development and tests.

Features:
- Batched inserts of chunks with embeddings and metadata
- Tenant-scoped similarity search with a minimum score
- Per-document deletion
- Per-company statistics
"""

import logging
import re
import threading
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence

from supabase import Client, create_client

from ..models import CompanyStats
from .chunker import TextChunk
from .config import RAGConfig
from .embedding_service import cosine_similarity

logger = logging.getLogger(__name__)

UUID_PATTERN = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$",
    re.IGNORECASE
)


class VectorStoreError(Exception):
    """Raised when the underlying store rejects an operation."""
    pass


class InvalidCompanyIdError(ValueError):
    """Raised when a company id is not UUID-shaped."""
    pass


def validate_company_id(company_id: str) -> str:
    """
    Check that a company id has canonical UUID shape.

    Raises:
        InvalidCompanyIdError: If it does not
    """
    if not isinstance(company_id, str) or not UUID_PATTERN.match(company_id):
        raise InvalidCompanyIdError(
            f"Invalid company ID format: {company_id!r}. Must be a valid UUID."
        )
    return company_id


class BaseVectorStore:
    """
    Shared chunk storage logic.

    Subclasses provide the backend operations; validation, batching and
    error wrapping live here so every backend enforces the same
    preconditions.
    """

    def __init__(self, config: Optional[RAGConfig] = None):
        self.config = config or RAGConfig()
        self.batch_size = self.config.store_batch_size

    def store_chunks(
        self,
        company_id: str,
        document_id: str,
        chunks: Sequence[TextChunk],
        embeddings: Sequence[List[float]],
        metadata: Optional[Dict[str, Any]] = None
    ) -> int:
        """
        Store chunks with their embeddings.

        Args:
            company_id: Owning company UUID
            document_id: Owning document UUID
            chunks: Chunks in document order
            embeddings: Embedding vectors (same order as chunks)
            metadata: Extra metadata copied onto every chunk

        Returns:
            Number of chunks stored

        Raises:
            ValueError: If chunks and embeddings disagree, before any write
            VectorStoreError: If a batch insert fails (earlier batches stay)
        """
        if len(chunks) != len(embeddings):
            raise ValueError(
                f"Chunks and embeddings must have the same length "
                f"({len(chunks)} chunks, {len(embeddings)} embeddings)"
            )

        for position, chunk in enumerate(chunks):
            if chunk.chunk_index != position:
                raise ValueError(
                    f"Chunk at position {position} has chunk_index {chunk.chunk_index}"
                )

        if not chunks:
            return 0

        records = []
        for position, (chunk, embedding) in enumerate(zip(chunks, embeddings)):
            records.append({
                "company_id": company_id,
                "document_id": document_id,
                "content": chunk.content,
                "embedding": list(embedding),
                "chunk_index": chunk.chunk_index,
                "token_count": chunk.token_count,
                "metadata": {**(metadata or {}), "original_index": position},
            })

        total_stored = 0
        for i in range(0, len(records), self.batch_size):
            batch = records[i:i + self.batch_size]
            try:
                self._insert_batch(batch)
            except Exception as e:
                logger.error(
                    f"Error storing chunks for document {document_id} "
                    f"after {total_stored} committed: {e}"
                )
                raise VectorStoreError(f"Failed to store chunks: {e}") from e
            total_stored += len(batch)
            logger.info(f"Stored batch {i // self.batch_size + 1}: {len(batch)} chunks")

        logger.info(f"Stored {total_stored} chunks for document {document_id}")
        return total_stored

    def retrieve_relevant_chunks(
        self,
        company_id: str,
        query_embedding: List[float],
        limit: int = 10,
        similarity_threshold: float = 0.7
    ) -> List[Dict[str, Any]]:
        """
        Retrieve the chunks most similar to a query.

        Args:
            company_id: Company UUID; results never cross this boundary
            query_embedding: Query vector
            limit: Maximum number of chunks
            similarity_threshold: Minimum cosine similarity

        Returns:
            Chunks ordered by descending similarity; may be fewer than limit

        Raises:
            InvalidCompanyIdError: If company_id is not UUID-shaped
            VectorStoreError: If the search fails
        """
        validate_company_id(company_id)

        try:
            results = self._search(company_id, query_embedding, limit, similarity_threshold)
        except Exception as e:
            logger.error(f"Error retrieving chunks for company {company_id}: {e}")
            raise VectorStoreError(f"Failed to retrieve chunks: {e}") from e

        logger.info(f"Retrieved {len(results)} relevant chunks for company {company_id}")
        return results

    def delete_document_chunks(self, document_id: str) -> None:
        """Delete all chunks of a document."""
        try:
            self._delete_document(document_id)
        except Exception as e:
            logger.error(f"Error deleting chunks for document {document_id}: {e}")
            raise VectorStoreError(f"Failed to delete chunks: {e}") from e
        logger.info(f"Deleted chunks for document {document_id}")

    def get_company_stats(self, company_id: str) -> CompanyStats:
        """
        Get aggregate knowledge-base statistics for a company.

        Returns:
            CompanyStats, zeroed when the company has no data
        """
        validate_company_id(company_id)
        try:
            row = self._stats(company_id)
        except Exception as e:
            logger.error(f"Error getting stats for company {company_id}: {e}")
            raise VectorStoreError(f"Failed to get company stats: {e}") from e

        if not row:
            return CompanyStats()
        return CompanyStats(**{k: v for k, v in row.items() if v is not None})

    # Backend operations

    def _insert_batch(self, batch: List[Dict[str, Any]]) -> None:
        raise NotImplementedError

    def _search(
        self,
        company_id: str,
        query_embedding: List[float],
        limit: int,
        similarity_threshold: float
    ) -> List[Dict[str, Any]]:
        raise NotImplementedError

    def _delete_document(self, document_id: str) -> None:
        raise NotImplementedError

    def _stats(self, company_id: str) -> Optional[Dict[str, Any]]:
        raise NotImplementedError


class VectorStore(BaseVectorStore):
    """Interface to Supabase pgvector storage."""

    CHUNKS_TABLE = "company_chunks"
    SEARCH_RPC = "search_company_knowledge"
    STATS_RPC = "get_company_knowledge_stats"

    def __init__(self, config: RAGConfig, client: Optional[Client] = None):
        """
        Initialize vector store.

        Args:
            config: RAG configuration
            client: Supabase client (created from config if omitted)
        """
        super().__init__(config)

        if client is None:
            if not config.supabase_configured:
                raise ValueError(
                    "Supabase credentials not configured. "
                    "Set SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY environment variables."
                )
            logger.info(f"Connecting to Supabase at {config.supabase_url}")
            client = create_client(config.supabase_url, config.supabase_key)

        self.client = client

    def _insert_batch(self, batch: List[Dict[str, Any]]) -> None:
        self.client.table(self.CHUNKS_TABLE).insert(batch).execute()

    def _search(
        self,
        company_id: str,
        query_embedding: List[float],
        limit: int,
        similarity_threshold: float
    ) -> List[Dict[str, Any]]:
        response = self.client.rpc(self.SEARCH_RPC, {
            "p_company_id": company_id,
            "p_query_embedding": list(query_embedding),
            "p_limit": limit,
            "p_similarity_threshold": similarity_threshold,
        }).execute()
        return response.data or []

    def _delete_document(self, document_id: str) -> None:
        self.client.table(self.CHUNKS_TABLE).delete().eq("document_id", document_id).execute()

    def _stats(self, company_id: str) -> Optional[Dict[str, Any]]:
        response = self.client.rpc(self.STATS_RPC, {"p_company_id": company_id}).execute()
        data = response.data
        # RPC returns a one-row table
        if isinstance(data, list):
            return data[0] if data else None
        return data


class InMemoryVectorStore(BaseVectorStore):
    """Process-local implementation of the vector store."""

    def __init__(self, config: Optional[RAGConfig] = None):
        super().__init__(config)
        self._records: List[Dict[str, Any]] = []
        self._lock = threading.Lock()

    def _insert_batch(self, batch: List[Dict[str, Any]]) -> None:
        now = datetime.now(timezone.utc)
        with self._lock:
            for record in batch:
                self._records.append({**record, "id": str(uuid.uuid4()), "created_at": now})

    def _search(
        self,
        company_id: str,
        query_embedding: List[float],
        limit: int,
        similarity_threshold: float
    ) -> List[Dict[str, Any]]:
        with self._lock:
            candidates = [r for r in self._records if r["company_id"] == company_id]

        scored = []
        for record in candidates:
            score = cosine_similarity(query_embedding, record["embedding"])
            if score >= similarity_threshold:
                scored.append((score, record))

        scored.sort(key=lambda item: (-item[0], item[1]["document_id"], item[1]["chunk_index"]))

        return [
            {
                "id": record["id"],
                "document_id": record["document_id"],
                "content": record["content"],
                "chunk_index": record["chunk_index"],
                "token_count": record["token_count"],
                "metadata": record["metadata"],
                "filename": record["metadata"].get("filename"),
                "similarity": score,
            }
            for score, record in scored[:limit]
        ]

    def _delete_document(self, document_id: str) -> None:
        with self._lock:
            self._records = [r for r in self._records if r["document_id"] != document_id]

    def _stats(self, company_id: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            rows = [r for r in self._records if r["company_id"] == company_id]

        if not rows:
            return None

        return {
            "total_documents": len({r["document_id"] for r in rows}),
            "total_chunks": len(rows),
            "total_tokens": sum(r["token_count"] for r in rows),
            "total_storage_bytes": sum(len(r["content"].encode("utf-8")) for r in rows),
            "last_updated": max(r["created_at"] for r in rows),
        }

    def count_chunks(self, document_id: Optional[str] = None) -> int:
        """Count stored chunks, optionally for one document."""
        with self._lock:
            if document_id is None:
                return len(self._records)
            return sum(1 for r in self._records if r["document_id"] == document_id)


def get_vector_store(
    config: Optional[RAGConfig] = None,
    client: Optional[Client] = None
) -> BaseVectorStore:
    """
    Get vector store instance for the configured backend.

    Args:
        config: RAG configuration (optional)
        client: Supabase client to reuse (optional)

    Returns:
        VectorStore or InMemoryVectorStore
    """
    if config is None:
        from .config import get_rag_config
        config = get_rag_config()

    if config.vector_backend == "memory":
        return InMemoryVectorStore(config)

    return VectorStore(config, client=client)
