"""
FastAPI Dependencies

Provides dependency injection for the knowledge-base services.

The services are built once per process. When the configured backend has
no credentials the knowledge base is disabled: management endpoints answer
503 and context requests get an empty context.
"""

from dataclasses import dataclass
from typing import Optional, Union
from fastapi import HTTPException, status
import logging

from ..auth import get_supabase_client
from ..ingestion import DocumentProcessor, IngestionWorker
from ..rag.config import RAGConfig, get_rag_config
from ..rag.context_builder import DisabledContextBuilder, RAGContextBuilder
from ..rag.embedding_service import EmbeddingService, get_embedding_service
from ..rag.vector_store import BaseVectorStore, get_vector_store
from ..services.document_service import get_document_service

logger = logging.getLogger(__name__)


@dataclass
class RAGServices:
    """Knowledge-base components wired together."""
    config: RAGConfig
    embedding_service: EmbeddingService
    vector_store: BaseVectorStore
    document_service: object
    context_builder: RAGContextBuilder
    worker: IngestionWorker


def build_rag_services(config: Optional[RAGConfig] = None) -> RAGServices:
    """
    Wire up all knowledge-base components for a configuration.

    Args:
        config: RAG configuration (loads from env if not provided)

    Returns:
        RAGServices sharing one vector store and document service
    """
    config = config or get_rag_config()

    client = None
    if config.vector_backend != "memory":
        if not config.supabase_configured:
            raise ValueError("Supabase credentials not configured")
        client = get_supabase_client()

    embedding_service = get_embedding_service(config)
    vector_store = get_vector_store(config, client=client)
    document_service = get_document_service(config, client=client, vector_store=vector_store)

    context_builder = RAGContextBuilder(
        embedding_service, vector_store, document_service, config=config
    )
    worker = IngestionWorker(
        DocumentProcessor(config),
        embedding_service,
        vector_store,
        document_service,
        config=config
    )

    return RAGServices(
        config=config,
        embedding_service=embedding_service,
        vector_store=vector_store,
        document_service=document_service,
        context_builder=context_builder,
        worker=worker,
    )


# Cached instance (built on first use)
_services: Optional[RAGServices] = None
_services_checked = False


def get_rag_services() -> Optional[RAGServices]:
    """Get the shared knowledge-base services, or None when disabled."""
    global _services, _services_checked
    if not _services_checked:
        _services_checked = True
        try:
            _services = build_rag_services()
            logger.info("Knowledge base services initialized")
        except ValueError as e:
            logger.warning(f"RAG features disabled: {e}")
            _services = None
    return _services


def require_rag_services() -> RAGServices:
    """
    Knowledge-base services dependency.

    Raises:
        HTTPException: 503 when the knowledge base is not configured
    """
    services = get_rag_services()
    if services is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="RAG features not available - Supabase not configured"
        )
    return services


def get_context_builder() -> Union[RAGContextBuilder, DisabledContextBuilder]:
    """Context builder dependency; a no-op builder when RAG is disabled."""
    services = get_rag_services()
    if services is None:
        return DisabledContextBuilder()
    return services.context_builder


def shutdown_rag_services() -> None:
    """Wait for queued ingestion jobs and release the worker pool."""
    if _services is not None:
        _services.worker.shutdown(wait=True)
