"""
RAG System Configuration

Centralized configuration for all knowledge-base components including:
- Embedding model settings
- Vector store settings
- Chunking parameters
- Retrieval parameters
- Document ingestion limits
"""

import os
from typing import Optional
from pydantic import Field
from pydantic_settings import BaseSettings


class RAGConfig(BaseSettings):
    """Configuration for RAG system."""

    # Vector store backend
    vector_backend: str = Field(
        default="supabase",
        description="Storage backend for chunks and documents: 'supabase' or 'memory'"
    )
    supabase_url: Optional[str] = Field(
        default=None,
        description="Supabase project URL"
    )
    supabase_key: Optional[str] = Field(
        default=None,
        description="Supabase service role key (server-side writes)"
    )
    store_batch_size: int = Field(
        default=50,
        description="Chunk records inserted per request to respect payload limits"
    )

    # Embedding Model
    embedding_model: str = Field(
        default="text-embedding-3-small",
        description="litellm embedding model name"
    )
    embedding_dimension: int = Field(
        default=1536,
        description="Dimension of embedding vectors (text-embedding-3-small = 1536)"
    )
    embedding_batch_size: int = Field(
        default=100,
        description="Maximum texts sent in one embedding request"
    )
    embedding_timeout: Optional[float] = Field(
        default=None,
        description="Embedding request timeout in seconds (provider default if unset)"
    )
    embedding_max_attempts: int = Field(
        default=1,
        description="Attempts per embedding batch during ingestion (1 = no retry)"
    )

    # Text Chunking
    chunk_size: int = Field(
        default=500,
        description="Target chunk size in estimated tokens"
    )
    chunk_overlap: int = Field(
        default=100,
        description="Overlap carried between chunks in estimated tokens"
    )

    # Retrieval
    top_k: int = Field(
        default=10,
        description="Number of similar chunks to retrieve"
    )
    score_threshold: float = Field(
        default=0.7,
        description="Minimum cosine similarity score threshold"
    )

    # Ingestion
    fetch_timeout: float = Field(
        default=30.0,
        description="Timeout in seconds for fetching URL sources"
    )
    fetch_user_agent: str = Field(
        default="Mozilla/5.0 (compatible; ReplyDash/1.0; +https://replydash.com)",
        description="User-Agent sent when fetching URL sources"
    )
    min_url_chars: int = Field(
        default=100,
        description="Minimum characters of page text for a URL source"
    )
    min_document_chars: int = Field(
        default=1,
        description="Minimum characters of cleaned text for a document"
    )
    max_upload_bytes: int = Field(
        default=50 * 1024 * 1024,
        description="Maximum accepted upload size"
    )
    max_concurrent_ingestions: int = Field(
        default=4,
        description="Ingestion jobs processed in parallel"
    )

    class Config:
        env_prefix = "RAG_"
        case_sensitive = False

    @property
    def supabase_configured(self) -> bool:
        return bool(self.supabase_url and self.supabase_key)


def get_rag_config() -> RAGConfig:
    """Get RAG configuration from environment."""
    # Supabase credentials use the unprefixed names shared with auth
    overrides = {}
    supabase_url = os.getenv("SUPABASE_URL")
    supabase_key = os.getenv("SUPABASE_SERVICE_ROLE_KEY") or os.getenv("SUPABASE_ANON_KEY")
    if supabase_url:
        overrides["supabase_url"] = supabase_url
    if supabase_key:
        overrides["supabase_key"] = supabase_key
    return RAGConfig(**overrides)
