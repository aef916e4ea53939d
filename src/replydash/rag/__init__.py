"""
RAG (Retrieval Augmented Generation) System

This module provides semantic search over each company's private documents.

Components:
- chunker: Splits cleaned text into overlapping paragraph-aware chunks
- embedding_service: Generates vector embeddings through litellm
- vector_store: Stores and searches chunk embeddings per company
- context_builder: Composes retrieval and voice settings for prompts
"""

from .config import RAGConfig, get_rag_config

__all__ = ["RAGConfig", "get_rag_config"]
