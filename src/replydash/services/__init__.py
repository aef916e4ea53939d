"""Persistence services for company knowledge records."""

from .document_service import DocumentService, InMemoryDocumentService, get_document_service

__all__ = ["DocumentService", "InMemoryDocumentService", "get_document_service"]
