"""
Document Service - persistence for company documents and voice settings.

Owns the document lifecycle rows (processing -> completed | failed),
company records and per-company voice settings. Chunk rows belong to the
vector store; deleting a document removes its chunks.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple
import logging
import threading
import uuid

from supabase import Client, create_client

from ..models import DocumentRecord, DocumentStatus, FileType, VoiceSettings
from ..rag.config import RAGConfig
from ..rag.vector_store import BaseVectorStore, validate_company_id

logger = logging.getLogger(__name__)

VOICE_FIELDS = ("voice_guidelines", "brand_tone", "positioning")


class DocumentServiceError(Exception):
    """Raised when a document or settings operation fails in the store."""
    pass


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _voice_row(company_id: str, settings: Dict[str, Any]) -> Dict[str, Any]:
    row = {"company_id": company_id}
    for field in VOICE_FIELDS:
        row[field] = settings.get(field) or None
    row["metadata"] = settings.get("metadata") or {}
    return row


class DocumentService:
    """Supabase-backed document, company and voice settings storage."""

    COMPANIES_TABLE = "companies"
    MEMBERSHIPS_TABLE = "user_company_memberships"
    DOCUMENTS_TABLE = "company_documents"
    VOICE_TABLE = "company_voice_settings"

    def __init__(self, config: RAGConfig, client: Optional[Client] = None):
        """
        Initialize document service.

        Args:
            config: RAG configuration
            client: Supabase client (created from config if omitted)
        """
        if client is None:
            if not config.supabase_configured:
                raise ValueError(
                    "Supabase credentials not configured. "
                    "Set SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY environment variables."
                )
            client = create_client(config.supabase_url, config.supabase_key)
        self.client = client

    def _execute(self, action: str, query) -> List[Dict[str, Any]]:
        try:
            return query.execute().data or []
        except Exception as e:
            logger.error(f"Error during {action}: {e}")
            raise DocumentServiceError(f"Failed to {action}: {e}") from e

    def ensure_company(self, user_id: str, name: Optional[str] = None) -> Tuple[str, bool]:
        """
        Get or create the company owned by a user.

        Args:
            user_id: Owner user ID
            name: Company name used when creating

        Returns:
            Tuple of (company_id, existed)
        """
        existing = self._execute(
            "look up company",
            self.client.table(self.COMPANIES_TABLE)
            .select("id")
            .eq("owner_user_id", user_id)
            .limit(1)
        )
        if existing:
            return existing[0]["id"], True

        created = self._execute(
            "create company",
            self.client.table(self.COMPANIES_TABLE).insert({
                "owner_user_id": user_id,
                "name": name or f"{user_id}'s Company",
                "description": "Auto-created company for knowledge base",
            })
        )
        company_id = created[0]["id"]

        self._execute(
            "add company owner",
            self.client.table(self.MEMBERSHIPS_TABLE).insert({
                "user_id": user_id,
                "company_id": company_id,
                "role": "owner",
            })
        )

        logger.info(f"Created company {company_id} for user {user_id}")
        return company_id, False

    def create_document(
        self,
        company_id: str,
        filename: str,
        file_type: FileType,
        file_size: Optional[int] = None,
        source_url: Optional[str] = None
    ) -> DocumentRecord:
        """Create a document row in processing state."""
        validate_company_id(company_id)
        rows = self._execute(
            "create document",
            self.client.table(self.DOCUMENTS_TABLE).insert({
                "company_id": company_id,
                "filename": filename,
                "file_type": FileType(file_type).value,
                "file_size": file_size,
                "source_url": source_url,
                "status": DocumentStatus.PROCESSING.value,
            })
        )
        document = DocumentRecord(**rows[0])
        logger.info(f"Created document record: {document.id}")
        return document

    def _finish(self, document_id: str, values: Dict[str, Any]) -> bool:
        # Only documents still processing may transition
        rows = self._execute(
            "update document status",
            self.client.table(self.DOCUMENTS_TABLE)
            .update({**values, "updated_at": _now().isoformat()})
            .eq("id", document_id)
            .eq("status", DocumentStatus.PROCESSING.value)
        )
        if not rows:
            logger.warning(f"Document {document_id} was not in processing state")
        return bool(rows)

    def mark_completed(
        self,
        document_id: str,
        total_chunks: int,
        total_tokens: int,
        metadata: Optional[Dict[str, Any]] = None
    ) -> bool:
        """Move a processing document to completed with its counts."""
        values = {
            "status": DocumentStatus.COMPLETED.value,
            "total_chunks": total_chunks,
            "total_tokens": total_tokens,
        }
        if metadata is not None:
            values["metadata"] = metadata
        return self._finish(document_id, values)

    def mark_failed(self, document_id: str, error_message: str) -> bool:
        """Move a processing document to failed with an error message."""
        return self._finish(document_id, {
            "status": DocumentStatus.FAILED.value,
            "error_message": error_message,
        })

    def get_document(self, company_id: str, document_id: str) -> Optional[DocumentRecord]:
        validate_company_id(company_id)
        rows = self._execute(
            "get document",
            self.client.table(self.DOCUMENTS_TABLE)
            .select("*")
            .eq("id", document_id)
            .eq("company_id", company_id)
            .limit(1)
        )
        return DocumentRecord(**rows[0]) if rows else None

    def list_documents(self, company_id: str) -> List[DocumentRecord]:
        """List a company's documents, newest first."""
        validate_company_id(company_id)
        rows = self._execute(
            "list documents",
            self.client.table(self.DOCUMENTS_TABLE)
            .select("*")
            .eq("company_id", company_id)
            .order("created_at", desc=True)
        )
        return [DocumentRecord(**row) for row in rows]

    def delete_document(self, company_id: str, document_id: str) -> bool:
        """Delete a document; its chunks cascade in the database."""
        validate_company_id(company_id)
        rows = self._execute(
            "delete document",
            self.client.table(self.DOCUMENTS_TABLE)
            .delete()
            .eq("id", document_id)
            .eq("company_id", company_id)
        )
        return bool(rows)

    def get_voice_settings(self, company_id: str) -> Optional[VoiceSettings]:
        rows = self._execute(
            "get voice settings",
            self.client.table(self.VOICE_TABLE)
            .select("*")
            .eq("company_id", company_id)
            .limit(1)
        )
        return VoiceSettings(**rows[0]) if rows else None

    def upsert_voice_settings(self, company_id: str, settings: Dict[str, Any]) -> VoiceSettings:
        """Create or replace the company's voice settings."""
        validate_company_id(company_id)
        row = {**_voice_row(company_id, settings), "updated_at": _now().isoformat()}
        rows = self._execute(
            "update voice settings",
            self.client.table(self.VOICE_TABLE).upsert(row, on_conflict="company_id")
        )
        logger.info(f"Updated voice settings for company {company_id}")
        return VoiceSettings(**rows[0])


class InMemoryDocumentService:
    """Process-local implementation of the document service."""

    def __init__(self, vector_store: Optional[BaseVectorStore] = None):
        """
        Args:
            vector_store: Store whose chunks are removed when a document is deleted
        """
        self.vector_store = vector_store
        self._companies: Dict[str, str] = {}
        self._documents: Dict[str, DocumentRecord] = {}
        self._voice: Dict[str, VoiceSettings] = {}
        self._lock = threading.Lock()

    def ensure_company(self, user_id: str, name: Optional[str] = None) -> Tuple[str, bool]:
        with self._lock:
            if user_id in self._companies:
                return self._companies[user_id], True
            company_id = str(uuid.uuid4())
            self._companies[user_id] = company_id
        logger.info(f"Created company {company_id} for user {user_id}")
        return company_id, False

    def create_document(
        self,
        company_id: str,
        filename: str,
        file_type: FileType,
        file_size: Optional[int] = None,
        source_url: Optional[str] = None
    ) -> DocumentRecord:
        validate_company_id(company_id)
        now = _now()
        document = DocumentRecord(
            id=str(uuid.uuid4()),
            company_id=company_id,
            filename=filename,
            file_type=FileType(file_type),
            file_size=file_size,
            source_url=source_url,
            created_at=now,
            updated_at=now,
        )
        with self._lock:
            self._documents[document.id] = document
        logger.info(f"Created document record: {document.id}")
        return document

    def _finish(self, document_id: str, values: Dict[str, Any]) -> bool:
        with self._lock:
            document = self._documents.get(document_id)
            if document is None or document.status != DocumentStatus.PROCESSING:
                logger.warning(f"Document {document_id} was not in processing state")
                return False
            self._documents[document_id] = document.model_copy(
                update={**values, "updated_at": _now()}
            )
        return True

    def mark_completed(
        self,
        document_id: str,
        total_chunks: int,
        total_tokens: int,
        metadata: Optional[Dict[str, Any]] = None
    ) -> bool:
        values = {
            "status": DocumentStatus.COMPLETED,
            "total_chunks": total_chunks,
            "total_tokens": total_tokens,
        }
        if metadata is not None:
            values["metadata"] = metadata
        return self._finish(document_id, values)

    def mark_failed(self, document_id: str, error_message: str) -> bool:
        return self._finish(document_id, {
            "status": DocumentStatus.FAILED,
            "error_message": error_message,
        })

    def get_document(self, company_id: str, document_id: str) -> Optional[DocumentRecord]:
        validate_company_id(company_id)
        with self._lock:
            document = self._documents.get(document_id)
        if document is None or document.company_id != company_id:
            return None
        return document

    def list_documents(self, company_id: str) -> List[DocumentRecord]:
        validate_company_id(company_id)
        with self._lock:
            documents = [d for d in self._documents.values() if d.company_id == company_id]
        return sorted(documents, key=lambda d: d.created_at, reverse=True)

    def delete_document(self, company_id: str, document_id: str) -> bool:
        validate_company_id(company_id)
        with self._lock:
            document = self._documents.get(document_id)
            if document is None or document.company_id != company_id:
                return False
            del self._documents[document_id]
        if self.vector_store is not None:
            self.vector_store.delete_document_chunks(document_id)
        return True

    def get_voice_settings(self, company_id: str) -> Optional[VoiceSettings]:
        with self._lock:
            return self._voice.get(company_id)

    def upsert_voice_settings(self, company_id: str, settings: Dict[str, Any]) -> VoiceSettings:
        validate_company_id(company_id)
        voice = VoiceSettings(**_voice_row(company_id, settings), updated_at=_now())
        with self._lock:
            self._voice[company_id] = voice
        logger.info(f"Updated voice settings for company {company_id}")
        return voice


def get_document_service(
    config: Optional[RAGConfig] = None,
    client: Optional[Client] = None,
    vector_store: Optional[BaseVectorStore] = None
):
    """
    Get document service instance for the configured backend.

    Args:
        config: RAG configuration (optional)
        client: Supabase client to reuse (optional)
        vector_store: Vector store for chunk cleanup (in-memory backend)

    Returns:
        DocumentService or InMemoryDocumentService
    """
    if config is None:
        from ..rag.config import get_rag_config
        config = get_rag_config()

    if config.vector_backend == "memory":
        return InMemoryDocumentService(vector_store=vector_store)

    return DocumentService(config, client=client)
