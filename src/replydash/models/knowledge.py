"""Pydantic models for company knowledge-base records."""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field


class FileType(str, Enum):
    """Declared source type of a document."""

    PDF = "pdf"
    DOCX = "docx"
    TXT = "txt"
    MD = "md"
    URL = "url"

    @classmethod
    def upload_types(cls) -> List["FileType"]:
        """File types accepted for direct upload (everything but URLs)."""
        return [t for t in cls if t is not cls.URL]


class DocumentStatus(str, Enum):
    """Processing status of a document."""

    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class DocumentRecord(BaseModel):
    """
    A source artifact (uploaded file or URL) owned by a company.

    Created in ``processing`` state; moved to ``completed`` or ``failed``
    exactly once by the ingestion job.
    """

    id: str = Field(..., description="Document UUID")
    company_id: str = Field(..., description="Owning company UUID")
    filename: str = Field(..., description="Original filename, or the URL for URL sources")
    file_type: FileType
    file_size: Optional[int] = Field(None, description="Size in bytes (null for URLs)", ge=0)
    source_url: Optional[str] = None
    status: DocumentStatus = DocumentStatus.PROCESSING
    error_message: Optional[str] = None
    total_chunks: int = Field(default=0, ge=0)
    total_tokens: int = Field(default=0, ge=0)
    metadata: Dict[str, Any] = Field(default_factory=dict)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class VoiceSettings(BaseModel):
    """Per-company free-text guidance merged into RAG context."""

    company_id: str
    voice_guidelines: Optional[str] = None
    brand_tone: Optional[str] = None
    positioning: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)
    updated_at: Optional[datetime] = None


class CompanyStats(BaseModel):
    """Aggregate knowledge-base rollup for one company."""

    total_documents: int = 0
    total_chunks: int = 0
    total_tokens: int = 0
    total_storage_bytes: int = 0
    last_updated: Optional[datetime] = None
